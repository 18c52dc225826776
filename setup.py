#!/usr/bin/env python3
#
# To install latcomb, run
#
#       python3 setup.py install
#
# or, for development,
#
#       pip install -e '.[dev,test]'
#
# To test that latcomb is installed successfully, run
#
#       python3 -m latcomb.version
#
# To uninstall latcomb, run
#
#       pip uninstall latcomb
#
# To build a wheel package, run
#
#       python3 setup.py bdist_wheel
#
#  It generates a file in the dist/ directory.
#
# To build a wheel that can be uploaded to PyPI, run
#
#       LATCOMB_IS_FOR_PYPI=1 python3 setup.py bdist_wheel

import sys

import setuptools

import get_version

get_package_version = get_version.get_package_version

if sys.version_info < (3, 7):
    print(
        "Python 3.6 has reached end-of-life on December 23rd, 2021 "
        "and is no longer supported by latcomb."
    )
    sys.exit(-1)


def get_long_description():
    with open("README.md", "r") as f:
        long_description = f.read()
        return long_description


def get_short_description():
    return ("Combine reference and hypothesis lattices for lightly "
            "supervised training")


dev_requirements = [
    "flake8==3.8.3",
    "yapf==0.27.0",
]

test_requirements = [
    "pytest",
]

install_requires = [
    "torch",
    "graphviz",
]

setuptools.setup(
    python_requires=">=3.7",
    name="latcomb",
    version=get_package_version(),
    author="The latcomb authors",
    keywords="lattice, FSA, FST, lightly supervised training",
    description=get_short_description(),
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    package_dir={
        "latcomb": "latcomb/python/latcomb",
    },
    packages=["latcomb"],
    install_requires=install_requires,
    extras_require={"dev": dev_requirements, "test": test_requirements},
    entry_points={
        "console_scripts": [
            "lattice-combine-light=latcomb.lattice_combine_light:main",
        ],
    },
    zip_safe=False,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
)
