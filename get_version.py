#!/usr/bin/env python3

import datetime
import os
import re


def is_for_pypi():
    ans = os.environ.get('LATCOMB_IS_FOR_PYPI', None)
    return ans is not None


def get_package_version():
    with open('latcomb/python/latcomb/version.py') as f:
        content = f.read()

    latest_version = re.search(r"__version__ = '(.*)'", content).group(1)
    if is_for_pypi():
        return latest_version

    dt = datetime.date.today()
    package_version = f'{latest_version}.dev' \
        f'{dt.year}{dt.month:02d}{dt.day:02d}'
    return package_version


if __name__ == '__main__':
    print(get_package_version())
