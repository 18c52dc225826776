#!/usr/bin/env python3

# Copyright      2026  The latcomb authors
#
# See ../../../LICENSE for clarification regarding multiple authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import platform
import sys

import torch

__version__ = '0.1.0'


def main():
    '''Collect the information about the environment in which latcomb runs.

    When reporting issues, please use::

        python3 -m latcomb.version

    to collect the environment information about latcomb.
    '''
    print('Collecting environment information...')
    try:
        import graphviz
        graphviz_version = graphviz.__version__
    except ImportError:
        graphviz_version = 'not installed'

    print(f'''
latcomb version: {__version__}
Python version: {sys.version.split()[0]}
OS: {platform.platform()}
PyTorch version: {torch.__version__}
graphviz (Python package) version: {graphviz_version}
    ''')


if __name__ == '__main__':
    main()
