#!/usr/bin/env python3
#
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

# To run this single test, use
#
#  python3 -m pytest latcomb/python/tests/utils_test.py

import unittest

import latcomb


class TestUtils(unittest.TestCase):

    def test_get_path_scores(self):
        s = '''
            0 1 0 1
            0 1 1 2
            1 2 2 0.5
            1 2 2 0.25
            2 3 -1 0
            3
        '''
        fsa = latcomb.Fsa.from_str(s)
        assert latcomb.get_path_scores(fsa) == {(2,): 1.5, (1, 2): 2.5}

    def test_get_path_scores_cyclic(self):
        s = '''
            0 1 1 0
            1 0 2 0
            1 2 -1 0
            2
        '''
        fsa = latcomb.Fsa.from_str(s)
        with self.assertRaises(ValueError):
            latcomb.get_path_scores(fsa)

    def test_is_equivalent(self):
        a = latcomb.Fsa.from_str('''
            0 1 1 0.5
            1 2 -1 0
            2
        ''')
        b = latcomb.Fsa.from_str('''
            0 1 0 0.25
            1 2 1 0.25
            2 3 -1 0
            3
        ''')
        c = latcomb.Fsa.from_str('''
            0 1 1 0
            1 2 -1 0
            2
        ''')
        assert latcomb.is_equivalent(a, b)
        assert not latcomb.is_equivalent(a, c)
        assert not latcomb.is_equivalent(a, latcomb.linear_fsa([2]))

    def test_to_dot(self):
        s = '''
            0 1 1 2 0.5
            1 2 -1 -1 0
            2
        '''
        fsa = latcomb.Fsa.from_str(s, acceptor=False)
        fsa.labels_sym = latcomb.SymbolTable.from_str('a 1')
        dot = latcomb.to_dot(fsa, title='test')
        source = dot.source
        assert 'doublecircle' in source
        assert 'a:2/0.5' in source
        assert '-1:-1/0' in source


if __name__ == '__main__':
    unittest.main()
