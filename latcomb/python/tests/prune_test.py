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
#  python3 -m pytest latcomb/python/tests/prune_test.py

import unittest

import latcomb


class TestPrune(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.s = '''
            0 1 1 1
            0 1 2 3
            0 1 3 3
            1 2 -1 0
            2
        '''

    def test_zero_beam_keeps_ties(self):
        fsa = latcomb.Fsa.from_str(self.s)
        ans = latcomb.prune(fsa, 0)
        assert latcomb.get_path_scores(ans) == {(2,): 3.0, (3,): 3.0}
        # the input is not modified
        assert fsa.num_arcs == 4

    def test_beam(self):
        fsa = latcomb.Fsa.from_str(self.s)
        ans = latcomb.prune(fsa, 2.5)
        assert latcomb.get_path_scores(ans) == {
            (1,): 1.0,
            (2,): 3.0,
            (3,): 3.0
        }
        ans = latcomb.prune(fsa, 1.5)
        assert len(latcomb.get_path_scores(ans)) == 2

    def test_removes_states(self):
        s = '''
            0 1 1 0
            0 2 2 5
            1 3 3 0
            2 3 3 0
            3 4 -1 0
            4
        '''
        fsa = latcomb.Fsa.from_str(s)
        ans = latcomb.prune(fsa, 0)
        assert ans.num_states == 4
        assert ans.num_arcs == 3
        assert latcomb.get_path_scores(ans) == {(2, 3): 5.0}

    def test_transducer(self):
        s = '''
            0 1 1 10 1
            0 1 2 20 2
            1 2 -1 -1 0
            2
        '''
        fsa = latcomb.Fsa.from_str(s, acceptor=False)
        ans = latcomb.prune(fsa, 0)
        assert not ans.is_acceptor()
        assert ans.aux_labels.tolist() == [20, -1]

    def test_invalid_beam(self):
        fsa = latcomb.Fsa.from_str(self.s)
        with self.assertRaises(ValueError):
            latcomb.prune(fsa, -1)

    def test_empty(self):
        ans = latcomb.prune(latcomb.empty_fsa(), 0)
        assert ans.num_states == 0


if __name__ == '__main__':
    unittest.main()
