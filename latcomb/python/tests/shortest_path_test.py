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
#  python3 -m pytest latcomb/python/tests/shortest_path_test.py

import unittest

import latcomb


class TestShortestPath(unittest.TestCase):

    def test(self):
        s = '''
            0 1 1 1
            0 1 2 3
            1 2 3 0.5
            1 2 4 0.25
            2 3 -1 0
            3
        '''
        fsa = latcomb.Fsa.from_str(s)
        best_path = latcomb.shortest_path(fsa)
        assert best_path.labels.tolist() == [2, 3, -1]
        assert best_path.num_states == 4
        self.assertAlmostEqual(best_path.get_tot_scores(), 3.5, places=5)

    def test_transducer(self):
        s = '''
            0 1 1 10 1
            0 2 2 20 2
            1 3 -1 -1 0
            2 3 -1 -1 -5
            3
        '''
        fsa = latcomb.Fsa.from_str(s, acceptor=False)
        best_path = latcomb.shortest_path(fsa)
        assert best_path.labels.tolist() == [1, -1]
        assert best_path.aux_labels.tolist() == [10, -1]

    def test_cycle(self):
        s = '''
            0 0 1 -1
            0 1 2 0
            1 2 -1 0
            2
        '''
        fsa = latcomb.Fsa.from_str(s)
        best_path = latcomb.shortest_path(fsa)
        assert best_path.labels.tolist() == [2, -1]

    def test_empty(self):
        s = '''
            0 1 1 0
            2 3 -1 0
            3
        '''
        fsa = latcomb.Fsa.from_str(s)
        assert latcomb.shortest_path(fsa).num_states == 0
        assert latcomb.shortest_path(latcomb.empty_fsa()).num_states == 0


if __name__ == '__main__':
    unittest.main()
