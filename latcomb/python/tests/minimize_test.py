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
#  python3 -m pytest latcomb/python/tests/minimize_test.py

import unittest

import latcomb


class TestMinimize(unittest.TestCase):

    def test(self):
        s = '''
            0 1 1 0
            0 2 2 0
            1 3 3 0
            2 4 3 0
            3 5 -1 0
            4 5 -1 0
            5
        '''
        fsa = latcomb.Fsa.from_str(s)
        ans = latcomb.minimize(fsa)
        assert ans.num_states == 4
        assert ans.num_arcs == 4
        assert latcomb.is_equivalent(ans, fsa)
        expected_str = '\n'.join([
            '0 1 1 0', '0 1 2 0', '1 2 3 0', '2 3 -1 0', '3'
        ])
        assert latcomb.to_str(ans).strip() == expected_str

    def test_idempotent(self):
        s = '''
            0 1 1 0
            0 2 2 0
            1 3 3 0
            2 4 3 0
            3 5 -1 0
            4 5 -1 0
            5
        '''
        fsa = latcomb.Fsa.from_str(s)
        once = latcomb.minimize(fsa)
        twice = latcomb.minimize(once)
        assert twice.num_states == once.num_states
        assert twice.num_arcs == once.num_arcs
        assert latcomb.to_str(twice) == latcomb.to_str(once)

    def test_weight_pushing(self):
        # States 1 and 2 differ only by where the scores are placed
        s = '''
            0 1 1 1
            0 2 2 3
            1 3 3 0.5
            2 3 3 1.5
            3 4 -1 0
            4
        '''
        fsa = latcomb.Fsa.from_str(s)
        ans = latcomb.minimize(fsa)
        assert ans.num_states == 4
        assert ans.num_arcs == 4
        assert latcomb.is_equivalent(ans, fsa)

        twice = latcomb.minimize(ans)
        assert twice.num_states == ans.num_states
        assert twice.num_arcs == ans.num_arcs

    def test_different_scores(self):
        # Here the suffixes have different scores; nothing can be merged
        s = '''
            0 1 1 0
            0 2 2 0
            1 3 3 0
            1 3 4 1
            2 3 3 0
            2 3 4 0
            3 4 -1 0
            4
        '''
        fsa = latcomb.Fsa.from_str(s)
        ans = latcomb.minimize(fsa)
        assert ans.num_states == 5
        assert latcomb.is_equivalent(ans, fsa)

    def test_cycle(self):
        s = '''
            0 1 1 0
            1 2 1 0
            1 3 -1 0
            2 1 1 0
            2 3 -1 0
            3
        '''
        fsa = latcomb.Fsa.from_str(s)
        ans = latcomb.minimize(fsa)
        assert ans.num_states == 3
        expected_str = '\n'.join(['0 1 1 0', '1 1 1 0', '1 2 -1 0', '2'])
        assert latcomb.to_str(ans).strip() == expected_str

    def test_cycle_through_start_state(self):
        s = '''
            0 1 1 -1
            0 2 -1 2
            1 0 2 0
            2
        '''
        fsa = latcomb.Fsa.from_str(s)
        ans = latcomb.minimize(fsa)

        def get_score(f, labels):
            ofsa = latcomb.compose(f, latcomb.linear_fsa(labels))
            return ofsa.get_tot_scores()

        for labels, expected in [([], 2), ([1, 2], 1), ([1, 2, 1, 2], 0),
                                 ([1, 2, 1, 2, 1, 2], -1)]:
            assert abs(get_score(fsa, labels) - expected) < 1e-5
            assert abs(get_score(ans, labels) - expected) < 1e-5
        assert get_score(ans, [1]) == float('-inf')

        # The start state of the result is not re-entered
        assert 0 not in ans.arcs[:, 1].tolist()
        twice = latcomb.minimize(ans)
        assert twice.num_states == ans.num_states
        assert latcomb.to_str(twice) == latcomb.to_str(ans)

    def test_not_deterministic(self):
        s = '''
            0 1 1 0
            0 2 1 0
            1 3 -1 0
            2 3 -1 0
            3
        '''
        fsa = latcomb.Fsa.from_str(s)
        with self.assertRaises(ValueError):
            latcomb.minimize(fsa)
        ans = latcomb.minimize(latcomb.determinize(fsa))
        assert ans.num_states == 3

    def test_empty(self):
        assert latcomb.minimize(latcomb.empty_fsa()).num_states == 0


if __name__ == '__main__':
    unittest.main()
