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
#  python3 -m pytest latcomb/python/tests/table_test.py

import os
import shutil
import tempfile
import unittest
from unittest import mock

import latcomb
from latcomb.table import lattice_from_lines
from latcomb.table import parse_rspecifier
from latcomb.table import parse_wspecifier

_LATTICES = '''utt1
0 1 12 0.5,1,3_3_4
1 2 13 0,0,5
2 0,0,

utt2
0 1 14 0,0,
1 0,0,

'''


class TestSpecifier(unittest.TestCase):

    def test_rspecifier(self):
        assert parse_rspecifier('ark:foo.ark') == ('ark', 'foo.ark')
        assert parse_rspecifier('ark,t:-') == ('ark', '-')
        assert parse_rspecifier('scp,p:foo.scp') == ('scp', 'foo.scp')
        assert parse_rspecifier('ark,s,cs:foo.ark') == ('ark', 'foo.ark')
        for s in ['foo.ark', 'ark,b:foo.ark', 'ark,scp:a.ark,a.scp',
                  'xyz:foo', 'ark:']:
            with self.assertRaises(ValueError):
                parse_rspecifier(s)

    def test_wspecifier(self):
        assert parse_wspecifier('ark,t:out.ark') == ('out.ark', None)
        assert parse_wspecifier('ark:-') == ('-', None)
        assert parse_wspecifier('ark,scp:a.ark,a.scp') == ('a.ark', 'a.scp')
        assert parse_wspecifier('ark,scp,t:a.ark,a.scp') == ('a.ark',
                                                             'a.scp')
        for s in ['scp:a.scp', 'ark,scp:a.ark', 'ark,b:a.ark']:
            with self.assertRaises(ValueError):
                parse_wspecifier(s)


class TestLatticeFromLines(unittest.TestCase):

    def test_compact_lattice(self):
        lines = ['0 1 12 1.5,2.5,3_4', '1 2 13 0.5,1,', '2 0.5,0.5,']
        fsa = lattice_from_lines(lines, lm_scale=1.0, acoustic_scale=0.1)
        assert fsa.is_acceptor()
        assert fsa.num_states == 4
        assert fsa.labels.tolist() == [12, 13, -1]
        path_scores = latcomb.get_path_scores(fsa)
        self.assertAlmostEqual(path_scores[(12, 13)], -2.9, places=5)

    def test_default_scale(self):
        lines = ['0 1 12 1.5,2.5,3_4', '1 2 13 0.5,1,', '2 0.5,0.5,']
        fsa = lattice_from_lines(lines)
        assert latcomb.get_path_scores(fsa) == {(12, 13): 0.0}

    def test_lattice(self):
        lines = ['0 1 5 12 1,2', '1 2 6 0', '2']
        fsa = lattice_from_lines(lines, lm_scale=1.0, acoustic_scale=1.0)
        assert not fsa.is_acceptor()
        assert fsa.labels.tolist() == [5, 6, -1]
        assert fsa.aux_labels.tolist() == [12, 0, -1]
        assert fsa.scores.tolist() == [-3, 0, 0]

    def test_invalid(self):
        with self.assertRaises(ValueError):
            lattice_from_lines(['0 1 5 12 1,2', '1 2 13 1,2', '2'])
        with self.assertRaises(ValueError):
            lattice_from_lines(['0 1 5', '1'])
        with self.assertRaises(ValueError):
            lattice_from_lines(['0 1 5 x,2', '1'])

    def test_empty(self):
        assert lattice_from_lines([]).num_states == 0
        fsa = lattice_from_lines(['0 1 5 0,0,', '1 Infinity,0,'])
        assert fsa.num_states == 0


class TestTables(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def _write(self, name, content, mode='w'):
        filename = os.path.join(self.tmp_dir, name)
        with open(filename, mode) as f:
            f.write(content)
        return filename

    def test_sequential_reader(self):
        ark = self._write('lat.ark', _LATTICES)
        keys = []
        with latcomb.SequentialLatticeReader(f'ark:{ark}') as reader:
            for key, fsa in reader:
                keys.append(key)
                assert fsa.is_acceptor()
        assert keys == ['utt1', 'utt2']

    def test_scp(self):
        ark = self._write('lat.ark', _LATTICES)
        utt1 = _LATTICES.index('utt1') + len('utt1')
        utt2 = _LATTICES.index('utt2') + len('utt2')
        single = self._write('single.lat', '0 1 15 0,0,\n1 0,0,\n')
        scp = self._write(
            'lat.scp', f'utt2 {ark}:{utt2}\nutt1 {ark}:{utt1}\n'
            f'utt3 {single}\n')

        ans = dict()
        with latcomb.SequentialLatticeReader(f'scp:{scp}') as reader:
            for key, fsa in reader:
                ans[key] = fsa.labels.tolist()
        assert list(ans.keys()) == ['utt2', 'utt1', 'utt3']
        assert ans == {
            'utt1': [12, 13, -1],
            'utt2': [14, -1],
            'utt3': [15, -1]
        }

        with latcomb.RandomAccessLatticeReader(f'scp:{scp}') as reader:
            assert reader.has_key('utt1')
            assert not reader.has_key('utt4')
            assert reader.value('utt3').labels.tolist() == [15, -1]

    def test_random_access_reader(self):
        ark = self._write('lat.ark', _LATTICES)
        with latcomb.RandomAccessLatticeReader(f'ark:{ark}') as reader:
            assert reader.has_key('utt2')
            assert reader.has_key('utt1')
            assert not reader.has_key('utt3')
            assert reader.value('utt1').labels.tolist() == [12, 13, -1]
            assert reader.value('utt2').labels.tolist() == [14, -1]
            with self.assertRaises(KeyError):
                reader.value('utt3')

    def test_random_access_reader_sorted(self):
        lats = _LATTICES + ('utt3\n0 1 15 0,0,\n1 0,0,\n\n'
                            'utt4\n0 1 16 0,0,\n1 0,0,\n\n')
        ark = self._write('lat.ark', lats)
        with latcomb.RandomAccessLatticeReader(f'ark:{ark}') as reader:
            assert reader.has_key('utt4')
            assert reader.num_cached == 4

        rspecifier = f'ark,s,cs,o:{ark}'
        with latcomb.RandomAccessLatticeReader(rspecifier) as reader:
            assert reader.has_key('utt2')
            assert reader.num_cached == 1
            assert reader.value('utt2').labels.tolist() == [14, -1]
            assert reader.num_cached == 0

            # The search stops at utt3
            assert not reader.has_key('utt25')
            assert reader.num_cached == 1

            assert reader.has_key('utt4')
            assert reader.num_cached == 1
            assert reader.value('utt4').labels.tolist() == [16, -1]
            assert reader.num_cached == 0
            assert not reader.has_key('utt5')

    def test_binary(self):
        ark = self._write('lat.ark', b'utt1 \0B\4\0', mode='wb')
        with self.assertRaises(ValueError):
            with latcomb.SequentialLatticeReader(f'ark:{ark}') as reader:
                for key, fsa in reader:
                    pass

    def test_writer(self):
        s = '''
            0 1 1 0.5
            1 2 2 0.25
            2 3 -1 0
            3
        '''
        fsa = latcomb.Fsa.from_str(s)
        transducer = latcomb.Fsa.from_str('''
            0 1 1 2 1
            1 2 -1 -1 0.5
            2
        ''', acceptor=False)
        ark = os.path.join(self.tmp_dir, 'out.ark')
        scp = os.path.join(self.tmp_dir, 'out.scp')
        with latcomb.FstWriter(f'ark,scp:{ark},{scp}') as writer:
            writer.write('a', fsa)
            writer.write('b', transducer)
            writer.write('c', latcomb.empty_fsa())
            with self.assertRaises(ValueError):
                writer.write('d e', fsa)

        with open(ark) as f:
            content = f.read()
        assert content.startswith('a \n0 1 1 1 -0.5\n1 2 2 2 -0.25\n2\n\n')

        for rspecifier in [f'ark:{ark}', f'scp:{scp}']:
            ans = dict()
            with latcomb.SequentialFstReader(rspecifier) as reader:
                for key, value in reader:
                    ans[key] = value
            assert list(ans.keys()) == ['a', 'b', 'c']
            assert ans['a'].is_acceptor()
            assert latcomb.to_str(ans['a']) == latcomb.to_str(fsa)
            assert not ans['b'].is_acceptor()
            assert latcomb.to_str(ans['b']) == latcomb.to_str(transducer)
            assert ans['c'].num_states == 0

    def test_writer_closes_archive_on_error(self):
        ark = os.path.join(self.tmp_dir, 'out.ark')
        scp = os.path.join(self.tmp_dir, 'missing', 'out.scp')
        opened = []

        def open_and_record(*args, **kwargs):
            f = open(*args, **kwargs)
            opened.append(f)
            return f

        with mock.patch('latcomb.table.open', create=True,
                        side_effect=open_and_record):
            with self.assertRaises(OSError):
                latcomb.FstWriter(f'ark,scp:{ark},{scp}')
        assert len(opened) == 1
        assert opened[0].closed


if __name__ == '__main__':
    unittest.main()
