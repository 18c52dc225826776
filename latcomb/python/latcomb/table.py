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

# Keyed archives in the Kaldi text formats.
#
# An archive is a sequence of entries. Every entry is a line holding the key
# followed by a space, then one line per arc or final state, then an empty
# line:
#
#   utt1
#   0 1 12 0.5,1.25,3_5_5
#   1 0,0,
#
#   utt2
#   ...
#
# The byte offsets stored in scp files point just after the space that
# follows the key.

import logging
import sys
from typing import BinaryIO
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Set
from typing import Tuple

from .fsa import Fsa
from .fsa import openfst_to_fsa

_OPTIONS = {'t', 's', 'cs', 'p', 'o'}


def _parse_specifier(specifier: str
                     ) -> Tuple[List[str], List[str], Set[str]]:  # noqa
    if ':' not in specifier:
        raise ValueError(f'Invalid table specifier: {specifier}')
    prefix, filenames = specifier.split(':', 1)
    types = []
    options = set()
    for opt in prefix.split(','):
        opt = opt.strip()
        if opt in ('ark', 'scp'):
            if opt in types:
                raise ValueError(f'Invalid table specifier: {specifier}')
            types.append(opt)
        elif opt == 'b':
            raise ValueError(f'Binary archives are not supported: '
                             f'{specifier}')
        elif opt in _OPTIONS:
            options.add(opt)
        else:
            raise ValueError(f'Unknown option {opt} in {specifier}')
    if len(types) == 0 or filenames == '':
        raise ValueError(f'Invalid table specifier: {specifier}')
    filenames = filenames.split(',') if len(types) == 2 else [filenames]
    return types, filenames, options


def parse_rspecifier(rspecifier: str) -> Tuple[str, str]:
    '''Parse a read specifier like `ark:foo.ark`, `ark,t:-` or `scp:foo.scp`.

    Returns:
      A tuple (table_type, filename) where table_type is `ark` or `scp`
      and filename `-` means the standard input.
    '''
    types, filenames, _ = _parse_specifier(rspecifier)
    if len(types) != 1:
        raise ValueError(f'Invalid rspecifier: {rspecifier}')
    return types[0], filenames[0]


def parse_wspecifier(wspecifier: str) -> Tuple[str, Optional[str]]:
    '''Parse a write specifier like `ark,t:foo.ark` or
    `ark,scp:foo.ark,foo.scp`.

    Returns:
      A tuple (ark_filename, scp_filename). scp_filename is None if no
      companion scp file is requested.
    '''
    types, filenames, _ = _parse_specifier(wspecifier)
    if 'ark' not in types or len(filenames) != len(types):
        raise ValueError(f'Invalid wspecifier: {wspecifier}')
    ans = dict(zip(types, filenames))
    return ans['ark'], ans.get('scp')


def _open_input(filename: str) -> BinaryIO:
    if filename == '-':
        return sys.stdin.buffer
    return open(filename, 'rb')


def _read_line(f: BinaryIO) -> Optional[str]:
    '''Return the next line without the trailing newline, or None at EOF.'''
    line = f.readline()
    if not line:
        return None
    if b'\0' in line:
        raise ValueError('Binary archives are not supported')
    return line.decode('utf-8').rstrip('\r\n')


def _read_body(f: BinaryIO, first_line: Optional[str] = None) -> List[str]:
    lines = []
    line = first_line
    while True:
        if line is not None:
            if line.strip() == '':
                break
            lines.append(line)
        line = _read_line(f)
        if line is None:
            break
    return lines


def _read_object(f: BinaryIO) -> List[str]:
    '''Read an object starting at the current position of `f`, which is
    either just after the key of an entry or at the beginning of a file
    holding a single object.'''
    line = _read_line(f)
    if line is None:
        return []
    if line.strip() == '':
        return _read_body(f)
    return _read_body(f, line)


def _iter_archive(f: BinaryIO) -> Iterator[Tuple[str, List[str]]]:
    while True:
        line = _read_line(f)
        if line is None:
            return
        fields = line.split()
        if len(fields) == 0:
            continue
        if len(fields) != 1:
            raise ValueError(f'Expect a line holding a key. Given: {line}')
        yield fields[0], _read_body(f)


def _parse_scp_line(line: str) -> Tuple[str, str, Optional[int]]:
    fields = line.split(maxsplit=1)
    if len(fields) != 2:
        raise ValueError(f'Invalid line in scp file: {line}')
    key, rxfilename = fields[0], fields[1].strip()
    offset = None
    if ':' in rxfilename:
        path, suffix = rxfilename.rsplit(':', 1)
        if suffix.isdigit():
            rxfilename, offset = path, int(suffix)
    return key, rxfilename, offset


def _iter_scp(filename: str) -> Iterator[Tuple[str, str, Optional[int]]]:
    f = _open_input(filename)
    try:
        while True:
            line = _read_line(f)
            if line is None:
                return
            if line.strip() != '':
                yield _parse_scp_line(line)
    finally:
        if f is not sys.stdin.buffer:
            f.close()


class _ObjectLoader(object):
    '''Read objects referenced by scp lines, keeping the files open.'''

    def __init__(self):
        self.files: Dict[str, BinaryIO] = dict()

    def load(self, rxfilename: str, offset: Optional[int]) -> List[str]:
        if rxfilename not in self.files:
            self.files[rxfilename] = open(rxfilename, 'rb')
        f = self.files[rxfilename]
        f.seek(0 if offset is None else offset)
        return _read_object(f)

    def close(self):
        for f in self.files.values():
            f.close()
        self.files.clear()


def _to_cost(weight: str, lm_scale: float, acoustic_scale: float) -> float:
    fields = weight.split(',')
    if len(fields) < 2:
        raise ValueError(f'Invalid lattice weight: {weight}')
    graph_cost, acoustic_cost = float(fields[0]), float(fields[1])
    if graph_cost == float('inf') or acoustic_cost == float('inf'):
        return float('inf')
    return lm_scale * graph_cost + acoustic_scale * acoustic_cost


def lattice_from_lines(lines: List[str],
                       lm_scale: float = 0.0,
                       acoustic_scale: float = 0.0) -> Fsa:
    '''Convert a lattice in the Kaldi text format into an Fsa.

    Compact lattices have arc lines `src dest word graph,acoustic[,ali]`
    and become acceptors over words; the alignments are dropped.
    Lattices have arc lines `src dest ilabel olabel [graph,acoustic]` and
    become transducers whose aux_labels are the words. Final lines are
    `state [weight]`.

    Args:
      lines:
        The lines of one lattice.
      lm_scale:
        Scale for the graph cost.
      acoustic_scale:
        Scale for the acoustic cost.

    Returns:
      An Fsa whose scores are `-(lm_scale * graph + acoustic_scale *
      acoustic)`.
    '''
    arc_list = []
    finals: Dict[int, float] = dict()
    start = None
    compact = None
    for line in lines:
        fields = line.split()
        num_fields = len(fields)
        if num_fields <= 2:
            state = int(fields[0])
            cost = _to_cost(fields[1], lm_scale, acoustic_scale) \
                if num_fields == 2 else 0.0
            finals[state] = min(cost, finals.get(state, float('inf')))
        elif num_fields in (4, 5):
            state, dest = int(fields[0]), int(fields[1])
            is_compact = num_fields == 4 and ',' in fields[3]
            if compact is None:
                compact = is_compact
            elif compact != is_compact:
                raise ValueError(f'Mixed lattice formats in: {line}')
            label = int(fields[2])
            if is_compact:
                aux_label = label
                cost = _to_cost(fields[3], lm_scale, acoustic_scale)
            else:
                aux_label = int(fields[3])
                cost = _to_cost(fields[4], lm_scale, acoustic_scale) \
                    if num_fields == 5 else 0.0
            if label < 0 or aux_label < 0:
                raise ValueError(f'Invalid label in: {line}')
            arc_list.append((state, dest, label, aux_label, cost))
        else:
            raise ValueError(f'Invalid lattice line: {line}')
        if start is None:
            start = state
    return openfst_to_fsa(arc_list, finals, start,
                          acceptor=compact is None or compact)


def fst_from_lines(lines: List[str], acceptor: Optional[bool] = None) -> Fsa:
    '''Convert an FST in the OpenFst text format (as written by
    :class:`FstWriter`) into an Fsa.

    Args:
      lines:
        The lines of one FST. Arc lines have 4 or 5 fields.
      acceptor:
        True to drop the output labels, False to keep them. None means
        an acceptor is returned if all arcs have equal input and output
        labels.
    '''
    fsa = Fsa.from_openfst('\n'.join(lines), acceptor=False)
    if acceptor is None:
        acceptor = bool((fsa.labels == fsa.aux_labels).all())
    if acceptor:
        return Fsa(fsa.arcs, fsa.scores)
    return fsa


class _SequentialReader(object):
    '''Iterate over the (key, object) pairs of a table, in order.'''

    def __init__(self, rspecifier: str,
                 parse: Callable[[List[str]], Fsa]) -> None:
        self.rspecifier = rspecifier
        self.table_type, self.filename = parse_rspecifier(rspecifier)
        self._parse = parse
        self._file = None
        self._loader = None
        logging.debug(f'Opening {self.table_type} {self.filename}')

    def __iter__(self) -> Iterator[Tuple[str, Fsa]]:
        if self.table_type == 'ark':
            self._file = _open_input(self.filename)
            for key, lines in _iter_archive(self._file):
                yield key, self._parse(lines)
        else:
            self._loader = _ObjectLoader()
            for key, rxfilename, offset in _iter_scp(self.filename):
                yield key, self._parse(self._loader.load(rxfilename, offset))
        self.close()

    def close(self) -> None:
        if self._file is not None and self._file is not sys.stdin.buffer:
            self._file.close()
        self._file = None
        if self._loader is not None:
            self._loader.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class SequentialLatticeReader(_SequentialReader):
    '''Read the lattices of an archive (or scp file) in a single forward
    pass.

    Usage::

        with SequentialLatticeReader('ark:ref.lats') as reader:
            for key, fsa in reader:
                ...
    '''

    def __init__(self,
                 rspecifier: str,
                 lm_scale: float = 0.0,
                 acoustic_scale: float = 0.0) -> None:
        super().__init__(
            rspecifier,
            lambda lines: lattice_from_lines(lines, lm_scale, acoustic_scale))


class SequentialFstReader(_SequentialReader):
    '''Read the FSTs written by :class:`FstWriter`.'''

    def __init__(self, rspecifier: str,
                 acceptor: Optional[bool] = None) -> None:
        super().__init__(rspecifier,
                         lambda lines: fst_from_lines(lines, acceptor))


class RandomAccessLatticeReader(object):
    '''Look up lattices by key.

    For an scp file, an index of all keys is built when it is opened and
    lattices are loaded on demand. For an archive, entries are read
    sequentially up to the requested key and cached.

    The Kaldi options of `rspecifier` bound the size of the cache:

      - `s`: the archive is sorted on keys, so the search for a key stops
        at the first larger key.
      - `cs`: keys are looked up in sorted order, so entries with a key
        smaller than the requested one are dropped.
      - `o`: every key is looked up once, so an entry is dropped when
        its value is returned.

    Without them, every entry read past is kept until :func:`close`.
    '''

    def __init__(self,
                 rspecifier: str,
                 lm_scale: float = 0.0,
                 acoustic_scale: float = 0.0) -> None:
        self.table_type, self.filename = parse_rspecifier(rspecifier)
        options = _parse_specifier(rspecifier)[2]
        self.sorted = 's' in options
        self.called_sorted = 'cs' in options
        self.once = 'o' in options
        self.lm_scale = lm_scale
        self.acoustic_scale = acoustic_scale
        self._cache: Dict[str, List[str]] = dict()
        self._index: Dict[str, Tuple[str, Optional[int]]] = dict()
        self._file = None
        self._entries = None
        self._loader = _ObjectLoader()
        if self.table_type == 'ark':
            self._file = _open_input(self.filename)
            self._entries = _iter_archive(self._file)
        else:
            for key, rxfilename, offset in _iter_scp(self.filename):
                self._index[key] = (rxfilename, offset)

    @property
    def num_cached(self) -> int:
        '''Number of archive entries held in memory.'''
        return len(self._cache)

    def has_key(self, key: str) -> bool:
        if self.called_sorted:
            for k in [k for k in self._cache if k < key]:
                del self._cache[k]
        if key in self._cache or key in self._index:
            return True
        if self._entries is None:
            return False
        for k, lines in self._entries:
            if self.called_sorted and k < key:
                continue
            if k not in self._cache:
                self._cache[k] = lines
            if k == key:
                return True
            if self.sorted and k > key:
                return False
        self._entries = None
        return False

    def value(self, key: str) -> Fsa:
        '''Return the lattice for `key`. Raises KeyError if there is
        no such key.'''
        if not self.has_key(key):
            raise KeyError(key)
        if key in self._cache:
            lines = self._cache.pop(key) if self.once else self._cache[key]
        else:
            lines = self._loader.load(*self._index[key])
        return lattice_from_lines(lines, self.lm_scale, self.acoustic_scale)

    def close(self) -> None:
        if self._file is not None and self._file is not sys.stdin.buffer:
            self._file.close()
        self._file = None
        self._entries = None
        self._loader.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class FstWriter(object):
    '''Write FSTs to an archive in the OpenFst text format, optionally
    with a companion scp file holding the byte offset of every entry.

    Acceptors are written with both label columns.
    '''

    def __init__(self, wspecifier: str) -> None:
        self.ark_filename, self.scp_filename = parse_wspecifier(wspecifier)
        if self.ark_filename == '-' and self.scp_filename is not None:
            raise ValueError('Cannot write an scp file for the '
                             'standard output')
        if self.ark_filename == '-':
            self._ark = sys.stdout.buffer
        else:
            self._ark = open(self.ark_filename, 'wb')
        self._scp = None
        if self.scp_filename is not None:
            try:
                self._scp = sys.stdout if self.scp_filename == '-' else \
                    open(self.scp_filename, 'w', encoding='utf-8')
            except OSError:
                self._ark.close()
                raise

    def write(self, key: str, fsa: Fsa) -> None:
        if key == '' or len(key.split()) != 1 or key.strip() != key:
            raise ValueError(f'Invalid key: "{key}"')
        if fsa.is_acceptor():
            fsa = Fsa(fsa.arcs, fsa.scores, fsa.labels.clone())
        body = fsa.to_str(openfst=True) if fsa.num_arcs != 0 else ''
        self._ark.write(f'{key} '.encode('utf-8'))
        if self._scp is not None:
            self._scp.write(f'{key} {self.ark_filename}:'
                            f'{self._ark.tell()}\n')
        self._ark.write(f'\n{body}\n'.encode('utf-8'))

    def flush(self) -> None:
        self._ark.flush()
        if self._scp is not None:
            self._scp.flush()

    def close(self) -> None:
        if self._ark is None:
            return
        self.flush()
        if self._ark is not sys.stdout.buffer:
            self._ark.close()
        if self._scp is not None and self._scp is not sys.stdout:
            self._scp.close()
        self._ark = None
        self._scp = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
