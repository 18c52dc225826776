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

from dataclasses import dataclass
from dataclasses import field
from typing import Dict
from typing import Iterable
from typing import List
from typing import Union


@dataclass(repr=False)
class SymbolTable(object):
    '''Word symbol table, i.e. the mapping between the integer labels
    found on lattice arcs and the words they stand for, as stored in
    a Kaldi `words.txt`.

    Label 0 is always the epsilon symbol.
    '''
    _id2sym: Dict[int, str] = field(default_factory=dict)
    '''Map an integer to a word.
    '''

    _sym2id: Dict[str, int] = field(default_factory=dict)
    '''Map a word to an integer.
    '''

    eps: str = '<eps>'
    '''Null symbol, always mapped to index 0.
    '''

    def __post_init__(self):
        for idx, sym in self._id2sym.items():
            assert self._sym2id[sym] == idx
            assert idx >= 0

        if 0 not in self._id2sym:
            self._id2sym[0] = self.eps
            self._sym2id[self.eps] = 0
        elif self._id2sym[0] != self.eps:
            raise ValueError(f'Symbol 0 has to be {self.eps}. '
                             f'Given: {self._id2sym[0]}')

    @staticmethod
    def from_str(s: str) -> 'SymbolTable':
        '''Build a symbol table from a string.

        The string consists of lines. Every line has two fields separated
        by space(s), tab(s) or both. The first field is the word and the
        second the integer id of the word.

        Args:
          s:
            The input string with the format described above.
        Returns:
          An instance of :class:`SymbolTable`.
        '''
        id2sym: Dict[int, str] = dict()
        sym2id: Dict[str, int] = dict()

        for line in s.split('\n'):
            fields = line.split()
            if len(fields) == 0:
                continue  # skip empty lines
            if len(fields) != 2:
                raise ValueError(f'Expect a line with 2 fields. '
                                 f'Given: {line}')
            sym, idx = fields[0], int(fields[1])
            if sym in sym2id:
                raise ValueError(f'Duplicated symbol {sym}')
            if idx in id2sym:
                raise ValueError(f'Duplicated id {idx}')
            id2sym[idx] = sym
            sym2id[sym] = idx

        return SymbolTable(_id2sym=id2sym, _sym2id=sym2id)

    @staticmethod
    def from_file(filename: str) -> 'SymbolTable':
        '''Build a symbol table from file, e.g. `data/lang/words.txt`.

        .. code-block::

            <eps> 0
            a 1
            b 2
            c 3
        '''
        with open(filename, 'r', encoding='utf-8') as f:
            return SymbolTable.from_str(f.read().strip())

    def to_file(self, filename: str):
        '''Serialize the SymbolTable to a file in the format read by
        :func:`from_file`.'''
        with open(filename, 'w', encoding='utf-8') as f:
            for idx, symbol in sorted(self._id2sym.items()):
                print(symbol, idx, file=f)

    def add(self, symbol: str) -> int:
        '''Add a word to the table if it is not there yet.

        Returns:
            The int id of the word.
        '''
        if symbol in self._sym2id:
            return self._sym2id[symbol]
        index = max(self._id2sym) + 1
        self._sym2id[symbol] = index
        self._id2sym[index] = symbol
        return index

    def get(self, k: Union[int, str]) -> Union[str, int]:
        '''Get the word for an id or the id for a word.'''
        if isinstance(k, int):
            return self._id2sym[k]
        elif isinstance(k, str):
            return self._sym2id[k]
        else:
            raise ValueError(f'Unsupported type {type(k)}.')

    def to_words(self, ids: Iterable[int]) -> List[str]:
        '''Convert labels to words, skipping epsilons and the -1 labels
        of final arcs. Unknown ids are kept as their decimal value.'''
        return [self._id2sym.get(i, str(i)) for i in ids if i > 0]

    @property
    def ids(self) -> List[int]:
        return sorted(self._id2sym.keys())

    @property
    def symbols(self) -> List[str]:
        return [self._id2sym[i] for i in self.ids]

    def __getitem__(self, item: Union[int, str]) -> Union[str, int]:
        return self.get(item)

    def __contains__(self, item: Union[int, str]) -> bool:
        if isinstance(item, int):
            return item in self._id2sym
        return item in self._sym2id

    def __len__(self) -> int:
        return len(self._id2sym)
