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

from collections import deque
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

import torch

from . import fsa_properties
from .symbol_table import SymbolTable

# An arc as seen by the algorithms in fsa_algo.py:
# (src_state, dest_state, label, output_label, score).
# For acceptors output_label equals label.
ArcTuple = Tuple[int, int, int, int, float]


class Fsa(object):
    '''This class represents a single weighted FSA or FST.

    An instance of Fsa has the following attributes:

    arcs
      A 2-D `torch.Tensor` of dtype `torch.int32` with 3 columns.
      Its number of rows indicates the number of arcs in the FSA.
      The first column represents the source states, the second
      column the destination states and the third column the labels.

    scores
      A 1-D `torch.Tensor` of dtype `torch.float32`. It has
      as many entries as the number of arcs representing the score
      of every arc. Scores are negated costs: higher is better and
      the tropical semiring uses `max` on alternative paths.

    aux_labels
      None for acceptors. For transducers, a 1-D `torch.Tensor` of
      dtype `torch.int32` with the output label of every arc.

    labels_sym
      Optional :class:`SymbolTable` for `labels`. Used for
      visualization only.

    aux_labels_sym
      Optional :class:`SymbolTable` for `aux_labels`.

    Caution:
      The start state is always 0. The final state is the state with
      the largest number and there is **ONLY** one final state. All
      arcs entering it have label -1 (and aux_label -1); their scores
      are the final weights of their source states. An FSA without
      arcs has no states and accepts nothing.
    '''

    def __init__(self,
                 arcs: torch.Tensor,
                 scores: Optional[torch.Tensor] = None,
                 aux_labels: Optional[torch.Tensor] = None) -> None:
        '''Build an Fsa from tensors.

        Args:
          arcs:
            A torch tensor with 3 columns (src_state, dest_state, label).
            Rows have to be sorted by src_state.
          scores:
            Optional. A 1-D tensor with the score of every arc.
            Defaults to zeros.
          aux_labels:
            Optional. If not None, the FSA is a transducer and this 1-D
            tensor contains the output label of every arc.
        '''
        if arcs.dim() != 2 or arcs.shape[1] != 3:
            raise ValueError(f'Expect a tensor with 3 columns. '
                             f'Given: {tuple(arcs.shape)}')
        num_arcs = arcs.shape[0]
        if scores is None:
            scores = torch.zeros(num_arcs, dtype=torch.float32)
        if scores.shape != (num_arcs,):
            raise ValueError(f'Expected {num_arcs} scores. '
                             f'Given: {tuple(scores.shape)}')
        if aux_labels is not None and aux_labels.shape != (num_arcs,):
            raise ValueError(f'Expected {num_arcs} aux_labels. '
                             f'Given: {tuple(aux_labels.shape)}')

        self.arcs = arcs.to(torch.int32).contiguous()
        self.scores = scores.to(torch.float32).contiguous()
        self._aux_labels = None if aux_labels is None else \
            aux_labels.to(torch.int32).contiguous()
        self.labels_sym: Optional[SymbolTable] = None
        self.aux_labels_sym: Optional[SymbolTable] = None

        if num_arcs == 0:
            self._num_states = 0
        else:
            self._num_states = int(self.arcs[:, :2].max()) + 1

        self._properties = None
        # Access the properties field (it's a @property, i.e. it has a
        # getter) which sets up the properties and also checks that
        # the FSA is valid.
        _ = self.properties

    @property
    def aux_labels(self) -> Optional[torch.Tensor]:
        return self._aux_labels

    @aux_labels.setter
    def aux_labels(self, values: Optional[torch.Tensor]) -> None:
        if values is not None:
            assert values.shape == (self.num_arcs,)
            values = values.to(torch.int32).contiguous()
        self._aux_labels = values
        self._properties = None
        _ = self.properties

    @property
    def labels(self) -> torch.Tensor:
        '''Return the labels.

        Returns:
          Return a 1-D `torch.Tensor` with dtype `torch.int32`.
        '''
        return self.arcs[:, 2]

    @property
    def num_arcs(self) -> int:
        return self.arcs.shape[0]

    @property
    def num_states(self) -> int:
        return self._num_states

    @property
    def final_state(self) -> int:
        '''The final state, or -1 for an empty FSA.'''
        return self._num_states - 1

    def is_acceptor(self) -> bool:
        return self._aux_labels is None

    @property
    def properties(self) -> int:
        if self._properties is None:
            src, dest, labels = self._get_columns()
            aux_labels = None if self._aux_labels is None else \
                self._aux_labels.tolist()
            properties = fsa_properties.compute_properties(
                self._num_states, src, dest, labels, aux_labels)
            if properties & fsa_properties.VALID == 0:
                raise ValueError('Fsa is not valid, properties are: '
                                 f'{properties} = {fsa_properties.to_str(properties)}, '  # noqa
                                 f'arcs are: {self.arcs.tolist()}')
            self._properties = properties
        return self._properties

    @property
    def properties_str(self) -> str:
        return fsa_properties.to_str(self.properties)

    def _get_columns(self) -> Tuple[List[int], List[int], List[int]]:
        if self.num_arcs == 0:
            return [], [], []
        columns = self.arcs.t().tolist()
        return columns[0], columns[1], columns[2]

    def get_arc_list(self) -> List[ArcTuple]:
        '''Return the arcs as a list of tuples
        `(src_state, dest_state, label, output_label, score)`.

        For acceptors `output_label` equals `label`.
        '''
        src, dest, labels = self._get_columns()
        out_labels = labels if self._aux_labels is None else \
            self._aux_labels.tolist()
        return list(zip(src, dest, labels, out_labels, self.scores.tolist()))

    def get_forward_scores(self) -> torch.Tensor:
        '''Compute the best score from the start state to every state
        in the tropical semiring (i.e., `max` on scores).

        Returns:
          A 1-D `torch.Tensor` of dtype `torch.float64` with `num_states`
          entries; unreachable states have score `-inf`.
        '''
        src, dest, _ = self._get_columns()
        ans, _ = shortest_distance(self._num_states, src, dest,
                                   self.scores.tolist(), 0)
        return torch.tensor(ans, dtype=torch.float64)

    def get_backward_scores(self) -> torch.Tensor:
        '''Compute the best score from every state to the final state
        in the tropical semiring.

        Returns:
          A 1-D `torch.Tensor` of dtype `torch.float64` with `num_states`
          entries; states that cannot reach the final state have
          score `-inf`.
        '''
        src, dest, _ = self._get_columns()
        ans, _ = shortest_distance(self._num_states, dest, src,
                                   self.scores.tolist(), self.final_state)
        return torch.tensor(ans, dtype=torch.float64)

    def get_tot_scores(self) -> float:
        '''Return the score of the best path, or `-inf` if the FSA
        accepts nothing.'''
        if self._num_states == 0:
            return float('-inf')
        return float(self.get_forward_scores()[self.final_state])

    def scale_scores_(self, scale: float) -> 'Fsa':
        '''Multiply the score of every arc, including final arcs, by `scale`.

        Caution:
          It changes `self` in-place. `scale = 0` turns every weight
          into One.

        Returns:
          Return `self`.
        '''
        self.scores.mul_(scale)
        return self

    def clone(self) -> 'Fsa':
        '''Return an Fsa that is a clone of this Fsa. Symbol tables
        are shared, tensors are copied.'''
        aux_labels = None if self._aux_labels is None else \
            self._aux_labels.clone()
        ans = Fsa(self.arcs.clone(), self.scores.clone(), aux_labels)
        ans.labels_sym = self.labels_sym
        ans.aux_labels_sym = self.aux_labels_sym
        return ans

    def invert(self) -> 'Fsa':
        '''Swap the labels and aux_labels.

        If the Fsa is an acceptor, a clone is returned.

        Returns:
          Return a new Fsa. `self` is NOT modified.
        '''
        if self.is_acceptor():
            return self.clone()
        arcs = self.arcs.clone()
        arcs[:, 2] = self._aux_labels
        ans = Fsa(arcs, self.scores.clone(), self.labels.clone())
        ans.labels_sym = self.aux_labels_sym
        ans.aux_labels_sym = self.labels_sym
        return ans

    def to_str(self, openfst: bool = False) -> str:
        '''Convert the Fsa to a string in the format accepted by
        :func:`Fsa.from_str`.

        Args:
          openfst:
            Optional. If true, print costs (negated scores) and final
            weights on the final states instead of the -1 arcs, the way
            OpenFst prints FSTs. Zero costs are omitted.
        '''
        return _fsa_to_str(self, openfst=openfst)

    def __str__(self) -> str:
        '''Return a string representation of this object

        For visualization and debug only.
        '''
        ans = 'latcomb.Fsa: ' + self.to_str(openfst=False)
        ans += '\nproperties_str = ' + self.properties_str + '.'
        return ans

    @classmethod
    def from_str(cls,
                 s: str,
                 acceptor: Optional[bool] = None,
                 openfst: bool = False) -> 'Fsa':
        '''Create an Fsa from a string in the native or OpenFst format.
        (See also :func:`from_openfst`).

        The given string `s` consists of lines with the following format::

          src_state dest_state label [aux_label] [score]

        The line for the final state consists of only one field::

                final_state

        Note:
          Fields are separated by space(s), tab(s) or both. The `score`
          field is a float, while other fields are integers.

        Caution:
          The first column has to be non-decreasing, the final state has
          the largest state number and all arcs entering it have label -1.

        Args:
          s:
            The input string. Refer to the above comment for its format.
          acceptor:
            Set to false to denote transducer format, i.e. every arc line
            carries an aux_label. Defaults to acceptor format.
          openfst:
            If true, will expect the OpenFst format (costs not scores, i.e.
            negated; final-costs rather than a final state).
        '''
        num_aux_labels = 0 if acceptor is None or acceptor else 1
        lines = []
        for line in s.strip().split('\n'):
            fields = line.split()
            if len(fields) != 0:
                lines.append(fields)
        try:
            if openfst:
                return _fsa_from_openfst_fields(lines, num_aux_labels)
            return _fsa_from_native_fields(lines, num_aux_labels)
        except ValueError as e:
            o = 'in the OpenFst format ' if openfst else ''
            raise ValueError(f'The following is not a valid Fsa {o}(with '
                             f'num_aux_labels={num_aux_labels}): {s}\n'
                             f'{e}')

    @classmethod
    def from_openfst(cls, s: str, acceptor: Optional[bool] = None) -> 'Fsa':
        '''Create an Fsa from a string in OpenFst format.

        The given string `s` consists of lines with the following format::

           src_state dest_state label [aux_label] [cost]

        (the cost defaults to 0.0 if not present).

        The line for a final state consists of one or two fields::

           final_state [cost]

        Note:
          There might be multiple final states and the start state is
          the source state of the first line. States are renumbered so
          that the start state becomes 0 and a new final state, entered
          by -1 arcs carrying the final costs, is appended.

        Caution:
          We use `cost` here to indicate that its value will be negated so
          that we can get `scores`. That is, `score = -1 * cost`.
        '''
        return Fsa.from_str(s, acceptor=acceptor, openfst=True)


def empty_fsa(acceptor: bool = True) -> Fsa:
    '''Return an FSA that has no states, i.e., accepts nothing.'''
    arcs = torch.zeros((0, 3), dtype=torch.int32)
    aux_labels = None if acceptor else torch.zeros(0, dtype=torch.int32)
    return Fsa(arcs, aux_labels=aux_labels)


def create_fsa(arc_list: List[ArcTuple], acceptor: bool) -> Fsa:
    '''Create an Fsa from a list of arc tuples.

    Arcs are stably sorted by source state; the output_label field is
    ignored when `acceptor` is True.
    '''
    if len(arc_list) == 0:
        return empty_fsa(acceptor)
    arc_list = sorted(arc_list, key=lambda arc: arc[0])
    arcs = torch.tensor([arc[:3] for arc in arc_list], dtype=torch.int32)
    scores = torch.tensor([arc[4] for arc in arc_list], dtype=torch.float32)
    aux_labels = None
    if not acceptor:
        aux_labels = torch.tensor([arc[3] for arc in arc_list],
                                  dtype=torch.int32)
    return Fsa(arcs, scores, aux_labels)


def shortest_distance(num_states: int, src: List[int], dest: List[int],
                      scores: List[float],
                      start: int) -> Tuple[List[float], List[int]]:
    '''Single-source shortest distance in the tropical semiring
    (max on scores), with a FIFO queue so cyclic FSAs are supported.

    Returns:
      A tuple (distances, entering_arcs); entering_arcs[s] is the arc
      index on the best path into `s`, or -1.

    Raises:
      ValueError if the FSA has a cycle with positive score.
    '''
    ans = [float('-inf')] * num_states
    entering_arcs = [-1] * num_states
    if num_states == 0:
        return ans, entering_arcs

    leaving = [[] for _ in range(num_states)]
    for i, s in enumerate(src):
        leaving[s].append(i)

    ans[start] = 0.0
    in_queue = [False] * num_states
    num_enqueued = [0] * num_states
    queue = deque([start])
    in_queue[start] = True
    while queue:
        s = queue.popleft()
        in_queue[s] = False
        for i in leaving[s]:
            d = dest[i]
            score = ans[s] + scores[i]
            if score > ans[d]:
                ans[d] = score
                entering_arcs[d] = i
                if not in_queue[d]:
                    num_enqueued[d] += 1
                    if num_enqueued[d] > num_states:
                        raise ValueError('The FSA has a cycle with '
                                         'positive score')
                    in_queue[d] = True
                    queue.append(d)
    return ans, entering_arcs


def _format_float(value: float) -> str:
    if value == 0:
        # avoid printing -0
        return '0'
    return f'{value:g}'


def _fsa_to_str(fsa: Fsa, openfst: bool) -> str:
    arc_list = fsa.get_arc_list()
    transducer = not fsa.is_acceptor()
    lines = []
    if not openfst:
        for src, dest, label, aux_label, score in arc_list:
            aux = f' {aux_label}' if transducer else ''
            lines.append(f'{src} {dest} {label}{aux} {_format_float(score)}')
        if fsa.num_states > 0:
            lines.append(f'{fsa.final_state}')
        return '\n'.join(lines) + '\n'

    final_scores: Dict[int, float] = dict()
    for src, _, label, _, score in arc_list:
        if label == -1 and score > final_scores.get(src, float('-inf')):
            final_scores[src] = score

    for src, dest, label, aux_label, score in arc_list:
        if label == -1:
            if src in final_scores:
                cost = -final_scores.pop(src)
                line = f'{src}'
                if cost != 0:
                    line += f' {_format_float(cost)}'
                lines.append(line)
            continue
        aux = f' {aux_label}' if transducer else ''
        line = f'{src} {dest} {label}{aux}'
        if score != 0:
            line += f' {_format_float(-score)}'
        lines.append(line)
    return '\n'.join(lines) + '\n'


def _fsa_from_native_fields(lines: List[List[str]],
                            num_aux_labels: int) -> Fsa:
    arc_list = []
    final_state = None
    for fields in lines:
        if len(fields) == 1:
            if final_state is not None:
                raise ValueError('There can be only one final state')
            final_state = int(fields[0])
            continue
        if len(fields) not in (3 + num_aux_labels, 4 + num_aux_labels):
            raise ValueError(f'Invalid line: {" ".join(fields)}')
        if final_state is not None:
            raise ValueError('The final state has to be the last line')
        src, dest, label = int(fields[0]), int(fields[1]), int(fields[2])
        aux_label = int(fields[3]) if num_aux_labels else label
        score = float(fields[-1]) if \
            len(fields) == 4 + num_aux_labels else 0.0
        arc_list.append((src, dest, label, aux_label, score))

    if len(arc_list) == 0:
        return empty_fsa(num_aux_labels == 0)
    if final_state is None:
        raise ValueError('There is no final state')
    if final_state != max(max(arc[0], arc[1]) for arc in arc_list):
        raise ValueError('The final state has to be the largest state')
    for i in range(1, len(arc_list)):
        if arc_list[i - 1][0] > arc_list[i][0]:
            raise ValueError('The first column has to be non-decreasing')
    return create_fsa(arc_list, acceptor=num_aux_labels == 0)


def _fsa_from_openfst_fields(lines: List[List[str]],
                             num_aux_labels: int) -> Fsa:
    arc_list = []
    finals: Dict[int, float] = dict()
    start = None
    for fields in lines:
        if len(fields) <= 2:
            state = int(fields[0])
            cost = float(fields[1]) if len(fields) == 2 else 0.0
            finals[state] = cost
        elif len(fields) in (3 + num_aux_labels, 4 + num_aux_labels):
            state = int(fields[0])
            label = int(fields[2])
            aux_label = int(fields[3]) if num_aux_labels else label
            if label < 0 or aux_label < 0:
                raise ValueError(f'Invalid label in: {" ".join(fields)}')
            cost = float(fields[-1]) if \
                len(fields) == 4 + num_aux_labels else 0.0
            arc_list.append((state, int(fields[1]), label, aux_label, cost))
        else:
            raise ValueError(f'Invalid line: {" ".join(fields)}')
        if start is None:
            start = state
    return openfst_to_fsa(arc_list, finals, start,
                          acceptor=num_aux_labels == 0)


def openfst_to_fsa(arc_list: List[ArcTuple], finals: Dict[int, float],
                   start: Optional[int], acceptor: bool) -> Fsa:
    '''Convert an FST with OpenFst conventions into an Fsa.

    Args:
      arc_list:
        Arcs as (src_state, dest_state, label, output_label, cost).
      finals:
        Map from final state to its final cost. Infinite costs
        mean "not final".
      start:
        The start state, or None if the FST has no start state.
      acceptor:
        True to drop the output labels.

    Returns:
      An Fsa whose start state is 0 and whose single final state is
      entered by -1 arcs carrying the negated final costs.
    '''
    finals = {s: c for s, c in finals.items() if c != float('inf')}
    if start is None or len(finals) == 0:
        return empty_fsa(acceptor)

    states = set(finals.keys())
    for src, dest, _, _, _ in arc_list:
        states.add(src)
        states.add(dest)
    states.discard(start)
    state_map = {start: 0}
    for s in sorted(states):
        state_map[s] = len(state_map)
    super_final = len(state_map)

    ans = [(state_map[src], state_map[dest], label, aux_label, -cost)
           for src, dest, label, aux_label, cost in arc_list]
    for s, cost in finals.items():
        ans.append((state_map[s], super_final, -1, -1, -cost))
    return create_fsa(ans, acceptor)
