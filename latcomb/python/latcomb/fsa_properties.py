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
from typing import List
from typing import Optional

# The FSA properties are a bit-field; these constants can be used
# with '&' to determine the properties.

VALID = 0x01  # Valid from a formatting perspective
NONEMPTY = 0x02  # Nonempty as in, has at least one arc.
TOPSORTED = 0x04  # FSA is top-sorted, but possibly with
# self-loops, dest_state >= src_state
TOPSORTED_AND_ACYCLIC = 0x08  # Fsa is topsorted, dest_state > src_state
ARC_SORTED = 0x10  # Fsa is arc-sorted: arcs leaving a state are sorted by
# label first and then on `dest_state`. Labels are treated as
# uint32 for the purpose of sorting, so -1 comes last.
ARC_SORTED_AND_DETERMINISTIC = 0x20  # Arcs leaving a given state are
# *strictly* sorted by label, i.e. no duplicates with
# the same label.
EPSILON_FREE = 0x40  # Label zero (epsilon) is not present.
ACCESSIBLE = 0x80  # All states are reachable from the start state.
COACCESSIBLE = 0x0100  # All states can reach the final state.
AUX_LABELS_SORTED = 0x0200  # Arcs leaving a state are sorted by their
# output label (aux_labels for transducers, labels for acceptors).
ALL = 0x03FF

_NAMES = [
    (VALID, 'Valid'),
    (NONEMPTY, 'Nonempty'),
    (TOPSORTED, 'TopSorted'),
    (TOPSORTED_AND_ACYCLIC, 'TopSortedAndAcyclic'),
    (ARC_SORTED, 'ArcSorted'),
    (ARC_SORTED_AND_DETERMINISTIC, 'ArcSortedAndDeterministic'),
    (EPSILON_FREE, 'EpsilonFree'),
    (ACCESSIBLE, 'Accessible'),
    (COACCESSIBLE, 'Coaccessible'),
    (AUX_LABELS_SORTED, 'AuxLabelsSorted'),
]


def unsigned(label: int) -> int:
    '''Map a label to the key used for sorting, i.e. reinterpret
    it as uint32 so that the final label -1 sorts after every symbol.'''
    return label & 0xFFFFFFFF


def compute_properties(num_states: int,
                       src: List[int],
                       dest: List[int],
                       labels: List[int],
                       aux_labels: Optional[List[int]] = None) -> int:
    '''Compute the properties of an FSA given as parallel lists.

    Args:
      num_states:
        Number of states. The final state is `num_states - 1`.
      src:
        Source state of every arc.
      dest:
        Destination state of every arc.
      labels:
        Label of every arc.
      aux_labels:
        Optional. Output label of every arc; None for acceptors.

    Returns:
      An integer bit-field. It is 0 if the FSA is not valid.
    '''
    num_arcs = len(src)
    if num_arcs == 0:
        return ALL & ~NONEMPTY

    ans = ALL & ~(ACCESSIBLE | COACCESSIBLE)
    final_state = num_states - 1
    out_labels = aux_labels if aux_labels is not None else labels

    for i in range(num_arcs):
        s, d, label = src[i], dest[i], labels[i]
        if s < 0 or d < 0 or s >= final_state or d > final_state:
            return 0
        if label < -1 or (label == -1) != (d == final_state):
            return 0
        if aux_labels is not None and (aux_labels[i] == -1) != (label == -1):
            return 0
        if d < s:
            ans &= ~TOPSORTED
        if d <= s:
            ans &= ~TOPSORTED_AND_ACYCLIC
        if label == 0:
            ans &= ~EPSILON_FREE
        if i == 0:
            continue
        if src[i - 1] > s:
            return 0
        if src[i - 1] != s:
            continue
        prev = (unsigned(labels[i - 1]), dest[i - 1])
        cur = (unsigned(label), d)
        if prev > cur:
            ans &= ~(ARC_SORTED | ARC_SORTED_AND_DETERMINISTIC)
        elif prev[0] == cur[0]:
            ans &= ~ARC_SORTED_AND_DETERMINISTIC
        if unsigned(out_labels[i - 1]) > unsigned(out_labels[i]):
            ans &= ~AUX_LABELS_SORTED

    leaving = [[] for _ in range(num_states)]
    entering = [[] for _ in range(num_states)]
    for s, d in zip(src, dest):
        leaving[s].append(d)
        entering[d].append(s)

    if _num_reachable(0, leaving) == num_states:
        ans |= ACCESSIBLE
    if _num_reachable(final_state, entering) == num_states:
        ans |= COACCESSIBLE
    return ans


def _num_reachable(start: int, neighbors: List[List[int]]) -> int:
    seen = [False] * len(neighbors)
    seen[start] = True
    queue = deque([start])
    num_seen = 1
    while queue:
        s = queue.popleft()
        for n in neighbors[s]:
            if not seen[n]:
                seen[n] = True
                num_seen += 1
                queue.append(n)
    return num_seen


def to_str(p: int) -> str:
    '''Convert properties to a string for debug purpose.

    Args:
      p:
        An integer returned by :func:`compute_properties`.

    Returns:
      A string representation of the input properties.
    '''
    return '|'.join(name for bit, name in _NAMES if p & bit)
