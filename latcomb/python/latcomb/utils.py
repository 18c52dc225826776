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

from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

from . import fsa_properties
from .fsa import Fsa
from .symbol_table import SymbolTable


def to_str(fsa: Fsa, openfst: bool = False) -> str:
    '''Convert an Fsa to a string, in the same format accepted by
    Fsa.from_str().

    Args:
      openfst:
        Optional. If true, we negate the scores during the conversion
        and print the final weights on the final states.

    Returns:
      A string representation of the Fsa.
    '''
    return fsa.to_str(openfst=openfst)


def _label_to_str(label: int, symbols: Optional[SymbolTable]) -> str:
    if label == -1:
        return '-1'
    if symbols is not None and label in symbols:
        ans = symbols[label]
    else:
        ans = str(label)
    return 'ε' if ans == '<eps>' or label == 0 else ans


def to_dot(fsa: Fsa, title: Optional[str] = None) -> 'Digraph':  # noqa
    '''Visualize an Fsa via graphviz.

    Note:
      Graphviz is needed only when this function is called.

    Args:
      fsa:
        The input FSA to be visualized.

      title:
        Optional. The title of the resulting visualization.
    Returns:
      a Diagraph from grahpviz.
    '''

    try:
        import graphviz
    except Exception:
        print(
            'You cannot use `to_dot` unless the graphviz package is installed.'
        )
        raise

    name = 'WFSA' if fsa.is_acceptor() else 'WFST'
    graph_attr = {
        'rankdir': 'LR',
        'size': '8.5,11',
        'center': '1',
        'orientation': 'Portrait',
        'ranksep': '0.4',
        'nodesep': '0.25',
    }
    if title is not None:
        graph_attr['label'] = title

    default_node_attr = {
        'shape': 'circle',
        'style': 'bold',
        'fontsize': '14',
    }

    final_state_attr = {
        'shape': 'doublecircle',
        'style': 'bold',
        'fontsize': '14',
    }

    dot = graphviz.Digraph(name=name, graph_attr=graph_attr)
    for state in range(fsa.num_states):
        attr = final_state_attr if state == fsa.final_state \
            else default_node_attr
        dot.node(str(state), label=str(state), **attr)

    for src, dest, label, aux_label, score in fsa.get_arc_list():
        arc_label = _label_to_str(label, fsa.labels_sym)
        if not fsa.is_acceptor():
            arc_label += ':' + _label_to_str(aux_label, fsa.aux_labels_sym)
        weight = f'{score:.2f}'.rstrip('0').rstrip('.')
        dot.edge(str(src), str(dest), label=f'{arc_label}/{weight}')
    return dot


def get_path_scores(fsa: Fsa,
                    use_aux_labels: bool = False
                    ) -> Dict[Tuple[int, ...], float]:  # noqa
    '''Enumerate the weighted language of an acyclic FSA.

    Epsilons and the -1 labels of final arcs are not part of the
    returned sequences.

    Args:
      fsa:
        The input FSA. It has to be acyclic.
      use_aux_labels:
        If true and `fsa` is a transducer, the sequences are read from
        the aux_labels instead of the labels.

    Returns:
      A dict mapping every accepted label sequence to the best score of
      the paths carrying it.
    '''
    if fsa.num_arcs == 0:
        return dict()
    if fsa.properties & fsa_properties.TOPSORTED_AND_ACYCLIC == 0:
        _check_acyclic(fsa)

    index = 3 if use_aux_labels else 2
    leaving: List[List[tuple]] = [[] for _ in range(fsa.num_states)]
    for arc in fsa.get_arc_list():
        leaving[arc[0]].append(arc)

    ans: Dict[Tuple[int, ...], float] = dict()
    stack = [(0, (), 0.0)]
    while stack:
        state, seq, score = stack.pop()
        if state == fsa.final_state:
            if score > ans.get(seq, float('-inf')):
                ans[seq] = score
            continue
        for arc in leaving[state]:
            label = arc[index]
            new_seq = seq + (label,) if label > 0 else seq
            stack.append((arc[1], new_seq, score + arc[4]))
    return ans


def _check_acyclic(fsa: Fsa) -> None:
    leaving: List[List[int]] = [[] for _ in range(fsa.num_states)]
    in_degree = [0] * fsa.num_states
    for src, dest, _, _, _ in fsa.get_arc_list():
        leaving[src].append(dest)
        in_degree[dest] += 1
    queue = [s for s in range(fsa.num_states) if in_degree[s] == 0]
    num_visited = 0
    while queue:
        s = queue.pop()
        num_visited += 1
        for d in leaving[s]:
            in_degree[d] -= 1
            if in_degree[d] == 0:
                queue.append(d)
    if num_visited != fsa.num_states:
        raise ValueError('The FSA has cycles')


def is_equivalent(a: Fsa, b: Fsa, delta: float = 1e-5) -> bool:
    '''Check if two acyclic FSAs accept the same label sequences with
    the same best scores (tropical semiring).

    Args:
      a:
        One of the input FSA.
      b:
        The other input FSA.
      delta:
        Tolerance for path scores. If abs(score_a - score_b) <= delta,
        we say the scores are the same.
    Returns:
       True if `a` and `b` have the same weighted language.
    '''
    a_scores = get_path_scores(a)
    b_scores = get_path_scores(b)
    if a_scores.keys() != b_scores.keys():
        return False
    return all(abs(a_scores[k] - b_scores[k]) <= delta for k in a_scores)
