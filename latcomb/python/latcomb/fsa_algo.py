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

from bisect import bisect_left
from bisect import bisect_right
from collections import deque
from typing import Dict
from typing import List
from typing import Tuple
from typing import Union

import torch

from . import fsa_properties
from .fsa import ArcTuple
from .fsa import Fsa
from .fsa import create_fsa
from .fsa import empty_fsa
from .fsa import shortest_distance
from .fsa_properties import unsigned


def linear_fsa(labels: List[int]) -> Fsa:
    '''Construct a linear FSA from labels.

    Note:
      The scores of arcs in the returned FSA are all 0.

    Args:
      labels:
        A list of integers, e.g., `[1, 2, 3]`.

    Returns:
      An acceptor for the given label sequence.
    '''
    arc_list = [(i, i + 1, label, label, 0.0)
                for i, label in enumerate(labels)]
    n = len(labels)
    arc_list.append((n, n + 1, -1, -1, 0.0))
    return create_fsa(arc_list, acceptor=True)


def _copy_symbols(src: Fsa, dest: Fsa) -> Fsa:
    dest.labels_sym = src.labels_sym
    dest.aux_labels_sym = src.aux_labels_sym
    return dest


def _get_leaving_arcs(num_states: int,
                      arc_list: List[ArcTuple]) -> List[List[int]]:
    leaving = [[] for _ in range(num_states)]
    for i, arc in enumerate(arc_list):
        leaving[arc[0]].append(i)
    return leaving


def _connect_arcs(arc_list: List[ArcTuple], start: int,
                  final: int) -> List[ArcTuple]:
    '''Keep only arcs on paths from `start` to `final` and renumber the
    states in breadth-first order, with `final` as the last state.

    State ids in `arc_list` can be arbitrary hashable objects.
    '''
    leaving: Dict[int, List[int]] = dict()
    entering: Dict[int, List[int]] = dict()
    for i, arc in enumerate(arc_list):
        leaving.setdefault(arc[0], []).append(i)
        entering.setdefault(arc[1], []).append(i)

    coaccessible = {final}
    stack = [final]
    while stack:
        s = stack.pop()
        for i in entering.get(s, []):
            p = arc_list[i][0]
            if p not in coaccessible:
                coaccessible.add(p)
                stack.append(p)
    if start == final or start not in coaccessible:
        return []

    state_map = {start: 0}
    queue = deque([start])
    kept = []
    while queue:
        s = queue.popleft()
        for i in leaving.get(s, []):
            d = arc_list[i][1]
            if d not in coaccessible:
                continue
            if d != final and d not in state_map:
                state_map[d] = len(state_map)
                queue.append(d)
            kept.append(i)
    state_map[final] = len(state_map)

    ans = []
    for i in kept:
        src, dest, label, aux_label, score = arc_list[i]
        ans.append((state_map[src], state_map[dest], label, aux_label, score))
    return ans


def arc_sort(fsa: Fsa,
             sort_by_aux_labels: bool = False,
             ret_arc_map: bool = False
            ) -> Union[Fsa, Tuple[Fsa, torch.Tensor]]:  # noqa
    '''Sort arcs of every state.

    Note:
      By default arcs are sorted by labels first, and then by dest states.
      Labels are compared as unsigned integers, so final arcs come last.

    Caution:
      If the input `fsa` is already arc sorted, we return it directly.
      Otherwise, a new sorted fsa is returned.

    Args:
      fsa:
        The input FSA.
      sort_by_aux_labels:
        If True, sort by output labels (aux_labels for transducers,
        labels for acceptors) instead.
      ret_arc_map:
        True to return an extra arc_map (a 1-D tensor with dtype being
        torch.int32). arc_map[i] is the arc index in the input `fsa` that
        corresponds to the i-th arc in the output Fsa.
    Returns:
      If ret_arc_map is False, return the sorted FSA. It is the same as the
      input `fsa` if the input `fsa` is arc sorted. Otherwise, a new sorted
      fsa is returned and the input `fsa` is NOT modified.
      If ret_arc_map is True, an extra arc map is also returned.
    '''
    bit = fsa_properties.AUX_LABELS_SORTED if sort_by_aux_labels \
        else fsa_properties.ARC_SORTED
    if fsa.properties & bit != 0:
        if ret_arc_map:
            # in this case, arc_map is an identity map
            arc_map = torch.arange(fsa.num_arcs, dtype=torch.int32)
            return fsa, arc_map
        else:
            return fsa

    arc_list = fsa.get_arc_list()
    key_index = 3 if sort_by_aux_labels else 2
    order = sorted(range(len(arc_list)),
                   key=lambda i: (arc_list[i][0],
                                  unsigned(arc_list[i][key_index]),
                                  arc_list[i][1]))
    arc_map = torch.tensor(order, dtype=torch.int32)
    index = arc_map.long()
    aux_labels = None if fsa.aux_labels is None else fsa.aux_labels[index]
    out_fsa = Fsa(fsa.arcs[index], fsa.scores[index], aux_labels)
    _copy_symbols(fsa, out_fsa)
    if ret_arc_map:
        return out_fsa, arc_map
    else:
        return out_fsa


def invert(fsa: Fsa) -> Fsa:
    '''Swap the labels and aux_labels of a transducer.

    An acceptor is returned as a copy.
    '''
    return fsa.invert()


def project(fsa: Fsa, project_output: bool = False) -> Fsa:
    '''Turn a transducer into an acceptor by keeping only one side of
    its labels.

    Args:
      fsa:
        The input FSA. If it is an acceptor, a copy is returned.
      project_output:
        False to keep the input labels (labels); True to keep the
        output labels (aux_labels).

    Returns:
      An acceptor.
    '''
    if fsa.is_acceptor():
        return fsa.clone()
    arcs = fsa.arcs.clone()
    labels_sym = fsa.labels_sym
    if project_output:
        arcs[:, 2] = fsa.aux_labels
        labels_sym = fsa.aux_labels_sym
    ans = Fsa(arcs, fsa.scores.clone())
    ans.labels_sym = labels_sym
    return ans


def connect(fsa: Fsa) -> Fsa:
    '''Connect an FSA.

    Removes states that are neither accessible nor co-accessible.

    Note:
      A state is not accessible if it is not reachable from the start state.
      A state is not co-accessible if it cannot reach the final state.

    Caution:
      If the input FSA is already connected, it is returned directly.
      Otherwise, a new connected FSA is returned.

    Args:
     fsa:
        The input FSA to be connected.

    Returns:
      An FSA that is connected.
    '''
    if fsa.properties & fsa_properties.ACCESSIBLE != 0 and \
            fsa.properties & fsa_properties.COACCESSIBLE != 0:
        return fsa

    arc_list = _connect_arcs(fsa.get_arc_list(), 0, fsa.final_state)
    out_fsa = create_fsa(arc_list, acceptor=fsa.is_acceptor())
    return _copy_symbols(fsa, out_fsa)


def _find_arcs(keys: List[int], arcs: List[int], label: int) -> List[int]:
    k = unsigned(label)
    return arcs[bisect_left(keys, k):bisect_right(keys, k)]


def compose(a_fsa: Fsa,
            b_fsa: Fsa,
            treat_epsilons_specially: bool = True) -> Fsa:
    '''Compute the composition of two FSAs.

    The output labels of `a_fsa` (its aux_labels, or its labels if it is
    an acceptor) are matched with the labels of `b_fsa`. For every pair
    of paths whose matched labels agree there is one path in the result,
    whose score is the sum of the two path scores. The result carries
    the labels of `a_fsa` and the output labels of `b_fsa`.

    Caution:
      Either `b_fsa` has to be arc sorted, or `a_fsa` has to be sorted on
      its output labels (see :func:`arc_sort`).

    Args:
      a_fsa:
        The first input FSA.
      b_fsa:
        The second input FSA.
      treat_epsilons_specially:
        If True, epsilons will be treated as epsilon, meaning an epsilon
        output label of `a_fsa` advances `a_fsa` alone and an epsilon
        label of `b_fsa` advances `b_fsa` alone. Epsilon moves of `a_fsa`
        have to come before those of `b_fsa` between two matched arcs,
        so each pair of paths is produced once.
        If False, epsilons will be treated as real, normal symbols.

    Returns:
      The connected result of composing a_fsa and b_fsa. It is a
      transducer.
    '''
    b_sorted = b_fsa.properties & fsa_properties.ARC_SORTED != 0
    a_sorted = a_fsa.properties & fsa_properties.AUX_LABELS_SORTED != 0
    if not b_sorted and not a_sorted:
        raise ValueError('compose() requires b_fsa to be arc sorted or '
                         'a_fsa to be sorted on its output labels')
    if a_fsa.num_arcs == 0 or b_fsa.num_arcs == 0:
        return empty_fsa(acceptor=False)

    a_arcs = a_fsa.get_arc_list()
    b_arcs = b_fsa.get_arc_list()
    a_leaving = _get_leaving_arcs(a_fsa.num_states, a_arcs)
    b_leaving = _get_leaving_arcs(b_fsa.num_states, b_arcs)
    if b_sorted:
        b_keys = [[unsigned(b_arcs[i][2]) for i in arcs]
                  for arcs in b_leaving]
    else:
        a_keys = [[unsigned(a_arcs[i][3]) for i in arcs]
                  for arcs in a_leaving]
    eps = treat_epsilons_specially

    # A state of the result is (a_state, b_state, filter_state);
    # filter_state is 1 after an epsilon move of b_fsa.
    start = (0, 0, 0)
    state_ids = {start: 0}
    queue = deque([start])

    def get_id(state: Tuple[int, int, int]) -> int:
        if state not in state_ids:
            state_ids[state] = len(state_ids)
            queue.append(state)
        return state_ids[state]

    arc_list = []
    while queue:
        qa, qb, f = queue.popleft()
        src = state_ids[(qa, qb, f)]
        if b_sorted:
            for i in a_leaving[qa]:
                _, da, la, oa, sa = a_arcs[i]
                if eps and oa == 0:
                    if f == 0:
                        arc_list.append((src, get_id((da, qb, 0)), la, 0, sa))
                    continue
                for j in _find_arcs(b_keys[qb], b_leaving[qb], oa):
                    _, db, _, ob, sb = b_arcs[j]
                    arc_list.append((src, get_id((da, db, 0)), la, ob,
                                     sa + sb))
        else:
            if eps and f == 0:
                for i in _find_arcs(a_keys[qa], a_leaving[qa], 0):
                    _, da, la, _, sa = a_arcs[i]
                    arc_list.append((src, get_id((da, qb, 0)), la, 0, sa))
            for j in b_leaving[qb]:
                _, db, lb, ob, sb = b_arcs[j]
                if eps and lb == 0:
                    continue
                for i in _find_arcs(a_keys[qa], a_leaving[qa], lb):
                    _, da, la, _, sa = a_arcs[i]
                    arc_list.append((src, get_id((da, db, 0)), la, ob,
                                     sa + sb))
        if eps:
            for j in b_leaving[qb]:
                _, db, lb, ob, sb = b_arcs[j]
                if lb == 0:
                    arc_list.append((src, get_id((qa, db, 1)), 0, ob, sb))

    final = state_ids.get((a_fsa.final_state, b_fsa.final_state, 0))
    if final is None:
        return empty_fsa(acceptor=False)
    out_fsa = create_fsa(_connect_arcs(arc_list, 0, final), acceptor=False)
    out_fsa.labels_sym = a_fsa.labels_sym
    out_fsa.aux_labels_sym = b_fsa.aux_labels_sym if \
        not b_fsa.is_acceptor() else b_fsa.labels_sym
    return out_fsa


def prune(fsa: Fsa, beam: float, delta: float = 1e-5) -> Fsa:
    '''Remove arcs that are not on any path whose score is within `beam`
    of the best path.

    Args:
      fsa:
        The input FSA. It may be cyclic as long as it has no cycle with
        positive score.
      beam:
        A non-negative number. With `beam = 0` only the paths with the
        best score are kept; if several paths tie, all of them are kept.
      delta:
        Tolerance for rounding errors in score comparisons.

    Returns:
      A new connected FSA. The input `fsa` is NOT modified.
    '''
    if beam < 0:
        raise ValueError(f'beam has to be non-negative. Given: {beam}')
    if fsa.num_arcs == 0:
        return fsa.clone()

    arc_list = fsa.get_arc_list()
    forward = fsa.get_forward_scores().tolist()
    backward = fsa.get_backward_scores().tolist()
    tot_score = forward[fsa.final_state]
    if tot_score == float('-inf'):
        return _copy_symbols(fsa, empty_fsa(fsa.is_acceptor()))

    threshold = tot_score - beam - delta
    kept = [arc for arc in arc_list
            if forward[arc[0]] + arc[4] + backward[arc[1]] >= threshold]
    out_fsa = create_fsa(_connect_arcs(kept, 0, fsa.final_state),
                         acceptor=fsa.is_acceptor())
    return _copy_symbols(fsa, out_fsa)


def _epsilon_closure(state: int, arc_list: List[ArcTuple],
                     eps_leaving: List[List[int]]) -> Dict[int, float]:
    '''Best score from `state` to every state reachable through
    epsilon arcs only (including `state` itself with score 0).'''
    ans = {state: 0.0}
    queue = deque([state])
    num_enqueued = {state: 1}
    while queue:
        s = queue.popleft()
        for i in eps_leaving[s]:
            d = arc_list[i][1]
            score = ans[s] + arc_list[i][4]
            if score > ans.get(d, float('-inf')):
                ans[d] = score
                if d not in queue:
                    num_enqueued[d] = num_enqueued.get(d, 0) + 1
                    if num_enqueued[d] > len(eps_leaving):
                        raise ValueError('The FSA has an epsilon cycle '
                                         'with positive score')
                    queue.append(d)
    return ans


def remove_epsilon(fsa: Fsa) -> Fsa:
    '''Remove epsilons (symbol zero) in the input acceptor.

    Every state gets, for each state in its epsilon closure, a copy of the
    non-epsilon arcs of that state, weighted by the best epsilon path.
    Parallel arcs with the same label and destination are merged keeping
    the best score.

    Args:
      fsa:
        The input acceptor. It must be free of epsilon loops that have
        score greater than 0.

    Returns:
      The resulting Fsa is equivalent to the input `fsa` under the
      tropical semiring but will be epsilon-free and connected.
    '''
    if not fsa.is_acceptor():
        raise ValueError('remove_epsilon() supports only acceptors; '
                         'use project() first')
    if fsa.properties & fsa_properties.EPSILON_FREE != 0:
        return connect(fsa)

    arc_list = fsa.get_arc_list()
    num_states = fsa.num_states
    eps_leaving = [[] for _ in range(num_states)]
    other_leaving = [[] for _ in range(num_states)]
    for i, arc in enumerate(arc_list):
        if arc[2] == 0:
            eps_leaving[arc[0]].append(i)
        else:
            other_leaving[arc[0]].append(i)

    best: Dict[Tuple[int, int, int], float] = dict()
    for s in range(num_states):
        closure = _epsilon_closure(s, arc_list, eps_leaving)
        for p, p_score in closure.items():
            for i in other_leaving[p]:
                _, dest, label, _, score = arc_list[i]
                key = (s, dest, label)
                score += p_score
                if score > best.get(key, float('-inf')):
                    best[key] = score

    new_arcs = [(s, dest, label, label, score)
                for (s, dest, label), score in best.items()]
    out_fsa = create_fsa(_connect_arcs(new_arcs, 0, fsa.final_state),
                         acceptor=True)
    return _copy_symbols(fsa, out_fsa)


def _quantize(value: float, delta: float) -> float:
    ans = round(value / delta) * delta
    return 0.0 if ans == 0 else ans


def determinize(fsa: Fsa, delta: float = 1e-5) -> Fsa:
    '''Determinize the input acceptor in the tropical semiring.

    This is the weighted subset construction: a state of the result is a
    set of input states, each with a residual score relative to the best
    path into the set. For every label leaving the set there is a single
    arc, whose score is the best one over the arcs it replaces.

    Caution:
      - Epsilon is treated as a normal symbol; call :func:`remove_epsilon`
        first.
      - For cyclic inputs the construction terminates only if the input
        is determinizable (e.g., it has the twins property).

    Args:
      fsa:
        The input acceptor.
      delta:
        Residual scores are quantized to multiples of `delta` so that
        subsets differing only by rounding errors are merged.

    Returns:
      The resulting Fsa, it's equivalent to the input `fsa` under
      tropical semiring but will be deterministic.
      It will be the same as the input `fsa` if the input
      `fsa` has property ARC_SORTED_AND_DETERMINISTIC.
      Otherwise, a new deterministic fsa is returned and the
      input `fsa` is NOT modified.
    '''
    if not fsa.is_acceptor():
        raise ValueError('determinize() supports only acceptors; '
                         'use project() first')
    if fsa.properties & fsa_properties.ARC_SORTED_AND_DETERMINISTIC != 0:
        return fsa

    arc_list = fsa.get_arc_list()
    leaving = _get_leaving_arcs(fsa.num_states, arc_list)

    start = ((0, 0.0),)
    subset_ids = {start: 0}
    queue = deque([start])
    new_arcs = []
    while queue:
        subset = queue.popleft()
        src = subset_ids[subset]
        best: Dict[int, float] = dict()
        dests: Dict[int, Dict[int, float]] = dict()
        for state, residual in subset:
            for i in leaving[state]:
                _, dest, label, _, score = arc_list[i]
                score += residual
                if score > best.get(label, float('-inf')):
                    best[label] = score
                label_dests = dests.setdefault(label, dict())
                if score > label_dests.get(dest, float('-inf')):
                    label_dests[dest] = score

        for label in sorted(best.keys(), key=unsigned):
            score = best[label]
            dest_subset = tuple(
                sorted((d, _quantize(s - score, delta))
                       for d, s in dests[label].items()))
            if dest_subset not in subset_ids:
                subset_ids[dest_subset] = len(subset_ids)
                queue.append(dest_subset)
            new_arcs.append((src, subset_ids[dest_subset], label, label,
                             score))

    final = subset_ids.get(((fsa.final_state, 0.0),))
    if final is None:
        return _copy_symbols(fsa, empty_fsa(acceptor=True))
    out_fsa = create_fsa(_connect_arcs(new_arcs, 0, final), acceptor=True)
    return _copy_symbols(fsa, out_fsa)


def minimize(fsa: Fsa, delta: float = 1e-5) -> Fsa:
    '''Minimize a deterministic acceptor in the tropical semiring.

    The scores are first pushed towards the start state, so that the
    best path leaving every state other than the start state has score 0.
    Then states are merged by Moore's partition refinement, where two
    states are equivalent if they have the same (label, pushed score,
    destination class) arcs.

    Note:
      If the start state has entering arcs, the result starts from a new
      state that has copies of the arcs leaving the old start state.

    Args:
      fsa:
        The input acceptor. It has to be deterministic after connecting
        and arc sorting.
      delta:
        Pushed scores are compared after quantizing to multiples of
        `delta`.

    Returns:
      A minimal deterministic acceptor equivalent to `fsa`.
      Minimizing its output again yields the same number of states
      and arcs.
    '''
    if not fsa.is_acceptor():
        raise ValueError('minimize() supports only acceptors')
    if fsa.num_arcs == 0:
        return fsa.clone()
    fsa = arc_sort(connect(fsa))
    if fsa.num_arcs == 0:
        return fsa.clone()
    if fsa.properties & fsa_properties.ARC_SORTED_AND_DETERMINISTIC == 0:
        raise ValueError('minimize() requires a deterministic FSA; '
                         'call determinize() first')

    backward = fsa.get_backward_scores().tolist()
    arc_list = []
    for src, dest, label, _, score in fsa.get_arc_list():
        score += backward[dest] - backward[src]
        arc_list.append((src, dest, label, label, score))

    # The total score goes on the arcs leaving the start state. If the
    # start state can be re-entered, they are copied to a new start state
    # so that it is added only once.
    num_states = fsa.num_states
    if any(arc[1] == 0 for arc in arc_list):
        num_states += 1
        start_arcs = [(0, dest + 1, label, label, score + backward[0])
                      for src, dest, label, _, score in arc_list if src == 0]
        arc_list = start_arcs + [
            (src + 1, dest + 1, label, label, score)
            for src, dest, label, _, score in arc_list
        ]
    else:
        arc_list = [(src, dest, label, label,
                     score + backward[0] if src == 0 else score)
                    for src, dest, label, _, score in arc_list]
    pushed = [arc[4] for arc in arc_list]
    final_state = num_states - 1

    leaving = _get_leaving_arcs(num_states, arc_list)
    classes = [0] * num_states
    classes[final_state] = 1
    num_classes = 2
    while True:
        signatures: Dict[tuple, int] = dict()
        new_classes = [0] * num_states
        for s in range(num_states):
            signature = (classes[s],
                         tuple((arc_list[i][2], _quantize(pushed[i], delta),
                                classes[arc_list[i][1]])
                               for i in leaving[s]))
            if signature not in signatures:
                signatures[signature] = len(signatures)
            new_classes[s] = signatures[signature]
        classes = new_classes
        if len(signatures) == num_classes:
            break
        num_classes = len(signatures)

    seen = set()
    new_arcs = []
    for s in range(num_states):
        if classes[s] in seen:
            continue
        seen.add(classes[s])
        for i in leaving[s]:
            label = arc_list[i][2]
            new_arcs.append((classes[s], classes[arc_list[i][1]], label,
                             label, pushed[i]))

    out_fsa = create_fsa(
        _connect_arcs(new_arcs, classes[0], classes[final_state]),
        acceptor=True)
    return _copy_symbols(fsa, out_fsa)


def shortest_path(fsa: Fsa) -> Fsa:
    '''Return the best path from the start state to the final state
    in the tropical semiring as a linear FSA.

    Note:
      It uses the opposite sign. That is, It uses `max` instead of `min`.

    Returns:
      A linear FSA (a transducer if `fsa` is one); it is empty if `fsa`
      accepts nothing.
    '''
    acceptor = fsa.is_acceptor()
    if fsa.num_arcs == 0:
        return _copy_symbols(fsa, empty_fsa(acceptor))

    arc_list = fsa.get_arc_list()
    src = [arc[0] for arc in arc_list]
    dest = [arc[1] for arc in arc_list]
    scores = [arc[4] for arc in arc_list]
    distances, entering_arcs = shortest_distance(fsa.num_states, src, dest,
                                                 scores, 0)
    if distances[fsa.final_state] == float('-inf'):
        return _copy_symbols(fsa, empty_fsa(acceptor))

    path: List[ArcTuple] = []
    state = fsa.final_state
    while state != 0:
        arc = arc_list[entering_arcs[state]]
        path.append(arc)
        state = arc[0]
    path.reverse()

    new_arcs = [(i, i + 1, label, aux_label, score)
                for i, (_, _, label, aux_label, score) in enumerate(path)]
    return _copy_symbols(fsa, create_fsa(new_arcs, acceptor))


def get_input_symbols(fsa: Fsa, include_epsilon: bool = False) -> List[int]:
    '''Return the sorted distinct labels of `fsa`, excluding -1 and,
    unless `include_epsilon` is True, 0.'''
    return _get_symbols(fsa.labels.tolist(), include_epsilon)


def get_output_symbols(fsa: Fsa, include_epsilon: bool = False) -> List[int]:
    '''Return the sorted distinct output labels of `fsa` (aux_labels,
    or labels for an acceptor), excluding -1 and, unless
    `include_epsilon` is True, 0.'''
    labels = fsa.labels if fsa.is_acceptor() else fsa.aux_labels
    return _get_symbols(labels.tolist(), include_epsilon)


def _get_symbols(labels: List[int], include_epsilon: bool) -> List[int]:
    min_label = 0 if include_epsilon else 1
    return sorted(set(label for label in labels if label >= min_label))
