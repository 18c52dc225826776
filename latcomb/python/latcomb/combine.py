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

import logging
from dataclasses import dataclass
from typing import List
from typing import Optional

from . import fsa_properties
from .fsa import Fsa
from .fsa import create_fsa
from .fsa_algo import arc_sort
from .fsa_algo import compose
from .fsa_algo import determinize
from .fsa_algo import get_input_symbols
from .fsa_algo import get_output_symbols
from .fsa_algo import minimize
from .fsa_algo import project
from .fsa_algo import prune
from .fsa_algo import remove_epsilon
from .fsa_algo import shortest_path
from .symbol_table import SymbolTable
from .table import FstWriter
from .table import RandomAccessLatticeReader
from .table import SequentialLatticeReader


@dataclass
class CombineLightOptions(object):
    '''Options of :func:`combine_light` and :func:`combine_lattices`.'''

    prune: bool = True
    '''Prune the result of the composition.'''

    prune_multiplier: float = 0.0
    '''Beam of the pruning. 0 keeps only the best alignments.'''

    return_hyp: bool = True
    '''Output the hypothesis when it shares no word with the reference.'''

    lm_scale: float = 0.0
    '''Scale for the graph costs of the input lattices.'''

    acoustic_scale: float = 0.0
    '''Scale for the acoustic costs of the input lattices.'''

    correct_cost: float = -1.0
    substitution_cost: float = 0.0
    insertion_cost: float = 0.0
    deletion_cost: float = 0.0


@dataclass
class CombineStats(object):
    '''Counters reported at the end of :func:`combine_lattices`.'''
    num_total: int = 0
    # Number of reference keys whose hypothesis was found.
    num_success: int = 0
    num_missing: int = 0
    num_no_overlap: int = 0
    num_empty: int = 0

    def __str__(self) -> str:
        return (f'Processed successfully {self.num_success} out of '
                f'{self.num_total} with {self.num_missing} missing lats in '
                f'hypothesis (returned {self.num_no_overlap} lats without '
                f'overlap). {self.num_empty} results were empty.')


def has_overlapping_symbols(ref: Fsa, hyp: Fsa) -> bool:
    '''Return True if some non-epsilon output label of `ref` is also an
    input label of `hyp`.'''
    ref_symbols = get_output_symbols(ref)
    hyp_symbols = get_input_symbols(hyp)
    return len(set(ref_symbols).intersection(hyp_symbols)) != 0


def edit_distance_graph(ref_symbols: List[int],
                        hyp_symbols: List[int],
                        correct_cost: float = -1.0,
                        substitution_cost: float = 0.0,
                        insertion_cost: float = 0.0,
                        deletion_cost: float = 0.0) -> Fsa:
    '''Build the transducer that aligns reference words with hypothesis
    words.

    It has a single looping state with arcs::

        r:ε       deletion_cost      for every r in ref_symbols
        ε:h       insertion_cost     for every h in hyp_symbols
        r:h       correct_cost if r == h else substitution_cost

    and a final arc with score 0. Costs are negated into scores. The arcs
    are sorted on their output labels.

    Args:
      ref_symbols:
        The words of the reference (input side).
      hyp_symbols:
        The words of the hypothesis (output side).

    Returns:
      A transducer with 2 states.
    '''
    arc_list = []
    for r in ref_symbols:
        arc_list.append((0, 0, r, 0, -deletion_cost))
    for h in hyp_symbols:
        arc_list.append((0, 0, 0, h, -insertion_cost))
    for r in ref_symbols:
        for h in hyp_symbols:
            cost = correct_cost if r == h else substitution_cost
            arc_list.append((0, 0, r, h, -cost))
    arc_list.append((0, 1, -1, -1, 0.0))
    return arc_sort(create_fsa(arc_list, acceptor=False),
                    sort_by_aux_labels=True)


def combine_light(ref: Fsa,
                  hyp: Fsa,
                  opts: Optional[CombineLightOptions] = None) -> Fsa:
    '''Combine a reference lattice with a hypothesis lattice.

    The reference and the hypothesis are aligned through
    :func:`edit_distance_graph`, so that the best alignments match as many
    words as possible. The output keeps the hypothesis words of these
    alignments; scores are discarded.

    Args:
      ref:
        The reference. If it is a transducer, its output labels are used.
      hyp:
        The hypothesis. If it is a transducer, its output labels are used.
      opts:
        Options; the defaults are used if None.

    Returns:
      A deterministic, minimal acceptor whose scores are all 0. It is
      empty if no alignment survives.
    '''
    if opts is None:
        opts = CombineLightOptions()
    ref = project(ref, project_output=True)
    hyp = project(hyp, project_output=True)

    edit_fsa = edit_distance_graph(get_output_symbols(ref),
                                   get_input_symbols(hyp),
                                   correct_cost=opts.correct_cost,
                                   substitution_cost=opts.substitution_cost,
                                   insertion_cost=opts.insertion_cost,
                                   deletion_cost=opts.deletion_cost)

    ref = arc_sort(ref, sort_by_aux_labels=True)
    edit_ref = compose(ref, edit_fsa)

    hyp = arc_sort(hyp)
    result = compose(edit_ref, hyp)

    if opts.prune:
        logging.info(f'Pruning with multiplier {opts.prune_multiplier}')
        result = prune(result, opts.prune_multiplier)

    # Keep the hypothesis words where they differ from the reference
    result = project(result, project_output=True)
    result = remove_epsilon(result)
    result.scale_scores_(0.0)

    result = determinize(result)
    return minimize(result)


def combine_lattices(ref_rspecifier: str,
                     hyp_rspecifier: str,
                     out_wspecifier: str,
                     opts: Optional[CombineLightOptions] = None,
                     word_table: Optional[SymbolTable] = None
                    ) -> CombineStats:  # noqa
    '''Combine every reference lattice with the hypothesis lattice of the
    same key and write the results.

    The reference archive is read in a single pass; the output entries
    follow its order. Keys without a hypothesis are skipped. If a
    reference and its hypothesis share no word, the hypothesis is written
    unchanged when `opts.return_hyp` is True.

    Args:
      ref_rspecifier:
        E.g., `ark:ref.lats`.
      hyp_rspecifier:
        E.g., `ark:hyp.lats` or `scp:hyp.scp`.
      out_wspecifier:
        E.g., `ark,t:out.fsts` or `ark,scp:out.ark,out.scp`.
      opts:
        Options; the defaults are used if None.
      word_table:
        Optional. If given, the best path of every result is logged
        as words at the debug level.

    Returns:
      The counters of the run.
    '''
    if opts is None:
        opts = CombineLightOptions()
    stats = CombineStats()

    with SequentialLatticeReader(ref_rspecifier, opts.lm_scale,
                                 opts.acoustic_scale) as ref_reader, \
            RandomAccessLatticeReader(hyp_rspecifier, opts.lm_scale,
                                      opts.acoustic_scale) as hyp_reader, \
            FstWriter(out_wspecifier) as writer:
        for key, ref in ref_reader:
            stats.num_total += 1
            if not hyp_reader.has_key(key):
                logging.warning(
                    f'No lattice found for hypothesis utterance {key}')
                stats.num_missing += 1
                continue

            stats.num_success += 1
            ref = project(ref, project_output=True)
            hyp = project(hyp_reader.value(key), project_output=True)

            if not has_overlapping_symbols(ref, hyp):
                logging.warning(
                    f'No overlapping symbols between ref and hyp for {key}')
                stats.num_no_overlap += 1
                if opts.return_hyp:
                    logging.info(f'Returning hypothesis for {key}')
                    writer.write(key, hyp)
                continue

            logging.info(f'Composing key {key}')
            result = combine_light(ref, hyp, opts)
            if result.properties & fsa_properties.NONEMPTY == 0:
                logging.warning(f'Empty result for {key}')
                stats.num_empty += 1
                continue

            if word_table is not None:
                best = shortest_path(result)
                words = word_table.to_words(best.labels.tolist())
                logging.debug(f'{key} {" ".join(words)}')
            writer.write(key, result)

    logging.info(str(stats))
    return stats
