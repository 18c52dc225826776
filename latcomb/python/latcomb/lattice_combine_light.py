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

"""
Combine reference lattices (e.g., from an inaccurate transcript) with the
hypothesis lattices of a recognizer, for lightly supervised training.

Usage:

    lattice-combine-light [options] <ref-rspecifier> <hyp-rspecifier> \\
        <out-wspecifier>

e.g.:

    lattice-combine-light ark:ref.lats ark:hyp.lats ark,t:res.fsts

The output keeps the hypothesis where it agrees with the reference and
the hypothesis alternatives where it does not.
"""

import argparse
import logging
import sys

from latcomb.combine import CombineLightOptions
from latcomb.combine import combine_lattices
from latcomb.symbol_table import SymbolTable


def str2bool(v):
    """Used in argparse.ArgumentParser.add_argument to indicate
    that a type is a bool type and user can enter

        - yes, true, t, y, 1, to represent True
        - no, false, f, n, 0, to represent False

    See https://stackoverflow.com/questions/15008758/parsing-boolean-values-with-argparse  # noqa
    """
    if isinstance(v, bool):
        return v
    if v.lower() in ("yes", "true", "t", "y", "1"):
        return True
    elif v.lower() in ("no", "false", "f", "n", "0"):
        return False
    else:
        raise argparse.ArgumentTypeError("Boolean value expected.")


def get_parser():
    parser = argparse.ArgumentParser(
        prog="lattice-combine-light",
        description="Composes transcriptions with hypothesis lattices. "
        "The default operation produces new lattices where the hypothesis "
        "lattices have been collapsed onto a transcript word where they "
        "match.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--prune",
        type=str2bool,
        default=True,
        help="Prune result of composition.",
    )

    parser.add_argument(
        "--prune-multiplier",
        type=float,
        default=0.0,
        help="""Beam of the pruning. Alignments whose score is within
        this margin of the best one are kept.
        """,
    )

    parser.add_argument(
        "--return-hyp",
        type=str2bool,
        default=True,
        help="""Output the hypothesis lattice if it shares no word
        with the reference.
        """,
    )

    parser.add_argument(
        "--lm-scale",
        type=float,
        default=0.0,
        help="Scaling factor for the graph costs of the input lattices.",
    )

    parser.add_argument(
        "--acoustic-scale",
        type=float,
        default=0.0,
        help="Scaling factor for the acoustic costs of the input lattices.",
    )

    parser.add_argument(
        "--correct-cost",
        type=float,
        default=-1.0,
        help="Cost of aligning a reference word with the same word.",
    )

    parser.add_argument(
        "--substitution-cost",
        type=float,
        default=0.0,
        help="Cost of aligning a reference word with another word.",
    )

    parser.add_argument(
        "--insertion-cost",
        type=float,
        default=0.0,
        help="Cost of a hypothesis word without reference word.",
    )

    parser.add_argument(
        "--deletion-cost",
        type=float,
        default=0.0,
        help="Cost of a reference word without hypothesis word.",
    )

    parser.add_argument(
        "--word-symbol-table",
        type=str,
        help="""Path to words.txt.
        If given, the best path of every result is printed as words
        at the debug level.
        """,
    )

    parser.add_argument(
        "--verbose",
        type=str2bool,
        default=False,
        help="Print debug messages.",
    )

    parser.add_argument(
        "ref_rspecifier",
        type=str,
        help="The reference lattices, e.g., ark:ref.lats",
    )

    parser.add_argument(
        "hyp_rspecifier",
        type=str,
        help="The hypothesis lattices, e.g., ark:hyp.lats",
    )

    parser.add_argument(
        "out_wspecifier",
        type=str,
        help="Where to write the results, e.g., ark,t:res.fsts",
    )

    return parser


def get_options(args: argparse.Namespace) -> CombineLightOptions:
    return CombineLightOptions(
        prune=args.prune,
        prune_multiplier=args.prune_multiplier,
        return_hyp=args.return_hyp,
        lm_scale=args.lm_scale,
        acoustic_scale=args.acoustic_scale,
        correct_cost=args.correct_cost,
        substitution_cost=args.substitution_cost,
        insertion_cost=args.insertion_cost,
        deletion_cost=args.deletion_cost,
    )


def run(args: argparse.Namespace) -> int:
    """Run the combination and return the exit status."""
    logging.info(f"params : {args}")
    try:
        word_table = None
        if args.word_symbol_table is not None:
            word_table = SymbolTable.from_file(args.word_symbol_table)
        combine_lattices(
            args.ref_rspecifier,
            args.hyp_rspecifier,
            args.out_wspecifier,
            opts=get_options(args),
            word_table=word_table,
        )
    except (OSError, ValueError) as e:
        logging.error(f"{e}")
        return 1
    return 0


def main():
    parser = get_parser()
    args = parser.parse_args()

    formatter = (
        "%(asctime)s %(levelname)s [%(filename)s:%(lineno)d] %(message)s"
    )
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(format=formatter, level=level)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
