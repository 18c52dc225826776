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

import torch  # noqa

from . import fsa
from . import fsa_properties
from . import fsa_algo
from . import utils

#
from .combine import CombineLightOptions
from .combine import CombineStats
from .combine import combine_lattices
from .combine import combine_light
from .combine import edit_distance_graph
from .combine import has_overlapping_symbols
from .fsa import Fsa
from .fsa import create_fsa
from .fsa import empty_fsa
from .fsa_algo import arc_sort
from .fsa_algo import compose
from .fsa_algo import connect
from .fsa_algo import determinize
from .fsa_algo import get_input_symbols
from .fsa_algo import get_output_symbols
from .fsa_algo import invert
from .fsa_algo import linear_fsa
from .fsa_algo import minimize
from .fsa_algo import project
from .fsa_algo import prune
from .fsa_algo import remove_epsilon
from .fsa_algo import shortest_path
from .fsa_properties import to_str as properties_to_str
from .symbol_table import SymbolTable
from .table import FstWriter
from .table import RandomAccessLatticeReader
from .table import SequentialFstReader
from .table import SequentialLatticeReader
from .utils import get_path_scores
from .utils import is_equivalent
from .utils import to_dot
from .utils import to_str
from .version import __version__
