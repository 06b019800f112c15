"""
Spatial autocorrelation statistics.
"""

from .correlogram import Correlogram, CorrelogramEntry, correlogram
from .moran import ASSUMPTIONS, Moran
from .permutation import PERMUTATIONS, PermutationResult, permutation_test
