"""
Conditional randomization (permutation) inference for spatial statistics.
"""

__all__ = ["PERMUTATIONS", "PermutationResult", "permutation_test"]

import numbers
import warnings
from collections import namedtuple

import numpy as np
import scipy.stats as stats
from joblib import Parallel, delayed, parallel_backend

from ..common import ConfigurationError, _validate_alternative
from ..weights._utils import _align_attribute

PERMUTATIONS = 999

# permutations drawn from one random stream; streams are spawned per block so the
# draws for a seed do not depend on how blocks are spread over workers
_BLOCK_SIZE = 100

PermutationResult = namedtuple(
    "PermutationResult",
    [
        "observed",
        "simulated",
        "p_sim",
        "EI_sim",
        "VI_sim",
        "seI_sim",
        "z_sim",
        "p_z_sim",
        "permutations",
        "alternative",
    ],
)
PermutationResult.__doc__ = """Outcome of a permutation test.

observed : float
    statistic of the data as observed
simulated : numpy.ndarray
    statistic of every permutation, in block order
p_sim : float
    pseudo p-value, ``(count + 1) / (permutations + 1)``
EI_sim, VI_sim, seI_sim : float
    mean, variance and standard deviation of the simulated values
z_sim : float
    standardized observed value under the simulated distribution
p_z_sim : float
    normal approximation p-value of ``z_sim`` for the same alternative
permutations : int
    number of permutations
alternative : str
    ``"greater"``, ``"less"`` or ``"two-sided"``
"""


def _validate_permutations(permutations, allow_zero=False):
    if (
        isinstance(permutations, bool)
        or not isinstance(permutations, numbers.Integral)
        or permutations < (0 if allow_zero else 1)
    ):
        raise ConfigurationError(
            "'permutations' needs to be a "
            f"{'non-negative' if allow_zero else 'positive'} integer. "
            f"'{permutations}' was given."
        )
    return int(permutations)


def _pseudo_p(simulated, observed, alternative):
    """Pseudo p-value with the observed value counted as one more draw.

    Only strictly more extreme draws count: a tie with the observed value is
    not evidence against the null.
    """
    permutations = simulated.shape[0]
    greater = int((simulated > observed).sum())
    less = int((simulated < observed).sum())
    if alternative == "greater":
        count = greater
    elif alternative == "less":
        count = less
    else:
        count = 2 * min(greater, less)
    return (count + 1.0) / (permutations + 1.0)


def _normal_p(z, alternative):
    if np.isnan(z):
        return np.nan
    if alternative == "greater":
        return float(stats.norm.sf(z))
    if alternative == "less":
        return float(stats.norm.cdf(z))
    return float(2.0 * stats.norm.sf(abs(z)))


def _simulate_block(statistic, y, w, seed_sequence, size):
    rng = np.random.default_rng(seed_sequence)
    return np.array([statistic(rng.permutation(y), w) for _ in range(size)], dtype=float)


def permutation_test(
    statistic,
    y,
    w,
    permutations=PERMUTATIONS,
    alternative="greater",
    seed=None,
    n_jobs=1,
):
    """
    Permutation test of a spatial statistic.

    The values of ``y`` are randomly reassigned to the units while ``w`` is left
    unchanged; the statistic of every reassignment forms the reference
    distribution of the observed statistic.

    Parameters
    ----------
    statistic : callable
        ``statistic(y, w)`` returning a float, where ``y`` is a float array in
        the order of ``w.ids``
    y : array-like, pandas.Series or dict
        attribute values, aligned to ``w`` by id (see
        :func:`areal.weights.lag_spatial`)
    w : areal.weights.SpatialWeights
        spatial weights
    permutations : int
        number of random permutations, by default ``PERMUTATIONS``
    alternative : {"greater", "less", "two-sided"}
        ``"greater"`` counts simulated values strictly larger than the observed
        one, ``"less"`` strictly smaller ones, ``"two-sided"`` twice the smaller
        of both counts.
    seed : int, numpy.random.SeedSequence or None
        seed of the random streams. None draws fresh entropy, so results are
        not reproducible.
    n_jobs : int
        number of threads running blocks of permutations. ``-1`` uses all
        available cores. Results do not depend on ``n_jobs``.

    Returns
    -------
    PermutationResult

    Notes
    -----
    The pseudo p-value is :math:`(c + 1) / (n + 1)` with :math:`c` the count of
    simulated values more extreme than the observed value and :math:`n` the
    number of permutations. It is never zero and its minimum is
    :math:`1 / (n + 1)`.

    Examples
    --------
    >>> from areal.graph import NeighborList
    >>> from areal.weights import SpatialWeights
    >>> nl = NeighborList([[1], [0, 2], [1, 3], [2]])
    >>> w = SpatialWeights(nl, "R", "strict")
    >>> def lag_mean(y, w):
    ...     return float((y * w.lag(y)).mean())
    >>> res = permutation_test(lag_mean, [1.0, 2.0, 3.0, 4.0], w, 99, seed=1)
    >>> 0.01 <= res.p_sim <= 1
    True
    """
    alternative = _validate_alternative(alternative)
    permutations = _validate_permutations(permutations)
    if not callable(statistic):
        raise TypeError("'statistic' needs to be callable.")
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or (
        n_jobs < 1 and n_jobs != -1
    ):
        raise ConfigurationError(
            f"'n_jobs' needs to be a positive integer or -1. '{n_jobs}' was given."
        )
    y = _align_attribute(y, w.ids, warn_positional=True)
    observed = float(statistic(y, w))

    sizes = [_BLOCK_SIZE] * (permutations // _BLOCK_SIZE)
    if permutations % _BLOCK_SIZE:
        sizes.append(permutations % _BLOCK_SIZE)
    if isinstance(seed, np.random.SeedSequence):
        # spawning advances a SeedSequence; copy it so a seed can be reused
        root = np.random.SeedSequence(
            seed.entropy, spawn_key=seed.spawn_key, pool_size=seed.pool_size
        )
    else:
        root = np.random.SeedSequence(seed)
    streams = root.spawn(len(sizes))

    if n_jobs == 1 or len(sizes) == 1:
        blocks = [
            _simulate_block(statistic, y, w, stream, size)
            for stream, size in zip(streams, sizes, strict=True)
        ]
    else:
        with parallel_backend("threading"):
            # results come back in block order regardless of completion order
            blocks = Parallel(n_jobs=n_jobs)(
                delayed(_simulate_block)(statistic, y, w, stream, size)
                for stream, size in zip(streams, sizes, strict=True)
            )
    simulated = np.concatenate(blocks)

    p_sim = _pseudo_p(simulated, observed, alternative)
    EI_sim = float(simulated.mean())  # noqa: N806
    seI_sim = float(simulated.std())  # noqa: N806
    VI_sim = seI_sim**2  # noqa: N806
    if seI_sim > 0:
        z_sim = (observed - EI_sim) / seI_sim
    else:
        warnings.warn(
            "The simulated values of the statistic are all equal, so z_sim and "
            "p_z_sim are undefined.",
            RuntimeWarning,
            stacklevel=2,
        )
        z_sim = np.nan

    return PermutationResult(
        observed,
        simulated,
        p_sim,
        EI_sim,
        VI_sim,
        seI_sim,
        z_sim,
        _normal_p(z_sim, alternative),
        permutations,
        alternative,
    )
