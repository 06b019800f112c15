"""
Moran's I Spatial Autocorrelation Statistics

"""

__all__ = ["Moran", "ASSUMPTIONS"]

import numpy as np
import pandas as pd

from ..common import ConfigurationError, NumericError, _validate_alternative
from ..weights import SpatialWeights
from ..weights._utils import _align_attribute
from .permutation import _normal_p, _validate_permutations, permutation_test

ASSUMPTIONS = ("randomization", "normality")


def _moran_statistic(y, w):
    """Moran's I of ``y`` (in the order of ``w.ids``) over ``w``."""
    z = y - y.mean()
    return w.n / w.s0 * float(z @ w.lag(z)) / float(z @ z)


class Moran:
    """Moran's I Global Autocorrelation Statistic

    Parameters
    ----------
    y : array-like, pandas.Series or dict
        variable measured across n spatial units, aligned to ``w`` by id
    w : areal.weights.SpatialWeights
        spatial weights. Isolates of permissive weights contribute nothing to
        the cross-products but count in ``n``.
    alternative : {"two-sided", "greater", "less"}
        tail of the analytic and permutation tests
    assumption : {"randomization", "normality"}
        null distribution of the selected analytic test (``VI``, ``seI``,
        ``z``, ``p``). Both are always computed when defined.
    permutations : int
        number of random permutations for calculation of
        pseudo-p_values. 0 skips the permutation test.
    seed : int, numpy.random.SeedSequence or None
        seed of the permutations

    Attributes
    ----------
    y            : array
                   original variable, in the order of the weights
    w            : SpatialWeights
                   original w object
    n            : int
                   number of units
    I            : float
                   value of Moran's I
    EI           : float
                   expected value under the null, :math:`-1/(n-1)`
    VI_norm      : float
                   variance of I under normality assumption
    seI_norm     : float
                   standard deviation of I under normality assumption
    z_norm       : float
                   z-value of I under normality assumption
    p_norm       : float
                   p-value of I under normality assumption
    VI_rand      : float
                   variance of I under randomization assumption; NaN when
                   n < 4 and the normality assumption is selected
    seI_rand     : float
                   standard deviation of I under randomization assumption
    z_rand       : float
                   z-value of I under randomization assumption
    p_rand       : float
                   p-value of I under randomization assumption
    VI, seI, z, p : float
                   the values of the selected assumption
    permutation  : PermutationResult
                   (if permutations>0) full permutation test result
    sim          : array
                   (if permutations>0)
                   vector of I values for permuted samples
    p_sim        : float
                   (if permutations>0)
                   pseudo p-value based on permutations
    EI_sim       : float
                   (if permutations>0)
                   average value of I from permutations
    VI_sim       : float
                   (if permutations>0)
                   variance of I from permutations
    seI_sim      : float
                   (if permutations>0)
                   standard deviation of I under permutations.
    z_sim        : float
                   (if permutations>0)
                   standardized I based on permutations
    p_z_sim      : float
                   (if permutations>0)
                   p-value based on standard normal approximation from
                   permutations

    Raises
    ------
    NumericError
        if n < 3, the attribute is constant, the weights have no link, or the
        variance of the selected assumption is undefined or not positive

    Notes
    -----
    Technical details and derivations can be found in Cliff and Ord (1981).

    Examples
    --------
    >>> from areal.graph import NeighborList
    >>> from areal.weights import SpatialWeights
    >>> nl = NeighborList([[1], [0, 2], [1, 3], [2, 4], [3]])
    >>> w = SpatialWeights(nl, "R", "strict")
    >>> mi = Moran([1.0, 2.0, 3.0, 4.0, 5.0], w)
    >>> round(mi.I, 3)
    0.6
    >>> mi.EI
    -0.25
    """

    def __init__(
        self,
        y,
        w,
        alternative="two-sided",
        assumption="randomization",
        permutations=0,
        seed=None,
    ):
        if not isinstance(w, SpatialWeights):
            raise TypeError("'w' needs to be an areal.weights.SpatialWeights.")
        self.alternative = _validate_alternative(alternative)
        if assumption not in ASSUMPTIONS:
            raise ConfigurationError(
                f"'assumption' needs to be one of {ASSUMPTIONS}. "
                f"'{assumption}' was given instead."
            )
        self.assumption = assumption
        self.permutations = _validate_permutations(permutations, allow_zero=True)
        self.y = _align_attribute(y, w.ids, warn_positional=True)
        self.w = w

        self.__moments()
        self.I = self.__calc(self._z)  # noqa: E741
        self.z_norm = (self.I - self.EI) / self.seI_norm
        self.z_rand = (self.I - self.EI) / self.seI_rand
        self.p_norm = _normal_p(self.z_norm, self.alternative)
        self.p_rand = _normal_p(self.z_rand, self.alternative)

        if assumption == "randomization":
            self.VI, self.seI = self.VI_rand, self.seI_rand
            self.z, self.p = self.z_rand, self.p_rand
        else:
            self.VI, self.seI = self.VI_norm, self.seI_norm
            self.z, self.p = self.z_norm, self.p_norm

        self.permutation = None
        self.sim = None
        self.p_sim = self.EI_sim = self.VI_sim = self.seI_sim = None
        self.z_sim = self.p_z_sim = None
        if self.permutations:
            result = permutation_test(
                _moran_statistic,
                pd.Series(self.y, index=w.ids),
                w,
                permutations=self.permutations,
                alternative=self.alternative,
                seed=seed,
            )
            self.permutation = result
            self.sim = result.simulated
            self.p_sim = result.p_sim
            self.EI_sim = result.EI_sim
            self.VI_sim = result.VI_sim
            self.seI_sim = result.seI_sim
            self.z_sim = result.z_sim
            self.p_z_sim = result.p_z_sim

    def __moments(self):
        self.n = self.w.n
        n = self.n
        if n < 3:
            raise NumericError(
                f"Moran's I needs at least 3 units to have defined moments. {n} given."
            )
        y = self.y
        z = y - y.mean()
        self.z2ss = float((z * z).sum())
        if np.ptp(y) == 0 or self.z2ss == 0:
            raise NumericError(
                "The attribute is constant: its sum of squared deviations is 0, so "
                "Moran's I is undefined."
            )
        s0 = self.w.s0
        if s0 == 0:
            raise NumericError("The weights have no nonzero entry (S0 == 0).")
        self._z = z
        self.EI = -1.0 / (n - 1)
        n2 = n * n
        s1 = self.w.s1
        s2 = self.w.s2
        s02 = s0 * s0
        v_num = n2 * s1 - n * s2 + 3 * s02
        v_den = (n - 1) * (n + 1) * s02
        self.VI_norm = v_num / v_den - (1.0 / (n - 1)) ** 2

        # variance under randomization
        if n > 3:
            xd4 = z**4
            xd2 = z**2
            k_num = xd4.sum() / n
            k_den = (xd2.sum() / n) ** 2
            k = k_num / k_den
            EI = self.EI  # noqa: N806
            A = n * ((n2 - 3 * n + 3) * s1 - n * s2 + 3 * s02)  # noqa: N806
            B = k * ((n2 - n) * s1 - 2 * n * s2 + 6 * s02)  # noqa: N806
            self.VI_rand = (A - B) / ((n - 1) * (n - 2) * (n - 3) * s02) - EI * EI
        elif self.assumption == "randomization":
            raise NumericError(
                "The variance of Moran's I under randomization needs at least 4 "
                f"units. {n} given; use assumption='normality'."
            )
        else:
            self.VI_rand = np.nan

        selected = self.VI_rand if self.assumption == "randomization" else self.VI_norm
        if not selected > 0:
            raise NumericError(
                f"The variance of Moran's I under {self.assumption} is not positive "
                f"({selected})."
            )
        self.seI_norm = self.VI_norm ** (1 / 2.0) if self.VI_norm > 0 else np.nan
        self.seI_rand = self.VI_rand ** (1 / 2.0) if self.VI_rand > 0 else np.nan

    def __calc(self, z):
        zl = self.w.lag(z)
        inum = (z * zl).sum()
        return float(self.n / self.w.s0 * inum / self.z2ss)

    @property
    def _statistic(self):
        """More consistent hidden attribute to access the statistic"""
        return self.I

    def to_dict(self):
        """Results as a flat record

        Returns
        -------
        dict
            the statistic, its moments and p-values; permutation entries are None
            when no permutations were run
        """
        return {
            "n": self.n,
            "I": self.I,
            "EI": self.EI,
            "VI_norm": self.VI_norm,
            "seI_norm": self.seI_norm,
            "z_norm": self.z_norm,
            "p_norm": self.p_norm,
            "VI_rand": self.VI_rand,
            "seI_rand": self.seI_rand,
            "z_rand": self.z_rand,
            "p_rand": self.p_rand,
            "assumption": self.assumption,
            "alternative": self.alternative,
            "VI": self.VI,
            "seI": self.seI,
            "z": self.z,
            "p": self.p,
            "permutations": self.permutations,
            "p_sim": self.p_sim,
            "EI_sim": self.EI_sim,
            "VI_sim": self.VI_sim,
            "seI_sim": self.seI_sim,
            "z_sim": self.z_sim,
            "p_z_sim": self.p_z_sim,
        }

    def __repr__(self):
        return (
            f"<Moran I={self.I:.4f} EI={self.EI:.4f} z={self.z:.4f} p={self.p:.4g} "
            f"({self.assumption}, {self.alternative})>"
        )
