import numpy as np
import pytest

from areal.common import ConfigurationError
from areal.graph import NeighborList
from areal.stats import PERMUTATIONS, permutation_test
from areal.weights import SpatialWeights


def lag_product(y, w):
    return float(y @ w.lag(y))


def first_value(y, w):
    return float(y[0])


def constant(y, w):
    return 1.0


class TestPermutationTest:
    def setup_method(self):
        n = 10
        nl = NeighborList([[j for j in (i - 1, i + 1) if 0 <= j < n] for i in range(n)])
        self.w = SpatialWeights(nl, "R", "strict")
        self.y = np.random.default_rng(0).normal(size=n)

    def test_result(self):
        res = permutation_test(lag_product, self.y, self.w, permutations=250, seed=1)
        assert res.permutations == 250
        assert res.alternative == "greater"
        assert res.simulated.shape == (250,)
        assert res.observed == pytest.approx(lag_product(self.y, self.w))
        assert res.EI_sim == pytest.approx(res.simulated.mean())
        assert res.seI_sim == pytest.approx(res.simulated.std())
        assert res.VI_sim == pytest.approx(res.seI_sim**2)
        assert res.z_sim == pytest.approx((res.observed - res.EI_sim) / res.seI_sim)

    @pytest.mark.parametrize("alternative", ["greater", "less", "two-sided"])
    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_bounds(self, alternative, seed):
        res = permutation_test(
            lag_product, self.y, self.w, permutations=99, alternative=alternative, seed=seed
        )
        assert 1 / 100 <= res.p_sim <= 1

    def test_pseudo_p(self):
        y = np.arange(5, dtype=float)
        w = SpatialWeights(NeighborList([[1], [0, 2], [1, 3], [2, 4], [3]]), "B", "strict")
        greater = permutation_test(first_value, y, w, permutations=99, seed=3)
        # the observed value is the minimum, so nothing is strictly smaller
        count = (greater.simulated > 0).sum()
        assert greater.p_sim == pytest.approx((count + 1) / 100)
        less = permutation_test(first_value, y, w, 99, alternative="less", seed=3)
        assert less.p_sim == pytest.approx(1 / 100)
        both = permutation_test(first_value, y, w, 99, alternative="two-sided", seed=3)
        assert both.p_sim == pytest.approx(1 / 100)

    def test_seed(self):
        a = permutation_test(lag_product, self.y, self.w, permutations=150, seed=7)
        b = permutation_test(lag_product, self.y, self.w, permutations=150, seed=7)
        np.testing.assert_array_equal(a.simulated, b.simulated)
        assert a.p_sim == b.p_sim

    def test_seed_sequence(self):
        sequence = np.random.SeedSequence(42)
        a = permutation_test(lag_product, self.y, self.w, permutations=150, seed=sequence)
        b = permutation_test(lag_product, self.y, self.w, permutations=150, seed=sequence)
        c = permutation_test(lag_product, self.y, self.w, permutations=150, seed=42)
        np.testing.assert_array_equal(a.simulated, b.simulated)
        np.testing.assert_array_equal(a.simulated, c.simulated)

    @pytest.mark.parametrize("n_jobs", [2, 3, -1])
    def test_n_jobs(self, n_jobs):
        serial = permutation_test(lag_product, self.y, self.w, permutations=350, seed=11)
        threaded = permutation_test(
            lag_product, self.y, self.w, permutations=350, seed=11, n_jobs=n_jobs
        )
        np.testing.assert_array_equal(serial.simulated, threaded.simulated)

    def test_constant_statistic(self):
        with pytest.warns(RuntimeWarning, match="all equal"):
            res = permutation_test(constant, self.y, self.w, permutations=50, seed=0)
        assert res.p_sim == pytest.approx(1 / 51)
        assert np.isnan(res.z_sim)
        assert np.isnan(res.p_z_sim)

    def test_default_permutations(self):
        res = permutation_test(lag_product, self.y, self.w, seed=0)
        assert res.permutations == PERMUTATIONS == 999
        assert res.simulated.shape == (999,)

    @pytest.mark.parametrize("permutations", [0, -5, 1.5, True])
    def test_bad_permutations(self, permutations):
        with pytest.raises(ConfigurationError, match="'permutations'"):
            permutation_test(lag_product, self.y, self.w, permutations=permutations)

    @pytest.mark.parametrize("n_jobs", [0, -2, 1.5])
    def test_bad_n_jobs(self, n_jobs):
        with pytest.raises(ConfigurationError, match="'n_jobs'"):
            permutation_test(lag_product, self.y, self.w, n_jobs=n_jobs)

    def test_bad_alternative(self):
        with pytest.raises(ConfigurationError, match="'alternative'"):
            permutation_test(lag_product, self.y, self.w, alternative="two_sided")

    def test_not_callable(self):
        with pytest.raises(TypeError, match="callable"):
            permutation_test("moran", self.y, self.w)
