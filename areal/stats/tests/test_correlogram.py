import numpy as np
import pandas as pd
import pytest

from areal.common import ConfigurationError, IsolationError
from areal.graph import NeighborList
from areal.stats import Correlogram, CorrelogramEntry, Moran, correlogram
from areal.weights import SpatialWeights


def _rook_grid(nrows, ncols):
    rows = []
    for r in range(nrows):
        for c in range(ncols):
            row = []
            if r > 0:
                row.append((r - 1) * ncols + c)
            if c > 0:
                row.append(r * ncols + c - 1)
            if c < ncols - 1:
                row.append(r * ncols + c + 1)
            if r < nrows - 1:
                row.append((r + 1) * ncols + c)
            rows.append(row)
    return NeighborList(rows)


def spread(y, w):
    return float(np.abs(y - w.lag(y)).mean())


class TestCorrelogram:
    def setup_method(self):
        self.grid = _rook_grid(4, 4)
        self.y = np.arange(16, dtype=float)

    def test_moran(self):
        result = correlogram(self.y, self.grid, 3, "strict")
        assert isinstance(result, Correlogram)
        assert len(result) == 3
        assert result.orders == [1, 2, 3]
        assert result.statistic == "moran"
        assert all(isinstance(entry, CorrelogramEntry) for entry in result)
        assert all(np.isnan(entry.p_sim) for entry in result)

    def test_first_order(self):
        result = correlogram(self.y, self.grid, 2, "strict")
        mi = Moran(self.y, SpatialWeights(self.grid, "R", "strict"))
        first = result[1]
        assert first.statistic == mi.I
        assert first.expectation == mi.EI
        assert first.variance == mi.VI
        assert first.z == mi.z
        assert first.p == mi.p

    def test_higher_order(self):
        result = correlogram(self.y, self.grid, 3, "strict", coding="B")
        w = SpatialWeights(self.grid.higher_order(3), "B", "strict")
        assert result[3].statistic == pytest.approx(Moran(self.y, w).I)

    def test_options(self):
        result = correlogram(
            self.y,
            self.grid,
            2,
            "strict",
            alternative="greater",
            assumption="normality",
        )
        w = SpatialWeights(self.grid.higher_order(2), "R", "strict")
        mi = Moran(self.y, w, alternative="greater", assumption="normality")
        assert result[2].variance == pytest.approx(mi.VI_norm)
        assert result[2].p == pytest.approx(mi.p_norm)

    def test_permutations(self):
        a = correlogram(self.y, self.grid, 2, "strict", permutations=99, seed=5)
        b = correlogram(self.y, self.grid, 2, "strict", permutations=99, seed=5)
        assert [e.p_sim for e in a] == [e.p_sim for e in b]
        assert all(1 / 100 <= e.p_sim <= 1 for e in a)

    def test_to_frame(self):
        frame = correlogram(self.y, self.grid, 3, "strict").to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert frame.index.name == "order"
        assert frame.index.tolist() == [1, 2, 3]
        assert frame.columns.tolist() == [
            "statistic",
            "expectation",
            "variance",
            "z",
            "p",
            "p_sim",
        ]

    def test_getitem(self):
        result = correlogram(self.y, self.grid, 2, "strict")
        assert result[2].order == 2
        with pytest.raises(KeyError):
            result[5]
        assert "orders [1, 2]" in repr(result)

    def test_custom_statistic(self):
        result = correlogram(self.y, self.grid, 2, "strict", statistic=spread)
        assert result.statistic == "spread"
        first = result[1]
        w = SpatialWeights(self.grid, "R", "strict")
        assert first.statistic == pytest.approx(spread(self.y, w))
        assert np.isnan(first.expectation)
        assert np.isnan(first.z)
        assert np.isnan(first.p_sim)

        permuted = correlogram(
            self.y, self.grid, 2, "strict", statistic=spread, permutations=49, seed=0
        )
        assert all(1 / 50 <= e.p_sim <= 1 for e in permuted)

    def test_aligned_by_id(self):
        nl = NeighborList(self.grid.indices, ids=[f"u{i}" for i in range(16)])
        y = pd.Series(self.y, index=nl.ids)[::-1]
        by_id = correlogram(y, nl, 2, "strict")
        positional = correlogram(self.y, self.grid, 2, "strict")
        assert [e.statistic for e in by_id] == pytest.approx(
            [e.statistic for e in positional]
        )

    def test_beyond_reach(self):
        cycle = NeighborList([[1, 3], [0, 2], [1, 3], [0, 2]])
        with pytest.raises(ConfigurationError, match="Lag order 3 has no links"):
            correlogram([1.0, 2.0, 3.0, 4.0], cycle, 3, "strict", statistic=spread)

    def test_isolates_at_higher_order(self):
        chain = NeighborList([[1], [0, 2], [1, 3], [2, 4], [3]])
        with pytest.raises(IsolationError):
            correlogram(np.arange(5.0), chain, 3, "strict", statistic=spread)

    def test_bad_input(self):
        with pytest.raises(ConfigurationError, match="'statistic'"):
            correlogram(self.y, self.grid, 2, "strict", statistic="geary")
        with pytest.raises(ConfigurationError, match="'zero_policy'"):
            correlogram(self.y, self.grid, 2, "lenient")
        with pytest.raises(ConfigurationError, match="'max_order'"):
            correlogram(self.y, self.grid, 0, "strict")
        with pytest.raises(TypeError, match="NeighborList"):
            correlogram(self.y, {0: [1]}, 2, "strict")
