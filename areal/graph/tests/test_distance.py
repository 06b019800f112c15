import numpy
import pytest

from areal.cg import AreaCollection
from areal.common import ConfigurationError, IsolationWarning
from areal.graph import NeighborList
from areal.graph._distance import _distance_band, _knn

line = numpy.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]])
unequal_line = numpy.array([[0.0, 0.0], [1.0, 0.0], [3.0, 0.0], [6.0, 0.0], [7.0, 0.0]])
square = numpy.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])

rng = numpy.random.default_rng(2718)
scatter = rng.uniform(0, 100, size=(60, 2))


class TestDistanceBand:
    def test_chain(self):
        assert _distance_band(line, 1) == ((1,), (0, 2), (1, 3), (2,))

    def test_band(self):
        # lower bound exclusive, upper bound inclusive
        assert _distance_band(line, 2, min_threshold=1) == ((2,), (3,), (0,), (1,))
        assert _distance_band(line, 3, min_threshold=2) == ((3,), (), (), (0,))

    def test_rounding_at_threshold(self):
        points = numpy.array([[0.0, 0.0], [0.1 + 0.2, 0.0]])
        assert _distance_band(points, 0.3) == ((1,), (0,))
        assert _distance_band(points, 0.3, epsilon=0) == ((), ())

    def test_unbounded(self):
        neighbors = _distance_band(line, numpy.inf)
        assert neighbors == ((1, 2, 3), (0, 2, 3), (0, 1, 3), (0, 1, 2))

    def test_symmetric(self):
        neighbors = _distance_band(scatter, 20)
        for focal, row in enumerate(neighbors):
            for neighbor in row:
                assert focal in neighbors[neighbor]
                assert numpy.linalg.norm(scatter[focal] - scatter[neighbor]) <= 20

    def test_single_unit(self):
        assert _distance_band(line[:1], 1) == ((),)

    @pytest.mark.parametrize(
        "threshold, min_threshold",
        [(1, 1), (1, 2), (1, -1), (numpy.nan, 0), ("far", 0)],
        ids=["empty", "inverted", "negative", "nan", "string"],
    )
    def test_bad_bounds(self, threshold, min_threshold):
        with pytest.raises(ConfigurationError):
            _distance_band(line, threshold, min_threshold=min_threshold)

    def test_isolates(self):
        with pytest.warns(IsolationWarning, match="distance_band"):
            nl = NeighborList.build_distance_band(unequal_line, 1.5)
        assert nl.isolates.tolist() == [2]

    def test_arc(self):
        points = numpy.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [10.0, 0.0]])
        areas = AreaCollection.from_points(points, metric="arc")
        # one degree is about 111.2 km
        assert _distance_band(areas, 112) == ((1, 2), (0,), (0,), ())
        assert _distance_band(areas, 158)[1] == (0, 2)


class TestKNN:
    def test_chain(self):
        neighbors = _knn(unequal_line, 2)
        # unit 2 has two units at distance 3; the lower position is taken
        assert neighbors == ((1, 2), (0, 2), (0, 1), (2, 4), (2, 3))

    def test_equal_spacing(self):
        points = numpy.column_stack((numpy.arange(5.0), numpy.zeros(5)))
        assert _knn(points, 2) == ((1, 2), (0, 2), (1, 3), (2, 4), (2, 3))
        nl = NeighborList.build_knn(points, 2)
        # 0 picks 2 but 2 does not pick 0
        assert not nl.is_symmetric

    def test_tie_breaking(self):
        # every corner has two neighbors at distance 1; the lower position wins
        assert _knn(square, 1) == ((1,), (0,), (0,), (1,))
        assert _knn(square, 2) == ((1, 2), (0, 3), (0, 3), (1, 2))

    def test_shuffled_ties(self):
        order = numpy.array([3, 1, 0, 2])
        neighbors = _knn(square[order], 1)
        # positions of the shuffled input, lowest position among equals
        assert neighbors == ((1,), (0,), (1,), (0,))

    @pytest.mark.parametrize("k", [1, 2, 3, 5])
    def test_cardinality(self, k):
        neighbors = _knn(scatter, k)
        assert all(len(row) == k for row in neighbors)
        for focal, row in enumerate(neighbors):
            distances = numpy.linalg.norm(scatter - scatter[focal], axis=1)
            distances[focal] = numpy.inf
            kth = numpy.sort(distances)[k - 1]
            assert (distances[list(row)] <= kth).all()

    def test_asymmetric(self):
        nl = NeighborList.build_knn(unequal_line, 2)
        assert not nl.is_symmetric

    @pytest.mark.parametrize("k", [0, -1, 4, 10, 1.5, True])
    def test_bad_k(self, k):
        with pytest.raises(ConfigurationError, match="'k'"):
            _knn(square, k)

    def test_arc(self):
        lng = [0.0, 1.0, 3.0, 179.0, -179.0]
        points = numpy.column_stack((lng, numpy.zeros(5)))
        areas = AreaCollection.from_points(points, metric="arc")
        # nearest across the antimeridian
        assert _knn(areas, 1) == ((1,), (0,), (1,), (4,), (3,))

    def test_build(self):
        areas = AreaCollection.from_points(square, ids=list("abcd"))
        nl = NeighborList.build(areas, "knn", k=1)
        assert nl.neighbors == {"a": ("b",), "b": ("a",), "c": ("a",), "d": ("b",)}
        assert nl.builder == "knn"
