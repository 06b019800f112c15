import geopandas
import numpy as np
import pandas as pd
import pytest
import shapely

from areal.cg import AreaCollection
from areal.common import ConfigurationError, TopologyError

square = [(0, 0), (1, 0), (1, 1), (0, 1)]
closed_square = square + [(0, 0)]
right = [(1, 0), (2, 0), (2, 1), (1, 1)]


class TestAreaCollection:
    def setup_method(self):
        self.areas = AreaCollection([closed_square, right], ids=["a", "b"])

    def test_rings(self):
        a = self.areas["a"]
        assert a.id == "a"
        assert a.kind == "polygon"
        assert len(a.rings) == 1
        # the closing vertex is dropped
        assert a.rings[0].shape == (4, 2)
        assert not a.rings[0].flags.writeable

    def test_centroids(self):
        np.testing.assert_allclose(self.areas.centroids, [[0.5, 0.5], [1.5, 0.5]])
        assert not self.areas.centroids.flags.writeable

    def test_attributes(self):
        assert self.areas.n == 2
        assert len(self.areas) == 2
        pd.testing.assert_index_equal(self.areas.ids, pd.Index(["a", "b"]))
        assert self.areas.kinds == ("polygon", "polygon")
        assert self.areas.is_polygonal
        assert self.areas.metric == "euclidean"
        assert self.areas.bounds == (0.0, 0.0, 2.0, 1.0)
        assert [unit.id for unit in self.areas] == ["a", "b"]
        assert "2 polygon units" in repr(self.areas)

    def test_default_ids(self):
        areas = AreaCollection([square, right])
        pd.testing.assert_index_equal(areas.ids, pd.RangeIndex(2))

    def test_shapely(self):
        hole = [(0.25, 0.25), (0.75, 0.25), (0.75, 0.75), (0.25, 0.75)]
        donut = shapely.Polygon(square, holes=[hole])
        multi = shapely.MultiPolygon([shapely.Polygon(square), shapely.Polygon(right)])
        areas = AreaCollection([donut, multi, shapely.Point(5, 5)])

        assert len(areas.rings[0]) == 2
        assert len(areas.rings[1]) == 2
        assert areas.kinds == ("polygon", "polygon", "point")
        assert not areas.is_polygonal
        np.testing.assert_allclose(areas.centroids[1], [1.0, 0.5])
        np.testing.assert_allclose(areas.centroids[2], [5.0, 5.0])

    def test_list_of_rings(self):
        areas = AreaCollection([[square, [(3, 0), (4, 0), (4, 1)]]])
        assert len(areas.rings[0]) == 2
        # area-weighted over both parts
        expected = (np.array([0.5, 0.5]) * 1.0 + np.array([11 / 3, 1 / 3]) * 0.5) / 1.5
        np.testing.assert_allclose(areas.centroids[0], expected)

    def test_ring_with_hole(self):
        outer = [(0, 0), (4, 0), (4, 4), (0, 4)]
        hole = [(0.5, 0.5), (1.5, 0.5), (1.5, 1.5), (0.5, 1.5)]
        areas = AreaCollection([[outer, hole]])
        expected = (np.array([2.0, 2.0]) * 16 - np.array([1.0, 1.0]) * 1) / 15
        np.testing.assert_allclose(areas.centroids[0], expected)
        with_shapely = AreaCollection([shapely.Polygon(outer, [hole])])
        np.testing.assert_allclose(areas.centroids, with_shapely.centroids)

    def test_geopandas(self):
        gs = geopandas.GeoSeries(
            [shapely.Polygon(square), shapely.Polygon(right)], index=[10, 20]
        )
        areas = AreaCollection(gs)
        pd.testing.assert_index_equal(areas.ids, pd.Index([10, 20]))

        gdf = geopandas.GeoDataFrame({"v": [1, 2]}, geometry=gs, index=gs.index)
        areas = AreaCollection(gdf, ids=["x", "y"])
        pd.testing.assert_index_equal(areas.ids, pd.Index(["x", "y"]))

    def test_from_points(self):
        points = np.array([[0.0, 0.0], [1.0, 2.0], [3.0, 1.0]])
        areas = AreaCollection.from_points(points)
        assert areas.kinds == ("point",) * 3
        assert areas.rings == ((), (), ())
        np.testing.assert_array_equal(areas.centroids, points)

    def test_arc(self):
        areas = AreaCollection.from_points([[0, 0], [1, 1]], metric="arc", radius=1.0)
        assert areas.metric == "arc"
        assert areas.radius == 1.0

    def test_duplicated_ids(self):
        with pytest.raises(ValueError, match="need to be unique"):
            AreaCollection([square, right], ids=["a", "a"])

    def test_ids_length(self):
        with pytest.raises(ValueError, match="does not match"):
            AreaCollection([square, right], ids=["a"])

    @pytest.mark.parametrize(
        "ring",
        [
            [(0, 0), (1, 1), (2, 2)],
            [(0, 0), (1, 0)],
            [(0, 0), (1, 0), (1, 0), (0, 0)],
        ],
        ids=["collinear", "two vertices", "repeated vertices"],
    )
    def test_degenerate_ring(self, ring):
        with pytest.raises(TopologyError, match="Unit 'bad'"):
            AreaCollection([square, ring], ids=["ok", "bad"])

    def test_unsupported_shapely(self):
        with pytest.raises(TopologyError, match="LineString"):
            AreaCollection([shapely.LineString([(0, 0), (1, 1)])])
        with pytest.raises(TopologyError, match="empty"):
            AreaCollection([shapely.Polygon()])

    def test_bad_options(self):
        with pytest.raises(ConfigurationError, match="'metric'"):
            AreaCollection([square], metric="manhattan")
        with pytest.raises(ConfigurationError, match="'epsilon'"):
            AreaCollection([square], epsilon=-1)
        with pytest.raises(ConfigurationError, match="'radius'"):
            AreaCollection([square], radius=0)

    def test_bad_coordinate_array(self):
        with pytest.raises(ValueError, match=r"shape \(n, 2\)"):
            AreaCollection(np.zeros((3, 3)))
