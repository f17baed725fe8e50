import math
import unittest

from shapely.geometry import LineString, MultiPolygon, Point, Polygon, box

from topo_import.filters import SpatialFilterSet
from topo_import.pipeline.context import RunContext
from topo_import.pipeline.options import ImportOptions
from topo_import.pipeline.survey import compute_split_distance, survey_layers
from topo_import.source.iterator import FeatureStreamIterator
from topo_import.source.memory import MemorySource
from topo_import.vector.map import BOUNDARY


class TestSplitDistance(unittest.TestCase):
    def test_many_boundaries(self):
        self.assertAlmostEqual(compute_split_distance(200, (0, 0, 10, 10)), 10 / math.log(200) / 16)

    def test_few_boundaries_disable_splitting(self):
        self.assertEqual(compute_split_distance(10, (0, 0, 10, 10)), -1)
        self.assertEqual(compute_split_distance(50, (0, 0, 10, 10)), -1)

    def test_no_clean_or_empty_extent(self):
        self.assertEqual(compute_split_distance(200, (0, 0, 10, 10), no_clean=True), -1)
        self.assertEqual(compute_split_distance(200, (1, 1, 0, 0)), -1)
        self.assertEqual(compute_split_distance(200, (0, 0, 0, 10)), -1)


class TestSurveyLayers(unittest.TestCase):
    def setUp(self):
        self.source = MemorySource()
        polys = self.source.add_layer("polys")
        lines = self.source.add_layer("lines")
        holed = Polygon([(0, 0), (0, 4), (4, 4), (4, 0)], [[(1, 1), (1, 2), (2, 2), (2, 1)]])
        self.source.add_feature(polys, geometry=holed)
        self.source.add_feature(polys, geometry=MultiPolygon([box(5, 5, 6, 6), box(7, 7, 8, 8)]))
        self.source.add_feature(polys, geometry=None)
        self.source.add_feature(lines, geometry=LineString([(0, 0, 1), (1, 1, 2)]))
        self.source.add_feature(lines, geometry=Point(3, 3))

    def survey(self, **kwargs):
        ctx = RunContext()
        survey_layers(FeatureStreamIterator(self.source), self.source, [0, 1], ["polys", "lines"],
                      SpatialFilterSet(filters=[None, None]), ImportOptions(**kwargs), ctx)
        return ctx

    def test_counts(self):
        ctx = self.survey()
        self.assertEqual(ctx.n_polygons, 3)
        self.assertEqual(ctx.n_polygon_boundaries, 4)
        self.assertEqual(ctx.n_features, [3, 2])
        self.assertTrue(ctx.input3d)
        self.assertEqual(ctx.split_distance, -1)

    def test_lines_counted_as_boundaries(self):
        ctx = self.survey(type_mask=BOUNDARY)
        self.assertEqual(ctx.n_polygon_boundaries, 5)

    def test_polygons_counted_without_cleaning(self):
        ctx = self.survey(no_clean=True)
        self.assertEqual(ctx.n_polygons, 3)


if __name__ == "__main__":
    unittest.main()
