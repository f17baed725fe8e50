import unittest

from topo_import.errors import ConfigurationError
from topo_import.filters import (
    EMPTY_EXTENT, build_spatial_filters, extent_is_valid, fetch_layer_extents, parse_spatial,
    rectangle_filter, union_extent,
)
from topo_import.source.memory import MemorySource
from shapely.geometry import Point


class TestRectangle(unittest.TestCase):
    def test_ring_order(self):
        ring = list(rectangle_filter((0, 1, 2, 3)).exterior.coords)
        self.assertEqual(ring, [(0, 1), (0, 3), (2, 3), (2, 1), (0, 1)])

    def test_parse_spatial(self):
        self.assertEqual(parse_spatial("0,1,2,3"), (0.0, 1.0, 2.0, 3.0))
        self.assertEqual(parse_spatial([0, 1, 2, 3]), (0.0, 1.0, 2.0, 3.0))
        for bad in ("0,1,2", "2,0,1,3", "0,3,1,2", "a,b,c,d"):
            with self.subTest(value=bad):
                with self.assertRaises(ConfigurationError):
                    parse_spatial(bad)

    def test_union_extent_ignores_empty(self):
        self.assertFalse(extent_is_valid(EMPTY_EXTENT))
        self.assertEqual(union_extent(EMPTY_EXTENT, (0, 0, 1, 1)), (0, 0, 1, 1))
        self.assertEqual(union_extent((0, 0, 1, 1), (2, -1, 3, 0)), (0, -1, 3, 1))


class TestBuildSpatialFilters(unittest.TestCase):
    def test_layer_extents_only(self):
        result = build_spatial_filters([(0, 0, 1, 1), (5, 5, 6, 6)], ["a", "b"])
        self.assertTrue(result.active)
        self.assertEqual(result.for_layer(0).bounds, (0, 0, 1, 1))
        self.assertEqual(result.extent, (0, 0, 6, 6))

    def test_rectangle_clips_layer_extent(self):
        result = build_spatial_filters([(0, 0, 10, 10)], ["a"], spatial="5,5,20,20")
        self.assertEqual(result.for_layer(0).bounds, (5, 5, 10, 10))
        self.assertEqual(result.extent, (5, 5, 10, 10))

    def test_rectangle_outside_layer(self):
        with self.assertLogs("topo_import", level="WARNING") as logs:
            result = build_spatial_filters([(0, 0, 1, 1)], ["a"], spatial="5,5,6,6")
        self.assertIn("Nothing to import", logs.output[0])
        self.assertEqual(result.for_layer(0).bounds, (5, 5, 6, 6))

    def test_layer_without_extent_uses_rectangle(self):
        result = build_spatial_filters([None], ["a"], region={"west": 0, "south": 0, "east": 2, "north": 3})
        self.assertEqual(result.for_layer(0).bounds, (0, 0, 2, 3))
        self.assertEqual(result.extent, (0, 0, 2, 3))

    def test_no_filters(self):
        result = build_spatial_filters([None, None], ["a", "b"])
        self.assertFalse(result.active)
        self.assertIsNone(result.for_layer(1))
        self.assertEqual(result.extent, EMPTY_EXTENT)

    def test_region_and_spatial_conflict(self):
        with self.assertRaises(ConfigurationError):
            build_spatial_filters([None], ["a"], region={"west": 0, "south": 0, "east": 1, "north": 1},
                                  spatial="0,0,1,1")


def test_fetch_layer_extents_resets_interleaved_source():
    source = MemorySource(interleaved=True)
    a = source.add_layer("a")
    b = source.add_layer("b", report_extent=False)
    source.add_feature(a, geometry=Point(1, 2))
    source.add_feature(a, geometry=Point(3, 4))
    source.add_feature(b, geometry=Point(0, 0))

    extents = fetch_layer_extents(source, [0, 1])
    assert extents == [(1, 2, 3, 4), None]
    assert source.reading_resets == 1


if __name__ == "__main__":
    unittest.main()
