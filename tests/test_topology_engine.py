import unittest

from shapely.geometry import LineString, Point

from topo_import.topology.shapely_engine import ShapelyTopologyEngine
from topo_import.vector.map import BOUNDARY, LINE, Cats, VectorMap


def ring(xmin, ymin, xmax, ymax):
    """Closed square starting (and ending) at its lower left corner."""
    return LineString([(xmin, ymin), (xmin, ymax), (xmax, ymax), (xmax, ymin), (xmin, ymin)])


class TestShapelyTopologyEngine(unittest.TestCase):
    def setUp(self):
        self.vmap = VectorMap("test")
        self.engine = ShapelyTopologyEngine(self.vmap)

    def add(self, coords, cats=None):
        geom = coords if isinstance(coords, LineString) else LineString(coords)
        return self.vmap.write_line(BOUNDARY, geom, Cats(cats or []))

    def test_snap(self):
        self.add([(0, 0), (1, 0)])
        second = self.add([(1.0000001, 0), (2, 0)])
        self.assertEqual(self.engine.snap(0.001), 1)
        self.assertEqual(self.vmap.line(second).geometry.coords[0], (1.0, 0.0))

    def test_break_lines_at_crossing(self):
        self.add([(0, 0), (2, 2)], [(1, 1)])
        self.add([(0, 2), (2, 0)], [(1, 2)])
        self.assertGreater(self.engine.break_lines(), 0)
        pieces = list(self.vmap.lines(BOUNDARY))
        self.assertEqual(len(pieces), 4)
        self.assertTrue(all(len(p.cats) == 1 for p in pieces))
        self.assertEqual(self.engine.break_lines(), 0)

    def test_remove_duplicates_merges_cats(self):
        self.add([(0, 0), (1, 0), (1, 1)], [(1, 1)])
        self.add([(1, 1), (1, 0), (0, 0)], [(1, 2)])
        self.assertEqual(self.engine.remove_duplicates(BOUNDARY), 1)
        remaining = list(self.vmap.lines(BOUNDARY))
        self.assertEqual(len(remaining), 1)
        self.assertEqual(remaining[0].cats, Cats([(1, 1), (1, 2)]))

    def test_clean_small_angles(self):
        self.add([(0, 0), (1, 0), (1, 1)])
        longer = self.add([(0, 0), (2, 0), (2, 1)])
        self.assertEqual(self.engine.clean_small_angles(), 1)
        self.assertEqual(list(self.vmap.line(longer).geometry.coords),
                         [(0, 0), (1, 0), (2, 0), (2, 1)])
        self.engine.break_lines()
        self.engine.remove_duplicates(BOUNDARY)
        self.assertEqual(self.engine.clean_small_angles(), 0)

    def test_merge_lines(self):
        first = self.add([(0, 0), (1, 0)], [(1, 1)])
        self.add([(1, 0), (2, 0)], [(1, 1)])
        self.add([(2, 0), (3, 0)], [(1, 2)])
        self.assertEqual(self.engine.merge_lines(), 1)
        self.assertEqual(list(self.vmap.line(first).geometry.coords), [(0, 0), (1, 0), (2, 0)])
        self.assertEqual(self.vmap.num_primitives(BOUNDARY), 2)

    def test_remove_dangles_iterates(self):
        self.add(ring(0, 0, 1, 1))
        self.add([(0, 0), (-1, -1)])
        self.add([(-1, -1), (-2, -2)])
        self.assertEqual(self.engine.remove_dangles(), 2)
        self.assertEqual(self.vmap.num_primitives(BOUNDARY), 1)

    def test_chtype_dangles(self):
        self.add(ring(0, 0, 1, 1))
        dangle = self.add([(0, 0), (-1, -1)])
        self.assertEqual(self.engine.chtype_dangles(), 1)
        self.assertEqual(self.vmap.line(dangle).type, LINE)

    def test_build_areas(self):
        self.add(ring(0, 0, 1, 1))
        self.add(ring(1, 0, 2, 1))
        self.engine.break_lines()
        self.assertEqual(self.engine.build_areas(), 2)
        self.assertEqual(self.engine.num_areas(), 2)
        for area_id in (1, 2):
            self.assertAlmostEqual(self.engine.area_area(area_id), 1.0)
            x, y = self.engine.point_in_area(area_id)
            self.assertTrue(self.engine.area(area_id).contains(Point(x, y)))

    def test_remove_bridges(self):
        self.add(ring(0, 0, 1, 1))
        self.add(ring(3, 0, 4, 1))
        # connects the start nodes of both rings
        self.add([(0, 0), (0, -1), (3, -1), (3, 0)])
        self.engine.build_areas()
        self.assertEqual(self.engine.remove_bridges(), 1)
        self.assertEqual(self.engine.build_areas(), 2)


if __name__ == "__main__":
    unittest.main()
