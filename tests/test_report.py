import math
import unittest

from shapely.geometry import Point

from topo_import.pipeline.context import RunContext
from topo_import.pipeline.report import estimate_snap_range, topology_diagnostics, write_area_history
from topo_import.vector.map import CENTROID, Cats, VectorMap


def map_with_centroids(n, coord=1000.0):
    vmap = VectorMap("test")
    for i in range(n):
        vmap.write_line(CENTROID, Point(coord - i, coord - i), Cats([(1, i + 1)]))
    return vmap


class TestSnapRange(unittest.TestCase):
    def test_thousand(self):
        low, high = estimate_snap_range(1000)
        self.assertTrue(math.isclose(low, 1e-12))
        self.assertTrue(math.isclose(high, 1e-3))

    def test_zero_coordinate(self):
        low, high = estimate_snap_range(0)
        self.assertEqual((low, high), estimate_snap_range(1.0))
        self.assertLess(low, high)


class TestDiagnostics(unittest.TestCase):
    def test_lost_polygons(self):
        ctx = RunContext(n_polygons=3)
        messages = topology_diagnostics(map_with_centroids(2), ctx, 1, -1)
        self.assertIn("1 input polygons got lost during import.", messages)
        self.assertIn("The input could be cleaned by snapping vertices to each other.", messages)

    def test_additional_areas_with_snap(self):
        ctx = RunContext(n_polygons=1)
        messages = topology_diagnostics(map_with_centroids(2), ctx, 1, 0.5)
        self.assertIn("1 additional areas were created during import.", messages)
        self.assertIn("The snapping threshold 0.5 might be too large.", messages)

    def test_overlaps_suggest_snapping(self):
        ctx = RunContext(n_polygons=2, n_overlaps=1)
        messages = topology_diagnostics(map_with_centroids(2), ctx, 1, -1)
        self.assertIn("Some input polygons are overlapping each other.", messages)
        self.assertIn("Try to import again, snapping with at least 1e-12: 'snap=1e-12'", messages)

    def test_overlaps_with_snap_in_range(self):
        ctx = RunContext(n_polygons=2, n_overlaps=1)
        messages = topology_diagnostics(map_with_centroids(2), ctx, 1, 1e-6)
        self.assertIn("Try to import again, snapping with 1e-05: 'snap=1e-05'", messages)

    def test_silent_cases(self):
        self.assertEqual(topology_diagnostics(map_with_centroids(2), RunContext(n_polygons=2), 1, -1), [])
        self.assertEqual(topology_diagnostics(map_with_centroids(1), RunContext(n_polygons=2), 2, -1), [])
        self.assertEqual(topology_diagnostics(map_with_centroids(1), RunContext(), 1, -1), [])


def test_write_area_history():
    vmap = VectorMap("test")
    ctx = RunContext(n_polygons=4, n_areas=3, total_area=12.5, n_overlaps=1, overlap_area=2.0,
                     clean_converged=False, clean_iterations=5)
    write_area_history(vmap, ctx)
    assert "4 input polygons" in vmap.history
    assert "Total area: 12.5 (3 areas)" in vmap.history
    assert "Overlapping area: 2 (1 areas)" in vmap.history
    assert "Area without category: 0 (0 areas)" in vmap.history
    assert "Boundary cleaning stopped after 5 iterations" in vmap.history


if __name__ == "__main__":
    unittest.main()
