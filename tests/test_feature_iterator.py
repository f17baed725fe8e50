import unittest

from shapely.geometry import Point, box

from topo_import.errors import AttributeFilterError
from topo_import.source.base import FieldDefn
from topo_import.source.iterator import (
    FeatureStreamIterator, INTERLEAVED, SEQUENTIAL, STATE_END_OF_LAYER, STATE_UNBOUND,
)
from topo_import.source.memory import MemorySource, compile_where


def make_source(interleaved=False):
    source = MemorySource(interleaved=interleaved)
    a = source.add_layer("a", [FieldDefn("kind", "str", 10)])
    b = source.add_layer("b", [FieldDefn("kind", "str", 10)])
    # records alternate between the layers on the shared cursor
    for i in range(3):
        source.add_feature(a, {"kind": "x" if i % 2 else "y"}, Point(i, i))
        source.add_feature(b, {"kind": "z"}, Point(10 + i, 10 + i))
    return source


class TestSequentialIterator(unittest.TestCase):
    def test_reads_layers_in_turn(self):
        source = make_source()
        it = FeatureStreamIterator(source)
        self.assertEqual(it.mode, SEQUENTIAL)
        fids_a = [f.fid for f in it.features(0, "a")]
        fids_b = [f.fid for f in it.features(1, "b")]
        self.assertEqual(fids_a, [0, 1, 2])
        self.assertEqual(fids_b, [0, 1, 2])

    def test_end_of_layer_is_sticky(self):
        source = make_source()
        it = FeatureStreamIterator(source)
        list(it.features(0, "a"))
        self.assertEqual(it.state, STATE_END_OF_LAYER)
        self.assertIsNone(it.next(0, "a"))
        self.assertIsNone(it.next(0, "a"))

    def test_reset_restarts_layer(self):
        source = make_source()
        it = FeatureStreamIterator(source)
        self.assertEqual(len(list(it.features(0, "a"))), 3)
        it.reset()
        self.assertEqual(it.state, STATE_UNBOUND)
        self.assertEqual(len(list(it.features(0, "a"))), 3)

    def test_filters_applied_on_bind(self):
        source = make_source()
        it = FeatureStreamIterator(source)
        features = list(it.features(0, "a", spatial_filter=box(-0.5, -0.5, 1.5, 1.5), attr_filter="kind = 'y'"))
        self.assertEqual([f.fid for f in features], [0])
        self.assertIsNotNone(source.spatial_filter(0))
        self.assertEqual(source.attribute_filter(0), "kind = 'y'")

    def test_bad_attribute_filter(self):
        source = make_source()
        it = FeatureStreamIterator(source)
        with self.assertRaises(AttributeFilterError):
            it.next(0, "a", attr_filter="missing = 1")


class TestInterleavedIterator(unittest.TestCase):
    def test_skips_other_layers(self):
        source = make_source(interleaved=True)
        it = FeatureStreamIterator(source)
        self.assertEqual(it.mode, INTERLEAVED)
        names = {f.layer_name for f in it.features(1, "b")}
        self.assertEqual(names, {"b"})

    def test_reset_rewinds_shared_cursor(self):
        source = make_source(interleaved=True)
        it = FeatureStreamIterator(source)
        it.reset()
        self.assertEqual(source.reading_resets, 1)
        self.assertEqual(len(list(it.features(0, "a"))), 3)
        # rebinding to another layer rewinds the shared cursor again
        self.assertEqual(len(list(it.features(1, "b"))), 3)

    def test_rebind_clears_other_filters(self):
        source = make_source(interleaved=True)
        it = FeatureStreamIterator(source)
        it.next(0, "a", spatial_filter=box(0, 0, 1, 1), attr_filter="kind = 'y'")
        it.next(1, "b")
        self.assertIsNone(source.spatial_filter(0))
        self.assertIsNone(source.attribute_filter(0))

    def test_filters_of_bound_layer(self):
        source = make_source(interleaved=True)
        it = FeatureStreamIterator(source)
        features = list(it.features(0, "a", attr_filter="kind = 'x'"))
        self.assertEqual([f.fid for f in features], [1])


class TestCompileWhere(unittest.TestCase):
    def test_and_clauses(self):
        predicate = compile_where("kind = 'a' AND size >= 2", ["kind", "size"])
        self.assertTrue(predicate({"kind": "a", "size": 3}))
        self.assertFalse(predicate({"kind": "a", "size": 1}))
        self.assertFalse(predicate({"kind": "a", "size": None}))

    def test_syntax_error(self):
        with self.assertRaises(AttributeFilterError):
            compile_where("kind LIKE 'a%'", ["kind"])


if __name__ == "__main__":
    unittest.main()
