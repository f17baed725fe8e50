import datetime
import unittest

from topo_import.attributes.schema import (
    KEY_FID, KEY_GENERATED, build_table_columns, format_list, format_value, resolve_key_column,
    row_values, sanitize_column_name, table_name,
)
from topo_import.errors import ConfigurationError
from topo_import.source.base import FieldDefn, LayerDefn


def parcels_defn():
    return LayerDefn(
        name="parcels",
        fields=[
            FieldDefn("parcel_id", "int"),
            FieldDefn("Owner Name", "str", 40),
            FieldDefn("note", "str", 0),
            FieldDefn("cat", "int64"),
            FieldDefn("tags", "List[str]"),
            FieldDefn("blob", "bytes"),
            FieldDefn("area", "float"),
            FieldDefn("surveyed", "date"),
        ],
        fid_column="ogc_fid",
    )


class TestKeyColumn(unittest.TestCase):
    def test_generated_by_default(self):
        key = resolve_key_column(parcels_defn(), None)
        self.assertEqual(key.name, "cat")
        self.assertEqual(key.index, KEY_GENERATED)
        self.assertTrue(key.generated)

    def test_integer_field(self):
        key = resolve_key_column(parcels_defn(), "parcel_id")
        self.assertEqual(key.index, 0)
        self.assertFalse(key.generated)

    def test_fid_column(self):
        key = resolve_key_column(parcels_defn(), "ogc_fid")
        self.assertEqual(key.index, KEY_FID)
        self.assertTrue(key.from_fid)

    def test_missing_or_non_integer(self):
        for bad in ("nope", "note"):
            with self.subTest(key=bad):
                with self.assertRaises(ConfigurationError):
                    resolve_key_column(parcels_defn(), bad)


class TestTableColumns(unittest.TestCase):
    def test_generated_key_columns(self):
        defn = parcels_defn()
        columns = build_table_columns(defn, resolve_key_column(defn, None))
        names = [c.name for c in columns]
        self.assertEqual(names, ["cat", "parcel_id", "Owner_Name", "note", "cat_", "tags", "area", "surveyed"])
        types = {c.name: c.sql_type for c in columns}
        self.assertEqual(types["cat"], "INTEGER")
        self.assertEqual(types["Owner_Name"], "VARCHAR(40)")
        self.assertEqual(types["note"], "VARCHAR(255)")
        self.assertEqual(types["tags"], "VARCHAR(255)")
        self.assertEqual(types["area"], "DOUBLE PRECISION")
        self.assertEqual(types["surveyed"], "DATE")

    def test_key_field_is_not_repeated(self):
        defn = parcels_defn()
        columns = build_table_columns(defn, resolve_key_column(defn, "parcel_id"), tolower=True)
        names = [c.name for c in columns]
        self.assertEqual(names[0], "parcel_id")
        self.assertEqual(names.count("parcel_id"), 1)
        self.assertIn("owner_name", names)

    def test_key_name_clash_ignores_case(self):
        defn = LayerDefn("t", [FieldDefn("CAT", "int"), FieldDefn("x", "float")])
        columns = build_table_columns(defn, resolve_key_column(defn, None))
        self.assertEqual([c.name for c in columns], ["cat", "CAT_", "x"])

        defn = LayerDefn("t", [FieldDefn("Cat", "int")])
        columns = build_table_columns(defn, resolve_key_column(defn, None), tolower=True)
        self.assertEqual([c.name for c in columns], ["cat", "cat_"])

    def test_key_name_clash_with_renamed_key(self):
        defn = LayerDefn("t", [FieldDefn("ID", "int"), FieldDefn("cat", "int")])
        columns = build_table_columns(defn, resolve_key_column(defn, None), column_names=["id"])
        self.assertEqual([c.name for c in columns], ["id", "ID_", "cat"])

    def test_duckdb_types(self):
        defn = LayerDefn("t", [FieldDefn("n", "int64"), FieldDefn("when", "datetime"), FieldDefn("x", "float")])
        columns = build_table_columns(defn, resolve_key_column(defn, None), driver="duckdb")
        self.assertEqual([c.sql_type for c in columns], ["INTEGER", "BIGINT", "TIMESTAMP", "DOUBLE"])

    def test_explicit_column_names(self):
        defn = LayerDefn("t", [FieldDefn("a", "int"), FieldDefn("b", "str", 5)])
        columns = build_table_columns(defn, resolve_key_column(defn, None), column_names=["id", "first"])
        self.assertEqual([c.name for c in columns], ["id", "first", "b"])


class TestValues(unittest.TestCase):
    def test_format_value(self):
        self.assertIsNone(format_value(None, "str"))
        self.assertIsNone(format_value("", "str"))
        self.assertEqual(format_value("2001/10/21", "date"), "2001-10-21")
        self.assertEqual(format_value(datetime.date(2001, 10, 21), "date"), "2001-10-21")
        self.assertEqual(format_value(True, "bool"), 1)
        self.assertEqual(format_value(["a", "b"], "List[str]"), "(2:a,b)")
        self.assertEqual(format_value(2.5, "float"), 2.5)

    def test_format_list(self):
        self.assertEqual(format_list([1, 2, 3]), "(3:1,2,3)")

    def test_row_values(self):
        defn = LayerDefn("t", [FieldDefn("a", "int"), FieldDefn("b", "str", 5), FieldDefn("c", "bytes")])
        columns = build_table_columns(defn, resolve_key_column(defn, None))
        self.assertEqual(row_values({"a": 4, "b": "", "c": b"x"}, defn, columns, 7), [7, 4, None])

    def test_names(self):
        self.assertEqual(table_name("roads", 0, 1), "roads")
        self.assertEqual(table_name("roads", 1, 3), "roads_2")
        self.assertEqual(sanitize_column_name("1st-name"), "x1st_name")


if __name__ == "__main__":
    unittest.main()
