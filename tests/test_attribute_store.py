import sqlite3
import tempfile
import unittest
from pathlib import Path

import duckdb

from topo_import.attributes.schema import Column
from topo_import.attributes.store import (
    DuckDBAttributeStore, SQLiteAttributeStore, open_store, quote_identifier, store_database,
)
from topo_import.errors import PersistenceError

COLUMNS = [Column("cat", "INTEGER", -2, "int"), Column("name", "VARCHAR(20)", 0, "str")]


class TestSQLiteAttributeStore(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db = Path(self.tmpdir.name) / "map.sqlite"

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_create_insert_index(self):
        with SQLiteAttributeStore(self.db) as store:
            store.create_table("roads", COLUMNS)
            store.begin()
            store.insert("roads", [1, "main"])
            store.insert("roads", [2, None])
            store.commit()
            store.create_index("roads", "cat")

        conn = sqlite3.connect(str(self.db))
        rows = conn.execute("SELECT cat, name FROM roads ORDER BY cat").fetchall()
        indexes = [r[1] for r in conn.execute("PRAGMA index_list('roads')").fetchall()]
        conn.close()
        self.assertEqual(rows, [(1, "main"), (2, None)])
        self.assertIn("roads_cat", indexes)

    def test_duplicate_category_fails_on_index(self):
        with SQLiteAttributeStore(self.db) as store:
            store.create_table("roads", COLUMNS)
            store.insert("roads", [1, "a"])
            store.insert("roads", [1, "b"])
            with self.assertRaises(PersistenceError):
                store.create_index("roads", "cat")

    def test_existing_table(self):
        with SQLiteAttributeStore(self.db) as store:
            store.create_table("roads", COLUMNS)
            with self.assertRaises(PersistenceError):
                store.create_table("roads", COLUMNS)
            store.drop_table("roads")
            store.create_table("roads", COLUMNS)


class TestDuckDBAttributeStore(unittest.TestCase):
    def test_sibling_database(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "map.sqlite"
            self.assertEqual(store_database(output, "duckdb"), Path(tmpdir) / "map.sqlite.duckdb")
            self.assertEqual(store_database(output, "sqlite"), output)

            store = open_store(output, "duckdb")
            self.assertIsInstance(store, DuckDBAttributeStore)
            store.create_table("roads", COLUMNS)
            store.begin()
            store.insert("roads", [1, "main"])
            store.commit()
            store.create_index("roads", "cat")
            store.close()

            con = duckdb.connect(str(store_database(output, "duckdb")))
            rows = con.execute("SELECT cat, name FROM roads").fetchall()
            con.close()
            self.assertEqual(rows, [(1, "main")])

    def test_unknown_driver(self):
        with self.assertRaises(PersistenceError):
            open_store("x.sqlite", "postgres")


def test_quote_identifier():
    assert quote_identifier('a"b') == '"a""b"'


if __name__ == "__main__":
    unittest.main()
