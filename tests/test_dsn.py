import tempfile
import unittest
from pathlib import Path

from topo_import.errors import SourceError
from topo_import.source.dsn import get_datasource_name


class TestDatasourceName(unittest.TestCase):
    def test_passthrough(self):
        for dsn in ("PG:dbname=gis", "/vsizip/data.zip/roads.shp", "https://example.com/a.geojson"):
            with self.subTest(dsn=dsn):
                self.assertEqual(get_datasource_name(dsn), dsn)

    def test_zip_archive(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            archive = Path(tmpdir) / "shapes.zip"
            archive.write_bytes(b"")
            self.assertEqual(get_datasource_name(str(archive)), f"zip://{archive}")

    def test_existing_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(get_datasource_name(tmpdir), str(Path(tmpdir)))

    def test_missing_path(self):
        with self.assertRaises(SourceError):
            get_datasource_name("/nonexistent/roads.shp")
        self.assertEqual(get_datasource_name("/nonexistent/roads.shp", check_exists=False), "/nonexistent/roads.shp")

    def test_empty(self):
        with self.assertRaises(SourceError):
            get_datasource_name("  ")


if __name__ == "__main__":
    unittest.main()
