from pathlib import Path

db_path = Path((__file__)).parent.parent / "database"

DEFAULT_REGION_FILE = db_path / "region.json"

# Import defaults
MIN_AREA_DEFAULT = 0.0001
SNAP_DEFAULT = -1.0

# Boundary splitting: split_distance = sqrt(extent area) / ln(n boundaries) / SPLIT_DIVISOR
# increase the divisor to decrease split_distance
SPLIT_DIVISOR = 16.0
SPLIT_MIN_BOUNDARIES = 50

# Attribute tables
KEY_COLUMN = "cat"
LIST_COLUMN_WIDTH = 255
STRING_DEFAULT_WIDTH = 255
DEFAULT_DRIVER = "sqlite"
SUPPORTED_DRIVERS = ("sqlite", "duckdb")

# Sources that only expose one cursor shared by all layers
INTERLEAVED_DRIVERS = ("OSM", "GMLAS")

# Drivers honouring the encoding option
ENCODING_DRIVERS = ("ESRI Shapefile", "DXF")

# Name of the feature id column exposed by database backed drivers
FID_COLUMNS = {"GPKG": "fid"}
