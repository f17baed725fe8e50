"""
topo_import: import vector features into a topologically clean SQLite vector map.

Main entry point: topo_cli.py (see CLI usage)

Packages:
	- source: feature sources (fiona/OGR, in-memory) and the feature stream iterator
	- attributes: attribute table schema translation and stores (sqlite3, duckdb)
	- vector: in-memory vector map, geometry decomposition, SQLite writer
	- topology: topology engine interface and the shapely engine
	- pipeline: survey, schema, ingestion, cleaning and centroid passes

For CLI usage, run:
	python -m topo_import --help
"""

__version__ = "0.3.0"
