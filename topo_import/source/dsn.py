"""
dsn.py - Normalize datasource names before handing them to fiona.
"""

import os
from pathlib import Path

from topo_import.errors import SourceError

# Prefixes fiona/OGR resolve themselves
_PASSTHROUGH_PREFIXES = ("PG:", "zip://", "/vsi", "http://", "https://", "s3://")


def get_datasource_name(dsn: str, check_exists: bool = True) -> str:
    """
    Turn a user supplied input into something fiona can open.

    Database connection strings and virtual paths are returned as is,
    zip archives are wrapped into a zip:// path, and plain files or
    directories must exist when check_exists is set.
    """
    dsn = dsn.strip()
    if not dsn:
        raise SourceError("Empty data source name")
    if dsn.startswith(_PASSTHROUGH_PREFIXES):
        return dsn

    path = Path(os.path.expanduser(dsn))
    if check_exists and not path.exists():
        raise SourceError(f"Data source <{dsn}> does not exist")
    if path.suffix.lower() == ".zip":
        return f"zip://{path}"
    return str(path)
