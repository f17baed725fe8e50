"""
writer.py - Persist a VectorMap into its SQLite output file.

The storage schema lives in sql/create.sql and sql/index.sql, executed with
executescript(). Geometries are stored as WKB, categories in a side table.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Union

from topo_import.errors import ConfigurationError, PersistenceError
from topo_import.utils.logger import get_logger
from .map import VectorMap

logger = get_logger()

MODULE_DIR = Path(__file__).parent
SQL_DIR = MODULE_DIR / "sql"


def _sidecar_files(db_path: Path):
    return [
        db_path.with_suffix(db_path.suffix + "-wal"),
        db_path.with_suffix(db_path.suffix + "-shm"),
    ]


def prepare_output(db_path: Union[str, Path], overwrite: bool = False) -> Path:
    """
    Make sure the output file can be written.

    Raises:
        ConfigurationError: the output exists and overwrite is not set
    """
    db_path = Path(db_path)
    if db_path.exists():
        if not overwrite:
            raise ConfigurationError(
                f"Output <{db_path}> already exists, use --overwrite to replace it"
            )
        logger.info(f"Removing existing output {db_path}")
        db_path.unlink()
        for sidecar in _sidecar_files(db_path):
            if sidecar.exists():
                sidecar.unlink()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def _run_script(conn: sqlite3.Connection, name: str) -> None:
    with open(SQL_DIR / name, "r") as f:
        conn.executescript(f.read())


def write_map(vmap: VectorMap, db_path: Union[str, Path]) -> int:
    """
    Write all live primitives, categories, links and history.

    Returns:
        Number of primitives written
    """
    bbox = vmap.bbox() or {}
    conn = sqlite3.connect(str(db_path))
    try:
        _run_script(conn, "create.sql")
        cur = conn.cursor()
        cur.execute("DELETE FROM vector_meta WHERE name = ?", (vmap.name,))
        cur.execute(
            "INSERT INTO vector_meta (name, with_z, crs_wkt, north, south, east, west, created) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                vmap.name,
                1 if vmap.with_z else 0,
                vmap.crs_wkt,
                bbox.get("north"),
                bbox.get("south"),
                bbox.get("east"),
                bbox.get("west"),
                datetime.now().isoformat(timespec="seconds"),
            ),
        )

        n = 0
        prim_rows = []
        cat_rows = []
        for prim in vmap.lines():
            n += 1
            prim_rows.append((n, prim.type, prim.geometry.wkb))
            cat_rows.extend((n, layer, cat) for layer, cat in prim.cats)
        cur.executemany("INSERT INTO vector_primitive (id, type, geometry) VALUES (?, ?, ?)", prim_rows)
        cur.executemany("INSERT INTO vector_cat (primitive_id, field, cat) VALUES (?, ?, ?)", cat_rows)

        cur.executemany(
            "INSERT INTO vector_dblink (field, name, table_name, key_column, database, driver) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [(l.field, l.name, l.table, l.key, l.database, l.driver) for l in vmap.dblinks],
        )
        cur.executemany("INSERT INTO vector_history (line) VALUES (?)", [(h,) for h in vmap.history])

        _run_script(conn, "index.sql")
        conn.commit()
    except sqlite3.Error as e:
        raise PersistenceError(f"Unable to write vector map <{vmap.name}> to {db_path}: {e}")
    finally:
        conn.close()

    logger.debug(f"Wrote {n} primitives of <{vmap.name}> to {db_path}")
    return n
