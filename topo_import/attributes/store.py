"""
store.py - Attribute stores holding one table per imported layer.

Two drivers are available:
- sqlite: tables live in the output SQLite file next to the vector map
- duckdb: tables live in a sibling <output>.duckdb database

Each layer is written inside one transaction. The unique index on the key
column is created after all rows are in, so duplicate categories fail there.
"""

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Sequence, Union

import duckdb

from topo_import.errors import PersistenceError
from topo_import.utils.logger import get_logger
from .schema import Column

logger = get_logger()


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class AttributeStore(ABC):
    driver: str = ""

    def __init__(self, database: Union[str, Path]):
        self.database = str(database)

    def create_table(self, table: str, columns: Sequence[Column]) -> None:
        col_defs = ", ".join(f"{quote_identifier(c.name)} {c.sql_type}" for c in columns)
        sql = f"CREATE TABLE {quote_identifier(table)} ({col_defs})"
        logger.debug(sql)
        try:
            self._execute(sql)
        except PersistenceError as e:
            raise PersistenceError(f"Unable to create table: '{sql}': {e}")

    def drop_table(self, table: str) -> None:
        self._execute(f"DROP TABLE IF EXISTS {quote_identifier(table)}")

    def insert(self, table: str, values: Sequence[Any]) -> None:
        placeholders = ", ".join("?" for _ in values)
        sql = f"INSERT INTO {quote_identifier(table)} VALUES ({placeholders})"
        try:
            self._execute(sql, list(values))
        except PersistenceError as e:
            raise PersistenceError(f"Cannot insert new row into table <{table}>: {e}")

    def create_index(self, table: str, key: str) -> None:
        """Unique index on the key column; fails on duplicate categories."""
        sql = (
            f"CREATE UNIQUE INDEX {quote_identifier(table + '_' + key)} "
            f"ON {quote_identifier(table)} ({quote_identifier(key)})"
        )
        try:
            self._execute(sql)
        except PersistenceError as e:
            raise PersistenceError(f"Unable to create index for table <{table}>, key <{key}>: {e}")

    @abstractmethod
    def _execute(self, sql: str, params=None) -> None:
        ...

    @abstractmethod
    def begin(self) -> None:
        ...

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class SQLiteAttributeStore(AttributeStore):
    driver = "sqlite"

    def __init__(self, database: Union[str, Path]):
        super().__init__(database)
        try:
            # autocommit, transactions are explicit
            self.conn = sqlite3.connect(self.database, isolation_level=None)
        except sqlite3.Error as e:
            raise PersistenceError(f"Unable to open database <{self.database}> by driver <sqlite>: {e}")

    def _execute(self, sql: str, params=None) -> None:
        try:
            if params is None:
                self.conn.execute(sql)
            else:
                self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise PersistenceError(str(e))

    def begin(self) -> None:
        self._execute("BEGIN")

    def commit(self) -> None:
        self._execute("COMMIT")

    def close(self) -> None:
        self.conn.close()


class DuckDBAttributeStore(AttributeStore):
    driver = "duckdb"

    def __init__(self, database: Union[str, Path]):
        super().__init__(database)
        try:
            self.con = duckdb.connect(self.database)
        except duckdb.Error as e:
            raise PersistenceError(f"Unable to open database <{self.database}> by driver <duckdb>: {e}")

    def _execute(self, sql: str, params=None) -> None:
        try:
            if params is None:
                self.con.execute(sql)
            else:
                self.con.execute(sql, params)
        except duckdb.Error as e:
            raise PersistenceError(str(e))

    def begin(self) -> None:
        try:
            self.con.begin()
        except duckdb.Error as e:
            raise PersistenceError(str(e))

    def commit(self) -> None:
        try:
            self.con.commit()
        except duckdb.Error as e:
            raise PersistenceError(str(e))

    def close(self) -> None:
        self.con.close()


def store_database(output: Union[str, Path], driver: str) -> Path:
    output = Path(output)
    if driver == "duckdb":
        return output.with_suffix(output.suffix + ".duckdb")
    return output


def open_store(output: Union[str, Path], driver: str) -> AttributeStore:
    """Open the attribute store that belongs to an output map."""
    database = store_database(output, driver)
    if driver == "sqlite":
        return SQLiteAttributeStore(database)
    if driver == "duckdb":
        return DuckDBAttributeStore(database)
    raise PersistenceError(f"Unknown attribute store driver <{driver}>")
