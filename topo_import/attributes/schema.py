"""
schema.py - Translate source layer schemas into attribute table columns.

Every table starts with the integer key column, followed by one column per
supported source field. Source field names are turned into SQL friendly
names ([A-Za-z][A-Za-z0-9_]*), and values are converted to what the
column type expects.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from topo_import import config
from topo_import.errors import ConfigurationError
from topo_import.source import base
from topo_import.source.base import FieldDefn, LayerDefn
from topo_import.utils.logger import get_logger

logger = get_logger()

# Source field type -> SQL column type, per attribute store driver.
# Strings are sized from the field width, list types use LIST_COLUMN_WIDTH.
FIELD_TYPE_MAP = {
    "sqlite": {
        base.FIELD_INTEGER: "INTEGER",
        base.FIELD_BOOLEAN: "INTEGER",
        base.FIELD_INTEGER64: "INTEGER",
        base.FIELD_REAL: "DOUBLE PRECISION",
        base.FIELD_DATE: "DATE",
        base.FIELD_TIME: "TIME",
        base.FIELD_DATETIME: "DATETIME",
        base.FIELD_STRING: "VARCHAR",
    },
    "duckdb": {
        base.FIELD_INTEGER: "INTEGER",
        base.FIELD_BOOLEAN: "INTEGER",
        base.FIELD_INTEGER64: "BIGINT",
        base.FIELD_REAL: "DOUBLE",
        base.FIELD_DATE: "DATE",
        base.FIELD_TIME: "TIME",
        base.FIELD_DATETIME: "TIMESTAMP",
        base.FIELD_STRING: "VARCHAR",
    },
}

# key column position markers
KEY_GENERATED = -2
KEY_FID = -1


@dataclass
class KeyColumn:
    """Where categories come from: generated, the FID, or a source field."""
    name: str
    index: int = KEY_GENERATED

    @property
    def generated(self) -> bool:
        return self.index == KEY_GENERATED

    @property
    def from_fid(self) -> bool:
        return self.index == KEY_FID


@dataclass
class Column:
    name: str
    sql_type: str
    field_index: int
    field_type: str


def sanitize_column_name(name: str) -> str:
    """Change a column name to [A-Za-z][A-Za-z0-9_]*."""
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned or not cleaned[0].isalpha():
        cleaned = "x" + cleaned
    return cleaned


def resolve_key_column(defn: LayerDefn, key: Optional[str]) -> KeyColumn:
    """
    Decide which column supplies categories for a layer.

    Raises:
        ConfigurationError: key field missing or not integer
    """
    if not key:
        return KeyColumn(name=config.KEY_COLUMN, index=KEY_GENERATED)

    if defn.fid_column and defn.fid_column == key:
        return KeyColumn(name=defn.fid_column, index=KEY_FID)

    index = defn.field_index(key)
    if index < 0:
        raise ConfigurationError(f"Key column '{key}' not found in input layer <{defn.name}>")
    fdefn = defn.fields[index]
    if fdefn.type not in base.INTEGER_TYPES:
        raise ConfigurationError(f"Key column '{key}' in input layer <{defn.name}> is not integer")
    return KeyColumn(name=fdefn.name, index=index)


def build_table_columns(
    defn: LayerDefn,
    key: KeyColumn,
    driver: str = config.DEFAULT_DRIVER,
    column_names: Optional[Sequence[str]] = None,
    tolower: bool = False,
) -> List[Column]:
    """
    Build the ordered column list of an attribute table.

    The first column is always the integer key. With column_names the first
    entry renames the key column and the others rename the source fields in
    order.
    """
    type_map = FIELD_TYPE_MAP[driver]
    column_names = list(column_names or [])
    key_name = column_names[0] if column_names else key.name
    columns = [Column(key_name, "INTEGER", key.index, base.FIELD_INTEGER)]

    for i, fdefn in enumerate(defn.fields):
        if key.index >= 0 and key.index == i:
            continue

        if i < len(column_names) - 1:
            name = column_names[i + 1]
        else:
            name = sanitize_column_name(fdefn.name)
        if tolower:
            name = name.lower()
        # column names are case insensitive in both stores
        if name.lower() == key_name.lower():
            name = f"{name}_"
        if name != fdefn.name:
            logger.info(f"Column name <{fdefn.name}> renamed to <{name}>")

        if fdefn.type in base.LIST_TYPES:
            sql_type = f"VARCHAR({config.LIST_COLUMN_WIDTH})"
            logger.warning(
                f"Writing column <{name}> with fixed length {config.LIST_COLUMN_WIDTH} chars (may be truncated)"
            )
        elif fdefn.type == base.FIELD_STRING:
            width = fdefn.width
            if width == 0:
                logger.warning(
                    f"Width for column {name} set to {config.STRING_DEFAULT_WIDTH} "
                    f"(was not specified by the source), some strings may be truncated!"
                )
                width = config.STRING_DEFAULT_WIDTH
            sql_type = f"VARCHAR({width})"
        elif fdefn.type in type_map:
            sql_type = type_map[fdefn.type]
        else:
            logger.warning(f"Column type ({fdefn.type}) not supported (column: {name})")
            continue

        columns.append(Column(name, sql_type, i, fdefn.type))

    return columns


def format_list(values: Sequence[Any]) -> str:
    """Render a list the way OGR prints list fields: (n:a,b,c)."""
    return f"({len(values)}:{','.join(str(v) for v in values)})"


def format_value(value: Any, field_type: str) -> Any:
    """Convert a source value for insertion; unset or empty values become None."""
    if value is None:
        return None
    if field_type in base.LIST_TYPES:
        if isinstance(value, (list, tuple)):
            return format_list(value) if value else None
        value = str(value)
    if isinstance(value, str):
        if value == "":
            return None
        if field_type in (base.FIELD_DATE, base.FIELD_TIME, base.FIELD_DATETIME):
            # fix 2001/10/21 to 2001-10-21
            return value.replace("/", "-")
        return value
    if field_type == base.FIELD_BOOLEAN:
        return int(bool(value))
    if field_type in (base.FIELD_DATE, base.FIELD_TIME, base.FIELD_DATETIME):
        return value.isoformat()
    return value


def table_name(map_name: str, layer_index: int, nlayers: int) -> str:
    """One layer uses the map name, several layers get map_<field>."""
    if nlayers == 1:
        return map_name
    return f"{map_name}_{layer_index + 1}"


def row_values(properties: Dict[str, Any], defn: LayerDefn, columns: Sequence[Column], cat: int) -> List[Any]:
    values = [cat]
    for column in columns[1:]:
        fdefn: FieldDefn = defn.fields[column.field_index]
        values.append(format_value(properties.get(fdefn.name), column.field_type))
    return values
