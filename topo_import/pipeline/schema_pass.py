"""
schema_pass.py - Resolve key columns and create one attribute table per layer.
"""

from typing import Optional, Sequence

from topo_import.attributes.schema import build_table_columns, resolve_key_column, table_name
from topo_import.attributes.store import AttributeStore
from topo_import.source.base import FeatureSource
from topo_import.utils.logger import get_logger
from topo_import.vector.map import DbLink, VectorMap
from .context import RunContext
from .options import ImportOptions

logger = get_logger()


def resolve_keys(source: FeatureSource, layer_ids: Sequence[int], options: ImportOptions, ctx: RunContext) -> None:
    """Find the category source of every layer, before any output exists."""
    ctx.key_columns = [resolve_key_column(source.layer_defn(layer_id), options.key) for layer_id in layer_ids]


def create_attribute_tables(
    source: FeatureSource,
    layer_ids: Sequence[int],
    layer_names: Sequence[str],
    options: ImportOptions,
    ctx: RunContext,
    vmap: VectorMap,
    store: Optional[AttributeStore],
) -> None:
    """
    Create the attribute tables and link them to the map, field = layer index + 1.

    Raises:
        PersistenceError: a table could not be created
    """
    if not ctx.key_columns:
        resolve_keys(source, layer_ids, options, ctx)

    ctx.tables = []
    ctx.columns = []
    for i, layer_id in enumerate(layer_ids):
        if store is None:
            ctx.tables.append(None)
            ctx.columns.append([])
            continue

        logger.info(f"Creating attribute table for layer <{layer_names[i]}>...")
        defn = source.layer_defn(layer_id)
        table = table_name(vmap.name, i, len(layer_ids))
        columns = build_table_columns(
            defn,
            ctx.key_columns[i],
            driver=store.driver,
            column_names=options.columns,
            tolower=options.tolower,
        )
        logger.debug(f"{len(columns)} columns")
        store.create_table(table, columns)

        vmap.add_dblink(DbLink(
            field=i + 1,
            name=layer_names[i],
            table=table,
            key=columns[0].name,
            database=store.database,
            driver=store.driver,
        ))
        ctx.tables.append(table)
        ctx.columns.append(columns)
