"""
ingest.py - Write primitives and attribute rows, one transaction per layer.
"""

from typing import Optional, Sequence

from topo_import.attributes.schema import KeyColumn, row_values
from topo_import.attributes.store import AttributeStore
from topo_import.filters import SpatialFilterSet
from topo_import.source.base import Feature, FeatureSource, LayerDefn
from topo_import.source.iterator import FeatureStreamIterator
from topo_import.utils.logger import get_logger
from topo_import.vector.geometry import write_geometry
from topo_import.vector.map import Cats, VectorMap
from .context import RunContext, feature_geometries, geometry_indices
from .options import ImportOptions

logger = get_logger()


def feature_category(feature: Feature, key: KeyColumn, defn: LayerDefn, generated: int) -> int:
    """Category of a feature: generated counter, FID or key field value."""
    if key.generated:
        return generated
    if key.from_fid:
        return feature.fid
    return feature.get_field_as_integer(defn.fields[key.index].name)


def ingest_layers(
    iterator: FeatureStreamIterator,
    source: FeatureSource,
    layer_ids: Sequence[int],
    layer_names: Sequence[str],
    filters: SpatialFilterSet,
    options: ImportOptions,
    ctx: RunContext,
    vmap: VectorMap,
    store: Optional[AttributeStore],
) -> None:
    """
    Import features of all layers.

    Raises:
        PersistenceError: insert or index creation failed
    """
    ctx.nogeom = []
    for i, layer_id in enumerate(layer_ids):
        name = layer_names[i]
        defn = source.layer_defn(layer_id)
        indices = geometry_indices(source, defn, options.geometry)
        key = ctx.key_columns[i]
        table = ctx.tables[i] if store is not None else None
        field = i + 1

        logger.info(f"Importing {ctx.n_features[i] if i < len(ctx.n_features) else 0} features (layer <{name}>)...")
        if table:
            store.begin()

        generated = 1
        nogeom = 0
        for feature in iterator.features(layer_id, name, filters.for_layer(i), options.where):
            cat = feature_category(feature, key, defn, generated)
            cats = Cats()
            if cat > 0:
                cats.add(field, cat)
            else:
                ctx.invalid_cats += 1
                logger.warning(f"Invalid category {cat} of feature {feature.fid} in layer <{name}>, "
                               f"geometry written without category")

            geoms = feature_geometries(feature, indices)
            if not geoms:
                nogeom += 1
            for geom in geoms:
                if geom is None or geom.is_empty:
                    nogeom += 1
                    continue
                write_geometry(
                    vmap, geom, cats,
                    min_area=options.min_area,
                    type_mask=options.type_mask,
                    split_distance=ctx.split_distance,
                    no_clean=options.no_clean,
                    force_2d=options.force_2d,
                )

            if table:
                store.insert(table, row_values(feature.properties, defn, ctx.columns[i], cat))
            generated += 1

        if table:
            store.commit()

        ctx.nogeom.append(nogeom)
        if nogeom > 0:
            message = (f"{nogeom} {'feature' if nogeom == 1 else 'features'} without geometry "
                       f"in input layer <{name}> skipped")
            logger.warning(message)
            vmap.hist_write(message)

    if ctx.invalid_cats:
        vmap.hist_write(f"{ctx.invalid_cats} features with invalid category written without category")

    # unique categories are checked by the index
    if store is not None:
        for i, table in enumerate(ctx.tables):
            if table:
                store.create_index(table, ctx.columns[i][0].name)
