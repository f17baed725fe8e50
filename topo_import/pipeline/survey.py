"""
survey.py - First pass: count features, polygons and boundaries, detect 3D.
"""

import math
from typing import Optional, Sequence

from topo_import import config
from topo_import.filters import SpatialFilterSet, extent_is_valid
from topo_import.source.base import Extent, FeatureSource
from topo_import.source.iterator import FeatureStreamIterator
from topo_import.utils.logger import get_logger
from topo_import.vector.geometry import is_3d, poly_count
from topo_import.vector.map import BOUNDARY
from .context import RunContext, feature_geometries, geometry_indices
from .options import ImportOptions

logger = get_logger()


def compute_split_distance(n_boundaries: int, extent: Optional[Extent], no_clean: bool = False) -> float:
    """
    Distance used to split long boundaries, -1 to disable splitting.

    split_distance = sqrt(extent area) / ln(n_boundaries) / SPLIT_DIVISOR,
    used only for more than SPLIT_MIN_BOUNDARIES boundaries.
    """
    if no_clean or not extent_is_valid(extent):
        return -1.0
    area = (extent[2] - extent[0]) * (extent[3] - extent[1])
    if area > 0 and n_boundaries > config.SPLIT_MIN_BOUNDARIES:
        area_size = math.sqrt(area)
        logger.debug(f"root of area size: {area_size}")
        return area_size / math.log(n_boundaries) / config.SPLIT_DIVISOR
    return -1.0


def survey_layers(
    iterator: FeatureStreamIterator,
    source: FeatureSource,
    layer_ids: Sequence[int],
    layer_names: Sequence[str],
    filters: SpatialFilterSet,
    options: ImportOptions,
    ctx: RunContext,
) -> None:
    line2boundary = bool(options.type_mask & BOUNDARY)
    ctx.n_features = []

    for i, layer_id in enumerate(layer_ids):
        name = layer_names[i]
        defn = source.layer_defn(layer_id)
        indices = geometry_indices(source, defn, options.geometry)
        logger.info(f"Check if layer <{name}> contains polygons...")

        counted = 0
        for feature in iterator.features(layer_id, name, filters.for_layer(i), options.where):
            counted += 1
            for geom in feature_geometries(feature, indices):
                if geom is None:
                    continue
                n_polygons, n_boundaries = poly_count(geom, line2boundary)
                ctx.n_polygons += n_polygons
                ctx.n_polygon_boundaries += n_boundaries
                if is_3d(geom):
                    ctx.input3d = True

        reported = source.get_feature_count(layer_id)
        if reported is not None and reported > 0 and reported != counted:
            logger.debug(f"Layer <{name}> reports {reported} features, {counted} read")
        ctx.n_features.append(reported if reported is not None and reported > 0 else counted)

    if len(layer_ids) > 1:
        logger.info(f"Importing {sum(ctx.n_features)} features")
    logger.debug(f"n polygon boundaries: {ctx.n_polygon_boundaries}")
    logger.debug(f"Input is 3D ? {'yes' if ctx.input3d else 'no'}")

    ctx.split_distance = compute_split_distance(ctx.n_polygon_boundaries, filters.extent, options.no_clean)
    if ctx.split_distance > 0:
        logger.debug(f"Boundary splitting distance in map units: {ctx.split_distance:G}")
