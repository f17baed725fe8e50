"""
centroids.py - Give every area the categories of the input polygons covering it.

One centroid is computed per area and indexed in an STRtree. All input
polygons are streamed again; each polygon adds its (field, cat) pair to every
centroid inside it. An area covered by several polygons gets all their pairs
plus the overlap count under field nlayers + 1.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from shapely import STRtree
from shapely.geometry import Point, Polygon
from shapely.geometry.base import BaseGeometry, BaseMultipartGeometry

from topo_import.filters import SpatialFilterSet
from topo_import.source.base import FeatureSource
from topo_import.source.iterator import FeatureStreamIterator
from topo_import.topology.base import TopologyEngine
from topo_import.utils.logger import get_logger
from topo_import.vector.map import CENTROID, POINT, Cats, VectorMap
from .context import SEPARATOR, RunContext, feature_geometries, geometry_indices
from .ingest import feature_category
from .options import ImportOptions

logger = get_logger()


@dataclass
class Centroid:
    x: float = 0.0
    y: float = 0.0
    valid: bool = False
    cats: Cats = field(default_factory=Cats)


class CentroidIndex:
    """Centroids of all areas (area id = position + 1) and their spatial index."""

    def __init__(self, centroids: List[Centroid]):
        self.centroids = centroids
        self._ids = [i for i, c in enumerate(centroids) if c.valid]
        self._tree = STRtree([Point(centroids[i].x, centroids[i].y) for i in self._ids]) if self._ids else None

    def candidates(self, geom: BaseGeometry) -> List[int]:
        """Positions of centroids inside the bounding box of geom."""
        if self._tree is None:
            return []
        return sorted(self._ids[int(j)] for j in self._tree.query(geom))


def init_centroids(engine: TopologyEngine) -> CentroidIndex:
    centroids = []
    for area_id in range(1, engine.num_areas() + 1):
        centroid = Centroid()
        point = engine.point_in_area(area_id)
        if point is None:
            logger.warning("Unable to calculate area centroid")
        else:
            centroid.x, centroid.y = point
            centroid.valid = True
        centroids.append(centroid)
    return CentroidIndex(centroids)


def add_polygon_cats(geom: BaseGeometry, index: CentroidIndex, layer: int, cat: int, min_area: float) -> None:
    """Add (layer, cat) to all centroids inside a polygon, holes excluded."""
    if geom is None or geom.is_empty:
        return
    if isinstance(geom, BaseMultipartGeometry):
        for part in geom.geoms:
            add_polygon_cats(part, index, layer, cat, min_area)
        return
    if not isinstance(geom, Polygon):
        return

    outer = Polygon(geom.exterior)
    if outer.area < min_area:
        return
    holes = [Polygon(ring) for ring in geom.interiors]
    holes = [h for h in holes if h.area >= min_area]

    for i in index.candidates(outer):
        centroid = index.centroids[i]
        point = Point(centroid.x, centroid.y)
        if not outer.covers(point):
            continue
        if any(h.covers(point) for h in holes):
            continue
        centroid.cats.add(layer, cat)


def assign_centroids(
    iterator: FeatureStreamIterator,
    source: FeatureSource,
    layer_ids: Sequence[int],
    layer_names: Sequence[str],
    filters: SpatialFilterSet,
    options: ImportOptions,
    ctx: RunContext,
    index: CentroidIndex,
) -> None:
    for i, layer_id in enumerate(layer_ids):
        logger.info(SEPARATOR)
        logger.info(f"Finding centroids for layer <{layer_names[i]}>...")
        defn = source.layer_defn(layer_id)
        indices = geometry_indices(source, defn, options.geometry)
        key = ctx.key_columns[i]

        generated = 1
        for feature in iterator.features(layer_id, layer_names[i], filters.for_layer(i), options.where):
            cat = feature_category(feature, key, defn, generated)
            generated += 1
            if cat <= 0:
                continue
            for geom in feature_geometries(feature, indices):
                add_polygon_cats(geom, index, i + 1, cat, options.min_area)


def write_centroids(
    engine: TopologyEngine,
    vmap: VectorMap,
    index: CentroidIndex,
    nlayers: int,
    options: ImportOptions,
    ctx: RunContext,
) -> None:
    logger.info(SEPARATOR)
    logger.info("Writing centroids...")

    otype = POINT if options.type_mask & POINT else CENTROID
    ctx.n_overlaps = ctx.n_nocat = 0
    ctx.total_area = ctx.overlap_area = ctx.nocat_area = 0.0

    for area_id, centroid in enumerate(index.centroids, start=1):
        area = engine.area_area(area_id)
        ctx.total_area += area

        if not centroid.valid:
            continue

        if len(centroid.cats) == 0:
            ctx.nocat_area += area
            ctx.n_nocat += 1
            continue

        if len(centroid.cats) > 1:
            centroid.cats.add(nlayers + 1, len(centroid.cats))
            ctx.overlap_area += area
            ctx.n_overlaps += 1

        point = Point(centroid.x, centroid.y, 0.0) if vmap.with_z else Point(centroid.x, centroid.y)
        vmap.write_line(otype, point, centroid.cats)

    if ctx.n_overlaps > 0:
        logger.warning(
            f"{ctx.n_overlaps} areas represent more (overlapping) features, because polygons overlap "
            f"in input layer(s). Such areas are linked to more than 1 row in attribute table. "
            f"The number of features for those areas is stored as category in layer {nlayers + 1}"
        )

