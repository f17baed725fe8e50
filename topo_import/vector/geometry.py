"""
geometry.py - Decompose source geometries into vector map primitives.

Points become points (or centroids), lines become lines (or boundaries) and
every polygon ring becomes a boundary (or a line). Collections and
multi-geometries are written part by part with the same categories.
"""

import math
from typing import List, Sequence, Tuple

import shapely
from shapely.geometry import LineString, Point, Polygon
from shapely.geometry.base import BaseGeometry, BaseMultipartGeometry

from topo_import.utils.logger import get_logger
from .map import BOUNDARY, CENTROID, LINE, POINT, Cats, VectorMap

logger = get_logger()


def poly_count(geom: BaseGeometry, line2boundary: bool) -> Tuple[int, int]:
    """Return (polygons, boundaries) a geometry will contribute."""
    if geom is None or geom.is_empty:
        return 0, 0
    if isinstance(geom, Polygon):
        return 1, 1 + len(geom.interiors)
    if isinstance(geom, LineString):
        return 0, 1 if line2boundary else 0
    if isinstance(geom, BaseMultipartGeometry):
        n_polygons = n_boundaries = 0
        for part in geom.geoms:
            p, b = poly_count(part, line2boundary)
            n_polygons += p
            n_boundaries += b
        return n_polygons, n_boundaries
    return 0, 0


def is_3d(geom: BaseGeometry) -> bool:
    return geom is not None and not geom.is_empty and geom.has_z


def split_line(coords: Sequence, split_distance: float) -> List[list]:
    """Split a vertex list at vertices so no piece is longer than split_distance."""
    coords = list(coords)
    if split_distance <= 0 or len(coords) < 3:
        return [coords]
    parts = []
    current = [coords[0]]
    length = 0.0
    for pt in coords[1:]:
        seg = math.dist(current[-1][:2], pt[:2])
        if length + seg > split_distance and len(current) > 1:
            parts.append(current)
            current = [current[-1]]
            length = 0.0
        current.append(pt)
        length += seg
    parts.append(current)
    return parts


def _write_ring(vmap: VectorMap, ring, otype: int, cats: Cats, split_distance: float) -> int:
    ocats = cats if otype == LINE else Cats()
    written = 0
    if otype == BOUNDARY:
        pieces = split_line(ring.coords, split_distance)
    else:
        pieces = [list(ring.coords)]
    for piece in pieces:
        vmap.write_line(otype, LineString(piece), ocats)
        written += 1
    return written


def write_geometry(
    vmap: VectorMap,
    geom: BaseGeometry,
    cats: Cats,
    min_area: float = 0.0,
    type_mask: int = 0,
    split_distance: float = -1.0,
    no_clean: bool = False,
    force_2d: bool = False,
) -> int:
    """
    Write one source geometry into the map.

    Args:
        vmap: target map
        geom: shapely geometry, any type
        cats: categories attached to points, lines and centroids
        min_area: polygons and holes smaller than this are skipped
        type_mask: conversions requested by the user (POINT/LINE/BOUNDARY/CENTROID)
        split_distance: boundaries are split into pieces no longer than this (<= 0 disables)
        no_clean: also write one centroid per polygon
        force_2d: drop Z coordinates

    Returns:
        Number of primitives written
    """
    if geom is None or geom.is_empty:
        return 0
    if force_2d and geom.has_z:
        geom = shapely.force_2d(geom)

    if isinstance(geom, Point):
        otype = CENTROID if type_mask & CENTROID else POINT
        vmap.write_line(otype, geom, cats)
        return 1

    if isinstance(geom, LineString):
        if type_mask & BOUNDARY:
            written = 0
            for piece in split_line(geom.coords, split_distance):
                vmap.write_line(BOUNDARY, LineString(piece), cats)
                written += 1
            return written
        vmap.write_line(LINE, geom, cats)
        return 1

    if isinstance(geom, Polygon):
        outer = Polygon(geom.exterior)
        if outer.area < min_area:
            logger.debug(f"Polygon skipped, area {outer.area} is less than min_area {min_area}")
            return 0
        otype = LINE if type_mask & LINE else BOUNDARY
        written = _write_ring(vmap, geom.exterior, otype, cats, split_distance)

        holes = []
        for interior in geom.interiors:
            if Polygon(interior).area < min_area:
                continue
            holes.append(interior)
            written += _write_ring(vmap, interior, otype, cats, split_distance)

        if no_clean and otype == BOUNDARY:
            centroid = Polygon(geom.exterior, holes).representative_point()
            if centroid.is_empty:
                logger.warning("Unable to calculate centroid of a polygon")
            else:
                vmap.write_line(CENTROID, centroid, cats)
                written += 1
        return written

    if isinstance(geom, BaseMultipartGeometry):
        written = 0
        for part in geom.geoms:
            written += write_geometry(vmap, part, cats, min_area, type_mask,
                                      split_distance, no_clean, force_2d)
        return written

    logger.warning(f"Unknown geometry type {geom.geom_type}")
    return 0
