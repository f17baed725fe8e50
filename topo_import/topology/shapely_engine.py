"""
shapely_engine.py - Topology engine working on the boundaries of a VectorMap.

Built on shapely 2 / GEOS:
- snapping clusters vertices with an STRtree 'dwithin' query
- breaking is GEOS noding (unary_union of all boundaries); categories of
  the original boundaries are carried over to the pieces they cover
- areas come from polygonize_full(); its cut edges are the bridges

Primitive ids change when boundaries are broken. Area ids are 1-based and
valid until the next build_areas().
"""

import math
from collections import Counter, defaultdict
from itertools import combinations
from typing import Dict, List, Optional, Tuple

import shapely
from shapely import STRtree
from shapely.geometry import LineString, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import polygonize_full, unary_union

from topo_import.utils.logger import get_logger
from topo_import.vector.map import BOUNDARY, LINE, Cats, Primitive, VectorMap
from .base import TopologyEngine

logger = get_logger()

# first segments closer than this (radians) meet at a zero angle
SMALL_ANGLE = 1e-8


def _key(geom: BaseGeometry) -> bytes:
    return shapely.normalize(geom).wkb


def _line_parts(geom: BaseGeometry) -> List[LineString]:
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, LineString):
        return [geom] if geom.length > 0 else []
    if hasattr(geom, "geoms"):
        parts = []
        for part in geom.geoms:
            parts.extend(_line_parts(part))
        return parts
    return []


class ShapelyTopologyEngine(TopologyEngine):
    """Cleans the boundaries of a VectorMap in place."""

    def __init__(self, vmap: VectorMap):
        self.vmap = vmap
        self._areas: List[Polygon] = []
        self._cut_edges = set()

    def _boundaries(self) -> List[Primitive]:
        return list(self.vmap.lines(BOUNDARY))

    def snap(self, threshold: float) -> int:
        prims = self._boundaries()
        index: Dict[tuple, int] = {}
        vertices: List[tuple] = []
        for prim in prims:
            for c in prim.geometry.coords:
                if c not in index:
                    index[c] = len(vertices)
                    vertices.append(c)
        if not vertices:
            return 0

        points = [Point(c) for c in vertices]
        tree = STRtree(points)
        target = list(range(len(vertices)))
        assigned = [False] * len(vertices)
        for i, point in enumerate(points):
            if assigned[i]:
                continue
            assigned[i] = True
            for j in tree.query(point, predicate="dwithin", distance=threshold):
                j = int(j)
                if not assigned[j]:
                    assigned[j] = True
                    target[j] = i

        nmodif = 0
        for prim in prims:
            old = list(prim.geometry.coords)
            new = []
            for c in old:
                snapped = vertices[target[index[c]]]
                if not new or new[-1] != snapped:
                    new.append(snapped)
            if new == old:
                continue
            nmodif += 1
            if len(new) < 2:
                self.vmap.delete_line(prim.id)
            else:
                self.vmap.rewrite_line(prim.id, LineString(new))
        logger.debug(f"Snapped {nmodif} boundaries (threshold {threshold})")
        return nmodif

    def _node(self) -> int:
        prims = self._boundaries()
        if not prims:
            return 0
        lines = [p.geometry for p in prims]
        noded = unary_union(lines)
        pieces = _line_parts(noded)

        old_keys = Counter(_key(g) for g in lines)
        new_keys = Counter(_key(g) for g in pieces)
        if new_keys == old_keys:
            return 0

        xmin, ymin, xmax, ymax = noded.bounds
        tol = 1e-9 * max(1.0, abs(xmin), abs(ymin), abs(xmax), abs(ymax))
        tree = STRtree(lines)
        piece_cats = []
        for piece in pieces:
            cats = Cats()
            mid = piece.interpolate(0.5, normalized=True)
            for i in sorted(int(i) for i in tree.query(mid, predicate="dwithin", distance=tol)):
                for layer, cat in prims[i].cats:
                    cats.add(layer, cat)
            piece_cats.append(cats)

        for prim in prims:
            self.vmap.delete_line(prim.id)
        for piece, cats in zip(pieces, piece_cats):
            self.vmap.write_line(BOUNDARY, piece, cats)
        return sum(((new_keys - old_keys) + (old_keys - new_keys)).values())

    def break_polygons(self) -> int:
        nmodif = self._node()
        logger.debug(f"Break polygons: {nmodif} new boundaries")
        return nmodif

    def break_lines(self) -> int:
        nmodif = self._node()
        logger.debug(f"Break lines: {nmodif} new boundaries")
        return nmodif

    def remove_duplicates(self, mask: int) -> int:
        seen: Dict[tuple, Primitive] = {}
        removed = 0
        for prim in list(self.vmap.lines(mask)):
            key = (prim.type, _key(prim.geometry))
            first = seen.get(key)
            if first is None:
                seen[key] = prim
                continue
            for layer, cat in prim.cats:
                first.cats.add(layer, cat)
            self.vmap.delete_line(prim.id)
            removed += 1
        logger.debug(f"Removed {removed} duplicates")
        return removed

    def clean_small_angles(self) -> int:
        """
        Make boundaries leaving a node at a zero angle share their first segment.

        The longer first segment gets the end vertex of the shorter one, so the
        next break/remove-duplicates round can dissolve the overlap.
        """
        prims = {p.id: p for p in self._boundaries()}
        ends = defaultdict(list)
        for prim in prims.values():
            coords = prim.geometry.coords
            ends[coords[0]].append((prim.id, True))
            ends[coords[-1]].append((prim.id, False))

        touched = set()
        nmodif = 0
        for node, incident in ends.items():
            if len(incident) < 2:
                continue
            rays = []
            for line_id, at_start in incident:
                coords = list(prims[line_id].geometry.coords)
                if not at_start:
                    coords.reverse()
                nxt = coords[1]
                length = math.hypot(nxt[0] - node[0], nxt[1] - node[1])
                if length == 0:
                    continue
                angle = math.atan2(nxt[1] - node[1], nxt[0] - node[0])
                rays.append((angle, length, line_id, at_start, coords))

            for a, b in combinations(rays, 2):
                if a[2] == b[2] or a[2] in touched or b[2] in touched:
                    continue
                diff = abs(a[0] - b[0])
                diff = min(diff, 2 * math.pi - diff)
                if diff >= SMALL_ANGLE or a[4][1] == b[4][1]:
                    continue
                short, long_ = (a, b) if a[1] <= b[1] else (b, a)
                coords = [node, short[4][1]] + long_[4][1:]
                if not long_[3]:
                    coords.reverse()
                self.vmap.rewrite_line(long_[2], LineString(coords))
                touched.add(long_[2])
                touched.add(short[2])
                nmodif += 1
        logger.debug(f"Cleaned {nmodif} small angles at nodes")
        return nmodif

    def merge_lines(self) -> int:
        """Join boundaries meeting at nodes of degree 2 that carry the same categories."""
        prims = {p.id: p for p in self._boundaries()}
        ends = defaultdict(list)
        for prim in prims.values():
            coords = prim.geometry.coords
            ends[coords[0]].append(prim.id)
            ends[coords[-1]].append(prim.id)

        visited = set()
        removed = 0
        for line_id in sorted(prims):
            if line_id in visited:
                continue
            visited.add(line_id)
            prim = prims[line_id]
            coords = list(prim.geometry.coords)
            group = [line_id]
            for forward in (True, False):
                while coords[0] != coords[-1]:
                    node = coords[-1] if forward else coords[0]
                    incident = ends[node]
                    if len(incident) != 2:
                        break
                    others = [o for o in incident if o not in visited]
                    if len(others) != 1:
                        break
                    other = prims[others[0]]
                    if other.cats != prim.cats:
                        break
                    other_coords = list(other.geometry.coords)
                    if forward:
                        if other_coords[0] != node:
                            other_coords.reverse()
                        coords = coords + other_coords[1:]
                    else:
                        if other_coords[-1] != node:
                            other_coords.reverse()
                        coords = other_coords[:-1] + coords
                    visited.add(other.id)
                    group.append(other.id)
            if len(group) > 1:
                self.vmap.rewrite_line(line_id, LineString(coords))
                for other_id in group[1:]:
                    self.vmap.delete_line(other_id)
                    removed += 1
        logger.debug(f"Merged {removed} boundaries")
        return removed

    def _dangles(self) -> List[Primitive]:
        prims = self._boundaries()
        degree = Counter()
        for prim in prims:
            coords = prim.geometry.coords
            degree[coords[0]] += 1
            degree[coords[-1]] += 1
        return [p for p in prims
                if degree[p.geometry.coords[0]] == 1 or degree[p.geometry.coords[-1]] == 1]

    def chtype_dangles(self) -> int:
        nmodif = 0
        dangles = self._dangles()
        while dangles:
            for prim in dangles:
                self.vmap.rewrite_line(prim.id, ptype=LINE)
                nmodif += 1
            dangles = self._dangles()
        logger.debug(f"Changed {nmodif} dangles to lines")
        return nmodif

    def remove_dangles(self) -> int:
        nmodif = 0
        dangles = self._dangles()
        while dangles:
            for prim in dangles:
                self.vmap.delete_line(prim.id)
                nmodif += 1
            dangles = self._dangles()
        logger.debug(f"Removed {nmodif} dangles")
        return nmodif

    def build_areas(self) -> int:
        lines = [p.geometry for p in self._boundaries()]
        if not lines:
            self._areas = []
            self._cut_edges = set()
            return 0
        polygons, cut_edges, _dangles, _invalid = polygonize_full(lines)
        self._areas = [g for g in polygons.geoms if not g.is_empty]
        self._cut_edges = {_key(g) for g in cut_edges.geoms}
        logger.debug(f"Built {len(self._areas)} areas")
        return len(self._areas)

    def _bridges(self) -> List[Primitive]:
        return [p for p in self._boundaries() if _key(p.geometry) in self._cut_edges]

    def chtype_bridges(self) -> int:
        bridges = self._bridges()
        for prim in bridges:
            self.vmap.rewrite_line(prim.id, ptype=LINE)
        logger.debug(f"Changed {len(bridges)} bridges to lines")
        return len(bridges)

    def remove_bridges(self) -> int:
        bridges = self._bridges()
        for prim in bridges:
            self.vmap.delete_line(prim.id)
        logger.debug(f"Removed {len(bridges)} bridges")
        return len(bridges)

    def num_areas(self) -> int:
        return len(self._areas)

    def area(self, area_id: int) -> Polygon:
        return self._areas[area_id - 1]

    def point_in_area(self, area_id: int) -> Optional[Tuple[float, float]]:
        polygon = self.area(area_id)
        point = polygon.representative_point()
        if point.is_empty:
            return None
        return point.x, point.y

    def area_area(self, area_id: int) -> float:
        return self.area(area_id).area

    def num_primitives(self, mask: int) -> int:
        return self.vmap.num_primitives(mask)
