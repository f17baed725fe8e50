"""
map.py - In-memory vector map: typed primitives with categories.

Primitives are points, lines, boundaries and centroids. Lines and boundaries
are shapely LineStrings, points and centroids shapely Points. Each primitive
carries a set of (field, cat) pairs that link it to attribute rows. Deleted
primitives keep their id, new ones always get a fresh id.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from topo_import.errors import ConfigurationError

POINT = 0x01
LINE = 0x02
BOUNDARY = 0x04
CENTROID = 0x08
ALL = POINT | LINE | BOUNDARY | CENTROID

TYPE_NAMES = {
    POINT: "point",
    LINE: "line",
    BOUNDARY: "boundary",
    CENTROID: "centroid",
}


def option_to_types(value: Optional[str]) -> int:
    """Parse a comma separated list like 'point,boundary' into a type mask."""
    if not value:
        return 0
    names = {name: code for code, name in TYPE_NAMES.items()}
    mask = 0
    for part in value.split(","):
        part = part.strip().lower()
        if not part:
            continue
        if part not in names:
            raise ConfigurationError(f"Unknown feature type <{part}>")
        mask |= names[part]
    return mask


class Cats:
    """Ordered set of (field, cat) pairs."""

    def __init__(self, pairs=None):
        self._pairs: List[Tuple[int, int]] = []
        for layer, cat in pairs or ():
            self.add(layer, cat)

    def add(self, layer: int, cat: int) -> bool:
        pair = (layer, cat)
        if pair in self._pairs:
            return False
        self._pairs.append(pair)
        return True

    def get(self, layer: int) -> Optional[int]:
        for f, cat in self._pairs:
            if f == layer:
                return cat
        return None

    def copy(self) -> "Cats":
        return Cats(self._pairs)

    def __len__(self):
        return len(self._pairs)

    def __iter__(self):
        return iter(self._pairs)

    def __eq__(self, other):
        if isinstance(other, Cats):
            return sorted(self._pairs) == sorted(other._pairs)
        return NotImplemented

    def __repr__(self):
        return f"Cats({self._pairs})"


@dataclass
class Primitive:
    id: int
    type: int
    geometry: BaseGeometry
    cats: Cats = field(default_factory=Cats)


@dataclass
class DbLink:
    field: int
    name: str
    table: str
    key: str
    database: str
    driver: str


class VectorMap:
    """Primitives, attribute links and history of one output map."""

    def __init__(self, name: str, with_z: bool = False):
        self.name = name
        self.with_z = with_z
        self.crs_wkt: Optional[str] = None
        self._primitives: Dict[int, Primitive] = {}
        self._next_id = 1
        self.dblinks: List[DbLink] = []
        self.history: List[str] = []

    def write_line(self, ptype: int, geometry: BaseGeometry, cats: Optional[Cats] = None) -> int:
        line_id = self._next_id
        self._next_id += 1
        self._primitives[line_id] = Primitive(line_id, ptype, geometry, cats.copy() if cats else Cats())
        return line_id

    def rewrite_line(self, line_id: int, geometry: Optional[BaseGeometry] = None,
                     ptype: Optional[int] = None, cats: Optional[Cats] = None) -> None:
        prim = self._primitives[line_id]
        if geometry is not None:
            prim.geometry = geometry
        if ptype is not None:
            prim.type = ptype
        if cats is not None:
            prim.cats = cats.copy()

    def delete_line(self, line_id: int) -> None:
        del self._primitives[line_id]

    def line(self, line_id: int) -> Primitive:
        return self._primitives[line_id]

    def is_alive(self, line_id: int) -> bool:
        return line_id in self._primitives

    def lines(self, mask: int = ALL) -> Iterator[Primitive]:
        for line_id in sorted(self._primitives):
            prim = self._primitives[line_id]
            if prim.type & mask:
                yield prim

    def num_primitives(self, mask: int = ALL) -> int:
        return sum(1 for prim in self._primitives.values() if prim.type & mask)

    def bbox(self) -> Optional[Dict[str, float]]:
        bounds = [p.geometry.bounds for p in self._primitives.values() if not p.geometry.is_empty]
        if not bounds:
            return None
        return {
            "west": min(b[0] for b in bounds),
            "south": min(b[1] for b in bounds),
            "east": max(b[2] for b in bounds),
            "north": max(b[3] for b in bounds),
        }

    def add_dblink(self, link: DbLink) -> None:
        self.dblinks.append(link)

    def hist_write(self, text: str) -> None:
        self.history.append(text)
