"""
memory.py - In-memory feature source.

Holds layers and features built in Python. It can act as either kind of
source: with interleaved=True every layer is read through one shared cursor
that walks the features in the order they were added, the way OSM and
GMLAS datasources deliver them.

Attribute filters accept a small expression language:
    <field> <op> <literal> [AND <field> <op> <literal> ...]
with op one of = == != <> < <= > >= and literals that are numbers or
single-quoted strings.
"""

import operator
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shapely.geometry.base import BaseGeometry

from topo_import.errors import AttributeFilterError
from .base import Extent, Feature, FeatureSource, FieldDefn, LayerDefn

_OPERATORS = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}
_CLAUSE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(==|!=|<>|<=|>=|=|<|>)\s*(.+?)\s*$")


def _parse_literal(text: str) -> Any:
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1].replace("''", "'")
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise AttributeFilterError(f"Invalid literal in attribute filter: {text}")


def compile_where(where: str, field_names: Sequence[str]) -> Callable[[Dict[str, Any]], bool]:
    """Compile an attribute filter into a predicate over feature properties."""
    clauses = []
    for part in re.split(r"\s+AND\s+", where.strip(), flags=re.IGNORECASE):
        m = _CLAUSE.match(part)
        if not m:
            raise AttributeFilterError(f"Error setting attribute filter '{where}'")
        name, op, literal = m.groups()
        if name not in field_names:
            raise AttributeFilterError(f"Error setting attribute filter '{where}': unknown field {name}")
        clauses.append((name, _OPERATORS[op], _parse_literal(literal)))

    def predicate(properties: Dict[str, Any]) -> bool:
        for name, op, value in clauses:
            current = properties.get(name)
            if current is None:
                return False
            try:
                if not op(current, value):
                    return False
            except TypeError:
                return False
        return True

    return predicate


def _envelopes_overlap(a, b) -> bool:
    return a[0] <= b[2] and a[2] >= b[0] and a[1] <= b[3] and a[3] >= b[1]


class MemoryLayer:
    def __init__(self, defn: LayerDefn, crs_wkt: Optional[str] = None,
                 report_extent: bool = True, report_count: bool = True):
        self.defn = defn
        self.crs_wkt = crs_wkt
        self.report_extent = report_extent
        self.report_count = report_count
        self.features: List[Feature] = []
        self.spatial_filter: Optional[BaseGeometry] = None
        self.where: Optional[str] = None
        self.predicate: Optional[Callable[[Dict[str, Any]], bool]] = None
        self.cursor = 0

    def matches(self, feature: Feature) -> bool:
        if self.spatial_filter is not None:
            # envelope test, the way OGR filters by a rectangle
            fb = self.spatial_filter.bounds
            geoms = [g for g in feature.geometries if g is not None and not g.is_empty]
            if not any(_envelopes_overlap(g.bounds, fb) for g in geoms):
                return False
        if self.predicate is not None and not self.predicate(feature.properties):
            return False
        return True


class MemorySource(FeatureSource):
    """Feature source backed by Python lists."""

    def __init__(self, name: str = "memory", interleaved: bool = False, driver: str = "Memory"):
        self.name = name
        self.driver = driver
        self.interleaved = interleaved
        self.supports_geometry_columns = True
        self._layers: List[MemoryLayer] = []
        self._records: List[Tuple[int, Feature]] = []
        self._shared_pos = 0
        self.reading_resets = 0

    def add_layer(
        self,
        name: str,
        fields: Optional[Sequence[FieldDefn]] = None,
        geometry_fields: Optional[Sequence[str]] = None,
        crs_wkt: Optional[str] = None,
        report_extent: bool = True,
        report_count: bool = True,
        fid_column: Optional[str] = None,
    ) -> int:
        defn = LayerDefn(
            name=name,
            fields=list(fields or []),
            geometry_fields=list(geometry_fields) if geometry_fields is not None else ["geometry"],
            fid_column=fid_column,
        )
        self._layers.append(MemoryLayer(defn, crs_wkt, report_extent, report_count))
        return len(self._layers) - 1

    def _layer_id(self, layer) -> int:
        if isinstance(layer, int):
            return layer
        for i, mlayer in enumerate(self._layers):
            if mlayer.defn.name == layer:
                return i
        raise KeyError(layer)

    def add_feature(
        self,
        layer,
        properties: Optional[Dict[str, Any]] = None,
        geometry: Optional[BaseGeometry] = None,
        geometries: Optional[Sequence[Optional[BaseGeometry]]] = None,
        fid: Optional[int] = None,
    ) -> Feature:
        layer_id = self._layer_id(layer)
        mlayer = self._layers[layer_id]
        if geometries is None:
            geometries = [geometry]
        props = {f.name: None for f in mlayer.defn.fields}
        props.update(properties or {})
        feature = Feature(
            fid=fid if fid is not None else len(mlayer.features),
            layer_name=mlayer.defn.name,
            properties=props,
            geometries=list(geometries),
        )
        mlayer.features.append(feature)
        self._records.append((layer_id, feature))
        return feature

    def layer_count(self) -> int:
        return len(self._layers)

    def layer_defn(self, layer_id: int) -> LayerDefn:
        return self._layers[layer_id].defn

    def get_extent(self, layer_id: int) -> Optional[Extent]:
        mlayer = self._layers[layer_id]
        if not mlayer.report_extent:
            return None
        bounds = [g.bounds for f in mlayer.features for g in f.geometries
                  if g is not None and not g.is_empty]
        if not bounds:
            return None
        return (
            min(b[0] for b in bounds),
            min(b[1] for b in bounds),
            max(b[2] for b in bounds),
            max(b[3] for b in bounds),
        )

    def get_feature_count(self, layer_id: int) -> Optional[int]:
        mlayer = self._layers[layer_id]
        if not mlayer.report_count:
            return None
        return sum(1 for f in mlayer.features if mlayer.matches(f))

    def get_crs_wkt(self, layer_id: int, geometry_field: Optional[str] = None) -> Optional[str]:
        return self._layers[layer_id].crs_wkt

    def set_spatial_filter(self, layer_id: int, polygon: Optional[BaseGeometry]) -> None:
        self._layers[layer_id].spatial_filter = polygon

    def set_attribute_filter(self, layer_id: int, where: Optional[str]) -> None:
        mlayer = self._layers[layer_id]
        if not where:
            mlayer.where = None
            mlayer.predicate = None
            return
        mlayer.predicate = compile_where(where, [f.name for f in mlayer.defn.fields])
        mlayer.where = where

    def spatial_filter(self, layer_id: int) -> Optional[BaseGeometry]:
        return self._layers[layer_id].spatial_filter

    def attribute_filter(self, layer_id: int) -> Optional[str]:
        return self._layers[layer_id].where

    def reset_layer(self, layer_id: int) -> None:
        self._layers[layer_id].cursor = 0

    def next_layer_feature(self, layer_id: int) -> Optional[Feature]:
        mlayer = self._layers[layer_id]
        while mlayer.cursor < len(mlayer.features):
            feature = mlayer.features[mlayer.cursor]
            mlayer.cursor += 1
            if mlayer.matches(feature):
                return feature
        return None

    def reset_reading(self) -> None:
        self._shared_pos = 0
        self.reading_resets += 1

    def next_source_feature(self) -> Optional[Tuple[Feature, Optional[str]]]:
        while self._shared_pos < len(self._records):
            layer_id, feature = self._records[self._shared_pos]
            self._shared_pos += 1
            mlayer = self._layers[layer_id]
            if mlayer.matches(feature):
                return feature, mlayer.defn.name
        return None
