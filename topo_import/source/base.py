"""
base.py - Feature source contract consumed by the import pipeline.

A source is an ordered collection of layers. Each layer exposes its field
schema, one or more geometry fields, an optional extent, feature count and
CRS, plus per-layer spatial and attribute filters.

Two cursor models exist:
- per-layer cursors: reset_layer() / next_layer_feature()
- one shared cursor for the whole source: reset_reading() / next_source_feature()

Only FeatureStreamIterator drives the cursors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from shapely.geometry.base import BaseGeometry

# Canonical field types (fiona names)
FIELD_INTEGER = "int"
FIELD_INTEGER64 = "int64"
FIELD_REAL = "float"
FIELD_STRING = "str"
FIELD_DATE = "date"
FIELD_TIME = "time"
FIELD_DATETIME = "datetime"
FIELD_BOOLEAN = "bool"
FIELD_BINARY = "bytes"
FIELD_INTEGER_LIST = "List[int]"
FIELD_INTEGER64_LIST = "List[int64]"
FIELD_REAL_LIST = "List[float]"
FIELD_STRING_LIST = "List[str]"

INTEGER_TYPES = (FIELD_INTEGER, FIELD_INTEGER64)
LIST_TYPES = (FIELD_INTEGER_LIST, FIELD_INTEGER64_LIST, FIELD_REAL_LIST, FIELD_STRING_LIST)

Extent = Tuple[float, float, float, float]


@dataclass
class FieldDefn:
    name: str
    type: str
    width: int = 0


@dataclass
class LayerDefn:
    name: str
    fields: List[FieldDefn] = field(default_factory=list)
    geometry_fields: List[str] = field(default_factory=lambda: ["geometry"])
    fid_column: Optional[str] = None

    def field_index(self, name: str) -> int:
        for i, fdefn in enumerate(self.fields):
            if fdefn.name == name:
                return i
        return -1

    def geometry_field_index(self, name: str) -> int:
        try:
            return self.geometry_fields.index(name)
        except ValueError:
            return -1


@dataclass
class Feature:
    fid: int
    layer_name: str
    properties: Dict[str, Any] = field(default_factory=dict)
    geometries: List[Optional[BaseGeometry]] = field(default_factory=list)

    def geometry(self, index: int = 0) -> Optional[BaseGeometry]:
        if index < len(self.geometries):
            return self.geometries[index]
        return None

    def get_field_as_integer(self, name: str) -> int:
        value = self.properties.get(name)
        if value is None:
            return 0
        return int(value)


class FeatureSource(ABC):
    """Narrow contract a feature source offers to the pipeline."""

    name: str = ""
    driver: str = ""
    interleaved: bool = False
    supports_geometry_columns: bool = True

    @abstractmethod
    def layer_count(self) -> int:
        ...

    @abstractmethod
    def layer_defn(self, layer_id: int) -> LayerDefn:
        ...

    def layer_name(self, layer_id: int) -> str:
        return self.layer_defn(layer_id).name

    def layer_names(self) -> List[str]:
        return [self.layer_name(i) for i in range(self.layer_count())]

    @abstractmethod
    def get_extent(self, layer_id: int) -> Optional[Extent]:
        """Layer extent, or None if the layer can not report one."""

    @abstractmethod
    def get_feature_count(self, layer_id: int) -> Optional[int]:
        """Feature count honouring current filters, or None if unknown."""

    @abstractmethod
    def get_crs_wkt(self, layer_id: int, geometry_field: Optional[str] = None) -> Optional[str]:
        ...

    @abstractmethod
    def set_spatial_filter(self, layer_id: int, polygon: Optional[BaseGeometry]) -> None:
        ...

    @abstractmethod
    def set_attribute_filter(self, layer_id: int, where: Optional[str]) -> None:
        """Raises AttributeFilterError if the expression is rejected."""

    @abstractmethod
    def reset_layer(self, layer_id: int) -> None:
        ...

    @abstractmethod
    def next_layer_feature(self, layer_id: int) -> Optional[Feature]:
        ...

    @abstractmethod
    def reset_reading(self) -> None:
        ...

    @abstractmethod
    def next_source_feature(self) -> Optional[Tuple[Feature, Optional[str]]]:
        """Next (feature, owning layer name) from the shared cursor, None when exhausted."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
