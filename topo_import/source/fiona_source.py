"""
fiona_source.py - FeatureSource over anything fiona (OGR) can open.

Each layer is opened lazily as its own fiona Collection. Per-layer cursors are
iterators over Collection.filter(bbox=..., where=...). Drivers that only have
one cursor for the whole datasource (see config.INTERLEAVED_DRIVERS) are read
through a shared cursor that walks the layers in order and tags each record
with its owning layer.
"""

from typing import Dict, Iterator, List, Optional, Tuple

try:
    import fiona
    import fiona.errors
    from shapely.geometry import shape
except ImportError:
    raise ImportError("fiona_source requires: pip install fiona shapely")

from shapely.geometry.base import BaseGeometry

from topo_import import config
from topo_import.errors import AttributeFilterError, SourceError
from topo_import.utils.logger import get_logger
from .base import Extent, Feature, FeatureSource, FieldDefn, LayerDefn

logger = get_logger()

# fiona schema type prefix -> canonical field type
_FIONA_TYPES = {
    "int": "int",
    "int32": "int",
    "int16": "int",
    "int64": "int64",
    "float": "float",
    "double": "float",
    "str": "str",
    "date": "date",
    "time": "time",
    "datetime": "datetime",
    "bool": "bool",
    "bytes": "bytes",
    "List[int]": "List[int]",
    "List[int32]": "List[int]",
    "List[int64]": "List[int64]",
    "List[float]": "List[float]",
    "List[str]": "List[str]",
}


def parse_field_type(name: str, fiona_type: str) -> FieldDefn:
    """Translate a fiona schema entry such as 'str:80' or 'float:24.15'."""
    base, _, width = fiona_type.partition(":")
    canonical = _FIONA_TYPES.get(base, "str")
    try:
        width_value = int(width.split(".")[0]) if width else 0
    except ValueError:
        width_value = 0
    return FieldDefn(name=name, type=canonical, width=width_value)


class FionaSource(FeatureSource):
    """Datasource opened with fiona, one Collection per layer."""

    def __init__(self, dsn: str, encoding: Optional[str] = None):
        self.name = dsn
        self.encoding = encoding
        try:
            self._layer_names: List[str] = list(fiona.listlayers(dsn))
        except (fiona.errors.DriverError, fiona.errors.FionaValueError) as e:
            raise SourceError(f"Unable to open data source <{dsn}>: {e}")
        if not self._layer_names:
            raise SourceError(f"No layers found in data source <{dsn}>")

        self._collections: Dict[int, "fiona.Collection"] = {}
        self._defns: Dict[int, LayerDefn] = {}
        self._spatial: Dict[int, Optional[BaseGeometry]] = {}
        self._where: Dict[int, Optional[str]] = {}
        self._cursors: Dict[int, Iterator] = {}
        self._shared: Optional[Iterator[Tuple[Feature, str]]] = None

        first = self._collection(0)
        self.driver = first.driver
        self.interleaved = self.driver in config.INTERLEAVED_DRIVERS
        # fiona exposes a single geometry per record
        self.supports_geometry_columns = False

    def _collection(self, layer_id: int):
        col = self._collections.get(layer_id)
        if col is None:
            name = self._layer_names[layer_id]
            try:
                col = fiona.open(self.name, layer=name, encoding=self.encoding)
            except (fiona.errors.DriverError, fiona.errors.FionaValueError) as e:
                raise SourceError(f"Unable to open layer <{name}> of <{self.name}>: {e}")
            self._collections[layer_id] = col
        return col

    def layer_count(self) -> int:
        return len(self._layer_names)

    def layer_defn(self, layer_id: int) -> LayerDefn:
        defn = self._defns.get(layer_id)
        if defn is None:
            col = self._collection(layer_id)
            fields = [parse_field_type(name, ftype) for name, ftype in col.schema["properties"].items()]
            geometry_type = col.schema.get("geometry")
            geometry_fields = ["geometry"] if geometry_type and geometry_type != "None" else []
            defn = LayerDefn(
                name=self._layer_names[layer_id],
                fields=fields,
                geometry_fields=geometry_fields,
                fid_column=config.FID_COLUMNS.get(self.driver),
            )
            self._defns[layer_id] = defn
        return defn

    def get_extent(self, layer_id: int) -> Optional[Extent]:
        try:
            bounds = self._collection(layer_id).bounds
        except Exception as e:
            logger.debug(f"Layer {self._layer_names[layer_id]} has no extent: {e}")
            return None
        if not bounds or any(b is None for b in bounds):
            return None
        return tuple(float(b) for b in bounds)

    def get_feature_count(self, layer_id: int) -> Optional[int]:
        # len() ignores filters, let the caller count instead
        if self._spatial.get(layer_id) is not None or self._where.get(layer_id):
            return None
        try:
            return len(self._collection(layer_id))
        except Exception as e:
            logger.debug(f"Layer {self._layer_names[layer_id]} can not report a feature count: {e}")
            return None

    def get_crs_wkt(self, layer_id: int, geometry_field: Optional[str] = None) -> Optional[str]:
        wkt = self._collection(layer_id).crs_wkt
        return wkt or None

    def set_spatial_filter(self, layer_id: int, polygon: Optional[BaseGeometry]) -> None:
        self._spatial[layer_id] = polygon

    def set_attribute_filter(self, layer_id: int, where: Optional[str]) -> None:
        if where:
            # OGR only parses the expression once a reading starts
            try:
                probe = self._collection(layer_id).filter(where=where)
                next(iter(probe), None)
            except fiona.errors.AttributeFilterError as e:
                raise AttributeFilterError(f"Error setting attribute filter '{where}': {e}")
        self._where[layer_id] = where or None

    def _open_cursor(self, layer_id: int) -> Iterator:
        col = self._collection(layer_id)
        polygon = self._spatial.get(layer_id)
        kwargs = {}
        if polygon is not None:
            kwargs["bbox"] = polygon.bounds
        if self._where.get(layer_id):
            kwargs["where"] = self._where[layer_id]
        return iter(col.filter(**kwargs))

    def _to_feature(self, layer_id: int, record) -> Feature:
        try:
            fid = int(record.id)
        except (TypeError, ValueError):
            fid = 0
        geometry = shape(record.geometry) if record.geometry is not None else None
        return Feature(
            fid=fid,
            layer_name=self._layer_names[layer_id],
            properties=dict(record.properties),
            geometries=[geometry] if self.layer_defn(layer_id).geometry_fields else [],
        )

    def reset_layer(self, layer_id: int) -> None:
        self._cursors[layer_id] = self._open_cursor(layer_id)

    def next_layer_feature(self, layer_id: int) -> Optional[Feature]:
        cursor = self._cursors.get(layer_id)
        if cursor is None:
            cursor = self._cursors[layer_id] = self._open_cursor(layer_id)
        record = next(cursor, None)
        if record is None:
            return None
        return self._to_feature(layer_id, record)

    def _shared_records(self) -> Iterator[Tuple[Feature, str]]:
        for layer_id, name in enumerate(self._layer_names):
            for record in self._open_cursor(layer_id):
                yield self._to_feature(layer_id, record), name

    def reset_reading(self) -> None:
        self._shared = None

    def next_source_feature(self) -> Optional[Tuple[Feature, Optional[str]]]:
        # created on first read so it sees the filters set after the reset
        if self._shared is None:
            self._shared = self._shared_records()
        return next(self._shared, None)

    def close(self) -> None:
        for col in self._collections.values():
            col.close()
        self._collections.clear()
        self._cursors.clear()
        self._shared = None
