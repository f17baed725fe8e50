"""
iterator.py - Uniform feature stream over a FeatureSource.

Sources either offer one cursor per layer (shapefiles, GeoPackage, ...) or a
single cursor shared by all layers (OSM, GMLAS). Every pass of the importer
reads a layer with FeatureStreamIterator.next() until it returns None, and
calls reset() before starting the next pass, so the passes never need to
know which kind of source they are reading.
"""

from typing import Iterator, Optional

from shapely.geometry.base import BaseGeometry

from topo_import.utils.logger import get_logger
from .base import Feature, FeatureSource

logger = get_logger()

SEQUENTIAL = "sequential"
INTERLEAVED = "interleaved"

STATE_UNBOUND = "unbound"
STATE_READING = "reading"
STATE_END_OF_LAYER = "end_of_layer"


class FeatureStreamIterator:
    """
    Yields the features of one requested layer at a time.

    The iterator is bound to a layer on the first next() call for it; asking
    for a different layer (or calling next() after reset()) rebinds it, which
    re-applies the filters and restarts reading. In interleaved mode a rebind
    clears the filters of every layer and rewinds the shared cursor, then
    records owned by other layers are skipped while reading.
    """

    def __init__(self, source: FeatureSource):
        self.source = source
        self.mode = INTERLEAVED if source.interleaved else SEQUENTIAL
        self.state = STATE_UNBOUND
        self.layer_id: Optional[int] = None
        self.layer_name: Optional[str] = None

    def reset(self) -> None:
        """Forget the current binding so the next read starts from scratch."""
        self.state = STATE_UNBOUND
        self.layer_id = None
        self.layer_name = None
        if self.mode == INTERLEAVED:
            self.source.reset_reading()

    def _rebind(self, layer_id: int, layer_name: str,
                spatial_filter: Optional[BaseGeometry], attr_filter: Optional[str]) -> None:
        if self.mode == SEQUENTIAL:
            self.source.set_spatial_filter(layer_id, spatial_filter)
            self.source.set_attribute_filter(layer_id, attr_filter)
            self.source.reset_layer(layer_id)
        else:
            for i in range(self.source.layer_count()):
                self.source.set_spatial_filter(i, None)
                self.source.set_attribute_filter(i, None)
            self.source.reset_reading()
            self.source.set_spatial_filter(layer_id, spatial_filter)
            self.source.set_attribute_filter(layer_id, attr_filter)

        logger.debug(f"Iterator bound to layer <{layer_name}> ({self.mode})")
        self.layer_id = layer_id
        self.layer_name = layer_name
        self.state = STATE_READING

    def next(
        self,
        layer_id: int,
        layer_name: str,
        spatial_filter: Optional[BaseGeometry] = None,
        attr_filter: Optional[str] = None,
    ) -> Optional[Feature]:
        """
        Return the next feature of the requested layer, or None at the end of it.

        Raises:
            AttributeFilterError: the source rejected attr_filter
        """
        if self.state == STATE_UNBOUND or self.layer_id != layer_id:
            self._rebind(layer_id, layer_name, spatial_filter, attr_filter)
        elif self.state == STATE_END_OF_LAYER:
            return None

        if self.mode == SEQUENTIAL:
            feature = self.source.next_layer_feature(layer_id)
        else:
            feature = None
            while True:
                record = self.source.next_source_feature()
                if record is None:
                    break
                candidate, owner = record
                if owner == layer_name:
                    feature = candidate
                    break

        if feature is None:
            self.state = STATE_END_OF_LAYER
        return feature

    def features(
        self,
        layer_id: int,
        layer_name: str,
        spatial_filter: Optional[BaseGeometry] = None,
        attr_filter: Optional[str] = None,
    ) -> Iterator[Feature]:
        while True:
            feature = self.next(layer_id, layer_name, spatial_filter, attr_filter)
            if feature is None:
                return
            yield feature
