"""
filters.py - Build the per-layer spatial filters of an import run.

A rectangle comes from either the current region (-r) or the spatial option,
never both. Each layer that reports an extent is filtered by that extent,
shrunk to the rectangle; this also keeps corrupted features outside the
layer extent away from the import. The filters are built once, before the
survey pass, and shared read-only by all passes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from shapely.geometry import Polygon

from topo_import.errors import ConfigurationError
from topo_import.source.base import Extent, FeatureSource
from topo_import.utils.logger import get_logger

logger = get_logger()

# xmin > xmax marks an extent without content
EMPTY_EXTENT: Extent = (1.0, 1.0, 0.0, 0.0)


def extent_is_valid(extent: Optional[Extent]) -> bool:
    return extent is not None and extent[0] <= extent[2] and extent[1] <= extent[3]


def extents_overlap(a: Extent, b: Extent) -> bool:
    return not (a[0] > b[2] or a[2] < b[0] or a[1] > b[3] or a[3] < b[1])


def union_extent(a: Extent, b: Extent) -> Extent:
    if not extent_is_valid(a):
        return b
    if not extent_is_valid(b):
        return a
    return (min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3]))


def rectangle_filter(extent: Extent) -> Polygon:
    """Closed 5-point rectangle ring in the order OGR spatial filters are built."""
    xmin, ymin, xmax, ymax = extent
    return Polygon([(xmin, ymin), (xmin, ymax), (xmax, ymax), (xmax, ymin), (xmin, ymin)])


@dataclass
class SpatialFilterSet:
    filters: List[Optional[Polygon]] = field(default_factory=list)
    extent: Extent = EMPTY_EXTENT
    active: bool = False

    def for_layer(self, index: int) -> Optional[Polygon]:
        if index < len(self.filters):
            return self.filters[index]
        return None


def fetch_layer_extents(source: FeatureSource, layer_ids: Sequence[int]) -> List[Optional[Extent]]:
    """Ask each layer for its extent; a layer that can not tell yields None."""
    extents = []
    for layer_id in layer_ids:
        extent = source.get_extent(layer_id)
        extents.append(extent if extent_is_valid(extent) else None)
    # computing an extent may move the read cursor of some drivers
    if source.interleaved:
        source.reset_reading()
    return extents


def parse_spatial(values: Union[str, Sequence]) -> Extent:
    """Parse 'xmin,ymin,xmax,ymax' (or a sequence of four values)."""
    if isinstance(values, str):
        values = [v for v in values.split(",") if v.strip()]
    if len(values) != 4:
        raise ConfigurationError("4 parameters required for 'spatial' parameter")
    try:
        xmin, ymin, xmax, ymax = (float(v) for v in values)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid number in 'spatial' parameters: {values}")
    if xmin > xmax:
        raise ConfigurationError("xmin is larger than xmax in 'spatial' parameters")
    if ymin > ymax:
        raise ConfigurationError("ymin is larger than ymax in 'spatial' parameters")
    return (xmin, ymin, xmax, ymax)


def region_rectangle(region: Dict[str, float]) -> Extent:
    return (region["west"], region["south"], region["east"], region["north"])


def build_spatial_filters(
    extents: Sequence[Optional[Extent]],
    layer_names: Sequence[str],
    region: Optional[Dict[str, float]] = None,
    spatial: Optional[Union[str, Sequence]] = None,
) -> SpatialFilterSet:
    """
    Compute one spatial filter per layer plus the overall import extent.

    Args:
        extents: per-layer extents from fetch_layer_extents()
        layer_names: names used in messages
        region: current region, when importing only inside it
        spatial: user rectangle xmin,ymin,xmax,ymax

    Raises:
        ConfigurationError: both region and spatial given, or a bad rectangle
    """
    if region is not None and spatial:
        raise ConfigurationError("Select either the current region flag or the spatial option, not both")

    rectangle: Optional[Extent] = None
    if region is not None:
        rectangle = region_rectangle(region)
    if spatial:
        rectangle = parse_spatial(spatial)
    if rectangle is not None:
        logger.debug(
            f"cut out with boundaries: xmin:{rectangle[0]} ymin:{rectangle[1]} "
            f"xmax:{rectangle[2]} ymax:{rectangle[3]}"
        )

    result = SpatialFilterSet()
    used: List[Tuple[int, Extent]] = []
    for i, layer_extent in enumerate(extents):
        layer_filter: Optional[Extent] = None
        if layer_extent is not None:
            if rectangle is None:
                layer_filter = layer_extent
            elif not extents_overlap(layer_extent, rectangle):
                logger.warning(
                    f"The spatial filter does not overlap with layer <{layer_names[i]}>. Nothing to import."
                )
                layer_filter = rectangle
            else:
                layer_filter = (
                    max(layer_extent[0], rectangle[0]),
                    max(layer_extent[1], rectangle[1]),
                    min(layer_extent[2], rectangle[2]),
                    min(layer_extent[3], rectangle[3]),
                )
            used.append((i, layer_filter))
        elif rectangle is not None:
            layer_filter = rectangle

        if layer_filter is not None:
            logger.debug(
                f"spatial filter for layer <{layer_names[i]}>: xmin:{layer_filter[0]} "
                f"ymin:{layer_filter[1]} xmax:{layer_filter[2]} ymax:{layer_filter[3]}"
            )
            result.filters.append(rectangle_filter(layer_filter))
            result.active = True
        else:
            result.filters.append(None)

    extent = EMPTY_EXTENT
    for _, layer_filter in used:
        extent = union_extent(extent, layer_filter)
    if not used and rectangle is not None:
        extent = rectangle
    result.extent = extent
    return result
