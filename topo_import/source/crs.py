"""
crs.py - Projection checks with pyproj.

The importer never reprojects. It only verifies that all imported layers
share one CRS and that this CRS matches the CRS of the target location.
"""

from typing import Dict, Optional, Sequence, Tuple

from pyproj import CRS
from pyproj.exceptions import CRSError

from topo_import.errors import ConfigurationError, SourceCompatibilityError
from topo_import.utils.logger import get_logger
from .base import FeatureSource

logger = get_logger()

# get_layer_proj() status codes
PROJ_OK = 0
PROJ_NONE = 1
PROJ_UNREADABLE = 2


def get_layer_proj(
    source: FeatureSource,
    layer_id: int,
    geometry: Optional[str] = None,
    verbose: bool = True,
) -> Tuple[int, Optional[CRS]]:
    """
    Read the CRS of a layer.

    Returns:
        (status, crs): PROJ_OK with the CRS, PROJ_NONE if the layer has no
        CRS, PROJ_UNREADABLE if it has one pyproj can not use.
    """
    defn = source.layer_defn(layer_id)
    if geometry and source.supports_geometry_columns and defn.geometry_field_index(geometry) < 0:
        raise ConfigurationError(f"Geometry column <{geometry}> not found in input layer <{defn.name}>")

    wkt = source.get_crs_wkt(layer_id, geometry)
    if not wkt:
        if verbose:
            logger.info(f"No projection available for layer <{defn.name}>")
        return PROJ_NONE, None

    try:
        crs = CRS.from_user_input(wkt)
    except CRSError as e:
        logger.warning(f"Unable to read projection information of layer <{defn.name}>: {e}")
        if verbose:
            logger.info(f"WKT-style definition:\n{wkt}")
        return PROJ_UNREADABLE, None

    if not crs.is_projected and not crs.is_geographic:
        logger.info(f"Projection for layer <{defn.name}> does not contain a valid SRS")
        if verbose:
            logger.info(f"WKT-style definition:\n{wkt}")
        return PROJ_UNREADABLE, None

    return PROJ_OK, crs


def proj_info(crs: Optional[CRS]) -> Dict[str, str]:
    """Key/value summary of a CRS, used in mismatch reports."""
    if crs is None:
        return {}
    info = {"name": crs.name, "type": crs.type_name}
    if crs.datum is not None:
        info["datum"] = crs.datum.name
    if crs.ellipsoid is not None:
        info["ellps"] = crs.ellipsoid.name
    if crs.axis_info:
        info["units"] = crs.axis_info[0].unit_name
    epsg = crs.to_epsg()
    if epsg is not None:
        info["epsg"] = str(epsg)
    return info


def same_crs(a: Optional[CRS], b: Optional[CRS]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.equals(b, ignore_axis_order=True)


def compare_layer_srs(
    source: FeatureSource,
    layer_ids: Sequence[int],
    layer_names: Sequence[str],
    geometry: Optional[str] = None,
) -> bool:
    """
    Return True if all layers share one CRS.

    Layers whose CRS are all unreadable count as equal; a mix of readable
    and unreadable ones does not.
    """
    if len(layer_ids) <= 1:
        return True

    first = None
    first_crs = None
    for i, layer_id in enumerate(layer_ids):
        status, crs = get_layer_proj(source, layer_id, geometry, verbose=False)
        if status == PROJ_OK:
            first, first_crs = i, crs
            break

    if first is None:
        logger.warning("Layer projections are unreadable")
        return True
    if first > 0:
        logger.warning(f"Projection for layer <{layer_names[first - 1]}> is unreadable")
        return False

    for i in range(1, len(layer_ids)):
        status, crs = get_layer_proj(source, layer_ids[i], geometry, verbose=False)
        if status != PROJ_OK:
            return False
        if not same_crs(first_crs, crs):
            logger.warning(
                f"Projection of layer <{layer_names[i]}> is different from "
                f"projection of layer <{layer_names[i - 1]}>"
            )
            return False
    return True


def _format_info(title: str, info: Dict[str, str]) -> str:
    lines = [title]
    lines.extend(f"{key}: {value}" for key, value in info.items())
    return "\n".join(lines)


def check_projection(
    status: int,
    source_crs: Optional[CRS],
    location_crs: Optional[CRS],
    override: bool = False,
) -> Optional[CRS]:
    """
    Check the dataset CRS against the location CRS.

    Returns the CRS the output map is stored with. Without a location CRS
    the dataset CRS is adopted.

    Raises:
        SourceCompatibilityError: unreadable or mismatching projection and
        override is not set
    """
    if location_crs is None:
        return source_crs

    if status != PROJ_OK:
        message = "Unable to convert input map projection information."
        if not override:
            raise SourceCompatibilityError(message)
        logger.warning(message)

    if override:
        logger.info("Over-riding projection check")
        return location_crs

    if not same_crs(location_crs, source_crs):
        parts = ["Projection of dataset does not appear to match current location.", ""]
        parts.append(_format_info("Location PROJ_INFO is:", proj_info(location_crs)))
        parts.append("")
        if source_crs is not None:
            parts.append(_format_info("Import dataset PROJ_INFO is:", proj_info(source_crs)))
        else:
            parts.append("Import dataset PROJ_INFO is:\nDataset proj = (unreferenced/unknown)")
        parts.append("")
        parts.append("In case of no significant differences in the projection definitions, "
                     "use the -o flag to ignore them and use current location definition.")
        raise SourceCompatibilityError("\n".join(parts))

    return location_crs
