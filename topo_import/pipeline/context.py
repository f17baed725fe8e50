"""
context.py - Mutable state of one import run, passed explicitly to every pass.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from shapely.geometry.base import BaseGeometry

from topo_import.attributes.schema import Column, KeyColumn
from topo_import.errors import ConfigurationError
from topo_import.source.base import Feature, FeatureSource, LayerDefn
from topo_import.utils.logger import get_logger

logger = get_logger()

SEPARATOR = "-----------------------------------------------------"


@dataclass
class RunContext:
    # survey
    n_polygons: int = 0
    n_polygon_boundaries: int = 0
    input3d: bool = False
    split_distance: float = -1.0
    n_features: List[int] = field(default_factory=list)

    # schema
    key_columns: List[KeyColumn] = field(default_factory=list)
    tables: List[Optional[str]] = field(default_factory=list)
    columns: List[List[Column]] = field(default_factory=list)

    # ingestion
    nogeom: List[int] = field(default_factory=list)
    invalid_cats: int = 0

    # cleaning and centroids
    clean_iterations: int = 0
    clean_converged: bool = True
    n_areas: int = 0
    n_overlaps: int = 0
    n_nocat: int = 0
    total_area: float = 0.0
    overlap_area: float = 0.0
    nocat_area: float = 0.0

    projection_checked: bool = False


def geometry_indices(source: FeatureSource, defn: LayerDefn, geometry: Optional[str]) -> List[int]:
    """
    Indexes of the geometry fields to read from a layer.

    Raises:
        ConfigurationError: the requested geometry column does not exist
    """
    if geometry and source.supports_geometry_columns:
        index = defn.geometry_field_index(geometry)
        if index < 0:
            raise ConfigurationError(f"Geometry column <{geometry}> not found in layer <{defn.name}>")
        return [index]
    return list(range(len(defn.geometry_fields)))


def feature_geometries(feature: Feature, indices: List[int]) -> List[Optional[BaseGeometry]]:
    return [feature.geometry(i) for i in indices]
