"""
options.py - Options of one import run, filled in by the CLI or by callers.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from topo_import import config


@dataclass
class ImportOptions:
    dsn: str = ""
    output: Optional[str] = None
    layers: List[str] = field(default_factory=list)

    # filters
    spatial: Optional[str] = None
    use_region: bool = False
    region_file: Path = config.DEFAULT_REGION_FILE
    where: Optional[str] = None

    # geometry handling
    min_area: float = config.MIN_AREA_DEFAULT
    type_mask: int = 0
    snap: float = config.SNAP_DEFAULT
    geometry: Optional[str] = None
    no_clean: bool = False
    force_2d: bool = False
    max_clean_iterations: Optional[int] = None

    # attributes
    columns: List[str] = field(default_factory=list)
    key: Optional[str] = None
    encoding: Optional[str] = None
    no_table: bool = False
    tolower: bool = False
    driver: str = config.DEFAULT_DRIVER

    # projection
    location_crs: Optional[str] = None
    override_projection: bool = False
    check_projection_only: bool = False

    extend_region: bool = False
    overwrite: bool = False
    command_line: Optional[str] = None
