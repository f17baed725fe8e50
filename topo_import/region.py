"""
region.py - The current region (viewport) kept in a JSON file.

Format:
    {"north": .., "south": .., "east": .., "west": .., "ns_res": .., "ew_res": ..}

The region limits an import when the current-region flag is given, and is
grown to cover the imported map with the extend flag.
"""

import json
import math
from pathlib import Path
from typing import Dict, Optional

from topo_import.errors import ConfigurationError
from topo_import.utils.logger import get_logger

logger = get_logger()

REGION_KEYS = ("north", "south", "east", "west", "ns_res", "ew_res")


def default_region() -> Dict[str, float]:
    return {"north": 1.0, "south": 0.0, "east": 1.0, "west": 0.0, "ns_res": 1.0, "ew_res": 1.0}


def load_region(region_file: Path) -> Optional[Dict[str, float]]:
    """Read the region file, None if it does not exist."""
    region_file = Path(region_file)
    if not region_file.exists():
        return None
    with open(region_file, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid region file {region_file}: {e}")
    missing = [key for key in REGION_KEYS if key not in data]
    if missing:
        raise ConfigurationError(f"Region file {region_file} is missing {', '.join(missing)}")
    return {key: float(data[key]) for key in REGION_KEYS}


def save_region(region_file: Path, region: Dict[str, float]) -> None:
    region_file = Path(region_file)
    region_file.parent.mkdir(parents=True, exist_ok=True)
    with open(region_file, "w") as f:
        json.dump({key: region[key] for key in REGION_KEYS}, f, indent=2)


def extend_region(region: Optional[Dict[str, float]], bbox: Dict[str, float]) -> Dict[str, float]:
    """
    Grow a region so it covers bbox (keys north/south/east/west).

    Rows and columns are re-aligned to the region resolution: the south
    edge moves down and the east edge moves right to a whole cell.
    """
    if region is None:
        region = dict(default_region(), north=bbox["north"], south=bbox["south"],
                      east=bbox["east"], west=bbox["west"])
    else:
        region = dict(region)

    region["north"] = max(region["north"], bbox["north"])
    region["south"] = min(region["south"], bbox["south"])
    region["west"] = min(region["west"], bbox["west"])
    region["east"] = max(region["east"], bbox["east"])

    rows = int(math.ceil((region["north"] - region["south"]) / region["ns_res"]))
    region["south"] = region["north"] - rows * region["ns_res"]
    cols = int(math.ceil((region["east"] - region["west"]) / region["ew_res"]))
    region["east"] = region["west"] + cols * region["ew_res"]
    return region
