"""
Info command - Display available formats and the layers of a datasource
"""

import fiona

from topo_import.errors import TopoImportError
from topo_import.source.dsn import get_datasource_name
from topo_import.utils.logger import get_logger

logger = get_logger()


def cmd_info_formats(args):
    """Handle 'info formats' subcommand."""
    print("\nSupported Formats:")
    print("=" * 70)
    for driver, modes in sorted(fiona.supported_drivers.items()):
        access = 'rw' if any(m in modes for m in ('a', 'w')) else 'ro'
        print(f"  {driver:25s} ({access})")
    return 0


def cmd_info_layers(args):
    """Handle 'info layers' subcommand."""
    try:
        dsn = get_datasource_name(args.input)
    except TopoImportError as e:
        logger.error(str(e))
        return 1
    try:
        layers = fiona.listlayers(dsn)
    except (fiona.errors.DriverError, fiona.errors.FionaValueError) as e:
        logger.error(f"Unable to open data source <{dsn}>: {e}")
        return 1

    print(f"\nData source <{dsn}> contains {len(layers)} layers:")
    print("=" * 70)
    for name in layers:
        print(f"  {name}")
    return 0
