"""
topo_cli.py - Command-line interface for importing vector data into topological vector maps
"""

import sys
import argparse

from topo_import import config
from topo_import.commands import cmd_info_formats, cmd_info_layers, cmd_import
from topo_import.utils.logger import get_logger, setup_logger

setup_logger()
logger = get_logger()


def build_parser():
    parser = argparse.ArgumentParser(
        description='Import vector data into a topological vector map with attribute tables',
        epilog="""
Examples:
  # Show supported formats:
  python -m topo_import info formats

  # List the layers of a datasource:
  python -m topo_import info layers parcels.gpkg

  # Import all layers of a shapefile directory into one map:
  python -m topo_import import data/shapes --output database/shapes.sqlite

  # Import one layer, snapping vertices closer than 1e-6:
  python -m topo_import import parcels.gpkg --layer parcels --snap 1e-6

  # Import only features inside a rectangle with a filter:
  python -m topo_import import roads.shp --spatial 0,0,1000,1000 --where "type = 'primary'"

  # Only check the projection against the location CRS:
  python -m topo_import import parcels.gpkg --crs EPSG:3857 -j
""",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global arguments
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose (DEBUG) logging output')
    parser.add_argument('--quiet', '-q', action='store_true', help='Enable quiet mode (WARNING and ERROR only)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== INFO COMMAND ==========
    info_parser = subparsers.add_parser('info', help='Information commands (formats, layers)')
    info_subparsers = info_parser.add_subparsers(dest='info_command', help='Info subcommands', required=True)

    formats_parser = info_subparsers.add_parser('formats', help='List supported formats')
    formats_parser.set_defaults(func=cmd_info_formats)

    layers_parser = info_subparsers.add_parser('layers', help='List available layers of a datasource')
    layers_parser.add_argument('input', help='Name of input datasource')
    layers_parser.set_defaults(func=cmd_info_layers)

    # ========== IMPORT COMMAND ==========
    import_parser = subparsers.add_parser('import', help='Import vector data into a vector map')
    import_parser.set_defaults(func=cmd_import)
    import_parser.add_argument('input', help='Name of input datasource (file, directory, zip archive or PG: string)')

    # Input selection
    import_parser.add_argument('--layer', action='append', help='Layer name to import, may be repeated (default: all layers)')
    import_parser.add_argument('--spatial', type=str, help='Import subregion only: xmin,ymin,xmax,ymax')
    import_parser.add_argument('--where', type=str, help='WHERE conditions of SQL statement without \'where\' keyword')
    import_parser.add_argument('-r', '--region', action='store_true', help='Limit import to the current region')
    import_parser.add_argument('--region-file', type=str, default=config.DEFAULT_REGION_FILE, help=f'Path to the region file (default: {config.DEFAULT_REGION_FILE})')
    import_parser.add_argument('--encoding', type=str, help='Encoding value for attribute data (ESRI Shapefile and DXF only)')
    import_parser.add_argument('--geometry', type=str, help='Name of geometry column to import')

    # Output
    import_parser.add_argument('--output', type=str, default=None, help=f'Output map file (default: {config.db_path}/<first layer>.sqlite)')
    import_parser.add_argument('--overwrite', action='store_true', help='Replace an existing output')
    import_parser.add_argument('--driver', type=str, default=config.DEFAULT_DRIVER, choices=config.SUPPORTED_DRIVERS, help=f'Attribute table driver (default: {config.DEFAULT_DRIVER})')
    import_parser.add_argument('-e', '--extend', action='store_true', help='Extend region extents based on new dataset')

    # Geometry handling
    import_parser.add_argument('--min-area', type=float, default=config.MIN_AREA_DEFAULT, help=f'Minimum size of area to be imported, smaller areas and islands are ignored (default: {config.MIN_AREA_DEFAULT})')
    import_parser.add_argument('--type', type=str, help='Optionally change default input type: point,line,boundary,centroid')
    import_parser.add_argument('--snap', type=float, default=config.SNAP_DEFAULT, help='Snapping threshold for boundaries, -1 for no snap (default: -1)')
    import_parser.add_argument('-c', '--no-clean', action='store_true', help='Do not clean polygons (not recommended)')
    import_parser.add_argument('-2', '--force-2d', dest='force_2d', action='store_true', help='Force 2D output even if input is 3D')
    import_parser.add_argument('--max-clean-iterations', type=int, default=None, help='Stop boundary cleaning after N iterations (default: until clean)')

    # Attributes
    import_parser.add_argument('--columns', type=str, help='Comma-separated list of column names for the attribute table')
    import_parser.add_argument('--key', type=str, help='Name of column used for categories (default: generated)')
    import_parser.add_argument('-t', '--no-table', action='store_true', help='Do not create attribute tables')
    import_parser.add_argument('-w', '--lowercase', action='store_true', help='Change column names to lowercase characters')

    # Projection
    import_parser.add_argument('--crs', type=str, help='CRS of the current location (any pyproj input, e.g. EPSG:4326)')
    import_parser.add_argument('-o', '--override', action='store_true', help='Override projection check (use current location\'s projection)')
    import_parser.add_argument('-j', '--check-projection', action='store_true', help='Perform projection check only and exit')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging level (global)
    if args.quiet:
        logger.setLevel(30)
    elif args.verbose:
        logger.setLevel(10)
    else:
        logger.setLevel(20)

    if not hasattr(args, 'func'):
        parser.print_help()
        return 0

    return args.func(args)

if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting.")
        sys.exit(130)
