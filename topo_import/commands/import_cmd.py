"""
Import command - Import vector data into a topological vector map
"""

import sys

from topo_import.errors import TopoImportError
from topo_import.pipeline.importer import VectorImporter
from topo_import.pipeline.options import ImportOptions
from topo_import.utils.logger import get_logger
from topo_import.vector.map import option_to_types

logger = get_logger()


def _split_list(value):
    if not value:
        return []
    return [v.strip() for v in value.split(',') if v.strip()]


def options_from_args(args) -> ImportOptions:
    """Build ImportOptions from parsed 'import' arguments."""
    return ImportOptions(
        dsn=args.input,
        output=args.output,
        layers=args.layer or [],
        spatial=args.spatial,
        use_region=args.region,
        region_file=args.region_file,
        where=args.where,
        min_area=args.min_area,
        type_mask=option_to_types(args.type),
        snap=args.snap,
        geometry=args.geometry,
        no_clean=args.no_clean,
        force_2d=args.force_2d,
        max_clean_iterations=args.max_clean_iterations,
        columns=_split_list(args.columns),
        key=args.key,
        encoding=args.encoding,
        no_table=args.no_table,
        tolower=args.lowercase,
        driver=args.driver,
        location_crs=args.crs,
        override_projection=args.override,
        check_projection_only=args.check_projection,
        extend_region=args.extend,
        overwrite=args.overwrite,
        command_line=' '.join(sys.argv),
    )


def cmd_import(args):
    """Handle 'import' subcommand."""
    try:
        options = options_from_args(args)
        ctx = VectorImporter(options).run()
    except TopoImportError as e:
        logger.error(str(e))
        return 1

    if options.check_projection_only:
        return 0 if ctx.projection_checked else 1
    return 0
