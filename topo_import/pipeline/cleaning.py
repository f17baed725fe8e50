"""
cleaning.py - Turn the imported polygon boundaries into clean areas.

The principal purpose is to convert non-topological polygons to
topological areas.
"""

from topo_import.topology.base import TopologyEngine
from topo_import.utils.logger import get_logger
from topo_import.vector.map import BOUNDARY, CENTROID
from .context import SEPARATOR, RunContext
from .options import ImportOptions

logger = get_logger()


def clean_polygons(engine: TopologyEngine, options: ImportOptions, ctx: RunContext) -> int:
    """
    Run the fixed cleaning sequence and build areas.

    Returns:
        Number of areas
    """
    logger.info(SEPARATOR)
    logger.info("Cleaning polygons")

    if options.snap >= 0:
        logger.info(SEPARATOR)
        logger.info(f"Snapping boundaries (threshold = {options.snap:.3e})...")
        engine.snap(options.snap)

    logger.info(SEPARATOR)
    logger.info("Breaking polygons...")
    engine.break_polygons()

    # duplicate input polygons leave duplicate centroids too
    logger.info(SEPARATOR)
    logger.info("Removing duplicates...")
    engine.remove_duplicates(BOUNDARY | CENTROID)

    # cleaning small angles can create new intersections, repeat until none is left
    ctx.clean_iterations = 0
    ctx.clean_converged = True
    while True:
        ctx.clean_iterations += 1
        logger.info(SEPARATOR)
        logger.info("Breaking boundaries...")
        engine.break_lines()

        logger.info(SEPARATOR)
        logger.info("Removing duplicates...")
        engine.remove_duplicates(BOUNDARY)

        logger.info(SEPARATOR)
        logger.info("Cleaning boundaries at nodes...")
        nmodif = engine.clean_small_angles()
        if nmodif == 0:
            break
        if options.max_clean_iterations and ctx.clean_iterations >= options.max_clean_iterations:
            ctx.clean_converged = False
            logger.warning(
                f"Boundary cleaning did not converge after {ctx.clean_iterations} iterations, "
                f"{nmodif} small angles left"
            )
            break

    logger.info(SEPARATOR)
    logger.info("Merging boundaries...")
    engine.merge_lines()

    # lines converted to boundaries keep their dangles and bridges as lines
    lines_as_boundaries = bool(options.type_mask & BOUNDARY)
    logger.info(SEPARATOR)
    if lines_as_boundaries:
        logger.info("Changing boundary dangles to lines...")
        engine.chtype_dangles()
    else:
        logger.info("Removing dangles...")
        engine.remove_dangles()

    logger.info(SEPARATOR)
    engine.build_areas()

    logger.info(SEPARATOR)
    if lines_as_boundaries:
        logger.info("Changing boundary bridges to lines...")
        nmodif = engine.chtype_bridges()
    else:
        logger.info("Removing bridges...")
        nmodif = engine.remove_bridges()
    if nmodif:
        logger.debug(f"{nmodif} bridges handled")

    # boundaries are hopefully clean, build areas
    logger.info(SEPARATOR)
    ctx.n_areas = engine.build_areas()
    logger.debug(f"{ctx.n_areas} centroids/areas")
    return ctx.n_areas
