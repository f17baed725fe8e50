"""
report.py - Area statistics for the map history and post-import diagnostics.
"""

import math
from typing import List, Optional, Tuple

from topo_import.utils.logger import get_logger
from topo_import.vector.map import CENTROID, VectorMap
from .context import SEPARATOR, RunContext

logger = get_logger()


def _readable_power_of_ten(value: float) -> float:
    exponent = math.log10(value)
    if exponent < 0:
        exponent = int(exponent)
    else:
        exponent = int(exponent) + 1
    return math.pow(10, exponent)


def estimate_snap_range(max_coord: float) -> Tuple[float, float]:
    """
    Range of useful snapping thresholds for coordinates up to max_coord.

    The lower end is the double precision ULP, the upper end the single
    precision ULP, both rounded to a power of ten.
    """
    if max_coord <= 0:
        max_coord = 1.0
    mantissa, exp = math.frexp(max_coord)
    min_snap = _readable_power_of_ten(math.ldexp(mantissa, exp - 52))
    max_snap = _readable_power_of_ten(math.ldexp(mantissa, exp - 23))
    return min_snap, max_snap


def write_area_history(vmap: VectorMap, ctx: RunContext) -> None:
    vmap.hist_write(SEPARATOR)
    vmap.hist_write(f"{ctx.n_polygons} input polygons")
    logger.info(f"{ctx.n_polygons} input polygons")

    vmap.hist_write(f"Total area: {ctx.total_area:G} ({ctx.n_areas} areas)")
    logger.info(f"Total area: {ctx.total_area:G} ({ctx.n_areas} areas)")

    vmap.hist_write(f"Overlapping area: {ctx.overlap_area:G} ({ctx.n_overlaps} areas)")
    if ctx.n_overlaps:
        logger.info(f"Overlapping area: {ctx.overlap_area:G} ({ctx.n_overlaps} areas)")

    vmap.hist_write(f"Area without category: {ctx.nocat_area:G} ({ctx.n_nocat} areas)")
    if ctx.n_nocat:
        logger.info(f"Area without category: {ctx.nocat_area:G} ({ctx.n_nocat} areas)")

    if not ctx.clean_converged:
        vmap.hist_write(f"Boundary cleaning stopped after {ctx.clean_iterations} iterations")
    logger.info(SEPARATOR)


def topology_diagnostics(vmap: VectorMap, ctx: RunContext, nlayers: int, snap: float) -> List[str]:
    """
    Advice for a single layer import whose areas do not match the input polygons.

    Small gaps (areas without centroid) are not detected, and may be true gaps.
    """
    if not ctx.n_polygons or nlayers != 1:
        return []
    ncentr = vmap.num_primitives(CENTROID)
    if ncentr == ctx.n_polygons and not ctx.n_overlaps:
        return []

    box = vmap.bbox()
    max_coord: Optional[float] = None
    if box:
        max_coord = max(abs(box["east"]), abs(box["west"]), abs(box["north"]), abs(box["south"]))
    min_snap, max_snap = estimate_snap_range(max_coord or 0.0)

    messages = []
    if ctx.n_overlaps:
        messages.append("Some input polygons are overlapping each other.")
        messages.append("If overlapping is not desired, the data need to be cleaned.")
        if snap < max_snap:
            messages.append("The input could be cleaned by snapping vertices to each other.")
            messages.append(f"Estimated range of snapping threshold: [{min_snap:g}, {max_snap:g}]")
        if snap < min_snap:
            messages.append(f"Try to import again, snapping with at least {min_snap:g}: 'snap={min_snap:g}'")
        elif snap < max_snap:
            suggested = snap * 10
            messages.append(f"Try to import again, snapping with {suggested:g}: 'snap={suggested:g}'")
        else:
            messages.append("Manual cleaning may be needed.")
    else:
        if ncentr < ctx.n_polygons:
            messages.append(f"{ctx.n_polygons - ncentr} input polygons got lost during import.")
        if ncentr > ctx.n_polygons:
            messages.append(f"{ncentr - ctx.n_polygons} additional areas were created during import.")
        if snap > 0:
            messages.append(f"The snapping threshold {snap:g} might be too large.")
            messages.append(f"Estimated range of snapping threshold: [{min_snap:g}, {max_snap:g}]")
            messages.append("Manual cleaning may be needed.")
        else:
            messages.append("The input could be cleaned by snapping vertices to each other.")
            messages.append(f"Estimated range of snapping threshold: [{min_snap:g}, {max_snap:g}]")

    logger.info(SEPARATOR)
    for message in messages:
        logger.info(message)
        vmap.hist_write(message)
    return messages
