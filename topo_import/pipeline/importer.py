"""
importer.py - Orchestrates one import run.

Passes, in order, each starting with a reset of the feature stream:
1. Survey: count features, polygons and boundaries, detect 3D input
2. Schema: resolve key columns, create attribute tables
3. Ingestion: write primitives and attribute rows
4. Topology and centroids (only with polygon boundaries and cleaning enabled):
   clean boundaries, build areas, give each area its categories

The vector map is written to the output SQLite file at the end, followed by
the diagnostics and the optional region update.
"""

import re
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from pyproj import CRS
from pyproj.exceptions import CRSError

from topo_import import config
from topo_import.attributes.store import open_store, store_database
from topo_import.errors import ConfigurationError, SourceCompatibilityError
from topo_import.filters import build_spatial_filters, fetch_layer_extents
from topo_import.region import extend_region, load_region, save_region
from topo_import.source.base import FeatureSource
from topo_import.source.crs import check_projection, compare_layer_srs, get_layer_proj
from topo_import.source.iterator import FeatureStreamIterator
from topo_import.topology.base import TopologyEngine
from topo_import.topology.shapely_engine import ShapelyTopologyEngine
from topo_import.utils.logger import get_logger
from topo_import.vector.map import BOUNDARY, VectorMap
from topo_import.vector.writer import prepare_output, write_map
from .centroids import assign_centroids, init_centroids, write_centroids
from .cleaning import clean_polygons
from .context import SEPARATOR, RunContext
from .ingest import ingest_layers
from .options import ImportOptions
from .report import topology_diagnostics, write_area_history
from .schema_pass import create_attribute_tables, resolve_keys
from .survey import survey_layers

logger = get_logger()

_LEGAL_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


class VectorImporter:
    """
    Import the layers of one feature source into a vector map.

    Args:
        options: run options
        source: an open feature source; when None options.dsn is opened with fiona
        engine_factory: builds the topology engine for the map being imported
    """

    def __init__(
        self,
        options: ImportOptions,
        source: Optional[FeatureSource] = None,
        engine_factory: Callable[[VectorMap], TopologyEngine] = ShapelyTopologyEngine,
    ):
        self.options = options
        self.source = source
        self.engine_factory = engine_factory
        self.ctx = RunContext()
        self.vmap: Optional[VectorMap] = None
        self.output_path: Optional[Path] = None
        self._owns_source = source is None

    def _open_source(self) -> FeatureSource:
        from topo_import.source.dsn import get_datasource_name
        from topo_import.source.fiona_source import FionaSource

        dsn = get_datasource_name(self.options.dsn)
        return FionaSource(dsn, encoding=self.options.encoding)

    def _select_layers(self) -> Tuple[List[int], List[str]]:
        available = self.source.layer_names()
        if self.options.layers:
            layer_ids = []
            for name in self.options.layers:
                if name not in available:
                    raise ConfigurationError(f"Layer <{name}> not available")
                layer_ids.append(available.index(name))
        else:
            layer_ids = list(range(len(available)))
            if len(available) > 1 and not self.options.output:
                logger.warning("All available layers will be imported into one vector map")
        return layer_ids, [available[i] for i in layer_ids]

    def _output_name(self, layer_names: List[str]) -> Tuple[str, Path]:
        if self.options.output:
            path = Path(self.options.output)
            name = path.stem
        else:
            name = layer_names[0]
            path = config.db_path / f"{name}.sqlite"
        if not _LEGAL_NAME.match(name):
            raise ConfigurationError(f"<{name}> is not a legal vector map name, use [A-Za-z][A-Za-z0-9_]*")
        return name, path

    def _check_projection(self, layer_ids: List[int], layer_names: List[str]) -> Optional[CRS]:
        opts = self.options
        if not compare_layer_srs(self.source, layer_ids, layer_names, opts.geometry):
            raise SourceCompatibilityError(
                "Detected different projections of input layers. Input layers must be imported separately."
            )

        status, source_crs = get_layer_proj(self.source, layer_ids[0], opts.geometry)
        location_crs = None
        if opts.location_crs:
            try:
                location_crs = CRS.from_user_input(opts.location_crs)
            except CRSError as e:
                raise ConfigurationError(f"Invalid location CRS <{opts.location_crs}>: {e}")
        return check_projection(status, source_crs, location_crs, opts.override_projection)

    def run(self) -> RunContext:
        """
        Run all passes.

        Raises:
            TopoImportError: configuration, source, projection or persistence failure
        """
        opts = self.options
        self.ctx = ctx = RunContext()
        if opts.driver not in config.SUPPORTED_DRIVERS:
            raise ConfigurationError(f"Unknown attribute store driver <{opts.driver}>")

        if self.source is None:
            self.source = self._open_source()
        try:
            return self._run(opts, ctx)
        finally:
            if self._owns_source:
                self.source.close()

    def _run(self, opts: ImportOptions, ctx: RunContext) -> RunContext:
        source = self.source
        if opts.encoding and source.driver not in config.ENCODING_DRIVERS:
            logger.warning(f"Encoding option is ignored by driver <{source.driver}>")
        if opts.geometry and not source.supports_geometry_columns:
            logger.warning(f"Geometry column option ignored, source <{source.name}> has a single geometry per layer")

        layer_ids, layer_names = self._select_layers()
        name, output_path = self._output_name(layer_names)

        out_crs = self._check_projection(layer_ids, layer_names)
        if opts.check_projection_only:
            logger.info("Projection of input dataset and current location appear to match")
            ctx.projection_checked = True
            return ctx

        region = None
        if opts.use_region:
            region = load_region(opts.region_file)
            if region is None:
                raise ConfigurationError(f"Region file {opts.region_file} not found")

        extents = fetch_layer_extents(source, layer_ids)
        filters = build_spatial_filters(extents, layer_names, region=region, spatial=opts.spatial)
        resolve_keys(source, layer_ids, opts, ctx)

        iterator = FeatureStreamIterator(source)
        iterator.reset()
        survey_layers(iterator, source, layer_ids, layer_names, filters, opts, ctx)

        vmap = VectorMap(name, with_z=ctx.input3d and not opts.force_2d)
        vmap.crs_wkt = out_crs.to_wkt() if out_crs is not None else None
        vmap.hist_write(opts.command_line or f"topo_import import {opts.dsn}")
        self.vmap = vmap

        self.output_path = prepare_output(output_path, opts.overwrite)
        store = None
        if not opts.no_table:
            if opts.driver != "sqlite":
                prepare_output(store_database(output_path, opts.driver), opts.overwrite)
            store = open_store(output_path, opts.driver)
        try:
            create_attribute_tables(source, layer_ids, layer_names, opts, ctx, vmap, store)
            iterator.reset()
            ingest_layers(iterator, source, layer_ids, layer_names, filters, opts, ctx, vmap, store)
        finally:
            if store is not None:
                store.close()
        logger.info(SEPARATOR)

        if not opts.no_clean and vmap.num_primitives(BOUNDARY) > 0:
            engine = self.engine_factory(vmap)
            clean_polygons(engine, opts, ctx)
            index = init_centroids(engine)
            iterator.reset()
            assign_centroids(iterator, source, layer_ids, layer_names, filters, opts, ctx, index)
            write_centroids(engine, vmap, index, len(layer_ids), opts, ctx)
            write_area_history(vmap, ctx)

        topology_diagnostics(vmap, ctx, len(layer_ids), opts.snap)
        write_map(vmap, self.output_path)

        if opts.extend_region:
            bbox = vmap.bbox()
            if bbox is not None:
                save_region(opts.region_file, extend_region(load_region(opts.region_file), bbox))
                logger.info("Region updated")

        if ctx.input3d and opts.force_2d:
            logger.warning("Input data contains 3D features. Created vector is 2D only, "
                           "disable -2 flag to import 3D vector.")
        logger.info(f"Vector map <{name}> written to {self.output_path}")
        return ctx


def import_vector(options: ImportOptions, source: Optional[FeatureSource] = None) -> RunContext:
    """Convenience wrapper around VectorImporter(options, source).run()."""
    return VectorImporter(options, source).run()
