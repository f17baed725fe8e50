"""
Import passes and the orchestrator running them.
"""

from topo_import.pipeline.context import RunContext
from topo_import.pipeline.importer import VectorImporter, import_vector
from topo_import.pipeline.options import ImportOptions

__all__ = [
    'RunContext',
    'VectorImporter',
    'import_vector',
    'ImportOptions',
]
