"""
Topology engines used to turn polygon boundaries into clean areas.
"""

from topo_import.topology.base import TopologyEngine
from topo_import.topology.shapely_engine import ShapelyTopologyEngine

__all__ = [
    'TopologyEngine',
    'ShapelyTopologyEngine',
]
