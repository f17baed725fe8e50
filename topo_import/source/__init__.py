"""
Feature sources and the feature stream iterator.
"""

from topo_import.source.base import Feature, FeatureSource, FieldDefn, LayerDefn
from topo_import.source.iterator import FeatureStreamIterator, INTERLEAVED, SEQUENTIAL
from topo_import.source.memory import MemorySource

__all__ = [
    'Feature',
    'FeatureSource',
    'FieldDefn',
    'LayerDefn',
    'FeatureStreamIterator',
    'INTERLEAVED',
    'SEQUENTIAL',
    'MemorySource',
]
