"""
errors.py - Exceptions raised by the import pipeline.

Data-quality conditions (missing geometry, overlaps, gaps) are never raised;
they are counted in the run context and logged.
"""


class TopoImportError(Exception):
    """Base class for fatal import errors."""


class ConfigurationError(TopoImportError):
    """Conflicting or invalid options, unknown layers or columns."""


class AttributeFilterError(ConfigurationError):
    """The source rejected an attribute filter expression."""


class SourceError(TopoImportError):
    """The data source could not be opened or has no layers."""


class SourceCompatibilityError(TopoImportError):
    """Unreadable or mismatching projections."""


class PersistenceError(TopoImportError):
    """Table creation, insert, index or output write failed."""
