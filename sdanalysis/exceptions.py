"""
Exception types raised by sdanalysis.

Every error derives from :class:`SDAnalysisError` and also from the builtin
exception a caller would naturally expect (``ValueError``, ``RuntimeError``),
so ``except ValueError`` keeps working for code that does not know about
this package.
"""


class SDAnalysisError(Exception):
    """Base class of all sdanalysis errors."""


class CellError(SDAnalysisError, ValueError):
    """Invalid simulation cell (non-positive edges or excessive tilt)."""


class ShapeMismatchError(SDAnalysisError, ValueError):
    """Arrays that must describe the same particles have inconsistent shapes."""


class NotFittedError(SDAnalysisError, RuntimeError):
    """A classifier was asked to predict before being fitted."""


class DegenerateGeometryError(SDAnalysisError, ValueError):
    """Tessellation impossible: too few points or collinear input."""


class DumpFormatError(SDAnalysisError, ValueError):
    """Malformed trajectory dump."""
