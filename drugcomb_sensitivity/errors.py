"""
Exceptions raised while scoring drug sensitivity.

Only InputShapeError is meant to reach the caller. The numerical failures
are caught inside the package and turned into fallback scores or per-block
faults.
"""


class SensitivityError(Exception):
    """Base class for all sensitivity scoring errors."""


class InputShapeError(SensitivityError, ValueError):
    """Required tables or columns are missing from the input data."""


class ModelFitError(SensitivityError):
    """A single curve family failed to converge."""


class DegenerateCurveError(SensitivityError):
    """A dose-response curve cannot be fitted by any model family."""


class UnsupportedModelFamilyError(SensitivityError, ValueError):
    """A model family other than LL4 or L4 was requested."""
