"""
Exceptions and warnings raised by penguinbayes.
"""


class DatasetNotFoundError(FileNotFoundError):
    """Raised when a named dataset or local data file cannot be loaded."""


class ModelSpecificationError(ValueError):
    """Raised for malformed formulas, unknown families or missing priors."""


class ConvergenceWarning(UserWarning):
    """Emitted when a fit shows Rhat above 1.00 or divergent transitions."""
