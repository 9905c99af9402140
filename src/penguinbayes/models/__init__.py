"""
Model formulas and the PyMC regression fitter.
"""

from .formula import Formula, design_matrices, parse_formula
from .regression import (
    LIKELIHOOD_FAMILIES,
    FittedModel,
    build_model,
    convergence_problems,
    fit_model,
    resolve_priors,
)

__all__ = [
    "Formula",
    "parse_formula",
    "design_matrices",
    "LIKELIHOOD_FAMILIES",
    "FittedModel",
    "build_model",
    "convergence_problems",
    "fit_model",
    "resolve_priors",
]
