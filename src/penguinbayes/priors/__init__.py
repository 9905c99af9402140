"""
This module provides prior declarations and tools to explore them.
"""

from .base import (
    FAMILIES,
    PARAMETER_CLASSES,
    PriorSpec,
    get_family,
    parse_prior,
    prior_quantiles,
    plausible_range,
    explore_priors,
)
from .defaults import prior_set_from_strings, course_priors, default_priors

__all__ = [
    "FAMILIES",
    "PARAMETER_CLASSES",
    "PriorSpec",
    "get_family",
    "parse_prior",
    "prior_quantiles",
    "plausible_range",
    "explore_priors",
    "prior_set_from_strings",
    "course_priors",
    "default_priors",
]
