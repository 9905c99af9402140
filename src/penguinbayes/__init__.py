"""
penguinbayes: a Bayesian linear model of penguin flipper length

This package provides tools to:
1. Load the Palmer penguins data and drop incomplete rows
2. Sum-code a two-level predictor such as sex
3. Check the plausible range of candidate priors
4. Fit the regression with PyMC, ignoring the data or using it
5. Report convergence, posterior summaries and predictive checks
"""

from .errors import ConvergenceWarning, DatasetNotFoundError, ModelSpecificationError
from .config import AnalysisConfig, FitSettings, SEX_LEVELS
from .data import (
    load_dataset,
    drop_missing,
    load_clean_dataset,
    sum_code,
    describe_outcome,
)
from .priors import (
    PriorSpec,
    parse_prior,
    prior_quantiles,
    plausible_range,
    explore_priors,
    course_priors,
    default_priors,
)
from .models import Formula, FittedModel, parse_formula, build_model, fit_model
from .diagnostics import (
    PredictiveCheck,
    rhat_table,
    posterior_summary,
    is_trustworthy,
    posterior_predictive_check,
    format_report,
)
from .pipeline import AnalysisData, run_pipeline, save_results, pipe

__version__ = "0.1.0"

__all__ = [
    "ConvergenceWarning",
    "DatasetNotFoundError",
    "ModelSpecificationError",
    "AnalysisConfig",
    "FitSettings",
    "SEX_LEVELS",
    "load_dataset",
    "drop_missing",
    "load_clean_dataset",
    "sum_code",
    "describe_outcome",
    "PriorSpec",
    "parse_prior",
    "prior_quantiles",
    "plausible_range",
    "explore_priors",
    "course_priors",
    "default_priors",
    "Formula",
    "FittedModel",
    "parse_formula",
    "build_model",
    "fit_model",
    "PredictiveCheck",
    "rhat_table",
    "posterior_summary",
    "is_trustworthy",
    "posterior_predictive_check",
    "format_report",
    "AnalysisData",
    "run_pipeline",
    "save_results",
    "pipe",
]
