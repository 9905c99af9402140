"""
Ready-made prior sets: the ones used in the course walkthrough and
brms-style weakly informative defaults derived from the outcome.
"""

from typing import Dict, Mapping, Optional

import numpy as np
import pandas as pd
from scipy import stats

from ..config import DEFAULT_PRIORS
from .base import PARAMETER_CLASSES, PriorSpec, parse_prior

MIN_DEFAULT_SCALE = 2.5


def prior_set_from_strings(priors: Mapping[str, str]) -> Dict[str, PriorSpec]:
    """
    Build a prior set from ``{parameter: "family(args)"}``.

    Keys are parameter classes (``Intercept``, ``b``, ``sigma``, ``nu``) or
    ``b_<coef>`` for a prior on a single slope.
    """
    result = {}
    for name, text in priors.items():
        if isinstance(text, PriorSpec):
            result[name] = text
            continue
        if name in PARAMETER_CLASSES:
            result[name] = parse_prior(text, cls=name)
        elif name.startswith("b_") and len(name) > 2:
            result[name] = parse_prior(text, cls="b", coef=name[2:])
        else:
            raise ValueError(
                f"Unknown parameter '{name}'; use one of "
                f"{', '.join(PARAMETER_CLASSES)} or b_<coef>"
            )
    return result


def course_priors() -> Dict[str, PriorSpec]:
    """Priors used in the flipper-length walkthrough."""
    return prior_set_from_strings(DEFAULT_PRIORS)


def default_priors(
    df: pd.DataFrame, outcome: str, family: Optional[str] = "gaussian"
) -> Dict[str, PriorSpec]:
    """
    Weakly informative defaults centred on the observed outcome.

    Intercept gets ``student_t(3, median(y), s)`` and sigma
    ``student_t(3, 0, s)`` truncated at zero, where ``s`` is the
    normal-consistent MAD of ``y`` (at least 2.5). Slopes are flat.
    """
    if outcome not in df.columns:
        raise KeyError(f"Column '{outcome}' not in table")
    y = df[outcome].dropna().to_numpy(dtype=float)
    if y.size == 0:
        raise ValueError(f"Column '{outcome}' has no observed values")

    location = round(float(np.median(y)), 1)
    mad = float(stats.median_abs_deviation(y, scale="normal"))
    scale = max(MIN_DEFAULT_SCALE, round(mad, 1))

    priors = {
        "Intercept": PriorSpec("student_t", (3, location, scale), cls="Intercept"),
        "sigma": PriorSpec("student_t", (3, 0, scale), cls="sigma"),
        "b": PriorSpec("flat", cls="b"),
    }
    if family == "student":
        priors["nu"] = PriorSpec("gamma", (2, 0.1), cls="nu", lb=1.0)
    return priors
