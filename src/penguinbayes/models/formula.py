"""
Model formulas of the form ``outcome ~ predictor + ...``.

Formulas are parsed and turned into design matrices by patsy, so categorical
terms (``C(species)``), interactions (``a * b``) and transformations
(``np.log(x)``) work the way they do in statsmodels.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from patsy import INTERCEPT, ModelDesc, PatsyError, dmatrices

from ..errors import ModelSpecificationError


@dataclass(frozen=True)
class Formula:
    outcome: str
    predictors: Tuple[str, ...] = ()
    intercept: bool = True

    def __str__(self) -> str:
        terms = list(self.predictors)
        if not self.intercept:
            terms.insert(0, "0")
        return f"{self.outcome} ~ {' + '.join(terms) if terms else '1'}"


def parse_formula(text: str) -> Formula:
    """
    Parse ``"y ~ x1 + x2"``.

    The intercept is included unless the right-hand side has a ``0`` term or
    ``- 1``. ``predictors`` holds patsy term names, e.g. ``"a:b"`` for an
    interaction.
    """
    if not isinstance(text, str) or text.count("~") != 1:
        raise ModelSpecificationError(
            f"Formula must contain exactly one '~', got {text!r}"
        )
    try:
        desc = ModelDesc.from_formula(text)
    except PatsyError as e:
        raise ModelSpecificationError(f"Cannot parse formula {text!r}: {e}") from e

    if len(desc.lhs_termlist) != 1:
        raise ModelSpecificationError(f"Formula {text!r} needs exactly one outcome")
    outcome = desc.lhs_termlist[0].name()

    intercept = INTERCEPT in desc.rhs_termlist
    predictors = tuple(term.name() for term in desc.rhs_termlist if term != INTERCEPT)
    if outcome in predictors:
        raise ModelSpecificationError(
            f"Outcome '{outcome}' cannot also be a predictor in {text!r}"
        )
    if not predictors and not intercept:
        raise ModelSpecificationError(f"Formula {text!r} has no terms to estimate")

    return Formula(outcome=outcome, predictors=predictors, intercept=intercept)


def design_matrices(formula: Formula, data: pd.DataFrame) -> Tuple[np.ndarray, pd.DataFrame]:
    """
    Outcome vector and predictor matrix for ``formula`` evaluated on ``data``.

    The predictor matrix has one column per coefficient, named the way patsy
    names them (``"sex_c"``, ``"C(species)[T.Gentoo]"``), without the
    intercept column. Missing values raise instead of being dropped.
    """
    if len(data) == 0:
        raise ValueError("Cannot fit a model to an empty table")
    try:
        y, X = dmatrices(str(formula), data, NA_action="raise", return_type="dataframe")
    except PatsyError as e:
        raise ModelSpecificationError(f"Cannot evaluate '{formula}' on the data: {e}") from e

    if y.shape[1] != 1:
        raise ModelSpecificationError(
            f"Outcome '{formula.outcome}' is not numeric; it expands to {list(y.columns)}"
        )
    X = X.drop(columns="Intercept", errors="ignore")
    return y.iloc[:, 0].to_numpy(dtype=float), X
