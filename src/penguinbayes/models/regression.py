"""
Bayesian linear regression fitted with PyMC.

``fit_model`` is the only entry point most code needs: it declares the model
from a formula, a likelihood family and a set of priors, runs the NUTS
sampler and returns an immutable ``FittedModel``. Sampling either uses the
data ("data-informed") or ignores it ("prior-only"), the latter giving draws
from the priors for prior predictive checks.
"""

import sys
import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm

from ..config import FitSettings
from ..errors import ConvergenceWarning, ModelSpecificationError
from ..priors import PriorSpec, default_priors, prior_set_from_strings
from .formula import Formula, design_matrices, parse_formula

# Auxiliary parameters each likelihood needs besides the linear predictor
LIKELIHOOD_FAMILIES = {
    "gaussian": ("sigma",),
    "student": ("sigma", "nu"),
}

RHAT_DECIMALS = 2
RHAT_LIMIT = 1.00


def _check_family(family: str) -> str:
    if family not in LIKELIHOOD_FAMILIES:
        raise ModelSpecificationError(
            f"Unknown likelihood family '{family}'. "
            f"Supported: {', '.join(LIKELIHOOD_FAMILIES)}"
        )
    return family


def resolve_priors(
    formula: Formula,
    priors: Mapping[str, Union[PriorSpec, str]],
    family: str = "gaussian",
    coefs: Optional[Sequence[str]] = None,
) -> Dict[str, PriorSpec]:
    """
    Assign one prior to every parameter of the model.

    ``coefs`` are the design-matrix column names; they default to the
    formula's terms, which is the same thing for numeric predictors. A
    ``b_<coef>`` prior wins over the class-wide ``b`` prior. Raises
    ModelSpecificationError if a parameter is left without a prior.
    """
    if coefs is None:
        coefs = formula.predictors
    _check_family(family)
    try:
        priors = prior_set_from_strings(priors)
    except ValueError as e:
        raise ModelSpecificationError(str(e)) from e

    resolved = {}
    wanted = []
    if formula.intercept:
        wanted.append(("Intercept", "Intercept", None))
    wanted.extend((f"b_{coef}", "b", coef) for coef in coefs)
    wanted.extend((name, name, None) for name in LIKELIHOOD_FAMILIES[family])

    for name, cls, coef in wanted:
        if coef is not None and name in priors:
            resolved[name] = priors[name]
        elif cls in priors:
            resolved[name] = priors[cls]
        else:
            raise ModelSpecificationError(
                f"No prior given for parameter '{name}' (class '{cls}')"
            )
    return resolved


def build_model(
    formula: Union[Formula, str],
    data: pd.DataFrame,
    family: str = "gaussian",
    priors: Optional[Mapping[str, Union[PriorSpec, str]]] = None,
    prior_only: bool = False,
) -> pm.Model:
    """
    Declare the regression as a PyMC model.

    In prior-only mode the likelihood is left out, so sampling the model
    draws parameters from their priors alone.
    """
    if isinstance(formula, str):
        formula = parse_formula(formula)
    _check_family(family)
    y, design = design_matrices(formula, data)
    coefs = list(design.columns)
    if priors is None:
        priors = default_priors(data, formula.outcome, family)
    reserved = {"Intercept", "sigma", "nu", "X"} | {f"b_{c}" for c in coefs}
    if formula.outcome in reserved:
        raise ModelSpecificationError(
            f"Outcome name '{formula.outcome}' clashes with a parameter name"
        )

    resolved = resolve_priors(formula, priors, family, coefs)
    X = design.to_numpy(dtype=float)

    coords = {"obs_id": np.arange(len(y)), "coef": coefs}
    with pm.Model(coords=coords) as model:
        mu = 0.0
        if formula.intercept:
            mu = resolved["Intercept"].to_pymc("Intercept")
        if coefs:
            x_data = pm.Data("X", X, dims=("obs_id", "coef"))
            for i, coef in enumerate(coefs):
                slope = resolved[f"b_{coef}"].to_pymc(f"b_{coef}")
                mu = mu + slope * x_data[:, i]

        sigma = resolved["sigma"].to_pymc("sigma")
        if family == "student":
            nu = resolved["nu"].to_pymc("nu")

        if prior_only:
            return model

        if family == "gaussian":
            pm.Normal(formula.outcome, mu=mu, sigma=sigma, observed=y, dims="obs_id")
        else:
            pm.StudentT(
                formula.outcome, nu=nu, mu=mu, sigma=sigma, observed=y, dims="obs_id"
            )

    return model


def convergence_problems(idata, var_names: Sequence[str]) -> List[str]:
    """Messages describing Rhat above 1.00 or divergent transitions."""
    problems = []
    rhat = az.rhat(idata, var_names=list(var_names))
    for name in var_names:
        value = float(rhat[name].values)
        if not np.isfinite(value) or round(value, RHAT_DECIMALS) > RHAT_LIMIT:
            problems.append(
                f"Rhat for '{name}' is {value:.2f}; the chains have not converged. "
                "Do not trust the posterior summary; increase iterations or revise priors."
            )

    if hasattr(idata, "sample_stats") and "diverging" in idata.sample_stats:
        divergent = int(idata.sample_stats["diverging"].values.sum())
        if divergent:
            problems.append(
                f"{divergent} divergent transitions after warmup; "
                "consider a higher target_accept."
            )
    return problems


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Result of one call to ``fit_model``.

    Holds the posterior (or prior, in prior-only mode) draws as an ArviZ
    ``InferenceData`` together with everything needed to simulate new
    outcomes. Instances are frozen.
    """

    formula: Formula
    family: str
    priors: Mapping[str, PriorSpec]
    prior_only: bool
    data: pd.DataFrame = field(repr=False)
    idata: object = field(repr=False)
    convergence_warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "priors", MappingProxyType(dict(self.priors)))
        object.__setattr__(
            self, "convergence_warnings", tuple(self.convergence_warnings)
        )

    @property
    def parameter_names(self) -> List[str]:
        return list(self.priors)

    @property
    def converged(self) -> bool:
        return not self.convergence_warnings

    @property
    def n_obs(self) -> int:
        return len(self.data)

    @property
    def outcome_values(self) -> np.ndarray:
        return design_matrices(self.formula, self.data)[0]

    def draws(self, name: str) -> np.ndarray:
        """All draws of one parameter, chains concatenated."""
        if name not in self.priors:
            raise KeyError(f"Unknown parameter '{name}'. Known: {self.parameter_names}")
        return self.idata.posterior[name].values.reshape(-1)

    def summary(self, ci: float = 0.95) -> pd.DataFrame:
        from ..diagnostics import posterior_summary

        return posterior_summary(self, ci=ci)

    def rhat(self) -> pd.Series:
        from ..diagnostics import rhat_table

        return rhat_table(self)

    def fixed_effects(self, ci: float = 0.95) -> pd.DataFrame:
        """Intercept and slope estimates, labelled without the ``b_`` prefix."""
        summary = self.summary(ci=ci)
        fixed = [n for n in self.parameter_names if n == "Intercept" or n.startswith("b_")]
        table = summary.loc[fixed, ["mean", "sd", "lower", "upper"]].copy()
        table.index = [n[2:] if n.startswith("b_") else n for n in fixed]
        table.columns = ["Estimate", "Est.Error", "Q2.5", "Q97.5"]
        return table

    def posterior_predictive(
        self, draws: Optional[int] = None, random_seed: Optional[int] = None
    ) -> np.ndarray:
        """
        Simulate outcome datasets, one row per draw.

        Returns an array of shape ``(n_draws, n_obs)``. In prior-only mode the
        rows are prior predictive simulations.
        """
        model = build_model(
            self.formula, self.data, self.family, self.priors, prior_only=False
        )
        outcome = self.formula.outcome
        with model:
            predictive = pm.sample_posterior_predictive(
                self.idata,
                var_names=[outcome],
                random_seed=random_seed,
                progressbar=False,
                return_inferencedata=True,
            )
        sims = predictive.posterior_predictive[outcome].values.reshape(-1, self.n_obs)

        if draws is not None:
            if draws < 1:
                raise ValueError(f"draws must be >= 1, got {draws}")
            if draws < len(sims):
                rng = np.random.default_rng(random_seed)
                sims = sims[rng.choice(len(sims), size=draws, replace=False)]
        return sims


def fit_model(
    formula: Union[Formula, str],
    data: pd.DataFrame,
    family: str = "gaussian",
    priors: Optional[Mapping[str, Union[PriorSpec, str]]] = None,
    prior_only: bool = False,
    settings: Optional[FitSettings] = None,
    progressbar: bool = False,
) -> FittedModel:
    """
    Fit a Bayesian linear regression.

    Parameters:
    -----------
    formula : str or Formula
        ``"outcome ~ predictor + ..."``
    data : pd.DataFrame
        Clean table holding the variables the formula uses
    family : str
        Likelihood family, ``"gaussian"`` or ``"student"``
    priors : dict, optional
        ``{parameter: PriorSpec or "family(args)"}``. Defaults to
        weakly informative priors derived from the outcome.
    prior_only : bool
        Sample from the priors without using the outcome values
    settings : FitSettings, optional
        Sampler settings, four chains of 1000 draws by default

    Returns:
    --------
    FittedModel
        Draws and convergence diagnostics. Non-convergence is reported with
        a ConvergenceWarning, not an exception.
    """
    if isinstance(formula, str):
        formula = parse_formula(formula)
    _check_family(family)
    if settings is None:
        settings = FitSettings()
    coefs = list(design_matrices(formula, data)[1].columns)
    if priors is None:
        priors = default_priors(data, formula.outcome, family)

    resolved = resolve_priors(formula, priors, family, coefs)
    if prior_only:
        improper = [name for name, prior in resolved.items() if not prior.is_proper]
        if improper:
            raise ModelSpecificationError(
                f"Cannot sample improper priors in prior-only mode: {improper}"
            )

    model = build_model(formula, data, family, resolved, prior_only=prior_only)
    mode = "prior-only" if prior_only else "data-informed"
    print(
        f"Fitting {formula} ({family}, {mode}): "
        f"{settings.chains} chains x {settings.draws} draws",
        file=sys.stderr,
    )
    with model:
        idata = pm.sample(progressbar=progressbar, **settings.sample_kwargs())

    problems = convergence_problems(idata, list(resolved))
    for message in problems:
        warnings.warn(message, ConvergenceWarning, stacklevel=2)

    observed = data.reset_index(drop=True).copy()
    return FittedModel(
        formula=formula,
        family=family,
        priors=resolved,
        prior_only=prior_only,
        data=observed,
        idata=idata,
        convergence_warnings=problems,
    )
