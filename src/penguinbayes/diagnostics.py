"""
Convergence diagnostics, posterior summaries and predictive checks for
fitted models.

Everything here only reads a ``FittedModel``; nothing is refitted.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

import arviz as az
import numpy as np
import pandas as pd

from .models import FittedModel
from .models.regression import RHAT_DECIMALS, RHAT_LIMIT

STATISTICS = {
    "mean": np.mean,
    "median": np.median,
    "sd": lambda values, axis=None: np.std(values, axis=axis, ddof=1),
    "min": np.min,
    "max": np.max,
}


def rhat_table(fit: FittedModel) -> pd.Series:
    """Rank-normalised split Rhat of every parameter."""
    rhat = az.rhat(fit.idata, var_names=fit.parameter_names)
    return pd.Series(
        {name: float(rhat[name].values) for name in fit.parameter_names},
        name="rhat",
    )


def posterior_summary(fit: FittedModel, ci: float = 0.95) -> pd.DataFrame:
    """
    Mean, standard deviation and equal-tailed credible interval per parameter.

    Parameters:
    -----------
    fit : FittedModel
        Result of ``fit_model``
    ci : float
        Interval mass, 0.95 gives the 2.5th and 97.5th percentiles

    Returns:
    --------
    pd.DataFrame
        Indexed by parameter with columns mean, sd, lower, upper, rhat,
        ess_bulk and ess_tail
    """
    if not 0 < ci < 1:
        raise ValueError(f"ci must be between 0 and 1, got {ci}")
    tail = (1.0 - ci) / 2.0
    names = fit.parameter_names

    ess_bulk = az.ess(fit.idata, var_names=names, method="bulk")
    ess_tail = az.ess(fit.idata, var_names=names, method="tail")
    rhat = rhat_table(fit)

    rows = []
    for name in names:
        draws = fit.draws(name)
        lower, upper = np.quantile(draws, [tail, 1.0 - tail])
        rows.append(
            {
                "parameter": name,
                "mean": float(np.mean(draws)),
                "sd": float(np.std(draws, ddof=1)),
                "lower": float(lower),
                "upper": float(upper),
                "rhat": rhat[name],
                "ess_bulk": float(ess_bulk[name].values),
                "ess_tail": float(ess_tail[name].values),
            }
        )
    return pd.DataFrame(rows).set_index("parameter")


def is_trustworthy(
    fit: FittedModel, threshold: float = RHAT_LIMIT, decimals: int = RHAT_DECIMALS
) -> bool:
    """True when every Rhat, rounded to ``decimals``, is at most ``threshold``."""
    rhat = rhat_table(fit)
    if not np.all(np.isfinite(rhat.values)):
        return False
    return bool((rhat.round(decimals) <= threshold).all())


@dataclass(frozen=True, eq=False)
class PredictiveCheck:
    """Observed statistic against its distribution over simulated datasets."""

    stat: str
    observed: float
    simulated: np.ndarray
    prior_only: bool = False

    @property
    def p_value(self) -> float:
        """Share of simulated statistics at or above the observed one."""
        return float(np.mean(self.simulated >= self.observed))

    @property
    def interval(self) -> Tuple[float, float]:
        low, high = np.quantile(self.simulated, [0.025, 0.975])
        return float(low), float(high)

    @property
    def covers_observed(self) -> bool:
        low, high = self.interval
        return low <= self.observed <= high

    def to_frame(self) -> pd.DataFrame:
        low, high = self.interval
        return pd.DataFrame(
            [
                {
                    "stat": self.stat,
                    "kind": "prior" if self.prior_only else "posterior",
                    "observed": self.observed,
                    "simulated_mean": float(np.mean(self.simulated)),
                    "lower": low,
                    "upper": high,
                    "p_value": self.p_value,
                    "n_draws": len(self.simulated),
                }
            ]
        )


def _statistic(stat: Union[str, Callable]) -> Tuple[str, Callable]:
    if callable(stat):
        return getattr(stat, "__name__", "custom"), stat
    if stat not in STATISTICS:
        raise ValueError(
            f"Unknown statistic '{stat}'. Use one of {', '.join(STATISTICS)} or a callable"
        )
    return stat, STATISTICS[stat]


def posterior_predictive_check(
    fit: FittedModel,
    stat: Union[str, Callable] = "mean",
    draws: Optional[int] = None,
    seed: Optional[int] = None,
) -> PredictiveCheck:
    """
    Compare a summary statistic of the observed outcome with the same
    statistic over datasets simulated from the model.

    For prior-only fits this is a prior predictive check.
    """
    name, func = _statistic(stat)
    vectorized = not callable(stat)
    sims = fit.posterior_predictive(draws=draws, random_seed=seed)
    observed = float(func(fit.outcome_values))

    if vectorized:
        simulated = np.asarray(func(sims, axis=1), dtype=float)
    else:
        simulated = np.array([func(row) for row in sims], dtype=float)

    return PredictiveCheck(
        stat=name, observed=observed, simulated=simulated, prior_only=fit.prior_only
    )


def format_report(fit: FittedModel, ci: float = 0.95) -> str:
    """Plain-text summary table followed by the convergence verdict."""
    summary = posterior_summary(fit, ci=ci)
    kind = "Prior" if fit.prior_only else "Posterior"
    lines = [
        f" Family: {fit.family}",
        f"Formula: {fit.formula}",
        f"   Data: {fit.n_obs} observations",
        "",
        f"{kind} summary ({ci:.0%} CrI):",
        summary.round(2).to_string(),
        "",
    ]
    if is_trustworthy(fit):
        lines.append("All Rhat values are 1.00: the chains agree.")
    else:
        lines.append("WARNING: some Rhat values exceed 1.00; do not trust these results.")
    for message in fit.convergence_warnings:
        lines.append(f"  - {message}")
    return "\n".join(lines)
