"""
Prior declarations and the prior explorer.

A prior is a distribution family, its shape parameters and optional
truncation bounds. The explorer evaluates the inverse CDF of a prior so the
analyst can check its plausible range before fitting anything.
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import pymc as pm
from scipy import stats

PARAMETER_CLASSES = ("Intercept", "b", "sigma", "nu")


@dataclass(frozen=True)
class Family:
    """Parameter names, positivity constraints and backends of one family.

    Parameter names match the keyword arguments of the PyMC distribution.
    """

    name: str
    params: Tuple[str, ...]
    positive: Tuple[str, ...]
    support_lower: float
    scipy: Optional[Callable]
    pymc: type


FAMILIES: Dict[str, Family] = {
    "normal": Family(
        "normal",
        ("mu", "sigma"),
        ("sigma",),
        -np.inf,
        lambda mu, sigma: stats.norm(loc=mu, scale=sigma),
        pm.Normal,
    ),
    "student_t": Family(
        "student_t",
        ("nu", "mu", "sigma"),
        ("nu", "sigma"),
        -np.inf,
        lambda nu, mu, sigma: stats.t(df=nu, loc=mu, scale=sigma),
        pm.StudentT,
    ),
    "cauchy": Family(
        "cauchy",
        ("alpha", "beta"),
        ("beta",),
        -np.inf,
        lambda alpha, beta: stats.cauchy(loc=alpha, scale=beta),
        pm.Cauchy,
    ),
    "lognormal": Family(
        "lognormal",
        ("mu", "sigma"),
        ("sigma",),
        0.0,
        lambda mu, sigma: stats.lognorm(s=sigma, scale=math.exp(mu)),
        pm.LogNormal,
    ),
    "exponential": Family(
        "exponential",
        ("lam",),
        ("lam",),
        0.0,
        lambda lam: stats.expon(scale=1.0 / lam),
        pm.Exponential,
    ),
    "gamma": Family(
        "gamma",
        ("alpha", "beta"),
        ("alpha", "beta"),
        0.0,
        lambda alpha, beta: stats.gamma(a=alpha, scale=1.0 / beta),
        pm.Gamma,
    ),
    "uniform": Family(
        "uniform",
        ("lower", "upper"),
        (),
        -np.inf,
        lambda lower, upper: stats.uniform(loc=lower, scale=upper - lower),
        pm.Uniform,
    ),
    "flat": Family("flat", (), (), -np.inf, None, pm.Flat),
}

FAMILY_ALIASES = {
    "gaussian": "normal",
    "student": "student_t",
    "student-t": "student_t",
    "t": "student_t",
    "exp": "exponential",
}

_PRIOR_PATTERN = re.compile(r"^\s*([A-Za-z_\-]+)\s*\((.*)\)\s*$")


def get_family(name: str) -> Family:
    """Look up a prior family by name or alias."""
    key = name.strip().lower()
    key = FAMILY_ALIASES.get(key, key)
    if key not in FAMILIES:
        raise ValueError(
            f"Unknown prior family '{name}'. Known families: {', '.join(FAMILIES)}"
        )
    return FAMILIES[key]


@dataclass(frozen=True)
class PriorSpec:
    """
    A prior distribution for one model parameter.

    ``cls`` is the parameter class the prior applies to (``Intercept``, ``b``,
    ``sigma`` or ``nu``); ``coef`` narrows a ``b`` prior to one predictor.
    Priors on ``sigma`` and ``nu`` are truncated at zero when the family
    would otherwise allow negative values.
    """

    family: str
    params: Tuple[float, ...] = ()
    cls: Optional[str] = None
    coef: Optional[str] = None
    lb: Optional[float] = None
    ub: Optional[float] = None

    def __post_init__(self):
        fam = get_family(self.family)
        object.__setattr__(self, "family", fam.name)
        object.__setattr__(self, "params", tuple(float(p) for p in self.params))

        if len(self.params) != len(fam.params):
            raise ValueError(
                f"{fam.name} takes {len(fam.params)} parameters "
                f"({', '.join(fam.params) or 'none'}), got {len(self.params)}"
            )
        for name, value in zip(fam.params, self.params):
            if not np.isfinite(value):
                raise ValueError(f"{fam.name} parameter {name} must be finite")
            if name in fam.positive and value <= 0:
                raise ValueError(
                    f"{fam.name} parameter {name} must be > 0, got {value:g}"
                )
        if fam.name == "uniform" and self.params[0] >= self.params[1]:
            raise ValueError("uniform lower bound must be below upper bound")

        if self.cls is not None and self.cls not in PARAMETER_CLASSES:
            raise ValueError(
                f"Unknown parameter class '{self.cls}'. "
                f"Expected one of {', '.join(PARAMETER_CLASSES)}"
            )
        if self.coef is not None and self.cls != "b":
            raise ValueError("coef can only be set on priors of class 'b'")

        if self.cls in ("sigma", "nu") and fam.support_lower < 0:
            if self.lb is None or self.lb < 0:
                object.__setattr__(self, "lb", 0.0)
        if self.lb is not None and self.ub is not None and self.lb >= self.ub:
            raise ValueError(f"lb ({self.lb:g}) must be below ub ({self.ub:g})")
        if fam.name == "flat" and (self.ub is not None or self.lb not in (None, 0.0)):
            raise ValueError("flat priors support only lb=0 truncation")

    @property
    def is_proper(self) -> bool:
        return self.family != "flat"

    @property
    def is_truncated(self) -> bool:
        return self.lb is not None or self.ub is not None

    def __str__(self) -> str:
        args = ", ".join(f"{p:g}" for p in self.params)
        text = f"{self.family}({args})"
        if self.lb is not None:
            text += f" lb={self.lb:g}"
        if self.ub is not None:
            text += f" ub={self.ub:g}"
        return text

    @property
    def kwargs(self) -> Dict[str, float]:
        return dict(zip(FAMILIES[self.family].params, self.params))

    def scipy_dist(self):
        """Frozen scipy.stats distribution, ignoring truncation."""
        fam = FAMILIES[self.family]
        if fam.scipy is None:
            raise ValueError(f"{self.family} prior is improper and has no quantiles")
        return fam.scipy(*self.params)

    def to_pymc(self, name: str, **kwargs):
        """Declare this prior as a random variable inside the active PyMC model."""
        if self.family == "flat":
            if self.lb == 0.0:
                return pm.HalfFlat(name, **kwargs)
            return pm.Flat(name, **kwargs)

        dist_cls = FAMILIES[self.family].pymc
        if not self.is_truncated:
            return dist_cls(name, **self.kwargs, **kwargs)
        if self.family == "normal":
            return pm.TruncatedNormal(
                name, lower=self.lb, upper=self.ub, **self.kwargs, **kwargs
            )
        return pm.Truncated(
            name, dist_cls.dist(**self.kwargs), lower=self.lb, upper=self.ub, **kwargs
        )


def parse_prior(
    text: str,
    cls: Optional[str] = None,
    coef: Optional[str] = None,
    lb: Optional[float] = None,
    ub: Optional[float] = None,
) -> PriorSpec:
    """
    Parse a prior written as ``family(arg, ...)``, e.g. ``"normal(500, 250)"``.

    Raises ValueError on anything that does not look like a call.
    """
    match = _PRIOR_PATTERN.match(text)
    if match is None:
        raise ValueError(f"Cannot parse prior '{text}'; expected e.g. 'normal(0, 1)'")
    family, args = match.groups()
    params = []
    for arg in args.split(","):
        arg = arg.strip()
        if not arg:
            continue
        try:
            params.append(float(arg))
        except ValueError:
            raise ValueError(f"Prior argument '{arg}' in '{text}' is not a number")
    return PriorSpec(family, tuple(params), cls=cls, coef=coef, lb=lb, ub=ub)


def _as_prior(prior: Union[PriorSpec, str]) -> PriorSpec:
    if isinstance(prior, PriorSpec):
        return prior
    return parse_prior(prior)


def prior_quantiles(
    prior: Union[PriorSpec, str], probs: Union[float, Sequence[float]]
) -> np.ndarray:
    """
    Inverse CDF of a prior at each probability in ``probs``.

    Truncated priors are handled by rescaling the probabilities onto the
    mass between the bounds.
    """
    prior = _as_prior(prior)
    probs = np.atleast_1d(np.asarray(probs, dtype=float))
    if np.any((probs < 0) | (probs > 1)) or np.any(np.isnan(probs)):
        raise ValueError(f"Probabilities must lie in [0, 1], got {probs}")

    dist = prior.scipy_dist()
    if not prior.is_truncated:
        return dist.ppf(probs)

    low = dist.cdf(prior.lb) if prior.lb is not None else 0.0
    high = dist.cdf(prior.ub) if prior.ub is not None else 1.0
    if high - low <= 0:
        raise ValueError(f"Prior {prior} has no probability mass between its bounds")
    return dist.ppf(low + probs * (high - low))


def plausible_range(
    prior: Union[PriorSpec, str], mass: float = 0.95
) -> Tuple[float, float]:
    """
    Central interval holding ``mass`` of the prior, by default the 2.5th and
    97.5th percentiles.
    """
    if not 0 < mass < 1:
        raise ValueError(f"mass must be between 0 and 1, got {mass}")
    tail = (1.0 - mass) / 2.0
    low, high = prior_quantiles(prior, [tail, 1.0 - tail])
    return float(low), float(high)


def explore_priors(
    priors: Dict[str, Union[PriorSpec, str]], mass: float = 0.95
) -> pd.DataFrame:
    """
    Tabulate the plausible range of each prior.

    ``lower``/``upper`` come from the family alone, so ``normal(250, 125)``
    reads [5, 495] whatever its class. ``truncated_lower``/``truncated_upper``
    honour the bounds the model applies (e.g. sigma at 0) and equal the
    plain range for untruncated priors. Improper priors are listed with NaN
    bounds.
    """
    if not 0 < mass < 1:
        raise ValueError(f"mass must be between 0 and 1, got {mass}")
    tail = (1.0 - mass) / 2.0

    rows = []
    for name, prior in priors.items():
        prior = _as_prior(prior)
        if prior.is_proper:
            lower, upper = prior.scipy_dist().ppf([tail, 1.0 - tail])
            truncated_lower, truncated_upper = plausible_range(prior, mass)
        else:
            lower = upper = truncated_lower = truncated_upper = np.nan
        rows.append(
            {
                "parameter": name,
                "prior": str(prior),
                "family": prior.family,
                "lb": prior.lb,
                "ub": prior.ub,
                "lower": float(lower),
                "upper": float(upper),
                "truncated_lower": truncated_lower,
                "truncated_upper": truncated_upper,
            }
        )
    columns = [
        "parameter", "prior", "family", "lb", "ub",
        "lower", "upper", "truncated_lower", "truncated_upper",
    ]
    return pd.DataFrame(rows, columns=columns).set_index("parameter")
