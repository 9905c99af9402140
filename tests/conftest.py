"""
Shared fixtures: a synthetic table shaped like the seaborn penguins data.
"""

import arviz as az
import numpy as np
import pandas as pd
import pytest

from penguinbayes.models import FittedModel, parse_formula
from penguinbayes.priors import course_priors

FEMALE_MEAN = 197.4
MALE_MEAN = 204.5


def make_penguins(n: int = 120, seed: int = 0, with_missing: bool = False) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    sex = np.where(np.arange(n) % 2 == 0, "Male", "Female")
    flipper = np.where(sex == "Male", MALE_MEAN, FEMALE_MEAN) + rng.normal(0, 6, n)
    df = pd.DataFrame(
        {
            "species": rng.choice(["Adelie", "Chinstrap", "Gentoo"], n),
            "island": rng.choice(["Biscoe", "Dream", "Torgersen"], n),
            "bill_length_mm": rng.normal(44, 5, n).round(1),
            "bill_depth_mm": rng.normal(17, 2, n).round(1),
            "flipper_length_mm": flipper.round(0),
            "body_mass_g": rng.normal(4200, 800, n).round(0),
            "sex": sex,
        }
    )
    if with_missing:
        df.loc[3, "sex"] = np.nan
        df.loc[7, "body_mass_g"] = np.nan
        df.loc[11, ["bill_length_mm", "flipper_length_mm"]] = np.nan
    return df


@pytest.fixture
def penguins():
    return make_penguins()


@pytest.fixture
def penguins_with_missing():
    return make_penguins(with_missing=True)


@pytest.fixture
def coded_penguins(penguins):
    df = penguins.copy()
    df["sex_c"] = np.where(df["sex"] == "Male", -0.5, 0.5)
    return df


def make_fit(coded, posterior, prior_only=False, warnings=()):
    """FittedModel around hand-made draws, without running the sampler."""
    formula = parse_formula("flipper_length_mm ~ sex_c")
    priors = course_priors()
    resolved = {"Intercept": priors["Intercept"], "b_sex_c": priors["b"], "sigma": priors["sigma"]}
    return FittedModel(
        formula=formula,
        family="gaussian",
        priors=resolved,
        prior_only=prior_only,
        data=coded[["flipper_length_mm", "sex_c"]].reset_index(drop=True),
        idata=az.from_dict(posterior=posterior),
        convergence_warnings=warnings,
    )


@pytest.fixture
def mixed_fit(coded_penguins):
    rng = np.random.default_rng(42)
    posterior = {
        "Intercept": rng.normal(200.9, 0.75, size=(4, 1000)),
        "b_sex_c": rng.normal(-7.2, 1.5, size=(4, 1000)),
        "sigma": np.abs(rng.normal(6.0, 0.3, size=(4, 1000))),
    }
    return make_fit(coded_penguins, posterior)


@pytest.fixture
def stuck_fit(coded_penguins):
    rng = np.random.default_rng(7)
    offsets = np.array([0.0, 5.0, 10.0, 15.0])[:, None]
    posterior = {
        "Intercept": rng.normal(200.0, 0.5, size=(4, 500)) + offsets,
        "b_sex_c": rng.normal(-7.0, 1.0, size=(4, 500)),
        "sigma": np.abs(rng.normal(6.0, 0.3, size=(4, 500))),
    }
    return make_fit(coded_penguins, posterior, warnings=("Rhat for 'Intercept' is 2.10",))
