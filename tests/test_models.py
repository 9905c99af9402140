"""
Tests for building and fitting the PyMC regression.
"""

import dataclasses
import warnings

import numpy as np
import pytest

from penguinbayes.config import FitSettings
from penguinbayes.errors import ConvergenceWarning, ModelSpecificationError
from penguinbayes.models import build_model, fit_model, resolve_priors, parse_formula
from penguinbayes.priors import course_priors

FORMULA = "flipper_length_mm ~ sex_c"
QUICK = FitSettings(chains=2, draws=300, tune=300, cores=1, random_seed=123)


class TestResolvePriors:
    """Test resolve_priors."""

    def test_class_priors(self):
        resolved = resolve_priors(parse_formula(FORMULA), course_priors())
        assert list(resolved) == ["Intercept", "b_sex_c", "sigma"]
        assert resolved["b_sex_c"] == course_priors()["b"]

    def test_coefficient_prior_wins(self):
        priors = dict(course_priors(), b_sex_c="normal(0, 5)")
        resolved = resolve_priors(parse_formula(FORMULA), priors)
        assert resolved["b_sex_c"].params == (0.0, 5.0)

    def test_missing_prior(self):
        priors = {"Intercept": "normal(500, 250)", "b": "normal(0, 100)"}
        with pytest.raises(ModelSpecificationError, match="sigma"):
            resolve_priors(parse_formula(FORMULA), priors)

    def test_student_needs_nu(self):
        with pytest.raises(ModelSpecificationError, match="nu"):
            resolve_priors(parse_formula(FORMULA), course_priors(), family="student")

    def test_design_columns_as_coefficients(self):
        priors = dict(course_priors(), **{"b_C(sex)[T.Male]": "normal(0, 5)"})
        resolved = resolve_priors(
            parse_formula("flipper_length_mm ~ C(sex)"), priors, coefs=["C(sex)[T.Male]"]
        )
        assert list(resolved) == ["Intercept", "b_C(sex)[T.Male]", "sigma"]
        assert resolved["b_C(sex)[T.Male]"].params == (0.0, 5.0)

    def test_malformed_prior(self):
        priors = dict(course_priors(), sigma="normal(0)")
        with pytest.raises(ModelSpecificationError):
            resolve_priors(parse_formula(FORMULA), priors)


class TestBuildModel:
    """Test build_model."""

    def test_variables(self, coded_penguins):
        model = build_model(FORMULA, coded_penguins, priors=course_priors())
        free = {rv.name for rv in model.free_RVs}
        assert free == {"Intercept", "b_sex_c", "sigma"}
        assert [rv.name for rv in model.observed_RVs] == ["flipper_length_mm"]

    def test_prior_only_leaves_out_likelihood(self, coded_penguins):
        model = build_model(FORMULA, coded_penguins, priors=course_priors(), prior_only=True)
        assert model.observed_RVs == []
        assert {rv.name for rv in model.free_RVs} == {"Intercept", "b_sex_c", "sigma"}

    def test_student_family(self, coded_penguins):
        priors = dict(course_priors(), nu="gamma(2, 0.1)")
        model = build_model(FORMULA, coded_penguins, family="student", priors=priors)
        assert "nu" in {rv.name for rv in model.free_RVs}

    def test_default_priors(self, coded_penguins):
        model = build_model(FORMULA, coded_penguins)
        assert {rv.name for rv in model.free_RVs} == {"Intercept", "b_sex_c", "sigma"}

    def test_unknown_family(self, coded_penguins):
        with pytest.raises(ModelSpecificationError, match="likelihood family"):
            build_model(FORMULA, coded_penguins, family="poisson", priors=course_priors())

    def test_missing_column(self, coded_penguins):
        with pytest.raises(ModelSpecificationError, match="Cannot evaluate"):
            build_model("flipper_length_mm ~ mass_c", coded_penguins, priors=course_priors())

    def test_categorical_predictor_is_coded(self, coded_penguins):
        model = build_model("flipper_length_mm ~ sex", coded_penguins, priors=course_priors())
        free = {rv.name for rv in model.free_RVs}
        assert free == {"Intercept", "b_sex[T.Male]", "sigma"}

    def test_interaction_slopes(self, coded_penguins):
        model = build_model(
            "flipper_length_mm ~ sex_c * body_mass_g", coded_penguins, priors=course_priors()
        )
        slopes = {rv.name for rv in model.free_RVs if rv.name.startswith("b_")}
        assert slopes == {"b_sex_c", "b_body_mass_g", "b_sex_c:body_mass_g"}
        assert model.coords["coef"] == ("sex_c", "body_mass_g", "sex_c:body_mass_g")

    def test_missing_values_rejected(self, coded_penguins):
        coded_penguins.loc[0, "flipper_length_mm"] = np.nan
        with pytest.raises(ModelSpecificationError):
            build_model(FORMULA, coded_penguins, priors=course_priors())


class TestFitModel:
    """Test fit_model."""

    def test_improper_prior_in_prior_only_mode(self, coded_penguins):
        priors = dict(course_priors(), b="flat()")
        with pytest.raises(ModelSpecificationError, match="improper"):
            fit_model(FORMULA, coded_penguins, priors=priors, prior_only=True, settings=QUICK)

    @pytest.mark.slow
    def test_posterior_recovers_group_means(self, coded_penguins):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            fit = fit_model(FORMULA, coded_penguins, priors=course_priors(), settings=QUICK)

        means = coded_penguins.groupby("sex_c")["flipper_length_mm"].mean()
        summary = fit.summary()
        assert summary.loc["Intercept", "mean"] == pytest.approx(means.mean(), abs=1.0)
        assert summary.loc["b_sex_c", "mean"] == pytest.approx(
            means[0.5] - means[-0.5], abs=1.5
        )
        assert summary.loc["b_sex_c", "upper"] < 0
        assert (fit.rhat() > 0).all()
        assert fit.idata.posterior.sizes["chain"] == 2
        assert fit.idata.posterior.sizes["draw"] == 300

    @pytest.mark.slow
    def test_prior_only_ignores_data(self, coded_penguins):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            fit = fit_model(
                FORMULA, coded_penguins, priors=course_priors(), prior_only=True, settings=QUICK
            )

        assert fit.prior_only
        intercept = fit.draws("Intercept")
        # Prior sd is 250, far wider than anything the data would allow
        assert np.std(intercept) > 100
        assert np.all(fit.draws("sigma") >= 0)

        sims = fit.posterior_predictive(draws=50, random_seed=1)
        assert sims.shape == (50, len(coded_penguins))

    @pytest.mark.slow
    def test_fitted_model_is_immutable(self, coded_penguins):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            fit = fit_model(FORMULA, coded_penguins, priors=course_priors(), settings=QUICK)

        with pytest.raises(dataclasses.FrozenInstanceError):
            fit.family = "student"
        with pytest.raises(TypeError):
            fit.priors["sigma"] = None
