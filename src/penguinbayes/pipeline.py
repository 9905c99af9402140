"""
The flipper-length walkthrough as a sequence of steps.

Each step takes an ``AnalysisData`` container and returns a new one with
its results filled in, so steps can be chained with ``pipe``.
"""

import logging
import os
import sys
from typing import Dict, Optional

import pandas as pd

from .config import AnalysisConfig
from .data import describe_outcome, load_clean_dataset, sum_code
from .diagnostics import format_report, posterior_predictive_check, posterior_summary
from .models import fit_model
from .priors import explore_priors, prior_set_from_strings


def quiet_sampler_logs(verbose: bool = False):
    """Keep PyMC and PyTensor from flooding stderr unless asked to."""
    level = logging.INFO if verbose else logging.WARNING
    logging.getLogger("pymc").setLevel(level)
    logging.getLogger("pytensor").setLevel(level)


# Data structure to pass between steps
class AnalysisData:
    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        table=None,
        prior_ranges=None,
        prior_fit=None,
        posterior_fit=None,
        prior_check=None,
        posterior_check=None,
    ):
        self.config = config if config is not None else AnalysisConfig()
        self.table = table
        self.prior_ranges = prior_ranges
        self.prior_fit = prior_fit
        self.posterior_fit = posterior_fit
        self.prior_check = prior_check
        self.posterior_check = posterior_check

    def replace(self, **changes) -> "AnalysisData":
        values = dict(vars(self))
        values.update(changes)
        return AnalysisData(**values)


def load_step(analysis: AnalysisData) -> AnalysisData:
    """Load the dataset and drop incomplete rows."""
    config = analysis.config
    table = load_clean_dataset(config.dataset, config.source)
    print(f"Loaded {len(table)} complete rows of '{config.dataset}'", file=sys.stderr)
    return analysis.replace(table=table)


def transform_step(analysis: AnalysisData) -> AnalysisData:
    """Sum-code the predictor column."""
    if analysis.table is None:
        raise ValueError("No data loaded; run load_step first")
    config = analysis.config
    table = sum_code(
        analysis.table, config.predictor, config.coded_column, config.levels
    )
    return analysis.replace(table=table)


def explore_step(analysis: AnalysisData) -> AnalysisData:
    """Tabulate the 95% plausible range of each prior."""
    ranges = explore_priors(prior_set_from_strings(analysis.config.priors))
    return analysis.replace(prior_ranges=ranges)


def fit_step(analysis: AnalysisData, prior_only: Optional[bool] = None) -> AnalysisData:
    """
    Fit the model ignoring the data, then using it.

    With ``prior_only`` set, only that one fit is run.
    """
    if analysis.table is None:
        raise ValueError("No data loaded; run load_step first")
    config = analysis.config
    priors = prior_set_from_strings(config.priors)

    def _fit(only: bool):
        return fit_model(
            config.formula,
            analysis.table,
            family=config.family,
            priors=priors,
            prior_only=only,
            settings=config.fit,
        )

    changes = {}
    if prior_only in (None, True):
        changes["prior_fit"] = _fit(True)
    if prior_only in (None, False):
        changes["posterior_fit"] = _fit(False)
    return analysis.replace(**changes)


def check_step(analysis: AnalysisData) -> AnalysisData:
    """Prior and posterior predictive checks of the configured statistic."""
    config = analysis.config
    seed = config.fit.random_seed
    changes = {}
    if analysis.prior_fit is not None:
        changes["prior_check"] = posterior_predictive_check(
            analysis.prior_fit, stat=config.check_stat, seed=seed
        )
    if analysis.posterior_fit is not None:
        changes["posterior_check"] = posterior_predictive_check(
            analysis.posterior_fit, stat=config.check_stat, seed=seed
        )
    return analysis.replace(**changes)


def save_results(analysis: AnalysisData, output_dir: str = ".") -> Dict[str, str]:
    """
    Save the walkthrough results as CSV files

    Writes whichever of these the container holds: ``clean_data.csv``,
    ``prior_ranges.csv``, ``prior_summary.csv``, ``posterior_summary.csv``
    (with Rhat and ESS) and ``predictive_checks.csv``.

    Parameters:
    -----------
    analysis : AnalysisData
        Container with results
    output_dir : str
        Directory to save files in

    Returns:
    --------
    dict
        File paths keyed by result name
    """
    os.makedirs(output_dir, exist_ok=True)

    files = {}

    if analysis.table is not None:
        path = os.path.join(output_dir, "clean_data.csv")
        analysis.table.to_csv(path, index=False)
        files["data"] = path

    if analysis.prior_ranges is not None:
        path = os.path.join(output_dir, "prior_ranges.csv")
        analysis.prior_ranges.to_csv(path)
        files["prior_ranges"] = path

    for key, fit in (("prior", analysis.prior_fit), ("posterior", analysis.posterior_fit)):
        if fit is None:
            continue
        path = os.path.join(output_dir, f"{key}_summary.csv")
        posterior_summary(fit).to_csv(path)
        files[f"{key}_summary"] = path

    checks = [c for c in (analysis.prior_check, analysis.posterior_check) if c is not None]
    if checks:
        path = os.path.join(output_dir, "predictive_checks.csv")
        pd.concat([c.to_frame() for c in checks], ignore_index=True).to_csv(
            path, index=False
        )
        files["predictive_checks"] = path

    return files


def pipe(data, *functions):
    """
    Apply a sequence of functions to data

    Parameters:
    -----------
    data : Any
        Initial data
    *functions : callable
        Functions to apply in sequence

    Returns:
    --------
    Any
        Result of applying all functions
    """
    result = data
    for func in functions:
        result = func(result)
    return result


def run_pipeline(
    config: Optional[AnalysisConfig] = None, verbose: bool = False
) -> AnalysisData:
    """
    Run the complete walkthrough: load, code, explore priors, fit prior-only
    and data-informed models, and run predictive checks.
    """
    quiet_sampler_logs(verbose)
    analysis = pipe(
        AnalysisData(config=config),
        load_step,
        transform_step,
        explore_step,
        fit_step,
        check_step,
    )

    if verbose:
        config = analysis.config
        observed = describe_outcome(analysis.table, config.outcome, by=config.predictor)
        print(observed.to_string(), file=sys.stderr)
        print(format_report(analysis.posterior_fit), file=sys.stderr)

    if analysis.config.output_dir is not None:
        files = save_results(analysis, analysis.config.output_dir)
        print(f"Saved {len(files)} files to {analysis.config.output_dir}", file=sys.stderr)

    return analysis
