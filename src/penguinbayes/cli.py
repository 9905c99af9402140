"""
Command-line interface for penguinbayes.

Provides commands for checking priors, fitting the flipper-length model and
running predictive checks.
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from .config import AnalysisConfig


def _add_fit_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--dataset", help="seaborn example dataset name")
    parser.add_argument("--source", help="Local CSV file to use instead of the dataset")
    parser.add_argument("--family", choices=["gaussian", "student"])
    parser.add_argument("--chains", type=int, help="Number of Markov chains")
    parser.add_argument("--draws", type=int, help="Post-warmup draws per chain")
    parser.add_argument("--tune", type=int, help="Warmup iterations per chain")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--output-dir", help="Directory for CSV results")
    parser.add_argument(
        "--verbose", action="store_true", help="Show sampler progress and logs"
    )


def _load_config(args) -> AnalysisConfig:
    config = AnalysisConfig.from_json(args.config) if args.config else AnalysisConfig()
    if args.dataset:
        config.dataset = args.dataset
    if args.source:
        config.source = args.source
    if args.family:
        config.family = args.family
    if args.output_dir:
        config.output_dir = args.output_dir
    overrides = {
        "chains": args.chains,
        "draws": args.draws,
        "tune": args.tune,
        "random_seed": args.seed,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        config.fit = replace(config.fit, **overrides)
    return config


def prior_range(args) -> int:
    """Print the plausible range of a prior."""
    from .priors import parse_prior, plausible_range

    prior = parse_prior(args.prior, lb=args.lb, ub=args.ub)
    low, high = plausible_range(prior, mass=args.mass)
    print(f"{prior}: {args.mass:.0%} of prior mass in [{low:.1f}, {high:.1f}]")
    return 0


def fit(args) -> int:
    """Fit the model and print its summary."""
    from .diagnostics import format_report
    from .pipeline import (
        AnalysisData,
        explore_step,
        fit_step,
        load_step,
        pipe,
        quiet_sampler_logs,
        save_results,
        transform_step,
    )

    config = _load_config(args)
    quiet_sampler_logs(args.verbose)
    analysis = pipe(AnalysisData(config=config), load_step, transform_step, explore_step)

    print("Prior plausible ranges:")
    columns = ["prior", "lower", "upper", "truncated_lower", "truncated_upper"]
    print(analysis.prior_ranges[columns].round(1).to_string())
    print()

    analysis = fit_step(analysis, prior_only=args.prior_only)
    fitted = analysis.prior_fit if args.prior_only else analysis.posterior_fit
    print(format_report(fitted))

    if config.output_dir:
        files = save_results(analysis, config.output_dir)
        for key, path in files.items():
            print(f"✓ {key}: {path}")
    return 0 if fitted.converged else 2


def check(args) -> int:
    """Fit both models and compare simulated and observed statistics."""
    from .pipeline import run_pipeline

    config = _load_config(args)
    config.check_stat = args.stat
    analysis = run_pipeline(config, verbose=args.verbose)

    for label, result in (
        ("Prior predictive", analysis.prior_check),
        ("Posterior predictive", analysis.posterior_check),
    ):
        low, high = result.interval
        print(
            f"{label} check ({result.stat}): observed {result.observed:.2f}, "
            f"simulated 95% range [{low:.2f}, {high:.2f}], p = {result.p_value:.2f}"
        )
    return 0


def init_config(args) -> int:
    """Write the default configuration to a JSON file."""
    path = AnalysisConfig().to_json(args.path)
    print(f"✓ Configuration written to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="penguinbayes: Bayesian linear model of penguin flipper length",
        prog="penguinbayes",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    range_parser = subparsers.add_parser(
        "prior-range", help="Show the plausible range of a prior"
    )
    range_parser.add_argument("prior", help="Prior such as 'normal(500, 250)'")
    range_parser.add_argument("--lb", type=float, help="Lower truncation bound")
    range_parser.add_argument("--ub", type=float, help="Upper truncation bound")
    range_parser.add_argument(
        "--mass", type=float, default=0.95, help="Central probability mass (default: 0.95)"
    )
    range_parser.set_defaults(func=prior_range)

    fit_parser = subparsers.add_parser("fit", help="Fit the model and print a summary")
    _add_fit_arguments(fit_parser)
    fit_parser.add_argument(
        "--prior-only", action="store_true", help="Ignore the data and sample the priors"
    )
    fit_parser.set_defaults(func=fit)

    check_parser = subparsers.add_parser(
        "check", help="Run prior and posterior predictive checks"
    )
    _add_fit_arguments(check_parser)
    check_parser.add_argument(
        "--stat",
        default="mean",
        choices=["mean", "median", "sd", "min", "max"],
        help="Statistic to compare (default: mean)",
    )
    check_parser.set_defaults(func=check)

    config_parser = subparsers.add_parser(
        "init-config", help="Write the default configuration file"
    )
    config_parser.add_argument("path", help="Where to write the JSON file")
    config_parser.set_defaults(func=init_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except (FileNotFoundError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
