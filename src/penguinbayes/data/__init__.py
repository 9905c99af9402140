"""
Loading, cleaning and coding of the penguin observation table.

The walkthrough uses the Palmer penguins data as shipped with seaborn's
example datasets. A local CSV with the same columns can be used instead.
"""

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import seaborn as sns

from ..errors import DatasetNotFoundError

PENGUIN_COLUMNS = [
    "species",
    "island",
    "bill_length_mm",
    "bill_depth_mm",
    "flipper_length_mm",
    "body_mass_g",
    "sex",
]

SUM_CODES = (-0.5, 0.5)


def load_dataset(
    name: str = "penguins", source: Optional[Union[str, Path]] = None
) -> pd.DataFrame:
    """
    Load a tabular dataset by name.

    Parameters:
    -----------
    name : str
        Name of a seaborn example dataset
    source : str or Path, optional
        Path to a local CSV file. When given, ``name`` is only used in messages.

    Returns:
    --------
    pd.DataFrame
        The raw table, missing values included

    Raises:
    -------
    DatasetNotFoundError
        If the dataset cannot be found or fetched
    """
    if source is not None:
        try:
            return pd.read_csv(source)
        except FileNotFoundError:
            print(f"Error: The file was not found at {source}", file=sys.stderr)
            raise DatasetNotFoundError(f"Data file not found: {source}")

    try:
        df = sns.load_dataset(name)
    except ValueError as e:
        print(f"Error: Unknown dataset '{name}': {e}", file=sys.stderr)
        raise DatasetNotFoundError(f"Dataset '{name}' not found") from e
    except OSError as e:
        print(f"Error: Could not fetch dataset '{name}': {e}", file=sys.stderr)
        raise DatasetNotFoundError(f"Dataset '{name}' could not be fetched") from e

    return df


def drop_missing(
    df: pd.DataFrame, columns: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Remove every row that has at least one missing field.

    Running this on an already clean table returns the same rows.
    """
    if columns is not None:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise KeyError(f"Columns not in table: {missing}")
    cleaned = df.dropna(subset=columns).reset_index(drop=True)
    dropped = len(df) - len(cleaned)
    if dropped:
        print(
            f"Dropped {dropped} of {len(df)} rows with missing values",
            file=sys.stderr,
        )
    return cleaned


def load_clean_dataset(
    name: str = "penguins", source: Optional[Union[str, Path]] = None
) -> pd.DataFrame:
    """Load a dataset and drop rows with missing values."""
    return drop_missing(load_dataset(name, source))


def _resolve_levels(
    observed: List, levels: Optional[Sequence]
) -> Tuple[object, object]:
    if levels is None:
        if len(observed) != 2:
            raise ValueError(
                f"Sum coding needs exactly two levels, found {len(observed)}: {observed}"
            )
        ordered = sorted(observed, key=str)
        return ordered[0], ordered[1]

    if len(levels) != 2:
        raise ValueError(f"levels must name exactly two categories, got {levels}")
    if len(observed) > 2:
        raise ValueError(
            f"Sum coding needs exactly two levels, found {len(observed)}: {observed}"
        )

    # Match case-insensitively so "male" finds seaborn's "Male"
    by_key = {str(level).casefold(): level for level in observed}
    resolved = []
    for level in levels:
        key = str(level).casefold()
        if key not in by_key:
            raise ValueError(f"Level '{level}' not present in data: {observed}")
        resolved.append(by_key[key])
    if resolved[0] == resolved[1]:
        raise ValueError(f"levels must be two different categories, got {levels}")
    return resolved[0], resolved[1]


def sum_code(
    df: pd.DataFrame,
    column: str,
    new_column: Optional[str] = None,
    levels: Optional[Sequence] = None,
) -> pd.DataFrame:
    """
    Add a sum-coded (-0.5 / +0.5) version of a two-level categorical column.

    Parameters:
    -----------
    df : pd.DataFrame
        Cleaned observation table
    column : str
        Categorical column with exactly two levels
    new_column : str, optional
        Name of the derived column. Defaults to ``<column>_c``.
    levels : sequence of two, optional
        ``(negative_level, positive_level)``. Defaults to the sorted levels,
        the first mapped to -0.5.

    Returns:
    --------
    pd.DataFrame
        Copy of the table with the derived column added
    """
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not in table")
    if df[column].isna().any():
        raise ValueError(f"Column '{column}' has missing values; clean the table first")

    observed = list(pd.unique(df[column]))
    negative, positive = _resolve_levels(observed, levels)

    if new_column is None:
        new_column = f"{column}_c"

    coded = df.copy()
    coded[new_column] = np.where(
        df[column] == negative, SUM_CODES[0], SUM_CODES[1]
    ).astype(float)
    return coded


def describe_outcome(
    df: pd.DataFrame, outcome: str, by: Optional[str] = None
) -> pd.DataFrame:
    """Mean, standard deviation and count of the outcome, overall or per group."""
    if outcome not in df.columns:
        raise KeyError(f"Column '{outcome}' not in table")
    if by is None:
        values = df[outcome]
        return pd.DataFrame(
            {"mean": [values.mean()], "sd": [values.std()], "n": [values.count()]},
            index=pd.Index(["all"], name="group"),
        )
    grouped = df.groupby(by, observed=True)[outcome]
    summary = grouped.agg(["mean", "std", "count"])
    summary.columns = ["mean", "sd", "n"]
    summary.index.name = "group"
    return summary


__all__ = [
    "PENGUIN_COLUMNS",
    "SUM_CODES",
    "load_dataset",
    "drop_missing",
    "load_clean_dataset",
    "sum_code",
    "describe_outcome",
]
