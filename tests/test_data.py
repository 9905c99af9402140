"""
Tests for loading, cleaning and sum coding the penguin table.
"""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from penguinbayes.data import (
    describe_outcome,
    drop_missing,
    load_clean_dataset,
    load_dataset,
    sum_code,
)
from penguinbayes.errors import DatasetNotFoundError


class TestLoadDataset:
    """Test load_dataset and load_clean_dataset."""

    def test_load_from_local_csv(self, tmp_path, penguins):
        path = tmp_path / "penguins.csv"
        penguins.to_csv(path, index=False)

        df = load_dataset(source=path)

        assert len(df) == len(penguins)
        assert list(df.columns) == list(penguins.columns)

    def test_missing_local_file(self, tmp_path):
        with pytest.raises(DatasetNotFoundError):
            load_dataset(source=tmp_path / "nope.csv")

    def test_not_found_is_a_file_not_found_error(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_dataset(source=tmp_path / "nope.csv")

    @patch("penguinbayes.data.sns.load_dataset")
    def test_fetches_named_dataset(self, mock_load, penguins):
        mock_load.return_value = penguins

        df = load_dataset("penguins")

        mock_load.assert_called_once_with("penguins")
        assert df is penguins

    @patch("penguinbayes.data.sns.load_dataset")
    def test_unknown_dataset_name(self, mock_load):
        mock_load.side_effect = ValueError("'pinguins' is not one of the example datasets.")

        with pytest.raises(DatasetNotFoundError, match="pinguins"):
            load_dataset("pinguins")

    @patch("penguinbayes.data.sns.load_dataset")
    def test_network_failure(self, mock_load):
        mock_load.side_effect = OSError("connection refused")

        with pytest.raises(DatasetNotFoundError):
            load_dataset("penguins")

    @patch("penguinbayes.data.sns.load_dataset")
    def test_load_clean_dataset_drops_incomplete_rows(self, mock_load, penguins_with_missing):
        mock_load.return_value = penguins_with_missing

        df = load_clean_dataset()

        assert len(df) == len(penguins_with_missing) - 3
        assert not df.isna().any().any()


class TestDropMissing:
    """Test drop_missing."""

    def test_removes_rows_with_any_missing_field(self, penguins_with_missing):
        cleaned = drop_missing(penguins_with_missing)
        assert len(cleaned) == len(penguins_with_missing) - 3
        assert not cleaned.isna().any().any()
        assert list(cleaned.index) == list(range(len(cleaned)))

    def test_idempotent(self, penguins_with_missing):
        once = drop_missing(penguins_with_missing)
        twice = drop_missing(once)
        assert len(twice) == len(once)
        pd.testing.assert_frame_equal(once, twice)

    def test_clean_table_unchanged(self, penguins):
        assert len(drop_missing(penguins)) == len(penguins)

    def test_restricted_to_columns(self, penguins_with_missing):
        cleaned = drop_missing(penguins_with_missing, columns=["flipper_length_mm", "sex"])
        assert len(cleaned) == len(penguins_with_missing) - 2

    def test_unknown_column(self, penguins):
        with pytest.raises(KeyError):
            drop_missing(penguins, columns=["beak_colour"])


class TestSumCode:
    """Test sum_code."""

    def test_values_are_plus_minus_half(self, penguins):
        coded = sum_code(penguins, "sex", levels=("male", "female"))
        assert set(coded["sex_c"].unique()) == {-0.5, 0.5}

    def test_mapping_is_consistent(self, penguins):
        coded = sum_code(penguins, "sex", levels=("male", "female"))
        per_level = coded.groupby("sex")["sex_c"].nunique()
        assert (per_level == 1).all()
        assert (coded.loc[coded["sex"] == "Male", "sex_c"] == -0.5).all()
        assert (coded.loc[coded["sex"] == "Female", "sex_c"] == 0.5).all()

    def test_levels_match_case_insensitively(self, penguins):
        lower = sum_code(penguins, "sex", levels=("male", "female"))
        exact = sum_code(penguins, "sex", levels=("Male", "Female"))
        np.testing.assert_array_equal(lower["sex_c"], exact["sex_c"])

    def test_default_order_is_sorted(self, penguins):
        coded = sum_code(penguins, "sex")
        assert (coded.loc[coded["sex"] == "Female", "sex_c"] == -0.5).all()
        assert (coded.loc[coded["sex"] == "Male", "sex_c"] == 0.5).all()

    def test_custom_column_name_and_copy(self, penguins):
        coded = sum_code(penguins, "sex", new_column="sex_sum")
        assert "sex_sum" in coded.columns
        assert "sex_sum" not in penguins.columns

    def test_more_than_two_levels(self, penguins):
        with pytest.raises(ValueError, match="exactly two levels"):
            sum_code(penguins, "species")

    def test_missing_values(self, penguins_with_missing):
        with pytest.raises(ValueError, match="missing"):
            sum_code(penguins_with_missing, "sex")

    def test_level_not_in_data(self, penguins):
        with pytest.raises(ValueError, match="not present"):
            sum_code(penguins, "sex", levels=("male", "unknown"))

    def test_unknown_column(self, penguins):
        with pytest.raises(KeyError):
            sum_code(penguins, "colour")


class TestDescribeOutcome:
    """Test describe_outcome."""

    def test_overall(self, penguins):
        summary = describe_outcome(penguins, "flipper_length_mm")
        assert summary.loc["all", "mean"] == pytest.approx(penguins["flipper_length_mm"].mean())
        assert summary.loc["all", "n"] == len(penguins)

    def test_by_group(self, penguins):
        summary = describe_outcome(penguins, "flipper_length_mm", by="sex")
        assert set(summary.index) == {"Female", "Male"}
        assert summary.loc["Male", "mean"] > summary.loc["Female", "mean"]
