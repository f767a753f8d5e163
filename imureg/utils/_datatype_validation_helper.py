"""Internal helpers for dataset validation."""

from collections.abc import Sequence
from typing import Tuple, Union

import numpy as np
import pandas as pd

from imureg.utils.exceptions import ValidationError


def _assert_is_dtype(obj, dtype: Union[type, Tuple[type, ...]]) -> None:
    """Check if an object has a specific dtype."""
    if not isinstance(obj, dtype):
        raise ValidationError(f"The dataobject is expected to be one of ({dtype},). But it is a {type(obj)}")


def _assert_has_multindex_cols(df: pd.DataFrame, nlevels: int = 2, expected: bool = True) -> None:
    """Check if a pd.DataFrame has a multiindex as columns.

    Parameters
    ----------
    df
        The dataframe to check
    nlevels
        If MultiIndex is expected, how many level should the MultiIndex have
    expected
        If the df is expected to have a MultiIndex or not

    """
    has_multiindex = isinstance(df.columns, pd.MultiIndex)
    if has_multiindex is not expected:
        if expected is False:
            raise ValidationError(
                "The dataframe is expected to have a single level of columns. "
                f"But it has a MultiIndex with {df.columns.nlevels} levels."
            )
        raise ValidationError(
            f"The dataframe is expected to have a MultiIndex with {nlevels} levels as columns. "
            "It has just a single normal column level."
        )
    if has_multiindex is True and not df.columns.nlevels == nlevels:
        raise ValidationError(
            f"The dataframe is expected to have a MultiIndex with {nlevels} levels as columns. "
            f"It has a MultiIndex with {df.columns.nlevels} levels."
        )


def _assert_sub_columns_per_group(df: pd.DataFrame, sub_columns: Sequence[str]) -> None:
    """Check that every first level group of a MultiIndex column dataframe has all the expected sub columns."""
    for group in df.columns.unique(level=0):
        available = list(df[group].columns)
        missing = [c for c in sub_columns if c not in available]
        if missing:
            raise ValidationError(
                f"The column group `{group}` is expected to have the columns {list(sub_columns)}, "
                f"but the columns {missing} are missing."
            )


def _assert_not_empty(df: pd.DataFrame) -> None:
    if len(df) == 0 or len(df.columns) == 0:
        raise ValidationError("The dataframe does not contain any samples or columns.")


def _assert_strictly_increasing_index(df: pd.DataFrame) -> None:
    """Check that the index (time) of a dataframe is strictly increasing."""
    index = np.asarray(df.index, dtype=float)
    if np.any(~np.isfinite(index)):
        raise ValidationError("The index of the dataframe contains NaN or infinite time values.")
    steps = np.diff(index)
    if np.any(steps <= 0):
        first_wrong = int(np.argmax(steps <= 0))
        raise ValidationError(
            "The index of the dataframe is expected to be strictly increasing. "
            f"But the time {index[first_wrong + 1]} (row {first_wrong + 1}) follows {index[first_wrong]}."
        )
