"""Abundance-table and hierarchy preparation.

Turns raw user inputs into the aligned pair the permutation schemes
work on:

* the abundance table with empty sites removed (a site with no
  individuals carries no information and breaks rescaling);
* the structure table filtered by the same mask, coerced to string
  labels, checked for strict nesting, and re-indexed on the table's
  site labels.

All checks run here, before any permutation work begins.  The inputs
passed by the caller are never modified.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ._compat import DataFrameLike, _ensure_pandas_df
from .exceptions import (
    InconsistentHierarchyError,
    InvalidStructureTypeError,
    RowAlignmentWarning,
    RowCountMismatchError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedInputs:
    """Aligned, validated inputs for one test.

    Attributes:
        table: Abundance table without empty sites.
        structures: Structure table on the same site labels, with
            string group labels, or ``None``.
        n_dropped: Number of empty sites removed.
    """

    table: pd.DataFrame
    structures: pd.DataFrame | None
    n_dropped: int = 0

    @property
    def n_levels(self) -> int:
        """Number of structure columns (0 without structures)."""
        return 0 if self.structures is None else self.structures.shape[1]


# ------------------------------------------------------------------ #
# Hierarchy helpers
# ------------------------------------------------------------------ #


def label_map(structures: pd.DataFrame, child: str, parent: str) -> dict[str, str]:
    """Return the child → parent label mapping between two columns.

    Rows are deduplicated on *child*; the first occurrence of each
    child label fixes its parent.  Keys keep first-appearance order.

    Args:
        structures: Structure table.
        child: Finer column name.
        parent: Coarser column name.

    Returns:
        ``{child_label: parent_label}``.
    """
    first = structures.drop_duplicates(subset=child, keep="first")
    return dict(zip(first[child], first[parent], strict=True))


def check_nested(structures: pd.DataFrame) -> None:
    """Verify that each column is a coarsening of the previous one.

    Args:
        structures: Structure table, finest level first.

    Raises:
        InconsistentHierarchyError: If a group of column *k* belongs
            to more than one group of column *k + 1*.
    """
    cols = list(structures.columns)
    for child, parent in zip(cols[:-1], cols[1:]):
        n_parents = structures.groupby(child, sort=True)[parent].nunique()
        offending = [str(g) for g in n_parents.index[n_parents.to_numpy() > 1]]
        if offending:
            raise InconsistentHierarchyError(
                f"structures are not nested: group(s) {offending} of column "
                f"'{child}' belong to several groups of column '{parent}'.",
                child=str(child),
                parent=str(parent),
                offending_groups=offending,
            )


# ------------------------------------------------------------------ #
# Input preparation
# ------------------------------------------------------------------ #


def _prepare_table(table: DataFrameLike | np.ndarray) -> pd.DataFrame:
    df = _ensure_pandas_df(table, name="table", allow_array=True)
    try:
        values = df.to_numpy(dtype=float)
    except (TypeError, ValueError):
        raise ValueError("'table' must contain numeric abundances only.") from None
    if values.ndim != 2 or values.shape[0] == 0 or values.shape[1] == 0:
        raise ValueError("'table' must have at least one site and one species.")
    if not np.all(np.isfinite(values)):
        raise ValueError("'table' must not contain missing or infinite values.")
    if np.any(values < 0):
        raise ValueError("'table' must contain non-negative abundances.")
    return pd.DataFrame(values, index=df.index, columns=df.columns)


def _prepare_structures(structures: object) -> pd.DataFrame:
    try:
        df = _ensure_pandas_df(structures, name="structures")  # type: ignore[arg-type]
    except TypeError:
        raise InvalidStructureTypeError(
            f"structures should be a data frame or None, got "
            f"{type(structures).__name__}."
        ) from None
    if df.shape[1] == 0:
        raise InvalidStructureTypeError("structures must have at least one column.")
    if df.isna().to_numpy().any():
        raise ValueError("structures must not contain missing group labels.")
    return df


def prepare_inputs(
    table: DataFrameLike | np.ndarray,
    structures: DataFrameLike | None = None,
) -> PreparedInputs:
    """Validate and align the abundance table and the structure table.

    Args:
        table: Sites × species abundances.
        structures: Sites × levels group labels, finest level first,
            in the same site order as *table*; or ``None``.

    Returns:
        :class:`PreparedInputs` with empty sites removed from both
        tables.

    Raises:
        InvalidStructureTypeError: *structures* is not a data frame.
        RowCountMismatchError: Row counts differ before filtering.
        InconsistentHierarchyError: Columns are not strictly nested.
        ValueError: *table* is empty, non-numeric, negative, or every
            site is empty.

    Warns:
        RowAlignmentWarning: Site labels of the two tables disagree in
            order; positional alignment is assumed.
    """
    df = _prepare_table(table)
    struct = None if structures is None else _prepare_structures(structures)

    if struct is not None and struct.shape[0] != df.shape[0]:
        raise RowCountMismatchError(
            f"incorrect number of rows in structures: expected "
            f"{df.shape[0]}, got {struct.shape[0]}.",
            n_table=df.shape[0],
            n_structures=struct.shape[0],
        )

    keep = df.to_numpy().sum(axis=1) > 0
    n_dropped = int((~keep).sum())
    if n_dropped == df.shape[0]:
        raise ValueError("every site in 'table' has zero total abundance.")
    if n_dropped:
        logger.debug("Dropping %d empty site(s) before testing.", n_dropped)
    df = df.loc[keep].copy()

    if struct is None:
        return PreparedInputs(table=df, structures=None, n_dropped=n_dropped)

    struct = struct.loc[keep].astype(str)
    if not df.index.equals(struct.index):
        warnings.warn(
            "be careful that site labels in 'table' should be in the same "
            "order as those in 'structures'; assuming positional alignment.",
            RowAlignmentWarning,
            stacklevel=3,
        )
    struct.index = df.index

    if struct.shape[1] > 1:
        check_nested(struct)

    return PreparedInputs(table=df, structures=struct, n_dropped=n_dropped)
