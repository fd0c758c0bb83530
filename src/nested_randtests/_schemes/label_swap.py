"""Label-swap permutations — tests intermediate and top levels.

Restricted permutation for nested designs: the coarser levels of the
hierarchy are held fixed and only the labelling of the level under
test is shuffled *within* each coarser partition.  Abundances never
move.

Two variants share :func:`~nested_randtests.permutations.permute_labels_within_partitions`:

* :class:`LabelSwapWithinParent` (level 2, L > 1) — the children are
  the sites themselves.  Within each group of column 2, the column-1
  labels are shuffled among the sites, so each column-1 group keeps
  its size and its parent.

* :class:`LabelSwapGeneral` (level > 2) — the children are the groups
  of column ``level - 2``.  Their column-(``level - 1``) labels are
  shuffled among children sharing a column-``level`` group and then
  broadcast back to every site of each child.  At the top level
  (``level == L + 1``) there is no column above, so the shuffle runs
  over a single partition.
"""

from __future__ import annotations

from collections.abc import Hashable

import numpy as np
import pandas as pd

from ..permutations import broadcast_labels, permute_labels_within_partitions
from ..structures import label_map


def _replace_column(
    structures: pd.DataFrame, column: Hashable, values: np.ndarray
) -> pd.DataFrame:
    out = structures.copy()
    out[column] = values
    return out


class LabelSwapWithinParent:
    """Shuffle site-level labels of *target* within each *parent* group.

    Args:
        structures: Prepared structure table.
        target: Column whose labels are shuffled (column 1).
        parent: Column held fixed (column 2).
    """

    name: str = "label_swap_within_parent"
    permutes_table: bool = False

    def __init__(
        self, structures: pd.DataFrame, target: Hashable, parent: Hashable
    ) -> None:
        self.target = target
        self.parent = parent
        sites = range(structures.shape[0])
        self.labels: dict[Hashable, str] = dict(
            zip(sites, structures[target], strict=True)
        )
        self.partitions: dict[Hashable, str] = dict(
            zip(sites, structures[parent], strict=True)
        )

    def generate_trial(
        self,
        table: np.ndarray,
        structures: pd.DataFrame | None,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, pd.DataFrame | None]:
        """Relabel the *target* column; every other column is unchanged."""
        if structures is None:
            raise ValueError("label-swap permutation requires structures.")
        permuted = permute_labels_within_partitions(self.labels, self.partitions, rng)
        new_target = broadcast_labels(range(structures.shape[0]), permuted)
        return np.array(table, copy=True), _replace_column(
            structures, self.target, new_target
        )


class LabelSwapGeneral:
    """Shuffle *target* labels among *child* groups within *parent* groups.

    Args:
        structures: Prepared structure table.
        child: Column whose groups carry the labels (column ``level - 2``).
        target: Column whose labels are shuffled (column ``level - 1``).
        parent: Column held fixed (column ``level``), or ``None`` at the
            top of the hierarchy.
    """

    name: str = "label_swap_general"
    permutes_table: bool = False

    def __init__(
        self,
        structures: pd.DataFrame,
        child: Hashable,
        target: Hashable,
        parent: Hashable | None,
    ) -> None:
        self.child = child
        self.target = target
        self.parent = parent
        self.labels: dict[Hashable, str] = label_map(structures, child, target)
        self.partitions: dict[Hashable, str] | None = (
            None if parent is None else label_map(structures, child, parent)
        )

    def generate_trial(
        self,
        table: np.ndarray,
        structures: pd.DataFrame | None,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, pd.DataFrame | None]:
        """Relabel the *target* column group-wise; other columns are unchanged."""
        if structures is None:
            raise ValueError("label-swap permutation requires structures.")
        permuted = permute_labels_within_partitions(self.labels, self.partitions, rng)
        new_target = broadcast_labels(structures[self.child].to_numpy(), permuted)
        return np.array(table, copy=True), _replace_column(
            structures, self.target, new_target
        )
