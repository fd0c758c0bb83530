"""Within-group permutation — tests the finest level (level 1).

Under H₀ the sites of a level-1 group are exchangeable, but sites of
different groups are not.  Each trial relocates whole site profiles
inside their own group; singleton groups never move.  Site totals are
preserved, so trials from this scheme are never degenerate unless the
observed table already is.

Profiles move as a whole, so a statistic that depends only on the
composition of each level-1 group recomputes to the observed value up
to rounding on every trial.  Such near-ties are resolved by the
relative tie tolerance in :mod:`nested_randtests.pvalues`, giving
``p = 1`` rather than a p-value decided by rounding noise.
"""

from __future__ import annotations

from collections.abc import Hashable

import numpy as np
import pandas as pd

from ..permutations import group_indices, permute_rows_within_groups


class WithinGroupPermutation:
    """Shuffle site rows within each group of one structure column.

    Args:
        structures: Prepared structure table.
        group: Column whose groups delimit the exchangeable sites.
    """

    name: str = "within_group"
    permutes_table: bool = True

    def __init__(self, structures: pd.DataFrame, group: Hashable) -> None:
        self.group = group
        # Computed once per test, reused by every trial.
        self.cell_indices: list[np.ndarray] = group_indices(
            structures[group].to_numpy()
        )

    def generate_trial(
        self,
        table: np.ndarray,
        structures: pd.DataFrame | None,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, pd.DataFrame | None]:
        """Move whole rows of *table* within their groups."""
        permuted = permute_rows_within_groups(table, self.cell_indices, rng)
        return permuted, None if structures is None else structures.copy()
