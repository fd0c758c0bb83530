"""Free permutation — no structure at all under H₀.

Used when no structure table is supplied.  Every species column is
shuffled across sites independently of the others, which destroys both
the spatial arrangement and the covariance among species.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from ..permutations import permute_columns_independently


class FreePermutation:
    """Independent per-species shuffle of the abundance table."""

    name: str = "free"
    permutes_table: bool = True

    def generate_trial(
        self,
        table: np.ndarray,
        structures: pd.DataFrame | None,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, pd.DataFrame | None]:
        """Shuffle each column of *table*; *structures* is passed on as a copy."""
        permuted = permute_columns_independently(table, rng)
        return permuted, None if structures is None else structures.copy()
