"""Whole-structure permutation — tests the single grouping (level 2, L = 1).

The abundance table stays fixed; the row → group assignment is
reassigned under one uniform permutation of the sites.  This asks
whether the grouping matters independently of which sites it
designates.  Group sizes are preserved.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from ..permutations import global_order


class WholeStructurePermutation:
    """Shuffle the structure rows across all sites."""

    name: str = "whole_structure"
    permutes_table: bool = False

    def generate_trial(
        self,
        table: np.ndarray,
        structures: pd.DataFrame | None,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, pd.DataFrame | None]:
        """Reassign the structure rows under a random site order."""
        if structures is None:
            raise ValueError("whole-structure permutation requires structures.")
        order = global_order(structures.shape[0], rng)
        shuffled = structures.iloc[order].copy()
        # Labels move, sites do not.
        shuffled.index = structures.index
        return np.array(table, copy=True), shuffled
