"""Shared fixtures: small hierarchies and fake statistic providers."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


def toy_statistic(table, dis, structures, *, formula, option, tol, metmean):
    """Deterministic stand-in for a diversity decomposition.

    Row 0 is the total dispersion of the site profiles; then one
    within-group dispersion row per structure column; the whole block
    is repeated for the rescaled variant, giving ``2 * (L + 1)`` rows.
    """
    values = table.to_numpy(dtype=float)
    prof = values / values.sum(axis=1, keepdims=True)
    rows = [float(((prof - prof.mean(axis=0)) ** 2).sum())]
    if structures is not None:
        for col in structures.columns:
            within = 0.0
            for idx in structures.groupby(col).indices.values():
                block = prof[idx]
                within += float(((block - block.mean(axis=0)) ** 2).sum())
            rows.append(within)
    return np.array(rows + rows).reshape(-1, 1)


class CountingStatistic:
    """Wraps a provider and records every call."""

    def __init__(self, func=toy_statistic):
        self.func = func
        self.calls = []

    def __call__(self, table, dis, structures, **kwargs):
        self.calls.append((table, dis, structures, kwargs))
        return self.func(table, dis, structures, **kwargs)

    @property
    def n_calls(self):
        return len(self.calls)


@pytest.fixture()
def rng():
    return np.random.default_rng(42)


@pytest.fixture()
def statistic():
    return toy_statistic


@pytest.fixture()
def counting_statistic():
    return CountingStatistic()


@pytest.fixture()
def abundance(rng):
    """12 sites × 5 species of positive counts."""
    values = rng.integers(1, 20, size=(12, 5)).astype(float)
    return pd.DataFrame(
        values,
        index=[f"s{i}" for i in range(12)],
        columns=[f"sp{j}" for j in range(5)],
    )


@pytest.fixture()
def hierarchy(abundance):
    """Three nested levels: 6 patches ⊂ 4 regions ⊂ 2 basins."""
    return pd.DataFrame(
        {
            "patch": ["p1", "p1", "p2", "p2", "p3", "p3", "p4", "p4", "p5", "p5", "p6", "p6"],
            "region": ["r1", "r1", "r1", "r1", "r2", "r2", "r3", "r3", "r3", "r3", "r4", "r4"],
            "basin": ["b1", "b1", "b1", "b1", "b1", "b1", "b2", "b2", "b2", "b2", "b2", "b2"],
        },
        index=abundance.index,
    )
