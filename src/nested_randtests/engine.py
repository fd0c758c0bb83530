"""Null-distribution builder — drives the repeated permute → compute → extract loop.

The :class:`NullDistributionBuilder` is bound to one prepared input
pair, one permutation scheme, one statistic provider and one row
accessor.  It then

1. computes the **observed** statistic on the unpermuted input;
2. runs ``nrep`` **trials**: draw a permuted ``(table, structures)``
   pair from the scheme; when the scheme moves abundances, reject it
   if any site total is ``<= tol`` (a *degenerate* trial); otherwise
   call the provider and extract the tested row;
3. returns the observed value with the valid simulated values.

Degenerate trials are discarded, never retried: the effective sample
size quietly shrinks and the number of discarded trials is reported.

Random streams and parallelism
------------------------------
Trials are grouped into blocks of :data:`BLOCK_SIZE`.  Each block owns
a child stream spawned from ``numpy.random.SeedSequence(random_state)``
so that blocks are statistically independent and can run in any
order.  With ``n_jobs != 1`` blocks are dispatched through
``joblib.Parallel(prefer="threads")``; NumPy and most providers spend
their time in C code that releases the GIL.  Streams belong to blocks,
not to workers, so a given seed gives the same null sample for every
``n_jobs``.  Block results are concatenated in block order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ._schemes import PermutationScheme
from ._typing import SeedLike, StatisticCallable
from .rows import StatisticRow

logger = logging.getLogger(__name__)

BLOCK_SIZE = 64
"""Number of trials sharing one spawned random stream."""


@dataclass(frozen=True)
class NullDistribution:
    """Observed statistic and the valid simulated sample.

    Attributes:
        observed: Statistic on the unpermuted input.
        simulated: Valid simulated statistics, length ``<= n_requested``.
        n_requested: Number of trials run (``nrep``).
        n_degenerate: Trials discarded because a site total was
            ``<= tol``.
        statistic_row: 0-based row of the provider output holding the
            observed value.
    """

    observed: float
    simulated: np.ndarray
    n_requested: int
    n_degenerate: int
    statistic_row: int


def _seed_sequence(random_state: SeedLike) -> np.random.SeedSequence:
    """Return a fresh SeedSequence so spawning never mutates the caller's."""
    if isinstance(random_state, np.random.SeedSequence):
        return np.random.SeedSequence(
            random_state.entropy,
            spawn_key=random_state.spawn_key,
            pool_size=random_state.pool_size,
        )
    return np.random.SeedSequence(random_state)


class NullDistributionBuilder:
    """Repeat permutation + statistic extraction to build the null sample.

    Args:
        table: Prepared abundance table (no empty sites).
        dis: Species dissimilarity, passed through to *statistic*.
        structures: Prepared structure table, or ``None``.
        scheme: Permutation scheme selected for the tested level.
        row: Accessor for the tested row of the provider's output.
        statistic: Statistic provider.
        formula: Diversity formula forwarded to *statistic*.
        option: Rescaling option forwarded to *statistic*.
        tol: Tolerance; a value ``<= tol`` is treated as zero.
        metmean: Mean type forwarded to *statistic*.
    """

    def __init__(
        self,
        table: pd.DataFrame,
        dis: Any,
        structures: pd.DataFrame | None,
        scheme: PermutationScheme,
        row: StatisticRow,
        statistic: StatisticCallable,
        *,
        formula: str,
        option: str,
        tol: float,
        metmean: str,
    ) -> None:
        self.table = table
        self.dis = dis
        self.structures = structures
        self.scheme = scheme
        self.row = row
        self.statistic = statistic
        self.formula = formula
        self.option = option
        self.tol = tol
        self.metmean = metmean
        # Read-only snapshot shared by every trial.
        self._values = table.to_numpy(dtype=float, copy=True)
        self._values.setflags(write=False)

    # ---- Single evaluations ---------------------------------------

    def _compute(self, table: pd.DataFrame, structures: pd.DataFrame | None):
        return self.statistic(
            table,
            self.dis,
            structures,
            formula=self.formula,
            option=self.option,
            tol=self.tol,
            metmean=self.metmean,
        )

    def _evaluate(
        self, table: pd.DataFrame, structures: pd.DataFrame | None
    ) -> tuple[int, float]:
        return self.row.locate(self._compute(table, structures))

    def observed(self) -> float:
        """Statistic on the unpermuted input (same extraction rule)."""
        matrix = self._compute(self.table.copy(), self._copy_structures())
        return self.row.extract(matrix)

    def _copy_structures(self) -> pd.DataFrame | None:
        return None if self.structures is None else self.structures.copy()

    def is_degenerate(self, values: np.ndarray) -> bool:
        """``True`` when some site total is at or below ``tol``.

        Only meaningful for schemes that move abundances; relabelling
        schemes leave site totals as observed.
        """
        return bool(values.sum(axis=1).min() <= self.tol)

    def run_trial(self, rng: np.random.Generator) -> float | None:
        """Run one repetition; ``None`` marks a degenerate trial."""
        # Schemes return fresh copies; the shared inputs are never handed out.
        values, structures = self.scheme.generate_trial(
            self._values, self.structures, rng
        )
        if self.scheme.permutes_table and self.is_degenerate(values):
            return None
        table = pd.DataFrame(values, index=self.table.index, columns=self.table.columns)
        return self._evaluate(table, structures)[1]

    # ---- Repetition loop ------------------------------------------

    def _run_block(
        self, size: int, seed: np.random.SeedSequence
    ) -> tuple[list[float], int]:
        rng = np.random.default_rng(seed)
        valid: list[float] = []
        n_degenerate = 0
        for _ in range(size):
            value = self.run_trial(rng)
            if value is None:
                n_degenerate += 1
            else:
                valid.append(value)
        return valid, n_degenerate

    def run(
        self,
        nrep: int,
        random_state: SeedLike = None,
        n_jobs: int = 1,
    ) -> NullDistribution:
        """Compute the observed value and ``nrep`` trials.

        Args:
            nrep: Number of trials.
            random_state: Seed for the block streams.
            n_jobs: joblib worker count (``-1`` for all cores).

        Returns:
            :class:`NullDistribution` with the valid simulated values.
        """
        obs_row, obs = self._evaluate(self.table.copy(), self._copy_structures())

        sizes = [min(BLOCK_SIZE, nrep - start) for start in range(0, nrep, BLOCK_SIZE)]
        seeds = _seed_sequence(random_state).spawn(len(sizes))

        if n_jobs == 1:
            blocks = [self._run_block(s, seed) for s, seed in zip(sizes, seeds, strict=True)]
        else:
            blocks = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(self._run_block)(s, seed) for s, seed in zip(sizes, seeds, strict=True)
            )

        simulated = np.array([v for valid, _ in blocks for v in valid], dtype=float)
        n_degenerate = sum(n for _, n in blocks)
        if n_degenerate:
            logger.debug(
                "Discarded %d of %d degenerate trial(s) (site total <= tol=%g).",
                n_degenerate,
                nrep,
                self.tol,
            )

        return NullDistribution(
            observed=obs,
            simulated=simulated,
            n_requested=nrep,
            n_degenerate=n_degenerate,
            statistic_row=obs_row,
        )
