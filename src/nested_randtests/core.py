"""Permutation test for intra-group equivalent diversity in a nested hierarchy.

Sites are organised in a nested hierarchy of groupings (site within
region within basin, …), given as a structure table whose column *k*
assigns each site to a group of level *k*.  A diversity decomposition
(the *statistic provider*) turns an abundance table, an optional
species dissimilarity and the structure table into one value per
decomposition quantity.  The test asks, level by level, whether the
structure constrains diversity more than chance would:

    Level 1 is tested by shuffling sites within their finest group;
    level 2 … L by relabelling groups within the groups above them;
    the top level L + 1 by relabelling groups across the whole set.

Without a structure table, species abundances are shuffled freely.

Each repetition permutes a private copy of the inputs, recomputes the
decomposition, and keeps the row under test.  Repetitions in which a
site's total abundance collapses to ``tol`` or below are discarded, not
replaced.  The observed value is compared to the remaining null sample
with the rank-based Monte-Carlo p-value (see :mod:`.pvalues`).

Reference:
    Pavoine, S., Marcon, E. & Ricotta, C. (2016). 'Equivalent numbers'
    for species, phylogenetic or functional diversity in a nested
    hierarchy of multiple scales. *Methods in Ecology and Evolution*,
    7(10), 1152–1163.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np

from ._compat import DataFrameLike
from ._config import get_n_jobs
from ._results import RandTestResult
from ._schemes import select_scheme
from ._typing import SeedLike, StatisticCallable
from .engine import NullDistributionBuilder
from .pvalues import ALTERNATIVES, monte_carlo_p_value, null_moments, p_value_interval
from .rows import OPTION_OFFSETS, StatisticRow
from .structures import prepare_inputs

logger = logging.getLogger(__name__)

FORMULAS: tuple[str, ...] = ("QE", "EDI")
OPTIONS: tuple[str, ...] = tuple(OPTION_OFFSETS)
MEAN_TYPES: tuple[str, ...] = ("harmonic", "arithmetic")


def _check_choice(name: str, value: object, valid: tuple[str, ...]) -> str:
    if value not in valid:
        raise ValueError(
            f"Invalid {name} '{value}'. Choose from: {', '.join(valid)}."
        )
    return str(value)


def randtest_eqrs_intra(
    table: DataFrameLike | np.ndarray,
    dis: Any = None,
    structures: DataFrameLike | None = None,
    *,
    statistic: StatisticCallable,
    formula: str = "QE",
    option: str = "normed1",
    level: int = 1,
    nrep: int = 99,
    alternative: str = "greater",
    tol: float = 1e-8,
    metmean: str = "harmonic",
    random_state: SeedLike = None,
    n_jobs: int | None = None,
    confidence_level: float = 0.95,
) -> RandTestResult:
    """Test the effect of one hierarchy level on intra-group diversity.

    Args:
        table: Sites × species abundances.  Sites with zero total
            abundance are dropped (together with their structure rows).
        dis: Species × species dissimilarity, or ``None``; passed
            through to *statistic* untouched.
        structures: Sites × levels group labels, finest level first,
            in the same site order as *table*; or ``None``.
        statistic: Statistic provider, called as
            ``statistic(table, dis, structures, formula=..., option=...,
            tol=..., metmean=...)`` with pandas DataFrames, returning a
            matrix with one row per decomposition quantity (see
            :mod:`.rows` for the row contract).
        formula: ``"QE"`` or ``"EDI"``.
        option: Rescaling, ``"eq"``, ``"normed1"`` or ``"normed2"``.
        level: Level to test, between 1 and ``L + 1`` for ``L``
            structure columns (must be 1 without structures).
        nrep: Number of repetitions.
        alternative: ``"greater"``, ``"less"`` or ``"two-sided"``.
        tol: A site total ``<= tol`` marks a repetition as degenerate.
        metmean: ``"harmonic"`` or ``"arithmetic"``.
        random_state: Seed for reproducibility.
        n_jobs: joblib worker count; ``None`` uses
            :func:`~nested_randtests.get_n_jobs`.
        confidence_level: Coverage of the Clopper–Pearson interval
            reported with the p-value.

    Returns:
        :class:`~nested_randtests.RandTestResult`.

    Raises:
        InvalidStructureTypeError: *structures* is not a data frame.
        RowCountMismatchError: *structures* and *table* row counts differ.
        InconsistentHierarchyError: *structures* is not strictly nested.
        InvalidLevelError: *level* is outside ``[1, L + 1]``.
        ValueError: An enumerated argument, *nrep*, *tol* or
            *confidence_level* is invalid.

    Warns:
        RowAlignmentWarning: Site labels of *table* and *structures*
            are not in the same order.
    """
    formula = _check_choice("formula", formula, FORMULAS)
    option = _check_choice("option", option, OPTIONS)
    alternative = _check_choice("alternative", alternative, ALTERNATIVES)
    metmean = _check_choice("metmean", metmean, MEAN_TYPES)
    if isinstance(nrep, bool) or not isinstance(nrep, (int, np.integer)) or nrep < 1:
        raise ValueError(f"nrep must be a positive integer, got {nrep!r}.")
    if not (isinstance(tol, (int, float)) and math.isfinite(tol) and tol >= 0):
        raise ValueError(f"tol must be a non-negative finite number, got {tol!r}.")
    if not 0 < confidence_level < 1:
        raise ValueError(
            f"confidence_level must lie in (0, 1), got {confidence_level!r}."
        )
    if not callable(statistic):
        raise TypeError("statistic must be callable.")
    n_jobs = get_n_jobs() if n_jobs is None else n_jobs

    prepared = prepare_inputs(table, structures)
    scheme = select_scheme(level, prepared.structures)
    row = StatisticRow(level=int(level), n_levels=prepared.n_levels, option=option)

    builder = NullDistributionBuilder(
        prepared.table,
        dis,
        prepared.structures,
        scheme,
        row,
        statistic,
        formula=formula,
        option=option,
        tol=float(tol),
        metmean=metmean,
    )
    null = builder.run(int(nrep), random_state=random_state, n_jobs=n_jobs)

    p_value = monte_carlo_p_value(null.observed, null.simulated, alternative)
    p_ci = p_value_interval(null.observed, null.simulated, alternative, confidence_level)
    expectation, variance, std_obs = null_moments(null.observed, null.simulated)
    logger.debug(
        "Level %d (%s): observed=%g, p=%g from %d valid of %d repetitions.",
        level,
        scheme.name,
        null.observed,
        p_value,
        null.simulated.size,
        nrep,
    )

    return RandTestResult(
        observed=null.observed,
        simulated=null.simulated,
        alternative=alternative,
        p_value=p_value,
        p_value_ci=p_ci,
        confidence_level=confidence_level,
        expectation=expectation,
        variance=variance,
        std_obs=std_obs,
        n_requested=null.n_requested,
        n_degenerate=null.n_degenerate,
        level=int(level),
        n_levels=prepared.n_levels,
        scheme=scheme.name,
        statistic_row=null.statistic_row + 1,
        formula=formula,
        option=option,
        metmean=metmean,
        n_dropped_sites=prepared.n_dropped,
        call={
            "function": "randtest_eqrs_intra",
            "formula": formula,
            "option": option,
            "level": int(level),
            "nrep": int(nrep),
            "alternative": alternative,
            "tol": float(tol),
            "metmean": metmean,
            "random_state": random_state if isinstance(random_state, int) else None,
        },
    )
