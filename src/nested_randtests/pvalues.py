"""P-value and null-summary calculation for Monte-Carlo tests.

Rank-based Monte-Carlo p-value
------------------------------
The observed statistic is one member of the reference set formed by
itself and the *B* valid simulated values, so it is counted in both the
numerator and the denominator:

    greater:    p = (1 + #{sim >= obs}) / (1 + B)
    less:       p = (1 + #{sim <= obs}) / (1 + B)
    two-sided:  p = min(1, 2 · min(p_greater, p_less))

Ties are judged with a relative tolerance of :data:`TIE_RTOL`
(``|sim - obs| <= TIE_RTOL · |obs|``), the rule used by
``scipy.stats.permutation_test``.  A recomputed statistic that differs
from the observed one only by floating-point rounding is a tie, not an
exceedance.

This ensures:
  • p is never exactly zero (minimum is 1/(B+1));
  • p never exceeds 1, even with ties on both sides;
  • with no valid simulated values, p = 1.

Monte-Carlo error
-----------------
A p-value estimated from B draws is itself uncertain.  The
Clopper–Pearson interval on the exceedance proportion
``#{extreme} / B`` (exact binomial, via the Beta quantile function)
quantifies that uncertainty; it is what the summary table reports as
the ± margin.
"""

from __future__ import annotations

import math

import numpy as np
from scipy import stats as sp_stats

ALTERNATIVES: tuple[str, ...] = ("greater", "less", "two-sided")

TIE_RTOL = 100 * np.finfo(float).eps
"""Relative distance to the observed value within which a simulated
value counts as a tie."""


def _check_alternative(alternative: str) -> None:
    if alternative not in ALTERNATIVES:
        valid = ", ".join(ALTERNATIVES)
        raise ValueError(
            f"Invalid alternative '{alternative}'. Choose from: {valid}."
        )


def _tail_counts(observed: float, simulated: np.ndarray) -> tuple[int, int]:
    """Return ``(#{sim >= obs}, #{sim <= obs})`` up to :data:`TIE_RTOL`."""
    gamma = abs(observed) * TIE_RTOL
    return (
        int(np.sum(simulated >= observed - gamma)),
        int(np.sum(simulated <= observed + gamma)),
    )


def monte_carlo_p_value(
    observed: float,
    simulated: np.ndarray,
    alternative: str = "greater",
) -> float:
    """Rank-based Monte-Carlo p-value.

    Args:
        observed: Statistic on the unpermuted data.
        simulated: Valid simulated statistics, shape ``(B,)``.
        alternative: ``"greater"``, ``"less"`` or ``"two-sided"``.

    Returns:
        A p-value in ``(0, 1]``.

    Raises:
        ValueError: If *alternative* is not recognised.
    """
    _check_alternative(alternative)
    simulated = np.asarray(simulated, dtype=float).ravel()
    n_sim = simulated.size
    n_ge, n_le = _tail_counts(observed, simulated)

    p_greater = (n_ge + 1) / (n_sim + 1)
    p_less = (n_le + 1) / (n_sim + 1)

    if alternative == "greater":
        return p_greater
    if alternative == "less":
        return p_less
    return min(1.0, 2.0 * min(p_greater, p_less))


def clopper_pearson_interval(
    count: int,
    n: int,
    confidence_level: float = 0.95,
) -> tuple[float, float]:
    """Exact binomial confidence interval for ``count / n``.

    Args:
        count: Number of successes.
        n: Number of trials.
        confidence_level: Coverage of the interval.

    Returns:
        ``(lower, upper)``; ``(0.0, 1.0)`` when ``n == 0``.
    """
    if n == 0:
        return 0.0, 1.0
    alpha = 1.0 - confidence_level
    lo = 0.0 if count == 0 else float(sp_stats.beta.ppf(alpha / 2, count, n - count + 1))
    hi = 1.0 if count == n else float(sp_stats.beta.ppf(1 - alpha / 2, count + 1, n - count))
    return lo, hi


def p_value_interval(
    observed: float,
    simulated: np.ndarray,
    alternative: str = "greater",
    confidence_level: float = 0.95,
) -> tuple[float, float]:
    """Clopper–Pearson interval for the tail probability behind the p-value.

    For ``"two-sided"`` the interval of the smaller tail is doubled and
    capped at 1, mirroring :func:`monte_carlo_p_value`.
    """
    _check_alternative(alternative)
    simulated = np.asarray(simulated, dtype=float).ravel()
    n_sim = simulated.size
    n_ge, n_le = _tail_counts(observed, simulated)

    if alternative == "greater":
        return clopper_pearson_interval(n_ge, n_sim, confidence_level)
    if alternative == "less":
        return clopper_pearson_interval(n_le, n_sim, confidence_level)
    lo, hi = clopper_pearson_interval(min(n_ge, n_le), n_sim, confidence_level)
    return min(1.0, 2.0 * lo), min(1.0, 2.0 * hi)


def null_moments(observed: float, simulated: np.ndarray) -> tuple[float, float, float]:
    """Summarise the null sample against the observed value.

    Returns:
        ``(expectation, variance, std_obs)`` — the mean and sample
        variance (``ddof=1``) of *simulated*, and the standardised
        observed value ``(obs - mean) / sd``.  Undefined entries are
        ``nan``: the variance and ``std_obs`` need two values, and
        ``std_obs`` needs a non-zero variance.
    """
    simulated = np.asarray(simulated, dtype=float).ravel()
    if simulated.size == 0:
        return math.nan, math.nan, math.nan
    expectation = float(simulated.mean())
    if simulated.size < 2:
        return expectation, math.nan, math.nan
    variance = float(simulated.var(ddof=1))
    std_obs = (observed - expectation) / math.sqrt(variance) if variance > 0 else math.nan
    return expectation, variance, std_obs
