"""Formatted ASCII table display for nested-diversity permutation tests.

The summary has a header panel describing the test (level, scheme,
formula, rescaling) and the null sample, then the observed statistic
against its null summary with the Monte-Carlo p-value and its ± margin.

The margin matters for Monte-Carlo tests: with a few hundred
repetitions a p-value near a significance threshold can fall on either
side of it, and the table says so.
"""

from __future__ import annotations

import math
import textwrap
from typing import TYPE_CHECKING

from scipy import stats as _sp_stats

if TYPE_CHECKING:
    from ._results import RandTestResult


_SCHEME_LABELS = {
    "free": "free (species shuffled independently)",
    "within_group": "sites within level-1 groups",
    "whole_structure": "whole structure across sites",
    "label_swap_within_parent": "labels within parent groups",
    "label_swap_general": "group labels within parents",
}

_NREP_FLOOR = 100
_NREP_CEILING = 10_000_000


def _fmt_val(val: float | None, fmt: str = ".4f") -> str:
    """Format a numeric value; ``nan`` and ``None`` become ``'N/A'``."""
    if val is None:
        return "N/A"
    if isinstance(val, float) and math.isnan(val):
        return "N/A"
    return f"{val:{fmt}}"


def _fmt_p_value(
    p: float,
    thresholds: tuple[float, float, float] = (0.05, 0.01, 0.001),
    precision: int = 3,
) -> str:
    """Format *p* with a significance marker (``***``, ``**``, ``*``, ``ns``)."""
    one, two, three = thresholds
    val = f"{round(p, precision):.{precision}f}"
    if p < three:
        return f"{val} (***)"
    if p < two:
        return f"{val} (**)"
    if p < one:
        return f"{val} (*)"
    return f"{val} (ns)"


def _straddled_threshold(
    p_value: float,
    interval: tuple[float, float],
    thresholds: tuple[float, ...],
) -> float | None:
    """Threshold strictly inside *interval* nearest to *p_value*, if any."""
    lo, hi = interval
    inside = [t for t in thresholds if lo < t < hi]
    if not inside:
        return None
    return min(inside, key=lambda t: abs(t - p_value))


def _nrep_to_resolve(p_value: float, threshold: float, confidence_level: float) -> int:
    """Repetitions needed for the interval around *p_value* to clear *threshold*.

    Solves ``z · sqrt(p (1 - p) / B) = |p - threshold|`` for ``B``
    (normal approximation to the interval half-width), clamped to
    ``[_NREP_FLOOR, _NREP_CEILING]``.
    """
    gap = abs(p_value - threshold)
    if gap == 0.0:
        return _NREP_CEILING
    z = _sp_stats.norm.ppf(0.5 + confidence_level / 2)
    needed = math.ceil(p_value * (1 - p_value) * (z / gap) ** 2)
    return min(max(needed, _NREP_FLOOR), _NREP_CEILING)


def print_randtest_table(
    result: RandTestResult,
    *,
    title: str = "Nested Diversity Permutation Test",
    thresholds: tuple[float, float, float] = (0.05, 0.01, 0.001),
) -> None:
    """Print a test result as an 80-column ASCII table.

    Args:
        result: Result returned by
            :func:`~nested_randtests.randtest_eqrs_intra`.
        title: Title for the output table.
        thresholds: Significance levels for the ``*`` markers.
    """
    print("=" * 80)
    for line in textwrap.wrap(title, width=78):
        print(f"{line:^80}")
    print("=" * 80)

    rows = [
        ("Level:", f"{result.level} of {result.n_levels + 1}", "Repetitions:", result.n_requested),
        ("Formula:", result.formula, "Valid trials:", result.n_simulated),
        ("Option:", result.option, "Degenerate:", result.n_degenerate),
        ("Mean type:", result.metmean, "Empty sites:", result.n_dropped_sites),
    ]
    for ll, lv, rl, rv in rows:
        print(f"{ll:<16}{lv:<24}{rl:>27} {rv!s:>12}")
    # Full width, so scheme labels are never cut.
    print(f"{'Permutation:':<16}{_SCHEME_LABELS.get(result.scheme, result.scheme)}")
    print(f"{'Statistic row:':<16}{result.statistic_row}")
    print("-" * 80)

    print(f"{'Observed:':<30} {_fmt_val(result.observed):>14}")
    print(f"{'Expectation:':<30} {_fmt_val(result.expectation):>14}")
    print(f"{'Variance:':<30} {_fmt_val(result.variance):>14}")
    print(f"{'Std. Obs.:':<30} {_fmt_val(result.std_obs):>14}")
    print(f"{'Alternative:':<30} {result.alternative:>14}")
    p_str = _fmt_p_value(result.p_value, thresholds)
    print(f"{'p-Value:':<30} {p_str:>20}")

    lo, hi = result.p_value_ci
    margin = (hi - lo) / 2
    straddled = _straddled_threshold(result.p_value, (lo, hi), thresholds)
    num_str = f"{margin:.0e}" if 0 < margin < 0.001 else f"{margin:.3f}"
    flag = "  [!]" if straddled is not None else ""
    print(f"{'':<31}{'± ' + num_str:>14}{flag}")

    notes: list[str] = []
    if result.n_degenerate:
        notes.append(
            f"{result.n_degenerate} of {result.n_requested} repetitions had a "
            "site whose total abundance was at or below tol and were "
            f"discarded; the null sample has {result.n_simulated} values."
        )
    if straddled is not None:
        nrep = _nrep_to_resolve(result.p_value, straddled, result.confidence_level)
        notes.append(
            f"The {result.confidence_level:.0%} interval for the p-value "
            f"contains {straddled}; consider nrep ≥ {nrep:,} to resolve it."
        )

    if notes:
        print("-" * 80)
        print("Notes")
        print("-" * 80)
        for note in notes:
            print(textwrap.fill(note, width=80, initial_indent="  [!] ",
                                subsequent_indent=" " * 6))

    print("=" * 80)
    one, two, three = thresholds
    print(
        f"(***) p < {three}   (**) p < {two}   (*) p < {one}   (ns) p >= {one}"
    )
    print()
