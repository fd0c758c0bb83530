"""Typed result object for nested-diversity permutation tests.

:class:`RandTestResult` is a frozen snapshot of one completed test.
Fields read as attributes (``result.p_value``) or by key
(``result["p_value"]``, ``result.get("scheme")``, ``"scheme" in
result``), and :meth:`~_KeyedResult.to_dict` flattens the whole record
into builtin Python types for JSON export.  The simulated sample is
held as a read-only array.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

import numpy as np


def _to_builtin(value: Any) -> Any:
    """Map NumPy arrays and scalars (also inside containers) to builtins."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, dict):
        return {key: _to_builtin(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_to_builtin(item) for item in value)
    return value


class _KeyedResult:
    """Mapping-style read access on top of dataclass fields."""

    def __getitem__(self, key: str) -> Any:
        if key not in self:
            raise KeyError(key)
        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        return self[key] if key in self else default

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Return every field as JSON-serialisable builtins."""
        return {
            f.name: _to_builtin(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
        }


# ------------------------------------------------------------------ #
# RandTestResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class RandTestResult(_KeyedResult):
    """Result of :func:`~nested_randtests.randtest_eqrs_intra`.

    All fields are accessible both as attributes (``result.p_value``)
    and via dict syntax (``result["p_value"]``).
    """

    # ---- Statistic & null distribution -----------------------------
    observed: float
    """Statistic on the unpermuted input."""

    simulated: np.ndarray
    """Valid simulated statistics, length ``n_requested - n_degenerate``."""

    # ---- P-value ---------------------------------------------------
    alternative: str
    """``"greater"``, ``"less"`` or ``"two-sided"``."""

    p_value: float
    """Rank-based Monte-Carlo p-value."""

    p_value_ci: tuple[float, float]
    """Clopper–Pearson interval for the Monte-Carlo tail probability."""

    confidence_level: float
    """Coverage of :attr:`p_value_ci`."""

    # ---- Null summary ----------------------------------------------
    expectation: float
    """Mean of the simulated values."""

    variance: float
    """Sample variance (``ddof=1``) of the simulated values."""

    std_obs: float
    """Standardised observed value ``(observed - expectation) / sd``."""

    # ---- Sample accounting -----------------------------------------
    n_requested: int
    """Number of trials run (``nrep``)."""

    n_degenerate: int
    """Trials discarded because a site total was ``<= tol``."""

    # ---- Test description ------------------------------------------
    level: int
    """Hierarchy level tested."""

    n_levels: int
    """Number of structure columns (0 without structures)."""

    scheme: str
    """Permutation scheme used (e.g. ``"within_group"``)."""

    statistic_row: int
    """1-based row of the provider's output holding the tested value."""

    formula: str
    """Diversity formula (``"QE"`` or ``"EDI"``)."""

    option: str
    """Rescaling option (``"eq"``, ``"normed1"``, ``"normed2"``)."""

    metmean: str
    """Mean type (``"arithmetic"`` or ``"harmonic"``)."""

    n_dropped_sites: int = 0
    """Empty sites removed before testing."""

    call: dict[str, Any] = field(default_factory=dict)
    """Function name and scalar arguments of the originating call."""

    def __post_init__(self) -> None:
        simulated = np.array(self.simulated, dtype=float).ravel()
        simulated.setflags(write=False)
        object.__setattr__(self, "simulated", simulated)
        object.__setattr__(self, "call", dict(self.call))

    @property
    def n_simulated(self) -> int:
        """Number of valid simulated values."""
        return int(self.simulated.size)
