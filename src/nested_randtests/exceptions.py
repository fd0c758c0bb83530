"""Exception and warning hierarchy for nested_randtests.

All errors inherit from :class:`NestedRandtestError` so callers can
catch every library-specific failure at once.  Each concrete error also
inherits from the built-in it refines (``TypeError`` or ``ValueError``)
so existing ``except ValueError`` handlers keep working.

Every error here is fatal and raised before any permutation work
begins.  Degenerate trials are *not* errors: they are dropped from the
null sample and counted on the result (see :mod:`.engine`).
"""

from __future__ import annotations


class NestedRandtestError(Exception):
    """Base exception for all nested_randtests errors."""


class InvalidStructureTypeError(NestedRandtestError, TypeError):
    """``structures`` was given but is not a row-aligned data frame."""


class RowCountMismatchError(NestedRandtestError, ValueError):
    """``structures`` and the abundance table have different row counts.

    Attributes:
        n_table: Rows in the abundance table (before empty-site filtering).
        n_structures: Rows in the structure table.
    """

    def __init__(self, message: str, n_table: int, n_structures: int) -> None:
        super().__init__(message)
        self.n_table = n_table
        self.n_structures = n_structures


class InconsistentHierarchyError(NestedRandtestError, ValueError):
    """Structure columns are not a strict nested coarsening.

    Attributes:
        child: Name of the finer column.
        parent: Name of the coarser column.
        offending_groups: Child labels that map to more than one parent.
    """

    def __init__(
        self,
        message: str,
        child: str | None = None,
        parent: str | None = None,
        offending_groups: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.child = child
        self.parent = parent
        self.offending_groups = offending_groups or []


class InvalidLevelError(NestedRandtestError, ValueError):
    """Requested level lies outside ``[1, n_levels + 1]``.

    Attributes:
        level: The rejected level.
        n_levels: Number of structure columns (0 without structures).
    """

    def __init__(self, message: str, level: object, n_levels: int) -> None:
        super().__init__(message)
        self.level = level
        self.n_levels = n_levels


class RowAlignmentWarning(UserWarning):
    """Site labels of the table and the structures are not in the same order.

    Execution continues assuming positional alignment.
    """


__all__ = [
    "InconsistentHierarchyError",
    "InvalidLevelError",
    "InvalidStructureTypeError",
    "NestedRandtestError",
    "RowAlignmentWarning",
    "RowCountMismatchError",
]
