"""Permutation scheme protocol and level-dependent selector.

Each scheme encapsulates one constrained randomisation and exposes a
uniform ``generate_trial()`` interface that the
:class:`~nested_randtests.engine.NullDistributionBuilder` calls once per
repetition.  The scheme is chosen once per test from the tested level
and the number of structure columns *L*:

======================  ===========================  =================
Condition               Scheme                       Permutes
======================  ===========================  =================
no structures           ``free``                     table
level 1                 ``within_group``             table
level 2, L = 1          ``whole_structure``          structures
level 2, L > 1          ``label_swap_within_parent`` structures
level > 2               ``label_swap_general``       structures
======================  ===========================  =================

Levels outside ``[1, L + 1]`` (with ``L = 0`` when structures are
absent) are rejected with :class:`~nested_randtests.exceptions.InvalidLevelError`
before any statistic is computed.

Adding a new scheme
~~~~~~~~~~~~~~~~~~~
1. Create a module under ``_schemes/`` with a class that satisfies
   the :class:`PermutationScheme` protocol.
2. Route to it from :func:`select_scheme`.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import numpy as np
import pandas as pd

from ..exceptions import InvalidLevelError
from .free import FreePermutation
from .label_swap import LabelSwapGeneral, LabelSwapWithinParent
from .whole_structure import WholeStructurePermutation
from .within_group import WithinGroupPermutation

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------ #
# Scheme protocol
# ------------------------------------------------------------------ #


@runtime_checkable
class PermutationScheme(Protocol):
    """Interface that every permutation scheme must satisfy.

    A scheme is bound to one structure table at construction and then
    produces independent realisations of its null hypothesis.
    """

    name: str
    """Scheme identifier, e.g. ``"within_group"``."""

    permutes_table: bool
    """``True`` if trials reorder abundances, ``False`` if they relabel
    the structure table."""

    def generate_trial(
        self,
        table: np.ndarray,
        structures: pd.DataFrame | None,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, pd.DataFrame | None]:
        """Draw one permuted ``(table, structures)`` pair.

        Args:
            table: Abundance values ``(n_sites, n_species)``.
            structures: Structure table aligned on the sites, or ``None``.
            rng: Random source owned by the caller.

        Returns:
            Freshly allocated table values and structure table; the
            inputs are left untouched.
        """
        ...


def validate_level(level: object, n_levels: int) -> int:
    """Check that *level* is an integer in ``[1, n_levels + 1]``.

    Args:
        level: Requested level.
        n_levels: Number of structure columns (0 without structures).

    Returns:
        *level* as a Python ``int``.

    Raises:
        InvalidLevelError: If *level* is not an integer or is out of
            range.
    """
    if isinstance(level, bool) or not isinstance(level, (int, np.integer)):
        raise InvalidLevelError(
            f"level should be an integer, got {type(level).__name__}.",
            level=level,
            n_levels=n_levels,
        )
    if not 1 <= level <= n_levels + 1:
        raise InvalidLevelError(
            f"level should be between 1 and {n_levels + 1}, got {level}.",
            level=level,
            n_levels=n_levels,
        )
    return int(level)


def select_scheme(level: object, structures: pd.DataFrame | None) -> PermutationScheme:
    """Return the scheme that realises the null hypothesis for *level*.

    Args:
        level: Hierarchy level under test (1 = finest).
        structures: Prepared structure table, finest level first, or
            ``None``.

    Raises:
        InvalidLevelError: If *level* is outside ``[1, L + 1]``.
    """
    n_levels = 0 if structures is None else structures.shape[1]
    level = validate_level(level, n_levels)
    scheme: PermutationScheme

    if structures is None:
        scheme = FreePermutation()
    elif level == 1:
        scheme = WithinGroupPermutation(structures, group=structures.columns[0])
    elif level == 2 and n_levels == 1:
        scheme = WholeStructurePermutation()
    elif level == 2:
        scheme = LabelSwapWithinParent(
            structures,
            target=structures.columns[0],
            parent=structures.columns[1],
        )
    else:
        parent = structures.columns[level - 1] if level <= n_levels else None
        scheme = LabelSwapGeneral(
            structures,
            child=structures.columns[level - 3],
            target=structures.columns[level - 2],
            parent=parent,
        )

    logger.debug(
        "Level %d of %d structure column(s): using '%s' permutations.",
        level,
        n_levels,
        scheme.name,
    )
    return scheme


__all__ = [
    "FreePermutation",
    "LabelSwapGeneral",
    "LabelSwapWithinParent",
    "PermutationScheme",
    "WholeStructurePermutation",
    "WithinGroupPermutation",
    "select_scheme",
    "validate_level",
]
