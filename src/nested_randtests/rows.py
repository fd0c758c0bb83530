"""Selection of the tested quantity from a decomposition matrix.

A statistic provider returns one row per decomposition quantity: a
leading row, then per-level rows in an "eq" (equivalent number) block
and a rescaled block for the ``"normed1"`` / ``"normed2"`` options.
The quantity under test is located by counting from the *bottom* of the
matrix, so the provider may emit any number of leading rows.

Provider row contract (1-based, ``nrow`` rows, ``L`` structure columns,
``offset`` = 0 for ``"eq"`` and 2 for the rescaled options):

=====================================  ===============================
Test                                   Row
=====================================  ===============================
no structures                          1
``level == L + 1``                     1
``1 <= level <= L``                    ``nrow - 2 + offset - (level - 1)``
=====================================  ===============================

which gives ``nrow - 2 + offset`` for level 1 and ``nrow - 3 + offset``
for level 2.  Any change to a provider's row layout must be mirrored
here.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from ._typing import StatisticMatrix

OPTION_OFFSETS: dict[str, int] = {"eq": 0, "normed1": 2, "normed2": 2}


@dataclass(frozen=True)
class StatisticRow:
    """Named accessor for the tested row, keyed by ``(level, option)``.

    Attributes:
        level: Hierarchy level under test.
        n_levels: Number of structure columns (0 without structures).
        option: Rescaling option (``"eq"``, ``"normed1"``, ``"normed2"``).
    """

    level: int
    n_levels: int
    option: str

    def __post_init__(self) -> None:
        if self.option not in OPTION_OFFSETS:
            valid = ", ".join(sorted(OPTION_OFFSETS))
            raise ValueError(f"Invalid option '{self.option}'. Choose from: {valid}.")

    @property
    def from_top(self) -> bool:
        """``True`` when the tested quantity is the provider's first row."""
        return self.n_levels == 0 or self.level == self.n_levels + 1

    def index(self, n_rows: int) -> int:
        """Return the 0-based row index in a matrix of *n_rows* rows.

        Raises:
            ValueError: If the provider's matrix is too short for the
                requested level and option.
        """
        if self.from_top:
            idx = 0
        else:
            idx = n_rows - 3 + OPTION_OFFSETS[self.option] - (self.level - 1)
        if not 0 <= idx < n_rows:
            raise ValueError(
                f"statistic returned {n_rows} row(s); row {idx + 1} is needed "
                f"for level={self.level}, option='{self.option}' with "
                f"{self.n_levels} structure column(s)."
            )
        return idx

    def extract(self, matrix: StatisticMatrix) -> float:
        """Return the tested scalar from a provider's output."""
        return self.locate(matrix)[1]

    def locate(self, matrix: StatisticMatrix) -> tuple[int, float]:
        """Return the 0-based row index and the tested scalar.

        A 1-D result is read as one value per row; for a 2-D result the
        first column is used.
        """
        if isinstance(matrix, pd.DataFrame):
            values = matrix.to_numpy(dtype=float)
        else:
            values = np.asarray(matrix, dtype=float)
        if values.ndim == 0 or values.ndim > 2:
            raise ValueError(
                f"statistic must return a 1-D or 2-D matrix, got {values.ndim}-D."
            )
        idx = self.index(values.shape[0])
        return idx, float(values[idx] if values.ndim == 1 else values[idx, 0])
