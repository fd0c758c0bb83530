"""Conversion of caller tables to pandas at the API boundary.

Everything downstream works on pandas: site labels live on the index,
which is how the table and the structure table are checked for
alignment.  Polars frames (eager or lazy) are accepted when Polars is
installed and converted here; an abundance table may also come in as a
bare 2-D NumPy array.

Polars stays optional.  Without it, only pandas (and arrays, where
allowed) get through.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _ensure_pandas_df(
    obj: DataFrameLike | np.ndarray,
    *,
    name: str = "input",
    allow_array: bool = False,
) -> pd.DataFrame:
    """Return *obj* as a pandas DataFrame.

    pandas frames pass through unchanged (no copy).  Polars frames are
    converted with ``to_pandas()``, lazy ones after ``collect()``.

    Args:
        obj: Table supplied by the caller.
        name: Argument name quoted in the error message.
        allow_array: Also accept a 2-D NumPy array, wrapped with
            default labels.

    Raises:
        TypeError: For any other input.
    """
    if isinstance(obj, pd.DataFrame):
        return obj

    if _HAS_POLARS and isinstance(obj, (pl.DataFrame, pl.LazyFrame)):
        eager = obj.collect() if isinstance(obj, pl.LazyFrame) else obj
        return eager.to_pandas()

    if allow_array and isinstance(obj, np.ndarray) and obj.ndim == 2:
        return pd.DataFrame(obj)

    accepted = ["a pandas DataFrame"]
    if _HAS_POLARS:
        accepted.append("a Polars DataFrame/LazyFrame")
    if allow_array:
        accepted.append("a 2-D NumPy array")
    raise TypeError(
        f"'{name}' must be {' or '.join(accepted)}, got {type(obj).__name__}."
    )
