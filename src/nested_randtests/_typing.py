"""Shared type aliases for the nested_randtests package."""

from collections.abc import Callable
from typing import Any

import numpy as np
import pandas as pd

# Anything numpy.random.default_rng accepts as a seed.
SeedLike = int | np.random.SeedSequence | None

# Decomposition matrix returned by a statistic provider.
StatisticMatrix = np.ndarray | pd.DataFrame | list[Any]

StatisticCallable = Callable[..., StatisticMatrix]
