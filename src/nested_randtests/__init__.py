"""nested_randtests — Permutation tests for nested diversity decompositions.

Assesses at which level of a nested spatial or taxonomic hierarchy
(site within region within basin, …) the grouping of sites
significantly constrains intra-group equivalent diversity, using
constrained Monte-Carlo permutations of the abundance table or of the
structure table.  The diversity decomposition itself is supplied by
the caller as a statistic provider.

Public API:
    .. autosummary::
        randtest_eqrs_intra
        RandTestResult
        print_randtest_table
        prepare_inputs
        check_nested
        select_scheme
        StatisticRow
        NullDistributionBuilder
        monte_carlo_p_value
        get_n_jobs
        set_n_jobs
"""

from ._config import get_n_jobs, set_n_jobs
from ._results import RandTestResult
from ._schemes import PermutationScheme, select_scheme
from .core import randtest_eqrs_intra
from .display import print_randtest_table
from .engine import NullDistribution, NullDistributionBuilder
from .exceptions import (
    InconsistentHierarchyError,
    InvalidLevelError,
    InvalidStructureTypeError,
    NestedRandtestError,
    RowAlignmentWarning,
    RowCountMismatchError,
)
from .pvalues import clopper_pearson_interval, monte_carlo_p_value
from .rows import StatisticRow
from .structures import PreparedInputs, check_nested, prepare_inputs

__all__ = [
    "randtest_eqrs_intra",
    "RandTestResult",
    "print_randtest_table",
    "PreparedInputs",
    "prepare_inputs",
    "check_nested",
    "PermutationScheme",
    "select_scheme",
    "StatisticRow",
    "NullDistribution",
    "NullDistributionBuilder",
    "clopper_pearson_interval",
    "monte_carlo_p_value",
    "get_n_jobs",
    "set_n_jobs",
    "InconsistentHierarchyError",
    "InvalidLevelError",
    "InvalidStructureTypeError",
    "NestedRandtestError",
    "RowAlignmentWarning",
    "RowCountMismatchError",
]

__version__ = "0.1.0"
