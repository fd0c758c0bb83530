"""Worker configuration for the nested_randtests package.

Controls how many joblib workers the null-distribution builder uses
when a caller does not pass ``n_jobs`` explicitly.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_n_jobs`.
    2. The ``NESTED_RANDTESTS_N_JOBS`` environment variable.
    3. ``1`` (sequential).

Results never depend on the worker count: random streams are attached
to fixed-size trial blocks, not to workers (see :mod:`.engine`).

Examples:
    Use every core from the shell::

        export NESTED_RANDTESTS_N_JOBS=-1

    Programmatically::

        import nested_randtests
        nested_randtests.set_n_jobs(4)

    Restore the default resolution order::

        nested_randtests.set_n_jobs("auto")
"""

from __future__ import annotations

import os

_ENV_VAR = "NESTED_RANDTESTS_N_JOBS"

# Sentinel indicating "no programmatic override has been set".
_n_jobs_override: int | None = None


def _parse_n_jobs(value: int | str) -> int:
    """Validate *value* as a joblib worker count."""
    try:
        n_jobs = int(value)
    except (TypeError, ValueError):
        raise ValueError(
            f"n_jobs must be a non-zero integer or 'auto', got {value!r}."
        ) from None
    if n_jobs == 0:
        raise ValueError("n_jobs must be a non-zero integer (-1 for all cores).")
    return n_jobs


def get_n_jobs() -> int:
    """Return the active default worker count.

    Resolution order:
        1. Value set by :func:`set_n_jobs`.
        2. ``NESTED_RANDTESTS_N_JOBS`` environment variable.
        3. ``1``.

    Returns:
        A non-zero integer; ``-1`` means all cores.
    """
    # 1. Programmatic override
    if _n_jobs_override is not None:
        return _n_jobs_override

    # 2. Environment variable
    env = os.environ.get(_ENV_VAR, "").strip()
    if env:
        return _parse_n_jobs(env)

    # 3. Sequential default
    return 1


def set_n_jobs(value: int | str) -> None:
    """Override the default worker count.

    Args:
        value: A non-zero integer, or ``"auto"`` (case-insensitive) to
            restore the default resolution order.

    Raises:
        ValueError: If *value* is neither ``"auto"`` nor a non-zero
            integer.
    """
    global _n_jobs_override
    if isinstance(value, str) and value.strip().lower() == "auto":
        _n_jobs_override = None
        return
    _n_jobs_override = _parse_n_jobs(value)
