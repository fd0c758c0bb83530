"""Constrained shuffling primitives for nested site hierarchies.

Each function draws **one** realisation of a null hypothesis from an
explicitly supplied :class:`numpy.random.Generator`.  None of them
touches its inputs: every call returns a freshly allocated array or
mapping, so consecutive trials never alias one another.

Four primitives cover the five permutation schemes in
:mod:`nested_randtests._schemes`:

1. **Independent column shuffle** — every species column is permuted
   across sites on its own.  Destroys both the spatial structure and
   the covariance among species; the null of "no structure at all".

2. **Within-group row order** — site indices are shuffled *only*
   among sites sharing a group label, and the resulting order is
   applied to every species column jointly.  A site's multivariate
   abundance profile is moved intact; only its position inside its
   group changes.  Singleton groups are pinned.

3. **Global row order** — one uniform permutation of all sites.  Used
   to reassign a whole structure column while the abundance table
   stays put.

4. **Label permutation within partitions** — the restricted
   permutation behind the label-swap schemes.  Given an explicit
   child → label mapping and an optional child → partition mapping,
   shuffle the labels among children that share a partition.  Holding
   the partition fixed keeps every coarser level of the hierarchy
   untouched while the level under test is relabelled.

Group sizes are preserved by construction in every primitive: a
permutation only reorders the multiset of values it acts on.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping, Sequence

import numpy as np

# ------------------------------------------------------------------ #
# Independent column shuffle
# ------------------------------------------------------------------ #


def permute_columns_independently(
    values: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """Shuffle each column of *values* across rows, independently.

    Args:
        values: Array of shape ``(n_sites, n_species)``.
        rng: Random source owned by the caller.

    Returns:
        A new array of the same shape.  Column ``j`` holds the same
        multiset of values as ``values[:, j]`` in a random order.
    """
    values = np.asarray(values)
    # Generator.permuted with an axis shuffles every 1-D slice along
    # that axis independently and returns a copy.
    return rng.permuted(values, axis=0)


# ------------------------------------------------------------------ #
# Within-group row order
# ------------------------------------------------------------------ #


def group_indices(groups: Sequence[Hashable] | np.ndarray) -> list[np.ndarray]:
    """Return the sorted row indices of every group, in label order.

    Args:
        groups: Group label per row.

    Returns:
        One integer array per distinct label.
    """
    uniques, codes = np.unique(np.asarray(groups), return_inverse=True)
    codes = codes.ravel()
    return [np.flatnonzero(codes == c) for c in range(len(uniques))]


def within_group_order(
    n_sites: int,
    cell_indices: list[np.ndarray],
    rng: np.random.Generator,
) -> np.ndarray:
    """Draw a row order that only exchanges sites within a group.

    Args:
        n_sites: Total number of sites.
        cell_indices: Output of :func:`group_indices`.
        rng: Random source owned by the caller.

    Returns:
        Integer array ``order`` of shape ``(n_sites,)`` such that
        ``values[order]`` relocates each site inside its own group.
    """
    order = np.arange(n_sites, dtype=np.intp)
    for cidx in cell_indices:
        # Singletons contribute 1! = 1 arrangement: nothing to draw.
        if len(cidx) > 1:
            order[cidx] = rng.permutation(cidx)
    return order


def permute_rows_within_groups(
    values: np.ndarray,
    cell_indices: list[np.ndarray],
    rng: np.random.Generator,
) -> np.ndarray:
    """Relocate whole rows of *values* within their groups.

    Args:
        values: Array of shape ``(n_sites, n_species)``.
        cell_indices: Output of :func:`group_indices`.
        rng: Random source owned by the caller.

    Returns:
        A new array; every row is a row of *values*, moved (if at all)
        to another position of the same group.
    """
    values = np.asarray(values)
    order = within_group_order(values.shape[0], cell_indices, rng)
    return values[order]


# ------------------------------------------------------------------ #
# Global row order
# ------------------------------------------------------------------ #


def global_order(n_sites: int, rng: np.random.Generator) -> np.ndarray:
    """Draw one uniform permutation of ``range(n_sites)``."""
    return rng.permutation(n_sites)


# ------------------------------------------------------------------ #
# Label permutation within partitions
# ------------------------------------------------------------------ #
#
# The label-swap schemes work one level above the sites.  Each child
# group (a site, or a group of the level below the one under test)
# carries exactly one label of the level under test and, unless the
# tested level is the top, exactly one label of the level above it.
# Both relations are explicit mappings:
#
#   labels:     child → label under test
#   partitions: child → parent label
#
# Children are bucketed by parent; within a bucket the labels are
# shuffled among the children.  The parent of every label is therefore
# unchanged and the number of children per label is preserved, so the
# permuted hierarchy is still strictly nested.


def permute_labels_within_partitions(
    labels: Mapping[Hashable, str],
    partitions: Mapping[Hashable, str] | None,
    rng: np.random.Generator,
) -> dict[Hashable, str]:
    """Shuffle *labels* among children that share a partition.

    Args:
        labels: Child → label mapping for the level under test.
        partitions: Child → parent mapping that constrains the
            shuffle, or ``None`` for a single unrestricted partition.
        rng: Random source owned by the caller.

    Returns:
        A new child → label mapping with the same keys as *labels*.

    Raises:
        KeyError: If a child of *labels* has no entry in *partitions*.
    """
    blocks: dict[Hashable, list[Hashable]] = {}
    for child in labels:
        key = None if partitions is None else partitions[child]
        blocks.setdefault(key, []).append(child)

    permuted: dict[Hashable, str] = {}
    for members in blocks.values():
        pool = [labels[child] for child in members]
        for child, j in zip(members, rng.permutation(len(members)), strict=True):
            permuted[child] = pool[j]
    return permuted


def broadcast_labels(
    children: Sequence[Hashable] | np.ndarray,
    mapping: Mapping[Hashable, str],
) -> np.ndarray:
    """Map every row's child key through *mapping*.

    Args:
        children: Child key per row.
        mapping: Child → label mapping (e.g. from
            :func:`permute_labels_within_partitions`).

    Returns:
        Object array of labels, one per row.
    """
    return np.array([mapping[child] for child in children], dtype=object)
