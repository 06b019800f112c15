import math
import warnings
from collections import defaultdict

import numpy as np
from scipy import sparse

from ..cg.areas import AreaCollection
from ..common import IsolationWarning


def _validate_areas(areas):
    """Accept an AreaCollection, or an ``(n, 2)`` array of planar points."""
    if isinstance(areas, AreaCollection):
        return areas
    return AreaCollection.from_points(areas)


def _snap_vertices(coordinates, epsilon):
    """Assign a canonical label to every vertex such that vertices closer than
    ``epsilon`` (in both x and y) share a label.

    Vertices are bucketed into a hash grid of cell size ``epsilon``; each vertex
    is compared with the canonical vertices in the 3x3 block of cells around
    it, and joins the first one within tolerance. The first occurrence of a
    location in input order becomes its canonical vertex, so labels are
    deterministic.

    Returns
    -------
    numpy.ndarray
        integer label per input vertex, numbered in order of first occurrence
    """
    coordinates = np.asarray(coordinates, dtype=float)
    labels = np.empty(coordinates.shape[0], dtype=np.intp)
    if epsilon == 0:
        _, first, inverse = np.unique(
            coordinates, axis=0, return_index=True, return_inverse=True
        )
        # renumber by order of first occurrence
        order = np.argsort(np.argsort(first, kind="stable"), kind="stable")
        return order[inverse.ravel()]

    grid = defaultdict(list)
    canonical = []
    for ix, (x, y) in enumerate(coordinates):
        cx, cy = math.floor(x / epsilon), math.floor(y / epsilon)
        label = -1
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for candidate in grid.get((cx + dx, cy + dy), ()):
                    px, py = canonical[candidate]
                    if abs(px - x) <= epsilon and abs(py - y) <= epsilon:
                        label = candidate
                        break
                if label >= 0:
                    break
            if label >= 0:
                break
        if label < 0:
            label = len(canonical)
            canonical.append((x, y))
            grid[(cx, cy)].append(label)
        labels[ix] = label
    return labels


def _pairs_to_neighbors(heads, tails, n):
    """Collapse (head, tail) index pairs into sorted, de-duplicated neighbor
    tuples, dropping self-loops."""
    if n == 0:
        return ()
    heads = np.asarray(heads, dtype=np.intp).ravel()
    tails = np.asarray(tails, dtype=np.intp).ravel()
    mask = heads != tails
    heads, tails = heads[mask], tails[mask]
    if heads.shape[0]:
        pairs = np.unique(np.column_stack((heads, tails)), axis=0)
        heads, tails = pairs[:, 0], pairs[:, 1]
    splits = np.searchsorted(heads, np.arange(1, n))
    return tuple(tuple(int(t) for t in chunk) for chunk in np.split(tails, splits))


def _warn_isolates(ids, neighbors, builder, stacklevel=4):
    isolates = [ids[ix] for ix, row in enumerate(neighbors) if len(row) == 0]
    if isolates:
        shown = ", ".join(str(i) for i in isolates[:10])
        if len(isolates) > 10:
            shown += ", ..."
        warnings.warn(
            f"The {builder} neighbor list has {len(isolates)} isolated "
            f"unit(s) without neighbors: {shown}. Inspect them through "
            "NeighborList.isolates.",
            IsolationWarning,
            stacklevel=stacklevel,
        )


def _neighbors_to_sparse(neighbors, n):
    """Binary CSR adjacency of neighbor tuples, rows as heads."""
    cardinalities = np.fromiter((len(row) for row in neighbors), dtype=np.intp, count=n)
    indptr = np.concatenate(([0], np.cumsum(cardinalities)))
    indices = np.fromiter(
        (tail for row in neighbors for tail in row), dtype=np.intp, count=indptr[-1]
    )
    return sparse.csr_array(
        (np.ones(indptr[-1], dtype=np.int8), indices, indptr), shape=(n, n)
    )


def _sparse_to_neighbors(matrix):
    matrix = sparse.csr_array(matrix)
    matrix.eliminate_zeros()
    matrix.sort_indices()
    indptr, indices = matrix.indptr, matrix.indices
    return tuple(
        tuple(int(t) for t in indices[indptr[i] : indptr[i + 1]])
        for i in range(matrix.shape[0])
    )
