"""
Interval overlap join.

Both sides are closed, 1-based intervals; strand is ignored. For every
chromosome the subjects are sorted by start, and each query is bounded with
``searchsorted`` to the subjects starting at or before its end. Candidates
that end before the query starts are filtered out using the maximal subject
width on that chromosome as a look-back bound, so the join costs
O((n + m) log m) plus the size of the candidate set.
"""

from ._shared import _numpy


def find_overlaps(query, subject):
    """
    Return all overlapping (query, subject) pairs.

    Parameters
    ----------
    query, subject : DataFrame
        Intervals with ``chrom``, ``start``, ``end`` columns.

    Returns
    -------
    tuple of numpy.ndarray
        ``(query_idx, subject_idx)`` positional indices, sorted by subject
        then query.
    """
    q_chrom = query['chrom'].astype(str).to_numpy()
    q_start = query['start'].to_numpy(dtype=_numpy.int64)
    q_end = query['end'].to_numpy(dtype=_numpy.int64)
    s_chrom = subject['chrom'].astype(str).to_numpy()
    s_start = subject['start'].to_numpy(dtype=_numpy.int64)
    s_end = subject['end'].to_numpy(dtype=_numpy.int64)

    q_hits = []
    s_hits = []
    for chrom in _numpy.intersect1d(_numpy.unique(q_chrom), _numpy.unique(s_chrom)):
        qi = _numpy.flatnonzero(q_chrom == chrom)
        si = _numpy.flatnonzero(s_chrom == chrom)

        order = _numpy.argsort(s_start[si], kind="stable")
        si = si[order]
        starts = s_start[si]
        max_width = int((s_end[si] - starts).max())

        # subjects in [lo, hi) start within max_width before the query start
        # and no later than the query end
        lo = _numpy.searchsorted(starts, q_start[qi] - max_width, side="left")
        hi = _numpy.searchsorted(starts, q_end[qi], side="right")
        counts = hi - lo
        if counts.sum() == 0:
            continue

        cand_q = _numpy.repeat(qi, counts)
        offsets = _numpy.arange(counts.sum()) - _numpy.repeat(_numpy.cumsum(counts) - counts, counts)
        cand_s = si[_numpy.repeat(lo, counts) + offsets]

        keep = s_end[cand_s] >= q_start[cand_q]
        q_hits.append(cand_q[keep])
        s_hits.append(cand_s[keep])

    if not q_hits:
        empty = _numpy.zeros(0, dtype=_numpy.int64)
        return empty, empty.copy()

    q_idx = _numpy.concatenate(q_hits)
    s_idx = _numpy.concatenate(s_hits)
    order = _numpy.lexsort((q_idx, s_idx))
    return q_idx[order], s_idx[order]


def intersection_width(q_start, q_end, s_start, s_end):
    """Width of the closed intersection of paired intervals (0 if disjoint)."""
    width = _numpy.minimum(q_end, s_end) - _numpy.maximum(q_start, s_start) + 1
    return _numpy.maximum(width, 0)
