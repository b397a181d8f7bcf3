"""Splitting regions into windows."""

import math
import warnings

from ._shared import (
    _interval_frame,
    _numpy,
    _pandas,
)

_DIRECTIONS = ("normal", "reverse")


def _resolve_width(w, region_width):
    """Turn an absolute or relative window width into base pairs."""
    if w >= 1:
        return int(w)
    return max(1, int(math.floor(region_width * w + 0.5)))


def _check_width(w, k):
    if w is None and k is None:
        raise ValueError("You should define either `w` or `k`.")
    if k is not None:
        if int(k) != k or k < 1:
            raise ValueError(f"`k` must be a positive integer, got {k}")
        return None, int(k)
    if not w > 0:
        raise ValueError(f"`w` must be positive, got {w}")
    if w >= 1 and int(w) != w:
        warnings.warn(
            f"`w` ({w}) is not an integer and is truncated to {int(w)}.",
            stacklevel=3,
        )
        w = int(w)
    return w, None


def split_interval(start, end, w=None, k=None, direction="normal", short_keep=False):
    """
    Split one closed interval into ordered sub-intervals.

    Parameters
    ----------
    start, end : int
        Closed, 1-based interval coordinates.
    w : float, optional
        Window width. Values ``>= 1`` are base pairs; values in ``(0, 1)``
        are a fraction of the interval width.
    k : int, optional
        Number of near-equal pieces. Takes precedence over *w*.
    direction : {"normal", "reverse"}
        Tile from the start (``"normal"``) or from the end (``"reverse"``).
    short_keep : bool, default False
        Keep the trailing window that is shorter than *w*.

    Returns
    -------
    tuple of numpy.ndarray
        ``(starts, ends)`` ordered left to right.
    """
    if direction not in _DIRECTIONS:
        raise ValueError(f"Invalid direction '{direction}'. Use 'normal' or 'reverse'.")
    w, k = _check_width(w, k)
    start = int(start)
    end = int(end)
    width = end - start + 1

    if k is not None:
        edges = start + _numpy.rint(_numpy.arange(k + 1) * (width / k)).astype(_numpy.int64)
        # regions narrower than k repeat 1bp pieces instead of inverting them
        return edges[:-1], _numpy.maximum(edges[1:] - 1, edges[:-1])

    size = _resolve_width(w, width)
    if direction == "normal":
        starts = _numpy.arange(start, end + 1, size, dtype=_numpy.int64)
        ends = _numpy.minimum(starts + size - 1, end)
    else:
        ends = _numpy.arange(end, start - 1, -size, dtype=_numpy.int64)[::-1]
        starts = _numpy.maximum(ends - size + 1, start)

    if not short_keep:
        full = (ends - starts + 1) == size
        starts = starts[full]
        ends = ends[full]
    return starts, ends


def make_windows(query, w=None, k=None, direction="normal", short_keep=False):
    """
    Split every region in *query* into windows.

    Illustration for a 10bp region split by 3bp windows::

        ----->----  one region
        aaabbbccc   direction = "normal",  short_keep = False
        aaabbbcccd  direction = "normal",  short_keep = True
         aaabbbccc  direction = "reverse", short_keep = False
        abbbcccddd  direction = "reverse", short_keep = True

    Parameters
    ----------
    query : DataFrame
        Regions with columns ``chrom``, ``start``, ``end`` and optionally
        ``strand``. Coordinates are 1-based and closed.
    w : float, optional
        Window width in base pairs (``>= 1``) or as a fraction of each
        region's width (``0 < w < 1``). Non-integral absolute widths are
        truncated with a warning.
    k : int, optional
        Split each region into exactly *k* contiguous pieces. When set, *w*,
        *direction* and *short_keep* are ignored.
    direction : {"normal", "reverse"}, default "normal"
        Where tiling starts. Windows are always returned left to right.
    short_keep : bool, default False
        Whether to keep the remainder window narrower than *w*.

    Returns
    -------
    DataFrame
        Columns ``chrom``, ``start``, ``end``, ``strand`` (copied from the
        region, geometry ignores it), ``owner`` (0-based position of the
        region in *query*) and ``window`` (0-based left-to-right position
        within the region).

    Raises
    ------
    ValueError
        If neither *w* nor *k* is given, *w* is not positive, *k* is not a
        positive integer, or *direction* is unknown.

    See Also
    --------
    split_interval : The single-interval primitive.
    make_matrix : Windows plus aggregation in one call.

    Examples
    --------
    >>> import pandas as pd
    >>> import pyenrich as pe
    >>> query = pd.DataFrame({"chrom": "chr1", "start": [1, 11], "end": [10, 20]})
    >>> len(pe.make_windows(query, w=2))
    10
    >>> pe.make_windows(query, k=3)["end"].tolist()
    [3, 7, 10, 13, 17, 20]
    """
    if direction not in _DIRECTIONS:
        raise ValueError(f"Invalid direction '{direction}'. Use 'normal' or 'reverse'.")
    w, k = _check_width(w, k)
    query = _interval_frame(query, "query")

    all_starts = []
    all_ends = []
    owners = []
    for i, (s, e) in enumerate(zip(query['start'].tolist(), query['end'].tolist(), strict=True)):
        starts, ends = split_interval(s, e, w=w, k=k, direction=direction, short_keep=short_keep)
        all_starts.append(starts)
        all_ends.append(ends)
        owners.append(_numpy.full(len(starts), i, dtype=_numpy.int64))

    if owners:
        owner = _numpy.concatenate(owners)
        starts = _numpy.concatenate(all_starts)
        ends = _numpy.concatenate(all_ends)
        window = _numpy.concatenate([_numpy.arange(len(o), dtype=_numpy.int64) for o in owners])
    else:
        owner = starts = ends = window = _numpy.zeros(0, dtype=_numpy.int64)

    return _pandas.DataFrame({
        'chrom': query['chrom'].to_numpy()[owner],
        'start': starts,
        'end': ends,
        'strand': query['strand'].to_numpy()[owner],
        'owner': owner,
        'window': window,
    })
