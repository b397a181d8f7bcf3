"""Normalizing signal around target regions into a matrix."""

import logging as _logging
import warnings

from ._shared import (
    CONFIG,
    _as_pair,
    _interval_frame,
    _numpy,
    _pandas,
    _widths,
)
from .aggregate import MeanMode
from .matrix import NormalizedMatrix, concat_segments, make_matrix
from .postprocess import default_smooth_fn, postprocess

_logger = _logging.getLogger(__name__)


def flank_intervals(target, upstream, downstream):
    """
    Strand-aware flanks around the 5' end of each region.

    For ``+`` (and unstranded) regions the result spans
    ``[start - upstream, start + downstream - 1]``; for ``-`` regions it is
    mirrored around ``end``: ``[end - downstream + 1, end + upstream]``.

    Parameters
    ----------
    target : DataFrame
        Regions with ``chrom``, ``start``, ``end`` and optionally ``strand``.
    upstream, downstream : int
        Number of bases before and after the 5' end (``upstream + downstream``
        must be positive).

    Returns
    -------
    DataFrame
        ``chrom``, ``start``, ``end``, ``strand`` (and ``name`` if present),
        one row per region in the same order.

    Examples
    --------
    >>> import pandas as pd
    >>> import pyenrich as pe
    >>> t = pd.DataFrame({"chrom": "chr1", "start": [100, 100], "end": [200, 200], "strand": ["+", "-"]})
    >>> pe.flank_intervals(t, 10, 0)[["start", "end"]].values.tolist()
    [[90, 99], [201, 210]]
    """
    target = _interval_frame(target, "target")
    upstream = int(upstream)
    downstream = int(downstream)
    if upstream < 0 or downstream < 0 or upstream + downstream <= 0:
        raise ValueError("upstream and downstream must be non-negative with a positive sum")

    starts = target['start'].to_numpy()
    ends = target['end'].to_numpy()
    minus = target['strand'].to_numpy() == -1

    new_starts = _numpy.where(minus, ends - downstream + 1, starts - upstream)
    new_ends = _numpy.where(minus, ends + upstream, starts + downstream - 1)

    result = _pandas.DataFrame({
        'chrom': target['chrom'].to_numpy(),
        'start': new_starts,
        'end': new_ends,
        'strand': target['strand'].to_numpy(),
    })
    if 'name' in target.columns:
        result['name'] = target['name'].to_numpy()
    return result


def _end_points(target):
    """One-base anchors just past the 3' end of each region."""
    minus = target['strand'].to_numpy() == -1
    pos = _numpy.where(minus, target['start'].to_numpy() - 1, target['end'].to_numpy() + 1)
    result = target.copy()
    result['start'] = pos
    result['end'] = pos
    return result


def _resolve_extend(extend, target_ratio):
    extend = _as_pair(extend, "extend")
    if extend[0] < 0 or extend[1] < 0:
        raise ValueError(f"extend must be non-negative, got {extend}")

    if target_ratio is None:
        target_ratio = 1.0 if extend == (0.0, 0.0) else 0.1
    target_ratio = float(target_ratio)

    if abs(target_ratio - 1) < CONFIG['ratio_tol'] or abs(target_ratio) >= 1:
        if extend != (0.0, 0.0):
            warnings.warn("Reset `extend` to 0 when `target_ratio` is larger than or equal to 1.", stacklevel=3)
        extend = (0.0, 0.0)
    elif extend == (0.0, 0.0):
        warnings.warn("Reset `target_ratio` to 1 when `extend` is 0.", stacklevel=3)
        target_ratio = 1.0
    if abs(target_ratio) > 1:
        target_ratio = 1.0
    return extend, target_ratio


def _round_extend(extend, w):
    """Round each extension down to a multiple of an absolute window width."""
    if w is None or w < 1:
        return extend
    w = int(w)
    rounded = []
    for side, e in zip(("upstream", "downstream"), extend, strict=True):
        if e > 0 and e % w > 0:
            warnings.warn(f"Length of {side} extension is not completely divisible by `w`.", stacklevel=3)
            e = e - e % w
        rounded.append(int(e))
    return tuple(rounded)


def _check_mapping(mapping_column, signal, target_names):
    if mapping_column is None:
        return
    if mapping_column not in signal.columns:
        raise ValueError(f"mapping_column '{mapping_column}' not found in signal")
    if not _pandas.api.types.is_numeric_dtype(signal[mapping_column]) and target_names is None:
        raise ValueError(
            f"mapping_column '{mapping_column}' maps signals to target names, "
            "so `target` should have a 'name' column."
        )


def _col_names(n_up, n_target, n_down):
    return ([f"u{i + 1}" for i in range(n_up)]
            + [f"t{i + 1}" for i in range(n_target)]
            + [f"d{i + 1}" for i in range(n_down)])


def normalize_to_matrix(signal, target, extend=5000, w=None, value_column=None,
                        mapping_column=None, empty_value=None, mean_mode="absolute",
                        include_target=None, target_ratio=None, k=None, smooth=False,
                        smooth_fn=default_smooth_fn, trim=0, signal_name=None,
                        target_name=None):
    """
    Normalize associations between signal regions and targets into a matrix.

    Upstream flank, target body and downstream flank of every target are
    split into windows and the overlapping signal is summarized in each
    window. The result has one row per target and its columns run 5' to 3'
    regardless of strand.

    Parameters
    ----------
    signal : DataFrame
        Signal regions (``chrom``, ``start``, ``end``, 1-based closed) with
        optional value and mapping columns.
    target : DataFrame
        Target regions with ``chrom``, ``start``, ``end``, optional
        ``strand`` and optional ``name`` (used for textual mapping and row
        labels).
    extend : float or pair of float, default 5000
        Bases to extend upstream and downstream.
    w : float, optional
        Window width for the flanks. Defaults to ``max(extend) / 50``.
    value_column : str, optional
        Column of *signal* holding values; ``None`` means constant 1.
    mapping_column : str, optional
        Restrict overlaps to signals whose label in this column matches the
        target (0-based position for numeric labels, ``name`` otherwise).
    empty_value : float, optional
        Fill for windows without signal. Defaults to NaN when *smooth* is set
        and 0 otherwise.
    mean_mode : {"absolute", "weighted", "w0", "coverage"}, default "absolute"
        Averaging policy, see :class:`MeanMode`.
    include_target : bool, optional
        Include the target body. Defaults to whether any target is wider
        than one base; forced to ``False`` for single-base targets.
    target_ratio : float, optional
        Share of the columns given to the target body. Defaults to 1 when
        *extend* is 0 and 0.1 otherwise. A ratio of 1 resets *extend* to 0.
    k : int, optional
        Number of target windows when *extend* is 0. Defaults to
        ``min(20, min(width))``.
    smooth : bool, default False
        Smooth every row with *smooth_fn*.
    smooth_fn : callable, default :func:`default_smooth_fn`
        Row smoother returning a same-length array or ``None`` on failure.
    trim : float or pair of float, default 0
        Fraction of extreme values to clip at each end.
    signal_name, target_name : str, optional
        Labels used when printing the result.

    Returns
    -------
    NormalizedMatrix

    Raises
    ------
    ValueError
        If *extend* is negative, *w*/*k* cannot be resolved, *mean_mode* is
        unknown, or a textual *mapping_column* is used on unnamed targets.

    See Also
    --------
    make_windows : Window splitting.
    aggregate_windows : Per-window summaries.
    signals_from_list : Combine matrices across samples.

    Examples
    --------
    >>> import pandas as pd
    >>> import pyenrich as pe
    >>> signal = pd.DataFrame({
    ...     "chrom": "chr1",
    ...     "start": [1, 4, 7, 11, 14, 17, 21, 24, 27],
    ...     "end": [2, 5, 8, 12, 15, 18, 22, 25, 28],
    ...     "score": [1, 2, 3, 1, 2, 3, 1, 2, 3],
    ... })
    >>> target = pd.DataFrame({"chrom": "chr1", "start": [10], "end": [20]})
    >>> mat = pe.normalize_to_matrix(signal, target, extend=10, w=2, value_column="score")
    >>> mat.shape
    (1, 11)
    """
    mode = MeanMode.parse(mean_mode)
    target = _interval_frame(target, "target")
    signal = _interval_frame(signal, "signal")
    if len(target) == 0:
        raise ValueError("target cannot be empty")

    widths = _widths(target)
    target_names = target['name'].astype(str).tolist() if 'name' in target.columns else None
    row_names = target_names if target_names is not None else target.index.astype(str).tolist()
    _check_mapping(mapping_column, signal, target_names)

    if empty_value is None:
        empty_value = _numpy.nan if smooth else 0.0
    if include_target is None:
        include_target = bool((widths > 1).any())
    if k is None:
        k = int(min(CONFIG['max_k'], widths.min()))

    extend, target_ratio = _resolve_extend(extend, target_ratio)

    target_is_single_point = bool((widths <= 1).all())
    if target_is_single_point:
        if include_target:
            warnings.warn("Width of `target` are all 1, `include_target` is set to `False`.", stacklevel=2)
        include_target = False

    if w is None and max(extend) > 0:
        w = max(extend) / CONFIG['default_windows']
    extend = _round_extend(extend, w)
    up, down = extend

    segment = dict(
        value_column=value_column,
        mapping_column=mapping_column,
        empty_value=empty_value,
        mean_mode=mode,
        target_names=target_names,
    )
    n = len(target)
    empty_block = _numpy.zeros((n, 0))

    if target_is_single_point:
        if up + down > 0:
            both = flank_intervals(target, up, down)
            mat_both = make_matrix(signal, both, w=w, **segment)
            split = int(round(up / (up + down) * mat_both.shape[1]))
            mat_up = mat_both[:, :split]
            mat_down = mat_both[:, split:]
        else:
            mat_up = mat_down = empty_block
    else:
        if up > 0:
            mat_up = make_matrix(signal, flank_intervals(target, up, 0), w=w, **segment)
        else:
            mat_up = empty_block
        if down > 0:
            mat_down = make_matrix(signal, flank_intervals(_end_points(target), 0, down), w=w, **segment)
        else:
            mat_down = empty_block

    if include_target:
        if up > 0 or down > 0:
            k = int(round((mat_up.shape[1] + mat_down.shape[1]) * target_ratio / (1 - target_ratio)))
            k = max(k, 1)
        elif k < 1:
            raise ValueError(f"`k` must be a positive integer, got {k}")
        mat_target = make_matrix(signal, target, k=k, **segment)
    else:
        mat_target = empty_block

    _logger.debug(
        "upstream %d, target %d, downstream %d columns for %d targets",
        mat_up.shape[1], mat_target.shape[1], mat_down.shape[1], n,
    )
    values, up_index, target_index, down_index = concat_segments(mat_up, mat_target, mat_down)
    values, failed_rows = postprocess(values, smooth=smooth, smooth_fn=smooth_fn, trim=trim)

    return NormalizedMatrix(
        values=values,
        upstream_index=up_index,
        target_index=target_index,
        downstream_index=down_index,
        extend=extend,
        smooth=bool(smooth),
        target_is_single_point=target_is_single_point,
        empty_value=empty_value,
        failed_rows=failed_rows,
        signal_name=signal_name or "signal",
        target_name=target_name or "target",
        row_names=row_names,
        col_names=_col_names(len(up_index), len(target_index), len(down_index)),
    )
