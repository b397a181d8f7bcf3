"""
Shared globals and utilities for PyEnrich modules.

Thread-safety note:
`CONFIG` is process-global and not synchronized for concurrent mutation.
Change it from a single controlling thread.
"""

import numpy as _numpy
import pandas as _pandas

# Configuration dictionary
CONFIG = {
    'ratio_tol': 1e-6,              # |target_ratio - 1| below this counts as 1
    'default_windows': 50,          # w = max(extend) / default_windows
    'max_k': 20,                    # Upper bound for the default target k
    'lowess_frac': 0.3,             # Fraction of points per local fit
    'gaussian_sigma': 1.0,          # Fallback smoother kernel width (columns)
    'smooth_warn': True,            # Warn when rows fail to smooth
}

_STRAND_CODES = {
    '+': 1, '-': -1, '*': 0, '.': 0,
    1: 1, -1: -1, 0: 0,
}

_BASIC_COLS = ('chrom', 'start', 'end')


def _normalize_strand(strand):
    """Map a strand Series (``+``/``-``/``*``/``.`` or 1/-1/0) to int codes."""
    codes = strand.map(_STRAND_CODES)
    bad = codes.isna().to_numpy()
    if bad.any():
        s = strand.iloc[int(_numpy.flatnonzero(bad)[0])]
        raise ValueError(f"Invalid strand value {s!r}: must be '+', '-', '*', 1, -1 or 0")
    return codes.to_numpy(dtype=_numpy.int8)


def _interval_frame(intervals, what="intervals"):
    """
    Validate an intervals DataFrame and return a normalized copy.

    The copy has integer ``start``/``end``, a string ``chrom`` and an
    ``int8`` ``strand`` column (0 when the input has none). Extra columns
    are preserved.
    """
    if intervals is None:
        raise ValueError(f"{what} cannot be None")
    if not isinstance(intervals, _pandas.DataFrame):
        raise TypeError(f"{what} must be a pandas DataFrame, got {type(intervals).__name__}")

    missing = [c for c in _BASIC_COLS if c not in intervals.columns]
    if missing:
        raise ValueError(f"{what} is missing required columns: {', '.join(missing)}")

    df = intervals.copy()
    df['chrom'] = df['chrom'].astype(str)
    df['start'] = df['start'].to_numpy(dtype=_numpy.int64)
    df['end'] = df['end'].to_numpy(dtype=_numpy.int64)

    bad = df['end'].to_numpy() < df['start'].to_numpy()
    if bad.any():
        i = int(_numpy.flatnonzero(bad)[0])
        raise ValueError(
            f"Invalid interval in {what} ({df['chrom'].iloc[i]}, {df['start'].iloc[i]}, "
            f"{df['end'].iloc[i]}): end must be >= start"
        )

    if 'strand' in df.columns:
        df['strand'] = _normalize_strand(df['strand'])
    else:
        df['strand'] = _numpy.zeros(len(df), dtype=_numpy.int8)
    return df


def _widths(intervals):
    """Closed-interval widths (end - start + 1)."""
    return intervals['end'].to_numpy(dtype=_numpy.int64) - intervals['start'].to_numpy(dtype=_numpy.int64) + 1


def _as_pair(value, name):
    """Broadcast a scalar or length-1/2 sequence to a 2-tuple of floats."""
    if _numpy.isscalar(value):
        return float(value), float(value)
    values = list(value)
    if len(values) == 1:
        return float(values[0]), float(values[0])
    if len(values) != 2:
        raise ValueError(f"{name} must be a scalar or a sequence of length 2")
    return float(values[0]), float(values[1])
