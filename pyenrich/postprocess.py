"""Row smoothing, outlier trimming and clamping of assembled matrices."""

import logging as _logging
import warnings

from scipy.ndimage import gaussian_filter1d
from statsmodels.nonparametric.smoothers_lowess import lowess

from ._shared import CONFIG, _as_pair, _numpy

_logger = _logging.getLogger(__name__)


class SmoothingError(RuntimeError):
    """Raised by a smoothing function that cannot smooth a row."""


def _lowess_row(x, finite):
    pos = _numpy.arange(len(x), dtype=float)
    fitted = lowess(x[finite], pos[finite], frac=CONFIG['lowess_frac'], it=0, return_sorted=True)
    if fitted.size == 0 or not _numpy.all(_numpy.isfinite(fitted[:, 1])):
        return None
    return _numpy.interp(pos, fitted[:, 0], fitted[:, 1])


def _gaussian_row(x, finite):
    pos = _numpy.arange(len(x), dtype=float)
    filled = _numpy.interp(pos, pos[finite], x[finite])
    out = gaussian_filter1d(filled, sigma=CONFIG['gaussian_sigma'], mode="nearest")
    if not _numpy.all(_numpy.isfinite(out)):
        return None
    return out


def default_smooth_fn(x):
    """
    Default row smoother.

    A LOWESS fit over the non-missing positions is tried first and
    evaluated at every position. If it fails, a Gaussian kernel is applied
    to the row with missing positions linearly interpolated.

    Parameters
    ----------
    x : numpy.ndarray
        One matrix row, possibly containing NaN.

    Returns
    -------
    numpy.ndarray or None
        The smoothed row, or ``None`` when fewer than two values are
        present or both smoothers fail.
    """
    x = _numpy.asarray(x, dtype=float)
    finite = _numpy.isfinite(x)
    if finite.sum() < 2:
        return None
    try:
        out = _lowess_row(x, finite)
    except (ValueError, ZeroDivisionError, _numpy.linalg.LinAlgError) as exc:
        _logger.debug("lowess failed (%s), falling back to gaussian smoothing", exc)
        out = None
    if out is None:
        out = _gaussian_row(x, finite)
    return out


def _smooth_rows(values, smooth_fn):
    failed = []
    out = values.copy()
    for i in range(values.shape[0]):
        row = values[i].copy()
        try:
            res = smooth_fn(row)
        except Exception as exc:
            _logger.debug("row %d failed smoothing: %r", i, exc)
            res = None
        if res is None:
            failed.append(i)
            continue
        res = _numpy.asarray(res, dtype=float).ravel()
        if res.shape[0] != values.shape[1]:
            _logger.debug("row %d: smoother returned %d values for %d columns", i, res.shape[0], values.shape[1])
            failed.append(i)
            continue
        out[i] = res
    return out, failed


def _check_trim(trim):
    low, high = _as_pair(trim, "trim")
    for t in (low, high):
        if not 0 <= t < 1:
            raise ValueError(f"trim must be within [0, 1), got {t}")
    if low + high >= 1:
        raise ValueError("The two trim fractions must sum to less than 1")
    return low, high


def postprocess(values, smooth=False, smooth_fn=None, trim=0):
    """
    Smooth rows, trim extreme values and clamp to the original range.

    Parameters
    ----------
    values : array-like
        2-D matrix, possibly containing NaN.
    smooth : bool, default False
        Apply *smooth_fn* to every row.
    smooth_fn : callable, optional
        Takes a row and returns a same-length array, or ``None`` (or raises,
        conventionally :class:`SmoothingError`) when the row cannot be
        smoothed. Failed rows keep their original values. Defaults to
        :func:`default_smooth_fn`.
    trim : float or pair of float, default 0
        Lower and upper fraction of values to clip. ``(0.01, 0.01)`` clips
        values below the 1st and above the 99th percentile.

    Returns
    -------
    tuple
        ``(values, failed_rows)``: the processed float matrix (same shape as
        the input) and the 0-based indices of rows that failed smoothing.

    Raises
    ------
    ValueError
        If *trim* is outside ``[0, 1)``.
    """
    low, high = _check_trim(trim)
    values = _numpy.array(values, dtype=float)
    if values.ndim != 2:
        raise ValueError(f"values must be a 2-D array, got {values.ndim} dimension(s)")

    finite = _numpy.isfinite(values)
    has_data = bool(finite.any())
    if has_data:
        min_v = values[finite].min()
        max_v = values[finite].max()

    failed = []
    if smooth:
        values, failed = _smooth_rows(values, smooth_fn or default_smooth_fn)
        if failed:
            if len(failed) == 1:
                msg = ("Smoothing failed for one row because very few signals overlap it. "
                       "Check `failed_rows` for its index and consider removing it.")
            else:
                msg = (f"Smoothing failed for {len(failed)} rows because very few signals overlap them. "
                       "Check `failed_rows` for their indices and consider removing them.")
            _logger.info(msg)
            if CONFIG['smooth_warn']:
                warnings.warn(msg, stacklevel=3)

    if has_data and _numpy.isfinite(values).any():
        q1, q2 = _numpy.nanquantile(values, [low, 1 - high])
        values = _numpy.clip(values, q1, q2)
        values = _numpy.clip(values, min_v, max_v)

    return values, failed
