"""Summarizing signal values into windows."""

import enum
import logging as _logging

from ._overlaps import find_overlaps, intersection_width
from ._shared import (
    _interval_frame,
    _numpy,
    _pandas,
)

_logger = _logging.getLogger(__name__)


class MeanMode(enum.Enum):
    """
    How signal values are averaged inside a window.

    With a 17bp window of which 4bp are not covered by any signal::

          40      50     20     values in signal
        ++++++   +++    +++++   signal
               30               values in signal
             ++++++             signal
          =================     window (17bp)
            4  6  3      3      overlap

        ABSOLUTE: (40 + 30 + 50 + 20)/4
        WEIGHTED: (40*4 + 30*6 + 50*3 + 20*3)/(4 + 6 + 3 + 3)
        W0:       (40*4 + 30*6 + 50*3 + 20*3)/(4 + 6 + 3 + 3 + 4)
        COVERAGE: (40*4 + 30*6 + 50*3 + 20*3)/17

    ``ABSOLUTE`` suits site-level measurements such as CpG methylation,
    ``W0`` suits per-base quantities such as read coverage where uncovered
    bases count as zero, and ``COVERAGE`` suits counting features (e.g.
    transcripts) that cover a position.
    """

    ABSOLUTE = "absolute"
    WEIGHTED = "weighted"
    W0 = "w0"
    COVERAGE = "coverage"

    @classmethod
    def parse(cls, mode):
        if isinstance(mode, cls):
            return mode
        try:
            return cls(str(mode).lower())
        except ValueError:
            choices = ", ".join(f"'{m.value}'" for m in cls)
            raise ValueError(f"Invalid mean_mode '{mode}'. Use one of {choices}.") from None


def _signal_values(signal, value_column):
    if value_column is None:
        return _numpy.ones(len(signal), dtype=float)
    if value_column not in signal.columns:
        raise ValueError(f"value_column '{value_column}' not found in signal")
    return _pandas.to_numeric(signal[value_column], errors="coerce").to_numpy(dtype=float)


def _mapping_mask(signal, mapping_column, sig_idx, owners, target_names):
    """Keep pairs whose signal label matches the owning target."""
    if mapping_column not in signal.columns:
        raise ValueError(f"mapping_column '{mapping_column}' not found in signal")
    labels = signal[mapping_column]
    if _pandas.api.types.is_numeric_dtype(labels):
        return labels.to_numpy()[sig_idx] == owners
    if target_names is None:
        raise ValueError(
            f"mapping_column '{mapping_column}' maps signals to target names, "
            "so the target regions must have names."
        )
    names = _numpy.asarray(target_names, dtype=object)
    return labels.astype(str).to_numpy()[sig_idx] == names[owners].astype(str)


def _covered_bases(win_idx, ov_start, ov_end, n_windows):
    """Per-window length of the union of the overlapping pieces."""
    if len(win_idx) == 0:
        return _numpy.zeros(n_windows, dtype=_numpy.int64)
    pieces = _pandas.DataFrame({'win': win_idx, 'start': ov_start, 'end': ov_end})
    pieces = pieces.sort_values(['win', 'start'], kind="stable").reset_index(drop=True)
    reach = pieces.groupby('win')['end'].cummax()
    prev_reach = reach.groupby(pieces['win']).shift(1)
    prev_reach = prev_reach.fillna(pieces['start'] - 1).to_numpy(dtype=_numpy.int64)
    new_start = _numpy.maximum(pieces['start'].to_numpy(), prev_reach + 1)
    gained = _numpy.maximum(pieces['end'].to_numpy() - new_start + 1, 0)
    return _numpy.bincount(pieces['win'].to_numpy(), weights=gained, minlength=n_windows)


def aggregate_windows(signal, windows, value_column=None, mapping_column=None,
                      empty_value=0.0, mean_mode="absolute", target_names=None):
    """
    Compute one summarized signal value per window.

    Parameters
    ----------
    signal : DataFrame
        Signal regions (``chrom``, ``start``, ``end``) with optional value
        and mapping columns.
    windows : DataFrame
        Windows as returned by :func:`make_windows` (needs ``owner``).
    value_column : str, optional
        Column of *signal* holding the values. ``None`` means every signal
        has value 1.
    mapping_column : str, optional
        Restrict each window to the signals whose label in this column
        matches the window's target: numeric labels are compared with the
        0-based target position, other labels with *target_names*.
    empty_value : float, default 0
        Value for windows with no overlapping signal.
    mean_mode : str or MeanMode, default "absolute"
        Averaging policy, see :class:`MeanMode`.
    target_names : sequence, optional
        Names of the targets the windows were generated from.

    Returns
    -------
    numpy.ndarray
        Float array aligned with the rows of *windows*.

    Raises
    ------
    ValueError
        On an unknown *mean_mode* or column, or when a textual
        *mapping_column* is used without *target_names*.

    Notes
    -----
    Signals with a missing value are left out of the sums. A window that
    only overlaps signals with missing values gets NaN (or 0 in coverage
    mode) rather than *empty_value*.
    """
    mode = MeanMode.parse(mean_mode)
    n_windows = len(windows)
    result = _numpy.full(n_windows, empty_value, dtype=float)
    if n_windows == 0 or signal is None or len(signal) == 0:
        return result

    sig = _interval_frame(signal, "signal")
    values = _signal_values(sig, value_column)

    sig_idx, win_idx = find_overlaps(sig, windows)
    owners = windows['owner'].to_numpy(dtype=_numpy.int64)
    if mapping_column is not None:
        keep = _mapping_mask(sig, mapping_column, sig_idx, owners[win_idx], target_names)
        sig_idx = sig_idx[keep]
        win_idx = win_idx[keep]

    _logger.debug("%d signal/window overlaps over %d windows (%s)", len(sig_idx), n_windows, mode.value)
    if len(sig_idx) == 0:
        return result

    w_start = windows['start'].to_numpy(dtype=_numpy.int64)
    w_end = windows['end'].to_numpy(dtype=_numpy.int64)
    s_start = sig['start'].to_numpy()[sig_idx]
    s_end = sig['end'].to_numpy()[sig_idx]
    v = values[sig_idx]
    finite = ~_numpy.isnan(v)
    v0 = _numpy.where(finite, v, 0.0)

    hit = _numpy.bincount(win_idx, minlength=n_windows) > 0

    with _numpy.errstate(invalid="ignore", divide="ignore"):
        if mode is MeanMode.ABSOLUTE:
            num = _numpy.bincount(win_idx, weights=v0, minlength=n_windows)
            den = _numpy.bincount(win_idx, weights=finite.astype(float), minlength=n_windows)
            agg = num / den
        else:
            ov = intersection_width(s_start, s_end, w_start[win_idx], w_end[win_idx]).astype(float)
            num = _numpy.bincount(win_idx, weights=v0 * ov, minlength=n_windows)
            if mode is MeanMode.WEIGHTED:
                den = _numpy.bincount(win_idx, weights=ov * finite, minlength=n_windows)
                agg = num / den
            elif mode is MeanMode.W0:
                covered = _covered_bases(
                    win_idx,
                    _numpy.maximum(s_start, w_start[win_idx]),
                    _numpy.minimum(s_end, w_end[win_idx]),
                    n_windows,
                )
                uncovered = (w_end - w_start + 1) - covered
                den = _numpy.bincount(win_idx, weights=ov * finite, minlength=n_windows) + uncovered
                agg = num / den
            else:
                agg = num / (w_end - w_start + 1)

    result[hit] = agg[hit]
    return result
