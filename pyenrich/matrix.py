"""Normalized matrix container and column assembly."""

from __future__ import annotations

import logging as _logging
from dataclasses import dataclass as _dataclass
from dataclasses import field as _field
from dataclasses import replace as _replace
from typing import Any as _Any

from ._shared import (
    _interval_frame,
    _numpy,
    _pandas,
)
from .aggregate import aggregate_windows
from .windows import make_windows

_logger = _logging.getLogger(__name__)


class ShapeMismatchError(ValueError):
    """Targets produced different numbers of windows."""


def _index_array(values):
    return _numpy.asarray(values if values is not None else [], dtype=_numpy.int64)


@_dataclass(eq=False)
class NormalizedMatrix:
    """Signal values summarized around a set of target regions.

    Rows follow the order of the targets, columns run 5' to 3' through
    the upstream flank, the target body and the downstream flank.

    Attributes
    ----------
    values : numpy.ndarray
        2-D float array of shape ``(n_targets, n_windows)``.
    upstream_index, target_index, downstream_index : numpy.ndarray
        0-based column positions of each segment (possibly empty).
    extend : tuple of float
        Upstream and downstream extension in base pairs.
    smooth : bool
        Whether rows were smoothed.
    target_is_single_point : bool
        Whether every target has width 1.
    empty_value : float
        Fill value used for windows without signal.
    failed_rows : list of int
        0-based rows where smoothing failed.
    signal_name, target_name : str
        Labels used by :meth:`describe`.
    row_names, col_names : list of str or None
        Labels for debugging and :meth:`to_frame`.

    See Also
    --------
    normalize_to_matrix : Build a ``NormalizedMatrix``.
    signals_from_list : Combine several matrices.
    """

    values: _Any
    upstream_index: _Any = _field(default_factory=lambda: _index_array([]))
    target_index: _Any = _field(default_factory=lambda: _index_array([]))
    downstream_index: _Any = _field(default_factory=lambda: _index_array([]))
    extend: tuple = (0.0, 0.0)
    smooth: bool = False
    target_is_single_point: bool = False
    empty_value: float = 0.0
    failed_rows: list[int] = _field(default_factory=list)
    signal_name: str = ""
    target_name: str = ""
    row_names: list[str] | None = None
    col_names: list[str] | None = None

    def __post_init__(self):
        self.values = _numpy.asarray(self.values, dtype=float)
        if self.values.ndim != 2:
            raise ValueError(f"values must be a 2-D array, got {self.values.ndim} dimension(s)")
        self.upstream_index = _index_array(self.upstream_index)
        self.target_index = _index_array(self.target_index)
        self.downstream_index = _index_array(self.downstream_index)
        n_index = len(self.upstream_index) + len(self.target_index) + len(self.downstream_index)
        if n_index != self.values.shape[1]:
            raise ValueError(
                f"Column index ranges cover {n_index} columns but values have {self.values.shape[1]}"
            )
        self.extend = tuple(self.extend)
        self.failed_rows = [int(i) for i in self.failed_rows]

    @property
    def shape(self):
        return self.values.shape

    @property
    def nrow(self):
        return self.values.shape[0]

    @property
    def ncol(self):
        return self.values.shape[1]

    def __len__(self):
        return self.nrow

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self.values
        return self.values.astype(dtype)

    def __getitem__(self, key):
        if isinstance(key, tuple):
            if len(key) != 2:
                raise IndexError("NormalizedMatrix takes at most two indices")
            rows, cols = key
            if isinstance(cols, slice) and cols == slice(None):
                return self.subset_rows(rows)
            return self.subset_rows(rows).subset_cols(cols)
        return self.subset_rows(key)

    def subset_rows(self, rows):
        """Select rows, keeping the column layout and metadata.

        *rows* may be an integer, a slice, a boolean mask or a sequence of
        positions. Failed-row positions are translated to the new row order.
        """
        positions = _numpy.arange(self.nrow)[rows]
        positions = _numpy.atleast_1d(positions)
        new_pos = {int(old): new for new, old in enumerate(positions)}
        failed = [new_pos[i] for i in self.failed_rows if i in new_pos]
        row_names = None
        if self.row_names is not None:
            row_names = [self.row_names[i] for i in positions]
        return _replace(
            self,
            values=self.values[positions, :],
            failed_rows=failed,
            row_names=row_names,
        )

    def subset_cols(self, cols):
        """Select columns; returns a plain 2-D array since segments no longer apply."""
        out = self.values[:, cols]
        if out.ndim == 1:
            out = out[:, None]
        return out

    def copy_attrs(self, values):
        """Wrap *values* (same number of columns) with this matrix's metadata."""
        values = _numpy.asarray(values, dtype=float)
        if values.ndim != 2 or values.shape[1] != self.ncol:
            raise ValueError("x and y should have same number of columns.")
        row_names = self.row_names if values.shape[0] == self.nrow else None
        failed = self.failed_rows if values.shape[0] == self.nrow else []
        return _replace(self, values=values, signal_name="", row_names=row_names, failed_rows=failed)

    def rbind(self, *others):
        """Stack rows of matrices sharing this matrix's column layout."""
        return rbind_matrices(self, *others)

    def to_frame(self):
        """Return the values as a DataFrame with row and column labels."""
        return _pandas.DataFrame(self.values, index=self.row_names, columns=self.col_names)

    def describe(self):
        n_up = len(self.upstream_index)
        n_down = len(self.downstream_index)
        n_target = len(self.target_index)
        lines = [
            f"Normalize {self.signal_name or 'signal'} to {self.target_name or 'target'}:",
            f"  Upstream {self.extend[0]:g} bp ({n_up} window{'s' if n_up > 1 else ''})",
            f"  Downstream {self.extend[1]:g} bp ({n_down} window{'s' if n_down > 1 else ''})",
        ]
        if n_target == 0:
            lines.append("  Not include target regions")
        elif self.target_is_single_point:
            lines.append("  Include target regions (width = 1)")
        else:
            lines.append(f"  Include target regions ({n_target} window{'s' if n_target > 1 else ''})")
        lines.append(f"  {self.nrow} target region{'s' if self.nrow > 1 else ''}")
        if self.failed_rows:
            lines.append(f"  {len(self.failed_rows)} row(s) failed smoothing")
        return "\n".join(lines)

    def __repr__(self):
        return self.describe()


def rbind_matrices(*matrices):
    """
    Row-concatenate normalized matrices.

    All inputs must share the same column layout. The result keeps the
    metadata of the first matrix; failed rows of every input are carried
    over with their offsets.

    Raises
    ------
    ValueError
        If no matrix is given or the column layouts differ.
    """
    if not matrices:
        raise ValueError("At least one matrix is required")
    first = matrices[0]
    failed = []
    row_names = []
    offset = 0
    for m in matrices:
        if not isinstance(m, NormalizedMatrix):
            raise TypeError("All arguments must be NormalizedMatrix objects")
        if (m.ncol != first.ncol
                or not _numpy.array_equal(m.upstream_index, first.upstream_index)
                or not _numpy.array_equal(m.target_index, first.target_index)):
            raise ValueError("Matrices have different column layouts")
        failed.extend(i + offset for i in m.failed_rows)
        if row_names is not None and m.row_names is not None:
            row_names.extend(m.row_names)
        else:
            row_names = None
        offset += m.nrow
    values = _numpy.vstack([m.values for m in matrices])
    return _replace(first, values=values, failed_rows=failed, row_names=row_names)


def assemble_matrix(windows, values, targets, empty_value=0.0):
    """
    Scatter per-window values into a targets-by-windows matrix.

    Windows of a minus-strand target are placed right to left so that the
    first column is always the 5' end.

    Parameters
    ----------
    windows : DataFrame
        Windows with ``owner`` and ``window`` columns.
    values : array-like
        One value per window.
    targets : DataFrame
        The regions the windows were generated from.
    empty_value : float, default 0
        Fill for targets with no windows.

    Returns
    -------
    numpy.ndarray
        Float array of shape ``(len(targets), n_windows_per_target)``.

    Raises
    ------
    ShapeMismatchError
        If targets produced different numbers of windows.
    """
    targets = _interval_frame(targets, "targets")
    n = len(targets)
    owner = windows['owner'].to_numpy(dtype=_numpy.int64)
    window = windows['window'].to_numpy(dtype=_numpy.int64)
    values = _numpy.asarray(values, dtype=float)

    counts = _numpy.bincount(owner, minlength=n)
    sizes = _numpy.unique(counts[counts > 0])
    if len(sizes) > 1:
        raise ShapeMismatchError(
            f"numbers of columns are not the same across targets ({', '.join(map(str, sizes))})."
        )
    ncol = int(sizes[0]) if len(sizes) else 0

    minus = targets['strand'].to_numpy()[owner] == -1
    col = _numpy.where(minus, ncol - 1 - window, window)

    mat = _numpy.full((n, ncol), empty_value, dtype=float)
    mat[owner, col] = values
    return mat


def make_matrix(signal, target, w=None, k=None, value_column=None, mapping_column=None,
                empty_value=0.0, mean_mode="absolute", direction="normal", target_names=None):
    """
    Split *target* into windows and summarize *signal* in each.

    This runs :func:`make_windows`, :func:`aggregate_windows` and
    :func:`assemble_matrix` for one segment (a flank or the target body).

    Returns
    -------
    numpy.ndarray
        Float array with one row per region in *target*.

    Examples
    --------
    >>> import pandas as pd
    >>> import pyenrich as pe
    >>> signal = pd.DataFrame({"chrom": "chr1", "start": [1, 4, 7], "end": [2, 5, 8]})
    >>> target = pd.DataFrame({"chrom": "chr1", "start": [1], "end": [10]})
    >>> pe.make_matrix(signal, target, w=2).tolist()
    [[1.0, 1.0, 1.0, 1.0, 0.0]]
    """
    target = _interval_frame(target, "target")
    windows = make_windows(target, w=w, k=k, direction=direction)
    values = aggregate_windows(
        signal, windows,
        value_column=value_column,
        mapping_column=mapping_column,
        empty_value=empty_value,
        mean_mode=mean_mode,
        target_names=target_names,
    )
    mat = assemble_matrix(windows, values, target, empty_value=empty_value)
    _logger.debug("segment matrix %d x %d", *mat.shape)
    return mat


def concat_segments(upstream, target, downstream):
    """
    Concatenate the three segment blocks column-wise.

    Returns
    -------
    tuple
        ``(values, upstream_index, target_index, downstream_index)`` with
        0-based column positions for each block.
    """
    n_up = upstream.shape[1]
    n_target = target.shape[1]
    n_down = downstream.shape[1]
    values = _numpy.hstack([upstream, target, downstream]).astype(float)
    return (
        values,
        _numpy.arange(n_up, dtype=_numpy.int64),
        _numpy.arange(n_up, n_up + n_target, dtype=_numpy.int64),
        _numpy.arange(n_up + n_target, n_up + n_target + n_down, dtype=_numpy.int64),
    )
