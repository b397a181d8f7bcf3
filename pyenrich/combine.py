"""Combining normalized matrices across samples."""

import inspect

from ._shared import _numpy
from .matrix import NormalizedMatrix


def _n_args(fn):
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return 1
    positional = [
        p for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    ]
    return len(positional)


def _accepts_axis(fn):
    try:
        return 'axis' in inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return False


def signals_from_list(matrices, fn=_numpy.nanmean):
    """
    Combine normalized matrices from several samples into one.

    Targets are the first dimension, window positions the second and
    samples the third. *fn* summarizes each cell across samples.

    Parameters
    ----------
    matrices : list of NormalizedMatrix
        Matrices produced with the same settings.
    fn : callable, default numpy.nanmean
        Either a one-argument function receiving the vector of a cell's
        values across samples (functions taking ``axis=`` are applied in
        one vectorized call), or a two-argument function ``fn(x, i)`` that
        also receives the 0-based row index, e.g. to correlate a target's
        signal with its expression across samples.

    Returns
    -------
    NormalizedMatrix
        The combined values with the metadata of the first matrix.

    Raises
    ------
    TypeError
        If *matrices* is not a list of :class:`NormalizedMatrix`.
    ValueError
        If the list is empty, shapes differ, or *fn* has an unsupported
        number of arguments.

    Examples
    --------
    >>> import pyenrich as pe
    >>> m1 = pe.NormalizedMatrix([[1.0, 2.0]], upstream_index=[0], downstream_index=[1])
    >>> m2 = pe.NormalizedMatrix([[3.0, 4.0]], upstream_index=[0], downstream_index=[1])
    >>> pe.signals_from_list([m1, m2]).values.tolist()
    [[2.0, 3.0]]
    """
    if not isinstance(matrices, (list, tuple)):
        raise TypeError("`matrices` should be a list of objects returned by `normalize_to_matrix()`.")
    if not all(isinstance(m, NormalizedMatrix) for m in matrices):
        raise TypeError("`matrices` should be a list of objects returned by `normalize_to_matrix()`.")
    if not matrices:
        raise ValueError("`matrices` cannot be empty")

    first = matrices[0]
    if any(m.shape != first.shape for m in matrices):
        raise ValueError("All matrices must have the same shape")

    arr = _numpy.stack([m.values for m in matrices], axis=2)
    n_args = _n_args(fn)

    if _accepts_axis(fn) and n_args == 1:
        result = _numpy.asarray(fn(arr, axis=2), dtype=float)
    elif n_args == 1:
        result = _numpy.apply_along_axis(fn, 2, arr).astype(float)
    elif n_args == 2:
        result = _numpy.empty(first.shape, dtype=float)
        for i in range(first.nrow):
            for j in range(first.ncol):
                result[i, j] = fn(arr[i, j, :], i)
    else:
        raise ValueError("`fn` can only have one or two arguments.")

    return first.copy_attrs(result)
