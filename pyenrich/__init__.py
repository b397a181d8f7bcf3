"""
PyEnrich - normalize genomic signals around target regions into matrices
for enriched heatmaps
"""

__version__ = '0.1.0'

from ._shared import CONFIG
from .aggregate import MeanMode, aggregate_windows
from .combine import signals_from_list
from .matrix import (
    NormalizedMatrix,
    ShapeMismatchError,
    assemble_matrix,
    concat_segments,
    make_matrix,
    rbind_matrices,
)
from .normalize import flank_intervals, normalize_to_matrix
from .postprocess import SmoothingError, default_smooth_fn, postprocess
from .windows import make_windows, split_interval

__all__ = [
    'CONFIG',
    'MeanMode',
    'NormalizedMatrix',
    'ShapeMismatchError',
    'SmoothingError',
    'aggregate_windows',
    'assemble_matrix',
    'concat_segments',
    'default_smooth_fn',
    'flank_intervals',
    'make_matrix',
    'make_windows',
    'normalize_to_matrix',
    'postprocess',
    'rbind_matrices',
    'signals_from_list',
    'split_interval',
]
