"""Tests for matrix assembly and the NormalizedMatrix container."""

import numpy as np
import pandas as pd
import pytest
from conftest import make_intervals

import pyenrich as pe


def _matrix(nrow=4, failed_rows=(), row_names=None):
    values = np.arange(nrow * 5, dtype=float).reshape(nrow, 5)
    return pe.NormalizedMatrix(
        values,
        upstream_index=[0, 1],
        target_index=[2],
        downstream_index=[3, 4],
        extend=(10, 10),
        failed_rows=list(failed_rows),
        signal_name="sig",
        target_name="tss",
        row_names=row_names,
        col_names=["u1", "u2", "t1", "d1", "d2"],
    )


class TestAssembleMatrix:

    def test_minus_strand_reversed(self):
        targets = make_intervals([("chr1", 1, 4), ("chr1", 1, 4)], strand=["+", "-"])
        windows = pe.make_windows(targets, w=1)
        values = np.array([1, 2, 3, 4, 1, 2, 3, 4], dtype=float)
        mat = pe.assemble_matrix(windows, values, targets)
        np.testing.assert_array_equal(mat, [[1, 2, 3, 4], [4, 3, 2, 1]])

    def test_mismatched_window_counts(self):
        targets = make_intervals([("chr1", 1, 10), ("chr1", 1, 20)])
        windows = pe.make_windows(targets, w=5)
        with pytest.raises(pe.ShapeMismatchError, match="not the same"):
            pe.assemble_matrix(windows, np.zeros(len(windows)), targets)

    def test_rows_without_windows_filled(self):
        targets = make_intervals([("chr1", 1, 10), ("chr1", 1, 10)])
        windows = pe.make_windows(targets.iloc[:1], w=5)
        mat = pe.assemble_matrix(windows, [1.0, 2.0], targets, empty_value=-1.0)
        np.testing.assert_array_equal(mat, [[1.0, 2.0], [-1.0, -1.0]])

    def test_make_matrix(self):
        signal = make_intervals([("chr1", 1, 2), ("chr1", 4, 5), ("chr1", 7, 8)])
        target = make_intervals([("chr1", 1, 10)])
        mat = pe.make_matrix(signal, target, w=2)
        np.testing.assert_array_equal(mat, [[1, 1, 1, 1, 0]])

    def test_concat_segments(self):
        values, up, body, down = pe.concat_segments(np.ones((2, 3)), np.zeros((2, 0)), np.ones((2, 2)) * 2)
        assert values.shape == (2, 5)
        assert up.tolist() == [0, 1, 2]
        assert body.tolist() == []
        assert down.tolist() == [3, 4]


class TestNormalizedMatrix:

    def test_equality_is_identity(self):
        m = _matrix()
        assert m == m
        assert m != _matrix()

    def test_index_ranges_must_cover_columns(self):
        with pytest.raises(ValueError, match="cover"):
            pe.NormalizedMatrix(np.zeros((2, 3)), upstream_index=[0, 1])

    def test_subset_rows_keeps_metadata(self):
        m = _matrix(failed_rows=[1, 3], row_names=["a", "b", "c", "d"])
        sub = m[[3, 0]]
        assert isinstance(sub, pe.NormalizedMatrix)
        assert sub.shape == (2, 5)
        np.testing.assert_array_equal(sub.values[0], m.values[3])
        assert sub.failed_rows == [0]
        assert sub.row_names == ["d", "a"]
        assert sub.upstream_index.tolist() == [0, 1]
        assert sub.target_index.tolist() == [2]
        assert sub.downstream_index.tolist() == [3, 4]
        assert sub.extend == (10, 10)

    def test_single_row_stays_two_dimensional(self):
        sub = _matrix()[2]
        assert sub.shape == (1, 5)

    def test_boolean_mask(self):
        m = _matrix()
        sub = m[np.array([True, False, True, False])]
        assert sub.nrow == 2

    def test_column_selection_returns_array(self):
        m = _matrix()
        out = m[:, [0, 1]]
        assert isinstance(out, np.ndarray)
        assert out.shape == (4, 2)
        assert m[1:3, 4].shape == (2, 1)

    def test_full_column_slice_keeps_class(self):
        assert isinstance(_matrix()[0:2, :], pe.NormalizedMatrix)

    def test_copy_attrs(self):
        m = _matrix(nrow=2)
        wrapped = m.copy_attrs(np.ones((3, 5)))
        assert wrapped.shape == (3, 5)
        assert wrapped.signal_name == ""
        assert wrapped.target_index.tolist() == [2]
        with pytest.raises(ValueError, match="same number of columns"):
            m.copy_attrs(np.ones((2, 4)))

    def test_rbind(self):
        m1 = _matrix(nrow=2, failed_rows=[1], row_names=["a", "b"])
        m2 = _matrix(nrow=3, failed_rows=[0], row_names=["c", "d", "e"])
        out = m1.rbind(m2)
        assert out.shape == (5, 5)
        assert out.failed_rows == [1, 2]
        assert out.row_names == ["a", "b", "c", "d", "e"]

    def test_rbind_layout_mismatch(self):
        other = pe.NormalizedMatrix(np.zeros((1, 5)), upstream_index=[0], target_index=[1, 2],
                                    downstream_index=[3, 4])
        with pytest.raises(ValueError, match="column layouts"):
            pe.rbind_matrices(_matrix(), other)

    def test_to_frame(self):
        frame = _matrix(nrow=2, row_names=["a", "b"]).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert frame.columns.tolist() == ["u1", "u2", "t1", "d1", "d2"]
        assert frame.index.tolist() == ["a", "b"]

    def test_describe(self):
        text = repr(_matrix())
        assert text.splitlines() == [
            "Normalize sig to tss:",
            "  Upstream 10 bp (2 windows)",
            "  Downstream 10 bp (2 windows)",
            "  Include target regions (1 window)",
            "  4 target regions",
        ]

    def test_array_protocol(self):
        m = _matrix(nrow=2)
        assert np.asarray(m).shape == (2, 5)
