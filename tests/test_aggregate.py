"""Tests for aggregate_windows and the four mean modes."""

import numpy as np
import pytest
from conftest import make_intervals

import pyenrich as pe

# 17bp window [11, 27]; signals overlap it by 4, 6, 3 and 3 bases,
# their union covers 13 bases and [21, 24] is uncovered.
MIXED_SIGNAL = make_intervals(
    [("chr1", 9, 14), ("chr1", 13, 18), ("chr1", 18, 20), ("chr1", 25, 29)],
    value=[40.0, 30.0, 50.0, 20.0],
)
NUMERATOR = 40 * 4 + 30 * 6 + 50 * 3 + 20 * 3


def _single_window(start=11, end=27):
    return pe.make_windows(make_intervals([("chr1", start, end)]), k=1)


class TestMeanModes:

    @pytest.mark.parametrize("mode,expected", [
        ("absolute", (40 + 30 + 50 + 20) / 4),
        ("weighted", NUMERATOR / 16),
        ("w0", NUMERATOR / 20),
        ("coverage", NUMERATOR / 17),
    ])
    def test_partial_overlaps(self, mode, expected):
        out = pe.aggregate_windows(MIXED_SIGNAL, _single_window(), value_column="value", mean_mode=mode)
        np.testing.assert_allclose(out, [expected])

    @pytest.mark.parametrize("mode", ["absolute", "weighted", "w0", "coverage"])
    def test_fully_covered_window(self, mode):
        signal = make_intervals([("chr1", 1, 100)], value=[3.5])
        out = pe.aggregate_windows(signal, _single_window(), value_column="value", mean_mode=mode)
        np.testing.assert_allclose(out, [3.5])

    def test_w0_dilutes_partial_cover(self):
        signal = make_intervals([("chr1", 11, 14)], value=[8.0])
        out = pe.aggregate_windows(signal, _single_window(11, 18), value_column="value", mean_mode="w0")
        np.testing.assert_allclose(out, [4.0])

    @pytest.mark.parametrize("mode", list(pe.MeanMode))
    def test_empty_windows_get_empty_value(self, mode):
        windows = pe.make_windows(make_intervals([("chr1", 1, 40)]), w=10)
        signal = make_intervals([("chr1", 12, 13)], value=[5.0])
        out = pe.aggregate_windows(signal, windows, value_column="value", mean_mode=mode, empty_value=-1.0)
        assert out[0] == -1.0
        assert out[2] == -1.0
        assert out[3] == -1.0
        assert out[1] != -1.0

    def test_constant_value_by_default(self):
        out = pe.aggregate_windows(MIXED_SIGNAL, _single_window(), mean_mode="coverage")
        np.testing.assert_allclose(out, [16 / 17])

    def test_missing_values_ignored(self):
        signal = make_intervals([("chr1", 11, 14), ("chr1", 15, 18)], value=[np.nan, 6.0])
        window = _single_window(11, 18)
        np.testing.assert_allclose(
            pe.aggregate_windows(signal, window, value_column="value", mean_mode="absolute"), [6.0])
        np.testing.assert_allclose(
            pe.aggregate_windows(signal, window, value_column="value", mean_mode="weighted"), [6.0])

    def test_only_missing_values(self):
        signal = make_intervals([("chr1", 11, 14)], value=[np.nan])
        out = pe.aggregate_windows(signal, _single_window(11, 18), value_column="value", empty_value=0.0)
        assert np.isnan(out[0])

    def test_strand_ignored(self):
        signal = make_intervals([("chr1", 11, 27)], strand=["-"], value=[2.0])
        windows = pe.make_windows(make_intervals([("chr1", 11, 27)], strand=["+"]), k=1)
        np.testing.assert_allclose(pe.aggregate_windows(signal, windows, value_column="value"), [2.0])

    def test_inputs_not_mutated(self):
        signal = MIXED_SIGNAL.copy()
        windows = _single_window()
        before_windows = windows.copy()
        pe.aggregate_windows(signal, windows, value_column="value", mean_mode="w0")
        assert signal.equals(MIXED_SIGNAL)
        assert windows.equals(before_windows)

    def test_mode_parsing(self):
        assert pe.MeanMode.parse("W0") is pe.MeanMode.W0
        assert pe.MeanMode.parse(pe.MeanMode.COVERAGE) is pe.MeanMode.COVERAGE
        with pytest.raises(ValueError, match="Invalid mean_mode"):
            pe.MeanMode.parse("median")


class TestMappingColumn:

    @staticmethod
    def _setup():
        targets = make_intervals([("chr1", 100, 200), ("chr1", 100, 200)], name=["a", "b"])
        windows = pe.make_windows(targets, k=1)
        signal = make_intervals(
            [("chr1", 150, 150), ("chr1", 160, 160)],
            value=[5.0, 7.0], gene=["a", "b"], idx=[0, 1],
        )
        return targets, windows, signal

    def test_without_mapping(self):
        _, windows, signal = self._setup()
        out = pe.aggregate_windows(signal, windows, value_column="value")
        np.testing.assert_allclose(out, [6.0, 6.0])

    def test_textual_mapping(self):
        targets, windows, signal = self._setup()
        out = pe.aggregate_windows(signal, windows, value_column="value", mapping_column="gene",
                                   target_names=targets["name"].tolist())
        np.testing.assert_allclose(out, [5.0, 7.0])

    def test_numeric_mapping(self):
        _, windows, signal = self._setup()
        out = pe.aggregate_windows(signal, windows, value_column="value", mapping_column="idx")
        np.testing.assert_allclose(out, [5.0, 7.0])

    def test_textual_mapping_requires_names(self):
        _, windows, signal = self._setup()
        with pytest.raises(ValueError, match="must have names"):
            pe.aggregate_windows(signal, windows, value_column="value", mapping_column="gene")

    def test_unknown_columns(self):
        _, windows, signal = self._setup()
        with pytest.raises(ValueError, match="value_column"):
            pe.aggregate_windows(signal, windows, value_column="nope")
        with pytest.raises(ValueError, match="mapping_column"):
            pe.aggregate_windows(signal, windows, mapping_column="nope")
