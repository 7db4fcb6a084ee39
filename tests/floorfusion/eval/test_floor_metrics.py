"""
Unit tests for floorfusion/eval (floor metrics and trace plots).

Tests cover:
    - Floor accuracy with and without a mask
    - Signed floor error histogram
    - Floor switch counting
    - Trace figure creation and saving

Run with: pytest tests/floorfusion/eval/test_floor_metrics.py -v
"""

import unittest

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from floorfusion.eval.metrics import (
    count_floor_switches,
    floor_accuracy,
    floor_error_histogram,
)
from floorfusion.eval.plots import plot_floor_trace, save_figure


class TestFloorAccuracy(unittest.TestCase):
    """Test floor accuracy."""

    def test_perfect(self):
        truth = np.array([1, 1, 2, 2, 3])
        self.assertEqual(floor_accuracy(truth, truth.copy()), 1.0)

    def test_partial(self):
        truth = np.array([1, 1, 2, 2])
        est = np.array([1, 2, 2, 1])
        self.assertAlmostEqual(floor_accuracy(truth, est), 0.5)

    def test_mask(self):
        truth = np.array([1, 1, 2, 2])
        est = np.array([0, 0, 2, 2])
        mask = np.array([False, False, True, True])
        self.assertEqual(floor_accuracy(truth, est, mask), 1.0)

    def test_empty_selection_is_nan(self):
        truth = np.array([1, 2])
        self.assertTrue(np.isnan(floor_accuracy(truth, truth, np.zeros(2, dtype=bool))))

    def test_shape_mismatch(self):
        with self.assertRaises(ValueError):
            floor_accuracy(np.array([1, 2]), np.array([1, 2, 3]))

    def test_must_be_1d(self):
        with self.assertRaises(ValueError):
            floor_accuracy(np.ones((2, 2)), np.ones((2, 2)))


class TestFloorErrorHistogram(unittest.TestCase):
    """Test signed error histogram."""

    def test_counts(self):
        truth = np.array([1, 1, 2, 2, 3])
        est = np.array([1, 2, 2, 1, 1])
        hist = floor_error_histogram(truth, est)
        self.assertEqual(hist, {-2: 1, -1: 1, 0: 2, 1: 1})
        self.assertEqual(list(hist.keys()), sorted(hist.keys()))

    def test_all_correct(self):
        truth = np.array([0, 1, 2])
        self.assertEqual(floor_error_histogram(truth, truth), {0: 3})


class TestCountFloorSwitches(unittest.TestCase):
    """Test switch counting."""

    def test_switches(self):
        self.assertEqual(count_floor_switches(np.array([1, 1, 2, 2, 1, 1])), 2)

    def test_flicker_counted(self):
        self.assertEqual(count_floor_switches(np.array([1, 2, 1, 2, 1])), 4)

    def test_short_sequences(self):
        self.assertEqual(count_floor_switches(np.array([])), 0)
        self.assertEqual(count_floor_switches(np.array([3])), 0)


class TestPlots:
    def test_trace_with_altitude_panel(self, tmp_path):
        t = np.arange(0.0, 5.0, 1.0)
        truth = np.array([1, 1, 2, 2, 2])
        fig = plot_floor_trace(
            t,
            truth,
            {"Barometer": np.array([1, 1, 1, 2, 2]), "Fusion": truth},
            floor_labels=["Gym", "G", "1F"],
            altitude=np.array([0.0, 0.1, 2.0, 4.0, 4.1]),
        )
        assert len(fig.axes) == 2
        assert [tick.get_text() for tick in fig.axes[0].get_yticklabels()] == ["Gym", "G", "1F"]

        paths = save_figure(fig, tmp_path / "figs", "trace", formats=("png",))
        assert paths == [tmp_path / "figs" / "trace.png"]
        assert paths[0].exists()
        plt.close(fig)

    def test_trace_single_panel(self):
        t = np.arange(3.0)
        fig = plot_floor_trace(t, np.zeros(3), {"est": np.zeros(3)})
        assert len(fig.axes) == 1
        assert fig.axes[0].get_title() == "Floor Estimate vs Time"
        plt.close(fig)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
