"""
Evaluation and Visualization Module.

Modules:
    metrics: Floor accuracy, error histogram, switch count
    plots: Floor trace visualization
"""

from .metrics import count_floor_switches, floor_accuracy, floor_error_histogram
from .plots import plot_floor_trace, save_figure

__all__ = [
    # Metrics
    "floor_accuracy",
    "floor_error_histogram",
    "count_floor_switches",
    # Plots
    "plot_floor_trace",
    "save_figure",
]
