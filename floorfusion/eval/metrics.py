"""
Evaluation Metrics for Floor Localization.

This module provides functions to score an estimated floor sequence against
ground truth: accuracy, the distribution of floor errors, and how often the
estimate switches floors.
"""

from typing import Dict, Optional

import numpy as np


def _check_pair(truth: np.ndarray, estimated: np.ndarray):
    truth = np.asarray(truth)
    estimated = np.asarray(estimated)
    if truth.shape != estimated.shape:
        raise ValueError(
            f"Shape mismatch: truth {truth.shape} vs estimated {estimated.shape}"
        )
    if truth.ndim != 1:
        raise ValueError(f"Floor sequences must be 1D, got shape {truth.shape}")
    return truth.astype(int), estimated.astype(int)


def floor_accuracy(
    truth: np.ndarray,
    estimated: np.ndarray,
    mask: Optional[np.ndarray] = None,
) -> float:
    """
    Fraction of samples whose estimated floor equals the true floor.

    Args:
        truth: True floor indices, shape (N,)
        estimated: Estimated floor indices, shape (N,)
        mask: Boolean mask selecting the samples to score (optional),
              e.g. only samples inside the building.

    Returns:
        accuracy: Value in [0, 1]; nan if no sample is selected.
    """
    truth, estimated = _check_pair(truth, estimated)
    if mask is not None:
        mask = np.asarray(mask, dtype=bool)
        truth = truth[mask]
        estimated = estimated[mask]
    if truth.size == 0:
        return float("nan")
    return float(np.mean(truth == estimated))


def floor_error_histogram(truth: np.ndarray, estimated: np.ndarray) -> Dict[int, int]:
    """
    Count of samples per signed floor error (estimated - truth).

    Returns:
        histogram: {error: count}, sorted by error. 0 holds the correct samples.
    """
    truth, estimated = _check_pair(truth, estimated)
    errors, counts = np.unique(estimated - truth, return_counts=True)
    return {int(e): int(c) for e, c in zip(errors, counts)}


def count_floor_switches(estimated: np.ndarray) -> int:
    """
    Number of times the estimated floor changes between consecutive samples.

    A stable estimator switches exactly as often as the user changes floors;
    extra switches indicate flicker at floor boundaries.
    """
    estimated = np.asarray(estimated)
    if estimated.size < 2:
        return 0
    return int(np.count_nonzero(np.diff(estimated)))
