"""
Visualization Utilities for Floor Localization.

All functions return matplotlib Figure objects for flexible display/saving.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np


def plot_floor_trace(
    t: np.ndarray,
    truth: np.ndarray,
    est_dict: Dict[str, np.ndarray],
    floor_labels: Optional[Sequence[str]] = None,
    altitude: Optional[np.ndarray] = None,
    title: str = "Floor Estimate vs Time",
) -> plt.Figure:
    """
    Plot true and estimated floor index over time.

    Args:
        t: Time array, shape (N,)
        truth: True floor indices, shape (N,)
        est_dict: Dictionary of estimated floor sequences {name: indices}
        floor_labels: Tick labels for floor indices (optional)
        altitude: Altitude above ground, shape (N,), drawn in a second panel
                  (optional)
        title: Plot title

    Returns:
        fig: Matplotlib figure
    """
    n_rows = 2 if altitude is not None else 1
    fig, axes = plt.subplots(n_rows, 1, figsize=(12, 4 * n_rows), sharex=True)
    if n_rows == 1:
        axes = [axes]

    ax = axes[0]
    ax.step(t, truth, "k-", where="post", linewidth=2, label="Ground Truth")

    colors = ["blue", "red", "green", "orange", "purple"]
    linestyles = ["--", "-.", ":", "-"]
    for i, (name, est) in enumerate(est_dict.items()):
        ax.step(
            t,
            est,
            where="post",
            linestyle=linestyles[i % len(linestyles)],
            color=colors[i % len(colors)],
            linewidth=1.5,
            label=name,
            alpha=0.8,
        )

    if floor_labels is not None:
        ax.set_yticks(np.arange(len(floor_labels)))
        ax.set_yticklabels(floor_labels)
    ax.set_ylabel("Floor", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3)

    if altitude is not None:
        axes[1].plot(t, altitude, color="gray", linewidth=1.0)
        axes[1].set_ylabel("Altitude (m)", fontsize=12)
        axes[1].grid(True, alpha=0.3)

    axes[-1].set_xlabel("Time (s)", fontsize=12)
    plt.tight_layout()
    return fig


def save_figure(
    fig: plt.Figure,
    out_dir: Union[str, Path],
    name: str,
    formats: Tuple[str, ...] = ("svg", "png"),
) -> List[Path]:
    """
    Save figure in multiple formats.

    Args:
        fig: Matplotlib figure to save
        out_dir: Output directory
        name: Base filename (without extension)
        formats: Tuple of format extensions

    Returns:
        paths: List of saved file paths
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for fmt in formats:
        filepath = out_dir / f"{name}.{fmt}"
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        paths.append(filepath)

    return paths
