"""
Trust score graphs for tracked nodes.

Draws one line per tracked node (its group label, or "Node <n>"), optionally
the trust score at each assignment as markers, and optionally the
running results-per-completed-job ratio on a second axis.
"""

from typing import List

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server
import matplotlib.pyplot as plt
import numpy as np

from .telemetry import Series, TelemetryRecorder


def _as_arrays(series: Series):
    if not series:
        return np.array([]), np.array([])
    data = np.asarray(series, dtype=float)
    return data[:, 0], data[:, 1]


def plot_trust(
    telemetry: TelemetryRecorder,
    output_path: str,
    include_confirmations: bool = False,
    show_assignments: bool = False,
) -> List[str]:
    """
    Plot tracked nodes' trust scores over time and save the figure.

    Returns the list of files written.
    """
    if include_confirmations:
        fig, (ax, ax_conf) = plt.subplots(2, 1, figsize=(12, 9), sharex=True)
    else:
        fig, ax = plt.subplots(figsize=(12, 6))
        ax_conf = None

    for node_series in telemetry.nodes.values():
        ticks, scores = _as_arrays(node_series.trust)
        line, = ax.plot(ticks, scores, label=node_series.label, linewidth=1.5)
        if show_assignments and node_series.jobs:
            job_ticks, job_scores = _as_arrays(node_series.jobs)
            ax.scatter(job_ticks, job_scores, s=6, color=line.get_color())

    ax.set_ylabel('Trust score')
    ax.set_ylim(0.0, 1.05)
    ax.set_title('Trust score of tracked nodes')
    ax.grid(True, alpha=0.3)
    if telemetry.nodes:
        ax.legend(loc='lower right')

    if ax_conf is not None:
        ticks, ratios = _as_arrays(telemetry.confirmations)
        ax_conf.plot(ticks, ratios, color='black', linewidth=1.5)
        ax_conf.set_ylabel('Results per completed job')
        ax_conf.set_title('Confirmation count')
        ax_conf.grid(True, alpha=0.3)
        ax_conf.set_xlabel('Tick')
    else:
        ax.set_xlabel('Tick')

    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close(fig)

    return [output_path]
