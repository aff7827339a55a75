from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Patch

from impact_bubbles.report.view_model import DashboardView
from impact_bubbles.viz.common import figure_size, save_figure


def plot_bubble_chart(view: DashboardView, output_path: Path) -> Path:
    """Draw the view's bubbles in its own pixel space so the PNG matches the HTML layout."""
    fig, ax = plt.subplots(figsize=figure_size(view.width, view.height))
    ax.set_xlim(0, view.inner_width)
    # Pixel rows grow downwards.
    ax.set_ylim(view.inner_height, 0)
    ax.set_aspect("equal", adjustable="box")

    title = f"{view.title}\n{view.subtitle}" if view.subtitle else view.title
    ax.set_title(title)

    if view.error:
        ax.set_xticks([])
        ax.set_yticks([])
        ax.text(
            view.inner_width / 2,
            view.inner_height / 2,
            view.error,
            ha="center",
            va="center",
            color="#dc3545",
        )
        return save_figure(output_path)

    for bubble in sorted(view.bubbles, key=lambda item: item.r, reverse=True):
        ax.add_patch(
            Circle(
                (bubble.x, bubble.y),
                bubble.r,
                facecolor=bubble.fill,
                alpha=bubble.opacity,
                edgecolor=bubble.stroke,
                linewidth=bubble.stroke_width,
            )
        )

    if view.x_axis is not None:
        ax.set_xticks([tick.position for tick in view.x_axis.ticks])
        ax.set_xticklabels([tick.label for tick in view.x_axis.ticks])
        ax.set_xlabel(view.x_axis.label)
    if view.y_axis is not None:
        ax.set_yticks([tick.position for tick in view.y_axis.ticks])
        ax.set_yticklabels([tick.label for tick in view.y_axis.ticks])
        ax.set_ylabel(view.y_axis.label)
    ax.grid(True, alpha=0.2)

    for label in view.quadrants:
        ax.text(
            label.x,
            label.y,
            f"{label.title}\n{label.detail}",
            ha="left" if label.anchor == "start" else "right",
            va="top",
            fontsize="small",
            color="#6c757d",
        )

    handles = [
        Patch(facecolor=entry.color, alpha=1.0 if entry.active else 0.3, label=entry.category)
        for entry in view.legend
    ]
    handles.extend(
        Patch(facecolor="none", edgecolor=entry.color, linewidth=2, label=entry.label)
        for entry in view.severity_legend
    )
    if handles:
        ax.legend(
            handles=handles,
            loc="upper left",
            bbox_to_anchor=(1.01, 1.0),
            fontsize="small",
            frameon=False,
        )
    return save_figure(output_path)
