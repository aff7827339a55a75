from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt

PIXELS_PER_INCH = 100


def figure_size(width: int, height: int) -> tuple[float, float]:
    return width / PIXELS_PER_INCH, height / PIXELS_PER_INCH


def save_figure(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=PIXELS_PER_INCH)
    plt.close()
    return path
