from __future__ import annotations

from typing import Iterable, Mapping

import matplotlib
from matplotlib.colors import ListedColormap, to_hex

# d3 categorical scheme names -> matplotlib qualitative colormaps.
SCHEME_COLORMAPS = {
    "schemeCategory10": "tab10",
    "schemeTableau10": "tab10",
    "schemeAccent": "Accent",
    "schemeDark2": "Dark2",
    "schemePaired": "Paired",
    "schemePastel1": "Pastel1",
    "schemePastel2": "Pastel2",
    "schemeSet1": "Set1",
    "schemeSet2": "Set2",
    "schemeSet3": "Set3",
}


def scheme_colors(scheme: str) -> list[str]:
    name = SCHEME_COLORMAPS.get(scheme, scheme)
    try:
        colormap = matplotlib.colormaps[name]
    except KeyError as exc:
        raise ValueError(f"Unknown color scheme: {scheme}") from exc
    if isinstance(colormap, ListedColormap):
        return [to_hex(color) for color in colormap.colors]
    return [to_hex(colormap(position / 9)) for position in range(10)]


class CategoryColors:
    """Ordinal category -> color mapping; fixed colors win, others cycle the scheme."""

    def __init__(self, scheme: str, fixed: Mapping[str, str] | None = None) -> None:
        self.palette = scheme_colors(scheme)
        self.fixed = dict(fixed or {})
        self._assigned: dict[str, str] = {}

    def assign(self, categories: Iterable[str]) -> CategoryColors:
        for category in categories:
            self(category)
        return self

    def __call__(self, category: str) -> str:
        if category in self.fixed:
            return self.fixed[category]
        if category not in self._assigned:
            self._assigned[category] = self.palette[len(self._assigned) % len(self.palette)]
        return self._assigned[category]
