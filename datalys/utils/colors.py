# ==============================
# Color Palettes
# ==============================
"""
Resolve a `colors` property (single color, palette name or explicit list)
into a list of color strings, and pick colors by index with wrap-around.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union


ColorProperty = Union[str, List[str]]

TABLEAU10 = [
    "#4e79a7", "#f28e2c", "#e15759", "#76b7b2", "#59a14f",
    "#edc949", "#af7aa1", "#ff9da7", "#9c755f", "#bab0ab",
]
CATEGORY10 = [
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
]
SET2 = ["#66c2a5", "#fc8d62", "#8da0cb", "#e78ac3", "#a6d854", "#ffd92f", "#e5c494", "#b3b3b3"]
DARK2 = ["#1b9e77", "#d95f02", "#7570b3", "#e7298a", "#66a61e", "#e6ab02", "#a6761d", "#666666"]
PASTEL1 = ["#fbb4ae", "#b3cde3", "#ccebc5", "#decbe4", "#fed9a6", "#ffffcc", "#e5d8bd", "#fddaec", "#f2f2f2"]

SCHEMES: Dict[str, List[str]] = {
    "tableau10": TABLEAU10,
    "category10": CATEGORY10,
    "set2": SET2,
    "dark2": DARK2,
    "pastel1": PASTEL1,
}

DEFAULT_PALETTE = TABLEAU10


def _scheme_key(name: str) -> str:
    key = name.strip().lower()
    return key[len("scheme"):] if key.startswith("scheme") else key


def resolve_colors(colors: Optional[ColorProperty]) -> List[str]:
    if not colors:
        return list(DEFAULT_PALETTE)
    if isinstance(colors, (list, tuple)):
        return [str(c) for c in colors] or list(DEFAULT_PALETTE)
    scheme = SCHEMES.get(_scheme_key(colors))
    if scheme is not None:
        return list(scheme)
    return [colors]


def pick_color(palette: Sequence[str], index: int) -> str:
    return palette[index % len(palette)]
