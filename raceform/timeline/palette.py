from __future__ import annotations
from typing import Optional, Tuple

COLOR_PALETTE: Tuple[str, ...] = (
    "#4bc0c0",  # teal
    "#36a2eb",  # blue
    "#ffce56",  # yellow
    "#9966ff",  # purple
    "#ff9f40",  # orange
    "#ff6384",  # pink
    "#4ade80",  # light green
    "#f472b6",  # light pink
    "#60a5fa",  # light blue
    "#fbbf24",  # amber
)

SURFACE_COLORS = {
    "turf": "#22c55e",
    "polytrack": "#795548",
    "tapeta": "#bc8f8f",
    "fibresand": "#ffc107",
    "artificial": "#ffeb3b",
}
DEFAULT_SURFACE_COLOR = "#000000"


def series_color(rank: int) -> str:
    """Color for the horse at `rank` within the current selection.

    Positional: a horse changes color when the selection around it changes.
    """
    return COLOR_PALETTE[rank % len(COLOR_PALETTE)]


def surface_color(surface: Optional[str]) -> str:
    if not surface:
        return DEFAULT_SURFACE_COLOR
    return SURFACE_COLORS.get(str(surface).strip().lower(), DEFAULT_SURFACE_COLOR)
