from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from raceform.aggregation.engine import calendar_date, sort_history
from raceform.aggregation.models import AggregatedEntity
from raceform.timeline.palette import surface_color

PROFILE_METRICS: Tuple[str, ...] = ("official_rating", "rating", "speed_figure")
DEFAULT_PROFILE_WINDOW = 10

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def short_date(value: Any) -> str:
    """'2024-03-05' -> '05 Mar'; '' when the date is missing or unparseable."""
    d = calendar_date(value)
    if d is None:
        return ""
    return f"{d.day:02d} {_MONTHS[d.month - 1]}"


@dataclass(frozen=True)
class Profile:
    entity_id: Any
    name: str | None
    labels: Tuple[str, ...]
    series: Dict[str, Tuple[float, ...]]
    point_colors: Tuple[str, ...]
    y_range: Tuple[float, float]

    @property
    def empty(self) -> bool:
        return not self.labels

    def as_dict(self) -> Dict[str, Any]:
        return {
            "horse_id": self.entity_id,
            "horse_name": self.name,
            "labels": list(self.labels),
            "series": {m: list(v) for m, v in self.series.items()},
            "point_colors": list(self.point_colors),
            "y_range": list(self.y_range),
        }


def profile(entity: AggregatedEntity, window: int = DEFAULT_PROFILE_WINDOW) -> Profile:
    """One horse's official rating, rating and speed figure over its last runs.

    Missing or zero readings plot as 0. Each point is colored by the run's surface.
    """
    if isinstance(window, bool) or not isinstance(window, int) or window < 1:
        raise ValueError("window must be a positive integer")
    runs = sort_history(entity.history)[-window:]

    series: Dict[str, Tuple[float, ...]] = {}
    for m in PROFILE_METRICS:
        series[m] = tuple((r.metric(m) or 0.0) for r in runs)

    positives: List[float] = [v for vals in series.values() for v in vals if v > 0]
    y_range = (min(positives + [0.0]), max(positives + [100.0]))

    return Profile(
        entity_id=entity.entity_id,
        name=entity.name,
        labels=tuple(short_date(r.observation_date) for r in runs),
        series=series,
        point_colors=tuple(surface_color(r.fields.get("surface")) for r in runs),
        y_range=y_range,
    )
