from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from raceform.aggregation.engine import calendar_date, is_entity_id, parse_instant, sort_history
from raceform.aggregation.models import METRICS, AggregatedEntity, RawObservation
from raceform.timeline.palette import series_color

DEFAULT_MAX_ENTITIES = 6
DEFAULT_HISTORY_WINDOW = 8
DEFAULT_AXIS_WINDOW = 10
LEGEND_MAX_CHARS = 12


@dataclass(frozen=True)
class AxisPoint:
    date: Optional[date]  # None only for the empty-axis placeholder
    label: str

    @staticmethod
    def placeholder() -> "AxisPoint":
        return AxisPoint(date=None, label="")

    @staticmethod
    def for_date(d: date) -> "AxisPoint":
        return AxisPoint(date=d, label=f"{d.day}/{d.month}")


@dataclass(frozen=True)
class AlignedSeries:
    entity_id: Any
    display_name: Optional[str]
    color: str
    values: Tuple[float, ...]
    real_indices: Tuple[int, ...] = ()

    @property
    def legend_label(self) -> str:
        name = self.display_name or ""
        return name[:LEGEND_MAX_CHARS] + "..." if len(name) > LEGEND_MAX_CHARS else name

    def real_points(self) -> List[Tuple[int, float]]:
        """(index, value) pairs where a dot should be drawn."""
        return [(i, self.values[i]) for i in self.real_indices]


@dataclass(frozen=True)
class Alignment:
    metric: str
    axis: Tuple[AxisPoint, ...]
    # rank order: cheapest price first
    series: Dict[Any, AlignedSeries] = field(default_factory=dict)

    @property
    def labels(self) -> List[str]:
        return [p.label for p in self.axis]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "metric": self.metric,
            "labels": self.labels,
            "axis": [
                {"date": p.date.isoformat() if p.date else None, "label": p.label}
                for p in self.axis
            ],
            "series": [
                {
                    "horse_id": s.entity_id,
                    "horse_name": s.display_name,
                    "legend": s.legend_label,
                    "color": s.color,
                    "values": list(s.values),
                    "real_indices": list(s.real_indices),
                }
                for s in self.series.values()
            ],
        }


def _check_count(name: str, value: Any, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")


def validate_align_params(metric: str, max_entities: int, history_window: int, axis_window: int) -> None:
    if metric not in METRICS:
        raise ValueError(f"metric must be one of {', '.join(METRICS)}")
    _check_count("max_entities", max_entities, 0)
    _check_count("history_window", history_window, 0)
    _check_count("axis_window", axis_window, 1)


def select_entities(
    entities: Sequence[AggregatedEntity],
    max_entities: int,
    selected: Optional[Collection[Any]] = None,
) -> List[AggregatedEntity]:
    """Cheapest `max_entities` horses, ascending by win price.

    Horses without a price go last; equal prices keep input order. `selected`
    may be a collection of ids or a {id: visible} toggle map; ids also match
    by their string form (JSON object keys).
    """
    pool = list(entities)
    if selected is not None:
        if isinstance(selected, dict):
            selected = [k for k, visible in selected.items() if visible]
        selected = [k for k in selected if is_entity_id(k)]
        wanted = set(selected) | {str(k) for k in selected}
        pool = [
            e for e in pool
            if is_entity_id(e.entity_id) and (e.entity_id in wanted or str(e.entity_id) in wanted)
        ]
    pool.sort(key=lambda e: (e.price is None, e.price if e.price is not None else 0.0))
    return pool[:max_entities]


def valid_history(entity: AggregatedEntity, metric: str, window: int) -> List[RawObservation]:
    """Most recent `window` runs with a date and a positive reading for `metric`."""
    if window <= 0:
        return []
    rows = [
        o
        for o in sort_history(entity.history)
        if parse_instant(o.observation_date) is not None
        and (o.metric(metric) or 0) > 0
    ]
    return rows[-window:]


def fill_series(raw: Sequence[Optional[float]]) -> Tuple[List[float], List[int]]:
    """Gap-fill one series laid over the shared axis.

    Edges are held at the nearest real value, interior gaps interpolate
    linearly by index distance. A series with no real value is all zeros.
    """
    real = [i for i, v in enumerate(raw) if v is not None]
    if not real:
        return [0.0] * len(raw), []

    filled = [0.0] * len(raw)
    first, last = real[0], real[-1]
    for i in range(first + 1):
        filled[i] = float(raw[first])
    for i0, i1 in zip(real, real[1:]):
        v0, v1 = float(raw[i0]), float(raw[i1])
        span = i1 - i0
        for j in range(i0 + 1, i1):
            filled[j] = v0 + (v1 - v0) * (j - i0) / span
        filled[i1] = v1
    for i in range(last, len(raw)):
        filled[i] = float(raw[last])
    return filled, real


def align(
    entities: Sequence[AggregatedEntity],
    metric: str = "rating",
    max_entities: int = DEFAULT_MAX_ENTITIES,
    history_window: int = DEFAULT_HISTORY_WINDOW,
    axis_window: int = DEFAULT_AXIS_WINDOW,
    selected: Optional[Collection[Any]] = None,
) -> Alignment:
    """Lay the selected horses' `metric` history onto one shared date axis.

    Steps:
    - keep the `max_entities` cheapest horses (optionally only those in `selected`)
    - per horse, keep the last `history_window` runs with a positive reading
    - axis = last `axis_window` distinct dates across those runs
    - per horse, mark the axis positions it actually ran on and gap-fill the rest

    With no dated readings at all the axis is a single blank point and every
    series is [0.0].
    """
    validate_align_params(metric, max_entities, history_window, axis_window)

    chosen = select_entities(entities, max_entities, selected)
    per_entity: List[Tuple[AggregatedEntity, Dict[date, float]]] = []
    all_dates: set[date] = set()
    for e in chosen:
        by_date: Dict[date, float] = {}
        for o in valid_history(e, metric, history_window):
            d = calendar_date(o.observation_date)
            by_date.setdefault(d, float(o.metric(metric)))  # first run that day wins
        all_dates.update(by_date)
        per_entity.append((e, by_date))

    recent = sorted(all_dates)[-axis_window:]
    axis = tuple(AxisPoint.for_date(d) for d in recent) or (AxisPoint.placeholder(),)

    series: Dict[Any, AlignedSeries] = {}
    for rank, (e, by_date) in enumerate(per_entity):
        raw = [by_date.get(d) for d in recent] if recent else [None]
        values, real = fill_series(raw)
        series[e.entity_id] = AlignedSeries(
            entity_id=e.entity_id,
            display_name=e.name,
            color=series_color(rank),
            values=tuple(values),
            real_indices=tuple(real),
        )

    logger.debug(
        "align: metric={} horses={} axis={} dated_points={}",
        metric, len(series), len(axis), len(all_dates),
    )
    return Alignment(metric=metric, axis=axis, series=series)
