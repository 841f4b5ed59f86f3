from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
import math

METRICS: Tuple[str, ...] = ("rating", "speed_figure", "official_rating")


def as_number(value: Any) -> Optional[float]:
    """Return value as a float if it is a finite real number, else None.

    Strings are not accepted: metrics arrive as JSON numbers.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    f = float(value)
    return f if math.isfinite(f) else None


def as_int(value: Any) -> Optional[int]:
    # 4 and 4.0 are fine; "four" and 3.7 are not
    f = as_number(value)
    if f is None or not f.is_integer():
        return None
    return int(f)


def as_price(value: Any) -> Optional[float]:
    # Prices may arrive as "3.5" from the exchange feed
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    return as_number(value)


@dataclass(frozen=True)
class RawObservation:
    entity_id: Any
    observation_date: Optional[str]
    entity_name: Optional[str] = None
    weeks_since_run: Optional[float] = None
    metrics: Dict[str, Optional[float]] = field(default_factory=dict)
    # untouched source row, unknown keys included
    fields: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "RawObservation":
        date = row.get("race_date")
        return RawObservation(
            entity_id=row.get("horse_id"),
            observation_date=str(date) if date not in (None, "") else None,
            entity_name=row.get("horse_name") or None,
            weeks_since_run=as_number(row.get("total_weeks_since_run")),
            metrics={m: as_number(row.get(m)) for m in METRICS},
            fields=dict(row),
        )

    def metric(self, key: str) -> Optional[float]:
        if key in self.metrics:
            return self.metrics[key]
        return as_number(self.fields.get(key))


@dataclass(frozen=True)
class CurrentMetadata:
    entity_id: Any
    name: Optional[str] = None
    win_price: Optional[float] = None
    place_price: Optional[float] = None
    sim_place_price: Optional[float] = None
    age: Optional[int] = None
    headgear: Optional[str] = None
    official_rating: Optional[float] = None
    weight_carried_lbs: Optional[float] = None
    win_percentage: Optional[float] = None
    place_percentage: Optional[float] = None
    number_of_runs: Optional[int] = None
    selection_id: Optional[Any] = None
    market_id_win: Optional[str] = None
    market_id_place: Optional[str] = None
    present: bool = True  # False when no metadata row existed

    @staticmethod
    def empty(entity_id: Any) -> "CurrentMetadata":
        return CurrentMetadata(entity_id=entity_id, present=False)

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "CurrentMetadata":
        # bf_decimal_sp_win is the older name for today's win price
        win = row.get("betfair_win_sp")
        if win is None:
            win = row.get("bf_decimal_sp_win")
        return CurrentMetadata(
            entity_id=row.get("horse_id"),
            name=row.get("horse_name") or None,
            win_price=as_price(win),
            place_price=as_price(row.get("betfair_place_sp")),
            sim_place_price=as_price(row.get("sim_place_sp")),
            age=as_int(row.get("age")),
            headgear=row.get("headgear"),
            official_rating=as_number(row.get("official_rating")),
            weight_carried_lbs=as_number(row.get("weight_carried_lbs")),
            win_percentage=as_number(row.get("win_percentage")),
            place_percentage=as_number(row.get("place_percentage")),
            number_of_runs=as_int(row.get("number_of_runs")),
            selection_id=row.get("selection_id"),
            market_id_win=row.get("market_id_win"),
            market_id_place=row.get("market_id_place"),
        )


@dataclass(frozen=True)
class AggregatedEntity:
    entity_id: Any
    name: Optional[str]
    metadata: CurrentMetadata
    recency_days: Optional[int] = None
    history: Tuple[RawObservation, ...] = ()

    @property
    def price(self) -> Optional[float]:
        return self.metadata.win_price

    def as_dict(self) -> Dict[str, Any]:
        """Wire shape consumed by the race list and detail screens."""
        md = self.metadata
        return {
            "horse_id": self.entity_id,
            "horse_name": self.name,
            "todays_betfair_win_sp": md.win_price,
            "todays_betfair_place_sp": md.place_price,
            "todays_sim_place_sp": md.sim_place_price,
            "todays_horse_age": md.age,
            "todays_headgear": md.headgear,
            "todays_official_rating": md.official_rating,
            "todays_weight_carried": md.weight_carried_lbs,
            "todays_win_percentage": md.win_percentage,
            "todays_place_percentage": md.place_percentage,
            "todays_days_since_last_ran": self.recency_days,
            "number_of_runs": md.number_of_runs,
            "todays_selection_id": md.selection_id,
            "todays_market_id_win": md.market_id_win,
            "todays_market_id_place": md.market_id_place,
            "performance_data": [dict(o.fields) for o in self.history],
        }
