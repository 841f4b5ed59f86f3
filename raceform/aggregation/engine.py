from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import math

from loguru import logger

from raceform.aggregation.models import AggregatedEntity, CurrentMetadata, RawObservation

ObservationLike = Union[RawObservation, Dict[str, Any]]
MetadataLike = Union[CurrentMetadata, Dict[str, Any]]


def _parse_as_written(value: Any) -> Optional[datetime]:
    # keeps any UTC offset; the wall-clock fields are what the feed wrote
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d")
        except ValueError:
            return None


def parse_instant(value: Any) -> Optional[datetime]:
    """Parse an ISO-like date or datetime into a naive UTC datetime, for ordering.

    Accepts 'YYYY-MM-DD', 'YYYY-MM-DDTHH:MM:SS[.fff][Z|+hh:mm]' and date/datetime
    objects. Returns None for anything unparseable.
    """
    dt = _parse_as_written(value)
    if dt is not None and dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def calendar_date(value: Any) -> Optional[date]:
    """The race day as written in the feed: '2024-03-05T00:30:00+01:00' -> 5 March."""
    dt = _parse_as_written(value)
    return dt.date() if dt is not None else None


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def history_sort_key(obs: RawObservation) -> Tuple[int, datetime]:
    # undated rows first, then chronological; sorted() keeps ties stable
    instant = parse_instant(obs.observation_date)
    if instant is None:
        return (0, datetime.min)
    return (1, instant)


def sort_history(rows: Iterable[RawObservation]) -> List[RawObservation]:
    return sorted(rows, key=history_sort_key)


def recency_days(rows: Iterable[RawObservation]) -> Optional[int]:
    """Days since the last run: smallest valid weeks-since-run figure times 7.

    Rows may repeat the figure, so the minimum across the group wins. Rows with
    no usable date or a negative/missing figure are ignored. None when nothing
    qualifies.
    """
    weeks = [
        r.weeks_since_run
        for r in rows
        if r.weeks_since_run is not None
        and r.weeks_since_run >= 0
        and parse_instant(r.observation_date) is not None
    ]
    if not weeks:
        return None
    return round_half_up(min(weeks) * 7)


def is_entity_id(value: Any) -> bool:
    """A usable horse id: present and hashable (JSON may carry a list or object)."""
    if value is None:
        return False
    try:
        hash(value)
    except TypeError:
        return False
    return True


def _as_observation(row: ObservationLike) -> Optional[RawObservation]:
    if isinstance(row, RawObservation):
        return row
    if isinstance(row, dict):
        return RawObservation.from_row(row)
    return None


def _as_metadata(row: MetadataLike) -> Optional[CurrentMetadata]:
    if isinstance(row, CurrentMetadata):
        return row
    if isinstance(row, dict):
        return CurrentMetadata.from_row(row)
    return None


def aggregate(
    observations: Iterable[ObservationLike], metadata: Iterable[MetadataLike] = ()
) -> List[AggregatedEntity]:
    """Group past runs per horse and join today's metadata.

    - Rows without a usable horse id are dropped
    - Each history is sorted ascending by race date (stable for ties)
    - Metadata rows with no history still produce an entity with an empty history
    - Output order is first-seen id order; callers sort for display
    """
    info: Dict[Any, CurrentMetadata] = {}
    for raw in metadata or ():
        md = _as_metadata(raw)
        if md is None or not is_entity_id(md.entity_id):
            continue
        info[md.entity_id] = md  # last write wins

    grouped: Dict[Any, List[RawObservation]] = {}
    dropped = 0
    for raw in observations or ():
        obs = _as_observation(raw)
        if obs is None or not is_entity_id(obs.entity_id):
            dropped += 1
            continue
        grouped.setdefault(obs.entity_id, []).append(obs)
    if dropped:
        logger.warning("aggregate: dropped {} rows without a usable horse id", dropped)

    out: List[AggregatedEntity] = []
    for entity_id, rows in grouped.items():
        rows = sort_history(rows)
        md = info.get(entity_id) or CurrentMetadata.empty(entity_id)
        if not md.present:
            logger.warning("aggregate: horse {} has form but no metadata", entity_id)
        out.append(
            AggregatedEntity(
                entity_id=entity_id,
                name=rows[-1].entity_name or md.name,
                metadata=md,
                recency_days=recency_days(rows),
                history=tuple(rows),
            )
        )

    for entity_id, md in info.items():
        if entity_id in grouped:
            continue
        logger.warning("aggregate: horse {} has metadata but no form", entity_id)
        out.append(AggregatedEntity(entity_id=entity_id, name=md.name, metadata=md))

    logger.debug("aggregate: {} horses from {} form groups", len(out), len(grouped))
    return out


def _section_rows(payload: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    section = payload.get(key) or {}
    rows = section.get("data") if isinstance(section, dict) else None
    return [r for r in (rows or []) if isinstance(r, dict)]


def entities_from_payload(payload: Dict[str, Any]) -> List[AggregatedEntity]:
    """Aggregate race_form.data against race_info.data; missing sections are empty."""
    return aggregate(_section_rows(payload, "race_form"), _section_rows(payload, "race_info"))


def build_race_view(payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Turn a race payload into the shape the race screens render.

    Expects {race_details: {...}, race_info: {data: [...]}, race_form: {data: [...]}};
    returns {**race_details, horse_data: [...]}.
    """
    if payload is None:
        return None
    details = payload.get("race_details") or {}
    return {**details, "horse_data": [e.as_dict() for e in entities_from_payload(payload)]}
