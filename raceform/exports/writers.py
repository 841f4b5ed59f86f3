from __future__ import annotations
from typing import List, Dict, Any, Iterable
import csv
import io

from raceform.aggregation.models import AggregatedEntity
from raceform.timeline.aligner import Alignment

SCHEMAS = {
    "entities": [
        "horse_id","horse_name","win_price","place_price","age","headgear","official_rating","days_since_last_ran","number_of_runs","runs_in_history"
    ],
    "alignment": [
        "horse_id","horse_name","color","index","date","label","value","is_real"
    ],
}


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
    w.writeheader()
    for r in rows:
        w.writerow({k: r.get(k) for k in columns})
    return buf.getvalue()


def write_entities(entities: Iterable[AggregatedEntity]) -> str:
    rows = (
        {
            "horse_id": e.entity_id,
            "horse_name": e.name,
            "win_price": e.metadata.win_price,
            "place_price": e.metadata.place_price,
            "age": e.metadata.age,
            "headgear": e.metadata.headgear,
            "official_rating": e.metadata.official_rating,
            "days_since_last_ran": e.recency_days,
            "number_of_runs": e.metadata.number_of_runs,
            "runs_in_history": len(e.history),
        }
        for e in entities
    )
    return write_csv(rows, SCHEMAS["entities"])


def write_alignment(alignment: Alignment) -> str:
    """Long format: one row per (horse, axis position)."""
    rows: List[Dict[str, Any]] = []
    for s in alignment.series.values():
        real = set(s.real_indices)
        for i, (point, value) in enumerate(zip(alignment.axis, s.values)):
            rows.append({
                "horse_id": s.entity_id,
                "horse_name": s.display_name,
                "color": s.color,
                "index": i,
                "date": point.date.isoformat() if point.date else "",
                "label": point.label,
                "value": value,
                "is_real": int(i in real),
            })
    return write_csv(rows, SCHEMAS["alignment"])
