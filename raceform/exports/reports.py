from __future__ import annotations
from typing import Iterable, List

from raceform.aggregation.models import AggregatedEntity


def review_report_md(entities: Iterable[AggregatedEntity]) -> str:
    """List horses whose records look incomplete.

    A horse with metadata but no form may be a debutant or a feed gap; a horse
    with form but no metadata is not in today's field data. Both are kept by
    the aggregator and surfaced here for review.
    """
    entities = list(entities)
    no_form: List[AggregatedEntity] = [e for e in entities if not e.history]
    no_meta: List[AggregatedEntity] = [e for e in entities if not e.metadata.present]

    lines = ["# Form Review", ""]
    lines.append(f"- horses: {len(entities)}")
    lines.append(f"- without form: {len(no_form)}")
    lines.append(f"- without metadata: {len(no_meta)}")
    if no_form:
        lines.append("\n## Without form")
        for e in no_form:
            lines.append(f"- {e.entity_id}: {e.name or 'unknown'}")
    if no_meta:
        lines.append("\n## Without metadata")
        for e in no_meta:
            lines.append(f"- {e.entity_id}: {e.name or 'unknown'} ({len(e.history)} runs)")
    return "\n".join(lines) + "\n"
