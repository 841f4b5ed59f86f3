import json
import sys
from pathlib import Path

from raceform.aggregation.engine import build_race_view, entities_from_payload
from raceform.config.env import get_align_config
from raceform.timeline.aligner import align


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: python -m raceform.cli <race.json> [metric]")
        sys.exit(2)
    payload = json.loads(Path(args[0]).read_text())
    if len(args) < 2:
        print(json.dumps(build_race_view(payload), indent=2, default=str))
        return
    cfg = get_align_config()
    try:
        result = align(
            entities_from_payload(payload),
            metric=args[1],
            max_entities=cfg.max_entities,
            history_window=cfg.history_window,
            axis_window=cfg.axis_window,
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)
    print(json.dumps(result.as_dict(), indent=2, default=str))


if __name__ == "__main__":
    main()
