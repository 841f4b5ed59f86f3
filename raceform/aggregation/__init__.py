"""Entity aggregation: flat form rows -> one record per horse.

- models.py: RawObservation, CurrentMetadata, AggregatedEntity
- engine.py: aggregate(), build_race_view(), date/recency helpers
"""
