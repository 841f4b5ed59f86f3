"""raceform: form aggregation and timeline alignment for race cards.

- aggregation: group past runs per horse, join today's metadata
- timeline: align several horses onto one chart axis, single-horse profile
- exports: CSV writers and review reports
- api: Flask wrapper used by the mobile client
"""
