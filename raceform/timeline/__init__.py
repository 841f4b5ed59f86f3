"""Timeline alignment for comparison and profile charts.

- palette.py: series and surface colors
- aligner.py: shared axis + gap-filled series for several horses
- profile.py: one horse's metrics over its recent runs
"""
