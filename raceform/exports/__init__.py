"""Exports & reporting: CSV writers and Markdown review reports.

- writers.py: CSV emitters with fixed schemas
- reports.py: review report for horses with missing form or metadata
"""
