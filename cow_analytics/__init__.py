"""
COW Movement Analytics

Ingests the cell-on-wheels movement spreadsheet export into a star schema
and derives utilization, dwell-time and regional deployment metrics.
"""

__version__ = "1.0.0"
