"""
Usage metering - append-only usage records per subscription and metric,
with current-period aggregation and plan limit checks.
"""
