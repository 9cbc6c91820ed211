"""Monitoring pipeline: fan-out, mention analysis, aggregation, recommendations, runs."""
