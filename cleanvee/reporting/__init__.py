"""Reporting module for Cleanvee.

Maintains pre-aggregated counters for the dashboard.
"""

from cleanvee.reporting.daily_stats import aggregate_log_stats, record_log_stats, stats_row_id

__all__ = ["aggregate_log_stats", "record_log_stats", "stats_row_id"]
