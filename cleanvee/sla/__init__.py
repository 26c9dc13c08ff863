"""SLA math, breach audit trail and the overdue-cleaning watchdog."""

from cleanvee.sla.calculator import is_breach, max_gap_for_building, max_gap_ms
from cleanvee.sla.events import SlaEventRecorder
from cleanvee.sla.watchdog import SlaWatchdog, WatchdogResult

__all__ = [
    "is_breach",
    "max_gap_for_building",
    "max_gap_ms",
    "SlaEventRecorder",
    "SlaWatchdog",
    "WatchdogResult",
]
