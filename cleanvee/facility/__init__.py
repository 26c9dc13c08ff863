"""Checkpoint state maintenance."""

from cleanvee.facility.state import FacilityStateUpdater

__all__ = ["FacilityStateUpdater"]
