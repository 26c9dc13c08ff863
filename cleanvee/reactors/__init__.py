"""Event reactors invoked once per created document."""

from cleanvee.reactors.feedback import OccupantFeedbackReactor
from cleanvee.reactors.log_created import LogCreatedReactor, LogOutcome

__all__ = ["LogCreatedReactor", "LogOutcome", "OccupantFeedbackReactor"]
