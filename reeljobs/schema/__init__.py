"""SQLAlchemy table models."""

from .jobs import Job, JobEventRow
from .notifications import InAppNotification

__all__ = ["InAppNotification", "Job", "JobEventRow"]
