# Application Package
from .previews import format_interval, grade_previews
from .scheduler import SM2Scheduler, default_scheduler
from .session import SessionPhase, SessionState, StudySession

__all__ = [
    "SM2Scheduler",
    "default_scheduler",
    "format_interval",
    "grade_previews",
    "SessionPhase",
    "SessionState",
    "StudySession",
]
