"""Button labels showing when a card would come back for each grade."""

from datetime import datetime, timedelta

from flashdeck.domain import constants
from flashdeck.domain.models import GRADE_LABELS, ReviewState

from .scheduler import SM2Scheduler, default_scheduler, round_half_up


def format_interval(delta: timedelta) -> str:
    """
    Compact human string for a due offset: 10m, 5h, 1d, 16d, 3mo, 2y.
    """
    seconds = delta.total_seconds()
    minutes = int(round_half_up(seconds / 60))
    hours = int(round_half_up(seconds / 3600))
    days = int(round_half_up(seconds / 86400))

    if minutes < constants.MINUTES_PER_HOUR:
        return f"{minutes}m"
    if hours < constants.HOURS_PER_DAY:
        return f"{hours}h"
    if days == 1:
        return "1d"
    if days < constants.DAYS_PER_MONTH:
        return f"{days}d"
    if days < constants.DAYS_PER_YEAR:
        return f"{int(round_half_up(days / constants.DAYS_PER_MONTH))}mo"
    return f"{int(round_half_up(days / constants.DAYS_PER_YEAR))}y"


def grade_previews(
    state: ReviewState,
    now: datetime,
    scheduler: SM2Scheduler | None = None,
) -> dict[str, str]:
    """
    Preview the due offset for each review button without committing anything.

    Returns:
        {"again": ..., "hard": ..., "good": ..., "easy": ...}
    """
    sched = scheduler or default_scheduler
    return {
        label: format_interval(sched.next(state, grade, now).next_due_at - now)
        for label, grade in GRADE_LABELS.items()
    }
