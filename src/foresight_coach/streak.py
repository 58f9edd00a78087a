"""Consecutive-day streak tracking based on lesson completions."""
from datetime import datetime

from loguru import logger

from foresight_coach.daygate import days_elapsed
from foresight_coach.models import LearningJourney


def apply_streak_update(journey: LearningJourney, now: datetime) -> int:
    """Update the streak for a lesson completed at `now`.

    Must run before the current day's record is stamped as completed, so the
    gap is measured against the previous completion.

    Returns:
        The new streak value.
    """
    last = journey.last_completed_record()
    if last is None:
        journey.streak = 1
        return journey.streak

    gap = days_elapsed(now, last.completed_at)
    if gap == 0:
        return journey.streak
    if gap == 1:
        journey.streak += 1
    else:
        logger.info("Streak broken after {} days without a completion", gap)
        journey.streak = 1
    return journey.streak
