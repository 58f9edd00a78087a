"""Calendar-day boundaries: new-day detection and time until the next lesson."""
from datetime import datetime, time, timedelta
from typing import Optional

from foresight_coach.models import NextLessonTime


def has_crossed_day(now: datetime, last_lesson_date: Optional[datetime]) -> bool:
    """True once `now` falls on a later calendar date than the last lesson."""
    if last_lesson_date is None:
        return True
    return now.date() > last_lesson_date.date()


def days_elapsed(now: datetime, last_lesson_date: Optional[datetime]) -> int:
    """Whole calendar days between the two dates, ignoring time of day."""
    if last_lesson_date is None:
        return 0
    return (now.date() - last_lesson_date.date()).days


def next_lesson_time(now: datetime) -> NextLessonTime:
    next_midnight = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    remaining = int((next_midnight - now).total_seconds())
    return NextLessonTime(
        hours=remaining // 3600,
        minutes=(remaining % 3600) // 60,
        next_available=next_midnight,
    )
