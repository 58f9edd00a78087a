"""Progress dashboard scoring and statistics."""
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from foresight_coach.daygate import next_lesson_time
from foresight_coach.models import DashboardView, LearningJourney
from foresight_coach.quiz import round_half_up


def estimated_level(rating: float) -> str:
    if rating >= 4.5:
        return "Master's Degree Level"
    elif rating >= 3.5:
        return "Bachelor's Degree Level"
    elif rating >= 2.5:
        return "Associate Degree Level"
    return "Beginner Level"


def get_average_score(journey: LearningJourney) -> int:
    count = len(journey.completed_days)
    if count == 0:
        return 0
    return round_half_up(journey.total_score / count)


def format_rating(average_score: int) -> str:
    """Average score on a 0-5 scale with one decimal, e.g. 70 -> "3.5"."""
    rating = Decimal(average_score) / Decimal(20)
    return str(rating.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def get_trend(journey: LearningJourney) -> str:
    days = journey.completed_days
    if len(days) < 2:
        return "Stable"
    return "Trending Up" if days[-1].score > days[-2].score else "Trending Down"


def build_dashboard(journey: LearningJourney, now: datetime) -> DashboardView:
    average = get_average_score(journey)
    rating = format_rating(average)
    return DashboardView(
        course_name=journey.current_course.title if journey.current_course else "No Course",
        completed_count=len(journey.completed_days),
        average_score=average,
        rating=rating,
        trend=get_trend(journey),
        estimated_level=estimated_level(float(rating)),
        current_day=journey.current_day,
        total_days=journey.total_days,
        streak=journey.streak,
        next_lesson_time=next_lesson_time(now),
    )
