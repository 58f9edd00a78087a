# tests/test_dashboard.py
from datetime import datetime

from foresight_coach.dashboard import (
    build_dashboard, estimated_level, format_rating, get_average_score, get_trend,
)
from foresight_coach.models import Course, DayRecord, LearningJourney

NOW = datetime(2024, 3, 1, 18, 0)


def _journey(*scores):
    return LearningJourney(
        completed_days=[DayRecord(day=i + 1, score=s, completed_at=NOW) for i, s in enumerate(scores)],
        total_score=sum(scores),
    )


def test_empty_dashboard():
    view = build_dashboard(LearningJourney(), NOW)
    assert view.course_name == "No Course"
    assert view.completed_count == 0
    assert view.average_score == 0
    assert view.rating == "0.0"
    assert view.trend == "Stable"
    assert view.estimated_level == "Beginner Level"
    assert view.next_lesson_time.hours == 6


def test_dashboard_with_two_days():
    journey = _journey(60, 80)
    journey.current_course = Course(title="Futures 101", duration=30, focus_area="strategic_foresight")
    view = build_dashboard(journey, NOW)
    assert view.course_name == "Futures 101"
    assert view.completed_count == 2
    assert view.average_score == 70
    assert view.rating == "3.5"
    assert view.trend == "Trending Up"
    assert view.estimated_level == "Bachelor's Degree Level"


def test_trend_down_when_equal_or_lower():
    assert get_trend(_journey(80, 60)) == "Trending Down"
    assert get_trend(_journey(80, 80)) == "Trending Down"
    assert get_trend(_journey(40)) == "Stable"


def test_average_rounds_half_up():
    assert get_average_score(_journey(60, 80, 80, 80)) == 75
    journey = LearningJourney(completed_days=[DayRecord(day=1), DayRecord(day=2)], total_score=141)
    assert get_average_score(journey) == 71


def test_format_rating():
    assert format_rating(70) == "3.5"
    assert format_rating(65) == "3.3"
    assert format_rating(100) == "5.0"
    assert format_rating(0) == "0.0"


def test_estimated_level_thresholds():
    assert estimated_level(5.0) == "Master's Degree Level"
    assert estimated_level(4.5) == "Master's Degree Level"
    assert estimated_level(4.4) == "Bachelor's Degree Level"
    assert estimated_level(3.5) == "Bachelor's Degree Level"
    assert estimated_level(2.5) == "Associate Degree Level"
    assert estimated_level(2.4) == "Beginner Level"


def test_dashboard_does_not_mutate():
    journey = _journey(20, 40, 100)
    before = journey.to_dict()
    build_dashboard(journey, NOW)
    assert journey.to_dict() == before
