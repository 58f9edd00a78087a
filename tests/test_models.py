"""Tests for data model classes."""
from datetime import datetime

from foresight_coach.models import (
    Course, CoursePhase, DayRecord, LearningJourney, Lesson, Preferences, Profile, QuizCompletion,
    SkillEntry,
)


def test_journey_defaults():
    j = LearningJourney()
    assert j.current_course is None
    assert j.current_day == 1
    assert j.total_days == 90
    assert j.last_lesson_date is None
    assert j.current_lesson is None
    assert j.completed_days == []
    assert j.streak == 0
    assert j.total_score == 0


def test_day_record_defaults():
    r = DayRecord(day=3)
    assert r.total_questions == 5
    assert r.score == 0
    assert r.completed_at is None
    assert r.lesson_quality_rating is None
    assert r.quiz_completions == []
    assert r.knowledge_gaps == []


def test_preferences_defaults():
    p = Preferences()
    assert p.language == "en"
    assert p.learning_pace == "moderate"
    assert p.daily_reminder is True
    assert p.notification_time == "09:00"


def test_preferences_ignore_unknown_keys():
    p = Preferences.from_dict({"language": "fr", "notificationsEnabled": True})
    assert p.language == "fr"


def test_legacy_plain_string_skills_are_migrated():
    profile = Profile.from_dict({"main_skills": ["leadership", {"skill": "measurement", "current_level": 4}]})
    assert profile.main_skills == [
        SkillEntry(skill="leadership", current_level=1, desired_level=5),
        SkillEntry(skill="measurement", current_level=4, desired_level=5),
    ]
    assert profile.to_dict()["main_skills"][0] == {"skill": "leadership", "current_level": 1, "desired_level": 5}


def test_record_lookup_and_last_completed():
    done = DayRecord(day=1, completed_at=datetime(2024, 3, 1))
    open_day = DayRecord(day=2)
    j = LearningJourney(completed_days=[done, open_day])
    assert j.record_for_day(2) is open_day
    assert j.record_for_day(5) is None
    assert j.last_completed_record() is done


def test_answered_indices():
    r = DayRecord(day=1, quiz_completions=[QuizCompletion(0, "a", True), QuizCompletion(3, "b", False)])
    assert r.answered_indices() == {0, 3}


def test_full_journey_serializes_to_plain_json_types(lesson):
    j = LearningJourney(
        current_course=Course(
            title="Futures", duration=10, focus_area="strategic_foresight",
            daily_structure=[CoursePhase("Foundations", 1, 10)],
        ),
        current_lesson=lesson,
        last_lesson_date=datetime(2024, 3, 1, 9, 0),
        completed_days=[DayRecord(day=1, completed_at=datetime(2024, 3, 1, 10, 0))],
    )
    data = j.to_dict()
    assert data["last_lesson_date"] == "2024-03-01T09:00:00"
    assert data["current_lesson"]["generated_at"] == "2024-03-01T08:00:00"
    assert data["completed_days"][0]["completed_at"] == "2024-03-01T10:00:00"
    assert LearningJourney.from_dict(data) == j


def test_lesson_from_minimal_dict():
    lesson = Lesson.from_dict({"title": "T"})
    assert lesson.content == ""
    assert lesson.mcqs == []
    assert lesson.generated_at is None
    assert lesson.is_fallback is False
