# tests/test_integration.py
"""End-to-end test of the core workflow."""
import threading
from datetime import datetime, timedelta

import pytest

from foresight_coach.db import create_user, get_archived_lessons, get_user, init_db
from foresight_coach.errors import DuplicateSubmissionError, ValidationError
from foresight_coach.journey import (
    calibrate_proficiency, complete_todays_lesson, fetch_todays_lesson, get_dashboard,
    get_learning_plan, start_todays_lesson, submit_quiz_answer, update_learning_plan,
    update_learning_preferences,
)
from foresight_coach.models import CourseCompleted, Preferences


def test_full_journey_workflow(tmp_db, generator):
    """Plan, three days of lessons, a missed stretch, and the dashboard."""
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    calibrate_proficiency(tmp_db, user.id, "practitioner", "very_good")

    course = get_learning_plan(tmp_db, user.id, generator)
    assert course.title == "Futures Thinking Bootcamp"
    assert get_user(tmp_db, user.id).journey.total_days == 30

    start = datetime(2024, 3, 1, 8, 0)
    scores = [3, 4, 5]
    for offset, correct in enumerate(scores):
        now = start + timedelta(days=offset)
        lesson = fetch_todays_lesson(tmp_db, user.id, generator, now)
        assert lesson.day == offset + 1
        start_todays_lesson(tmp_db, user.id, 4)
        for i in range(5):
            submit_quiz_answer(tmp_db, user.id, i, "Beta" if i < correct else "Alpha", now)
        with pytest.raises(DuplicateSubmissionError):
            submit_quiz_answer(tmp_db, user.id, 0, "Beta", now)
        summary = complete_todays_lesson(tmp_db, user.id, now)

    assert summary.streak == 3
    assert summary.status == "Well done!!"
    assert generator.lesson_requests[0].profile.skill_level == "practitioner"

    view = get_dashboard(tmp_db, user.id, start + timedelta(days=2, hours=12))
    assert view.completed_count == 3
    assert view.average_score == 80
    assert view.rating == "4.0"
    assert view.trend == "Trending Up"
    assert view.estimated_level == "Bachelor's Degree Level"

    fetch_todays_lesson(tmp_db, user.id, generator, start + timedelta(days=7))
    assert get_user(tmp_db, user.id).journey.streak == 0
    assert len(get_archived_lessons(tmp_db, user.id)) == 4


def test_course_completion_and_new_plan(tmp_db, generator):
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    update_learning_plan(tmp_db, user.id, generator, "leadership", 1)

    now = datetime(2024, 3, 1, 8, 0)
    fetch_todays_lesson(tmp_db, user.id, generator, now)
    start_todays_lesson(tmp_db, user.id, 5)
    for i in range(5):
        submit_quiz_answer(tmp_db, user.id, i, "B. Beta", now)
    complete_todays_lesson(tmp_db, user.id, now)

    result = fetch_todays_lesson(tmp_db, user.id, generator, now + timedelta(days=1))
    assert isinstance(result, CourseCompleted)

    update_learning_plan(tmp_db, user.id, generator, None, 5)
    journey = get_user(tmp_db, user.id).journey
    assert journey.current_day == 1
    assert journey.total_days == 5
    assert journey.completed_days == []


def test_generation_failure_still_serves_a_lesson(tmp_db, failing_generator):
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    lesson = fetch_todays_lesson(tmp_db, user.id, failing_generator, datetime(2024, 3, 1, 8, 0))
    assert lesson.is_fallback is True
    assert get_user(tmp_db, user.id).journey.current_lesson == lesson


def test_failed_operation_leaves_state_untouched(tmp_db, generator):
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    before = get_user(tmp_db, user.id).journey
    with pytest.raises(ValidationError):
        start_todays_lesson(tmp_db, user.id, 9)
    with pytest.raises(ValidationError):
        calibrate_proficiency(tmp_db, user.id, "wizard")
    assert get_user(tmp_db, user.id).journey == before


def test_concurrent_submissions_record_once(tmp_db, generator):
    """Two submissions for the same question race; only one is recorded."""
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    now = datetime(2024, 3, 1, 8, 0)
    fetch_todays_lesson(tmp_db, user.id, generator, now)
    start_todays_lesson(tmp_db, user.id, 4)

    barrier = threading.Barrier(2)
    accepted, rejected = [], []

    def submit(selected):
        barrier.wait()
        try:
            accepted.append(submit_quiz_answer(tmp_db, user.id, 0, selected, now))
        except DuplicateSubmissionError as e:
            rejected.append(e)

    threads = [threading.Thread(target=submit, args=(s,)) for s in ("Beta", "Alpha")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(accepted) == 1
    assert len(rejected) == 1
    record = get_user(tmp_db, user.id).journey.completed_days[0]
    assert len(record.quiz_completions) == 1
    assert record.quiz_completions[0].selected == accepted[0].selected


@pytest.mark.parametrize("kwargs", [
    {},
    {"language": "de"},
    {"learning_pace": "sprint"},
    {"notification_time": "9 o'clock"},
])
def test_update_learning_preferences_rejects_bad_input(tmp_db, kwargs):
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    with pytest.raises(ValidationError):
        update_learning_preferences(tmp_db, user.id, **kwargs)
    assert get_user(tmp_db, user.id).preferences == Preferences()


def test_update_learning_preferences_partial(tmp_db):
    init_db(tmp_db)
    user = create_user(tmp_db, "ada@example.com", "Ada")
    prefs = update_learning_preferences(tmp_db, user.id, notification_time="07:30", daily_reminder=False)
    assert prefs.notification_time == "07:30"
    assert get_user(tmp_db, user.id).preferences == Preferences(daily_reminder=False, notification_time="07:30")
