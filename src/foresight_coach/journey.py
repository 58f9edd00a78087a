"""Per-user operations: load the aggregate, apply one engine step, persist."""
from datetime import datetime
from typing import Optional, Union

from foresight_coach import dashboard, study
from foresight_coach.config import Settings, get_settings
from foresight_coach.db import archive_lesson, get_user, user_transaction
from foresight_coach.errors import ValidationError
from foresight_coach.generator import MistralGenerator
from foresight_coach.models import (
    DESIRED_LEVELS, LANGUAGES, LEARNING_PACES, SKILL_LEVELS, Course, CourseCompleted, DashboardView,
    DayRecord, Lesson, LessonSummary, Preferences, QuizCompletion,
)


def make_generator(settings: Optional[Settings] = None) -> MistralGenerator:
    settings = settings or get_settings()
    return MistralGenerator(
        api_key=settings.mistral_api_key,
        api_url=settings.mistral_api_url,
        model=settings.mistral_model,
        timeout=settings.generation_timeout,
    )


def _lock_timeout() -> float:
    return get_settings().db_busy_timeout


def calibrate_proficiency(db_path: str, user_id: int, skill_level: Optional[str] = None,
                          desired_level: Optional[str] = None) -> None:
    skill_level = skill_level or "beginner"
    desired_level = desired_level or "improve_little"
    if skill_level not in SKILL_LEVELS:
        raise ValidationError(f"Skill level must be one of: {', '.join(SKILL_LEVELS)}")
    if desired_level not in DESIRED_LEVELS:
        raise ValidationError(f"Desired level must be one of: {', '.join(DESIRED_LEVELS)}")
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        user.profile.skill_level = skill_level
        user.profile.desired_level = desired_level


def get_learning_plan(db_path: str, user_id: int, generator) -> Course:
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        return study.request_learning_plan(user.journey, user.profile, generator)


def update_learning_plan(db_path: str, user_id: int, generator, focus_area: Optional[str] = None,
                         duration: Optional[int] = None) -> Course:
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        return study.regenerate_learning_plan(user.journey, user.profile, generator, focus_area, duration)


def fetch_todays_lesson(db_path: str, user_id: int, generator,
                        now: Optional[datetime] = None) -> Union[Lesson, CourseCompleted]:
    now = now or datetime.now()
    with user_transaction(db_path, user_id, _lock_timeout()) as (conn, user):
        previous = user.journey.current_lesson
        result = study.get_todays_lesson(user.journey, user.profile, user.preferences, generator, now)
        if isinstance(result, Lesson) and result is not previous:
            archive_lesson(conn, user.id, result)
        return result


def start_todays_lesson(db_path: str, user_id: int, rating: int) -> DayRecord:
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        return study.start_lesson(user.journey, rating)


def submit_quiz_answer(db_path: str, user_id: int, quiz_index: int, selected: str,
                       now: Optional[datetime] = None) -> QuizCompletion:
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        return study.submit_answer(user.journey, quiz_index, selected, now or datetime.now())


def complete_todays_lesson(db_path: str, user_id: int, now: Optional[datetime] = None) -> LessonSummary:
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        return study.complete_lesson(user.journey, now or datetime.now())


def get_dashboard(db_path: str, user_id: int, now: Optional[datetime] = None) -> DashboardView:
    return dashboard.build_dashboard(get_user(db_path, user_id).journey, now or datetime.now())


def update_learning_preferences(db_path: str, user_id: int, language: Optional[str] = None,
                                learning_pace: Optional[str] = None, daily_reminder: Optional[bool] = None,
                                notification_time: Optional[str] = None) -> Preferences:
    if language is None and learning_pace is None and daily_reminder is None and notification_time is None:
        raise ValidationError("At least one preference must be provided")
    if language is not None and language not in LANGUAGES:
        raise ValidationError(f"Language must be one of: {', '.join(LANGUAGES)}")
    if learning_pace is not None and learning_pace not in LEARNING_PACES:
        raise ValidationError(f"Learning pace must be one of: {', '.join(LEARNING_PACES)}")
    if notification_time is not None:
        try:
            datetime.strptime(notification_time, "%H:%M")
        except ValueError as e:
            raise ValidationError("Notification time must look like HH:MM") from e
    with user_transaction(db_path, user_id, _lock_timeout()) as (_, user):
        prefs = user.preferences
        if language is not None:
            prefs.language = language
        if learning_pace is not None:
            prefs.learning_pace = learning_pace
        if daily_reminder is not None:
            prefs.daily_reminder = daily_reminder
        if notification_time is not None:
            prefs.notification_time = notification_time
        return prefs
