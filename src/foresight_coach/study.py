"""Daily lesson session management and progress tracking."""
from datetime import datetime
from typing import Optional, Union

from loguru import logger

from foresight_coach.daygate import days_elapsed, has_crossed_day, next_lesson_time
from foresight_coach.errors import IncompleteQuizzesError, NotFoundError, ValidationError
from foresight_coach.generator import (
    LessonRequest, generate_lesson_or_fallback, generate_plan_or_fallback,
)
from foresight_coach.models import (
    QUESTIONS_PER_DAY, Course, CourseCompleted, DayRecord, DayState, LearningJourney, Lesson,
    LessonSummary, Preferences, Profile, QuizCompletion,
)
from foresight_coach.quiz import quiz_status_label, recompute_day_score, submit_quiz
from foresight_coach.review import identify_gaps
from foresight_coach.streak import apply_streak_update


def is_course_completed(journey: LearningJourney) -> bool:
    return journey.current_day > journey.total_days


def day_state(journey: LearningJourney) -> DayState:
    """Lifecycle state of the current day's lesson."""
    record = journey.record_for_day(journey.current_day)
    if record is None:
        return DayState.NOT_STARTED
    if record.completed_at is not None:
        return DayState.COMPLETED
    answered = len(record.quiz_completions)
    if answered == 0:
        return DayState.STARTED
    if answered < QUESTIONS_PER_DAY:
        return DayState.QUIZZES_IN_PROGRESS
    return DayState.READY_TO_COMPLETE


def _needs_new_lesson(journey: LearningJourney, now: datetime) -> bool:
    lesson = journey.current_lesson
    if lesson is None or lesson.day != journey.current_day:
        return True
    if has_crossed_day(now, journey.last_lesson_date):
        return True
    if lesson.is_fallback:
        record = journey.record_for_day(journey.current_day)
        return record is None or not record.quiz_completions
    return False


def get_todays_lesson(
    journey: LearningJourney,
    profile: Profile,
    preferences: Preferences,
    generator,
    now: datetime,
) -> Union[Lesson, CourseCompleted]:
    """Return the cached lesson for today, generating a fresh one when due.

    A new lesson is requested when nothing is cached, the cached lesson
    belongs to another day, or a calendar day has passed since the last
    fetch. The cache and `last_lesson_date` are only written once a lesson
    (real or fallback) has been obtained.
    """
    if not _needs_new_lesson(journey, now):
        return journey.current_lesson

    if journey.last_lesson_date is not None and days_elapsed(now, journey.last_lesson_date) > 1:
        logger.info("Resetting streak of {}: no lesson for {} days",
                    journey.streak, days_elapsed(now, journey.last_lesson_date))
        journey.streak = 0

    if is_course_completed(journey):
        return CourseCompleted(total_days=journey.total_days, days_completed=len(journey.completed_days))

    request = LessonRequest(
        profile=profile,
        current_day=journey.current_day,
        total_days=journey.total_days,
        previous_days=list(journey.completed_days),
        language=preferences.language,
        pace=preferences.learning_pace,
        knowledge_gaps=identify_gaps(journey.completed_days),
    )
    lesson = generate_lesson_or_fallback(generator, request, now)
    journey.current_lesson = lesson
    journey.last_lesson_date = now
    return lesson


def start_lesson(journey: LearningJourney, rating) -> DayRecord:
    """Record the learner's quality rating for today's lesson.

    Calling this again on the same day updates the rating on the existing
    record instead of adding a second one.
    """
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ValidationError("Lesson quality rating must be an integer between 1 and 5")
    if is_course_completed(journey):
        raise ValidationError("The course is already completed")

    record = journey.record_for_day(journey.current_day)
    if record is None:
        lesson = journey.current_lesson
        content = lesson.content if lesson and lesson.day == journey.current_day else ""
        record = DayRecord(day=journey.current_day, lesson_content=content)
        journey.completed_days.append(record)
    record.lesson_quality_rating = rating
    record.knowledge_gaps = identify_gaps([record])
    return record


def submit_answer(journey: LearningJourney, quiz_index: int, selected: str, now: datetime) -> QuizCompletion:
    lesson = journey.current_lesson
    if lesson is None or lesson.day != journey.current_day:
        raise NotFoundError(f"No lesson has been generated for day {journey.current_day}")
    record = journey.record_for_day(journey.current_day)
    return submit_quiz(record, quiz_index, selected, lesson.mcqs, now)


def complete_lesson(journey: LearningJourney, now: datetime) -> LessonSummary:
    record = journey.record_for_day(journey.current_day)
    if record is None or len(record.quiz_completions) != QUESTIONS_PER_DAY:
        answered = len(record.quiz_completions) if record else 0
        raise IncompleteQuizzesError(
            f"Answer all {QUESTIONS_PER_DAY} quizzes before completing the lesson ({answered} answered)"
        )

    record.total_questions = QUESTIONS_PER_DAY
    recompute_day_score(record)
    record.knowledge_gaps = identify_gaps([record])
    apply_streak_update(journey, now)
    record.completed_at = now
    journey.total_score += record.score
    journey.current_day += 1
    logger.info("Completed day {} with {}% (streak {})", record.day, record.score, journey.streak)

    return LessonSummary(
        score=f"{record.correct_answers}/{record.total_questions}",
        percentage=record.score,
        correct_answers=record.correct_answers,
        total_questions=record.total_questions,
        streak=journey.streak,
        total_score=journey.total_score,
        quality_rating=record.lesson_quality_rating,
        knowledge_gaps=list(record.knowledge_gaps),
        status=quiz_status_label(record.correct_answers),
        next_lesson_time=next_lesson_time(now),
    )


def request_learning_plan(journey: LearningJourney, profile: Profile, generator) -> Course:
    """Return the current course, generating one on first request."""
    if journey.current_course is None:
        course = generate_plan_or_fallback(generator, profile)
        journey.current_course = course
        journey.total_days = course.duration
    return journey.current_course


def regenerate_learning_plan(
    journey: LearningJourney,
    profile: Profile,
    generator,
    focus_area: Optional[str] = None,
    duration: Optional[int] = None,
) -> Course:
    """Replace the course and restart the journey from day 1."""
    if duration is not None and (not isinstance(duration, int) or isinstance(duration, bool) or duration < 1):
        raise ValidationError("Course duration must be a positive number of days")
    course = generate_plan_or_fallback(generator, profile, focus_area, duration)
    journey.current_course = course
    journey.total_days = course.duration
    journey.current_day = 1
    journey.completed_days = []
    journey.streak = 0
    journey.total_score = 0
    journey.current_lesson = None
    journey.last_lesson_date = None
    logger.info("Learning plan regenerated: {} ({} days)", course.title, course.duration)
    return course
