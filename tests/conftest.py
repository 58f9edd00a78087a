from datetime import datetime

import pytest

from foresight_coach.errors import ExternalGenerationError
from foresight_coach.models import MCQ, Course, LearningJourney, Lesson, Preferences, Profile

QUESTIONS = [
    "Which strategic horizon fits a ten-year plan?",
    "What does user engineering start from?",
    "Which leadership habit supports foresight?",
    "Which technical signal is weakest?",
    "What measurement tracks scenario quality?",
]
OPTIONS = ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]


def build_lesson(day: int = 1, total_days: int = 10, is_fallback: bool = False) -> Lesson:
    return Lesson(
        title=f"Day {day} lesson",
        content=f"# Day {day}\n\nSome **markdown** content.",
        mcqs=[MCQ(question=q, options=list(OPTIONS), correct_answer="Beta", explanation="Because.") for q in QUESTIONS],
        day=day,
        total_days=total_days,
        generated_at=datetime(2024, 3, 1, 8, 0),
        is_fallback=is_fallback,
    )


class StubGenerator:
    """Generator double that records requests and can be made to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.lesson_requests = []
        self.plan_requests = []

    def generate_lesson(self, request):
        self.lesson_requests.append(request)
        if self.fail:
            raise ExternalGenerationError("service unavailable")
        return build_lesson(request.current_day, request.total_days)

    def generate_plan(self, profile, focus_area=None, duration=None):
        self.plan_requests.append((focus_area, duration))
        if self.fail:
            raise ExternalGenerationError("service unavailable")
        return Course(
            title="Futures Thinking Bootcamp",
            duration=duration or 30,
            focus_area=focus_area or "strategic_foresight",
            learning_objectives=["Scan signals", "Build scenarios"],
        )


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_coach.db")
    return db_path


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def failing_generator():
    return StubGenerator(fail=True)


@pytest.fixture
def journey():
    return LearningJourney(total_days=10)


@pytest.fixture
def profile():
    return Profile(skill_level="practitioner")


@pytest.fixture
def preferences():
    return Preferences()


@pytest.fixture
def lesson():
    return build_lesson()


@pytest.fixture
def lesson_factory():
    return build_lesson
