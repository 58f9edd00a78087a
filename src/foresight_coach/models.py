"""Data classes for the learning journey domain model."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

QUESTIONS_PER_DAY = 5
DEFAULT_TOTAL_DAYS = 90

SKILL_TAGS = (
    "strategic_vision",
    "user_engineering",
    "leadership",
    "technical_mastery",
    "measurement",
)
SKILL_LEVELS = ("beginner", "practitioner", "proficient", "expert")
DESIRED_LEVELS = ("improve_little", "very_good", "become_excellent")
LANGUAGES = ("en", "fr")
LEARNING_PACES = ("relaxed", "moderate", "intensive")


def _dt_out(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt_in(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class DayState(str, Enum):
    NOT_STARTED = "not_started"
    STARTED = "started"
    QUIZZES_IN_PROGRESS = "quizzes_in_progress"
    READY_TO_COMPLETE = "ready_to_complete"
    COMPLETED = "completed"


@dataclass
class SkillEntry:
    skill: str
    current_level: int = 1
    desired_level: int = 5

    @classmethod
    def from_dict(cls, data) -> "SkillEntry":
        # Older profiles stored main skills as bare tag strings.
        if isinstance(data, str):
            return cls(skill=data)
        return cls(
            skill=data["skill"],
            current_level=data.get("current_level", 1),
            desired_level=data.get("desired_level", 5),
        )


@dataclass
class Profile:
    skill_level: str = "beginner"
    desired_level: str = "improve_little"
    profession: str = "other"
    age_group: Optional[str] = None
    main_skills: list[SkillEntry] = field(default_factory=list)
    goals: list[str] = field(default_factory=list)
    growth_areas: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        return cls(
            skill_level=data.get("skill_level", "beginner"),
            desired_level=data.get("desired_level", "improve_little"),
            profession=data.get("profession", "other"),
            age_group=data.get("age_group"),
            main_skills=[SkillEntry.from_dict(s) for s in data.get("main_skills", [])],
            goals=list(data.get("goals", [])),
            growth_areas=list(data.get("growth_areas", [])),
        )


@dataclass
class Preferences:
    language: str = "en"
    learning_pace: str = "moderate"
    daily_reminder: bool = True
    notification_time: str = "09:00"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class CoursePhase:
    name: str
    start_day: int
    end_day: int
    focus: str = ""


@dataclass
class Course:
    title: str
    duration: int
    focus_area: str
    learning_objectives: list[str] = field(default_factory=list)
    daily_structure: list[CoursePhase] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Course":
        return cls(
            title=data["title"],
            duration=data["duration"],
            focus_area=data.get("focus_area", ""),
            learning_objectives=list(data.get("learning_objectives", [])),
            daily_structure=[CoursePhase(**p) for p in data.get("daily_structure", [])],
        )


@dataclass
class MCQ:
    question: str
    options: list[str]
    correct_answer: str
    explanation: str = ""


@dataclass
class Lesson:
    title: str
    content: str
    mcqs: list[MCQ] = field(default_factory=list)
    image_ref: Optional[str] = None
    practical_exercise: Any = None
    key_takeaways: list[str] = field(default_factory=list)
    day: int = 1
    total_days: int = DEFAULT_TOTAL_DAYS
    duration: int = 15
    language: str = "en"
    generated_at: Optional[datetime] = None
    is_fallback: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["generated_at"] = _dt_out(self.generated_at)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Lesson":
        return cls(
            title=data["title"],
            content=data.get("content", ""),
            mcqs=[MCQ(**m) for m in data.get("mcqs", [])],
            image_ref=data.get("image_ref"),
            practical_exercise=data.get("practical_exercise"),
            key_takeaways=list(data.get("key_takeaways", [])),
            day=data.get("day", 1),
            total_days=data.get("total_days", DEFAULT_TOTAL_DAYS),
            duration=data.get("duration", 15),
            language=data.get("language", "en"),
            generated_at=_dt_in(data.get("generated_at")),
            is_fallback=data.get("is_fallback", False),
        )


@dataclass
class QuizCompletion:
    quiz_index: int
    selected: str
    is_correct: bool
    submitted_at: Optional[datetime] = None
    question: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["submitted_at"] = _dt_out(self.submitted_at)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "QuizCompletion":
        return cls(
            quiz_index=data["quiz_index"],
            selected=data["selected"],
            is_correct=data["is_correct"],
            submitted_at=_dt_in(data.get("submitted_at")),
            question=data.get("question", ""),
        )


@dataclass
class DayRecord:
    day: int
    completed_at: Optional[datetime] = None
    lesson_content: str = ""
    score: int = 0
    correct_answers: int = 0
    total_questions: int = QUESTIONS_PER_DAY
    lesson_quality_rating: Optional[int] = None
    quiz_completions: list[QuizCompletion] = field(default_factory=list)
    knowledge_gaps: list[str] = field(default_factory=list)

    def answered_indices(self) -> set[int]:
        return {c.quiz_index for c in self.quiz_completions}

    def to_dict(self) -> dict:
        data = asdict(self)
        data["completed_at"] = _dt_out(self.completed_at)
        data["quiz_completions"] = [c.to_dict() for c in self.quiz_completions]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DayRecord":
        return cls(
            day=data["day"],
            completed_at=_dt_in(data.get("completed_at")),
            lesson_content=data.get("lesson_content", ""),
            score=data.get("score", 0),
            correct_answers=data.get("correct_answers", 0),
            total_questions=data.get("total_questions", QUESTIONS_PER_DAY),
            lesson_quality_rating=data.get("lesson_quality_rating"),
            quiz_completions=[QuizCompletion.from_dict(c) for c in data.get("quiz_completions", [])],
            knowledge_gaps=list(data.get("knowledge_gaps", [])),
        )


@dataclass
class LearningJourney:
    current_course: Optional[Course] = None
    current_day: int = 1
    total_days: int = DEFAULT_TOTAL_DAYS
    last_lesson_date: Optional[datetime] = None
    current_lesson: Optional[Lesson] = None
    completed_days: list[DayRecord] = field(default_factory=list)
    streak: int = 0
    total_score: int = 0

    def record_for_day(self, day: int) -> Optional[DayRecord]:
        for record in self.completed_days:
            if record.day == day:
                return record
        return None

    def last_completed_record(self) -> Optional[DayRecord]:
        for record in reversed(self.completed_days):
            if record.completed_at is not None:
                return record
        return None

    def to_dict(self) -> dict:
        return {
            "current_course": self.current_course.to_dict() if self.current_course else None,
            "current_day": self.current_day,
            "total_days": self.total_days,
            "last_lesson_date": _dt_out(self.last_lesson_date),
            "current_lesson": self.current_lesson.to_dict() if self.current_lesson else None,
            "completed_days": [r.to_dict() for r in self.completed_days],
            "streak": self.streak,
            "total_score": self.total_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LearningJourney":
        course = data.get("current_course")
        lesson = data.get("current_lesson")
        return cls(
            current_course=Course.from_dict(course) if course else None,
            current_day=data.get("current_day", 1),
            total_days=data.get("total_days", DEFAULT_TOTAL_DAYS),
            last_lesson_date=_dt_in(data.get("last_lesson_date")),
            current_lesson=Lesson.from_dict(lesson) if lesson else None,
            completed_days=[DayRecord.from_dict(r) for r in data.get("completed_days", [])],
            streak=data.get("streak", 0),
            total_score=data.get("total_score", 0),
        )


@dataclass
class User:
    id: int
    email: str
    name: str
    profile: Profile = field(default_factory=Profile)
    preferences: Preferences = field(default_factory=Preferences)
    journey: LearningJourney = field(default_factory=LearningJourney)
    created_at: Optional[str] = None


@dataclass
class NextLessonTime:
    hours: int
    minutes: int
    next_available: datetime


@dataclass
class CourseCompleted:
    total_days: int
    days_completed: int
    message: str = "Course completed! Start a new learning journey."


@dataclass
class LessonSummary:
    score: str
    percentage: int
    correct_answers: int
    total_questions: int
    streak: int
    total_score: int
    quality_rating: Optional[int]
    knowledge_gaps: list[str]
    status: str
    next_lesson_time: NextLessonTime


@dataclass
class DashboardView:
    course_name: str
    completed_count: int
    average_score: int
    rating: str
    trend: str
    estimated_level: str
    current_day: int
    total_days: int
    streak: int
    next_lesson_time: NextLessonTime
