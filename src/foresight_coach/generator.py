"""AI plan and lesson generation with deterministic fallbacks."""
import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx
from loguru import logger

from foresight_coach.errors import ExternalGenerationError, InvalidSelectionError
from foresight_coach.models import (
    DEFAULT_TOTAL_DAYS, MCQ, QUESTIONS_PER_DAY, Course, CoursePhase, DayRecord, Lesson, Profile,
)
from foresight_coach.quiz import validate_selection

DEFAULT_FOCUS_AREA = "strategic_foresight"
LESSON_MINUTES = 15

FALLBACK_PHASES = [
    ("Foundations", "Core vocabulary and mindset"),
    ("Core Concepts", "Key methods and frameworks"),
    ("Applied Practice", "Exercises on real situations"),
    ("Advanced Topics", "Deeper techniques and trade-offs"),
    ("Mastery & Review", "Consolidation and review"),
]

LESSON_SYSTEM_PROMPTS = {
    "en": (
        "You are a daily lesson generator for strategic foresight training. "
        "Create engaging daily lessons that build on previous knowledge. "
        "Return JSON with: title, content (markdown), imageRef, mcqs (array of objects with "
        "question, options, correctAnswer, explanation), practicalExercise and keyTakeaways."
    ),
    "fr": (
        "Vous êtes un générateur de leçons quotidiennes pour la formation en prospective stratégique. "
        "Créez des leçons quotidiennes engageantes qui s'appuient sur les connaissances précédentes. "
        "Retournez du JSON avec: title, content (markdown), imageRef, mcqs (tableau d'objets avec "
        "question, options, correctAnswer, explanation), practicalExercise et keyTakeaways."
    ),
}

PLAN_SYSTEM_PROMPT = (
    "You are an AI learning planner. Create personalized learning journeys based on user profiles. "
    "Return JSON with: courseTitle, duration (days), focusArea, learningObjectives and dailyStructure "
    "(array of phases with name, startDay, endDay, focus)."
)


@dataclass
class LessonRequest:
    profile: Profile
    current_day: int
    total_days: int
    previous_days: list[DayRecord] = field(default_factory=list)
    language: str = "en"
    pace: str = "moderate"
    knowledge_gaps: list[str] = field(default_factory=list)


def build_phases(duration: int, phases=FALLBACK_PHASES) -> list[CoursePhase]:
    """Split `duration` days into consecutive phases of near-equal length."""
    phases = phases[:max(1, min(len(phases), duration))]
    result = []
    start = 1
    for i, (name, focus) in enumerate(phases):
        length = duration // len(phases) + (1 if i < duration % len(phases) else 0)
        end = start + length - 1
        result.append(CoursePhase(name=name, start_day=start, end_day=end, focus=focus))
        start = end + 1
    return result


def fallback_plan(focus_area: Optional[str] = None, duration: Optional[int] = None) -> Course:
    duration = duration or DEFAULT_TOTAL_DAYS
    return Course(
        title="Personalized Learning Journey",
        duration=duration,
        focus_area=focus_area or DEFAULT_FOCUS_AREA,
        learning_objectives=[
            "Master the core terminology",
            "Develop strategic thinking skills",
            "Apply foresight methods to real situations",
        ],
        daily_structure=build_phases(duration),
    )


def fallback_lesson(request: LessonRequest, now: Optional[datetime] = None) -> Lesson:
    fr = request.language == "fr"
    answer = "Explorer les futurs possibles" if fr else "Explore possible futures"
    return Lesson(
        title="Introduction à la Prospective Stratégique" if fr else "Introduction to Strategic Foresight",
        content=(
            "La prospective stratégique est une discipline qui vise à explorer les futurs possibles "
            "pour éclairer les actions présentes."
            if fr else
            "Strategic foresight is a discipline that aims to explore possible futures "
            "to inform present-day actions."
        ),
        mcqs=[
            MCQ(
                question=(
                    "Quel est l'objectif principal de la prospective stratégique ?"
                    if fr else "What is the main goal of strategic foresight?"
                ),
                options=[
                    "Prédire l'avenir avec précision" if fr else "Predict the future accurately",
                    answer,
                    "Analyser seulement le passé" if fr else "Only analyze the past",
                    "Créer des statistiques" if fr else "Create statistics",
                ],
                correct_answer=answer,
                explanation=(
                    "La prospective explore plusieurs futurs possibles plutôt que de prédire un seul avenir."
                    if fr else
                    "Foresight explores multiple possible futures rather than trying to predict a single one."
                ),
            )
        ],
        practical_exercise=(
            "Identifiez une tendance émergente dans votre secteur et imaginez trois scénarios possibles."
            if fr else
            "Identify one emerging trend in your industry and imagine three possible scenarios."
        ),
        key_takeaways=(
            ["Exploration de multiples futurs", "Prise de décision éclairée"]
            if fr else
            ["Exploring multiple futures", "Informed decision-making"]
        ),
        day=request.current_day,
        total_days=request.total_days,
        duration=LESSON_MINUTES,
        language=request.language,
        generated_at=now or datetime.now(),
        is_fallback=True,
    )


def parse_mcq(data: dict) -> MCQ:
    if not isinstance(data, dict) or not isinstance(data.get("options"), list):
        raise ExternalGenerationError(f"Malformed MCQ: {data!r}")
    options = [str(o).strip() for o in data["options"]]
    if len(options) < 2 or len(set(options)) != len(options):
        raise ExternalGenerationError("MCQ options must be at least two distinct strings")
    mcq = MCQ(
        question=str(data.get("question", "")).strip(),
        options=options,
        correct_answer=str(data.get("correctAnswer", "")).strip(),
        explanation=str(data.get("explanation", "")),
    )
    if not mcq.question:
        raise ExternalGenerationError("MCQ is missing its question")
    try:
        selection = validate_selection(mcq, mcq.correct_answer)
    except InvalidSelectionError as e:
        raise ExternalGenerationError(f"Correct answer is not an option: {mcq.correct_answer!r}") from e
    mcq.correct_answer = options[selection.option_index]
    return mcq


def parse_lesson(data: dict, request: LessonRequest, now: datetime) -> Lesson:
    raw_mcqs = data.get("mcqs")
    if not isinstance(raw_mcqs, list) or len(raw_mcqs) != QUESTIONS_PER_DAY:
        count = len(raw_mcqs) if isinstance(raw_mcqs, list) else 0
        raise ExternalGenerationError(f"Expected {QUESTIONS_PER_DAY} MCQs, got {count}")
    mcqs = [parse_mcq(m) for m in raw_mcqs]
    title, content = data.get("title"), data.get("content")
    if not (title and isinstance(title, str) and content and isinstance(content, str)):
        raise ExternalGenerationError("Lesson is missing its title or content")
    takeaways = data.get("keyTakeaways") or []
    if not isinstance(takeaways, list):
        takeaways = [takeaways]
    return Lesson(
        title=title,
        content=content,
        mcqs=mcqs,
        image_ref=data.get("imageRef"),
        practical_exercise=data.get("practicalExercise"),
        key_takeaways=[str(t) for t in takeaways],
        day=request.current_day,
        total_days=request.total_days,
        duration=LESSON_MINUTES,
        language=request.language,
        generated_at=now,
    )


def parse_plan(data: dict, focus_area: Optional[str], duration: Optional[int]) -> Course:
    try:
        days = int(data.get("duration") or duration or DEFAULT_TOTAL_DAYS)
    except (TypeError, ValueError) as e:
        raise ExternalGenerationError(f"Invalid plan duration: {data.get('duration')!r}") from e
    if not data.get("courseTitle") or days < 1:
        raise ExternalGenerationError("Plan is missing its title or has no days")
    structure = data.get("dailyStructure")
    if isinstance(structure, list) and structure and all(isinstance(p, dict) for p in structure):
        try:
            phases = [
                CoursePhase(
                    name=str(p.get("name") or p.get("phase") or f"Phase {i + 1}"),
                    start_day=int(p.get("startDay", 1)),
                    end_day=int(p.get("endDay", days)),
                    focus=str(p.get("focus", "")),
                )
                for i, p in enumerate(structure)
            ]
        except (TypeError, ValueError, AttributeError) as e:
            raise ExternalGenerationError(f"Invalid plan phase: {e}") from e
    else:
        phases = build_phases(days)
    objectives = data.get("learningObjectives") or []
    if not isinstance(objectives, list):
        raise ExternalGenerationError(f"Invalid learning objectives: {objectives!r}")
    return Course(
        title=str(data["courseTitle"]),
        duration=days,
        focus_area=str(data.get("focusArea") or focus_area or DEFAULT_FOCUS_AREA),
        learning_objectives=[str(o) for o in objectives],
        daily_structure=phases,
    )


class MistralGenerator:
    """Plan and lesson generator backed by the Mistral chat completions API."""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.mistral.ai/v1",
        model: str = "mistral-small",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def _complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> dict:
        if not self.api_key:
            raise ExternalGenerationError("No Mistral API key configured")
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.7,
            "response_format": {"type": "json_object"},
        }
        if max_tokens:
            body["max_tokens"] = max_tokens
        # httpx timeouts bound each read, the deadline bounds the whole call
        deadline = time.monotonic() + self.timeout
        try:
            with httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self.transport) as client:
                with client.stream(
                    "POST",
                    f"{self.api_url}/chat/completions",
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                ) as response:
                    response.raise_for_status()
                    chunks = []
                    for chunk in response.iter_bytes():
                        if time.monotonic() > deadline:
                            raise ExternalGenerationError(f"Generation exceeded {self.timeout}s")
                        chunks.append(chunk)
            content = json.loads(b"".join(chunks))["choices"][0]["message"]["content"]
            data = json.loads(content)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            raise ExternalGenerationError(f"Generation request failed: {e}") from e
        if not isinstance(data, dict):
            raise ExternalGenerationError("Generator did not return a JSON object")
        return data

    def generate_plan(self, profile: Profile, focus_area: Optional[str] = None,
                      duration: Optional[int] = None) -> Course:
        prompt = (
            "Create a personalized learning plan for:\n"
            f"Skill Level: {profile.skill_level}\n"
            f"Desired Level: {profile.desired_level}\n"
            f"Main Skills: {', '.join(s.skill for s in profile.main_skills)}\n"
            f"Goals: {', '.join(profile.goals)}\n"
            f"Growth Areas: {', '.join(profile.growth_areas)}\n"
            f"Focus Area: {focus_area or DEFAULT_FOCUS_AREA}\n"
            f"Duration: {duration or DEFAULT_TOTAL_DAYS} days"
        )
        return parse_plan(self._complete(PLAN_SYSTEM_PROMPT, prompt), focus_area, duration)

    def generate_lesson(self, request: LessonRequest) -> Lesson:
        prompt = (
            f"Generate day {request.current_day}/{request.total_days} lesson for:\n"
            f"User Level: {request.profile.skill_level}\n"
            f"Learning Pace: {request.pace}\n"
            f"Previous Days Completed: {len(request.previous_days)}\n"
            f"Knowledge Gaps: {', '.join(request.knowledge_gaps) or 'none'}\n"
            f"Language: {request.language}\n\n"
            "Focus on practical, engaging content that builds on previous learning. "
            f"Include exactly {QUESTIONS_PER_DAY} MCQs with 5 options each and explanations."
        )
        system = LESSON_SYSTEM_PROMPTS.get(request.language, LESSON_SYSTEM_PROMPTS["en"])
        data = self._complete(system, prompt, max_tokens=2000)
        return parse_lesson(data, request, datetime.now())


def generate_plan_or_fallback(generator, profile: Profile, focus_area: Optional[str] = None,
                              duration: Optional[int] = None) -> Course:
    try:
        return generator.generate_plan(profile, focus_area, duration)
    except ExternalGenerationError as e:
        logger.warning("Plan generation failed, using fallback plan: {}", e)
        return fallback_plan(focus_area, duration)


def generate_lesson_or_fallback(generator, request: LessonRequest, now: Optional[datetime] = None) -> Lesson:
    try:
        lesson = generator.generate_lesson(request)
    except ExternalGenerationError as e:
        logger.warning("Lesson generation failed for day {}, using fallback lesson: {}", request.current_day, e)
        return fallback_lesson(request, now)
    logger.info("Generated lesson for day {}/{}: {}", request.current_day, request.total_days, lesson.title)
    return lesson
