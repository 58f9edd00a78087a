"""Quiz answer validation, submission and scoring."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from foresight_coach.errors import (
    DuplicateSubmissionError, InvalidSelectionError, LessonNotStartedError, ValidationError,
)
from foresight_coach.models import MCQ, DayRecord, QuizCompletion
from foresight_coach.review import identify_gaps

STATUS_LABELS = {
    0: "Ouch!!",
    1: "What Happen?",
    2: "Uh huh",
    3: "Fair",
    4: "Good",
    5: "Well done!!",
}


@dataclass
class SelectionResult:
    accepted: bool
    is_correct: bool
    option_index: int


def option_label(index: int) -> str:
    return chr(ord("A") + index)


def labelled_options(mcq: MCQ) -> list[str]:
    """Options as shown to the learner: "A. text", "B. text", ..."""
    return [f"{option_label(i)}. {opt.strip()}" for i, opt in enumerate(mcq.options)]


def _match_option(mcq: MCQ, selected: str) -> Optional[int]:
    for i, option in enumerate(mcq.options):
        text = option.strip()
        if selected == text or selected == f"{option_label(i)}. {text}":
            return i
    return None


def validate_selection(mcq: MCQ, selected: str) -> SelectionResult:
    """Check a submitted answer against one question.

    The answer may be the raw option text or the text prefixed with its
    positional label ("B. Dogs"). A label that does not match the option's
    position is rejected.
    """
    selected = (selected or "").strip()
    index = _match_option(mcq, selected)
    if index is None:
        raise InvalidSelectionError(f"'{selected}' is not one of the options for this question")
    correct = mcq.correct_answer.strip()
    is_correct = selected == correct or mcq.options[index].strip() == correct
    return SelectionResult(accepted=True, is_correct=is_correct, option_index=index)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def recompute_day_score(record: DayRecord) -> DayRecord:
    """Derive correct_answers and score from the record's quiz completions."""
    record.correct_answers = sum(1 for c in record.quiz_completions if c.is_correct)
    record.score = round_half_up(record.correct_answers / record.total_questions * 100)
    return record


def submit_quiz(
    day_record: Optional[DayRecord],
    quiz_index: int,
    selected: str,
    mcqs: list[MCQ],
    now: datetime,
) -> QuizCompletion:
    if day_record is None:
        raise LessonNotStartedError("Start the lesson before submitting quiz answers")
    if not isinstance(quiz_index, int) or isinstance(quiz_index, bool) or not 0 <= quiz_index < len(mcqs):
        raise ValidationError(f"Quiz index must be between 0 and {len(mcqs) - 1}")
    if quiz_index in day_record.answered_indices():
        raise DuplicateSubmissionError(f"Quiz {quiz_index} has already been submitted for day {day_record.day}")

    mcq = mcqs[quiz_index]
    result = validate_selection(mcq, selected)
    completion = QuizCompletion(
        quiz_index=quiz_index,
        selected=selected,
        is_correct=result.is_correct,
        submitted_at=now,
        question=mcq.question,
    )
    day_record.quiz_completions.append(completion)
    recompute_day_score(day_record)
    day_record.knowledge_gaps = identify_gaps([day_record])
    logger.debug("Day {} quiz {} submitted (correct={})", day_record.day, quiz_index, result.is_correct)
    return completion


def quiz_status_label(correct_answers: int) -> str:
    return STATUS_LABELS[max(0, min(correct_answers, len(STATUS_LABELS) - 1))]
