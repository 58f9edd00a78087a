"""Knowledge-gap identification from incorrect quiz answers."""
from foresight_coach.models import DayRecord

# Checked in order; the first keyword found in the question wins.
SKILL_KEYWORDS = [
    ("strategic", "strategic_vision"),
    ("engineering", "user_engineering"),
    ("leadership", "leadership"),
    ("technical", "technical_mastery"),
    ("measurement", "measurement"),
]

GAP_THRESHOLD = 1


def classify_skill(question: str) -> str:
    text = question.lower()
    for keyword, tag in SKILL_KEYWORDS:
        if keyword in text:
            return tag
    return "unknown"


def identify_gaps(day_records: list[DayRecord], threshold: int = GAP_THRESHOLD) -> list[str]:
    """Skill tags missed more than `threshold` times across the given records.

    Tags are returned in the order they first exceeded the threshold.
    """
    counts: dict[str, int] = {}
    gaps = []
    for record in day_records:
        for completion in record.quiz_completions:
            if completion.is_correct:
                continue
            tag = classify_skill(completion.question)
            counts[tag] = counts.get(tag, 0) + 1
            if counts[tag] == threshold + 1:
                gaps.append(tag)
    return gaps
