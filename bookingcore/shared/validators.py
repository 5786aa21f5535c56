"""Shared validation utilities"""

import uuid
from datetime import datetime, time, timezone
from typing import Iterable, Optional, Union

from ..errors import ValidationError


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored timestamps"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_public_id() -> str:
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


def parse_time_of_day(value: Union[time, str, None]) -> Optional[time]:
    """
    Parse a clock time.

    Accepts datetime.time, "HH:MM", "HH:MM:SS" or 12h "HH:MM AM".

    Raises:
        ValidationError: If the string is not a recognised time format
    """
    if value is None or isinstance(value, time):
        return value

    raw = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time format: {value!r}. Expected HH:MM")


def validate_day_of_week(day: int) -> int:
    """Days run 0 (Sunday) through 6 (Saturday)"""
    if not isinstance(day, int) or day < 0 or day > 6:
        raise ValidationError(f"dayOfWeek must be between 0 and 6, got {day!r}")
    return day


def day_of_week(value) -> int:
    """Python weekday (Monday=0) converted to Sunday=0 numbering"""
    return (value.weekday() + 1) % 7


def validate_required_answers(questions: Iterable, answers: Optional[list]) -> None:
    """
    Ensure every required question has a non-blank answer.

    Args:
        questions: Question rows with id, question_text and is_required
        answers: list of {"questionId": ..., "answer": ...} dicts

    Raises:
        ValidationError: naming the first unanswered required question
    """
    by_question = {}
    for item in answers or []:
        if isinstance(item, dict) and "questionId" in item:
            by_question[item["questionId"]] = item.get("answer")

    for question in questions:
        if not question.is_required:
            continue
        answer = by_question.get(question.id)
        if answer is None or not str(answer).strip():
            raise ValidationError(f'Required question "{question.question_text}" must be answered')


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed to be UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
