# tasks/rule_engine/scoring.py

import datetime
import logging
from typing import Optional, Union

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..models import Task, TaskPriority
from .keywords import KeywordConfig

logger = logging.getLogger(__name__)

PRIORITY_BASE_SCORES = {
    TaskPriority.HIGH.value: 100,
    TaskPriority.MEDIUM.value: 50,
    TaskPriority.LOW.value: 25,
}

# (days-until-deadline upper bound, bonus); first bucket that fits wins.
DEADLINE_BONUSES = ((1, 50), (3, 30), (7, 15))

KEYWORD_BONUS = 20

# Strict "greater than" cut-offs used by the prioritize action.
HIGH_PRIORITY_THRESHOLD = 100
MEDIUM_PRIORITY_THRESHOLD = 50

SECONDS_PER_DAY = 24 * 60 * 60


def parse_deadline(value: Union[str, datetime.datetime, datetime.date, None]) -> Optional[datetime.datetime]:
    """
    Turn a stored deadline into an aware datetime.

    Accepts ISO datetimes, bare ISO dates (midnight UTC) and date/datetime
    objects. Anything unparseable yields None, which scores like "no deadline".
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        parsed = datetime.datetime.combine(value, datetime.time.min)
    else:
        text = str(value).strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                parsed = datetime.datetime.combine(day, datetime.time.min) if day else None
        except ValueError:
            parsed = None

    if parsed is None:
        logger.debug(f"Ignoring unparseable deadline {value!r}")
        return None

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, datetime.timezone.utc)
    return parsed


def _compute_base_score(priority: Optional[str]) -> int:
    return PRIORITY_BASE_SCORES.get((priority or '').lower(), 0)


def _compute_deadline_bonus(deadline, now: datetime.datetime) -> int:
    """Past deadlines have negative day counts and land in the tightest bucket."""
    parsed = parse_deadline(deadline)
    if parsed is None:
        return 0

    days_until = (parsed - now).total_seconds() / SECONDS_PER_DAY
    for limit, bonus in DEADLINE_BONUSES:
        if days_until < limit:
            return bonus
    return 0


def _compute_keyword_bonus(text: str, keywords) -> int:
    # Substring match, so "importantly" counts as "important".
    return sum(KEYWORD_BONUS for keyword in keywords if keyword in text)


def priority_for_score(score: int) -> str:
    if score > HIGH_PRIORITY_THRESHOLD:
        return TaskPriority.HIGH.value
    if score > MEDIUM_PRIORITY_THRESHOLD:
        return TaskPriority.MEDIUM.value
    return TaskPriority.LOW.value


class PriorityScorer:
    """
    Computes a task's urgency score:

        base(priority) + deadline proximity bonus + 20 per urgent keyword

    Pure: the only input besides the task is the reference time `now`.
    """

    def __init__(self, config: Optional[KeywordConfig] = None):
        self.config = config or KeywordConfig()

    def score(self, task: Task, now: Optional[datetime.datetime] = None) -> int:
        if now is None:
            now = timezone.now()
        elif timezone.is_naive(now):
            now = timezone.make_aware(now, datetime.timezone.utc)

        score = _compute_base_score(task.priority)
        score += _compute_deadline_bonus(task.deadline, now)
        score += _compute_keyword_bonus(task.text_blob(), self.config.urgent_keywords)
        return score


def calculate_task_priority(
    task: Task,
    now: Optional[datetime.datetime] = None,
    config: Optional[KeywordConfig] = None,
) -> int:
    return PriorityScorer(config).score(task, now=now)
