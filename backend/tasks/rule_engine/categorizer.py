# tasks/rule_engine/categorizer.py

import logging
from typing import Optional

from ..models import Task
from .keywords import KeywordConfig

logger = logging.getLogger(__name__)


class TaskCategorizer:
    """
    Keyword-count categorizer.

    Every category in the table gets one point per keyword found (substring
    match) in the task's title + description. The category with the strictly
    greatest count wins; on a tie the earlier category in the table wins.
    With no match at all the task keeps its current category, or falls back
    to the table's default.
    """

    def __init__(self, config: Optional[KeywordConfig] = None):
        self.config = config or KeywordConfig()

    def categorize(self, task: Task) -> str:
        text = task.text_blob()

        best_category = task.category or self.config.default_category
        max_matches = 0

        for category, keywords in self.config.category_keywords:
            matches = self._count_matches(text, keywords)
            if matches > max_matches:
                max_matches = matches
                best_category = category

        logger.debug(f"Categorized task {task.id!r} as {best_category} ({max_matches} keyword hits)")
        return best_category

    @staticmethod
    def _count_matches(text: str, keywords) -> int:
        return sum(1 for word in keywords if word in text)


def categorize_task(task: Task, config: Optional[KeywordConfig] = None) -> str:
    return TaskCategorizer(config).categorize(task)
