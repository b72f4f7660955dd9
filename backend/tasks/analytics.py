# tasks/analytics.py

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from django.utils import timezone

from automation.models import AutomationRule

from .models import Task, TaskPriority
from .rule_engine.scoring import SECONDS_PER_DAY, parse_deadline
from .store import JsonFileStore, StoreReadError, data_dir

logger = logging.getLogger(__name__)

ANALYTICS_FILENAME = 'analytics.json'

EVENT_TASK_CREATED = 'task-created'
EVENT_TASK_COMPLETED = 'task-completed'
EVENT_AUTOMATION_RUN = 'automation-run'

_EVENT_COUNTERS = {
    EVENT_TASK_CREATED: 'totalTasksCreated',
    EVENT_TASK_COMPLETED: 'totalTasksCompleted',
    EVENT_AUTOMATION_RUN: 'totalAutomationRuns',
}

# Below this share of automated tasks the insights suggest more automation.
AUTOMATION_RATE_TARGET = 50


def empty_snapshot() -> Dict[str, Any]:
    return {
        'totalTasksCreated': 0,
        'totalTasksCompleted': 0,
        'totalAutomationRuns': 0,
        'averageCompletionTime': 0,
        'lastUpdated': timezone.now().isoformat(),
    }


class AnalyticsStore(JsonFileStore):
    """Running counters, one JSON object."""

    def __init__(self, path: str | Path | None = None) -> None:
        super().__init__(path or data_dir() / ANALYTICS_FILENAME, default_factory=empty_snapshot)

    def load_snapshot(self, strict: bool = False) -> Dict[str, Any]:
        payload = self.read(strict=strict)
        snapshot = empty_snapshot()
        if isinstance(payload, dict):
            snapshot.update(payload)
        else:
            logger.error(f"{self.path} does not hold an object; starting from zero.")
            if strict:
                raise StoreReadError(f"{self.path} does not hold an object")
        return snapshot

    def record_event(self, event: str) -> bool:
        """
        Bump the counter for `event`; unknown events only refresh lastUpdated.
        A damaged file is left alone and the event is dropped.
        """
        with self.locked():
            try:
                snapshot = self.load_snapshot(strict=True)
            except StoreReadError:
                return False
            counter = _EVENT_COUNTERS.get(event)
            if counter is not None:
                try:
                    snapshot[counter] = int(snapshot.get(counter) or 0) + 1
                except (TypeError, ValueError):
                    snapshot[counter] = 1
            else:
                logger.warning(f"Unknown analytics event {event!r}")
            snapshot['lastUpdated'] = timezone.now().isoformat()
            return self.write(snapshot)


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def build_analytics(
    snapshot: Dict[str, Any],
    tasks: Sequence[Task],
    rules: Sequence[AutomationRule],
) -> Dict[str, Any]:
    completed = [t for t in tasks if t.is_completed]
    automated = [t for t in tasks if t.automated]

    return {
        **snapshot,
        'currentStats': {
            'totalTasks': len(tasks),
            'completedTasks': len(completed),
            'automatedTasks': len(automated),
            'activeRules': sum(1 for r in rules if r.enabled),
            'totalAutomationExecutions': sum(r.executions for r in rules),
            'completionRate': _percentage(len(completed), len(tasks)),
            'automationRate': _percentage(len(automated), len(tasks)),
        },
    }


def _average_completion_days(tasks: Sequence[Task]) -> Optional[float]:
    durations = []
    for task in tasks:
        if not task.is_completed or not task.created_at or not task.updated_at:
            continue
        created = parse_deadline(task.created_at)
        updated = parse_deadline(task.updated_at)
        if created is None or updated is None:
            continue
        durations.append((updated - created).total_seconds())

    if not durations:
        return None
    return round(sum(durations) / len(durations) / SECONDS_PER_DAY, 1)


def generate_insights(tasks: Sequence[Task], now=None) -> List[Dict[str, str]]:
    """Plain-language observations about the task collection."""
    if now is None:
        now = timezone.now()
    insights: List[Dict[str, str]] = []

    categories = Counter(t.category for t in tasks)
    if categories:
        category, count = categories.most_common(1)[0]
        insights.append({
            'type': 'trend',
            'title': 'Task Category Trend',
            'description': (
                f"Most tasks are in {category} ({count} tasks). "
                "Consider creating specialized automation rules for this category."
            ),
        })

    avg_days = _average_completion_days(tasks)
    if avg_days is not None:
        insights.append({
            'type': 'performance',
            'title': 'Average Completion Time',
            'description': (
                f"Tasks are completed in an average of {avg_days} days. "
                "Automation could help reduce this time."
            ),
        })

    high_pending = sum(
        1 for t in tasks if t.priority == TaskPriority.HIGH and not t.is_completed
    )
    if high_pending:
        insights.append({
            'type': 'alert',
            'title': 'High Priority Items',
            'description': (
                f"{high_pending} high-priority tasks require attention. "
                "Consider delegating or automating similar tasks."
            ),
        })

    if tasks:
        rate = round(_percentage(sum(1 for t in tasks if t.automated), len(tasks)))
        if rate < AUTOMATION_RATE_TARGET:
            insights.append({
                'type': 'automation',
                'title': 'Automation Opportunity',
                'description': (
                    f"Only {rate}% of your tasks are automated. "
                    "Increase automation to save more time and reduce manual effort."
                ),
            })
        else:
            insights.append({
                'type': 'automation',
                'title': 'Excellent Automation Rate',
                'description': (
                    f"{rate}% of your tasks are automated. "
                    "You're on the right track to maximum efficiency!"
                ),
            })

    overdue = 0
    for task in tasks:
        deadline = parse_deadline(task.deadline)
        if deadline is not None and deadline < now and not task.is_completed:
            overdue += 1
    if overdue:
        insights.append({
            'type': 'alert',
            'title': 'Overdue Tasks Alert',
            'description': f"{overdue} tasks are overdue. Set up deadline alerts to stay on track.",
        })

    if not insights:
        insights.append({
            'type': 'status',
            'title': 'All Systems Optimal',
            'description': 'Your task management is running smoothly. Keep up the great work!',
        })

    return insights
