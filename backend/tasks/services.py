# tasks/services.py
"""
Task service layer.

Owns the task lifecycle on top of the JSON TaskStore:
- creation runs the automation engine before the task is persisted
- completion transitions and automation runs are reported to analytics
  through the Celery task, fire-and-forget
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from django.utils import timezone

from .models import Task, TaskStatus
from .rule_engine import AutomationEngine, AutomationResult, PriorityScorer
from .rule_engine.keywords import keyword_config_from_settings
from .store import StoreReadError, TaskStore
from .analytics import EVENT_AUTOMATION_RUN, EVENT_TASK_COMPLETED, EVENT_TASK_CREATED
from .tasks import record_analytics_event

logger = logging.getLogger(__name__)


class TaskNotFoundError(Exception):
    """Raised when no task with the requested id exists."""

    pass


class DuplicateTaskError(Exception):
    """Raised when a client-supplied id is already taken."""

    pass


class TaskPersistenceError(Exception):
    """Raised when the task collection could not be written."""

    pass


def _now_iso() -> str:
    return timezone.now().isoformat()


def _enqueue_event(event: str) -> None:
    try:
        record_analytics_event.delay(event)
    except Exception as e:
        # Broker unreachable: analytics is best-effort.
        logger.error(f"Could not enqueue analytics event {event!r}: {str(e)}")


class TaskService:

    def __init__(
        self,
        store: Optional[TaskStore] = None,
        engine: Optional[AutomationEngine] = None,
    ):
        self.store = store if store is not None else TaskStore()
        self._engine = engine

    @property
    def engine(self) -> AutomationEngine:
        # Built lazily: read-only endpoints never need the rule store.
        if self._engine is None:
            self._engine = AutomationEngine()
        return self._engine

    def _load_for_write(self) -> List[Task]:
        # A damaged tasks file must not be replaced by a one-task collection.
        try:
            return self.store.load_tasks(strict=True)
        except StoreReadError as e:
            raise TaskPersistenceError(str(e)) from e

    def list_tasks(
        self,
        priority: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Task]:
        tasks = self.store.load_tasks()
        if priority:
            tasks = [t for t in tasks if t.priority == priority]
        if status:
            tasks = [t for t in tasks if t.status == status]
        if search:
            needle = search.lower()
            tasks = [t for t in tasks if needle in t.title.lower() or needle in t.description.lower()]
        return tasks

    def get_task(self, task_id: str) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def create_task(self, payload: Dict[str, Any]) -> AutomationResult:
        """
        Build a task from validated input, run the automation pass on it,
        fill in a category if none was set, then persist it at the head of
        the collection.
        """
        task_id = str(payload.get('id') or uuid.uuid4().hex)
        now = _now_iso()
        data = dict(payload)
        data.update({'id': task_id, 'createdAt': now, 'updatedAt': now})
        data.setdefault('status', TaskStatus.PENDING.value)
        task = Task.from_dict(data)

        # The id check and the rule pass share the task lock, so a rejected
        # duplicate never advances rule counters.
        with self.store.locked():
            tasks = self._load_for_write()
            if any(t.id == task.id for t in tasks):
                raise DuplicateTaskError(task.id)

            result = self.engine.apply_rules(task)

            if not task.category:
                task.category = self.engine.categorizer.categorize(task)

            tasks.insert(0, task)
            if not self.store.save_tasks(tasks):
                raise TaskPersistenceError(f"Could not save task {task.id}")

        logger.info(
            f"Task {task.id} created (priority={task.priority}, category={task.category}, "
            f"rules={result.applied_rules})"
        )

        _enqueue_event(EVENT_TASK_CREATED)
        if result.applied_rules:
            _enqueue_event(EVENT_AUTOMATION_RUN)

        return result

    def update_task(self, task_id: str, changes: Dict[str, Any]) -> Task:
        """Merge `changes` over the stored task; the id and createdAt never change."""
        changes = {k: v for k, v in changes.items() if k not in ('id', 'createdAt')}

        with self.store.locked():
            tasks = self._load_for_write()
            index = next((i for i, t in enumerate(tasks) if t.id == task_id), None)
            if index is None:
                raise TaskNotFoundError(task_id)

            previous = tasks[index]
            merged = previous.to_dict()
            merged.update(changes)
            merged['updatedAt'] = _now_iso()
            task = Task.from_dict(merged)
            tasks[index] = task

            if not self.store.save_tasks(tasks):
                raise TaskPersistenceError(f"Could not save task {task_id}")

        logger.info(f"Task {task_id} updated ({', '.join(sorted(changes)) or 'no fields'})")

        if not previous.is_completed and task.is_completed:
            _enqueue_event(EVENT_TASK_COMPLETED)

        return task

    def advance_status(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        return self.update_task(task_id, {'status': task.next_status()})

    def delete_task(self, task_id: str) -> None:
        with self.store.locked():
            tasks = self._load_for_write()
            remaining = [t for t in tasks if t.id != task_id]
            if len(remaining) == len(tasks):
                raise TaskNotFoundError(task_id)
            if not self.store.save_tasks(remaining):
                raise TaskPersistenceError(f"Could not delete task {task_id}")

        logger.info(f"Task {task_id} deleted")

    def prioritized_tasks(self, now=None) -> List[Dict[str, Any]]:
        """Open tasks with their current score, most urgent first."""
        scorer = PriorityScorer(keyword_config_from_settings())
        scored = [
            (scorer.score(task, now=now), task)
            for task in self.store.load_tasks()
            if not task.is_completed
        ]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [{**task.to_dict(), 'score': score} for score, task in scored]
