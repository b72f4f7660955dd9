# tasks/tests/utils.py
"""Shared fixtures for the task and automation test suites."""

from __future__ import annotations

import datetime
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from django.test import override_settings

from automation.models import AutomationRule
from automation.store import RuleStore
from tasks.models import Task

# Fixed reference: January 15, 2024 at noon UTC
FIXED_NOW = datetime.datetime(2024, 1, 15, 12, 0, 0, tzinfo=datetime.timezone.utc)


class TempDataDirMixin:
    """
    Points AUTOMATION_DATA_DIR at a fresh temporary directory for each test,
    so stores built from settings never touch the real data files.
    """

    def setUp(self) -> None:
        super().setUp()
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_dir = Path(self._tmp.name)
        override = override_settings(AUTOMATION_DATA_DIR=self.data_dir)
        override.enable()
        self.addCleanup(override.disable)


def make_task(
    title: str = "Test Task",
    description: str = "",
    priority: Optional[str] = "medium",
    deadline: Optional[str] = None,
    category: Optional[str] = None,
    task_id: str = "t-1",
) -> Task:
    return Task(
        id=task_id,
        title=title,
        description=description,
        priority=priority,
        deadline=deadline,
        category=category,
    )


def make_rule(
    name: str = "Rule",
    action: Optional[str] = "prioritize",
    trigger: Optional[str] = "new-task",
    condition: Optional[str] = None,
    enabled: bool = True,
    executions: int = 0,
    rule_id: Optional[str] = None,
    **extra: Any,
) -> AutomationRule:
    return AutomationRule(
        id=rule_id or name.lower().replace(' ', '-'),
        name=name,
        trigger=trigger,
        action=action,
        condition=condition,
        enabled=enabled,
        executions=executions,
        **extra,
    )


def seed_rules(rules: List[AutomationRule], path: Optional[Path] = None) -> RuleStore:
    store = RuleStore(path)
    store.save_rules(rules)
    return store


def iso_in(hours: float, now: datetime.datetime = FIXED_NOW) -> str:
    return (now + datetime.timedelta(hours=hours)).isoformat()


def rule_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "name": "Auto-prioritize urgent tasks",
        "trigger": "new-task",
        "action": "prioritize",
        "condition": 'contains "urgent" or "critical"',
    }
    payload.update(overrides)
    return payload
