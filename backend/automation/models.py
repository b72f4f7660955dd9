# automation/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.db import models
from django.utils.translation import gettext_lazy as _


class RuleTrigger(models.TextChoices):
    NEW_TASK = 'new-task', _("New task")
    TASK_UPDATED = 'task-updated', _("Task updated")
    DEADLINE_APPROACHING = 'deadline-approaching', _("Deadline approaching")


class RuleAction(models.TextChoices):
    PRIORITIZE = 'prioritize', _("Prioritize")
    CATEGORIZE = 'categorize', _("Categorize")
    ASSIGN = 'assign', _("Assign")


DEFAULT_SUCCESS_RATE = 100

_KNOWN_KEYS = {
    'id', 'name', 'trigger', 'action', 'condition', 'enabled',
    'executions', 'successRate', 'createdAt', 'updatedAt',
}


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class AutomationRule:
    """
    A trigger/condition/action tuple that mutates tasks automatically.

    Malformed stored rules still load: a missing trigger or action simply
    never matches / does nothing. A condition that is not a string is kept
    as stored and never matches. Only a literal `true` enables a rule.
    `success_rate` is display-only and is never recomputed here.
    """
    id: str
    name: str = ''
    trigger: Optional[str] = None
    action: Optional[str] = None
    condition: Any = None
    enabled: bool = False
    executions: int = 0
    success_rate: Any = DEFAULT_SUCCESS_RATE
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AutomationRule':
        condition = data.get('condition')
        if isinstance(condition, str) and not condition.strip():
            condition = None
        return cls(
            id=str(data.get('id') or ''),
            name=str(data.get('name') or ''),
            trigger=data.get('trigger') if isinstance(data.get('trigger'), str) else None,
            action=data.get('action') if isinstance(data.get('action'), str) else None,
            condition=condition,
            enabled=data.get('enabled') is True,
            executions=max(0, _as_int(data.get('executions'), 0)),
            success_rate=data.get('successRate', DEFAULT_SUCCESS_RATE),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            'id': self.id,
            'name': self.name,
            'trigger': self.trigger,
            'action': self.action,
            'condition': self.condition,
            'enabled': self.enabled,
            'executions': self.executions,
            'successRate': self.success_rate,
            'createdAt': self.created_at,
        })
        if self.updated_at is not None:
            data['updatedAt'] = self.updated_at
        return data

    def record_execution(self) -> None:
        self.executions += 1

    def __str__(self):
        return f"Rule {self.id}: {self.name}"
