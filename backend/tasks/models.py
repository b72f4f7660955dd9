# tasks/models.py
"""
Task records.

Tasks are not ORM models: the whole collection lives in a flat JSON file
(see tasks.store). The dataclass below is the in-memory shape the rule
engine and the service layer work with; `from_dict` / `to_dict` translate
to and from the stored camelCase documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.db import models
from django.utils.translation import gettext_lazy as _


class TaskPriority(models.TextChoices):
    LOW = 'low', _("Low")
    MEDIUM = 'medium', _("Medium")
    HIGH = 'high', _("High")


class TaskStatus(models.TextChoices):
    PENDING = 'pending', _("Pending")
    IN_PROGRESS = 'in-progress', _("In progress")
    COMPLETED = 'completed', _("Completed")


# Order used by the UI "advance status" button.
STATUS_CYCLE = [TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED]

# Stored key -> dataclass attribute, for keys whose names differ.
_KEY_MAP = {
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

_KNOWN_KEYS = {
    'id', 'title', 'description', 'priority', 'status', 'category',
    'automated', 'deadline', 'assigned', 'createdAt', 'updatedAt',
}


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    return str(value)


@dataclass
class Task:
    """
    A unit of work tracked by the system.

    `extra` holds any stored keys this version does not know about so that a
    load/save round trip never drops data.
    """
    id: str
    title: str = ''
    description: str = ''
    priority: Optional[str] = None
    status: str = TaskStatus.PENDING.value
    category: Optional[str] = None
    automated: bool = False
    deadline: Optional[str] = None
    assigned: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
        return cls(
            id=str(data.get('id') or ''),
            title=str(data.get('title') or ''),
            description=str(data.get('description') or ''),
            priority=_optional_str(data.get('priority')),
            status=str(data.get('status') or TaskStatus.PENDING.value),
            category=_optional_str(data.get('category')),
            automated=bool(data.get('automated', False)),
            deadline=_optional_str(data.get('deadline')),
            assigned=_optional_str(data.get('assigned')),
            created_at=_optional_str(data.get('createdAt')),
            updated_at=_optional_str(data.get('updatedAt')),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'priority': self.priority,
            'status': self.status,
            'category': self.category,
            'automated': self.automated,
            'deadline': self.deadline,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        })
        # Only present once something assigned the task.
        if self.assigned is not None:
            data['assigned'] = self.assigned
        return data

    def text_blob(self) -> str:
        """Lower-cased title and description, the text every keyword heuristic scans."""
        return f"{self.title or ''} {self.description or ''}".lower()

    def next_status(self) -> str:
        """pending -> in-progress -> completed -> pending; anything else restarts at pending."""
        try:
            index = STATUS_CYCLE.index(self.status)
        except ValueError:
            index = -1
        return STATUS_CYCLE[(index + 1) % len(STATUS_CYCLE)].value

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def __str__(self):
        return f"Task {self.id}: {self.title}"
