# tasks/rule_engine/conditions.py
"""
The rule condition mini-language.

A condition is free text typed by a user, e.g.

    contains "urgent" or "critical"
    priority is high

`parse_condition` turns it into a small immutable AST once per distinct
string; matching then only walks the AST.

Recognized shapes (checked on the lower-cased text):
- mentions "priority"  -> PriorityIn(levels mentioned in the text)
- mentions "contains"  -> ContainsAny(every double-quoted literal)
- both                 -> AnyOf((PriorityIn, ContainsAny)), priority first
- neither              -> Unrecognized, which never matches
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from ..models import TaskPriority

QUOTED_LITERAL = re.compile(r'"([^"]+)"')

PRIORITY_KEYWORD = 'priority'
CONTAINS_KEYWORD = 'contains'


@dataclass(frozen=True)
class PriorityIn:
    levels: Tuple[str, ...]

    def matches(self, priority: Optional[str], text: str) -> bool:
        return bool(priority) and priority.lower() in self.levels


@dataclass(frozen=True)
class ContainsAny:
    literals: Tuple[str, ...]

    def matches(self, priority: Optional[str], text: str) -> bool:
        return any(literal in text for literal in self.literals)


@dataclass(frozen=True)
class AnyOf:
    clauses: Tuple[Union[PriorityIn, ContainsAny], ...]

    def matches(self, priority: Optional[str], text: str) -> bool:
        return any(clause.matches(priority, text) for clause in self.clauses)


@dataclass(frozen=True)
class Unrecognized:
    raw: str

    def matches(self, priority: Optional[str], text: str) -> bool:
        return False


Condition = Union[PriorityIn, ContainsAny, AnyOf, Unrecognized]


def parse_condition(raw: Any) -> Optional[Condition]:
    """
    Returns None when there is no condition (the rule applies unconditionally).

    A stored value that is not a string is malformed and parses to
    Unrecognized, so the rule never matches.
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        return Unrecognized(repr(raw))
    return _parse_text(raw)


@functools.lru_cache(maxsize=256)
def _parse_text(raw: str) -> Optional[Condition]:
    if not raw.strip():
        return None

    text = raw.lower()
    clauses = []

    if PRIORITY_KEYWORD in text:
        clauses.append(PriorityIn(tuple(p for p in TaskPriority.values if p in text)))

    if CONTAINS_KEYWORD in text:
        clauses.append(ContainsAny(tuple(QUOTED_LITERAL.findall(text))))

    if not clauses:
        return Unrecognized(raw)
    if len(clauses) == 1:
        return clauses[0]
    return AnyOf(tuple(clauses))
