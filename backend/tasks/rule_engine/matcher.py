# tasks/rule_engine/matcher.py

import logging
from typing import Optional

from automation.models import AutomationRule, RuleTrigger

from ..models import Task
from .conditions import parse_condition

logger = logging.getLogger(__name__)


class RuleMatcher:
    """
    Decides whether a rule applies to a task.

    1. Trigger check: only rules listening for `trigger` are eligible.
       Task creation is the only event evaluated, so only "new-task" rules
       ever fire in practice.
    2. Condition check: no condition means the rule applies; otherwise the
       parsed condition must match the task.

    `enabled` is not checked here; the engine skips disabled rules before
    asking.
    """

    def __init__(self, trigger: Optional[str] = None):
        self.trigger = trigger or RuleTrigger.NEW_TASK.value

    def matches(self, task: Task, rule: AutomationRule) -> bool:
        if not rule.trigger or rule.trigger != self.trigger:
            return False

        condition = parse_condition(rule.condition)
        if condition is None:
            return True

        matched = condition.matches(task.priority, task.text_blob())
        logger.debug(f"Rule {rule.name!r} condition {condition!r} -> {matched}")
        return matched
