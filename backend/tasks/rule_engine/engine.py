# tasks/rule_engine/engine.py

import datetime
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from django.conf import settings

from automation.models import AutomationRule, RuleAction
from automation.store import RuleStore

from ..models import Task
from ..store import StoreReadError
from .categorizer import TaskCategorizer
from .keywords import KeywordConfig, keyword_config_from_settings
from .matcher import RuleMatcher
from .scoring import PriorityScorer, priority_for_score

# Configure logging for rule auditing
logger = logging.getLogger(__name__)

DEFAULT_ASSIGNEE = 'Auto-assigned'


@dataclass
class AutomationResult:
    task: Task
    applied_rules: List[str] = field(default_factory=list)


class RuleExecutor:
    """
    Applies a matched rule's action to a task in place.

    Unknown actions are a no-op so rules written for newer actions do not
    break older deployments.
    """

    def __init__(
        self,
        scorer: PriorityScorer,
        categorizer: TaskCategorizer,
        assignee: str = DEFAULT_ASSIGNEE,
    ):
        self.scorer = scorer
        self.categorizer = categorizer
        self.assignee = assignee
        self._handlers: Dict[str, Callable[[Task, Optional[datetime.datetime]], None]] = {
            RuleAction.PRIORITIZE.value: self._prioritize,
            RuleAction.CATEGORIZE.value: self._categorize,
            RuleAction.ASSIGN.value: self._assign,
        }

    def execute(self, task: Task, rule: AutomationRule, now: Optional[datetime.datetime] = None) -> None:
        handler = self._handlers.get(rule.action or '')
        if handler is None:
            logger.debug(f"Rule {rule.name!r} has no handler for action {rule.action!r}; skipping.")
            return
        handler(task, now)

    def _prioritize(self, task: Task, now: Optional[datetime.datetime]) -> None:
        task.priority = priority_for_score(self.scorer.score(task, now=now))

    def _categorize(self, task: Task, now: Optional[datetime.datetime]) -> None:
        task.category = self.categorizer.categorize(task)

    def _assign(self, task: Task, now: Optional[datetime.datetime]) -> None:
        task.assigned = self.assignee


class AutomationEngine:
    """
    Runs the rule set once against a freshly created task.

    For every enabled rule, in stored order: match, execute, bump the rule's
    execution counter and remember its name. Later rules see the mutations
    made by earlier ones, so when two rules target the same field the last
    one wins.

    The task is mutated in place but NOT saved; that is the caller's job.
    When at least one rule applied, the updated counters are written back
    best-effort: a failed write is logged and the computed result is still
    returned. A rules file that cannot be read means no rule applies, and
    the file is left untouched.
    """

    def __init__(
        self,
        rule_store: Optional[RuleStore] = None,
        config: Optional[KeywordConfig] = None,
        matcher: Optional[RuleMatcher] = None,
        executor: Optional[RuleExecutor] = None,
    ):
        config = config or keyword_config_from_settings()
        self.rule_store = rule_store if rule_store is not None else RuleStore()
        self.scorer = PriorityScorer(config)
        self.categorizer = TaskCategorizer(config)
        self.matcher = matcher or RuleMatcher(getattr(settings, 'AUTOMATION_TRIGGER', None))
        self.executor = executor or RuleExecutor(
            self.scorer,
            self.categorizer,
            assignee=getattr(settings, 'AUTOMATION_ASSIGNEE', DEFAULT_ASSIGNEE),
        )

    def apply_rules(self, task: Task, now: Optional[datetime.datetime] = None) -> AutomationResult:
        result = AutomationResult(task=task)

        # Hold the store lock across load -> save so concurrent passes
        # cannot lose counter increments.
        with self.rule_store.locked():
            try:
                rules = self.rule_store.load_rules(strict=True)
            except StoreReadError as e:
                logger.error(f"Automation: rules unavailable, task {task.id!r} left as is: {str(e)}")
                return result

            for rule in rules:
                if not rule.enabled:
                    continue
                if not self.matcher.matches(task, rule):
                    continue

                self.executor.execute(task, rule, now=now)
                rule.record_execution()
                result.applied_rules.append(rule.name)
                logger.info(f"Automation: rule {rule.name!r} ({rule.action}) applied to task {task.id!r}")

            if result.applied_rules:
                self._persist_counters(rules)

        return result

    def _persist_counters(self, rules: List[AutomationRule]) -> None:
        try:
            saved = self.rule_store.save_counters(rules)
        except Exception as e:
            logger.exception(f"Automation: failed to persist rule counters: {str(e)}")
            return
        if not saved:
            logger.error("Automation: failed to persist rule counters; task result kept.")
