# tasks/rule_engine/__init__.py
"""
Rule Engine Package
===================

The automation layer applied to every task at creation time.

Modules:
--------
- keywords: Immutable keyword tables (urgent words, category words)
- scoring: Deterministic urgency score and score -> priority mapping
- categorizer: Keyword-count category detection
- conditions: Parser for the free-text rule condition language
- matcher: Trigger + condition check for one (task, rule) pair
- engine: Rule executor and the AutomationEngine that runs a full pass

Architecture:
-------------
The task service hands a new Task to AutomationEngine.apply_rules, which
loads the ordered rule set from the RuleStore, runs matcher and executor
for each enabled rule, writes the updated execution counters back and
returns:

    AutomationResult(
        task=<the same Task, mutated in place>,
        applied_rules=["Auto-prioritize urgent tasks", ...],
    )

Scoring:
--------
    score = base(priority)          high=100, medium=50, low=25, other=0
          + deadline bonus          <1 day: 50, <3 days: 30, <7 days: 15
          + 20 per urgent keyword   urgent, critical, asap, emergency, important

The prioritize action maps score > 100 to high, score > 50 to medium and
anything else to low.
"""

from .categorizer import TaskCategorizer, categorize_task
from .conditions import parse_condition
from .engine import AutomationEngine, AutomationResult, RuleExecutor
from .keywords import KeywordConfig
from .matcher import RuleMatcher
from .scoring import PriorityScorer, calculate_task_priority, priority_for_score

__all__ = [
    'AutomationEngine',
    'AutomationResult',
    'KeywordConfig',
    'PriorityScorer',
    'RuleExecutor',
    'RuleMatcher',
    'TaskCategorizer',
    'calculate_task_priority',
    'categorize_task',
    'parse_condition',
    'priority_for_score',
]
