# tasks/tests/test_engine.py
"""
Rule Engine Unit Tests
======================

Test suite for the deterministic heart of the automation layer.

This module tests:
1. Urgency scoring (priority tier, deadline proximity, keywords)
2. Keyword categorization (counting, tie-break, fallback)
3. Condition parsing (the small AST)
4. Rule matching (trigger + condition)
5. Rule execution and the full automation pass

Test Philosophy:
----------------
- Test MATH, not just plumbing
- Fixed reference time, so deadline tests are deterministic
- Edge cases: missing fields, past deadlines, malformed rules
"""

from __future__ import annotations

import contextlib
import copy
import datetime
import json
from typing import List
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from tasks.rule_engine import (
    AutomationEngine,
    KeywordConfig,
    PriorityScorer,
    RuleMatcher,
    TaskCategorizer,
    calculate_task_priority,
    categorize_task,
    parse_condition,
    priority_for_score,
)
from tasks.rule_engine.conditions import AnyOf, ContainsAny, PriorityIn, Unrecognized
from tasks.rule_engine.scoring import parse_deadline
from tasks.tests.utils import FIXED_NOW, TempDataDirMixin, iso_in, make_rule, make_task, seed_rules


class FakeRuleStore:
    """In-memory stand-in for RuleStore with a switchable write failure."""

    def __init__(self, rules, save_result=True, save_error=None):
        self._rules = rules
        self.save_result = save_result
        self.save_error = save_error
        self.saved: List = []

    @contextlib.contextmanager
    def locked(self):
        yield

    def load_rules(self, strict=False):
        return copy.deepcopy(self._rules)

    def save_counters(self, rules):
        if self.save_error is not None:
            raise self.save_error
        self.saved.append(copy.deepcopy(rules))
        if self.save_result:
            self._rules = copy.deepcopy(rules)
        return self.save_result


# ===========================================================================
# SCORING TESTS
# ===========================================================================


class TestCalculateTaskPriority(SimpleTestCase):
    """
    Tests cover:
    - Base score per priority tier
    - Deadline proximity buckets (including past deadlines)
    - Urgent keyword bonus (cumulative, case-insensitive, substring)
    """

    # -----------------------------------------------------------------------
    # Priority Tier
    # -----------------------------------------------------------------------

    def test_base_scores_per_priority(self) -> None:
        expected = {"high": 100, "medium": 50, "low": 25}
        for priority, score in expected.items():
            with self.subTest(priority=priority):
                task = make_task(title="Plan the week", priority=priority)
                self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), score)

    def test_missing_or_unknown_priority_contributes_zero(self) -> None:
        self.assertEqual(calculate_task_priority(make_task(title="Plan", priority=None), now=FIXED_NOW), 0)
        self.assertEqual(calculate_task_priority(make_task(title="Plan", priority="whenever"), now=FIXED_NOW), 0)

    def test_score_is_monotonic_in_priority_tier(self) -> None:
        """high >= medium >= low with everything else equal."""
        deadline = iso_in(48)
        scores = [
            calculate_task_priority(
                make_task(title="Review asap", priority=p, deadline=deadline), now=FIXED_NOW
            )
            for p in ("high", "medium", "low")
        ]
        self.assertGreaterEqual(scores[0], scores[1])
        self.assertGreaterEqual(scores[1], scores[2])
        self.assertTrue(all(s >= 0 for s in scores))

    # -----------------------------------------------------------------------
    # Deadline Proximity
    # -----------------------------------------------------------------------

    def test_deadline_buckets(self) -> None:
        cases = [
            (12, 50),      # < 1 day
            (47, 30),      # < 3 days
            (5 * 24, 15),  # < 7 days
            (7 * 24, 0),   # exactly 7 days is not < 7
            (30 * 24, 0),
        ]
        for hours, bonus in cases:
            with self.subTest(hours=hours):
                task = make_task(title="Plan", priority="low", deadline=iso_in(hours))
                self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 25 + bonus)

    def test_past_deadline_gets_the_tightest_bonus(self) -> None:
        task = make_task(title="Plan", priority="low", deadline=iso_in(-72))
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 75)

    def test_date_only_deadline_is_midnight_utc(self) -> None:
        # 2024-01-16T00:00Z is 12 hours after FIXED_NOW
        task = make_task(title="Plan", priority="low", deadline="2024-01-16")
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 75)

    def test_unparseable_deadline_is_ignored(self) -> None:
        task = make_task(title="Plan", priority="low", deadline="not-a-date")
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 25)

    def test_deadline_bonus_is_stable_at_the_same_instant(self) -> None:
        task = make_task(title="Plan", priority="medium", deadline=iso_in(30))
        first = calculate_task_priority(task, now=FIXED_NOW)
        second = calculate_task_priority(task, now=FIXED_NOW)
        self.assertEqual(first, second)
        self.assertEqual(first, 80)

    # -----------------------------------------------------------------------
    # Keywords
    # -----------------------------------------------------------------------

    def test_every_urgent_keyword_adds_twenty(self) -> None:
        task = make_task(title="URGENT Critical asap", description="emergency, important", priority="low")
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 25 + 100)

    def test_keyword_counts_once_even_if_repeated(self) -> None:
        task = make_task(title="urgent urgent urgent", priority="low")
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 45)

    def test_keywords_match_as_substrings(self) -> None:
        task = make_task(title="Importantly, reply", priority="low")
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 45)

    def test_description_is_scanned(self) -> None:
        task = make_task(title="Call vendor", description="This is critical", priority=None)
        self.assertEqual(calculate_task_priority(task, now=FIXED_NOW), 20)

    def test_alternate_keyword_table(self) -> None:
        config = KeywordConfig.build(urgent_keywords=["blocker"])
        task = make_task(title="Release blocker, urgent", priority="low")
        self.assertEqual(PriorityScorer(config).score(task, now=FIXED_NOW), 45)

    # -----------------------------------------------------------------------
    # Worked Examples
    # -----------------------------------------------------------------------

    def test_low_priority_urgent_bug_scores_45(self) -> None:
        task = make_task(title="Fix urgent login bug", description="", priority="low")
        score = calculate_task_priority(task, now=FIXED_NOW)
        self.assertEqual(score, 45)
        self.assertEqual(priority_for_score(score), "low")

    def test_high_priority_asap_deploy_due_soon_scores_190(self) -> None:
        task = make_task(title="asap critical deploy", priority="high", deadline=iso_in(12))
        score = calculate_task_priority(task, now=FIXED_NOW)
        self.assertEqual(score, 190)
        self.assertEqual(priority_for_score(score), "high")


class TestPriorityForScore(SimpleTestCase):

    def test_thresholds_are_strict(self) -> None:
        self.assertEqual(priority_for_score(101), "high")
        self.assertEqual(priority_for_score(100), "medium")
        self.assertEqual(priority_for_score(51), "medium")
        self.assertEqual(priority_for_score(50), "low")
        self.assertEqual(priority_for_score(0), "low")


class TestParseDeadline(SimpleTestCase):

    def test_none_and_blank(self) -> None:
        self.assertIsNone(parse_deadline(None))
        self.assertIsNone(parse_deadline(""))

    def test_naive_datetime_is_treated_as_utc(self) -> None:
        parsed = parse_deadline("2024-01-20T09:30:00")
        self.assertEqual(parsed, datetime.datetime(2024, 1, 20, 9, 30, tzinfo=datetime.timezone.utc))

    def test_zulu_suffix(self) -> None:
        parsed = parse_deadline("2024-01-20T09:30:00Z")
        self.assertEqual(parsed, datetime.datetime(2024, 1, 20, 9, 30, tzinfo=datetime.timezone.utc))

    def test_out_of_range_date_is_ignored(self) -> None:
        self.assertIsNone(parse_deadline("2024-02-30"))


# ===========================================================================
# CATEGORIZER TESTS
# ===========================================================================


class TestCategorizeTask(SimpleTestCase):

    def test_most_keyword_hits_wins(self) -> None:
        task = make_task(title="Implement backend API", category="design")
        self.assertEqual(categorize_task(task), "development")

    def test_tie_goes_to_the_earlier_category(self) -> None:
        # one hit each for testing ("test") and design ("design")
        task = make_task(title="test the design")
        self.assertEqual(categorize_task(task), "testing")

    def test_strict_majority_beats_earlier_category(self) -> None:
        task = make_task(title="Deploy release to production server", description="update code")
        self.assertEqual(categorize_task(task), "deployment")

    def test_no_match_keeps_existing_category(self) -> None:
        task = make_task(title="Buy groceries", category="personal")
        self.assertEqual(categorize_task(task), "personal")

    def test_no_match_and_no_category_defaults_to_development(self) -> None:
        task = make_task(title="Buy groceries", category=None)
        self.assertEqual(categorize_task(task), "development")

    def test_result_is_from_the_table_whenever_something_matched(self) -> None:
        categorizer = TaskCategorizer()
        titles = ["Refactor the parser", "Wireframe the landing page", "Verify QA checklist", "Launch beta"]
        for title in titles:
            with self.subTest(title=title):
                self.assertIn(categorizer.categorize(make_task(title=title)), categorizer.config.categories)

    def test_alternate_category_table(self) -> None:
        config = KeywordConfig.build(category_keywords={"errands": ["groceries", "laundry"]})
        task = make_task(title="Buy groceries")
        self.assertEqual(TaskCategorizer(config).categorize(task), "errands")


# ===========================================================================
# CONDITION PARSER TESTS
# ===========================================================================


class TestParseCondition(SimpleTestCase):

    def test_absent_condition(self) -> None:
        self.assertIsNone(parse_condition(None))
        self.assertIsNone(parse_condition("   "))

    def test_contains_extracts_quoted_literals(self) -> None:
        condition = parse_condition('contains "Urgent" or "critical"')
        self.assertEqual(condition, ContainsAny(("urgent", "critical")))

    def test_priority_collects_mentioned_levels(self) -> None:
        self.assertEqual(parse_condition("Priority is HIGH"), PriorityIn(("high",)))
        self.assertEqual(parse_condition("priority low or medium"), PriorityIn(("low", "medium")))

    def test_both_shapes_combine_in_order(self) -> None:
        condition = parse_condition('priority high or contains "bug"')
        self.assertEqual(condition, AnyOf((PriorityIn(("high",)), ContainsAny(("bug",)))))

    def test_unrecognized_text(self) -> None:
        condition = parse_condition("when the moon is full")
        self.assertIsInstance(condition, Unrecognized)
        self.assertFalse(condition.matches("high", "anything"))

    def test_contains_without_literals_never_matches(self) -> None:
        condition = parse_condition("contains something")
        self.assertEqual(condition, ContainsAny(()))
        self.assertFalse(condition.matches("high", "something"))

    def test_non_string_condition_is_unrecognized(self) -> None:
        for raw in (42, ["urgent"], {"contains": "urgent"}, False):
            with self.subTest(raw=raw):
                condition = parse_condition(raw)
                self.assertIsInstance(condition, Unrecognized)
                self.assertFalse(condition.matches("high", "urgent"))


# ===========================================================================
# RULE MATCHER TESTS
# ===========================================================================


class TestRuleMatcher(SimpleTestCase):

    def setUp(self) -> None:
        self.matcher = RuleMatcher()

    def test_unconditional_new_task_rule_matches(self) -> None:
        self.assertTrue(self.matcher.matches(make_task(), make_rule(condition=None)))

    def test_other_triggers_never_match(self) -> None:
        for trigger in ("task-updated", "deadline-approaching", None, ""):
            with self.subTest(trigger=trigger):
                self.assertFalse(self.matcher.matches(make_task(), make_rule(trigger=trigger)))

    def test_priority_condition(self) -> None:
        rule = make_rule(condition="priority is high")
        self.assertTrue(self.matcher.matches(make_task(priority="high"), rule))
        self.assertFalse(self.matcher.matches(make_task(priority="low"), rule))
        self.assertFalse(self.matcher.matches(make_task(priority=None), rule))

    def test_contains_condition(self) -> None:
        rule = make_rule(condition='contains "urgent" or "critical"')
        self.assertTrue(self.matcher.matches(make_task(title="Critical outage"), rule))
        self.assertTrue(self.matcher.matches(make_task(title="x", description="very URGENT"), rule))
        self.assertFalse(self.matcher.matches(make_task(title="Write documentation"), rule))

    def test_priority_miss_falls_through_to_contains(self) -> None:
        rule = make_rule(condition='priority high or contains "bug"')
        self.assertTrue(self.matcher.matches(make_task(title="Login bug", priority="low"), rule))
        self.assertFalse(self.matcher.matches(make_task(title="Login page", priority="low"), rule))

    def test_unrecognized_condition_does_not_match(self) -> None:
        rule = make_rule(condition="only on fridays")
        self.assertFalse(self.matcher.matches(make_task(), rule))

    def test_matcher_is_pure(self) -> None:
        task = make_task(title="Critical outage", priority="low")
        rule = make_rule(condition='contains "critical"')
        before = (copy.deepcopy(task), copy.deepcopy(rule))
        results = {self.matcher.matches(task, rule) for _ in range(3)}
        self.assertEqual(results, {True})
        self.assertEqual((task, rule), before)

    def test_custom_trigger(self) -> None:
        matcher = RuleMatcher(trigger="task-updated")
        self.assertTrue(matcher.matches(make_task(), make_rule(trigger="task-updated")))
        self.assertFalse(matcher.matches(make_task(), make_rule(trigger="new-task")))


# ===========================================================================
# AUTOMATION ENGINE TESTS
# ===========================================================================


class TestAutomationEngine(SimpleTestCase):
    """
    Tests cover:
    - Each action's effect on the task
    - Counter bookkeeping and the applied-rules list
    - Rule ordering and disabled rules
    - Best-effort persistence of counters
    """

    def _engine(self, rules, **store_kwargs):
        store = FakeRuleStore(rules, **store_kwargs)
        return AutomationEngine(rule_store=store), store

    def test_prioritize_lowers_an_inflated_priority(self) -> None:
        engine, _ = self._engine([make_rule(name="Prioritize", action="prioritize")])
        task = make_task(title="Fix urgent login bug", priority="low")

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertIs(result.task, task)
        self.assertEqual(task.priority, "low")
        self.assertEqual(result.applied_rules, ["Prioritize"])

    def test_prioritize_raises_urgent_task_to_high(self) -> None:
        engine, _ = self._engine([make_rule(name="Prioritize", action="prioritize")])
        task = make_task(title="asap critical deploy", priority="high", deadline=iso_in(12))

        engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(task.priority, "high")

    def test_categorize_action(self) -> None:
        engine, _ = self._engine([make_rule(name="Categorize", action="categorize", condition=None)])
        task = make_task(title="Implement backend API", category=None)

        engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(task.category, "development")

    def test_assign_action_sets_sentinel(self) -> None:
        engine, _ = self._engine([make_rule(name="Assign", action="assign")])
        task = make_task()

        engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(task.assigned, "Auto-assigned")

    def test_unknown_action_is_a_counted_no_op(self) -> None:
        engine, store = self._engine([make_rule(name="Notify", action="notify", executions=3)])
        task = make_task(title="Plan", priority="medium", category="design")
        before = copy.deepcopy(task)

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(task, before)
        self.assertEqual(result.applied_rules, ["Notify"])
        self.assertEqual(store.saved[-1][0].executions, 4)

    def test_non_matching_rule_leaves_counter_unchanged(self) -> None:
        rule = make_rule(name="Urgent only", condition='contains "urgent" or "critical"', executions=45)
        engine, store = self._engine([rule])
        task = make_task(title="Write documentation", priority="low")

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, [])
        self.assertEqual(task.priority, "low")
        self.assertEqual(store.saved, [])
        self.assertEqual(store.load_rules()[0].executions, 45)

    def test_disabled_rules_are_skipped(self) -> None:
        rule = make_rule(name="Disabled", action="assign", enabled=False)
        engine, store = self._engine([rule])
        task = make_task()

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, [])
        self.assertIsNone(task.assigned)
        self.assertEqual(store.saved, [])

    def test_rules_run_in_stored_order_and_see_earlier_mutations(self) -> None:
        # high with no bonus scores 100 -> medium; medium scores 50 -> low
        rules = [
            make_rule(name="First", action="prioritize"),
            make_rule(name="Second", action="prioritize"),
            make_rule(name="Third", action="assign"),
        ]
        engine, store = self._engine(rules)
        task = make_task(title="Plan", priority="high")

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["First", "Second", "Third"])
        self.assertEqual(task.priority, "low")
        self.assertEqual([r.name for r in store.saved[-1]], ["First", "Second", "Third"])
        self.assertEqual([r.executions for r in store.saved[-1]], [1, 1, 1])

    def test_malformed_rules_do_not_raise(self) -> None:
        rules = [
            make_rule(name="No trigger", trigger=None),
            make_rule(name="No action", action=None),
        ]
        engine, _ = self._engine(rules)
        task = make_task()

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["No action"])

    def test_success_rate_is_not_recomputed(self) -> None:
        engine, store = self._engine([make_rule(name="Assign", action="assign", success_rate=98)])

        engine.apply_rules(make_task(), now=FIXED_NOW)

        self.assertEqual(store.saved[-1][0].success_rate, 98)

    def test_counter_write_failure_still_returns_result(self) -> None:
        engine, _ = self._engine([make_rule(name="Assign", action="assign")], save_result=False)
        task = make_task()

        with self.assertLogs("tasks.rule_engine.engine", level="ERROR"):
            result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["Assign"])
        self.assertEqual(task.assigned, "Auto-assigned")

    def test_counter_write_exception_still_returns_result(self) -> None:
        engine, _ = self._engine(
            [make_rule(name="Assign", action="assign")], save_error=OSError("disk full")
        )
        task = make_task()

        with self.assertLogs("tasks.rule_engine.engine", level="ERROR"):
            result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["Assign"])

    def test_custom_executor_is_used(self) -> None:
        executor = MagicMock()
        store = FakeRuleStore([make_rule(name="Any", action="prioritize")])
        engine = AutomationEngine(rule_store=store, executor=executor)
        task = make_task()

        engine.apply_rules(task, now=FIXED_NOW)

        executor.execute.assert_called_once()


class TestAutomationEngineWithRuleStore(TempDataDirMixin, SimpleTestCase):
    """The engine against the real JSON rule store."""

    def test_counters_are_persisted(self) -> None:
        store = seed_rules([
            make_rule(name="Auto-prioritize urgent tasks", condition='contains "urgent" or "critical"',
                      executions=45, success_rate=98),
            make_rule(name="Categorize everything", action="categorize"),
        ])
        engine = AutomationEngine(rule_store=store)
        task = make_task(title="Critical payment bug", priority="low")

        result = engine.apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["Auto-prioritize urgent tasks", "Categorize everything"])
        reloaded = store.load_rules()
        self.assertEqual([r.executions for r in reloaded], [46, 1])
        self.assertEqual(reloaded[0].success_rate, 98)
        self.assertEqual(task.category, "testing")

    def _write_rules_file(self, content) -> None:
        if not isinstance(content, str):
            content = json.dumps(content)
        (self.data_dir / "automation-rules.json").write_text(content, encoding="utf-8")

    def _rules_file_text(self) -> str:
        return (self.data_dir / "automation-rules.json").read_text(encoding="utf-8")

    def test_non_string_condition_never_matches_and_is_kept(self) -> None:
        stored = [{"id": "w", "name": "Weird", "trigger": "new-task", "action": "assign",
                   "condition": 42, "enabled": True, "executions": 0}]
        self._write_rules_file(stored)
        task = make_task()

        result = AutomationEngine().apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, [])
        self.assertIsNone(task.assigned)
        self.assertEqual(json.loads(self._rules_file_text()), stored)

    def test_only_a_literal_true_enables_a_rule(self) -> None:
        self._write_rules_file([
            {"id": str(i), "name": f"Off {i}", "trigger": "new-task", "action": "assign", "enabled": flag}
            for i, flag in enumerate(["false", "true", 1, None])
        ])
        task = make_task()

        result = AutomationEngine().apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, [])
        self.assertIsNone(task.assigned)

    def test_corrupt_rules_file_is_left_unchanged(self) -> None:
        for content in ('[{"id": "r1", "name": "Assign"', '{"rules": []}'):
            with self.subTest(content=content):
                self._write_rules_file(content)
                task = make_task()

                with self.assertLogs("tasks.rule_engine.engine", level="ERROR"):
                    result = AutomationEngine().apply_rules(task, now=FIXED_NOW)

                self.assertEqual(result.applied_rules, [])
                self.assertEqual(self._rules_file_text(), content)

    def test_counter_write_back_keeps_other_stored_values(self) -> None:
        self._write_rules_file([
            {"id": "a", "name": "Assign", "trigger": "new-task", "action": "assign",
             "enabled": True, "executions": 2, "owner": "ops"},
            "note: keep",
            {"id": "b", "name": "Weird", "trigger": "new-task", "action": "assign",
             "condition": ["urgent"], "enabled": True},
        ])

        result = AutomationEngine().apply_rules(make_task(), now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["Assign"])
        self.assertEqual(json.loads(self._rules_file_text()), [
            {"id": "a", "name": "Assign", "trigger": "new-task", "action": "assign",
             "enabled": True, "executions": 3, "owner": "ops"},
            "note: keep",
            {"id": "b", "name": "Weird", "trigger": "new-task", "action": "assign",
             "condition": ["urgent"], "enabled": True, "executions": 0},
        ])

    def test_no_write_when_nothing_applied(self) -> None:
        self._write_rules_file('[{"id": "r1", "name": "Off", "enabled": false}]')

        AutomationEngine().apply_rules(make_task(), now=FIXED_NOW)

        self.assertEqual(self._rules_file_text(), '[{"id": "r1", "name": "Off", "enabled": false}]')

    def test_default_engine_uses_settings_data_dir(self) -> None:
        seed_rules([make_rule(name="Assign", action="assign")])
        task = make_task()

        result = AutomationEngine().apply_rules(task, now=FIXED_NOW)

        self.assertEqual(result.applied_rules, ["Assign"])
        self.assertTrue((self.data_dir / "automation-rules.json").exists())
