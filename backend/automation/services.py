# automation/services.py

import logging
import uuid
from typing import Any, Dict, List, Optional

from django.utils import timezone

from tasks.store import StoreReadError

from .models import DEFAULT_SUCCESS_RATE, AutomationRule
from .store import RuleStore

logger = logging.getLogger(__name__)


class RuleNotFoundError(Exception):
    """Raised when no rule with the requested id exists."""

    pass


class DuplicateRuleError(Exception):
    """Raised when a client-supplied rule id is already taken."""

    pass


class RulePersistenceError(Exception):
    """Raised when the rule collection could not be written."""

    pass


class RuleService:
    """CRUD over the ordered rule collection. New rules go to the front."""

    def __init__(self, store: Optional[RuleStore] = None):
        self.store = store if store is not None else RuleStore()

    def _load_for_write(self) -> List[AutomationRule]:
        try:
            return self.store.load_rules(strict=True)
        except StoreReadError as e:
            raise RulePersistenceError(str(e)) from e

    def list_rules(self) -> List[AutomationRule]:
        return self.store.load_rules()

    def get_rule(self, rule_id: str) -> AutomationRule:
        rule = self.store.get_rule(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def create_rule(self, payload: Dict[str, Any]) -> AutomationRule:
        data = dict(payload)
        data['id'] = str(data.get('id') or uuid.uuid4().hex)
        data.setdefault('enabled', True)
        data.update({
            'executions': 0,
            'successRate': DEFAULT_SUCCESS_RATE,
            'createdAt': timezone.now().isoformat(),
        })
        rule = AutomationRule.from_dict(data)

        with self.store.locked():
            rules = self._load_for_write()
            if any(r.id == rule.id for r in rules):
                raise DuplicateRuleError(rule.id)
            rules.insert(0, rule)
            if not self.store.save_rules(rules):
                raise RulePersistenceError(f"Could not save rule {rule.id}")

        logger.info(f"Rule {rule.id} created: {rule.name!r} ({rule.trigger} -> {rule.action})")
        return rule

    def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> AutomationRule:
        # Counters are only ever advanced by the engine.
        protected = ('id', 'executions', 'successRate', 'createdAt')
        changes = {k: v for k, v in changes.items() if k not in protected}

        with self.store.locked():
            rules = self._load_for_write()
            index = next((i for i, r in enumerate(rules) if r.id == rule_id), None)
            if index is None:
                raise RuleNotFoundError(rule_id)

            merged = rules[index].to_dict()
            merged.update(changes)
            merged['updatedAt'] = timezone.now().isoformat()
            rule = AutomationRule.from_dict(merged)
            rules[index] = rule

            if not self.store.save_rules(rules):
                raise RulePersistenceError(f"Could not save rule {rule_id}")

        logger.info(f"Rule {rule_id} updated ({', '.join(sorted(changes)) or 'no fields'})")
        return rule

    def toggle_rule(self, rule_id: str) -> AutomationRule:
        rule = self.get_rule(rule_id)
        return self.update_rule(rule_id, {'enabled': not rule.enabled})

    def delete_rule(self, rule_id: str) -> None:
        with self.store.locked():
            rules = self._load_for_write()
            remaining = [r for r in rules if r.id != rule_id]
            if len(remaining) == len(rules):
                raise RuleNotFoundError(rule_id)
            if not self.store.save_rules(remaining):
                raise RulePersistenceError(f"Could not delete rule {rule_id}")

        logger.info(f"Rule {rule_id} deleted")
