# automation/store.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from tasks.store import JsonFileStore, StoreReadError, data_dir

from .models import AutomationRule

logger = logging.getLogger(__name__)

RULES_FILENAME = 'automation-rules.json'


class RuleStore(JsonFileStore):
    """
    The automation rule collection.

    Order is meaningful: the engine evaluates rules in stored order, so a
    load/save round trip must never reorder them.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        super().__init__(path or data_dir() / RULES_FILENAME, default_factory=list)

    def load_rules(self, strict: bool = False) -> List[AutomationRule]:
        """Rules in stored order. Entries that are not objects are skipped."""
        return [AutomationRule.from_dict(item) for item in self.read_list(strict=strict) if isinstance(item, dict)]

    def save_rules(self, rules: Sequence[AutomationRule]) -> bool:
        return self.write([rule.to_dict() for rule in rules])

    def save_counters(self, rules: Sequence[AutomationRule]) -> bool:
        """
        Write back the execution counters of rules returned by `load_rules`.

        Only the `executions` key of each rule object changes; every other
        stored value, including entries that are not rule objects, is kept
        as it is on disk. Call it under `locked()` together with the load.
        """
        with self.locked():
            try:
                document = self.read_list(strict=True)
            except StoreReadError as e:
                logger.error(f"Rule counters not saved: {e}")
                return False

            positions = [i for i, item in enumerate(document) if isinstance(item, dict)]
            if len(positions) != len(rules):
                logger.error(f"{self.path} changed since the rules were loaded; counters not saved.")
                return False

            for index, rule in zip(positions, rules):
                document[index] = {**document[index], 'executions': rule.executions}
            return self.write(document)

    def get_rule(self, rule_id: str) -> Optional[AutomationRule]:
        for rule in self.load_rules():
            if rule.id == rule_id:
                return rule
        return None
