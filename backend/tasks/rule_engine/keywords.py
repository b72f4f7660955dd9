# tasks/rule_engine/keywords.py
"""
Static keyword tables for the scorer and the categorizer.

Both tables are wrapped in one immutable KeywordConfig. Components hold a
config instance rather than reading module globals, so tests (or a
deployment) can swap in alternate tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from django.conf import settings

DEFAULT_URGENT_KEYWORDS: Tuple[str, ...] = ('urgent', 'critical', 'asap', 'emergency', 'important')

# Iteration order is the categorizer's tie-break order.
DEFAULT_CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('development', ('code', 'develop', 'implement', 'build', 'program', 'api', 'database', 'backend', 'frontend')),
    ('testing', ('test', 'qa', 'bug', 'debug', 'fix', 'quality', 'verify')),
    ('design', ('design', 'ui', 'ux', 'mockup', 'prototype', 'wireframe', 'interface')),
    ('deployment', ('deploy', 'release', 'launch', 'publish', 'production', 'server')),
    ('maintenance', ('maintain', 'update', 'upgrade', 'refactor', 'optimize', 'performance')),
)

DEFAULT_CATEGORY = 'development'


@dataclass(frozen=True)
class KeywordConfig:
    urgent_keywords: Tuple[str, ...] = DEFAULT_URGENT_KEYWORDS
    category_keywords: Tuple[Tuple[str, Tuple[str, ...]], ...] = DEFAULT_CATEGORY_KEYWORDS
    default_category: str = DEFAULT_CATEGORY

    @classmethod
    def build(
        cls,
        urgent_keywords: Optional[Iterable[str]] = None,
        category_keywords: Optional[Mapping[str, Sequence[str]]] = None,
        default_category: str = DEFAULT_CATEGORY,
    ) -> 'KeywordConfig':
        """Normalize plain lists/dicts (lower-cased, tuple-frozen) into a config."""
        urgent = DEFAULT_URGENT_KEYWORDS
        if urgent_keywords is not None:
            urgent = tuple(str(k).lower() for k in urgent_keywords)

        categories = DEFAULT_CATEGORY_KEYWORDS
        if category_keywords is not None:
            categories = tuple(
                (str(name), tuple(str(k).lower() for k in words))
                for name, words in category_keywords.items()
            )

        return cls(
            urgent_keywords=urgent,
            category_keywords=categories,
            default_category=default_category,
        )

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.category_keywords)


def keyword_config_from_settings() -> KeywordConfig:
    return KeywordConfig.build(
        urgent_keywords=getattr(settings, 'AUTOMATION_URGENT_KEYWORDS', None),
        category_keywords=getattr(settings, 'AUTOMATION_CATEGORY_KEYWORDS', None),
    )
