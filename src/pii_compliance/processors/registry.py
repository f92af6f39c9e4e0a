"""Registry of PII pattern rules."""

import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from ..config.constants import PIICategory, RiskLevel
from ..config.settings import get_settings
from ..core.exceptions import PatternCompilationError
from ..core.interfaces import PatternRule
from .filters import get_filter

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS_FILE = Path(__file__).parent.parent / "config" / "patterns.yaml"

_REGEX_FLAGS = {
    "ignorecase": re.IGNORECASE,
    "multiline": re.MULTILINE,
    "verbose": re.VERBOSE,
}


class PatternRegistry:
    """
    Holds one PatternRule per PII category.

    Registering a rule for a category that is already present replaces the
    old rule, and the replacement takes the last position in registration
    order. Writers are serialised; every write publishes a new immutable
    snapshot, so readers never need the lock.
    """

    def __init__(self, rules: Optional[Iterable[PatternRule]] = None) -> None:
        self._lock = threading.Lock()
        self._rules: Tuple[PatternRule, ...] = ()
        for rule in rules or ():
            self.register(rule)

    def register(self, rule: PatternRule) -> None:
        """
        Register a rule, replacing any rule with the same category.

        Args:
            rule: Compiled pattern rule

        Raises:
            PatternCompilationError: If ``rule`` is not a PatternRule
        """
        if not isinstance(rule, PatternRule):
            raise PatternCompilationError(
                f"Expected PatternRule, got {type(rule).__name__}"
            )

        with self._lock:
            kept = tuple(r for r in self._rules if r.category != rule.category)
            replaced = len(kept) != len(self._rules)
            self._rules = kept + (rule,)

        logger.debug(
            "%s pattern rule for category '%s'",
            "Replaced" if replaced else "Registered",
            rule.category.value,
        )

    def register_pattern(
        self,
        category: Union[PIICategory, str],
        expression: str,
        description: str = "",
        risk_level: Union[RiskLevel, str] = RiskLevel.MODERATE,
        filters: Sequence[str] = (),
        examples: Sequence[str] = (),
        labels: Sequence[str] = (),
    ) -> PatternRule:
        """
        Build a rule from an expression and register it.

        Args:
            category: PII category the rule detects
            expression: Regular expression source
            description: Human-readable description
            risk_level: Risk level of matches
            filters: Names of false-positive filters
            examples: Literal strings the rule must match
            labels: Label words that raise confidence when they precede a match

        Returns:
            The registered rule

        Raises:
            PatternCompilationError: If the expression or a filter name is invalid
        """
        rule = PatternRule(
            category=category,  # type: ignore[arg-type]
            matcher=expression,  # type: ignore[arg-type]
            description=description,
            risk_level=risk_level,  # type: ignore[arg-type]
            filters=tuple(get_filter(name) for name in filters),
            examples=tuple(examples),
            labels=tuple(labels),
        )
        self.register(rule)
        return rule

    def unregister(self, category: Union[PIICategory, str]) -> bool:
        """
        Remove the rule for a category.

        Returns:
            True if a rule was removed
        """
        with self._lock:
            kept = tuple(r for r in self._rules if r.category != category)
            removed = len(kept) != len(self._rules)
            self._rules = kept

        if removed:
            logger.debug(
                "Unregistered pattern rule for category '%s'",
                getattr(category, "value", category),
            )
        return removed

    def list(self) -> List[PatternRule]:
        """Return rules in registration order."""
        return list(self._rules)

    def snapshot(self) -> Tuple[PatternRule, ...]:
        """Return the current immutable rule tuple."""
        return self._rules

    def get(self, category: Union[PIICategory, str]) -> Optional[PatternRule]:
        for rule in self._rules:
            if rule.category == category:
                return rule
        return None

    def __contains__(self, category: object) -> bool:
        return any(rule.category == category for rule in self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def self_test(self) -> Dict[PIICategory, List[str]]:
        """
        Run every rule against its examples.

        Returns:
            Failing examples per category; empty if all rules pass
        """
        failures = {}
        for rule in self._rules:
            failed = rule.self_test()
            if failed:
                failures[rule.category] = failed
        return failures

    @classmethod
    def from_config(cls, data: Mapping[str, Any]) -> "PatternRegistry":
        """
        Build a registry from a pattern configuration structure.

        Args:
            data: Mapping with a ``patterns`` list; each entry has
                  ``category``, ``regex`` and optionally ``description``,
                  ``risk_level``, ``filters``, ``examples``, ``labels``, ``flags``

        Returns:
            Registry containing the configured rules in order

        Raises:
            PatternCompilationError: If any entry is invalid
        """
        if not isinstance(data, Mapping):
            raise PatternCompilationError("Pattern configuration must be a mapping")

        registry = cls()
        for entry in data.get("patterns") or []:
            registry.register(_rule_from_entry(entry))

        logger.info(
            "Loaded %d pattern rules (config version %s)",
            len(registry),
            data.get("version", "unversioned"),
        )
        return registry

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "PatternRegistry":
        """Load a registry from a YAML pattern file."""
        patterns_path = Path(path)
        if not patterns_path.exists():
            raise PatternCompilationError(f"Patterns file not found: {path}")

        try:
            with open(patterns_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PatternCompilationError(f"Failed to load patterns file: {e}")

        return cls.from_config(data or {})

    @classmethod
    def default(cls) -> "PatternRegistry":
        """Load the configured patterns file, or the packaged defaults."""
        patterns_file = get_settings().patterns_file
        return cls.from_yaml(patterns_file or DEFAULT_PATTERNS_FILE)


def _rule_from_entry(entry: Mapping[str, Any]) -> PatternRule:
    if not isinstance(entry, Mapping):
        raise PatternCompilationError(f"Invalid pattern entry: {entry!r}")
    if "category" not in entry or "regex" not in entry:
        raise PatternCompilationError(
            f"Pattern entry requires 'category' and 'regex': {dict(entry)!r}"
        )

    flags = 0
    for flag_name in entry.get("flags") or []:
        try:
            flags |= _REGEX_FLAGS[str(flag_name).lower()]
        except KeyError:
            raise PatternCompilationError(
                f"Unknown regex flag {flag_name!r}", entry["category"]
            )

    try:
        matcher = re.compile(str(entry["regex"]), flags)
    except re.error as e:
        raise PatternCompilationError(
            f"Invalid pattern for category '{entry['category']}': {e}",
            entry["category"],
        )

    return PatternRule(
        category=entry["category"],
        matcher=matcher,
        description=entry.get("description", ""),
        risk_level=entry.get("risk_level", RiskLevel.MODERATE),
        filters=tuple(get_filter(name) for name in entry.get("filters") or []),
        examples=tuple(str(example) for example in entry.get("examples") or []),
        labels=tuple(str(label) for label in entry.get("labels") or []),
    )
