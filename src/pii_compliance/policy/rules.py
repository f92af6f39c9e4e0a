"""Policy rule tables and their configuration loader."""

import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..config.constants import Operation, PIICategory, RiskLevel
from ..core.exceptions import PolicyConfigurationError
from ..core.interfaces import PolicyRule

logger = logging.getLogger(__name__)

PROFILES_DIR = Path(__file__).parent / "profiles"


class PolicyRuleConfig(BaseModel):
    """Configuration entry for one policy rule."""

    model_config = ConfigDict(extra="forbid")

    risk_level: RiskLevel
    allowed_operations: List[Operation] = Field(min_length=1)
    # Derived from allowed_operations when omitted
    allow_logging: Optional[bool] = None
    require_masking: bool = False
    require_encryption: bool = False
    retention_days: Optional[int] = Field(default=None, ge=0)
    requires_context: Dict[Operation, List[str]] = Field(default_factory=dict)

    def to_rule(self, category: Optional[PIICategory]) -> PolicyRule:
        """Build an immutable PolicyRule for a category (None for the default)."""
        allow_logging = (
            Operation.LOG in self.allowed_operations
            if self.allow_logging is None
            else self.allow_logging
        )
        return PolicyRule(
            category=category,
            risk_level=self.risk_level,
            allow_logging=allow_logging,
            require_masking=self.require_masking,
            require_encryption=self.require_encryption,
            allowed_operations=frozenset(self.allowed_operations),
            retention_days=self.retention_days,
            requires_context={
                op: frozenset(flags) for op, flags in self.requires_context.items()
            },
        )

    @classmethod
    def from_rule(cls, rule: PolicyRule) -> "PolicyRuleConfig":
        return cls(
            risk_level=rule.risk_level,
            allowed_operations=[op for op in Operation if op in rule.allowed_operations],
            allow_logging=rule.allow_logging,
            require_masking=rule.require_masking,
            require_encryption=rule.require_encryption,
            retention_days=rule.retention_days,
            requires_context={
                op: sorted(flags) for op, flags in rule.requires_context.items()
            },
        )


class RuleTableConfig(BaseModel):
    """Versioned configuration structure for a rule table."""

    model_config = ConfigDict(extra="forbid")

    name: str
    version: str = "1"
    description: str = ""
    default_rule: PolicyRuleConfig
    rules: Dict[PIICategory, PolicyRuleConfig] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> str:
        return str(value)


class RuleTable:
    """
    Immutable mapping from PII category to PolicyRule.

    Categories without a rule fall back to ``default_rule``. Derived tables
    are built with ``with_overrides``; an existing table never changes.
    """

    def __init__(
        self,
        name: str,
        rules: Mapping[Union[PIICategory, str], PolicyRule],
        default_rule: PolicyRule,
        version: str = "1",
        description: str = "",
    ) -> None:
        if not isinstance(default_rule, PolicyRule):
            raise PolicyConfigurationError(
                f"Default rule for table '{name}' must be a PolicyRule"
            )

        table: Dict[PIICategory, PolicyRule] = {}
        for key, rule in rules.items():
            try:
                category = PIICategory(key)
            except ValueError:
                raise PolicyConfigurationError(
                    f"Invalid PII category in table '{name}': {key!r}"
                )
            if not isinstance(rule, PolicyRule):
                raise PolicyConfigurationError(
                    f"Rule for '{category.value}' in table '{name}' must be a PolicyRule"
                )
            if rule.category is not None and rule.category != category:
                raise PolicyConfigurationError(
                    f"Rule keyed as '{category.value}' in table '{name}' is for "
                    f"'{rule.category.value}'"
                )
            table[category] = rule

        self._name = name
        self._version = str(version)
        self._description = description
        self._rules = MappingProxyType(table)
        self._default_rule = default_rule

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    @property
    def description(self) -> str:
        return self._description

    @property
    def rules(self) -> Mapping[PIICategory, PolicyRule]:
        return self._rules

    @property
    def default_rule(self) -> PolicyRule:
        return self._default_rule

    @property
    def categories(self) -> Tuple[PIICategory, ...]:
        """Categories with an explicit rule, in enumeration order."""
        return tuple(category for category in PIICategory if category in self._rules)

    def has_rule(self, category: Any) -> bool:
        """Check whether a category has an explicit rule."""
        try:
            return PIICategory(category) in self._rules
        except ValueError:
            return False

    def rule(self, category: Any) -> PolicyRule:
        """
        Get the rule for a category.

        Unknown categories, including values outside PIICategory, get the
        default rule.
        """
        try:
            return self._rules.get(PIICategory(category), self._default_rule)
        except ValueError:
            return self._default_rule

    def missing_categories(self) -> List[PIICategory]:
        """Categories that would fall back to the default rule."""
        return [category for category in PIICategory if category not in self._rules]

    def is_complete(self) -> bool:
        return not self.missing_categories()

    def with_overrides(
        self,
        rules: Mapping[Union[PIICategory, str], Union[PolicyRule, Mapping[str, Any]]],
        name: Optional[str] = None,
        default_rule: Optional[PolicyRule] = None,
    ) -> "RuleTable":
        """
        Derive a new table with some rules replaced.

        Args:
            rules: Replacement rules per category, as PolicyRule objects or
                   rule configuration mappings
            name: Name of the derived table (defaults to ``<name>+custom``)
            default_rule: Replacement default rule

        Returns:
            New RuleTable; this table is unchanged

        Raises:
            PolicyConfigurationError: If a replacement rule is invalid
        """
        merged: Dict[Union[PIICategory, str], PolicyRule] = dict(self._rules)
        for key, rule in rules.items():
            if isinstance(rule, Mapping):
                try:
                    category = PIICategory(key)
                except ValueError:
                    raise PolicyConfigurationError(f"Invalid PII category: {key!r}")
                rule = _validate_rule_config(rule, category.value).to_rule(category)
            merged[key] = rule

        return RuleTable(
            name=name or f"{self._name}+custom",
            rules=merged,
            default_rule=default_rule or self._default_rule,
            version=self._version,
            description=self._description,
        )

    def to_config(self) -> Dict[str, Any]:
        """Emit the versioned configuration structure for this table."""
        config = RuleTableConfig(
            name=self._name,
            version=self._version,
            description=self._description,
            default_rule=PolicyRuleConfig.from_rule(self._default_rule),
            rules={
                category: PolicyRuleConfig.from_rule(self._rules[category])
                for category in self.categories
            },
        )
        return config.model_dump(mode="json")

    @classmethod
    def from_config(cls, data: Mapping[str, Any]) -> "RuleTable":
        """
        Build a rule table from a configuration structure.

        Args:
            data: Mapping with ``name``, ``version``, ``default_rule`` and
                  ``rules`` (category -> rule)

        Returns:
            Immutable RuleTable

        Raises:
            PolicyConfigurationError: If the structure or any rule is invalid
        """
        if not isinstance(data, Mapping):
            raise PolicyConfigurationError("Rule table configuration must be a mapping")

        try:
            config = RuleTableConfig.model_validate(data)
        except PydanticValidationError as e:
            raise PolicyConfigurationError(
                f"Invalid rule table '{data.get('name', '<unnamed>')}': {e}"
            ) from e

        return cls(
            name=config.name,
            rules={
                category: rule.to_rule(category)
                for category, rule in config.rules.items()
            },
            default_rule=config.default_rule.to_rule(None),
            version=config.version,
            description=config.description,
        )

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return (
            f"RuleTable(name={self._name!r}, version={self._version!r}, "
            f"rules={len(self._rules)})"
        )


def _validate_rule_config(data: Mapping[str, Any], label: str) -> PolicyRuleConfig:
    try:
        return PolicyRuleConfig.model_validate(data)
    except PydanticValidationError as e:
        raise PolicyConfigurationError(f"Invalid policy rule for '{label}': {e}") from e


def load_rule_table(path: Union[str, Path]) -> RuleTable:
    """
    Load a rule table from a YAML file.

    Raises:
        PolicyConfigurationError: If the file is missing or invalid
    """
    table_path = Path(path)
    if not table_path.exists():
        raise PolicyConfigurationError(f"Rule table file not found: {path}")

    try:
        with open(table_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PolicyConfigurationError(f"Failed to load rule table file: {e}")

    table = RuleTable.from_config(data or {})
    logger.info(
        "Loaded rule table '%s' (version %s, %d rules)",
        table.name,
        table.version,
        len(table),
    )
    return table


def available_profiles() -> List[str]:
    """Names of the built-in profiles."""
    return sorted(path.stem for path in PROFILES_DIR.glob("*.yaml"))


def builtin_table(name: str) -> RuleTable:
    """
    Get a built-in rule table by profile name.

    Built-in tables are immutable and loaded once per process.

    Raises:
        PolicyConfigurationError: If the profile does not exist or is incomplete
    """
    return _load_builtin(name.strip().lower())


@lru_cache(maxsize=None)
def _load_builtin(name: str) -> RuleTable:
    if name not in available_profiles():
        raise PolicyConfigurationError(
            f"Unknown policy profile {name!r}; available: "
            f"{', '.join(available_profiles())}"
        )

    table = load_rule_table(PROFILES_DIR / f"{name}.yaml")
    missing = table.missing_categories()
    if missing:
        raise PolicyConfigurationError(
            f"Built-in profile '{name}' has no rule for: "
            f"{', '.join(category.value for category in missing)}"
        )
    return table
