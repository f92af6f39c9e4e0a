"""Policy decision engine."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..config.constants import (
    ENCRYPTION_OPERATIONS,
    MASKING_OPERATIONS,
    Operation,
    PIICategory,
    RiskLevel,
)
from ..config.settings import get_settings
from ..core.interfaces import DetectionResult, PolicyDecision
from .rules import RuleTable, builtin_table

logger = logging.getLogger(__name__)

CategoryLike = Union[PIICategory, str]
OperationLike = Union[Operation, str]


def _category_label(category: Any) -> str:
    if isinstance(category, PIICategory):
        return category.value
    return str(category)


def evaluate(
    table: RuleTable,
    category: CategoryLike,
    operation: OperationLike,
    context: Optional[Mapping[str, Any]] = None,
) -> PolicyDecision:
    """
    Decide whether an operation may be performed on a PII category.

    Args:
        table: Rule table to evaluate against
        category: PII category; unknown categories use the table's default rule
        operation: Operation to perform
        context: Context flags (e.g. ``consent``) for conditional operations

    Returns:
        PolicyDecision for the pair

    Raises:
        UnknownOperationError: If ``operation`` is not an enumerated operation
    """
    op = Operation.parse(operation)
    rule = table.rule(category)
    label = _category_label(category)

    allowed = rule.permits(op, context)
    requires_masking = rule.require_masking and op in MASKING_OPERATIONS
    requires_encryption = rule.require_encryption and op in ENCRYPTION_OPERATIONS

    reason: Optional[str] = None
    if not allowed:
        reason = f"Operation '{op.value}' not allowed for category '{label}'"
    elif requires_encryption:
        reason = f"Operation '{op.value}' requires encryption for category '{label}'"
    elif requires_masking:
        reason = f"Operation '{op.value}' requires masking for category '{label}'"

    metadata: Dict[str, Any] = {
        "risk_level": rule.risk_level,
        "category": label,
        "operation": op.value,
        "profile": table.name,
        "default_rule": not table.has_rule(category),
    }
    if rule.retention_days is not None:
        metadata["retention_days"] = rule.retention_days
    flags = rule.requires_context.get(op)
    if flags:
        metadata["requires_context"] = sorted(flags)

    logger.debug(
        "Policy '%s': %s on '%s' -> %s",
        table.name,
        op.value,
        label,
        "allowed" if allowed else "denied",
    )
    return PolicyDecision(
        allowed=allowed,
        requires_masking=requires_masking,
        requires_encryption=requires_encryption,
        reason=reason,
        metadata=metadata,
    )


@dataclass
class ComplianceReport:
    """Outcome of checking several operations on one category."""

    is_compliant: bool
    violations: List[str] = field(default_factory=list)
    decisions: Dict[Operation, PolicyDecision] = field(default_factory=dict)


class PolicyDecisionEngine:
    """Evaluates operations against one rule table."""

    def __init__(self, table: Optional[RuleTable] = None) -> None:
        """
        Initialize policy engine.

        Args:
            table: Rule table (built-in ``Settings.default_profile`` if None)
        """
        if table is None:
            table = builtin_table(get_settings().default_profile)
        self.table = table

    @classmethod
    def from_profile(cls, name: str) -> "PolicyDecisionEngine":
        """Create an engine for a built-in profile."""
        return cls(builtin_table(name))

    def evaluate(
        self,
        category: CategoryLike,
        operation: OperationLike,
        context: Optional[Mapping[str, Any]] = None,
    ) -> PolicyDecision:
        return evaluate(self.table, category, operation, context)

    def evaluate_result(
        self,
        result: DetectionResult,
        operation: OperationLike,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Dict[PIICategory, PolicyDecision]:
        """
        Evaluate an operation for every category in a detection result.

        Returns:
            One decision per distinct category, in first-seen order
        """
        return {
            category: self.evaluate(category, operation, context)
            for category in result.categories
        }

    def validate_compliance(
        self,
        category: CategoryLike,
        operations: Iterable[OperationLike],
        context: Optional[Mapping[str, Any]] = None,
    ) -> ComplianceReport:
        """
        Check that every operation is allowed for a category.

        Raises:
            UnknownOperationError: If any operation is not enumerated
        """
        decisions: Dict[Operation, PolicyDecision] = {}
        violations: List[str] = []
        for operation in operations:
            op = Operation.parse(operation)
            decision = self.evaluate(category, op, context)
            decisions[op] = decision
            if not decision.allowed and decision.reason:
                violations.append(decision.reason)

        return ComplianceReport(
            is_compliant=not violations,
            violations=violations,
            decisions=decisions,
        )

    def can_log(self, category: CategoryLike) -> bool:
        return self.evaluate(category, Operation.LOG).allowed

    def can_store(self, category: CategoryLike) -> bool:
        return self.evaluate(category, Operation.STORE).allowed

    def requires_masking(self, category: CategoryLike, operation: OperationLike) -> bool:
        return self.evaluate(category, operation).requires_masking

    def requires_encryption(
        self, category: CategoryLike, operation: OperationLike
    ) -> bool:
        return self.evaluate(category, operation).requires_encryption

    def risk_level(self, category: CategoryLike) -> RiskLevel:
        return self.table.rule(category).risk_level

    def retention_days(self, category: CategoryLike) -> Optional[int]:
        return self.table.rule(category).retention_days
