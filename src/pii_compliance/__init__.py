"""PII detection and compliance policy evaluation."""

__version__ = "0.1.0"

from .config.constants import (
    ConfidenceLevel,
    Operation,
    PIICategory,
    RiskLevel,
)
from .core.engine import DetectionEngine
from .core.exceptions import (
    ConfigurationError,
    EmptyInputError,
    InputTooLargeError,
    InputValidationError,
    PatternCompilationError,
    PIIComplianceError,
    PolicyConfigurationError,
    RecognizerError,
    UnknownOperationError,
    ValidationError,
)
from .core.interfaces import (
    DetectionOptions,
    DetectionResult,
    DetectionSpan,
    PatternRule,
    PolicyDecision,
    PolicyRule,
)
from .policy.engine import ComplianceReport, PolicyDecisionEngine, evaluate
from .policy.rules import RuleTable, available_profiles, builtin_table, load_rule_table
from .processors.registry import PatternRegistry

__all__ = [
    "PIICategory",
    "RiskLevel",
    "ConfidenceLevel",
    "Operation",
    "DetectionEngine",
    "DetectionOptions",
    "DetectionResult",
    "DetectionSpan",
    "PatternRule",
    "PatternRegistry",
    "PolicyRule",
    "PolicyDecision",
    "RuleTable",
    "PolicyDecisionEngine",
    "ComplianceReport",
    "evaluate",
    "builtin_table",
    "load_rule_table",
    "available_profiles",
    "PIIComplianceError",
    "ValidationError",
    "InputValidationError",
    "EmptyInputError",
    "InputTooLargeError",
    "ConfigurationError",
    "PatternCompilationError",
    "PolicyConfigurationError",
    "UnknownOperationError",
    "RecognizerError",
]
