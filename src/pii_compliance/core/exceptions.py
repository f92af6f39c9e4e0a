"""Custom exceptions for PII detection and policy evaluation."""

from typing import Any, Optional


class PIIComplianceError(Exception):
    """Base exception for all PII compliance errors."""

    pass


class ValidationError(PIIComplianceError):
    """Raised when detection input is rejected."""

    pass


class InputValidationError(ValidationError):
    """Raised when the input is not text."""

    pass


class EmptyInputError(ValidationError):
    """Raised when the input text is missing or empty."""

    pass


class InputTooLargeError(ValidationError):
    """Raised when the input text exceeds the configured maximum length."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(
            f"text length {length} exceeds maximum allowed length {limit}"
        )


class ConfigurationError(PIIComplianceError):
    """Raised when patterns or rule tables are misconfigured."""

    pass


class PatternCompilationError(ConfigurationError):
    """Raised when a pattern rule cannot be built."""

    def __init__(self, message: str, category: Optional[Any] = None) -> None:
        self.category = category
        super().__init__(message)


class PolicyConfigurationError(ConfigurationError):
    """Raised when a policy rule or rule table is invalid."""

    pass


class UnknownOperationError(PIIComplianceError):
    """Raised when an operation outside the enumerated set is evaluated."""

    def __init__(self, operation: Any) -> None:
        self.operation = operation
        super().__init__(f"Unknown operation: {operation!r}")


class RecognizerError(PIIComplianceError):
    """Raised when the entity recognizer fails or cannot be loaded."""

    pass
