"""Constants and enums for PII detection and policy evaluation."""

from enum import Enum
from typing import Dict, FrozenSet, Union


class _OrderedEnum:
    """Mixin giving enum members an order by declaration position."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)  # type: ignore[arg-type]

    def __lt__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.rank < other.rank  # type: ignore[attr-defined]

    def __le__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.rank <= other.rank  # type: ignore[attr-defined]

    def __gt__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.rank > other.rank  # type: ignore[attr-defined]

    def __ge__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.rank >= other.rank  # type: ignore[attr-defined]


class PIICategory(str, Enum):
    """Kinds of personally identifiable information that can be detected."""

    EMAIL = "email"
    PHONE = "phone"
    PERSON_NAME = "person_name"
    STREET_ADDRESS = "street_address"
    GOVERNMENT_ID = "government_id"
    PAYMENT_CARD = "payment_card"
    IP_ADDRESS = "ip_address"
    URL = "url"
    POSTAL_CODE = "postal_code"
    DATE_OF_BIRTH = "date_of_birth"
    IBAN = "iban"
    ORGANIZATION = "organization"


class RiskLevel(_OrderedEnum, str, Enum):
    """Sensitivity classification, ordered from low to critical."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ConfidenceLevel(_OrderedEnum, str, Enum):
    """Certainty band attached to a detected span."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def weight(self) -> float:
        """Numeric weight used for threshold comparisons."""
        return CONFIDENCE_WEIGHTS[self]

    def raised(self, steps: int = 1) -> "ConfidenceLevel":
        """Return the band ``steps`` above this one, clamped at VERY_HIGH."""
        members = list(ConfidenceLevel)
        index = min(len(members) - 1, max(0, self.rank + steps))
        return members[index]

    @classmethod
    def from_weight(cls, weight: float) -> "ConfidenceLevel":
        """Return the highest band whose weight does not exceed ``weight``."""
        best = cls.LOW
        for level in cls:
            if level.weight <= weight:
                best = level
        return best


class Operation(str, Enum):
    """Operations a caller may want to perform on a piece of PII."""

    STORE = "store"
    PROCESS = "process"
    TRANSFER = "transfer"
    LOG = "log"
    DISPLAY = "display"
    EXPORT = "export"

    @classmethod
    def parse(cls, value: Union["Operation", str]) -> "Operation":
        """
        Coerce a string or Operation into an Operation.

        Args:
            value: Operation member or its string value (case-insensitive)

        Returns:
            Matching Operation

        Raises:
            UnknownOperationError: If the value is not an enumerated operation
        """
        from ..core.exceptions import UnknownOperationError

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnknownOperationError(value)


class DetectionSource(str, Enum):
    """Where a candidate span came from."""

    PATTERN = "pattern"
    ENTITY_RECOGNIZER = "entity-recognizer"


class EntityKind(str, Enum):
    """Entity kinds reported by an entity recognizer."""

    PERSON = "person"
    ORGANIZATION = "organization"


class EntityStrength(str, Enum):
    """How sure the entity recognizer is of a classification."""

    NORMAL = "normal"
    STRONG = "strong"


CONFIDENCE_WEIGHTS: Dict[ConfidenceLevel, float] = {
    ConfidenceLevel.LOW: 0.3,
    ConfidenceLevel.MEDIUM: 0.5,
    ConfidenceLevel.HIGH: 0.7,
    ConfidenceLevel.VERY_HIGH: 0.9,
}

# Operations for which masking or encryption are meaningful
MASKING_OPERATIONS: FrozenSet[Operation] = frozenset(
    {Operation.DISPLAY, Operation.LOG}
)
ENCRYPTION_OPERATIONS: FrozenSet[Operation] = frozenset(
    {Operation.STORE, Operation.TRANSFER, Operation.EXPORT}
)

ENTITY_CATEGORIES: Dict[EntityKind, PIICategory] = {
    EntityKind.PERSON: PIICategory.PERSON_NAME,
    EntityKind.ORGANIZATION: PIICategory.ORGANIZATION,
}
ENTITY_RISK_LEVELS: Dict[PIICategory, RiskLevel] = {
    PIICategory.PERSON_NAME: RiskLevel.MODERATE,
    PIICategory.ORGANIZATION: RiskLevel.LOW,
}
ENTITY_LABELS: Dict[PIICategory, tuple] = {
    PIICategory.PERSON_NAME: ("name", "full name", "customer", "patient", "contact"),
    PIICategory.ORGANIZATION: ("company", "organization", "employer"),
}

# Remediation hints
GENERIC_SUGGESTION = (
    "Consider masking or redacting detected PII before logging or storing"
)
RISK_SUGGESTIONS: Dict[RiskLevel, str] = {
    RiskLevel.CRITICAL: (
        "Critical PII detected - encrypt at rest and never log in plaintext"
    ),
}
CATEGORY_SUGGESTIONS: Dict[PIICategory, str] = {
    PIICategory.EMAIL: "Contact information detected - verify consent for processing",
    PIICategory.PHONE: "Contact information detected - verify consent for processing",
    PIICategory.ORGANIZATION: (
        "Organization names detected - verify if these should be treated as PII"
    ),
}

# Default values
DEFAULT_MAX_TEXT_LENGTH = 50000
DEFAULT_CONTEXT_WINDOW = 10
DEFAULT_LABEL_LOOKBACK = 24
DEFAULT_LABEL_SEPARATORS = ":#="
DEFAULT_PROFILE = "permissive"
