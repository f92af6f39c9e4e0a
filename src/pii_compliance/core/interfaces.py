"""Abstract base classes and data models for PII detection and policy."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Pattern,
    Sequence,
    Tuple,
    Union,
)

from ..config.constants import (
    ConfidenceLevel,
    DetectionSource,
    EntityKind,
    EntityStrength,
    Operation,
    PIICategory,
    RiskLevel,
)
from .exceptions import (
    PatternCompilationError,
    PolicyConfigurationError,
    UnknownOperationError,
)

if TYPE_CHECKING:
    from ..config.settings import Settings


@dataclass(frozen=True)
class FalsePositiveFilter:
    """
    Named predicate over matched text.

    A match is kept only if every filter of its rule returns True. Filters
    with ``validates`` set positively confirm the match (checksums) rather
    than merely ruling out known bad values.
    """

    name: str
    check: Callable[[str], bool]
    validates: bool = False

    def __call__(self, text: str) -> bool:
        return bool(self.check(text))


@dataclass(frozen=True)
class PatternRule:
    """Detection rule for one PII category."""

    category: PIICategory
    matcher: Pattern[str]
    description: str = ""
    risk_level: RiskLevel = RiskLevel.MODERATE
    filters: Tuple[FalsePositiveFilter, ...] = ()
    examples: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        try:
            category = PIICategory(self.category)
        except ValueError:
            raise PatternCompilationError(
                f"Unknown PII category: {self.category!r}", self.category
            )
        try:
            risk_level = RiskLevel(self.risk_level)
        except ValueError:
            raise PatternCompilationError(
                f"Invalid risk level for category '{category.value}': "
                f"{self.risk_level!r}",
                category,
            )

        matcher: Any = self.matcher
        if isinstance(matcher, str):
            try:
                matcher = re.compile(matcher)
            except re.error as e:
                raise PatternCompilationError(
                    f"Invalid pattern for category '{category.value}': {e}", category
                )
        elif not isinstance(matcher, re.Pattern):
            raise PatternCompilationError(
                f"Pattern for category '{category.value}' must be a string or "
                "compiled expression",
                category,
            )
        if matcher.fullmatch("") is not None:
            raise PatternCompilationError(
                f"Pattern for category '{category.value}' matches the empty string",
                category,
            )

        filters = tuple(self.filters)
        for fp_filter in filters:
            if not isinstance(fp_filter, FalsePositiveFilter):
                raise PatternCompilationError(
                    f"Filters for category '{category.value}' must be "
                    "FalsePositiveFilter instances",
                    category,
                )

        object.__setattr__(self, "category", category)
        object.__setattr__(self, "risk_level", risk_level)
        object.__setattr__(self, "matcher", matcher)
        object.__setattr__(self, "filters", filters)
        object.__setattr__(self, "examples", tuple(self.examples))
        object.__setattr__(self, "labels", tuple(label.lower() for label in self.labels))

    @property
    def validates(self) -> bool:
        """True if a checksum-style filter confirms every accepted match."""
        return any(fp_filter.validates for fp_filter in self.filters)

    def accepts(self, text: str) -> bool:
        """Run every false-positive filter against matched text."""
        return all(fp_filter(text) for fp_filter in self.filters)

    def self_test(self) -> List[str]:
        """
        Check the rule against its own examples.

        Returns:
            Examples that are not matched in full or that a filter rejects
        """
        failures = []
        for example in self.examples:
            match = self.matcher.search(example)
            if match is None or match.group() != example or not self.accepts(example):
                failures.append(example)
        return failures


@dataclass(frozen=True)
class EntityHit:
    """Person or organization span reported by an entity recognizer."""

    start: int
    end: int
    text: str
    kind: EntityKind
    strength: EntityStrength = EntityStrength.NORMAL


@dataclass(frozen=True)
class CandidateSpan:
    """Raw match from any detector, before overlap resolution."""

    category: PIICategory
    start: int
    end: int
    text: str
    source: DetectionSource
    risk_level: RiskLevel
    order: int = 0
    validated: bool = False
    strength: Optional[EntityStrength] = None
    description: str = ""

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class DetectionSpan:
    """A detected PII instance in the original input text."""

    category: PIICategory
    start: int
    end: int
    text: str
    confidence: ConfidenceLevel
    risk_level: RiskLevel
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(
                f"Invalid span offsets: start={self.start}, end={self.end}"
            )
        if len(self.text) != self.end - self.start:
            raise ValueError("Span text length does not match its offsets")

    def overlaps(self, other: "DetectionSpan") -> bool:
        """Check if this span shares any character with another span."""
        return self.start < other.end and other.start < self.end


@dataclass
class DetectionResult:
    """Result of a detection call."""

    has_pii: bool
    categories: List[PIICategory] = field(default_factory=list)
    spans: List[DetectionSpan] = field(default_factory=list)
    overall_confidence: Optional[ConfidenceLevel] = None
    suggestions: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def count_by_category(self) -> Dict[PIICategory, int]:
        """Count spans per category, including zero counts."""
        counts = {category: 0 for category in PIICategory}
        for span in self.spans:
            counts[span.category] += 1
        return counts


@dataclass(frozen=True)
class DetectionOptions:
    """
    Per-call detection options.

    Unset fields take their value from ``Settings`` via ``resolve``.
    ``categories`` restricts detection to the given categories.
    """

    enable_entity_recognition: Optional[bool] = None
    confidence_threshold: Optional[float] = None
    max_text_length: Optional[int] = None
    include_context: Optional[bool] = None
    context_window: Optional[int] = None
    categories: Optional[FrozenSet[PIICategory]] = None

    def __post_init__(self) -> None:
        if self.categories is not None:
            object.__setattr__(
                self,
                "categories",
                frozenset(PIICategory(category) for category in self.categories),
            )

    def resolve(self, settings: "Settings") -> "DetectionOptions":
        """Return a copy with every unset field taken from settings."""
        return replace(
            self,
            enable_entity_recognition=(
                settings.enable_entity_recognition
                if self.enable_entity_recognition is None
                else self.enable_entity_recognition
            ),
            confidence_threshold=(
                settings.confidence_threshold
                if self.confidence_threshold is None
                else self.confidence_threshold
            ),
            max_text_length=(
                settings.max_text_length
                if self.max_text_length is None
                else self.max_text_length
            ),
            include_context=(
                settings.include_context
                if self.include_context is None
                else self.include_context
            ),
            context_window=(
                settings.context_window
                if self.context_window is None
                else self.context_window
            ),
        )

    def allows(self, category: PIICategory) -> bool:
        return self.categories is None or category in self.categories


def _parse_operations(
    operations: Iterable[Union[Operation, str]], category: Any
) -> FrozenSet[Operation]:
    try:
        return frozenset(Operation.parse(op) for op in operations)
    except UnknownOperationError as e:
        raise PolicyConfigurationError(
            f"Invalid operation {e.operation!r} in rule for '{category}'"
        )


@dataclass(frozen=True)
class PolicyRule:
    """
    Handling rule for one PII category.

    ``category`` is None for a table's default rule. ``requires_context`` maps
    an operation to context flags, one of which must be truthy for the
    operation to be allowed.
    """

    category: Optional[PIICategory]
    risk_level: RiskLevel
    allow_logging: bool
    require_masking: bool
    require_encryption: bool
    allowed_operations: FrozenSet[Operation]
    retention_days: Optional[int] = None
    requires_context: Mapping[Operation, FrozenSet[str]] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        label = "default"
        if self.category is not None:
            try:
                category = PIICategory(self.category)
            except ValueError:
                raise PolicyConfigurationError(
                    f"Invalid PII category: {self.category!r}"
                )
            object.__setattr__(self, "category", category)
            label = category.value
        try:
            object.__setattr__(self, "risk_level", RiskLevel(self.risk_level))
        except ValueError:
            raise PolicyConfigurationError(
                f"Invalid risk level for '{label}': {self.risk_level!r}"
            )

        allowed = _parse_operations(self.allowed_operations, label)
        if not allowed:
            raise PolicyConfigurationError(
                f"Policy rule for '{label}' must allow at least one operation"
            )
        if self.allow_logging != (Operation.LOG in allowed):
            raise PolicyConfigurationError(
                f"Policy rule for '{label}': allow_logging must match whether "
                "'log' is an allowed operation"
            )
        if self.retention_days is not None and self.retention_days < 0:
            raise PolicyConfigurationError(
                f"Retention days cannot be negative for '{label}'"
            )

        conditions: Dict[Operation, FrozenSet[str]] = {}
        for operation, flags in dict(self.requires_context).items():
            parsed = _parse_operations([operation], label)
            op = next(iter(parsed))
            if op not in allowed:
                raise PolicyConfigurationError(
                    f"Policy rule for '{label}' sets context requirements for "
                    f"operation '{op.value}' which is not allowed"
                )
            flag_set = frozenset([flags] if isinstance(flags, str) else flags)
            if not flag_set:
                raise PolicyConfigurationError(
                    f"Policy rule for '{label}' lists no context flags for "
                    f"operation '{op.value}'"
                )
            conditions[op] = flag_set

        object.__setattr__(self, "allowed_operations", allowed)
        object.__setattr__(self, "requires_context", MappingProxyType(conditions))

    def permits(
        self, operation: Operation, context: Optional[Mapping[str, Any]] = None
    ) -> bool:
        """Check whether the operation is allowed under the given context."""
        if operation not in self.allowed_operations:
            return False
        flags = self.requires_context.get(operation)
        if not flags:
            return True
        context = context or {}
        return any(bool(context.get(flag)) for flag in flags)


@dataclass
class PolicyDecision:
    """Verdict for one (category, operation) pair."""

    allowed: bool
    requires_masking: bool
    requires_encryption: bool
    reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class Processor(ABC):
    """Base class for all detection pipeline processors."""

    @abstractmethod
    def process(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process text and return updated context.

        Args:
            text: Input text to process
            context: Processing context containing intermediate results

        Returns:
            Updated context dictionary
        """
        pass


class Detector(ABC):
    """Source of candidate spans."""

    @abstractmethod
    def detect(
        self,
        text: str,
        rules: Sequence[PatternRule],
        options: DetectionOptions,
    ) -> List[CandidateSpan]:
        """
        Find candidate spans in text.

        Args:
            text: Original input text
            rules: Active pattern rules in registration order
            options: Resolved detection options

        Returns:
            Unsorted candidate spans
        """
        pass


class EntityRecognizer(ABC):
    """Natural-language recognizer for person and organization names."""

    @abstractmethod
    def recognize_entities(self, text: str) -> List[EntityHit]:
        """
        Recognize named entities in text.

        Args:
            text: Original input text

        Returns:
            Entity hits with offsets into ``text``
        """
        pass
