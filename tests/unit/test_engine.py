"""Tests for the detection engine."""

from typing import List

import pytest

from pii_compliance.config.constants import (
    GENERIC_SUGGESTION,
    ConfidenceLevel,
    EntityKind,
    PIICategory,
    RiskLevel,
)
from pii_compliance.config.settings import Settings
from pii_compliance.core.engine import DetectionEngine
from pii_compliance.core.exceptions import (
    EmptyInputError,
    InputTooLargeError,
    InputValidationError,
    RecognizerError,
)
from pii_compliance.core.interfaces import DetectionOptions, EntityHit, EntityRecognizer
from pii_compliance.processors.registry import PatternRegistry


class NoEntities(EntityRecognizer):
    """Recognizer that finds nothing."""

    def recognize_entities(self, text: str) -> List[EntityHit]:
        return []


class BrokenRecognizer(EntityRecognizer):
    """Recognizer that always fails."""

    def recognize_entities(self, text: str) -> List[EntityHit]:
        raise RecognizerError("unavailable")


class TestDetectionEngine:
    """Test DetectionEngine class."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.engine = DetectionEngine()

    def test_engine_initialization(self) -> None:
        """Test engine initialization with defaults."""
        engine = DetectionEngine()
        assert engine.registry is not None
        assert len(engine.registry) > 0
        assert engine.recognizer is not None
        assert engine.validator is not None
        assert engine.matcher is not None
        assert engine.resolver is not None

    def test_no_pii(self) -> None:
        """Test text without PII."""
        result = self.engine.detect("the quick brown fox jumps over the lazy dog")

        assert result.has_pii is False
        assert result.spans == []
        assert result.categories == []
        assert result.overall_confidence is None
        assert result.suggestions == []

    def test_detect_email_and_phone(self) -> None:
        """Test detection of several categories in one text."""
        text = "Contact John Doe at john.doe@example.com or call (555) 123-4567"
        result = self.engine.detect(text)

        assert result.has_pii is True
        assert result.categories == [
            PIICategory.PERSON_NAME,
            PIICategory.EMAIL,
            PIICategory.PHONE,
        ]
        emails = [s for s in result.spans if s.category == PIICategory.EMAIL]
        assert len(emails) == 1
        assert emails[0].text == "john.doe@example.com"
        assert result.overall_confidence == ConfidenceLevel.HIGH

    def test_spans_in_text_order(self) -> None:
        """Test spans are ordered by start offset."""
        text = "ip 10.0.0.1 mail a@example.com zip 12345"
        result = self.engine.detect(text)
        starts = [s.start for s in result.spans]
        assert starts == sorted(starts)

    def test_suggestions(self) -> None:
        """Test suggestions are deduplicated and start with the generic hint."""
        text = "SSN 555-55-5555, card 4111111111111111, a@example.com, b@example.com"
        result = self.engine.detect(text)

        assert result.suggestions[0] == GENERIC_SUGGESTION
        assert len(result.suggestions) == len(set(result.suggestions))
        assert any("Critical PII" in s for s in result.suggestions)
        assert any("Contact information" in s for s in result.suggestions)

    def test_organization_suggestion(self) -> None:
        """Test organization spans add their own hint."""
        result = self.engine.detect("Invoice from Acme Widgets Inc")
        assert result.categories == [PIICategory.ORGANIZATION]
        assert any("Organization names" in s for s in result.suggestions)

    def test_metadata(self) -> None:
        """Test result metadata counts."""
        text = "Write to user@www.example.com"
        result = self.engine.detect(text)

        assert result.metadata["candidate_count"] == 2
        assert result.metadata["resolved_count"] == 1
        assert result.metadata["returned_count"] == 1
        assert result.metadata["text_length"] == len(text)
        assert result.metadata["pattern_count"] == len(self.engine.registry)
        assert result.metadata["entity_recognition"] is True
        assert result.metadata["confidence_threshold"] is None

    def test_threshold_option(self) -> None:
        """Test per-call confidence thresholds filter spans."""
        text = "from 10.0.0.1 to a@example.com"
        all_spans = self.engine.detect(text)
        strict = self.engine.detect(text, DetectionOptions(confidence_threshold=0.7))

        assert {s.category for s in all_spans.spans} == {
            PIICategory.IP_ADDRESS,
            PIICategory.EMAIL,
        }
        assert [s.category for s in strict.spans] == [PIICategory.EMAIL]

    def test_settings_threshold(self) -> None:
        """Test the engine's settings provide the default threshold."""
        engine = DetectionEngine(settings=Settings(confidence_threshold=0.9))
        result = engine.detect("Card: 4111111111111111 and a@example.com")

        assert [s.category for s in result.spans] == [PIICategory.PAYMENT_CARD]
        assert result.spans[0].confidence == ConfidenceLevel.VERY_HIGH

    def test_category_filter(self) -> None:
        """Test options.categories restricts detection."""
        text = "a@example.com 555-123-4567"
        result = self.engine.detect(text, DetectionOptions(categories=frozenset({"phone"})))  # type: ignore[arg-type]
        assert result.categories == [PIICategory.PHONE]

    def test_entity_recognition_disabled(self) -> None:
        """Test entity recognition can be switched off per call."""
        text = "Contact John Doe"
        assert self.engine.has_pii(text) is True
        assert (
            self.engine.has_pii(text, DetectionOptions(enable_entity_recognition=False))
            is False
        )

    def test_custom_registry_and_recognizer(self) -> None:
        """Test injected registry and recognizer are used."""
        registry = PatternRegistry()
        registry.register_pattern("government_id", r"\bEMP-\d{4}\b", risk_level="critical")
        engine = DetectionEngine(registry=registry, recognizer=NoEntities())

        result = engine.detect("Badge EMP-1234 for John Doe")
        assert [s.text for s in result.spans] == ["EMP-1234"]
        assert result.spans[0].risk_level == RiskLevel.CRITICAL

    def test_empty_registry_kept(self) -> None:
        """Test an injected empty registry is used as given."""
        registry = PatternRegistry()
        engine = DetectionEngine(registry=registry, recognizer=NoEntities())

        assert engine.registry is registry
        result = engine.detect("mail a@example.com")
        assert result.has_pii is False
        assert result.metadata["pattern_count"] == 0

    def test_registry_changes_visible(self) -> None:
        """Test rules registered after construction apply to later calls."""
        registry = PatternRegistry()
        engine = DetectionEngine(registry=registry, recognizer=NoEntities())
        assert engine.has_pii("ticket T-99") is False

        registry.register_pattern("url", r"\bT-\d+\b")
        assert engine.has_pii("ticket T-99") is True

    def test_recognizer_error_propagates(self) -> None:
        """Test recognizer failures are not swallowed."""
        engine = DetectionEngine(recognizer=BrokenRecognizer())
        with pytest.raises(RecognizerError):
            engine.detect("hello")

    def test_validation_errors(self) -> None:
        """Test invalid input raises before scanning."""
        with pytest.raises(EmptyInputError):
            self.engine.detect("")
        with pytest.raises(EmptyInputError):
            self.engine.detect(None)  # type: ignore[arg-type]
        with pytest.raises(InputValidationError):
            self.engine.detect(b"bytes")  # type: ignore[arg-type]

    def test_input_too_large(self) -> None:
        """Test oversized input raises InputTooLargeError."""
        options = DetectionOptions(max_text_length=20)
        with pytest.raises(InputTooLargeError) as exc_info:
            self.engine.detect("a@example.com " * 5, options)
        assert exc_info.value.limit == 20

    def test_detect_many(self) -> None:
        """Test several texts are scanned independently."""
        results = self.engine.detect_many(["a@example.com", "nothing here"])
        assert [r.has_pii for r in results] == [True, False]

    def test_count_by_category(self) -> None:
        """Test counting spans per category."""
        counts = self.engine.count_by_category("a@example.com, b@example.com")
        assert counts[PIICategory.EMAIL] == 2
        assert counts[PIICategory.PHONE] == 0

    def test_entity_span_metadata(self) -> None:
        """Test entity spans are reported with their kind."""
        result = self.engine.detect("Please call Dr. Watson")
        assert len(result.spans) == 1
        span = result.spans[0]
        assert span.category == PIICategory.PERSON_NAME
        assert span.metadata["entity_kind"] == EntityKind.PERSON.value
        assert span.metadata["strength"] == "strong"
        assert span.confidence == ConfidenceLevel.MEDIUM
