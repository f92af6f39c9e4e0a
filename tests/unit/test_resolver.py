"""Tests for overlap resolution."""

from typing import Any, Dict, List

from pii_compliance.config.constants import (
    ConfidenceLevel,
    DetectionSource,
    EntityStrength,
    PIICategory,
    RiskLevel,
)
from pii_compliance.core.interfaces import CandidateSpan, DetectionOptions
from pii_compliance.processors.resolver import (
    SpanResolver,
    candidate_sort_key,
    extract_context,
)
from pii_compliance.processors.scorer import ConfidenceScorer


def candidate(
    text: str,
    start: int,
    end: int,
    category: PIICategory,
    risk_level: RiskLevel = RiskLevel.HIGH,
    source: DetectionSource = DetectionSource.PATTERN,
    order: int = 0,
    **kwargs: Any,
) -> CandidateSpan:
    return CandidateSpan(
        category=category,
        start=start,
        end=end,
        text=text[start:end],
        source=source,
        risk_level=risk_level,
        order=order,
        **kwargs,
    )


class TestSpanResolver:
    """Test SpanResolver class."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.resolver = SpanResolver(ConfidenceScorer(label_lookback=24, label_separators=":"))
        self.options = DetectionOptions(confidence_threshold=None, include_context=False)

    def test_longer_span_wins(self) -> None:
        """Test the longer of two spans with the same start wins."""
        text = "user@www.example.com"
        candidates = [
            candidate(text, 5, 20, PIICategory.URL, RiskLevel.LOW, order=8),
            candidate(text, 0, 20, PIICategory.EMAIL, order=0),
        ]
        spans = self.resolver.resolve(text, candidates, self.options)

        assert [s.category for s in spans] == [PIICategory.EMAIL]

    def test_earlier_start_wins(self) -> None:
        """Test an earlier start beats a longer overlapping span."""
        text = "abcdefghij"
        candidates = [
            candidate(text, 2, 10, PIICategory.PHONE),
            candidate(text, 0, 4, PIICategory.POSTAL_CODE, RiskLevel.LOW),
        ]
        spans = self.resolver.resolve(text, candidates, self.options)

        assert [(s.start, s.end) for s in spans] == [(0, 4)]

    def test_pattern_beats_entity_on_tie(self) -> None:
        """Test pattern spans win ties against entity spans."""
        text = "Acme Inc"
        candidates = [
            candidate(
                text,
                0,
                8,
                PIICategory.ORGANIZATION,
                RiskLevel.LOW,
                source=DetectionSource.ENTITY_RECOGNIZER,
                order=10,
                strength=EntityStrength.NORMAL,
            ),
            candidate(text, 0, 8, PIICategory.URL, RiskLevel.LOW, order=9),
        ]
        spans = self.resolver.resolve(text, candidates, self.options)

        assert [s.category for s in spans] == [PIICategory.URL]
        assert spans[0].metadata["source"] == "pattern"

    def test_higher_risk_then_order(self) -> None:
        """Test risk then registration order break remaining ties."""
        text = "123456789"
        low = candidate(text, 0, 9, PIICategory.POSTAL_CODE, RiskLevel.LOW, order=1)
        critical = candidate(text, 0, 9, PIICategory.GOVERNMENT_ID, RiskLevel.CRITICAL, order=2)
        assert sorted([low, critical], key=candidate_sort_key)[0] is critical

        first = candidate(text, 0, 9, PIICategory.PHONE, order=1)
        second = candidate(text, 0, 9, PIICategory.EMAIL, order=0)
        assert sorted([first, second], key=candidate_sort_key)[0] is second

    def test_adjacent_spans_kept(self) -> None:
        """Test touching spans do not overlap."""
        text = "aaaabbbb"
        candidates = [
            candidate(text, 4, 8, PIICategory.EMAIL),
            candidate(text, 0, 4, PIICategory.EMAIL),
        ]
        spans = self.resolver.resolve(text, candidates, self.options)

        assert [(s.start, s.end) for s in spans] == [(0, 4), (4, 8)]

    def test_threshold_after_resolution(self) -> None:
        """Test thresholding does not revive overlapped candidates."""
        text = "user@www.example.com"
        candidates = [
            candidate(text, 0, 20, PIICategory.EMAIL, RiskLevel.MODERATE),
            candidate(text, 9, 20, PIICategory.URL, RiskLevel.CRITICAL, validated=True),
        ]
        options = DetectionOptions(confidence_threshold=0.7)
        spans = self.resolver.resolve(text, candidates, options)

        assert spans == []

    def test_threshold_keeps_confident_spans(self) -> None:
        """Test spans at or above the threshold weight survive."""
        text = "a@b.co 1.2.3.4"
        candidates = [
            candidate(text, 0, 6, PIICategory.EMAIL, RiskLevel.HIGH),
            candidate(text, 7, 14, PIICategory.IP_ADDRESS, RiskLevel.MODERATE),
        ]
        spans = self.resolver.resolve(text, candidates, DetectionOptions(confidence_threshold=0.7))

        assert [s.category for s in spans] == [PIICategory.EMAIL]
        assert spans[0].confidence == ConfidenceLevel.HIGH

    def test_vocabulary_used_for_scoring(self) -> None:
        """Test per-category labels raise confidence."""
        text = "ip: 1.2.3.4"
        candidates = [candidate(text, 4, 11, PIICategory.IP_ADDRESS, RiskLevel.MODERATE)]
        spans = self.resolver.resolve(
            text, candidates, self.options, {PIICategory.IP_ADDRESS: ("ip",)}
        )
        assert spans[0].confidence == ConfidenceLevel.HIGH

    def test_context_attached(self) -> None:
        """Test context snippets are attached on request."""
        text = "Call 555-123-4567 now"
        candidates = [candidate(text, 5, 17, PIICategory.PHONE)]
        options = DetectionOptions(include_context=True, context_window=5)
        spans = self.resolver.resolve(text, candidates, options)

        assert spans[0].metadata["context"] == "...Call [555-123-4567] now..."

    def test_entity_metadata(self) -> None:
        """Test entity spans record kind and strength."""
        text = "Dr. Watson"
        candidates = [
            candidate(
                text,
                4,
                10,
                PIICategory.PERSON_NAME,
                RiskLevel.MODERATE,
                source=DetectionSource.ENTITY_RECOGNIZER,
                strength=EntityStrength.STRONG,
            )
        ]
        span = self.resolver.resolve(text, candidates, self.options)[0]

        assert span.metadata == {
            "source": "entity-recognizer",
            "entity_kind": "person",
            "strength": "strong",
        }

    def test_process(self) -> None:
        """Test process stores accepted candidates and spans."""
        text = "aaaa"
        context: Dict[str, Any] = {
            "candidates": [candidate(text, 0, 4, PIICategory.EMAIL)],
            "options": self.options,
        }
        result = self.resolver.process(text, context)

        assert len(result["accepted"]) == 1
        assert len(result["spans"]) == 1


class TestExtractContext:
    """Test extract_context helper."""

    def test_window_clamped(self) -> None:
        """Test the window is clamped to the text bounds."""
        assert extract_context("abc", 0, 3, 10) == "...[abc]..."
        assert extract_context("xxabcyy", 2, 5, 1) == "...x[abc]y..."

    def test_zero_window(self) -> None:
        """Test a zero window yields only the span."""
        spans: List[str] = [extract_context("hello world", 6, 11, 0)]
        assert spans == ["...[world]..."]
