"""Confidence scoring for resolved PII spans."""

import re
from functools import lru_cache
from typing import Any, Dict, Iterable, Optional, Pattern, Sequence, Tuple

from ..config.constants import (
    ConfidenceLevel,
    DetectionSource,
    EntityStrength,
    RiskLevel,
)
from ..config.settings import get_settings
from ..core.interfaces import CandidateSpan, DetectionSpan, Processor


@lru_cache(maxsize=256)
def _label_pattern(labels: Tuple[str, ...], separators: str) -> Optional[Pattern[str]]:
    if not labels:
        return None
    alternatives = "|".join(
        re.escape(label) for label in sorted(labels, key=len, reverse=True)
    )
    separator = (
        r"\s*[" + "".join(re.escape(char) for char in separators) + "]"
        if separators
        else ""
    )
    return re.compile(rf"(?<!\w)(?:{alternatives}){separator}\s*$", re.IGNORECASE)


class ConfidenceScorer(Processor):
    """Assigns confidence bands to accepted spans."""

    def __init__(
        self,
        label_lookback: Optional[int] = None,
        label_separators: Optional[str] = None,
    ) -> None:
        """
        Initialize confidence scorer.

        Args:
            label_lookback: Characters before a span searched for a label.
                            If None, uses default from settings.
            label_separators: Characters that terminate a label (e.g. ":").
                              If None, uses default from settings.
        """
        settings = get_settings()
        self.label_lookback = (
            settings.label_lookback if label_lookback is None else label_lookback
        )
        self.label_separators = (
            settings.label_separators if label_separators is None else label_separators
        )

    def base_confidence(self, risk_level: RiskLevel) -> ConfidenceLevel:
        """Starting band derived from the owning rule's risk level."""
        if risk_level >= RiskLevel.HIGH:
            return ConfidenceLevel.HIGH
        return ConfidenceLevel.MEDIUM

    def has_label(self, text: str, start: int, labels: Sequence[str]) -> bool:
        """
        Check whether a label token immediately precedes a span.

        Args:
            text: Original input text
            start: Span start offset
            labels: Label vocabulary for the span's category

        Returns:
            True if a separator-terminated label ends right before ``start``
        """
        pattern = _label_pattern(tuple(labels), self.label_separators)
        if pattern is None or self.label_lookback <= 0:
            return False
        window = text[max(0, start - self.label_lookback) : start]
        return pattern.search(window) is not None

    def score(
        self, candidate: CandidateSpan, text: str, labels: Sequence[str] = ()
    ) -> ConfidenceLevel:
        """
        Compute the confidence band for an accepted candidate.

        Args:
            candidate: Accepted candidate span
            text: Original input text
            labels: Label vocabulary for the candidate's category

        Returns:
            Confidence band, never above VERY_HIGH
        """
        confidence = self.base_confidence(candidate.risk_level)

        if candidate.validated:
            confidence = confidence.raised()

        if self.has_label(text, candidate.start, labels):
            confidence = confidence.raised()

        if (
            candidate.source == DetectionSource.ENTITY_RECOGNIZER
            and candidate.strength != EntityStrength.STRONG
        ):
            confidence = min(confidence, ConfidenceLevel.MEDIUM)

        return confidence

    def score_overall(
        self, spans: Iterable[DetectionSpan]
    ) -> Optional[ConfidenceLevel]:
        """Overall confidence is the highest band among spans."""
        bands = [span.confidence for span in spans]
        if not bands:
            return None
        return max(bands)

    def process(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Compute overall confidence for the processing context.

        Args:
            text: Input text
            context: Processing context containing resolved ``spans``

        Returns:
            Updated context with ``overall_confidence``
        """
        context["overall_confidence"] = self.score_overall(context.get("spans", []))
        return context
