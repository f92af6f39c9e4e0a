"""Overlap resolution, scoring and thresholding of candidate spans."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config.constants import DetectionSource, EntityKind, PIICategory
from ..core.interfaces import (
    CandidateSpan,
    DetectionOptions,
    DetectionSpan,
    Processor,
)
from .scorer import ConfidenceScorer

logger = logging.getLogger(__name__)


def candidate_sort_key(candidate: CandidateSpan) -> Tuple[int, int, int, int, int]:
    """
    Total order used to pick the winner among overlapping candidates.

    Earlier start wins, then the longer span, then pattern spans over entity
    spans, then higher risk, then earlier registration.
    """
    return (
        candidate.start,
        -candidate.length,
        0 if candidate.source == DetectionSource.PATTERN else 1,
        -candidate.risk_level.rank,
        candidate.order,
    )


def extract_context(text: str, start: int, end: int, window: int) -> str:
    """
    Extract context around a span with the span itself bracketed.

    Args:
        text: Full text
        start: Start position of the span
        end: End position of the span
        window: Number of characters to include on each side

    Returns:
        Context string such as ``...call [555-123-4567] today...``
    """
    before = text[max(0, start - window) : start]
    after = text[end : min(len(text), end + window)]
    return f"...{before}[{text[start:end]}]{after}..."


class SpanResolver(Processor):
    """Turns pooled candidates into non-overlapping, scored detection spans."""

    def __init__(self, scorer: Optional[ConfidenceScorer] = None) -> None:
        """
        Initialize span resolver.

        Args:
            scorer: Confidence scorer (creates default if None)
        """
        self.scorer = scorer or ConfidenceScorer()

    def select(self, candidates: Sequence[CandidateSpan]) -> List[CandidateSpan]:
        """
        Keep one candidate per character range.

        Args:
            candidates: Unsorted candidates from every detector

        Returns:
            Accepted candidates in text order
        """
        accepted: List[CandidateSpan] = []
        last_end = 0
        for candidate in sorted(candidates, key=candidate_sort_key):
            if candidate.start < last_end:
                continue
            accepted.append(candidate)
            last_end = candidate.end
        return accepted

    def resolve(
        self,
        text: str,
        candidates: Sequence[CandidateSpan],
        options: DetectionOptions,
        vocabulary: Optional[Mapping[PIICategory, Sequence[str]]] = None,
    ) -> List[DetectionSpan]:
        """
        Resolve overlaps, score and filter candidates.

        Args:
            text: Original input text
            candidates: Unsorted candidates from every detector
            options: Resolved detection options
            vocabulary: Label words per category for confidence scoring

        Returns:
            Detection spans in text order
        """
        accepted = self.select(candidates)
        spans = self.finalize(text, accepted, options, vocabulary)

        logger.debug(
            "Resolved %d candidates to %d spans (%d overlapping)",
            len(candidates),
            len(spans),
            len(candidates) - len(accepted),
        )
        return spans

    def finalize(
        self,
        text: str,
        accepted: Sequence[CandidateSpan],
        options: DetectionOptions,
        vocabulary: Optional[Mapping[PIICategory, Sequence[str]]] = None,
    ) -> List[DetectionSpan]:
        """
        Score accepted candidates, apply the threshold and attach context.

        Args:
            text: Original input text
            accepted: Non-overlapping candidates from ``select``
            options: Resolved detection options
            vocabulary: Label words per category for confidence scoring

        Returns:
            Detection spans in text order
        """
        vocabulary = vocabulary or {}
        spans: List[DetectionSpan] = []
        below_threshold = 0
        for candidate in accepted:
            confidence = self.scorer.score(
                candidate, text, vocabulary.get(candidate.category, ())
            )
            if (
                options.confidence_threshold is not None
                and confidence.weight < options.confidence_threshold
            ):
                below_threshold += 1
                continue

            span = DetectionSpan(
                category=candidate.category,
                start=candidate.start,
                end=candidate.end,
                text=candidate.text,
                confidence=confidence,
                risk_level=candidate.risk_level,
                metadata=self._metadata(candidate),
            )
            if options.include_context:
                span.metadata["context"] = extract_context(
                    text, candidate.start, candidate.end, options.context_window or 0
                )
            spans.append(span)

        if below_threshold:
            logger.debug("Dropped %d spans below confidence threshold", below_threshold)
        return spans

    def _metadata(self, candidate: CandidateSpan) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"source": candidate.source.value}
        if candidate.source == DetectionSource.PATTERN:
            metadata["validation_passed"] = True
            metadata["validated"] = candidate.validated
            if candidate.description:
                metadata["description"] = candidate.description
        else:
            metadata["entity_kind"] = (
                EntityKind.PERSON.value
                if candidate.category == PIICategory.PERSON_NAME
                else EntityKind.ORGANIZATION.value
            )
            metadata["strength"] = (
                candidate.strength.value if candidate.strength else "normal"
            )
        return metadata

    def process(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Resolve candidates for the processing context.

        Args:
            text: Input text
            context: Processing context containing ``candidates``, ``options``
                     and optionally ``vocabulary``

        Returns:
            Updated context with ``accepted`` candidates and ``spans``
        """
        accepted = self.select(context.get("candidates", []))
        context["accepted"] = accepted
        context["spans"] = self.finalize(
            text, accepted, context["options"], context.get("vocabulary")
        )
        return context
