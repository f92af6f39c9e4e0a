"""Detection engine orchestrating the span pipeline."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config.constants import (
    CATEGORY_SUGGESTIONS,
    ENTITY_LABELS,
    GENERIC_SUGGESTION,
    RISK_SUGGESTIONS,
    PIICategory,
)
from ..config.settings import Settings, get_settings
from ..processors.matcher import EntityDetector, SpanMatcher
from ..processors.recognizer import GazetteerRecognizer
from ..processors.registry import DEFAULT_PATTERNS_FILE, PatternRegistry
from ..processors.resolver import SpanResolver
from ..processors.scorer import ConfidenceScorer
from ..processors.validator import Validator
from .interfaces import (
    DetectionOptions,
    DetectionResult,
    DetectionSpan,
    EntityRecognizer,
    PatternRule,
)

logger = logging.getLogger(__name__)


class DetectionEngine:
    """Main entry point for scanning text for PII."""

    def __init__(
        self,
        registry: Optional[PatternRegistry] = None,
        recognizer: Optional[EntityRecognizer] = None,
        settings: Optional[Settings] = None,
        validator: Optional[Validator] = None,
        matcher: Optional[SpanMatcher] = None,
        resolver: Optional[SpanResolver] = None,
    ) -> None:
        """
        Initialize detection engine with processors.

        Args:
            registry: Pattern registry (loads the configured patterns file if None)
            recognizer: Entity recognizer (creates GazetteerRecognizer if None)
            settings: Settings (uses cached settings if None)
            validator: Input validator (creates default if None)
            matcher: Span matcher (built around ``recognizer`` if None)
            resolver: Span resolver (creates one with a settings-based scorer if None)
        """
        self.settings = settings or get_settings()

        if registry is None:
            registry = PatternRegistry.from_yaml(
                self.settings.patterns_file or DEFAULT_PATTERNS_FILE
            )
        self.registry = registry
        self.recognizer = recognizer if recognizer is not None else GazetteerRecognizer()
        self.validator = validator if validator is not None else Validator()
        self.matcher = (
            matcher
            if matcher is not None
            else SpanMatcher(entity_detector=EntityDetector(self.recognizer))
        )
        self.scorer = ConfidenceScorer(
            label_lookback=self.settings.label_lookback,
            label_separators=self.settings.label_separators,
        )
        self.resolver = resolver if resolver is not None else SpanResolver(self.scorer)

    def detect(
        self, text: str, options: Optional[DetectionOptions] = None
    ) -> DetectionResult:
        """
        Execute full detection pipeline.

        Args:
            text: Input text to scan
            options: Per-call options (unset fields come from settings)

        Returns:
            DetectionResult with spans, categories and suggestions

        Raises:
            ValidationError: If input validation fails
            RecognizerError: If the entity recognizer fails
        """
        resolved = (options or DetectionOptions()).resolve(self.settings)

        # Step 1: Validate input
        context: Dict[str, Any] = {"options": resolved}
        context = self.validator.process(text, context)

        # Step 2: Take one registry snapshot for the whole call
        rules = self.registry.snapshot()
        context["rules"] = rules
        context["vocabulary"] = self._vocabulary(rules)

        # Step 3: Pool candidates from patterns and entities
        context = self.matcher.process(text, context)

        # Step 4: Resolve overlaps, score, threshold
        context = self.resolver.process(text, context)

        # Step 5: Overall confidence
        context = self.scorer.process(text, context)

        spans: List[DetectionSpan] = context["spans"]
        result = DetectionResult(
            has_pii=bool(spans),
            categories=self._categories(spans),
            spans=spans,
            overall_confidence=context["overall_confidence"],
            suggestions=self._suggestions(spans),
            metadata={
                "candidate_count": len(context["candidates"]),
                "resolved_count": len(context["accepted"]),
                "returned_count": len(spans),
                "confidence_threshold": resolved.confidence_threshold,
                "entity_recognition": resolved.enable_entity_recognition,
                "text_length": context["text_length"],
                "pattern_count": len(rules),
            },
        )

        logger.debug(
            "Detected %d spans in %d categories (text length %d)",
            len(spans),
            len(result.categories),
            context["text_length"],
        )
        return result

    def has_pii(self, text: str, options: Optional[DetectionOptions] = None) -> bool:
        """Check whether text contains any PII."""
        return self.detect(text, options).has_pii

    def detect_many(
        self, texts: Iterable[str], options: Optional[DetectionOptions] = None
    ) -> List[DetectionResult]:
        """
        Scan several texts with the same options.

        Raises:
            ValidationError: On the first invalid text
        """
        return [self.detect(text, options) for text in texts]

    def count_by_category(
        self, text: str, options: Optional[DetectionOptions] = None
    ) -> Dict[PIICategory, int]:
        """Count detected spans per category (every category present)."""
        return self.detect(text, options).count_by_category()

    def _vocabulary(
        self, rules: Sequence[PatternRule]
    ) -> Dict[PIICategory, Tuple[str, ...]]:
        vocabulary: Dict[PIICategory, Tuple[str, ...]] = dict(ENTITY_LABELS)
        for rule in rules:
            vocabulary[rule.category] = rule.labels
        return vocabulary

    def _categories(self, spans: Sequence[DetectionSpan]) -> List[PIICategory]:
        categories: List[PIICategory] = []
        for span in spans:
            if span.category not in categories:
                categories.append(span.category)
        return categories

    def _suggestions(self, spans: Sequence[DetectionSpan]) -> List[str]:
        if not spans:
            return []

        suggestions = [GENERIC_SUGGESTION]
        for span in spans:
            for hint in (
                RISK_SUGGESTIONS.get(span.risk_level),
                CATEGORY_SUGGESTIONS.get(span.category),
            ):
                if hint and hint not in suggestions:
                    suggestions.append(hint)
        return suggestions
