"""Candidate span matching from patterns and the entity recognizer."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config.constants import (
    ENTITY_CATEGORIES,
    ENTITY_RISK_LEVELS,
    DetectionSource,
)
from ..core.exceptions import RecognizerError
from ..core.interfaces import (
    CandidateSpan,
    DetectionOptions,
    Detector,
    EntityRecognizer,
    PatternRule,
    Processor,
)

logger = logging.getLogger(__name__)


class PatternDetector(Detector):
    """Runs registered pattern rules over text."""

    def detect(
        self,
        text: str,
        rules: Sequence[PatternRule],
        options: DetectionOptions,
    ) -> List[CandidateSpan]:
        candidates: List[CandidateSpan] = []

        for order, rule in enumerate(rules):
            if not options.allows(rule.category):
                continue

            rejected = 0
            for match in rule.matcher.finditer(text):
                matched_text = match.group()
                if not matched_text:
                    continue
                if not rule.accepts(matched_text):
                    rejected += 1
                    continue

                candidates.append(
                    CandidateSpan(
                        category=rule.category,
                        start=match.start(),
                        end=match.end(),
                        text=matched_text,
                        source=DetectionSource.PATTERN,
                        risk_level=rule.risk_level,
                        order=order,
                        validated=rule.validates,
                        description=rule.description,
                    )
                )

            if rejected:
                logger.debug(
                    "Filtered %d '%s' matches as false positives",
                    rejected,
                    rule.category.value,
                )

        return candidates


class EntityDetector(Detector):
    """Converts entity recognizer hits into candidate spans."""

    def __init__(self, recognizer: EntityRecognizer) -> None:
        """
        Initialize entity detector.

        Args:
            recognizer: External person/organization recognizer
        """
        self.recognizer = recognizer

    def detect(
        self,
        text: str,
        rules: Sequence[PatternRule],
        options: DetectionOptions,
    ) -> List[CandidateSpan]:
        try:
            hits = self.recognizer.recognize_entities(text)
        except RecognizerError:
            raise
        except Exception as e:
            raise RecognizerError(f"Entity recognition failed: {e}") from e

        # Entity spans sort after every pattern rule in registration order
        order = len(rules)
        candidates: List[CandidateSpan] = []
        for hit in hits:
            category = ENTITY_CATEGORIES.get(hit.kind)
            if category is None or not options.allows(category):
                continue
            if not (0 <= hit.start < hit.end <= len(text)):
                logger.debug("Discarded entity hit with offsets %d-%d", hit.start, hit.end)
                continue
            if text[hit.start : hit.end] != hit.text:
                logger.debug(
                    "Discarded entity hit whose text does not match offsets %d-%d",
                    hit.start,
                    hit.end,
                )
                continue

            candidates.append(
                CandidateSpan(
                    category=category,
                    start=hit.start,
                    end=hit.end,
                    text=hit.text,
                    source=DetectionSource.ENTITY_RECOGNIZER,
                    risk_level=ENTITY_RISK_LEVELS[category],
                    order=order,
                    strength=hit.strength,
                )
            )

        return candidates


class SpanMatcher(Processor):
    """Pools candidate spans from the pattern and entity detectors."""

    def __init__(
        self,
        pattern_detector: Optional[PatternDetector] = None,
        entity_detector: Optional[EntityDetector] = None,
    ) -> None:
        """
        Initialize span matcher.

        Args:
            pattern_detector: Pattern detector (creates default if None)
            entity_detector: Entity detector; entity recognition is skipped if None
        """
        self.pattern_detector = pattern_detector or PatternDetector()
        self.entity_detector = entity_detector

    def match(
        self,
        text: str,
        rules: Sequence[PatternRule],
        options: DetectionOptions,
    ) -> List[CandidateSpan]:
        """
        Collect raw candidate spans from every enabled detector.

        Args:
            text: Original input text
            rules: Active pattern rules in registration order
            options: Resolved detection options

        Returns:
            Unsorted candidates from all sources
        """
        candidates = self.pattern_detector.detect(text, rules, options)

        if options.enable_entity_recognition and self.entity_detector is not None:
            candidates.extend(self.entity_detector.detect(text, rules, options))

        return candidates

    def process(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Match candidates for the processing context.

        Args:
            text: Input text
            context: Processing context containing ``rules`` and ``options``

        Returns:
            Updated context with ``candidates``
        """
        candidates = self.match(text, context["rules"], context["options"])
        context["candidates"] = candidates
        return context
