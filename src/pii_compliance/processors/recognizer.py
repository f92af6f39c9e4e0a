"""Entity recognizers for person and organization names."""

import re
from typing import Any, FrozenSet, List, Optional

from ..config.constants import EntityKind, EntityStrength
from ..core.exceptions import RecognizerError
from ..core.interfaces import EntityHit, EntityRecognizer

_WORD_RE = re.compile(r"\b[A-Z][a-z]+(?:['-][A-Z][a-z]+)?\b")
_TITLE_RE = re.compile(r"\b(?:Mr|Mrs|Ms|Miss|Mx|Dr|Prof)\.?[ \t]+$")
_ORGANIZATION_RE = re.compile(
    r"\b(?:[A-Z][A-Za-z&]*[ \t]+){1,3}"
    r"(?:Inc|LLC|Ltd|Corp|Corporation|GmbH|PLC|Limited|Company)\b"
)


class GazetteerRecognizer(EntityRecognizer):
    """
    Dictionary-based recognizer for English text.

    A person is a known first name followed by one or two capitalised words,
    or any capitalised name directly after an honorific (reported as strong).
    An organization is up to three capitalised words ending in a corporate
    suffix.
    """

    FIRST_NAMES: FrozenSet[str] = frozenset(
        {
            "Alice", "Amanda", "Andrew", "Anna", "Bob", "Carlos", "Charles",
            "Daniel", "David", "Elizabeth", "Emily", "Emma", "Fatima", "George",
            "Hannah", "Henry", "Isabella", "James", "Jane", "Jennifer", "Jessica",
            "John", "Joseph", "Juan", "Laura", "Linda", "Lucas", "Maria", "Mark",
            "Mary", "Matthew", "Michael", "Mohammed", "Nancy", "Olivia", "Patricia",
            "Paul", "Pedro", "Peter", "Rachel", "Richard", "Robert", "Sarah",
            "Sophia", "Steven", "Susan", "Thomas", "William",
        }
    )
    TITLES: FrozenSet[str] = frozenset({"Mr", "Mrs", "Ms", "Miss", "Mx", "Dr", "Prof"})
    MAX_NAME_WORDS = 3

    def __init__(self, first_names: Optional[FrozenSet[str]] = None) -> None:
        """
        Initialize the recognizer.

        Args:
            first_names: Replacement first-name gazetteer (defaults to FIRST_NAMES)
        """
        self.first_names = (
            frozenset(first_names) if first_names is not None else self.FIRST_NAMES
        )

    def recognize_entities(self, text: str) -> List[EntityHit]:
        hits = self._find_people(text)
        hits.extend(
            EntityHit(
                start=match.start(),
                end=match.end(),
                text=match.group(),
                kind=EntityKind.ORGANIZATION,
            )
            for match in _ORGANIZATION_RE.finditer(text)
        )
        return hits

    def _find_people(self, text: str) -> List[EntityHit]:
        words = [m for m in _WORD_RE.finditer(text) if m.group() not in self.TITLES]
        hits: List[EntityHit] = []

        i = 0
        while i < len(words):
            first = words[i]
            titled = _TITLE_RE.search(text, max(0, first.start() - 8), first.start())
            if not titled and first.group() not in self.first_names:
                i += 1
                continue

            # Extend over capitalised words separated by a single space
            j = i
            while (
                j + 1 < len(words)
                and j - i + 1 < self.MAX_NAME_WORDS
                and text[words[j].end() : words[j + 1].start()] == " "
            ):
                j += 1

            if not titled and j == i:
                # A lone first name is too ambiguous
                i += 1
                continue

            hits.append(
                EntityHit(
                    start=first.start(),
                    end=words[j].end(),
                    text=text[first.start() : words[j].end()],
                    kind=EntityKind.PERSON,
                    strength=EntityStrength.STRONG if titled else EntityStrength.NORMAL,
                )
            )
            i = j + 1

        return hits


class SpacyRecognizer(EntityRecognizer):
    """Adapter for a spaCy pipeline's PERSON and ORG entities."""

    LABELS = {"PERSON": EntityKind.PERSON, "ORG": EntityKind.ORGANIZATION}

    def __init__(self, nlp: Any = None, model: str = "en_core_web_sm") -> None:
        """
        Initialize the adapter.

        Args:
            nlp: Loaded spaCy ``Language`` object. Loaded from ``model`` if None.
            model: spaCy model package name
        """
        self.model = model
        self.nlp = nlp if nlp is not None else self._load_model(model)

    def _load_model(self, model: str) -> Any:
        """Load a spaCy model by package name."""
        try:
            import spacy
        except ImportError as e:
            raise RecognizerError(
                "spaCy is not installed; install the 'nlp' extra"
            ) from e

        try:
            return spacy.load(model)
        except OSError as e:
            raise RecognizerError(f"spaCy model not found: {model}") from e

    def recognize_entities(self, text: str) -> List[EntityHit]:
        doc = self.nlp(text)
        return [
            EntityHit(
                start=ent.start_char,
                end=ent.end_char,
                text=ent.text,
                kind=self.LABELS[ent.label_],
            )
            for ent in doc.ents
            if ent.label_ in self.LABELS
        ]
