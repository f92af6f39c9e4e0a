"""Input validation for the PII detection pipeline."""

from typing import Any, Dict, Optional

from ..config.settings import get_settings
from ..core.exceptions import EmptyInputError, InputTooLargeError, InputValidationError
from ..core.interfaces import Processor


class Validator(Processor):
    """Validates input text before scanning."""

    def __init__(self) -> None:
        """Initialize validator with settings."""
        self.settings = get_settings()

    def validate(self, text: Any, max_text_length: Optional[int] = None) -> str:
        """
        Validate input text.

        Text is never trimmed; whitespace-only input is valid. Length is
        measured in characters.

        Args:
            text: Input text to validate
            max_text_length: Length limit (defaults to ``Settings.max_text_length``)

        Returns:
            The unchanged text

        Raises:
            EmptyInputError: If text is None or empty
            InputValidationError: If text is not a string or is too short
            InputTooLargeError: If text is longer than the limit
        """
        if text is None:
            raise EmptyInputError("text is required")

        if not isinstance(text, str):
            raise InputValidationError(
                f"text must be a string, got {type(text).__name__}"
            )

        if not text:
            raise EmptyInputError("text is empty")

        if len(text) < self.settings.min_text_length:
            raise InputValidationError(
                f"text is too short (minimum {self.settings.min_text_length} characters)"
            )

        limit = self.settings.max_text_length if max_text_length is None else max_text_length
        if len(text) > limit:
            raise InputTooLargeError(len(text), limit)

        return text

    def process(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate input text.

        Args:
            text: Input text to validate
            context: Processing context, optionally holding resolved ``options``

        Returns:
            Updated context with validation results

        Raises:
            ValidationError: If validation fails
        """
        options = context.get("options")
        limit = options.max_text_length if options is not None else None

        context["validated_text"] = self.validate(text, limit)
        context["text_length"] = len(text)

        return context
