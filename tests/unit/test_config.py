"""Tests for configuration management."""

import logging
import os
from unittest.mock import patch

import pytest

from pii_compliance.config.constants import (
    CONFIDENCE_WEIGHTS,
    ENCRYPTION_OPERATIONS,
    MASKING_OPERATIONS,
    ConfidenceLevel,
    Operation,
    PIICategory,
    RiskLevel,
)
from pii_compliance.config.log import configure_logging
from pii_compliance.config.settings import Settings, get_settings
from pii_compliance.core.exceptions import UnknownOperationError


class TestConstants:
    """Test constants and enums."""

    def test_category_values(self) -> None:
        """Test PIICategory enum values."""
        assert PIICategory.EMAIL == "email"
        assert PIICategory.GOVERNMENT_ID == "government_id"
        assert PIICategory.PAYMENT_CARD == "payment_card"
        assert len(PIICategory) == 12

    def test_risk_level_order(self) -> None:
        """Test risk levels compare by severity."""
        assert RiskLevel.LOW < RiskLevel.MODERATE < RiskLevel.HIGH < RiskLevel.CRITICAL
        assert RiskLevel.CRITICAL >= RiskLevel.HIGH
        assert max(RiskLevel) == RiskLevel.CRITICAL

    def test_confidence_weights(self) -> None:
        """Test confidence bands map to ascending weights."""
        assert ConfidenceLevel.LOW.weight == 0.3
        assert ConfidenceLevel.MEDIUM.weight == 0.5
        assert ConfidenceLevel.HIGH.weight == 0.7
        assert ConfidenceLevel.VERY_HIGH.weight == 0.9
        assert sorted(CONFIDENCE_WEIGHTS.values()) == [0.3, 0.5, 0.7, 0.9]

    def test_confidence_raised_clamps(self) -> None:
        """Test raising a band stops at VERY_HIGH."""
        assert ConfidenceLevel.MEDIUM.raised() == ConfidenceLevel.HIGH
        assert ConfidenceLevel.MEDIUM.raised(2) == ConfidenceLevel.VERY_HIGH
        assert ConfidenceLevel.HIGH.raised(5) == ConfidenceLevel.VERY_HIGH

    def test_confidence_from_weight(self) -> None:
        """Test the highest band not above a weight is returned."""
        assert ConfidenceLevel.from_weight(0.75) == ConfidenceLevel.HIGH
        assert ConfidenceLevel.from_weight(0.9) == ConfidenceLevel.VERY_HIGH
        assert ConfidenceLevel.from_weight(0.1) == ConfidenceLevel.LOW

    def test_operation_parse(self) -> None:
        """Test operations parse from strings case-insensitively."""
        assert Operation.parse("log") == Operation.LOG
        assert Operation.parse(" Store ") == Operation.STORE
        assert Operation.parse(Operation.EXPORT) == Operation.EXPORT

    def test_operation_parse_unknown(self) -> None:
        """Test unknown operations raise UnknownOperationError."""
        with pytest.raises(UnknownOperationError) as exc_info:
            Operation.parse("delete")
        assert exc_info.value.operation == "delete"

        with pytest.raises(UnknownOperationError):
            Operation.parse(None)  # type: ignore[arg-type]

    def test_transform_operations(self) -> None:
        """Test masking and encryption operation sets are disjoint."""
        assert MASKING_OPERATIONS == {Operation.DISPLAY, Operation.LOG}
        assert ENCRYPTION_OPERATIONS == {
            Operation.STORE,
            Operation.TRANSFER,
            Operation.EXPORT,
        }
        assert not MASKING_OPERATIONS & ENCRYPTION_OPERATIONS


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Test default settings values."""
        settings = Settings()
        assert settings.max_text_length == 50000
        assert settings.confidence_threshold is None
        assert settings.enable_entity_recognition is True
        assert settings.include_context is False
        assert settings.context_window == 10
        assert settings.label_lookback == 24
        assert settings.label_separators == ":#="
        assert settings.default_profile == "permissive"

    def test_env_override(self) -> None:
        """Test settings can be overridden by environment variables."""
        with patch.dict(
            os.environ,
            {
                "MAX_TEXT_LENGTH": "2048",
                "CONFIDENCE_THRESHOLD": "0.7",
                "ENABLE_ENTITY_RECOGNITION": "false",
            },
        ):
            settings = Settings()
            assert settings.max_text_length == 2048
            assert settings.confidence_threshold == 0.7
            assert settings.enable_entity_recognition is False

    def test_invalid_threshold_rejected(self) -> None:
        """Test thresholds outside 0..1 are rejected."""
        with patch.dict(os.environ, {"CONFIDENCE_THRESHOLD": "1.5"}):
            with pytest.raises(ValueError):
                Settings()

    def test_get_settings_singleton(self) -> None:
        """Test get_settings returns the same instance."""
        settings1 = get_settings()
        settings2 = get_settings()
        assert settings1 is settings2


class TestLogging:
    """Test logging setup."""

    def test_configure_logging_sets_level(self) -> None:
        """Test the package logger takes the requested level."""
        configure_logging("debug")
        assert logging.getLogger("pii_compliance").level == logging.DEBUG

        configure_logging(logging.WARNING)
        assert logging.getLogger("pii_compliance").level == logging.WARNING
