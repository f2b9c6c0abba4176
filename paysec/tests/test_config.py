"""
Tests for configuration, logging setup and the exception hierarchy.
"""

import json
import logging
import sys

import pytest

from paysec.core.config import KeyBlockBinding, LogFormat, LogLevel, PaySecConfig
from paysec.core.exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    InvalidHeader,
    KeyBlockError,
    LengthMismatch,
    LengthOverflow,
    PaySecError,
    PinBlockError,
)
from paysec.core.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    StructuredFormatter,
    build_logging_config,
    configure_logging,
)


class TestPaySecConfig:
    """Tests for PaySecConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = PaySecConfig()

        assert config.binding is KeyBlockBinding.ENCRYPT_THEN_MAC
        assert config.masked_key_length == 0
        assert config.log_level is LogLevel.INFO
        assert config.log_format is LogFormat.STRUCTURED
        assert config.validate() == []

    def test_validate_reports_problems(self):
        """Test validation collects every problem."""
        config = PaySecConfig(masked_key_length=-1, log_level="LOUD")

        errors = config.validate()

        assert len(errors) == 2
        assert any("masked_key_length" in error for error in errors)

    def test_ensure_valid(self):
        """Test ensure_valid() raises on invalid configuration."""
        with pytest.raises(ConfigurationError):
            PaySecConfig(masked_key_length=5000).ensure_valid()

    def test_load_from_file(self, tmp_path):
        """Test loading a YAML configuration file."""
        config_file = tmp_path / "paysec.yaml"
        config_file.write_text(
            "binding: tr31_2018\n"
            "masked_key_length: 32\n"
            "log_level: debug\n"
            "log_format: simple\n"
        )

        config = PaySecConfig.load_from_file(config_file)

        assert config.binding is KeyBlockBinding.TR31_2018
        assert config.masked_key_length == 32
        assert config.log_level is LogLevel.DEBUG
        assert config.log_format is LogFormat.SIMPLE

    def test_load_from_file_nested_section(self, tmp_path):
        """Test a configuration nested under a paysec section."""
        config_file = tmp_path / "app.yaml"
        config_file.write_text("paysec:\n  masked_key_length: 16\n")

        assert PaySecConfig.load_from_file(str(config_file)).masked_key_length == 16

    def test_load_from_empty_file(self, tmp_path):
        """Test an empty file gives the defaults."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert PaySecConfig.load_from_file(config_file) == PaySecConfig()

    def test_load_from_missing_file(self, tmp_path):
        """Test a missing configuration file."""
        with pytest.raises(ConfigurationError):
            PaySecConfig.load_from_file(tmp_path / "missing.yaml")

    def test_load_from_invalid_yaml(self, tmp_path):
        """Test a file that is not valid YAML."""
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("binding: [unterminated\n")

        with pytest.raises(ConfigurationError):
            PaySecConfig.load_from_file(config_file)

    def test_load_from_non_mapping(self, tmp_path):
        """Test a YAML document that is not a mapping."""
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- binding\n- masked_key_length\n")

        with pytest.raises(ConfigurationError):
            PaySecConfig.load_from_file(config_file)

    def test_unknown_key(self, tmp_path):
        """Test unknown keys are reported."""
        config_file = tmp_path / "typo.yaml"
        config_file.write_text("masked_key_lenght: 16\n")

        with pytest.raises(ConfigurationError) as exc_info:
            PaySecConfig.load_from_file(config_file)

        assert exc_info.value.context == {"config_key": "masked_key_lenght"}

    def test_invalid_value(self, tmp_path):
        """Test values that do not convert."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("binding: rot13\n")

        with pytest.raises(ConfigurationError):
            PaySecConfig.load_from_file(config_file)

    def test_load_from_env(self, monkeypatch):
        """Test loading configuration from environment variables."""
        monkeypatch.setenv("PAYSEC_BINDING", "TR31_2018")
        monkeypatch.setenv("PAYSEC_MASKED_KEY_LENGTH", "24")
        monkeypatch.setenv("PAYSEC_LOG_LEVEL", "warning")

        config = PaySecConfig.load_from_env()

        assert config.binding is KeyBlockBinding.TR31_2018
        assert config.masked_key_length == 24
        assert config.log_level is LogLevel.WARNING
        assert config.log_format is LogFormat.STRUCTURED

    def test_load_from_env_custom_prefix(self, monkeypatch):
        """Test a custom environment variable prefix."""
        monkeypatch.setenv("HSM_SIM_MASKED_KEY_LENGTH", "8")

        assert PaySecConfig.load_from_env("HSM_SIM_").masked_key_length == 8

    def test_load_from_env_invalid(self, monkeypatch):
        """Test a non-numeric masked key length."""
        monkeypatch.setenv("PAYSEC_MASKED_KEY_LENGTH", "sixteen")

        with pytest.raises(ConfigurationError):
            PaySecConfig.load_from_env()

    def test_to_dict(self):
        """Test conversion to a plain dictionary."""
        config = PaySecConfig(binding=KeyBlockBinding.TR31_2018, masked_key_length=16)

        assert config.to_dict() == {
            "binding": "tr31_2018",
            "masked_key_length": 16,
            "log_level": "INFO",
            "log_format": "structured",
        }

    def test_to_dict_round_trip(self, tmp_path):
        """Test a dumped configuration loads back unchanged."""
        config = PaySecConfig(log_format=LogFormat.SIMPLE, masked_key_length=48)
        config_file = tmp_path / "dump.yaml"
        config_file.write_text(
            "\n".join(f"{key}: {value}" for key, value in config.to_dict().items())
        )

        assert PaySecConfig.load_from_file(config_file) == config


class TestStructuredLogging:
    """Tests for the JSON formatter and logging setup."""

    @staticmethod
    def _record(**extra):
        record = logging.LogRecord(
            "paysec.test", logging.WARNING, __file__, 42, "Wrapped %s", ("key",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_format_fields(self):
        """Test the standard JSON fields."""
        event = json.loads(StructuredFormatter().format(self._record()))

        assert event["level"] == "WARNING"
        assert event["logger"] == "paysec.test"
        assert event["message"] == "Wrapped key"
        assert event["line"] == 42
        assert "iso_timestamp" in event
        assert "context" not in event

    def test_format_context(self):
        """Test attributes passed via extra= are collected as context."""
        formatter = StructuredFormatter()

        event = json.loads(formatter.format(self._record(key_usage="P0")))

        assert event["context"] == {"key_usage": "P0"}

    def test_format_without_context(self):
        """Test context can be switched off."""
        formatter = StructuredFormatter(include_context=False)

        event = json.loads(formatter.format(self._record(key_usage="P0")))

        assert "context" not in event

    def test_format_exception(self):
        """Test exception details are included."""
        try:
            raise AuthenticationFailed()
        except AuthenticationFailed:
            record = logging.LogRecord(
                "paysec.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        event = json.loads(StructuredFormatter().format(record))

        assert event["exception"]["type"] == "AuthenticationFailed"
        assert "Key block authentication failed" in event["exception"]["message"]

    def test_build_logging_config(self):
        """Test level and format are taken from the configuration."""
        logging_config = build_logging_config(
            PaySecConfig(log_level=LogLevel.DEBUG, log_format=LogFormat.SIMPLE)
        )

        assert logging_config["loggers"]["paysec"]["level"] == "DEBUG"
        assert logging_config["handlers"]["console"]["formatter"] == "simple"
        assert DEFAULT_LOGGING_CONFIG["loggers"]["paysec"]["level"] == "INFO"

    def test_configure_logging(self, reset_paysec_logger):
        """Test dictConfig installs the structured console handler."""
        configure_logging(PaySecConfig(log_level=LogLevel.ERROR))

        assert reset_paysec_logger.level == logging.ERROR
        assert reset_paysec_logger.propagate is False
        assert len(reset_paysec_logger.handlers) == 1
        assert isinstance(reset_paysec_logger.handlers[0].formatter, StructuredFormatter)

    def test_configure_logging_explicit_mapping(self, reset_paysec_logger):
        """Test a full dictConfig mapping overrides the configuration."""
        configure_logging(
            logging_config={
                "version": 1,
                "disable_existing_loggers": False,
                "loggers": {"paysec": {"level": "DEBUG"}},
            }
        )

        assert reset_paysec_logger.level == logging.DEBUG


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_str_includes_code_and_context(self):
        """Test the string form of an error with context."""
        error = LengthMismatch("Length differs", declared=112, actual=110)

        assert str(error) == (
            "Length differs (Code: LENGTH_MISMATCH, "
            "Context: {'declared': 112, 'actual': 110})"
        )

    def test_str_without_context(self):
        """Test the string form of an error without context."""
        assert str(AuthenticationFailed()) == (
            "Key block authentication failed (Code: AUTHENTICATION_FAILED)"
        )

    def test_hierarchy(self):
        """Test every error derives from PaySecError."""
        assert issubclass(KeyBlockError, PaySecError)
        assert issubclass(PinBlockError, PaySecError)
        assert issubclass(ConfigurationError, PaySecError)
        assert issubclass(InvalidHeader, KeyBlockError)
        assert issubclass(AuthenticationFailed, KeyBlockError)

    def test_length_overflow_context(self):
        """Test LengthOverflow carries the computed length."""
        error = LengthOverflow(10032)

        assert error.context == {"length": 10032}
        assert error.error_code == "LENGTH_OVERFLOW"
