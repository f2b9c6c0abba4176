"""
paysec - Configuration

Defaults for the key block codec and logging, loadable from YAML files or
environment variables.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class KeyBlockBinding(str, Enum):
    """How the key block MAC is bound to the encrypted payload."""

    # CBC with ZERO_IV, CMAC over header || ciphertext, verified before decryption
    ENCRYPT_THEN_MAC = "encrypt_then_mac"
    # TR-31:2018 key derivation binding: CMAC over header || payload, used as CBC IV
    TR31_2018 = "tr31_2018"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log record formats."""

    STRUCTURED = "structured"
    SIMPLE = "simple"


@dataclass
class PaySecConfig:
    """Configuration for paysec codecs."""

    binding: KeyBlockBinding = KeyBlockBinding.ENCRYPT_THEN_MAC
    masked_key_length: int = 0
    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.STRUCTURED

    def validate(self) -> List[str]:
        """Validate configuration and return a list of problems."""
        errors = []

        if not isinstance(self.binding, KeyBlockBinding):
            errors.append(f"Unknown key block binding: {self.binding}")

        if not isinstance(self.masked_key_length, int) or isinstance(
            self.masked_key_length, bool
        ):
            errors.append("masked_key_length must be an integer")
        elif not 0 <= self.masked_key_length <= 4096:
            errors.append("masked_key_length must be between 0 and 4096")

        if not isinstance(self.log_level, LogLevel):
            errors.append(f"Unknown log level: {self.log_level}")

        if not isinstance(self.log_format, LogFormat):
            errors.append(f"Unknown log format: {self.log_format}")

        return errors

    def ensure_valid(self) -> "PaySecConfig":
        """Raise ConfigurationError if validate() reports problems."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(f"Invalid configuration: {'; '.join(errors)}")
        return self

    @classmethod
    def load_from_file(cls, config_path: Union[str, Path]) -> "PaySecConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration file: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {config_path}"
            )

        # Accept both a bare mapping and one nested under "paysec"
        config_data = config_data.get("paysec", config_data) or {}

        logger.debug(f"Loaded configuration from {config_path}")
        return cls._from_dict(config_data)

    @classmethod
    def load_from_env(cls, prefix: str = "PAYSEC_") -> "PaySecConfig":
        """Load configuration from environment variables."""
        data: Dict[str, Any] = {}

        for key in ("binding", "masked_key_length", "log_level", "log_format"):
            value = os.getenv(f"{prefix}{key.upper()}")
            if value is not None:
                data[key] = value

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PaySecConfig":
        """Create configuration from dictionary."""
        config = cls()

        try:
            if "binding" in data:
                config.binding = KeyBlockBinding(str(data["binding"]).lower())
            if "masked_key_length" in data:
                config.masked_key_length = int(data["masked_key_length"])
            if "log_level" in data:
                config.log_level = LogLevel(str(data["log_level"]).upper())
            if "log_format" in data:
                config.log_format = LogFormat(str(data["log_format"]).lower())
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}")

        unknown = set(data) - {"binding", "masked_key_length", "log_level", "log_format"}
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}",
                config_key=sorted(unknown)[0],
            )

        return config.ensure_valid()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "binding": self.binding.value,
            "masked_key_length": self.masked_key_length,
            "log_level": self.log_level.value,
            "log_format": self.log_format.value,
        }

