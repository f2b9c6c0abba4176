"""
paysec core: exceptions, configuration and logging setup.
"""

from paysec.core.config import (
    KeyBlockBinding,
    LogFormat,
    LogLevel,
    PaySecConfig,
)
from paysec.core.exceptions import (
    PaySecError,
    ConfigurationError,
    InvalidKeyLength,
    RandomSourceError,
    KeyBlockError,
    InvalidHeader,
    MalformedHeader,
    MalformedOptionalBlock,
    MalformedKeyBlock,
    LengthMismatch,
    LengthOverflow,
    AuthenticationFailed,
    KeyLengthMismatch,
    PinBlockError,
    InvalidPin,
    InvalidPinLength,
    InvalidPan,
    InvalidPanLength,
    InvalidPinField,
)
from paysec.core.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    StructuredFormatter,
    configure_logging,
)

__all__ = [
    # Config
    "KeyBlockBinding",
    "LogFormat",
    "LogLevel",
    "PaySecConfig",
    # Exceptions
    "PaySecError",
    "ConfigurationError",
    "InvalidKeyLength",
    "RandomSourceError",
    "KeyBlockError",
    "InvalidHeader",
    "MalformedHeader",
    "MalformedOptionalBlock",
    "MalformedKeyBlock",
    "LengthMismatch",
    "LengthOverflow",
    "AuthenticationFailed",
    "KeyLengthMismatch",
    "PinBlockError",
    "InvalidPin",
    "InvalidPinLength",
    "InvalidPan",
    "InvalidPanLength",
    "InvalidPinField",
    # Logging
    "DEFAULT_LOGGING_CONFIG",
    "StructuredFormatter",
    "configure_logging",
]
