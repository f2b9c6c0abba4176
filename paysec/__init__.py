"""
paysec - payment security codecs.

TR-31 version D key block wrapping and ISO 9564 PIN blocks (formats 3 and 4)
over AES, with caller-injected randomness.
"""

from paysec.core import (
    AuthenticationFailed,
    ConfigurationError,
    InvalidHeader,
    InvalidKeyLength,
    InvalidPanLength,
    InvalidPinField,
    InvalidPinLength,
    KeyLengthMismatch,
    LengthMismatch,
    LengthOverflow,
    MalformedHeader,
    MalformedOptionalBlock,
    PaySecConfig,
    PaySecError,
    configure_logging,
)
from paysec.security import (
    CallableRandomSource,
    CounterRandomSource,
    FixedRandomSource,
    KeyBlockBinding,
    KeyBlockHeader,
    KeyWrapping,
    OptionalBlock,
    PINBlock,
    PinBlockFormat3,
    PinBlockFormat4,
    RandomSource,
)

__version__ = "1.0.0"

__all__ = [
    "AuthenticationFailed",
    "ConfigurationError",
    "InvalidHeader",
    "InvalidKeyLength",
    "InvalidPanLength",
    "InvalidPinField",
    "InvalidPinLength",
    "KeyLengthMismatch",
    "LengthMismatch",
    "LengthOverflow",
    "MalformedHeader",
    "MalformedOptionalBlock",
    "PaySecConfig",
    "PaySecError",
    "configure_logging",
    "CallableRandomSource",
    "CounterRandomSource",
    "FixedRandomSource",
    "KeyBlockBinding",
    "KeyBlockHeader",
    "KeyWrapping",
    "OptionalBlock",
    "PINBlock",
    "PinBlockFormat3",
    "PinBlockFormat4",
    "RandomSource",
]
