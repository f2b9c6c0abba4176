"""
PIN and PAN Fields

Encoders and decoders for the plaintext PIN field and PAN field of ISO 9564-1
PIN block formats 3 and 4.
"""

from enum import Enum
from typing import List

from paysec.core.exceptions import (
    InvalidPan,
    InvalidPanLength,
    InvalidPin,
    InvalidPinField,
    InvalidPinLength,
)
from paysec.security.random_source import RandomSourceLike, as_random_source

MIN_PIN_LENGTH = 4
MAX_PIN_LENGTH = 12

# Random bytes consumed per PIN field
FILL_SEED_LENGTH = 8


class PINBlockFormat(Enum):
    """Supported PIN block formats."""

    ISO_3 = "ISO_3"  # ISO 9564-1 Format 3, 8 byte block XORed with the PAN
    ISO_4 = "ISO_4"  # ISO 9564-1 Format 4 (AES), 16 byte enciphered block

    @property
    def control(self) -> int:
        return 0x3 if self is PINBlockFormat.ISO_3 else 0x4

    @property
    def field_length(self) -> int:
        return 8 if self is PINBlockFormat.ISO_3 else 16


def _to_nibbles(data: bytes) -> List[int]:
    nibbles = []
    for byte in data:
        nibbles.append(byte >> 4)
        nibbles.append(byte & 0x0F)
    return nibbles


def _from_nibbles(nibbles: List[int]) -> bytes:
    return bytes((high << 4) | low for high, low in zip(nibbles[::2], nibbles[1::2]))


def _fill_nibble(value: int) -> int:
    """Map any nibble onto the A-F filler range."""
    if value < 6:
        return value + 0xA
    if value <= 9:
        return value + 6
    return value


class PinFieldCodec:
    """
    Plaintext PIN field encoding.

    Format 3 (8 bytes)::

        3 L P P P P P/F ... F     F = random nibble in A-F

    Format 4 (16 bytes)::

        4 L P P P P P/A ... A | 8 random bytes
    """

    @staticmethod
    def validate_pin(pin: str) -> str:
        """Check PIN digits and length."""
        if not MIN_PIN_LENGTH <= len(pin) <= MAX_PIN_LENGTH:
            raise InvalidPinLength(len(pin))
        if not (pin.isascii() and pin.isdigit()):
            raise InvalidPin()
        return pin

    @classmethod
    def encode(
        cls,
        pin: str,
        fill_source: RandomSourceLike,
        pin_format: PINBlockFormat,
    ) -> bytes:
        """Encode a PIN field for the given format."""
        if pin_format is PINBlockFormat.ISO_3:
            return cls.encode_format_3(pin, fill_source)
        return cls.encode_format_4(pin, fill_source)

    @classmethod
    def encode_format_3(cls, pin: str, fill_source: RandomSourceLike) -> bytes:
        """
        Encode a format 3 PIN field.

        Args:
            pin: 4-12 digit PIN
            fill_source: Supplies 8 bytes; nibbles after the PIN are taken
                from the same positions and mapped into A-F

        Returns:
            8 byte PIN field
        """
        cls.validate_pin(pin)
        seed = as_random_source(fill_source).take(FILL_SEED_LENGTH)

        nibbles = [PINBlockFormat.ISO_3.control, len(pin)] + [int(d) for d in pin]
        seed_nibbles = _to_nibbles(seed)
        nibbles += [_fill_nibble(n) for n in seed_nibbles[len(nibbles) :]]
        return _from_nibbles(nibbles)

    @classmethod
    def encode_format_4(cls, pin: str, fill_source: RandomSourceLike) -> bytes:
        """
        Encode a format 4 PIN field.

        Args:
            pin: 4-12 digit PIN
            fill_source: Supplies the 8 random bytes of the second half

        Returns:
            16 byte PIN field
        """
        cls.validate_pin(pin)
        random_half = as_random_source(fill_source).take(FILL_SEED_LENGTH)

        nibbles = [PINBlockFormat.ISO_4.control, len(pin)] + [int(d) for d in pin]
        nibbles += [0xA] * (16 - len(nibbles))
        return _from_nibbles(nibbles) + random_half

    @staticmethod
    def _decode_digits(field: bytes, pin_format: PINBlockFormat) -> List[int]:
        if len(field) != pin_format.field_length:
            raise InvalidPinField(
                f"PIN field must be {pin_format.field_length} bytes, got {len(field)}"
            )

        nibbles = _to_nibbles(field[:8])
        if nibbles[0] != pin_format.control:
            raise InvalidPinField(f"Invalid control field: {nibbles[0]:X}")

        pin_length = nibbles[1]
        if not MIN_PIN_LENGTH <= pin_length <= MAX_PIN_LENGTH:
            raise InvalidPinField(f"Invalid PIN length: {pin_length}")

        digits = nibbles[2 : 2 + pin_length]
        if any(d > 9 for d in digits):
            raise InvalidPinField("PIN field contains non-decimal digits")
        return nibbles

    @classmethod
    def decode_format_3(cls, field: bytes) -> str:
        """Recover the PIN from a format 3 PIN field."""
        nibbles = cls._decode_digits(field, PINBlockFormat.ISO_3)
        pin_length = nibbles[1]
        if any(n < 0xA for n in nibbles[2 + pin_length :]):
            raise InvalidPinField("Invalid fill nibbles in PIN field")
        return "".join(str(d) for d in nibbles[2 : 2 + pin_length])

    @classmethod
    def decode_format_4(cls, field: bytes) -> str:
        """Recover the PIN from a format 4 PIN field."""
        nibbles = cls._decode_digits(field, PINBlockFormat.ISO_4)
        pin_length = nibbles[1]
        if any(n != 0xA for n in nibbles[2 + pin_length :]):
            raise InvalidPinField("Invalid fill nibbles in PIN field")
        return "".join(str(d) for d in nibbles[2 : 2 + pin_length])


class PanFieldCodec:
    """
    PAN field encoding.

    Format 3 (8 bytes): ``0000`` followed by the 12 rightmost PAN digits
    excluding the check digit.

    Format 4 (16 bytes): PAN length indicator ``M`` (PAN length minus 12, or
    0), the PAN left padded with zeros to 12 digits, then zero fill.
    """

    FORMAT_3_MIN_LENGTH = 13
    FORMAT_4_MAX_LENGTH = 19

    @staticmethod
    def normalize(pan: str) -> str:
        """Strip separators and check the PAN is numeric."""
        digits = pan.replace(" ", "").replace("-", "")
        if digits and not (digits.isascii() and digits.isdigit()):
            raise InvalidPan()
        return digits

    @classmethod
    def encode(cls, pan: str, pin_format: PINBlockFormat) -> bytes:
        """Encode a PAN field for the given format."""
        if pin_format is PINBlockFormat.ISO_3:
            return cls.encode_format_3(pan)
        return cls.encode_format_4(pan)

    @classmethod
    def encode_format_3(cls, pan: str) -> bytes:
        digits = cls.normalize(pan)
        if len(digits) < cls.FORMAT_3_MIN_LENGTH:
            raise InvalidPanLength(
                f"PAN must be at least {cls.FORMAT_3_MIN_LENGTH} digits", len(digits)
            )
        return bytes.fromhex(f"0000{digits[-13:-1]}")

    @classmethod
    def encode_format_4(cls, pan: str) -> bytes:
        digits = cls.normalize(pan)
        if not 1 <= len(digits) <= cls.FORMAT_4_MAX_LENGTH:
            raise InvalidPanLength(
                f"PAN must be 1-{cls.FORMAT_4_MAX_LENGTH} digits", len(digits)
            )
        indicator = max(len(digits) - 12, 0)
        return bytes.fromhex(f"{indicator}{digits.rjust(12, '0')}".ljust(32, "0"))
