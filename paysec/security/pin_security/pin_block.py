"""
PIN Block Formats

ISO 9564-1 PIN block formats 3 and 4.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from paysec.core.exceptions import InvalidPinField, PinBlockError
from paysec.security.crypto.aes_primitives import (
    AesPrimitives,
    BlockCipherPrimitives,
    validate_aes_key,
    xor_bytes,
)
from paysec.security.pin_security.pin_fields import (
    PanFieldCodec,
    PinFieldCodec,
    PINBlockFormat,
)
from paysec.security.random_source import RandomSourceLike

logger = logging.getLogger(__name__)


class PinBlockFormat3:
    """
    ISO 9564-1 Format 3 PIN block.

    The block is the PIN field XOR the PAN field and is returned in the
    clear; enciphering it is left to the caller.
    """

    BLOCK_LENGTH = 8

    def build(self, pin: str, pan: str, fill_source: RandomSourceLike) -> bytes:
        pin_field = PinFieldCodec.encode_format_3(pin, fill_source)
        pan_field = PanFieldCodec.encode_format_3(pan)
        return xor_bytes(pin_field, pan_field)

    def decode(self, pin_block: bytes, pan: str) -> str:
        """Recover the PIN from a clear format 3 PIN block."""
        if len(pin_block) != self.BLOCK_LENGTH:
            raise InvalidPinField(
                f"Format 3 PIN block must be {self.BLOCK_LENGTH} bytes, got {len(pin_block)}"
            )
        pin_field = xor_bytes(pin_block, PanFieldCodec.encode_format_3(pan))
        return PinFieldCodec.decode_format_3(pin_field)


class PinBlockFormat4:
    """
    ISO 9564-1 Format 4 (AES) PIN block.

    Enciphering::

        intermediate = E(K, pin_field) XOR pan_field
        pin_block = E(K, intermediate)
    """

    BLOCK_LENGTH = 16

    def __init__(self, primitives: Optional[BlockCipherPrimitives] = None):
        self._primitives = primitives or AesPrimitives()

    def build(
        self,
        pin: str,
        pan: str,
        fill_source: RandomSourceLike,
        pin_block_key: bytes,
    ) -> bytes:
        """
        Build and encipher a format 4 PIN block.

        Args:
            pin: 4-12 digit PIN
            pan: Primary account number, 1-19 digits
            fill_source: Supplies 8 random bytes for the PIN field
            pin_block_key: AES key of the PIN block owner

        Returns:
            16 byte enciphered PIN block
        """
        validate_aes_key(pin_block_key, "PIN block key")
        pin_field = PinFieldCodec.encode_format_4(pin, fill_source)
        pan_field = PanFieldCodec.encode_format_4(pan)

        intermediate = self._primitives.encrypt_block(pin_block_key, pin_field)
        intermediate = xor_bytes(intermediate, pan_field)
        return self._primitives.encrypt_block(pin_block_key, intermediate)

    def decipher(self, pin_block: bytes, pan: str, pin_block_key: bytes) -> str:
        """
        Decipher a format 4 PIN block and recover the PIN.

        A wrong key or PAN yields a field that fails validation with
        InvalidPinField.
        """
        validate_aes_key(pin_block_key, "PIN block key")
        if len(pin_block) != self.BLOCK_LENGTH:
            raise InvalidPinField(
                f"Format 4 PIN block must be {self.BLOCK_LENGTH} bytes, got {len(pin_block)}"
            )
        pan_field = PanFieldCodec.encode_format_4(pan)

        intermediate = self._primitives.decrypt_block(pin_block_key, pin_block)
        intermediate = xor_bytes(intermediate, pan_field)
        pin_field = self._primitives.decrypt_block(pin_block_key, intermediate)
        return PinFieldCodec.decode_format_4(pin_field)


@dataclass
class PINBlock:
    """
    PIN Block structure.

    Holds a built PIN block with the PAN it is bound to. Format 3 blocks are
    clear, format 4 blocks are enciphered under the PIN block key.
    """

    format: PINBlockFormat
    block_data: bytes = field(repr=False)
    pan: Optional[str] = None
    is_encrypted: bool = False

    @classmethod
    def create_iso_format_3(
        cls, pin: str, pan: str, fill_source: RandomSourceLike
    ) -> "PINBlock":
        """Create ISO Format 3 PIN Block."""
        return cls(
            format=PINBlockFormat.ISO_3,
            block_data=PinBlockFormat3().build(pin, pan, fill_source),
            pan=pan,
            is_encrypted=False,
        )

    @classmethod
    def create_iso_format_4(
        cls,
        pin: str,
        pan: str,
        fill_source: RandomSourceLike,
        pin_block_key: bytes,
    ) -> "PINBlock":
        """Create ISO Format 4 PIN Block enciphered under pin_block_key."""
        return cls(
            format=PINBlockFormat.ISO_4,
            block_data=PinBlockFormat4().build(pin, pan, fill_source, pin_block_key),
            pan=pan,
            is_encrypted=True,
        )

    def extract_pin(
        self,
        pan: Optional[str] = None,
        pin_block_key: Optional[bytes] = None,
    ) -> str:
        """
        Extract PIN from the PIN block.

        Args:
            pan: PAN, defaults to the PAN the block was created with
            pin_block_key: AES key, required for format 4

        Returns:
            Extracted PIN
        """
        pan = pan or self.pan
        if not pan:
            raise PinBlockError(f"PAN required for {self.format.value}")

        if self.format is PINBlockFormat.ISO_3:
            return PinBlockFormat3().decode(self.block_data, pan)

        if pin_block_key is None:
            raise PinBlockError("PIN block key required for ISO_4")
        logger.debug("Deciphering ISO format 4 PIN block")
        return PinBlockFormat4().decipher(self.block_data, pan, pin_block_key)

    def to_hex(self) -> str:
        """Return block as hex string."""
        return self.block_data.hex().upper()

    @classmethod
    def from_hex(
        cls, hex_string: str, format: PINBlockFormat, pan: Optional[str] = None
    ) -> "PINBlock":
        """Create PIN block from hex string."""
        try:
            block_data = bytes.fromhex(hex_string)
        except ValueError:
            raise InvalidPinField(f"PIN block is not hexadecimal: {hex_string!r}")
        return cls(
            format=format,
            block_data=block_data,
            pan=pan,
            is_encrypted=format is PINBlockFormat.ISO_4,
        )
