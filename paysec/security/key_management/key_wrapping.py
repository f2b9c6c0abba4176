"""
Key Wrapping

TR-31 version D key block wrapping and unwrapping.

A key block is the ASCII header, the encrypted payload as hex and a 16 byte
AES-CMAC as hex. The payload holds a 2 byte key length in bits, the key and
random padding up to a whole number of AES blocks.
"""

import logging
import string
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from paysec.core.config import KeyBlockBinding, PaySecConfig
from paysec.core.exceptions import (
    AuthenticationFailed,
    InvalidHeader,
    InvalidKeyLength,
    KeyLengthMismatch,
    LengthMismatch,
    LengthOverflow,
    MalformedHeader,
    MalformedKeyBlock,
)
from paysec.security.crypto.aes_primitives import (
    AES_BLOCK_SIZE,
    ZERO_IV,
    AesPrimitives,
    BlockCipherPrimitives,
    secure_compare,
)
from paysec.security.key_management.key_block_header import (
    MAX_KEY_BLOCK_LENGTH,
    KeyBlockHeader,
    KeyBlockVersion,
)
from paysec.security.key_management.key_derivation import DerivedKeySet, KeyDerivation
from paysec.security.random_source import RandomSourceLike, as_random_source

logger = logging.getLogger(__name__)

MAC_LENGTH = 16
KEY_LENGTH_FIELD_SIZE = 2
# One cipher block and the MAC, hex encoded
MIN_BODY_LENGTH = 2 * AES_BLOCK_SIZE + 2 * MAC_LENGTH


def payload_length(
    key_length: int,
    masked_key_length: int = 0,
    block_size: int = AES_BLOCK_SIZE,
) -> int:
    """
    Length of the padded payload for a key of the given length.

    The key length field and the key (or the masked length, if larger) are
    rounded up to the block size. Padding is never empty: an already aligned
    payload gets a full block of padding.
    """
    effective = KEY_LENGTH_FIELD_SIZE + max(key_length, masked_key_length)
    total = -(-effective // block_size) * block_size
    if total == KEY_LENGTH_FIELD_SIZE + key_length:
        total += block_size
    return total


def construct_payload(
    key: bytes,
    random_source: RandomSourceLike,
    masked_key_length: int = 0,
    block_size: int = AES_BLOCK_SIZE,
) -> bytes:
    """
    Build the plaintext key block payload.

    Args:
        key: Key to protect
        random_source: Source of the padding bytes
        masked_key_length: Pad as if the key had at least this many bytes
        block_size: Cipher block size

    Returns:
        Key length in bits (2 bytes, big endian) || key || padding
    """
    if not key:
        raise InvalidKeyLength("Key to protect must not be empty", key_length=0)
    if len(key) * 8 > 0xFFFF:
        raise InvalidKeyLength(
            f"Key to protect is too long: {len(key)} bytes", key_length=len(key)
        )

    total = payload_length(len(key), masked_key_length, block_size)
    padding = as_random_source(random_source).take(total - KEY_LENGTH_FIELD_SIZE - len(key))
    return (len(key) * 8).to_bytes(KEY_LENGTH_FIELD_SIZE, "big") + key + padding


def extract_key(payload: bytes) -> bytes:
    """Strip the key length field and padding from a decrypted payload."""
    if len(payload) < KEY_LENGTH_FIELD_SIZE:
        raise KeyLengthMismatch("Payload too short for the key length field")

    key_bits = int.from_bytes(payload[:KEY_LENGTH_FIELD_SIZE], "big")
    if key_bits == 0 or key_bits % 8:
        raise KeyLengthMismatch(f"Key length of {key_bits} bits is not a whole number of bytes")

    key_length = key_bits // 8
    if key_length > len(payload) - KEY_LENGTH_FIELD_SIZE:
        raise KeyLengthMismatch(
            f"Key length of {key_length} bytes exceeds the recovered payload"
        )
    return payload[KEY_LENGTH_FIELD_SIZE : KEY_LENGTH_FIELD_SIZE + key_length]


def _is_hex(value: str) -> bool:
    return all(c in string.hexdigits for c in value)


@dataclass(frozen=True)
class TR31KeyBlock:
    """Serialized TR-31 key block split into its parts."""

    header: KeyBlockHeader
    header_string: str
    encrypted_payload: bytes = field(repr=False)
    mac: bytes

    def to_string(self) -> str:
        """Convert to TR-31 string format."""
        return (
            self.header_string
            + self.encrypted_payload.hex().upper()
            + self.mac.hex().upper()
        )

    @classmethod
    def from_string(cls, block_string: str) -> "TR31KeyBlock":
        """
        Parse a version D key block.

        Checks structure only; the MAC is verified by KeyWrapping.unwrap.
        """
        header, header_length = KeyBlockHeader.parse(block_string)

        if header.version is not KeyBlockVersion.D:
            raise MalformedHeader(
                f"Unsupported key block version: {header.version.value}", "version"
            )

        if header.key_block_length != len(block_string):
            raise LengthMismatch(
                f"Declared key block length {header.key_block_length} "
                f"does not match actual length {len(block_string)}",
                declared=header.key_block_length,
                actual=len(block_string),
            )

        body = block_string[header_length:]
        if len(body) < MIN_BODY_LENGTH:
            raise LengthMismatch(
                f"Key block body of {len(body)} characters is shorter than {MIN_BODY_LENGTH}",
                actual=len(block_string),
            )

        payload_hex, mac_hex = body[: -2 * MAC_LENGTH], body[-2 * MAC_LENGTH :]
        if len(payload_hex) % (2 * AES_BLOCK_SIZE):
            raise LengthMismatch(
                "Encrypted payload is not a whole number of cipher blocks",
                actual=len(block_string),
            )
        if not _is_hex(body):
            raise MalformedKeyBlock("Key block body is not hexadecimal")

        return cls(
            header=header,
            header_string=block_string[:header_length],
            encrypted_payload=bytes.fromhex(payload_hex),
            mac=bytes.fromhex(mac_hex),
        )


class KeyWrapping:
    """
    TR-31 version D key block wrapping.

    The MAC binding is taken from the configuration:

    - ENCRYPT_THEN_MAC: payload encrypted with AES-CBC under ZERO_IV, MAC over
      header || ciphertext, verified before anything is decrypted.
    - TR31_2018: MAC over header || payload, used as the CBC IV. This is the
      binding defined by ANSI X9.143 / TR-31:2018.
    """

    def __init__(
        self,
        config: Optional[PaySecConfig] = None,
        primitives: Optional[BlockCipherPrimitives] = None,
    ):
        """
        Initialize key wrapping.

        Args:
            config: Codec configuration, defaults to PaySecConfig()
            primitives: Block cipher implementation, AES by default
        """
        self._config = (config or PaySecConfig()).ensure_valid()
        self._primitives = primitives or AesPrimitives()
        self._kdf = KeyDerivation(self._primitives)

    @property
    def binding(self) -> KeyBlockBinding:
        return self._config.binding

    def wrap(
        self,
        header: KeyBlockHeader,
        key: bytes,
        kbpk: bytes,
        random_source: RandomSourceLike,
        masked_key_length: Optional[int] = None,
    ) -> str:
        """
        Wrap a key into a TR-31 key block.

        Args:
            header: Key block header; its length field is recomputed
            key: Key to protect
            kbpk: Key Block Protection Key
            random_source: Source of the padding bytes
            masked_key_length: Override of the configured masked key length

        Returns:
            Serialized key block
        """
        if header.version is not KeyBlockVersion.D:
            raise InvalidHeader(
                f"Only version D key blocks can be wrapped, got {header.version.value}",
                "version",
            )
        if header.header_length % AES_BLOCK_SIZE:
            raise InvalidHeader(
                f"Header length {header.header_length} is not a multiple of "
                f"{AES_BLOCK_SIZE}; add a padding block with finalize()",
                "optional blocks",
            )

        keys = self._kdf.derive(kbpk)

        if masked_key_length is None:
            masked_key_length = self._config.masked_key_length
        if masked_key_length < 0:
            raise ValueError("masked_key_length must not be negative")

        total_length = (
            header.header_length
            + 2 * payload_length(len(key), masked_key_length)
            + 2 * MAC_LENGTH
        )
        if total_length > MAX_KEY_BLOCK_LENGTH:
            raise LengthOverflow(total_length)

        payload = construct_payload(key, random_source, masked_key_length)
        header = header.with_length(total_length)
        header_string = header.to_string()

        encrypted_payload, mac = self._encrypt_and_mac(keys, header_string, payload)
        key_block = TR31KeyBlock(header, header_string, encrypted_payload, mac).to_string()

        logger.debug(
            f"Wrapped key block: usage={header.key_usage.value}, "
            f"length={header.key_block_length}, binding={self.binding.value}"
        )
        return key_block

    def wrap_with_header_string(
        self,
        header: str,
        key: bytes,
        kbpk: bytes,
        random_source: RandomSourceLike,
        masked_key_length: Optional[int] = None,
    ) -> str:
        """Wrap a key under a header given in its ASCII form."""
        try:
            parsed = KeyBlockHeader.from_string(header)
        except MalformedHeader as e:
            raise InvalidHeader(e.message, e.context.get("field")) from e
        return self.wrap(parsed, key, kbpk, random_source, masked_key_length)

    def unwrap(self, key_block: str, kbpk: bytes) -> Tuple[bytes, KeyBlockHeader]:
        """
        Unwrap a TR-31 key block.

        Args:
            key_block: Serialized key block
            kbpk: Key Block Protection Key

        Returns:
            Tuple of (recovered key, parsed header)
        """
        block = TR31KeyBlock.from_string(key_block)
        keys = self._kdf.derive(kbpk)

        payload = self._verify_and_decrypt(keys, block)
        key = extract_key(payload)

        logger.debug(
            f"Unwrapped key block: usage={block.header.key_usage.value}, "
            f"length={block.header.key_block_length}"
        )
        return key, block.header

    def _mac(self, authentication_key: bytes, header_string: str, data: bytes) -> bytes:
        return self._primitives.cmac(authentication_key, header_string.encode("ascii") + data)

    def _encrypt_and_mac(
        self,
        keys: DerivedKeySet,
        header_string: str,
        payload: bytes,
    ) -> Tuple[bytes, bytes]:
        if self.binding is KeyBlockBinding.TR31_2018:
            mac = self._mac(keys.authentication_key, header_string, payload)
            encrypted = self._primitives.cbc_encrypt(keys.encryption_key, mac, payload)
        else:
            encrypted = self._primitives.cbc_encrypt(keys.encryption_key, ZERO_IV, payload)
            mac = self._mac(keys.authentication_key, header_string, encrypted)
        return encrypted, mac

    def _verify_and_decrypt(self, keys: DerivedKeySet, block: TR31KeyBlock) -> bytes:
        if self.binding is KeyBlockBinding.TR31_2018:
            payload = self._primitives.cbc_decrypt(
                keys.encryption_key, block.mac, block.encrypted_payload
            )
            expected = self._mac(keys.authentication_key, block.header_string, payload)
        else:
            payload = None
            expected = self._mac(
                keys.authentication_key, block.header_string, block.encrypted_payload
            )

        if not secure_compare(expected, block.mac):
            logger.warning(
                "Key block authentication failed",
                extra={"key_usage": block.header.key_usage.value},
            )
            raise AuthenticationFailed()

        if payload is None:
            payload = self._primitives.cbc_decrypt(
                keys.encryption_key, ZERO_IV, block.encrypted_payload
            )
        return payload


def wrap_key_block(
    header: Union[KeyBlockHeader, str],
    key: bytes,
    kbpk: bytes,
    random_source: RandomSourceLike,
    config: Optional[PaySecConfig] = None,
) -> str:
    """Wrap a key with a default KeyWrapping instance."""
    wrapping = KeyWrapping(config)
    if isinstance(header, str):
        return wrapping.wrap_with_header_string(header, key, kbpk, random_source)
    return wrapping.wrap(header, key, kbpk, random_source)


def unwrap_key_block(
    key_block: str,
    kbpk: bytes,
    config: Optional[PaySecConfig] = None,
) -> Tuple[bytes, KeyBlockHeader]:
    """Unwrap a key block with a default KeyWrapping instance."""
    return KeyWrapping(config).unwrap(key_block, kbpk)
