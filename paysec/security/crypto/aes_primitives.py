"""
AES Primitives

Single-block ECB, CBC and CMAC operations used by the key block and PIN block
codecs. The codecs depend only on BlockCipherPrimitives, so they can run over
a substitute implementation in structural tests.
"""

import hmac
from abc import ABC, abstractmethod

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.cmac import CMAC

from paysec.core.exceptions import InvalidKeyLength

AES_BLOCK_SIZE = 16
AES_KEY_LENGTHS = (16, 24, 32)

# CBC initialization vector for the encrypt-then-MAC key block binding
ZERO_IV = bytes(AES_BLOCK_SIZE)


def validate_aes_key(key: bytes, name: str = "AES key") -> None:
    """Raise InvalidKeyLength unless key is 16, 24 or 32 bytes."""
    if len(key) not in AES_KEY_LENGTHS:
        raise InvalidKeyLength(
            f"{name} must be 16, 24 or 32 bytes, got {len(key)}",
            key_length=len(key),
        )


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two equal-length byte strings."""
    if len(a) != len(b):
        raise ValueError(f"Cannot XOR {len(a)} bytes with {len(b)} bytes")
    return bytes(x ^ y for x, y in zip(a, b))


def secure_compare(a: bytes, b: bytes) -> bool:
    """Constant-time comparison."""
    return hmac.compare_digest(a, b)


class BlockCipherPrimitives(ABC):
    """Block cipher operations required by the codecs."""

    block_size: int = AES_BLOCK_SIZE

    @abstractmethod
    def encrypt_block(self, key: bytes, block: bytes) -> bytes:
        """Encrypt one block in ECB mode."""

    @abstractmethod
    def decrypt_block(self, key: bytes, block: bytes) -> bytes:
        """Decrypt one block in ECB mode."""

    @abstractmethod
    def cbc_encrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        """Encrypt block-aligned data in CBC mode without padding."""

    @abstractmethod
    def cbc_decrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        """Decrypt block-aligned data in CBC mode without padding."""

    @abstractmethod
    def cmac(self, key: bytes, data: bytes) -> bytes:
        """Compute a full-length CMAC tag."""


class AesPrimitives(BlockCipherPrimitives):
    """AES implementation backed by the cryptography library."""

    def encrypt_block(self, key: bytes, block: bytes) -> bytes:
        self._check_block(block)
        encryptor = self._cipher(key, modes.ECB()).encryptor()
        return encryptor.update(block) + encryptor.finalize()

    def decrypt_block(self, key: bytes, block: bytes) -> bytes:
        self._check_block(block)
        decryptor = self._cipher(key, modes.ECB()).decryptor()
        return decryptor.update(block) + decryptor.finalize()

    def cbc_encrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        self._check_block(iv, "IV")
        self._check_aligned(data)
        encryptor = self._cipher(key, modes.CBC(iv)).encryptor()
        return encryptor.update(data) + encryptor.finalize()

    def cbc_decrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        self._check_block(iv, "IV")
        self._check_aligned(data)
        decryptor = self._cipher(key, modes.CBC(iv)).decryptor()
        return decryptor.update(data) + decryptor.finalize()

    def cmac(self, key: bytes, data: bytes) -> bytes:
        validate_aes_key(key)
        c = CMAC(algorithms.AES(key), backend=default_backend())
        c.update(data)
        return c.finalize()

    @staticmethod
    def _cipher(key: bytes, mode) -> Cipher:
        validate_aes_key(key)
        return Cipher(algorithms.AES(key), mode, backend=default_backend())

    def _check_block(self, block: bytes, name: str = "Block") -> None:
        if len(block) != self.block_size:
            raise ValueError(f"{name} must be {self.block_size} bytes, got {len(block)}")

    def _check_aligned(self, data: bytes) -> None:
        if not data or len(data) % self.block_size:
            raise ValueError(
                f"Data length {len(data)} is not a positive multiple of {self.block_size}"
            )
