"""
Key Derivation

Derives the key block encryption key (KBEK) and key block authentication key
(KBAK) from a Key Block Protection Key using AES-CMAC in counter mode, as
defined for TR-31 version D key blocks.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from paysec.core.exceptions import InvalidKeyLength
from paysec.security.crypto.aes_primitives import (
    AES_BLOCK_SIZE,
    AesPrimitives,
    BlockCipherPrimitives,
)

logger = logging.getLogger(__name__)

# Separator byte between key usage and algorithm indicators
DERIVATION_SEPARATOR = 0x00


class KeyUsageIndicator(Enum):
    """Purpose of a derived key."""

    ENCRYPTION = 0x0000  # KBEK
    AUTHENTICATION = 0x0001  # KBAK


class AlgorithmIndicator(Enum):
    """Algorithm of the derived key, with its key length in bits."""

    AES_128 = (0x0002, 128)
    AES_192 = (0x0003, 192)
    AES_256 = (0x0004, 256)

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def key_bits(self) -> int:
        return self.value[1]

    @property
    def key_bytes(self) -> int:
        return self.value[1] // 8

    @classmethod
    def for_key_length(cls, length: int) -> "AlgorithmIndicator":
        """Select the indicator matching a KBPK length in bytes."""
        for indicator in cls:
            if indicator.key_bytes == length:
                return indicator
        raise InvalidKeyLength(
            f"KBPK must be 16, 24 or 32 bytes, got {length}",
            key_length=length,
        )


@dataclass(frozen=True)
class DerivedKeySet:
    """Encryption and authentication keys derived from one KBPK."""

    encryption_key: bytes = field(repr=False)
    authentication_key: bytes = field(repr=False)

    def __len__(self) -> int:
        return len(self.encryption_key)


class KeyDerivation:
    """
    AES-CMAC counter mode key derivation for TR-31 version D.

    Each derived key is the concatenation of CMAC(KBPK, derivation data) for
    counters 1..n, truncated to the requested length. The derivation data is
    8 bytes::

        counter (1) | key usage (2) | 0x00 | algorithm (2) | length in bits (2)
    """

    def __init__(self, primitives: Optional[BlockCipherPrimitives] = None):
        """
        Initialize key derivation.

        Args:
            primitives: Block cipher implementation, AES by default
        """
        self._primitives = primitives or AesPrimitives()

    @staticmethod
    def derivation_data(
        counter: int,
        key_usage: KeyUsageIndicator,
        algorithm: AlgorithmIndicator,
    ) -> bytes:
        """Build the derivation data block for one CMAC invocation."""
        if not 1 <= counter <= 0xFF:
            raise ValueError(f"Counter must fit in one byte, got {counter}")
        return struct.pack(
            ">BHBHH",
            counter,
            key_usage.value,
            DERIVATION_SEPARATOR,
            algorithm.code,
            algorithm.key_bits,
        )

    def derive_key(
        self,
        kbpk: bytes,
        key_usage: KeyUsageIndicator,
        algorithm: Optional[AlgorithmIndicator] = None,
    ) -> bytes:
        """
        Derive a single key from the KBPK.

        Args:
            kbpk: Key Block Protection Key (16, 24 or 32 bytes)
            key_usage: Encryption or authentication
            algorithm: Algorithm of the derived key, defaults to the KBPK's

        Returns:
            Derived key bytes
        """
        kbpk_algorithm = AlgorithmIndicator.for_key_length(len(kbpk))
        algorithm = algorithm or kbpk_algorithm

        blocks = -(-algorithm.key_bytes // AES_BLOCK_SIZE)
        derived = b"".join(
            self._primitives.cmac(kbpk, self.derivation_data(counter, key_usage, algorithm))
            for counter in range(1, blocks + 1)
        )
        return derived[: algorithm.key_bytes]

    def derive(
        self,
        kbpk: bytes,
        algorithm: Optional[AlgorithmIndicator] = None,
    ) -> DerivedKeySet:
        """
        Derive the KBEK/KBAK pair from the KBPK.

        Args:
            kbpk: Key Block Protection Key
            algorithm: Algorithm of the derived keys, defaults to the KBPK's

        Returns:
            DerivedKeySet
        """
        algorithm = algorithm or AlgorithmIndicator.for_key_length(len(kbpk))
        logger.debug(f"Deriving key block keys for {algorithm.name}")

        return DerivedKeySet(
            encryption_key=self.derive_key(kbpk, KeyUsageIndicator.ENCRYPTION, algorithm),
            authentication_key=self.derive_key(
                kbpk, KeyUsageIndicator.AUTHENTICATION, algorithm
            ),
        )


def derive_key_set(kbpk: bytes) -> DerivedKeySet:
    """Derive the KBEK/KBAK pair with the AES primitives."""
    return KeyDerivation().derive(kbpk)
