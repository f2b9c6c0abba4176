"""
Shared fixtures for paysec tests.
"""

import hashlib
import logging

import pytest

from paysec.core.config import KeyBlockBinding, PaySecConfig
from paysec.security.crypto.aes_primitives import BlockCipherPrimitives
from paysec.security.key_management import KeyWrapping


class PassThroughPrimitives(BlockCipherPrimitives):
    """Identity cipher with a hash-based MAC, for checking codec structure."""

    def encrypt_block(self, key: bytes, block: bytes) -> bytes:
        return block

    def decrypt_block(self, key: bytes, block: bytes) -> bytes:
        return block

    def cbc_encrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        return data

    def cbc_decrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        return data

    def cmac(self, key: bytes, data: bytes) -> bytes:
        return hashlib.sha256(key + data).digest()[:16]


@pytest.fixture
def pass_through_primitives():
    """Create identity block cipher primitives."""
    return PassThroughPrimitives()


@pytest.fixture
def key_wrapping():
    """Create KeyWrapping with the default encrypt-then-MAC binding."""
    return KeyWrapping()


@pytest.fixture
def tr31_2018_wrapping():
    """Create KeyWrapping with the TR-31:2018 binding."""
    return KeyWrapping(PaySecConfig(binding=KeyBlockBinding.TR31_2018))


@pytest.fixture
def reset_paysec_logger():
    """Undo logging configuration applied during a test."""
    logger = logging.getLogger("paysec")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
