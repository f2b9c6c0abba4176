"""
Cryptographic primitives for paysec codecs.
"""

from paysec.security.crypto.aes_primitives import (
    AES_BLOCK_SIZE,
    AES_KEY_LENGTHS,
    ZERO_IV,
    AesPrimitives,
    BlockCipherPrimitives,
    secure_compare,
    validate_aes_key,
    xor_bytes,
)

__all__ = [
    "AES_BLOCK_SIZE",
    "AES_KEY_LENGTHS",
    "ZERO_IV",
    "AesPrimitives",
    "BlockCipherPrimitives",
    "secure_compare",
    "validate_aes_key",
    "xor_bytes",
]
