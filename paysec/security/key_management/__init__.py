"""
Key Management Module

TR-31 version D key blocks: header model, key derivation and wrapping.
"""

from paysec.core.config import KeyBlockBinding
from paysec.security.key_management.key_block_header import (
    Algorithm,
    Exportability,
    KeyBlockHeader,
    KeyBlockVersion,
    KeyUsage,
    ModeOfUse,
    OptionalBlock,
    OptionalBlockId,
)
from paysec.security.key_management.key_derivation import (
    AlgorithmIndicator,
    DerivedKeySet,
    KeyDerivation,
    KeyUsageIndicator,
    derive_key_set,
)
from paysec.security.key_management.key_wrapping import (
    KeyWrapping,
    TR31KeyBlock,
    construct_payload,
    extract_key,
    payload_length,
    unwrap_key_block,
    wrap_key_block,
)

__all__ = [
    # Header
    "Algorithm",
    "Exportability",
    "KeyBlockHeader",
    "KeyBlockVersion",
    "KeyUsage",
    "ModeOfUse",
    "OptionalBlock",
    "OptionalBlockId",
    # Derivation
    "AlgorithmIndicator",
    "DerivedKeySet",
    "KeyDerivation",
    "KeyUsageIndicator",
    "derive_key_set",
    # Wrapping
    "KeyBlockBinding",
    "KeyWrapping",
    "TR31KeyBlock",
    "construct_payload",
    "extract_key",
    "payload_length",
    "unwrap_key_block",
    "wrap_key_block",
]
