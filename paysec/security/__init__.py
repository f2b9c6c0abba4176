"""
paysec Security Module

Payment security codecs:
- TR-31 version D key blocks
- AES-CMAC key derivation
- ISO 9564 PIN blocks (formats 3 and 4)
"""

from paysec.security.random_source import (
    CallableRandomSource,
    CounterRandomSource,
    FixedRandomSource,
    RandomSource,
    as_random_source,
)
from paysec.security.crypto import (
    ZERO_IV,
    AesPrimitives,
    BlockCipherPrimitives,
)
from paysec.security.key_management import (
    Algorithm,
    AlgorithmIndicator,
    DerivedKeySet,
    Exportability,
    KeyBlockBinding,
    KeyBlockHeader,
    KeyBlockVersion,
    KeyDerivation,
    KeyUsage,
    KeyUsageIndicator,
    KeyWrapping,
    ModeOfUse,
    OptionalBlock,
    OptionalBlockId,
    TR31KeyBlock,
    unwrap_key_block,
    wrap_key_block,
)
from paysec.security.pin_security import (
    PINBlock,
    PINBlockFormat,
    PanFieldCodec,
    PinBlockFormat3,
    PinBlockFormat4,
    PinFieldCodec,
)

__all__ = [
    # Random sources
    "RandomSource",
    "FixedRandomSource",
    "CounterRandomSource",
    "CallableRandomSource",
    "as_random_source",
    # Primitives
    "ZERO_IV",
    "AesPrimitives",
    "BlockCipherPrimitives",
    # Key management
    "Algorithm",
    "AlgorithmIndicator",
    "DerivedKeySet",
    "Exportability",
    "KeyBlockBinding",
    "KeyBlockHeader",
    "KeyBlockVersion",
    "KeyDerivation",
    "KeyUsage",
    "KeyUsageIndicator",
    "KeyWrapping",
    "ModeOfUse",
    "OptionalBlock",
    "OptionalBlockId",
    "TR31KeyBlock",
    "unwrap_key_block",
    "wrap_key_block",
    # PIN security
    "PINBlock",
    "PINBlockFormat",
    "PanFieldCodec",
    "PinBlockFormat3",
    "PinBlockFormat4",
    "PinFieldCodec",
]
