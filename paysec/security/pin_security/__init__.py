"""
PIN Security Module

ISO 9564-1 PIN block formats 3 and 4.
"""

from paysec.security.pin_security.pin_block import (
    PINBlock,
    PinBlockFormat3,
    PinBlockFormat4,
)
from paysec.security.pin_security.pin_fields import (
    PanFieldCodec,
    PinFieldCodec,
    PINBlockFormat,
)

__all__ = [
    "PINBlockFormat",
    "PINBlock",
    "PinBlockFormat3",
    "PinBlockFormat4",
    "PinFieldCodec",
    "PanFieldCodec",
]
