"""
Key Block Header

TR-31 key block header: the 16 character fixed part followed by optional
blocks. Field values are validated when a header is constructed, so a
KeyBlockHeader instance is always exportable.

Fixed part layout::

    version (1) | length (4) | key usage (2) | algorithm (1) | mode of use (1)
    | key version number (2) | exportability (1) | optional blocks (2)
    | reserved "00" (2)
"""

import dataclasses
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple, Type, TypeVar, Union

from paysec.core.exceptions import (
    InvalidHeader,
    LengthOverflow,
    MalformedHeader,
    MalformedOptionalBlock,
)

FIXED_HEADER_LENGTH = 16
MAX_KEY_BLOCK_LENGTH = 9999
MAX_OPTIONAL_BLOCKS = 99
MAX_OPTIONAL_BLOCK_LENGTH = 0xFFFF
RESERVED_FIELD = "00"

# Padding optional block id, only allowed as the last block
PADDING_BLOCK_ID = "PB"

EnumT = TypeVar("EnumT", bound=Enum)


class KeyBlockVersion(Enum):
    """TR-31 Key Block versions."""

    A = "A"  # TDEA key variant binding (deprecated)
    B = "B"  # TDEA key derivation binding
    C = "C"  # TDEA key variant binding
    D = "D"  # AES key derivation binding

    @property
    def block_size(self) -> int:
        return 16 if self is KeyBlockVersion.D else 8


class KeyUsage(Enum):
    """TR-31 Key Usage codes."""

    BDK = "B0"  # Base Derivation Key
    DUKPT_INITIAL = "B1"  # Initial DUKPT Key
    BASE_KEY_VARIANT = "B2"  # Base Key Variant Key
    CVK = "C0"  # Card Verification Key
    DATA_ENCRYPTION = "D0"  # Symmetric Key for Data Encryption
    DATA_ENCRYPTION_ASYMMETRIC = "D1"  # Asymmetric Key for Data Encryption
    DATA_ENCRYPTION_DECIMALIZATION = "D2"  # Data Encryption Key for Decimalization Table
    EMV_APP_CRYPTOGRAM = "E0"  # EMV/chip Issuer Master Key: Application cryptograms
    EMV_SM_CONFIDENTIALITY = "E1"  # EMV/chip Issuer Master Key: Secure Messaging for Confidentiality
    EMV_SM_INTEGRITY = "E2"  # EMV/chip Issuer Master Key: Secure Messaging for Integrity
    EMV_DATA_AUTHENTICATION = "E3"  # EMV/chip Issuer Master Key: Data Authentication Code
    EMV_DYNAMIC_NUMBERS = "E4"  # EMV/chip Issuer Master Key: Dynamic Numbers
    EMV_CARD_PERSONALIZATION = "E5"  # EMV/chip Issuer Master Key: Card Personalization
    EMV_OTHER = "E6"  # EMV/chip Issuer Master Key: Other
    INITIALIZATION_VECTOR = "I0"  # Initialization Vector
    KEK = "K0"  # Key Encryption or Wrapping
    KBPK = "K1"  # TR-31 Key Block Protection Key
    KEK_TR34 = "K2"  # TR-34 Asymmetric Key
    KEK_AGREEMENT = "K3"  # Asymmetric Key for key agreement/key wrapping
    ISO_16609_MAC = "M0"  # ISO 16609 MAC algorithm 1 (using TDEA)
    ISO_9797_MAC_1 = "M1"  # ISO 9797-1 MAC Algorithm 1
    ISO_9797_MAC_2 = "M2"  # ISO 9797-1 MAC Algorithm 2
    ISO_9797_MAC_3 = "M3"  # ISO 9797-1 MAC Algorithm 3
    ISO_9797_MAC_4 = "M4"  # ISO 9797-1 MAC Algorithm 4
    ISO_9797_MAC_5 = "M5"  # ISO 9797-1:2011 MAC Algorithm 5
    ISO_9797_CMAC = "M6"  # ISO 9797-1:2011 MAC Algorithm 5/CMAC
    HMAC = "M7"  # HMAC
    ISO_9797_MAC_6 = "M8"  # ISO 9797-1:2011 MAC Algorithm 6
    PIN_ENCRYPTION = "P0"  # PIN Encryption
    ASYMMETRIC_SIGNATURE = "S0"  # Asymmetric key pair for digital signature
    ASYMMETRIC_CA = "S1"  # Asymmetric key pair, CA key
    ASYMMETRIC_NON_X9 = "S2"  # Asymmetric key pair, non-X9.24 key
    PIN_VERIFICATION_KPV = "V0"  # PIN verification, KPV, other algorithm
    PIN_VERIFICATION_IBM_3624 = "V1"  # PIN verification, IBM 3624
    PIN_VERIFICATION_VISA_PVV = "V2"  # PIN verification, VISA PVV
    PIN_VERIFICATION_X9_132_1 = "V3"  # PIN verification, X9.132 algorithm 1
    PIN_VERIFICATION_X9_132_2 = "V4"  # PIN verification, X9.132 algorithm 2


class Algorithm(Enum):
    """TR-31 Algorithm codes."""

    AES = "A"  # AES
    DES = "D"  # DEA
    EC = "E"  # Elliptic Curve
    HMAC = "H"  # HMAC
    RSA = "R"  # RSA
    DSA = "S"  # DSA
    TDES = "T"  # Triple DEA


class ModeOfUse(Enum):
    """TR-31 Mode of Use codes."""

    BOTH = "B"  # Both encrypt and decrypt / wrap and unwrap
    GENERATE_AND_VERIFY = "C"  # Both generate and verify
    DECRYPT = "D"  # Decrypt / unwrap only
    ENCRYPT = "E"  # Encrypt / wrap only
    GENERATE = "G"  # Generate only
    NO_SPECIAL = "N"  # No special restrictions
    SIGNATURE = "S"  # Signature only
    SIGN_AND_DECRYPT = "T"  # Both sign and decrypt
    VERIFY = "V"  # Verify only
    DERIVE = "X"  # Key used to derive other keys
    VARIANT = "Y"  # Key used to create key variants


class Exportability(Enum):
    """TR-31 Exportability codes."""

    EXPORTABLE = "E"  # Exportable under trusted key
    NOT_EXPORTABLE = "N"  # Not exportable
    SENSITIVE = "S"  # Sensitive, exportable under untrusted key


class OptionalBlockId(Enum):
    """TR-31 optional block identifiers."""

    CT = "CT"  # Asymmetric public key certificate
    HM = "HM"  # HMAC hash algorithm
    IK = "IK"  # Initial Key Identifier (AES DUKPT)
    KC = "KC"  # Key Check Value of wrapped key
    KP = "KP"  # Key Check Value of KBPK
    KS = "KS"  # Key Set Identifier (TDEA DUKPT)
    KV = "KV"  # Key block values version
    PB = "PB"  # Padding block
    TS = "TS"  # Time stamp


def _coerce(enum_cls: Type[EnumT], value: Union[EnumT, str], field_name: str) -> EnumT:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidHeader(f"Invalid {field_name}: {value!r}", field_name)


def _is_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _is_hex(value: str) -> bool:
    return bool(value) and all(c in string.hexdigits for c in value)


def _is_printable_ascii(value: str) -> bool:
    return all(0x20 <= ord(c) < 0x7F for c in value)


@dataclass(frozen=True)
class OptionalBlock:
    """
    A single tag-length-value optional header block.

    The encoded length covers the id, the length field and the data. Blocks up
    to 255 characters use a 2 hex digit length; longer blocks use
    ``"00" "02"`` followed by a 4 hex digit length.
    """

    block_id: OptionalBlockId
    data: str

    def __post_init__(self):
        block_id = self.block_id
        if not isinstance(block_id, OptionalBlockId):
            try:
                block_id = OptionalBlockId(block_id)
            except ValueError:
                raise MalformedOptionalBlock(
                    f"Invalid optional block id: {self.block_id!r}", str(self.block_id)
                )
            object.__setattr__(self, "block_id", block_id)

        if not isinstance(self.data, str) or not _is_printable_ascii(self.data):
            raise MalformedOptionalBlock(
                "Optional block data must be printable ASCII", block_id.value
            )

        length = self.length
        if length > MAX_OPTIONAL_BLOCK_LENGTH:
            raise MalformedOptionalBlock(
                f"Optional block length {length} exceeds {MAX_OPTIONAL_BLOCK_LENGTH}",
                block_id.value,
            )

    @property
    def length(self) -> int:
        """Encoded length of the whole block."""
        length = 4 + len(self.data)
        if length > 0xFF:
            length += 6
        return length

    @property
    def extended(self) -> bool:
        """Whether the block uses the extended length form."""
        return self.length > 0xFF

    def to_string(self) -> str:
        """Encode the block."""
        length = self.length
        if length > 0xFF:
            length_field = f"0002{length:04X}"
        else:
            length_field = f"{length:02X}"
        return f"{self.block_id.value}{length_field}{self.data}"

    @classmethod
    def parse(cls, source: str, offset: int = 0) -> Tuple["OptionalBlock", int]:
        """
        Parse one optional block.

        Args:
            source: String containing the block
            offset: Position of the block id within source

        Returns:
            Tuple of (block, offset just past the block)
        """
        remaining = source[offset:]
        if len(remaining) < 4:
            raise MalformedOptionalBlock("Optional block truncated")

        block_id = remaining[:2]
        length_field = remaining[2:4]
        extended = length_field == "00"

        if extended:
            if len(remaining) < 256:
                raise MalformedOptionalBlock(
                    "Optional block with extended length truncated", block_id
                )
            if remaining[4:6] != "02" or not _is_hex(remaining[6:10]):
                raise MalformedOptionalBlock(
                    f"Invalid extended length field: {remaining[4:10]!r}", block_id
                )
            length = int(remaining[6:10], 16)
            # Short form must be used whenever it can hold the block
            if length - 6 <= 0xFF:
                raise MalformedOptionalBlock(
                    f"Extended length {length} fits the short length form", block_id
                )
            data_start = 10
        else:
            if not _is_hex(length_field):
                raise MalformedOptionalBlock(
                    f"Invalid optional block length field: {length_field!r}", block_id
                )
            length = int(length_field, 16)
            if length < 4:
                raise MalformedOptionalBlock(
                    f"Optional block length {length} is below the minimum of 4", block_id
                )
            data_start = 4

        if len(remaining) < length:
            raise MalformedOptionalBlock(
                f"Optional block length {length} runs past the header", block_id
            )

        block = cls(block_id, remaining[data_start:length])
        return block, offset + length


@dataclass(frozen=True)
class KeyBlockHeader:
    """
    TR-31 key block header.

    ``key_block_length`` is the total serialized length of the key block and
    is filled in by wrapping; a header built for wrapping may leave it at 0.
    """

    key_usage: KeyUsage
    algorithm: Algorithm
    mode_of_use: ModeOfUse
    key_version_number: str = "00"
    exportability: Exportability = Exportability.EXPORTABLE
    optional_blocks: Tuple[OptionalBlock, ...] = field(default_factory=tuple)
    version: KeyBlockVersion = KeyBlockVersion.D
    key_block_length: int = 0
    reserved: str = RESERVED_FIELD

    def __post_init__(self):
        object.__setattr__(self, "version", _coerce(KeyBlockVersion, self.version, "version"))
        object.__setattr__(self, "key_usage", _coerce(KeyUsage, self.key_usage, "key usage"))
        object.__setattr__(self, "algorithm", _coerce(Algorithm, self.algorithm, "algorithm"))
        object.__setattr__(
            self, "mode_of_use", _coerce(ModeOfUse, self.mode_of_use, "mode of use")
        )
        object.__setattr__(
            self, "exportability", _coerce(Exportability, self.exportability, "exportability")
        )

        kvn = self.key_version_number
        if not isinstance(kvn, str) or len(kvn) != 2 or not (kvn.isascii() and kvn.isalnum()):
            raise InvalidHeader(
                f"Key version number must be 2 alphanumeric characters: {kvn!r}",
                "key version number",
            )

        if self.reserved != RESERVED_FIELD:
            raise InvalidHeader(f"Invalid reserved field: {self.reserved!r}", "reserved")

        if not isinstance(self.key_block_length, int) or self.key_block_length < 0:
            raise InvalidHeader(
                f"Invalid key block length: {self.key_block_length!r}", "key block length"
            )
        if self.key_block_length > MAX_KEY_BLOCK_LENGTH:
            raise LengthOverflow(self.key_block_length)

        blocks = tuple(self.optional_blocks)
        object.__setattr__(self, "optional_blocks", blocks)
        self._validate_optional_blocks(blocks)

    @staticmethod
    def _validate_optional_blocks(blocks: Tuple[OptionalBlock, ...]) -> None:
        if len(blocks) > MAX_OPTIONAL_BLOCKS:
            raise MalformedOptionalBlock(
                f"At most {MAX_OPTIONAL_BLOCKS} optional blocks allowed, got {len(blocks)}"
            )

        seen = set()
        for index, block in enumerate(blocks):
            if not isinstance(block, OptionalBlock):
                raise MalformedOptionalBlock(f"Not an optional block: {block!r}")
            block_id = block.block_id.value
            if block_id in seen:
                raise MalformedOptionalBlock(f"Duplicate optional block: {block_id}", block_id)
            if block_id == PADDING_BLOCK_ID and index != len(blocks) - 1:
                raise MalformedOptionalBlock(
                    "Padding block must be the last optional block", block_id
                )
            seen.add(block_id)

    @property
    def num_optional_blocks(self) -> int:
        return len(self.optional_blocks)

    @property
    def header_length(self) -> int:
        """Length of the exported header including optional blocks."""
        return FIXED_HEADER_LENGTH + sum(block.length for block in self.optional_blocks)

    def get_optional_block(self, block_id: Union[OptionalBlockId, str]) -> Optional[OptionalBlock]:
        """Return the optional block with the given id, if present."""
        block_id = OptionalBlockId(block_id) if isinstance(block_id, str) else block_id
        for block in self.optional_blocks:
            if block.block_id is block_id:
                return block
        return None

    def to_string(self) -> str:
        """Export the header as its ASCII wire form."""
        return (
            f"{self.version.value}"
            f"{self.key_block_length:04d}"
            f"{self.key_usage.value}"
            f"{self.algorithm.value}"
            f"{self.mode_of_use.value}"
            f"{self.key_version_number}"
            f"{self.exportability.value}"
            f"{self.num_optional_blocks:02d}"
            f"{self.reserved}"
            + "".join(block.to_string() for block in self.optional_blocks)
        )

    def with_length(self, key_block_length: int) -> "KeyBlockHeader":
        """Return a copy with the total key block length set."""
        return dataclasses.replace(self, key_block_length=key_block_length)

    def with_optional_blocks(self, blocks: Iterable[OptionalBlock]) -> "KeyBlockHeader":
        """Return a copy with blocks appended to the optional blocks."""
        return dataclasses.replace(
            self, optional_blocks=self.optional_blocks + tuple(blocks)
        )

    def finalize(self) -> "KeyBlockHeader":
        """
        Pad the optional blocks to a whole number of cipher blocks.

        Adds a PB block of "0" characters when the header holds optional
        blocks and its length is not a multiple of the version's block size.
        An existing trailing PB block is replaced.
        """
        block_size = self.version.block_size
        if not self.optional_blocks or self.header_length % block_size == 0:
            return self

        header = self
        if self.optional_blocks[-1].block_id is OptionalBlockId.PB:
            header = dataclasses.replace(self, optional_blocks=self.optional_blocks[:-1])
        remainder = header.header_length % block_size
        if not header.optional_blocks or remainder == 0:
            return header

        padding_needed = block_size - remainder
        if padding_needed < 6:
            padding_needed += block_size

        padding = OptionalBlock(OptionalBlockId.PB, "0" * (padding_needed - 4))
        return header.with_optional_blocks([padding])

    @classmethod
    def parse(cls, source: str) -> Tuple["KeyBlockHeader", int]:
        """
        Parse a header from the start of a string.

        Args:
            source: Header, optionally followed by further key block data

        Returns:
            Tuple of (header, header length)
        """
        if not isinstance(source, str) or not source.isascii():
            raise MalformedHeader("Key block header must be ASCII text")
        if len(source) < FIXED_HEADER_LENGTH:
            raise MalformedHeader(
                f"Key block header must be at least {FIXED_HEADER_LENGTH} characters"
            )

        try:
            version = KeyBlockVersion(source[0])
        except ValueError:
            raise MalformedHeader(f"Unsupported key block version: {source[0]!r}", "version")

        length_field = source[1:5]
        if not _is_digits(length_field):
            raise MalformedHeader(
                f"Invalid key block length: {length_field!r}", "key block length"
            )

        count_field = source[12:14]
        if not _is_digits(count_field):
            raise MalformedHeader(
                f"Invalid number of optional blocks: {count_field!r}", "optional blocks"
            )

        offset = FIXED_HEADER_LENGTH
        blocks = []
        for _ in range(int(count_field)):
            block, offset = OptionalBlock.parse(source, offset)
            blocks.append(block)

        try:
            header = cls(
                version=version,
                key_block_length=int(length_field),
                key_usage=source[5:7],
                algorithm=source[7],
                mode_of_use=source[8],
                key_version_number=source[9:11],
                exportability=source[11],
                reserved=source[14:16],
                optional_blocks=tuple(blocks),
            )
        except MalformedHeader:
            raise
        except InvalidHeader as e:
            field_name = e.context.get("field")
            raise MalformedHeader(e.message, field_name) from e

        return header, offset

    @classmethod
    def from_string(cls, header: str) -> "KeyBlockHeader":
        """Parse a standalone header string."""
        parsed, length = cls.parse(header)
        if length != len(header):
            raise MalformedHeader(
                f"Unexpected {len(header) - length} characters after the header"
            )
        return parsed
