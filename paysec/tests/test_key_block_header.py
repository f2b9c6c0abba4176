"""
Tests for TR-31 key block headers and optional blocks.
"""

import pytest

from paysec.core.exceptions import (
    InvalidHeader,
    LengthOverflow,
    MalformedHeader,
    MalformedOptionalBlock,
)
from paysec.security.key_management import (
    Algorithm,
    Exportability,
    KeyBlockHeader,
    KeyBlockVersion,
    KeyUsage,
    ModeOfUse,
    OptionalBlock,
    OptionalBlockId,
)


class TestOptionalBlock:
    """Tests for optional block encoding."""

    def test_export(self):
        """Test short length form."""
        block = OptionalBlock("CT", "1CEDCAFFE1A77E")

        assert block.block_id is OptionalBlockId.CT
        assert block.length == 18
        assert block.to_string() == "CT121CEDCAFFE1A77E"

    def test_export_empty_data(self):
        """Test a block without data has the minimum length of 4."""
        assert OptionalBlock(OptionalBlockId.KV, "").to_string() == "KV04"

    def test_export_extended_length(self):
        """Test blocks over 255 characters use the extended length form."""
        block = OptionalBlock("KS", "0" * 252)

        assert block.length == 262
        assert block.to_string() == "KS00020106" + "0" * 252

    def test_parse(self):
        """Test parsing a short form block."""
        block, offset = OptionalBlock.parse("KS1800604B120F9292800000")

        assert block.block_id is OptionalBlockId.KS
        assert block.data == "00604B120F9292800000"
        assert offset == 24

    def test_parse_extended_length(self):
        """Test parsing and re-exporting an extended length block."""
        source = "CT00020136" + "F" * 300

        block, offset = OptionalBlock.parse(source)

        assert block == OptionalBlock("CT", "F" * 300)
        assert block.extended is True
        assert offset == 310
        assert block.to_string() == source

    def test_parse_at_offset(self):
        """Test parsing from an offset into a header."""
        source = "D0000P0AE00E0100KC0A00604B"
        block, offset = OptionalBlock.parse(source, 16)

        assert block.block_id is OptionalBlockId.KC
        assert block.data == "00604B"
        assert offset == len(source)

    @pytest.mark.parametrize(
        "source",
        [
            "CT1",  # truncated
            "XX04",  # unknown id
            "KC03",  # length below 4
            "KCZZ",  # non-hex length
            "KC08AB",  # length runs past the data
            "CT00020100" + "F" * 10,  # extended form too short
            "CT00030100" + "F" * 246,  # extended length of length must be 02
            "CT000200FF" + "F" * 246,  # extended length must exceed 255
            "CT00020100" + "F" * 246,  # short form would hold the block
        ],
    )
    def test_parse_malformed(self, source):
        """Test malformed optional blocks."""
        with pytest.raises(MalformedOptionalBlock):
            OptionalBlock.parse(source)

    def test_invalid_id(self):
        """Test construction with an unknown id."""
        with pytest.raises(MalformedOptionalBlock):
            OptionalBlock("ZZ", "00")

    def test_non_ascii_data(self):
        """Test construction with non-ASCII data."""
        with pytest.raises(MalformedOptionalBlock):
            OptionalBlock("KS", "café")

    def test_too_long(self):
        """Test the 65535 character limit."""
        with pytest.raises(MalformedOptionalBlock):
            OptionalBlock("CT", "A" * 65530)

    def test_malformed_optional_block_is_header_error(self):
        """Test the exception hierarchy."""
        assert issubclass(MalformedOptionalBlock, MalformedHeader)
        assert issubclass(MalformedHeader, InvalidHeader)


class TestKeyBlockHeader:
    """Tests for key block header construction, export and parsing."""

    @pytest.fixture
    def header(self):
        """Create a PIN encryption key header."""
        return KeyBlockHeader(
            key_usage=KeyUsage.PIN_ENCRYPTION,
            algorithm=Algorithm.AES,
            mode_of_use=ModeOfUse.ENCRYPT,
            key_version_number="00",
            exportability=Exportability.EXPORTABLE,
        )

    def test_export(self, header):
        """Test export of the fixed header."""
        assert header.to_string() == "D0000P0AE00E0000"
        assert header.header_length == 16
        assert header.version is KeyBlockVersion.D

    def test_string_values_are_coerced(self, header):
        """Test construction from raw codes."""
        assert KeyBlockHeader("P0", "A", "E", "00", "E") == header

    def test_parse_round_trip(self):
        """Test parsing a header with optional blocks."""
        source = "D0144P0TE00N0200KS1800604B120F9292800000PB080000"

        header = KeyBlockHeader.from_string(source)

        assert header.key_block_length == 144
        assert header.key_usage is KeyUsage.PIN_ENCRYPTION
        assert header.algorithm is Algorithm.TDES
        assert header.mode_of_use is ModeOfUse.ENCRYPT
        assert header.exportability is Exportability.NOT_EXPORTABLE
        assert header.num_optional_blocks == 2
        assert header.get_optional_block("KS").data == "00604B120F9292800000"
        assert header.get_optional_block(OptionalBlockId.PB).data == "0000"
        assert header.get_optional_block("KC") is None
        assert header.to_string() == source

    def test_parse_returns_header_length(self):
        """Test parse() stops after the optional blocks."""
        header, length = KeyBlockHeader.parse("D0000P0AE00E0100KC0C00604BDEADBEEF")

        assert length == 28
        assert header.num_optional_blocks == 1

    def test_from_string_rejects_trailing_data(self):
        """Test from_string() requires the whole string to be header."""
        with pytest.raises(MalformedHeader):
            KeyBlockHeader.from_string("D0000P0AE00E0000AB")

    @pytest.mark.parametrize(
        "source",
        [
            "D0000P0AE00E000",  # too short
            "X0000P0AE00E0000",  # unknown version
            "D00A0P0AE00E0000",  # non-digit length
            "D0000Z9AE00E0000",  # unknown key usage
            "D0000P0QE00E0000",  # unknown algorithm
            "D0000P0AQ00E0000",  # unknown mode of use
            "D0000P0AE0!E0000",  # key version number not alphanumeric
            "D0000P0AE00Q0000",  # unknown exportability
            "D0000P0AE00E0A00",  # non-digit optional block count
            "D0000P0AE00E0001",  # reserved field
            "D0000P0AE00Eé000",  # non-ASCII
        ],
    )
    def test_parse_malformed(self, source):
        """Test malformed fixed header fields."""
        with pytest.raises(MalformedHeader):
            KeyBlockHeader.from_string(source)

    @pytest.mark.parametrize(
        "source",
        [
            "D0000P0AE00E0100",  # declared block missing
            "D0000P0AE00E0200KC04",  # second block missing
            "D0000P0AE00E0200KC04KC04",  # duplicate id
            "D0000P0AE00E0200PB04KC04",  # padding not last
        ],
    )
    def test_parse_malformed_optional_blocks(self, source):
        """Test malformed optional block sequences."""
        with pytest.raises(MalformedOptionalBlock):
            KeyBlockHeader.from_string(source)

    def test_parse_recognises_legacy_versions(self):
        """Test version B headers parse even though they cannot be wrapped."""
        header = KeyBlockHeader.from_string("B0000P0TE00E0000")

        assert header.version is KeyBlockVersion.B
        assert header.version.block_size == 8

    @pytest.mark.parametrize(
        "field_name,value",
        [
            ("key_usage", "ZZ"),
            ("algorithm", "Q"),
            ("mode_of_use", "Q"),
            ("exportability", "Q"),
            ("version", "E"),
            ("key_version_number", "1"),
            ("key_version_number", "0 "),
            ("reserved", "01"),
        ],
    )
    def test_invalid_fields_rejected_on_construction(self, field_name, value):
        """Test validated construction."""
        fields = dict(key_usage="P0", algorithm="A", mode_of_use="E")
        fields[field_name] = value

        with pytest.raises(InvalidHeader):
            KeyBlockHeader(**fields)

    def test_length_overflow(self, header):
        """Test the four digit length limit."""
        with pytest.raises(LengthOverflow):
            header.with_length(10000)

    def test_with_length(self, header):
        """Test with_length() returns an updated copy."""
        updated = header.with_length(112)

        assert updated.to_string() == "D0112P0AE00E0000"
        assert header.key_block_length == 0

    def test_duplicate_optional_blocks_rejected(self, header):
        """Test duplicate ids on construction."""
        with pytest.raises(MalformedOptionalBlock):
            header.with_optional_blocks([OptionalBlock("KC", "00"), OptionalBlock("KC", "01")])

    def test_finalize_adds_padding_block(self):
        """Test padding an optional block header to 16 characters."""
        header = KeyBlockHeader.from_string("D0048P0TE00N0100KS1800604B120F9292800000")

        finalized = header.finalize()

        assert finalized.to_string() == "D0048P0TE00N0200KS1800604B120F9292800000PB080000"
        assert finalized.header_length == 48
        assert header.num_optional_blocks == 1

    def test_finalize_short_padding_uses_extra_block(self, header):
        """Test padding below 6 characters is extended by a block."""
        padded = header.with_optional_blocks([OptionalBlock("KC", "00604B12")]).finalize()

        assert padded.header_length == 48
        assert padded.get_optional_block("PB").data == "0" * 16

    def test_finalize_without_optional_blocks(self, header):
        """Test finalize() leaves a plain header untouched."""
        assert header.finalize() is header

    def test_finalize_aligned_header(self, header):
        """Test finalize() leaves an aligned header untouched."""
        aligned = header.with_optional_blocks([OptionalBlock("KC", "000000000000")])

        assert aligned.header_length == 32
        assert aligned.finalize() is aligned

    def test_finalize_legacy_block_size(self):
        """Test version B headers pad to 8 characters."""
        header = KeyBlockHeader(
            "P0", "T", "E", optional_blocks=[OptionalBlock("KC", "00")], version="B"
        )

        assert header.finalize().header_length % 8 == 0

    def test_finalize_replaces_padding_block(self, header):
        """Test a misaligned trailing PB block is resized, not duplicated."""
        padded = header.with_optional_blocks(
            [OptionalBlock("KC", "00604B"), OptionalBlock("PB", "0")]
        )

        finalized = padded.finalize()

        assert finalized.header_length == 32
        assert finalized.num_optional_blocks == 2
        assert finalized.to_string() == "D0000P0AE00E0200KC0A00604BPB0600"

    def test_finalize_drops_lone_padding_block(self, header):
        """Test a header holding only a misaligned PB block loses it."""
        padded = header.with_optional_blocks([OptionalBlock("PB", "0")])

        assert padded.finalize() == header

    def test_finalize_is_idempotent(self, header):
        """Test finalizing twice gives the same header."""
        finalized = header.with_optional_blocks([OptionalBlock("KV", "0000")]).finalize()

        assert finalized.finalize() == finalized

    def test_parse_round_trip_extended_block(self, header):
        """Test a header with an extended length block parses back equal."""
        extended = header.with_optional_blocks([OptionalBlock("CT", "A" * 300)]).finalize()

        parsed = KeyBlockHeader.from_string(extended.to_string())

        assert parsed == extended
        assert parsed.get_optional_block("CT").extended is True
        assert parsed.header_length == 336
