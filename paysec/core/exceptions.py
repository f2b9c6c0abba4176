"""
paysec - Exceptions

Exception hierarchy shared by the key block and PIN block codecs.
"""

from typing import Any, Dict, Optional


class PaySecError(Exception):
    """Base exception for all paysec errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "PAYSEC_ERROR"
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (Code: {self.error_code}, Context: {self.context})"
        return f"{self.message} (Code: {self.error_code})"


class ConfigurationError(PaySecError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(
            message,
            error_code="CONFIG_ERROR",
            context={"config_key": config_key} if config_key else {},
        )


class InvalidKeyLength(PaySecError):
    """Key material has a length the AES primitives cannot use."""

    def __init__(self, message: str, key_length: Optional[int] = None):
        super().__init__(
            message,
            error_code="INVALID_KEY_LENGTH",
            context={"key_length": key_length} if key_length is not None else {},
        )


class RandomSourceError(PaySecError):
    """The injected random source did not deliver the requested bytes."""

    def __init__(self, requested: int, received: int):
        super().__init__(
            f"Random source returned {received} bytes, {requested} required",
            error_code="RANDOM_SOURCE_ERROR",
            context={"requested": requested, "received": received},
        )


# Key block errors


class KeyBlockError(PaySecError):
    """Base exception for TR-31 key block errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code or "KEY_BLOCK_ERROR", context)


class InvalidHeader(KeyBlockError):
    """A key block header field has an invalid value."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(
            message,
            error_code="INVALID_HEADER",
            context={"field": field_name} if field_name else {},
        )


class MalformedHeader(InvalidHeader):
    """A serialized key block header could not be parsed."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message, field_name)
        self.error_code = "MALFORMED_HEADER"


class MalformedOptionalBlock(MalformedHeader):
    """An optional header block is truncated, unknown or duplicated."""

    def __init__(self, message: str, block_id: Optional[str] = None):
        super().__init__(message)
        self.error_code = "MALFORMED_OPTIONAL_BLOCK"
        if block_id:
            self.context = {"block_id": block_id}


class MalformedKeyBlock(KeyBlockError):
    """The encrypted body of a key block is not valid hex."""

    def __init__(self, message: str):
        super().__init__(message, error_code="MALFORMED_KEY_BLOCK")


class LengthMismatch(KeyBlockError):
    """Declared key block length disagrees with the serialized length."""

    def __init__(self, message: str, declared: Optional[int] = None, actual: Optional[int] = None):
        context = {}
        if declared is not None:
            context["declared"] = declared
        if actual is not None:
            context["actual"] = actual
        super().__init__(message, error_code="LENGTH_MISMATCH", context=context)


class LengthOverflow(KeyBlockError):
    """The key block would not fit the 4-digit length field."""

    def __init__(self, length: int):
        super().__init__(
            f"Key block length {length} exceeds 9999",
            error_code="LENGTH_OVERFLOW",
            context={"length": length},
        )


class AuthenticationFailed(KeyBlockError):
    """Key block MAC verification failed."""

    MESSAGE = "Key block authentication failed"

    def __init__(self):
        super().__init__(self.MESSAGE, error_code="AUTHENTICATION_FAILED")


class KeyLengthMismatch(KeyBlockError):
    """Decrypted key length field disagrees with the recovered payload."""

    def __init__(self, message: str):
        super().__init__(message, error_code="KEY_LENGTH_MISMATCH")


# PIN block errors


class PinBlockError(PaySecError):
    """Base exception for ISO 9564 PIN block errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message, error_code or "PIN_BLOCK_ERROR")


class InvalidPin(PinBlockError):
    """PIN contains non-numeric characters."""

    def __init__(self, message: str = "PIN must be numeric"):
        super().__init__(message, error_code="INVALID_PIN")


class InvalidPinLength(InvalidPin):
    """PIN length is outside 4-12 digits."""

    def __init__(self, length: int):
        super().__init__(f"PIN must be 4-12 digits, got {length}")
        self.error_code = "INVALID_PIN_LENGTH"
        self.context = {"length": length}


class InvalidPan(PinBlockError):
    """PAN contains non-numeric characters."""

    def __init__(self, message: str = "PAN must be numeric"):
        super().__init__(message, error_code="INVALID_PAN")


class InvalidPanLength(InvalidPan):
    """PAN length is outside the bounds of the PIN block format."""

    def __init__(self, message: str, length: int):
        super().__init__(message)
        self.error_code = "INVALID_PAN_LENGTH"
        self.context = {"length": length}


class InvalidPinField(PinBlockError):
    """A decoded PIN field is inconsistent with its format."""

    def __init__(self, message: str):
        super().__init__(message, error_code="INVALID_PIN_FIELD")
