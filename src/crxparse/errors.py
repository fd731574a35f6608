"""Custom exceptions for crxparse."""


class CrxError(Exception):
    """Base exception for crxparse."""


class ParseError(CrxError):
    """Container header does not match the expected format."""


class BadMagic(ParseError):
    """Buffer does not start with the ``Cr24`` magic."""


class UnsupportedVersion(ParseError):
    """Container version is neither 2 nor 3."""

    def __init__(self, version: int) -> None:
        super().__init__(f"Unsupported CRX version: {version}")
        self.version = version


class Truncated(ParseError):
    """A declared length reads past the end of the buffer."""


class EmptyKeyMaterial(ParseError):
    """A CRX2 container declares an empty public key or signature."""


class DecodeError(ParseError):
    """CRX3 header body could not be decoded."""


class LengthMismatch(DecodeError):
    """Header body records do not add up to the declared header length."""


class TruncatedRecord(LengthMismatch):
    """A record's declared length overruns its bounded slice."""


class MalformedRecord(DecodeError):
    """A record tag, wire type or varint is invalid."""


class ExtractError(CrxError):
    """ZIP payload could not be extracted."""


class OffsetOutOfRange(ExtractError):
    """ZIP offset lies outside the buffer."""


class EmptyPayload(ExtractError):
    """Fewer than two bytes follow the ZIP offset."""


class NotZip(ExtractError):
    """Payload does not start with the ``PK`` signature."""
