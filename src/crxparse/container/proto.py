"""CRX3 header body decoding (length-delimited protobuf records).

The CRX3 header section is a serialized ``CrxFileHeader`` message::

    message CrxFileHeader {
      repeated AsymmetricKeyProof sha256_with_rsa = 2;
      repeated AsymmetricKeyProof sha256_with_ecdsa = 3;
      optional bytes signed_header_data = 10000;
    }

    message AsymmetricKeyProof {
      optional bytes public_key = 1;
      optional bytes signature = 2;
    }

    message SignedData {
      optional bytes crx_id = 1;
    }

Only the wire format is implemented here; nothing is generated from ``.proto``
files and no signature is checked.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

from crxparse.errors import DecodeError, LengthMismatch, MalformedRecord, TruncatedRecord

logger = logging.getLogger(__name__)

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LEN = 2
WIRE_FIXED32 = 5

MAX_VARINT_LEN = 10

FIELD_SIGNED_HEADER_DATA = 10000
FIELD_PROOF_PUBLIC_KEY = 1
FIELD_PROOF_SIGNATURE = 2
FIELD_SIGNED_DATA_CRX_ID = 1


class KeyAlgorithm(IntEnum):
    """Signature scheme of a CRX3 key proof, valued by its header field number."""

    SHA256_WITH_RSA = 2
    SHA256_WITH_ECDSA = 3


@dataclass(frozen=True)
class KeyProof:
    algorithm: KeyAlgorithm | None
    public_key: bytes
    signature: bytes


@dataclass(frozen=True)
class HeaderBody:
    proofs: tuple[KeyProof, ...]
    signed_header_data: bytes | None
    crx_id: bytes | None
    consumed: int


class _Cursor:
    """Read position over a bounded slice.

    ``short_error`` is raised when the slice ends inside a tag or length
    prefix. At the top level that means the declared header length does not
    line up with the records; inside a proof it means the proof is cut short.
    """

    def __init__(self, data: memoryview, short_error: type[DecodeError]) -> None:
        self._data = data
        self._short_error = short_error
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.pos

    def at_end(self) -> bool:
        return self.pos >= len(self._data)

    def read_varint(self) -> int:
        result = 0
        for index in range(MAX_VARINT_LEN):
            if self.pos >= len(self._data):
                raise self._short_error(f"Record stream ends inside a varint at offset {self.pos}")
            byte = self._data[self.pos]
            self.pos += 1
            result |= (byte & 0x7F) << (7 * index)
            if not byte & 0x80:
                return result
        raise MalformedRecord(f"Varint longer than {MAX_VARINT_LEN} bytes at offset {self.pos}")

    def read_tag(self) -> tuple[int, int]:
        key = self.read_varint()
        field_number = key >> 3
        wire_type = key & 0x07
        if field_number == 0:
            raise MalformedRecord(f"Invalid field number 0 at offset {self.pos}")
        return field_number, wire_type

    def read_length_delimited(self) -> memoryview:
        length = self.read_varint()
        if length > self.remaining:
            raise TruncatedRecord(
                f"Record declares {length} bytes but only {self.remaining} remain"
            )
        chunk = self._data[self.pos : self.pos + length]
        self.pos += length
        return chunk

    def skip(self, wire_type: int) -> None:
        if wire_type == WIRE_VARINT:
            self.read_varint()
        elif wire_type == WIRE_FIXED64:
            self._skip_fixed(8)
        elif wire_type == WIRE_LEN:
            self.read_length_delimited()
        elif wire_type == WIRE_FIXED32:
            self._skip_fixed(4)
        else:
            raise MalformedRecord(f"Unsupported wire type {wire_type}")

    def _skip_fixed(self, size: int) -> None:
        if size > self.remaining:
            raise TruncatedRecord(f"Fixed-width record needs {size} bytes but only {self.remaining} remain")
        self.pos += size


def _expect_length_delimited(field_number: int, wire_type: int) -> None:
    if wire_type != WIRE_LEN:
        raise MalformedRecord(f"Field {field_number} must be length-delimited, got wire type {wire_type}")


def _decode_proof(algorithm: KeyAlgorithm, data: memoryview) -> KeyProof:
    cursor = _Cursor(data, TruncatedRecord)
    public_key = b""
    signature = b""
    while not cursor.at_end():
        field_number, wire_type = cursor.read_tag()
        if field_number == FIELD_PROOF_PUBLIC_KEY:
            _expect_length_delimited(field_number, wire_type)
            public_key = cursor.read_length_delimited().tobytes()
        elif field_number == FIELD_PROOF_SIGNATURE:
            _expect_length_delimited(field_number, wire_type)
            signature = cursor.read_length_delimited().tobytes()
        else:
            cursor.skip(wire_type)
    return KeyProof(algorithm=algorithm, public_key=public_key, signature=signature)


def _expect_top_level_record(field_number: int, wire_type: int) -> None:
    # Every CrxFileHeader field is length-delimited.
    if wire_type in (WIRE_VARINT, WIRE_FIXED64, WIRE_FIXED32):
        raise LengthMismatch(
            f"Field {field_number} with wire type {wire_type} where a length-delimited header record is required"
        )
    _expect_length_delimited(field_number, wire_type)


def decode_signed_data(data: bytes) -> bytes | None:
    """Return the ``crx_id`` carried by a ``SignedData`` message, if any."""

    cursor = _Cursor(memoryview(data).cast("B"), TruncatedRecord)
    crx_id = None
    while not cursor.at_end():
        field_number, wire_type = cursor.read_tag()
        if field_number == FIELD_SIGNED_DATA_CRX_ID:
            _expect_length_delimited(field_number, wire_type)
            crx_id = cursor.read_length_delimited().tobytes()
        else:
            cursor.skip(wire_type)
    return crx_id


def decode_header_body(data) -> HeaderBody:
    """Decode a CRX3 header section, consuming exactly ``len(data)`` bytes."""

    view = memoryview(data).cast("B")
    cursor = _Cursor(view, LengthMismatch)
    proofs: list[KeyProof] = []
    signed_header_data: bytes | None = None

    while not cursor.at_end():
        field_number, wire_type = cursor.read_tag()
        _expect_top_level_record(field_number, wire_type)
        if field_number in (KeyAlgorithm.SHA256_WITH_RSA, KeyAlgorithm.SHA256_WITH_ECDSA):
            proofs.append(_decode_proof(KeyAlgorithm(field_number), cursor.read_length_delimited()))
        elif field_number == FIELD_SIGNED_HEADER_DATA:
            signed_header_data = cursor.read_length_delimited().tobytes()
        else:
            logger.debug("Skipping unknown header field %d", field_number)
            cursor.read_length_delimited()

    if cursor.pos != len(view):
        raise LengthMismatch(f"Header body consumed {cursor.pos} of {len(view)} declared bytes")

    crx_id = None
    if signed_header_data is not None:
        try:
            crx_id = decode_signed_data(signed_header_data)
        except DecodeError as exc:
            logger.warning("Signed header data is not decodable, keeping raw bytes: %s", exc)

    return HeaderBody(
        proofs=tuple(proofs),
        signed_header_data=signed_header_data,
        crx_id=crx_id,
        consumed=cursor.pos,
    )


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("Varint value must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_field(field_number: int, payload: bytes) -> bytes:
    """Encode one length-delimited field."""

    return b"".join(
        [
            encode_varint((field_number << 3) | WIRE_LEN),
            encode_varint(len(payload)),
            payload,
        ]
    )


def encode_signed_data(crx_id: bytes) -> bytes:
    return encode_field(FIELD_SIGNED_DATA_CRX_ID, crx_id)


def encode_header_body(proofs: Iterable[KeyProof], signed_header_data: bytes | None = None) -> bytes:
    """Serialize proofs (in the given order) and optional signed header data."""

    parts = []
    for proof in proofs:
        if proof.algorithm is None:
            raise ValueError("CRX3 key proofs need an algorithm")
        proof_bytes = encode_field(FIELD_PROOF_PUBLIC_KEY, proof.public_key) + encode_field(
            FIELD_PROOF_SIGNATURE, proof.signature
        )
        parts.append(encode_field(int(proof.algorithm), proof_bytes))
    if signed_header_data is not None:
        parts.append(encode_field(FIELD_SIGNED_HEADER_DATA, signed_header_data))
    return b"".join(parts)


__all__ = [
    "FIELD_SIGNED_HEADER_DATA",
    "HeaderBody",
    "KeyAlgorithm",
    "KeyProof",
    "decode_header_body",
    "decode_signed_data",
    "encode_field",
    "encode_header_body",
    "encode_signed_data",
    "encode_varint",
]
