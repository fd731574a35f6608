"""Container header format helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from struct import Struct
from typing import Iterable

from crxparse.container.proto import KeyAlgorithm, KeyProof, decode_header_body, encode_header_body
from crxparse.errors import (
    BadMagic,
    EmptyKeyMaterial,
    LengthMismatch,
    ParseError,
    Truncated,
    UnsupportedVersion,
)

logger = logging.getLogger(__name__)

MAGIC = b"Cr24"
MAGIC_LEN = 4
VERSION_LEN = 4
CRX2_PREAMBLE_LEN = 16
CRX3_PREAMBLE_LEN = 12

_PREFIX_STRUCT = Struct("<4sI")  # magic, version
_CRX2_LENGTHS_STRUCT = Struct("<II")  # key_length, sig_length
_CRX3_LENGTH_STRUCT = Struct("<I")  # header_length


class FormatVersion(IntEnum):
    CRX2 = 2
    CRX3 = 3


@dataclass(frozen=True)
class ContainerHeader:
    format_version: FormatVersion
    public_keys: tuple[bytes, ...]
    signatures: tuple[bytes, ...]
    key_algorithms: tuple[KeyAlgorithm | None, ...]
    zip_offset: int
    header_length: int | None = None
    signed_header_data: bytes | None = None
    crx_id: bytes | None = None

    def __post_init__(self) -> None:
        if not (len(self.public_keys) == len(self.signatures) == len(self.key_algorithms)):
            raise ParseError("Public keys, signatures and algorithms are not co-indexed")
        if self.zip_offset < 0:
            raise ParseError("Negative zip offset")

    @property
    def proofs(self) -> tuple[KeyProof, ...]:
        return tuple(
            KeyProof(algorithm=algorithm, public_key=public_key, signature=signature)
            for algorithm, public_key, signature in zip(
                self.key_algorithms, self.public_keys, self.signatures
            )
        )


def _parse_prefix(view: memoryview) -> FormatVersion:
    if len(view) < MAGIC_LEN:
        raise Truncated("Buffer too short for CRX magic")
    if view[:MAGIC_LEN].tobytes() != MAGIC:
        raise BadMagic("Invalid CRX magic")
    if len(view) < _PREFIX_STRUCT.size:
        raise Truncated("Buffer too short for CRX version")

    _magic, version = _PREFIX_STRUCT.unpack_from(view, 0)
    if version not in (FormatVersion.CRX2, FormatVersion.CRX3):
        raise UnsupportedVersion(version)
    return FormatVersion(version)


def _parse_crx2(view: memoryview) -> ContainerHeader:
    if len(view) < CRX2_PREAMBLE_LEN:
        raise Truncated("Buffer too short for CRX2 preamble")

    key_length, sig_length = _CRX2_LENGTHS_STRUCT.unpack_from(view, _PREFIX_STRUCT.size)
    key_end = CRX2_PREAMBLE_LEN + key_length
    zip_offset = key_end + sig_length
    if zip_offset > len(view):
        raise Truncated(
            f"CRX2 key/signature lengths ({key_length}+{sig_length}) exceed buffer of {len(view)} bytes"
        )
    if not key_length or not sig_length:
        raise EmptyKeyMaterial(
            f"CRX2 public key ({key_length} B) and signature ({sig_length} B) must not be empty"
        )

    return ContainerHeader(
        format_version=FormatVersion.CRX2,
        public_keys=(view[CRX2_PREAMBLE_LEN:key_end].tobytes(),),
        signatures=(view[key_end:zip_offset].tobytes(),),
        key_algorithms=(None,),
        zip_offset=zip_offset,
    )


def _parse_crx3(view: memoryview) -> ContainerHeader:
    if len(view) < CRX3_PREAMBLE_LEN:
        raise Truncated("Buffer too short for CRX3 preamble")

    (header_length,) = _CRX3_LENGTH_STRUCT.unpack_from(view, _PREFIX_STRUCT.size)
    zip_offset = CRX3_PREAMBLE_LEN + header_length
    if zip_offset > len(view):
        raise Truncated(f"CRX3 header length {header_length} exceeds buffer of {len(view)} bytes")

    body = decode_header_body(view[CRX3_PREAMBLE_LEN:zip_offset])
    if body.consumed != header_length:
        raise LengthMismatch(f"Header body consumed {body.consumed} of {header_length} declared bytes")

    return ContainerHeader(
        format_version=FormatVersion.CRX3,
        public_keys=tuple(proof.public_key for proof in body.proofs),
        signatures=tuple(proof.signature for proof in body.proofs),
        key_algorithms=tuple(proof.algorithm for proof in body.proofs),
        zip_offset=zip_offset,
        header_length=header_length,
        signed_header_data=body.signed_header_data,
        crx_id=body.crx_id,
    )


def parse_container(data) -> ContainerHeader:
    """Parse and validate a CRX header from a bytes-like buffer."""

    view = memoryview(data).cast("B")
    version = _parse_prefix(view)
    if version == FormatVersion.CRX2:
        header = _parse_crx2(view)
    else:
        header = _parse_crx3(view)

    logger.debug(
        "Parsed CRX%d header: %d key(s), zip offset %d of %d bytes",
        header.format_version,
        len(header.public_keys),
        header.zip_offset,
        len(view),
    )
    return header


def _read_exact(file_obj, size: int, what: str) -> bytes:
    data = file_obj.read(size)
    if len(data) != size:
        raise Truncated(f"Container ends inside the {what}")
    return data


def read_header_from_stream(file_obj) -> tuple[ContainerHeader, bytes]:
    """Read and parse a CRX header from a binary stream, leaving the payload unread."""

    prefix = file_obj.read(_PREFIX_STRUCT.size)
    version = _parse_prefix(memoryview(prefix))

    if version == FormatVersion.CRX2:
        lengths = _read_exact(file_obj, _CRX2_LENGTHS_STRUCT.size, "CRX2 preamble")
        key_length, sig_length = _CRX2_LENGTHS_STRUCT.unpack(lengths)
        rest_len = key_length + sig_length
    else:
        lengths = _read_exact(file_obj, _CRX3_LENGTH_STRUCT.size, "CRX3 preamble")
        (rest_len,) = _CRX3_LENGTH_STRUCT.unpack(lengths)

    rest = _read_exact(file_obj, rest_len, "header section")
    header_bytes = b"".join([prefix, lengths, rest])
    return parse_container(header_bytes), header_bytes


def build_crx2(public_key: bytes, signature: bytes, payload: bytes = b"") -> bytes:
    """Build CRX2 container bytes."""

    return b"".join(
        [
            _PREFIX_STRUCT.pack(MAGIC, FormatVersion.CRX2),
            _CRX2_LENGTHS_STRUCT.pack(len(public_key), len(signature)),
            public_key,
            signature,
            payload,
        ]
    )


def build_crx3(
    proofs: Iterable[KeyProof],
    payload: bytes = b"",
    *,
    signed_header_data: bytes | None = None,
) -> bytes:
    """Build CRX3 container bytes with proofs in the given order."""

    body = encode_header_body(proofs, signed_header_data)
    return b"".join(
        [
            _PREFIX_STRUCT.pack(MAGIC, FormatVersion.CRX3),
            _CRX3_LENGTH_STRUCT.pack(len(body)),
            body,
            payload,
        ]
    )


__all__ = [
    "CRX2_PREAMBLE_LEN",
    "CRX3_PREAMBLE_LEN",
    "ContainerHeader",
    "FormatVersion",
    "MAGIC",
    "build_crx2",
    "build_crx3",
    "parse_container",
    "read_header_from_stream",
]
