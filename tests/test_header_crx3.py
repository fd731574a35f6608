import struct

import pytest

from crxparse.container.format import (
    CRX3_PREAMBLE_LEN,
    FormatVersion,
    build_crx3,
    parse_container,
)
from crxparse.container.proto import (
    KeyAlgorithm,
    KeyProof,
    encode_field,
    encode_signed_data,
    encode_varint,
)
from crxparse.errors import LengthMismatch, MalformedRecord, Truncated, TruncatedRecord

ZIP_HEAD = b"PK\x03\x04" + b"\x00" * 26
CRX_ID = bytes(range(16))


def _rsa(key: bytes, sig: bytes) -> KeyProof:
    return KeyProof(algorithm=KeyAlgorithm.SHA256_WITH_RSA, public_key=key, signature=sig)


def _ecdsa(key: bytes, sig: bytes) -> KeyProof:
    return KeyProof(algorithm=KeyAlgorithm.SHA256_WITH_ECDSA, public_key=key, signature=sig)


def _with_header_length(data: bytes, header_length: int) -> bytes:
    patched = bytearray(data)
    patched[8:12] = struct.pack("<I", header_length)
    return bytes(patched)


def _crx3_from_body(body: bytes, payload: bytes = ZIP_HEAD) -> bytes:
    return b"Cr24" + struct.pack("<II", 3, len(body)) + body + payload


def test_build_and_parse_crx3(zip_bytes: bytes) -> None:
    proofs = [_rsa(b"rsa-key", b"rsa-sig"), _ecdsa(b"ec-key", b"ec-sig")]
    signed = encode_signed_data(CRX_ID)
    data = build_crx3(proofs, zip_bytes, signed_header_data=signed)

    header = parse_container(data)

    assert header.format_version == FormatVersion.CRX3
    assert header.public_keys == (b"rsa-key", b"ec-key")
    assert header.signatures == (b"rsa-sig", b"ec-sig")
    assert header.key_algorithms == (KeyAlgorithm.SHA256_WITH_RSA, KeyAlgorithm.SHA256_WITH_ECDSA)
    assert header.proofs == tuple(proofs)
    assert header.signed_header_data == signed
    assert header.crx_id == CRX_ID
    assert header.zip_offset == CRX3_PREAMBLE_LEN + header.header_length
    assert data[header.zip_offset :] == zip_bytes


def test_proof_order_follows_stream_across_algorithms() -> None:
    proofs = [
        _ecdsa(b"k1", b"s1"),
        _rsa(b"k2", b"s2"),
        _ecdsa(b"k3", b"s3"),
        _rsa(b"k4", b"s4"),
    ]

    header = parse_container(build_crx3(proofs, ZIP_HEAD))

    assert header.public_keys == (b"k1", b"k2", b"k3", b"k4")
    assert header.signatures == (b"s1", b"s2", b"s3", b"s4")


def test_unsigned_crx3_is_valid() -> None:
    header = parse_container(build_crx3([], ZIP_HEAD))

    assert header.public_keys == ()
    assert header.signatures == ()
    assert header.header_length == 0
    assert header.zip_offset == CRX3_PREAMBLE_LEN
    assert header.crx_id is None


def test_unknown_fields_are_skipped() -> None:
    proof = b"".join(
        [
            encode_field(1, b"key"),
            encode_varint((7 << 3) | 0) + encode_varint(300),
            encode_varint((8 << 3) | 1) + b"\x00" * 8,
            encode_varint((9 << 3) | 5) + b"\x00" * 4,
            encode_field(2, b"sig"),
            encode_field(3, b"extra"),
        ]
    )
    body = encode_field(4, b"verified contents") + encode_field(2, proof) + encode_field(11, b"")

    header = parse_container(_crx3_from_body(body))

    assert header.public_keys == (b"key",)
    assert header.signatures == (b"sig",)
    assert header.header_length == len(body)


@pytest.mark.parametrize("wire_type", [0, 1, 5])
def test_top_level_records_must_be_length_delimited(wire_type: int) -> None:
    body = encode_field(2, encode_field(1, b"key")) + encode_varint((7 << 3) | wire_type) + b"\x00" * 8

    with pytest.raises(LengthMismatch):
        parse_container(_crx3_from_body(body))


def test_declared_length_longer_than_records() -> None:
    """Records total 8 bytes but the header claims 10, reaching into the ZIP."""
    records = encode_field(2, b"\x0a\x01k\x12\x01s")
    assert len(records) == 8
    data = b"Cr24" + struct.pack("<II", 3, 10) + records + ZIP_HEAD

    with pytest.raises(LengthMismatch):
        parse_container(data)


@pytest.mark.parametrize("delta", [-1, 1])
def test_header_length_off_by_one(delta: int) -> None:
    proofs = [_rsa(b"key-1", b"sig-1"), _ecdsa(b"key-2", b"sig-2")]
    data = build_crx3(proofs, ZIP_HEAD, signed_header_data=encode_signed_data(CRX_ID))
    header_length = parse_container(data).header_length

    with pytest.raises(LengthMismatch):
        parse_container(_with_header_length(data, header_length + delta))


def test_header_length_past_end_is_truncated() -> None:
    data = build_crx3([_rsa(b"key", b"sig")])

    with pytest.raises(Truncated):
        parse_container(_with_header_length(data, len(data)))


def test_missing_header_length_field_is_truncated() -> None:
    with pytest.raises(Truncated):
        parse_container(b"Cr24" + struct.pack("<I", 3) + b"\x00\x00")


def test_record_overrunning_proof_is_truncated_record() -> None:
    proof = encode_varint((1 << 3) | 2) + encode_varint(50) + b"abc"
    body = encode_field(2, proof)

    with pytest.raises(TruncatedRecord):
        parse_container(_crx3_from_body(body))


def test_proof_ending_inside_tag_is_truncated_record() -> None:
    body = encode_field(2, encode_field(1, b"key") + b"\x92")

    with pytest.raises(TruncatedRecord):
        parse_container(_crx3_from_body(body))


@pytest.mark.parametrize(
    "body",
    [
        pytest.param(encode_varint((5 << 3) | 3), id="group-start"),
        pytest.param(encode_varint((5 << 3) | 7), id="reserved-wire-type"),
        pytest.param(b"\x02\x00", id="field-zero"),
        pytest.param(encode_field(2, b"\x08\x01"), id="public-key-as-varint"),
        pytest.param(b"\x22" + b"\xff" * 10 + b"\x01", id="overlong-varint"),
    ],
)
def test_malformed_records(body: bytes) -> None:
    with pytest.raises(MalformedRecord):
        parse_container(_crx3_from_body(body))


def test_undecodable_signed_data_is_kept_raw() -> None:
    broken = b"\x0a\x20short"
    header = parse_container(build_crx3([_rsa(b"key", b"sig")], ZIP_HEAD, signed_header_data=broken))

    assert header.signed_header_data == broken
    assert header.crx_id is None


def test_last_signed_header_data_wins() -> None:
    body = encode_field(10000, encode_signed_data(b"a" * 16)) + encode_field(
        10000, encode_signed_data(CRX_ID)
    )

    header = parse_container(_crx3_from_body(body))

    assert header.crx_id == CRX_ID


def test_build_crx3_requires_algorithm() -> None:
    with pytest.raises(ValueError):
        build_crx3([KeyProof(algorithm=None, public_key=b"k", signature=b"s")])
