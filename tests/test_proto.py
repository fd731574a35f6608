import pytest

from crxparse.container.proto import (
    FIELD_SIGNED_HEADER_DATA,
    KeyAlgorithm,
    KeyProof,
    decode_header_body,
    decode_signed_data,
    encode_field,
    encode_header_body,
    encode_varint,
)
from crxparse.errors import LengthMismatch, TruncatedRecord


@pytest.mark.parametrize(
    ("value", "encoded"),
    [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
        ((FIELD_SIGNED_HEADER_DATA << 3) | 2, b"\x82\xf1\x04"),
    ],
)
def test_encode_varint(value: int, encoded: bytes) -> None:
    assert encode_varint(value) == encoded


def test_encode_varint_rejects_negative() -> None:
    with pytest.raises(ValueError):
        encode_varint(-1)


def test_decode_reports_consumed_bytes() -> None:
    body = encode_header_body(
        [KeyProof(algorithm=KeyAlgorithm.SHA256_WITH_RSA, public_key=b"k" * 300, signature=b"s" * 256)],
        signed_header_data=encode_field(1, b"\x01" * 16),
    )

    decoded = decode_header_body(body)

    assert decoded.consumed == len(body)
    assert decoded.proofs[0].public_key == b"k" * 300
    assert decoded.proofs[0].signature == b"s" * 256
    assert decoded.crx_id == b"\x01" * 16


def test_decode_empty_body() -> None:
    decoded = decode_header_body(b"")

    assert decoded.proofs == ()
    assert decoded.signed_header_data is None
    assert decoded.consumed == 0


def test_proof_without_signature_keeps_pairing() -> None:
    body = encode_field(KeyAlgorithm.SHA256_WITH_ECDSA, encode_field(1, b"lonely-key"))

    decoded = decode_header_body(body)

    assert decoded.proofs == (
        KeyProof(algorithm=KeyAlgorithm.SHA256_WITH_ECDSA, public_key=b"lonely-key", signature=b""),
    )


def test_decode_works_on_a_view_slice() -> None:
    body = encode_field(2, encode_field(1, b"key") + encode_field(2, b"sig"))
    framed = memoryview(b"\xff\xff" + body + b"\xff")

    decoded = decode_header_body(framed[2 : 2 + len(body)])

    assert decoded.proofs[0].public_key == b"key"


def test_top_level_overrun_is_a_length_mismatch() -> None:
    body = encode_field(2, encode_field(1, b"key"))

    with pytest.raises(TruncatedRecord) as excinfo:
        decode_header_body(body[:-1])

    assert isinstance(excinfo.value, LengthMismatch)


def test_signed_data_without_crx_id() -> None:
    assert decode_signed_data(encode_field(2, b"other")) is None
