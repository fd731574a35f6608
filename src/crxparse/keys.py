"""Extension ID and public key helpers.

Nothing here authenticates a container. Keys are only identified and
described.
"""
from __future__ import annotations

import hashlib

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from crxparse.container.format import ContainerHeader

CRX_ID_LEN = 16
UNRECOGNIZED_KEY = "unrecognized"


def extension_id_from_crx_id(crx_id: bytes) -> str:
    """Map a 16-byte CRX id to the 32-character ``a``-``p`` extension ID."""

    if len(crx_id) != CRX_ID_LEN:
        raise ValueError(f"crx_id must be {CRX_ID_LEN} bytes, got {len(crx_id)}")
    return "".join(chr(ord("a") + int(digit, 16)) for digit in crx_id.hex())


def extension_id(public_key: bytes) -> str:
    """Derive the extension ID from a DER public key."""

    return extension_id_from_crx_id(hashlib.sha256(public_key).digest()[:CRX_ID_LEN])


def container_extension_id(header: ContainerHeader) -> str | None:
    if header.crx_id is not None and len(header.crx_id) == CRX_ID_LEN:
        return extension_id_from_crx_id(header.crx_id)
    if header.public_keys:
        return extension_id(header.public_keys[0])
    return None


def _load_public_key(public_key: bytes):
    try:
        return serialization.load_der_public_key(public_key)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise ValueError("Public key is not a DER SubjectPublicKeyInfo") from exc


def describe_public_key(public_key: bytes) -> str:
    """Short description of a DER public key, e.g. ``RSA-2048``."""

    try:
        key = _load_public_key(public_key)
    except ValueError:
        return UNRECOGNIZED_KEY

    if isinstance(key, rsa.RSAPublicKey):
        return f"RSA-{key.key_size}"
    if isinstance(key, ec.EllipticCurvePublicKey):
        return f"EC-{key.curve.name}"
    if isinstance(key, ed25519.Ed25519PublicKey):
        return "Ed25519"
    return type(key).__name__


def public_key_pem(public_key: bytes) -> str:
    key = _load_public_key(public_key)
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


__all__ = [
    "CRX_ID_LEN",
    "UNRECOGNIZED_KEY",
    "container_extension_id",
    "describe_public_key",
    "extension_id",
    "extension_id_from_crx_id",
    "public_key_pem",
]
