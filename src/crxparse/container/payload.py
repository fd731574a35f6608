"""ZIP payload extraction helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from crxparse.container.format import ContainerHeader
from crxparse.errors import EmptyPayload, NotZip, OffsetOutOfRange

logger = logging.getLogger(__name__)

ZIP_SIGNATURE_PREFIX = b"PK"


@dataclass(frozen=True)
class ZipPayload:
    """ZIP bytes following the CRX header.

    ``data`` is a view into the caller's buffer, not a copy. Call
    :meth:`tobytes` to keep the payload after the buffer is gone or mutated.
    """

    data: memoryview
    offset: int
    looks_like_zip: bool

    def __len__(self) -> int:
        return len(self.data)

    def tobytes(self) -> bytes:
        return self.data.tobytes()


def _slice_payload(data, zip_offset: int, *, require_zip: bool) -> tuple[memoryview, bool]:
    view = memoryview(data).cast("B")
    if zip_offset < 0 or zip_offset > len(view):
        raise OffsetOutOfRange(f"ZIP offset {zip_offset} outside buffer of {len(view)} bytes")

    payload = view[zip_offset:]
    if len(payload) < len(ZIP_SIGNATURE_PREFIX):
        raise EmptyPayload(f"Only {len(payload)} byte(s) follow ZIP offset {zip_offset}")

    looks_like_zip = payload[: len(ZIP_SIGNATURE_PREFIX)].tobytes() == ZIP_SIGNATURE_PREFIX
    if not looks_like_zip:
        if require_zip:
            raise NotZip(f"Payload at offset {zip_offset} does not start with a ZIP signature")
        logger.warning("Payload at offset %d does not start with a ZIP signature", zip_offset)
    return payload, looks_like_zip


def extract_payload(data, header: ContainerHeader, *, require_zip: bool = True) -> ZipPayload:
    """Return a zero-copy view of the ZIP payload described by ``header``."""

    payload, looks_like_zip = _slice_payload(data, header.zip_offset, require_zip=require_zip)
    return ZipPayload(data=payload, offset=header.zip_offset, looks_like_zip=looks_like_zip)


def extract_payload_from_offset(data, zip_offset: int, *, require_zip: bool = True) -> bytes:
    """Copy out the ZIP payload at a previously parsed offset without re-parsing."""

    payload, _looks_like_zip = _slice_payload(data, zip_offset, require_zip=require_zip)
    return payload.tobytes()


__all__ = [
    "ZIP_SIGNATURE_PREFIX",
    "ZipPayload",
    "extract_payload",
    "extract_payload_from_offset",
]
