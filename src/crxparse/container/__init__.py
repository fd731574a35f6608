"""Public container API re-exported for external users.

The objects listed in ``__all__`` form the supported public surface for
Python consumers. Everything else in :mod:`crxparse.container` is considered
internal and may change without notice.
"""
from __future__ import annotations

from crxparse.container.api import extract_zip, inspect_file
from crxparse.container.format import (
    MAGIC,
    ContainerHeader,
    FormatVersion,
    build_crx2,
    build_crx3,
    parse_container,
    read_header_from_stream,
)
from crxparse.container.overview import ContainerOverview, load_overview
from crxparse.container.payload import ZipPayload, extract_payload, extract_payload_from_offset
from crxparse.container.proto import HeaderBody, KeyAlgorithm, KeyProof, decode_header_body

__all__ = [
    "ContainerHeader",
    "ContainerOverview",
    "FormatVersion",
    "HeaderBody",
    "KeyAlgorithm",
    "KeyProof",
    "MAGIC",
    "ZipPayload",
    "build_crx2",
    "build_crx3",
    "decode_header_body",
    "extract_payload",
    "extract_payload_from_offset",
    "extract_zip",
    "inspect_file",
    "load_overview",
    "parse_container",
    "read_header_from_stream",
]
