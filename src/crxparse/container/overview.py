"""Container overview helpers (header, payload layout)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from crxparse.container.format import ContainerHeader, read_header_from_stream
from crxparse.container.payload import ZIP_SIGNATURE_PREFIX


@dataclass(frozen=True)
class ContainerOverview:
    header: ContainerHeader
    file_size: int
    looks_like_zip: bool

    @property
    def zip_offset(self) -> int:
        return self.header.zip_offset

    @property
    def payload_size(self) -> int:
        return self.file_size - self.zip_offset


def load_overview(container_path: os.PathLike[str] | str) -> ContainerOverview:
    """Inspect a container file, reading the header and the payload signature only."""

    container = Path(container_path)
    if not container.exists():
        raise FileNotFoundError(container)

    file_size = container.stat().st_size
    with container.open("rb") as f:
        header, _header_bytes = read_header_from_stream(f)
        payload_head = f.read(len(ZIP_SIGNATURE_PREFIX))

    return ContainerOverview(
        header=header,
        file_size=file_size,
        looks_like_zip=payload_head == ZIP_SIGNATURE_PREFIX,
    )


__all__ = [
    "ContainerOverview",
    "load_overview",
]
