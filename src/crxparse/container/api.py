"""File-level operations built on the container parser."""
from __future__ import annotations

import os
from pathlib import Path

from crxparse.container.format import parse_container
from crxparse.container.overview import ContainerOverview, load_overview
from crxparse.container.payload import extract_payload_from_offset


def inspect_file(container_path: os.PathLike[str] | str) -> ContainerOverview:
    """Parse the container header from disk without reading the payload."""
    return load_overview(container_path)


def _ensure_output(path: Path, overwrite: bool) -> None:
    if path.is_dir():
        raise IsADirectoryError(f"Output path is a directory: {path}")
    if path.exists():
        if not overwrite:
            raise FileExistsError(f"Refusing to overwrite existing file: {path}")
        path.unlink()
    path.parent.mkdir(parents=True, exist_ok=True)


def extract_zip(
    container_path: os.PathLike[str] | str,
    output_path: os.PathLike[str] | str,
    *,
    overwrite: bool = False,
    require_zip: bool = True,
) -> int:
    """Write the ZIP payload of a container to ``output_path``.

    Returns the number of bytes written. The container is fully validated
    before anything at ``output_path`` is touched.
    """

    container = Path(container_path)
    output = Path(output_path)
    data = container.read_bytes()

    header = parse_container(data)
    payload = extract_payload_from_offset(data, header.zip_offset, require_zip=require_zip)

    _ensure_output(output, overwrite)
    with output.open("xb") as f:
        f.write(payload)
    return len(payload)


__all__ = [
    "extract_zip",
    "inspect_file",
]
