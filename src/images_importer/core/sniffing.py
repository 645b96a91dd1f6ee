"""Content sniffing: classify files by their leading bytes."""

from pathlib import Path
from typing import Optional, Tuple

from .models import MediaType

DEFAULT_SNIFF_BYTES = 262

SIGNATURES: Tuple[Tuple[bytes, MediaType], ...] = (
    (b"\x89PNG\r\n\x1a\n", MediaType.PNG),
    (b"\xff\xd8\xff", MediaType.JPEG),
    (b"GIF87a", MediaType.GIF),
    (b"GIF89a", MediaType.GIF),
)

ACCEPTED_MEDIA_TYPES = frozenset({MediaType.PNG, MediaType.JPEG, MediaType.GIF})


def sniff_bytes(header: bytes) -> Optional[MediaType]:
    """Match a byte prefix against the known image signatures."""
    for magic, media_type in SIGNATURES:
        if header.startswith(magic):
            return media_type
    return None


def sniff_file(path: Path, limit: int = DEFAULT_SNIFF_BYTES) -> Optional[MediaType]:
    """Read at most ``limit`` bytes of ``path`` and classify them."""
    with open(path, "rb") as handle:
        header = handle.read(limit)
    return sniff_bytes(header)
