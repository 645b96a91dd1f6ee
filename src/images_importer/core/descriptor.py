"""Batch descriptor parsing and candidate extraction."""

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import urlsplit

from .exceptions import MalformedInputError
from .models import Candidate, ImportConfig, ImportItem

SUCCESS_STATUS = "success"
ALLOWED_EXTENSIONS = frozenset({"png", "jpeg", "jpg", "gif"})


def parse_descriptor(raw: bytes) -> List[Any]:
    """
    Decode an uploaded batch descriptor into its list of entries.

    Args:
        raw: The uploaded bytes.

    Returns:
        The ``data.items`` list, in source order.

    Raises:
        MalformedInputError: with reason ``not_json`` if the bytes are not
            UTF-8 JSON, or ``wrong_shape`` if the status token, the ``data``
            object or the ``data.items`` array is missing.
    """
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise MalformedInputError(
            f"Descriptor is not valid JSON: {exc}", MalformedInputError.NOT_JSON
        ) from exc

    if not isinstance(document, dict) or document.get("status") != SUCCESS_STATUS:
        raise MalformedInputError("Descriptor status is not 'success'")

    data = document.get("data")
    if not isinstance(data, dict):
        raise MalformedInputError("Descriptor has no 'data' object")

    items = data.get("items")
    if not isinstance(items, list):
        raise MalformedInputError("Descriptor 'data.items' is not a list")

    return items


def _first_url(urls: Any) -> Any:
    if isinstance(urls, Mapping):
        urls = urls.values()
    elif not isinstance(urls, list):
        return None
    for url in urls:
        return url
    return None


def url_extension(url: str) -> str:
    """Lowercased extension of the last path segment of ``url``."""
    segment = urlsplit(url).path.rsplit("/", 1)[-1]
    if "." not in segment:
        return ""
    return segment.rsplit(".", 1)[-1].lower()


def extract_candidate(entry: Any) -> Optional[Candidate]:
    """
    Derive at most one image candidate from a descriptor entry.

    A direct ``image_standard`` field takes precedence over the first
    element of ``urls``. Entries without a usable URL, or whose URL does
    not end in an allowed image extension, yield None.
    """
    if not isinstance(entry, Mapping):
        return None

    url = entry.get("image_standard")
    if not url:
        url = _first_url(entry.get("urls"))

    if not isinstance(url, str) or not url:
        return None

    extension = url_extension(url)
    if extension not in ALLOWED_EXTENSIONS:
        return None

    return Candidate(
        source_url=url,
        extension=extension,
        origin_service=entry.get("service"),
        origin_user_id=entry.get("user_id"),
        origin_username=entry.get("username"),
    )


def destination_filename(candidate: Candidate) -> str:
    """Hash-derived on-disk filename for a candidate's source URL."""
    digest = hashlib.md5(candidate.source_url.encode("utf-8"), usedforsecurity=False)
    return f"{digest.hexdigest()}.{candidate.extension}"


def create_import_item(candidate: Candidate, config: ImportConfig) -> ImportItem:
    """Pair a candidate with its resource path and local file path."""
    filename = destination_filename(candidate)
    return ImportItem(
        candidate=candidate,
        resource=f"{config.resource_prefix}{filename}",
        file_path=Path(config.upload_dir) / filename,
    )
