"""Record stores and the record-kind factory map."""

import json
import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel

from .exceptions import ConfigurationError
from .models import ImportRecord

IMAGE_KIND = "image"

RecordFactory = Callable[..., BaseModel]

# Maps a declared record kind to the model that rebuilds its documents.
RECORD_FACTORIES: Dict[str, RecordFactory] = {
    IMAGE_KIND: ImportRecord,
}


def record_from_document(
    kind: str,
    document: Mapping[str, Any],
    factories: Mapping[str, RecordFactory] = RECORD_FACTORIES,
) -> BaseModel:
    """Turn a stored document back into a typed record of ``kind``."""
    try:
        factory = factories[kind]
    except KeyError:
        raise ConfigurationError(f"Unknown record kind: {kind!r}") from None
    payload = {k: v for k, v in document.items() if k not in ("_id", "_kind")}
    return factory(**payload)


class InMemoryRecordStore:
    """Thread-safe store keeping documents in a dict keyed by id."""

    def __init__(
        self,
        kind: str = IMAGE_KIND,
        factories: Mapping[str, RecordFactory] = RECORD_FACTORIES,
    ):
        if kind not in factories:
            raise ConfigurationError(f"Unknown record kind: {kind!r}")
        self._kind = kind
        self._factories = factories
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def exists(self, resource: str) -> bool:
        with self._lock:
            return any(
                doc.get("resource") == resource for doc in self._documents.values()
            )

    def insert(self, record: ImportRecord) -> str:
        record_id = uuid.uuid4().hex
        document = {"_id": record_id, "_kind": self._kind, **record.to_document()}
        with self._lock:
            self._documents[record_id] = document
        return record_id

    def get(self, record_id: str) -> Optional[BaseModel]:
        with self._lock:
            document = self._documents.get(record_id)
        if document is None:
            return None
        return record_from_document(document["_kind"], document, self._factories)

    def find(self, **where: Any) -> List[BaseModel]:
        """Return records whose document fields equal ``where``."""
        with self._lock:
            documents = [
                doc
                for doc in self._documents.values()
                if all(doc.get(key) == value for key, value in where.items())
            ]
        return [
            record_from_document(doc["_kind"], doc, self._factories)
            for doc in documents
        ]

    def count(self) -> int:
        with self._lock:
            return len(self._documents)


class JsonFileRecordStore(InMemoryRecordStore):
    """Record store backed by a JSON-lines file.

    Existing documents are loaded on construction; each insert appends one
    line so that earlier imports are seen by later runs.
    """

    def __init__(
        self,
        path: Path,
        kind: str = IMAGE_KIND,
        factories: Mapping[str, RecordFactory] = RECORD_FACTORIES,
    ):
        super().__init__(kind, factories)
        self._path = Path(path)
        if self._path.exists():
            self._load()

    def _load(self) -> None:
        with open(self._path, "r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    document = json.loads(line)
                except ValueError as exc:
                    raise ConfigurationError(
                        f"Corrupt record store {self._path} at line {line_number}: {exc}"
                    ) from exc
                if not isinstance(document, dict) or not document.get("_id"):
                    raise ConfigurationError(
                        f"Corrupt record store {self._path} at line {line_number}: "
                        "expected an object with an '_id'"
                    )
                document.setdefault("_kind", self._kind)
                self._documents[document["_id"]] = document

    def insert(self, record: ImportRecord) -> str:
        record_id = uuid.uuid4().hex
        document = {"_id": record_id, "_kind": self._kind, **record.to_document()}
        with self._lock:
            with open(self._path, "a", encoding="utf-8") as handle:
                handle.write(json.dumps(document) + "\n")
            self._documents[record_id] = document
        return record_id
