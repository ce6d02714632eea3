"""Artifact storage for finished documents.

A stored artifact is the markdown text plus a JSON sidecar holding the
document metadata, the latest sign-off block, the full sign-off history
and the SHA256 of the text.

Environment Variables:
    CEPHO_ARTIFACT_DIR: Base directory for FilesystemArtifactStore
        (default: ./var/documents)
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cepho.models.documents import DocumentMetadata, SignOffBlock

logger = logging.getLogger(__name__)

ARTIFACT_DIR_ENV = "CEPHO_ARTIFACT_DIR"
DEFAULT_ARTIFACT_DIR = "./var/documents"

_SAFE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]{0,127}$")
_TEXT_SUFFIX = ".md"
_METADATA_SUFFIX = ".json"


class ArtifactStoreError(Exception):
    """Raised when an artifact cannot be stored or loaded."""

    def __init__(self, message: str, code: str = "STORAGE_ERROR") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class StoredArtifact:
    """Location and integrity hash of a stored document."""

    document_id: str
    sha256: str
    location: str


def compute_sha256(text: str) -> str:
    """SHA256 hex digest of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _validate_document_id(document_id: str) -> None:
    if not _SAFE_ID_PATTERN.match(document_id):
        raise ArtifactStoreError(
            f"Unsafe document id for storage: {document_id!r}", code="INVALID_DOCUMENT_ID"
        )


def build_artifact_record(
    text: str,
    metadata: DocumentMetadata,
    sign_offs: Sequence[SignOffBlock],
) -> dict[str, Any]:
    """Build the JSON sidecar for a document."""
    history = [block.model_dump(mode="json") for block in sign_offs]
    return {
        "metadata": metadata.model_dump(mode="json"),
        "sha256": compute_sha256(text),
        "sign_off": history[-1] if history else None,
        "sign_off_history": history,
    }


class ArtifactStore(ABC):
    """Abstract base class for finished-document storage."""

    @abstractmethod
    def save(
        self,
        text: str,
        metadata: DocumentMetadata,
        sign_offs: Sequence[SignOffBlock],
    ) -> StoredArtifact:
        """Store a document with its metadata and sign-off history.

        Raises:
            ArtifactStoreError: If the document cannot be stored.
        """
        ...

    @abstractmethod
    def load_text(self, document_id: str) -> str:
        """Return the stored markdown text.

        Raises:
            ArtifactStoreError: If the document is unknown or unreadable.
        """
        ...

    @abstractmethod
    def load_metadata(self, document_id: str) -> DocumentMetadata:
        """Return the stored metadata.

        Raises:
            ArtifactStoreError: If the document is unknown or unreadable.
        """
        ...


class FilesystemArtifactStore(ArtifactStore):
    """Filesystem artifact store.

    Layout:
        {base_dir}/{document_id}.md    # markdown text
        {base_dir}/{document_id}.json  # metadata, sign-offs, sha256

    Files are written to a temporary name and renamed into place, so a
    reader never sees a partially written artifact.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Base directory. If None, uses CEPHO_ARTIFACT_DIR or
                DEFAULT_ARTIFACT_DIR.
        """
        if base_dir is None:
            base_dir = os.environ.get(ARTIFACT_DIR_ENV) or DEFAULT_ARTIFACT_DIR
        self._base_dir = Path(base_dir).resolve()
        logger.debug("FilesystemArtifactStore initialized with base_dir=%s", self._base_dir)

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    def _path(self, document_id: str, suffix: str) -> Path:
        _validate_document_id(document_id)
        return self._base_dir / f"{document_id}{suffix}"

    def _write_atomic(self, path: Path, content: str) -> None:
        tmp_file = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
        try:
            tmp_file.write_text(content, encoding="utf-8")
            tmp_file.replace(path)
        except OSError as e:
            tmp_file.unlink(missing_ok=True)
            raise ArtifactStoreError(f"Failed to write {path}: {e}") from e

    def save(
        self,
        text: str,
        metadata: DocumentMetadata,
        sign_offs: Sequence[SignOffBlock],
    ) -> StoredArtifact:
        """Write <id>.md and <id>.json atomically."""
        text_path = self._path(metadata.id, _TEXT_SUFFIX)
        meta_path = self._path(metadata.id, _METADATA_SUFFIX)
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactStoreError(
                f"Failed to create artifact directory {self._base_dir}: {e}"
            ) from e

        record = build_artifact_record(text, metadata, sign_offs)
        self._write_atomic(text_path, text)
        self._write_atomic(meta_path, json.dumps(record, sort_keys=True, indent=2) + "\n")

        logger.info("Stored document %s at %s", metadata.id, text_path)
        return StoredArtifact(
            document_id=metadata.id, sha256=record["sha256"], location=str(text_path)
        )

    def load_text(self, document_id: str) -> str:
        """Read <id>.md."""
        path = self._path(document_id, _TEXT_SUFFIX)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ArtifactStoreError(f"Document not found: {document_id}", code="NOT_FOUND") from e
        except OSError as e:
            raise ArtifactStoreError(f"Failed to read {path}: {e}") from e

    def load_record(self, document_id: str) -> dict[str, Any]:
        """Read and decode <id>.json."""
        path = self._path(document_id, _METADATA_SUFFIX)
        try:
            record: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ArtifactStoreError(f"Document not found: {document_id}", code="NOT_FOUND") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ArtifactStoreError(f"Failed to read {path}: {e}") from e
        return record

    def load_metadata(self, document_id: str) -> DocumentMetadata:
        """Read the metadata section of <id>.json."""
        record = self.load_record(document_id)
        try:
            return DocumentMetadata.model_validate(record["metadata"])
        except (KeyError, ValidationError) as e:
            raise ArtifactStoreError(
                f"Corrupt metadata for document {document_id}: {e}", code="CORRUPT_ARTIFACT"
            ) from e


class InMemoryArtifactStore(ArtifactStore):
    """In-memory artifact store for testing (no disk writes)."""

    def __init__(self) -> None:
        """Initialize the in-memory store."""
        self._texts: dict[str, str] = {}
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def save(
        self,
        text: str,
        metadata: DocumentMetadata,
        sign_offs: Sequence[SignOffBlock],
    ) -> StoredArtifact:
        """Keep the text and a JSON-compatible record in memory."""
        _validate_document_id(metadata.id)
        record = build_artifact_record(text, metadata, sign_offs)
        with self._lock:
            self._texts[metadata.id] = text
            self._records[metadata.id] = record
        return StoredArtifact(
            document_id=metadata.id, sha256=record["sha256"], location=f"memory://{metadata.id}"
        )

    def _get(self, document_id: str) -> tuple[str, dict[str, Any]]:
        with self._lock:
            if document_id not in self._texts:
                raise ArtifactStoreError(f"Document not found: {document_id}", code="NOT_FOUND")
            return self._texts[document_id], self._records[document_id]

    def load_text(self, document_id: str) -> str:
        """Return the stored text."""
        return self._get(document_id)[0]

    def load_record(self, document_id: str) -> dict[str, Any]:
        """Return the stored record."""
        return self._get(document_id)[1]

    def load_metadata(self, document_id: str) -> DocumentMetadata:
        """Return the stored metadata."""
        return DocumentMetadata.model_validate(self._get(document_id)[1]["metadata"])

    @property
    def document_ids(self) -> list[str]:
        """IDs of all stored documents, sorted."""
        with self._lock:
            return sorted(self._texts)
