"""Append-only sign-off ledger keyed by document ID."""

from __future__ import annotations

import threading

from cepho.models.documents import SignOffBlock


class SignOffLedger:
    """Thread-safe, append-only history of sign-off blocks per document.

    Blocks are never replaced or removed; each QA pass appends a new one.
    """

    def __init__(self) -> None:
        """Initialize an empty ledger."""
        self._blocks: dict[str, list[SignOffBlock]] = {}
        self._lock = threading.Lock()

    def record(self, block: SignOffBlock) -> SignOffBlock:
        """Append a block to its document's history.

        Raises:
            ValueError: If the block carries no document_id.
        """
        if not block.document_id:
            raise ValueError("Sign-off block must carry a document_id to be recorded")
        with self._lock:
            self._blocks.setdefault(block.document_id, []).append(block)
        return block

    def history(self, document_id: str) -> list[SignOffBlock]:
        """Return the document's sign-off blocks, oldest first."""
        with self._lock:
            return list(self._blocks.get(document_id, []))

    def latest(self, document_id: str) -> SignOffBlock | None:
        """Return the most recent block for the document, or None."""
        with self._lock:
            blocks = self._blocks.get(document_id)
            return blocks[-1] if blocks else None

    def document_ids(self) -> list[str]:
        """Return IDs of all documents with at least one block, sorted."""
        with self._lock:
            return sorted(self._blocks)
