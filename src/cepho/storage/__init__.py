"""Storage for finished documents."""

from cepho.storage.artifact_store import (
    ArtifactStore,
    ArtifactStoreError,
    FilesystemArtifactStore,
    InMemoryArtifactStore,
    StoredArtifact,
    compute_sha256,
)

__all__ = [
    "ArtifactStore",
    "ArtifactStoreError",
    "FilesystemArtifactStore",
    "InMemoryArtifactStore",
    "StoredArtifact",
    "compute_sha256",
]
