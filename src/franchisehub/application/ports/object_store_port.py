from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ObjectStorePort(Protocol):
    """
    Binary object store (collaborator contract).

    Implementations raise DependencyFailureError when the backend is unavailable.
    """

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: str) -> str:
        """Store bytes under bucket/path and return the storage path."""

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return a retrieval URL (locator) for a stored object."""
