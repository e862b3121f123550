from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Binary store for bill attachments, addressed by storage key."""

    @abstractmethod
    def save(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Save data and return the storage key."""
        ...

    @abstractmethod
    def get(self, key: str) -> bytes: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def get_url(self, key: str) -> str:
        """Return something a user can open: an absolute path for local storage."""
        ...
