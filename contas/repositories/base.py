from abc import ABC, abstractmethod


class CollectionRepository(ABC):
    """Key-value persistence of whole collections, serialized as JSON documents."""

    @abstractmethod
    def load(self, name: str) -> str | None: ...

    @abstractmethod
    def save(self, name: str, payload: str) -> None: ...

    @abstractmethod
    def list_names(self) -> list[str]: ...
