from abc import ABC, abstractmethod

from contas.models.imports import ImportedBillData

RATE_LIMIT_MARKERS = ("resource_exhausted", "quota", "429")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Rate-limit errors are recognized by their message, whatever the exception type."""
    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


class DocumentParser(ABC):
    @abstractmethod
    def parse(self, data: bytes, mime_type: str) -> ImportedBillData:
        """Extract bill data from an image or PDF. Raises on any failure."""
        ...
