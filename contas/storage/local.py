import logging
from pathlib import Path

from contas.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir):
            raise ValueError(f"Storage key escapes base directory: {key}")
        return path

    def save(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug("Saved attachment %s (%d bytes, %s)", key, len(data), content_type)
        return key

    def get(self, key: str) -> bytes:
        logger.debug("Reading attachment %s", key)
        return self._path(key).read_bytes()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
        logger.debug("Deleted attachment %s", key)

    def get_url(self, key: str) -> str:
        return str(self._path(key))
