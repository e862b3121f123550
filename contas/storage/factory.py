import logging
from pathlib import Path

from contas.settings import settings
from contas.storage.base import StorageBackend

logger = logging.getLogger(__name__)


def get_storage() -> StorageBackend:
    """Attachment storage selected by ``CONTAS_STORAGE_BACKEND``; only ``local`` is available."""
    if settings.storage_backend != "local":
        raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")

    from contas.storage.local import LocalStorage

    base_dir = Path(settings.storage_local_path).expanduser()
    logger.info("Attachments stored under %s", base_dir)
    return LocalStorage(str(base_dir))
