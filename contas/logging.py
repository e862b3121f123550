import logging
import sys

from contas.settings import settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that are chatty at INFO (the Gemini SDK logs each HTTP request).
QUIET_LOGGERS = ("httpx", "httpcore", "google_genai")


def _formatter() -> logging.Formatter:
    if not settings.log_json:
        return logging.Formatter(TEXT_FORMAT)

    from pythonjsonlogger.json import JsonFormatter

    return JsonFormatter(fmt=JSON_FORMAT, rename_fields={"asctime": "timestamp", "levelname": "level"})


def configure_logging() -> None:
    """Install a single stderr handler on the root logger.

    Alembic's ``fileConfig`` replaces root handlers, so ``__main__`` calls
    ``reconfigure()`` once migrations have run.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


reconfigure = configure_logging
