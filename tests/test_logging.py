import logging
from unittest.mock import patch

from contas.logging import TEXT_FORMAT, configure_logging, reconfigure


class TestConfigureLogging:
    def test_json_format(self):
        with patch("contas.logging.settings") as mock_settings:
            mock_settings.log_level = "INFO"
            mock_settings.log_json = True
            configure_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        from pythonjsonlogger.json import JsonFormatter

        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_text_format_and_level(self):
        with patch("contas.logging.settings") as mock_settings:
            mock_settings.log_level = "debug"
            mock_settings.log_json = False
            configure_logging()

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert root.handlers[0].formatter._fmt == TEXT_FORMAT

    def test_quiets_http_client(self):
        configure_logging()
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_reconfigure_replaces_foreign_handlers(self):
        logging.getLogger().addHandler(logging.NullHandler())
        reconfigure()
        assert len(logging.getLogger().handlers) == 1
