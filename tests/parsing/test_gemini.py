from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from contas.parsing.base import is_rate_limit_error
from contas.parsing.gemini import GeminiDocumentParser


class TestIsRateLimitError:
    @pytest.mark.parametrize(
        "message",
        ["429 Too Many Requests", "RESOURCE_EXHAUSTED: try later", "Quota exceeded for project"],
    )
    def test_rate_limit_markers(self, message):
        assert is_rate_limit_error(RuntimeError(message)) is True

    def test_other_error(self):
        assert is_rate_limit_error(ValueError("invalid pdf")) is False


class TestGeminiDocumentParser:
    @patch("contas.parsing.gemini.genai")
    def test_parse(self, mock_genai):
        client = mock_genai.Client.return_value
        client.models.generate_content.return_value = MagicMock(
            text='{"title": "Luz", "beneficiary": "CEMIG", "amount": 150.75, "dueDate": "2024-02-10", '
            '"barcode": "8366000"}'
        )

        parser = GeminiDocumentParser(api_key="key", model="gemini-test")
        result = parser.parse(b"%PDF", "application/pdf")

        mock_genai.Client.assert_called_once_with(api_key="key")
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["config"].response_mime_type == "application/json"
        assert result.title == "Luz"
        assert result.amount == 150.75
        assert result.due_date == date(2024, 2, 10)
        assert result.barcode == "8366000"

    @patch("contas.parsing.gemini.genai")
    def test_empty_response(self, mock_genai):
        mock_genai.Client.return_value.models.generate_content.return_value = MagicMock(text="")
        parser = GeminiDocumentParser(api_key="key")
        with pytest.raises(ValueError, match="Empty"):
            parser.parse(b"x", "image/png")

    @patch("contas.parsing.gemini.settings")
    @patch("contas.parsing.gemini.genai")
    def test_missing_key(self, mock_genai, mock_settings):
        mock_settings.get_gemini_api_key.side_effect = ValueError("Gemini API key not configured")
        with pytest.raises(ValueError):
            GeminiDocumentParser()
        mock_genai.Client.assert_not_called()
