"""Bill extraction through Google Gemini structured output."""

from __future__ import annotations

import logging

from google import genai
from google.genai import types

from contas.models.imports import ImportedBillData
from contas.parsing.base import DocumentParser
from contas.settings import settings

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = (
    "Analise a imagem ou PDF da conta e extraia as seguintes informações no formato JSON: "
    "título, beneficiário, valor, data de vencimento e o número do código de barras (se disponível)."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {
            "type": "STRING",
            "description": "O título ou nome principal da conta (ex: Fatura de Cartão, Conta de Luz).",
        },
        "beneficiary": {
            "type": "STRING",
            "description": "O nome da empresa ou pessoa que receberá o pagamento.",
        },
        "amount": {"type": "NUMBER", "description": "O valor total a ser pago."},
        "dueDate": {"type": "STRING", "description": "A data de vencimento no formato AAAA-MM-DD."},
        "barcode": {
            "type": "STRING",
            "description": "O número do código de barras completo, se encontrado. "
            "Apenas os números, sem espaços ou pontuação.",
        },
    },
    "required": ["title", "beneficiary", "amount", "dueDate"],
}


class GeminiDocumentParser(DocumentParser):
    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        self._model = model or settings.gemini_model
        self._client = genai.Client(api_key=api_key or settings.get_gemini_api_key())

    def parse(self, data: bytes, mime_type: str) -> ImportedBillData:
        logger.debug("Requesting extraction: model=%s mime=%s size=%d", self._model, mime_type, len(data))
        response = self._client.models.generate_content(
            model=self._model,
            contents=[types.Part.from_bytes(data=data, mime_type=mime_type), EXTRACTION_PROMPT],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
            ),
        )
        if not response.text:
            raise ValueError("Empty response from document parser")
        result = ImportedBillData.model_validate_json(response.text)
        logger.info("Document parsed: title=%s due=%s", result.title, result.due_date)
        return result
