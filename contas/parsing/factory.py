from contas.parsing.base import DocumentParser


def get_document_parser() -> DocumentParser:
    from contas.parsing.gemini import GeminiDocumentParser

    return GeminiDocumentParser()
