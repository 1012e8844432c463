from enum import Enum


class DocumentKind(str, Enum):
    """Logical document category derived from a MIME type."""

    PDF = "pdf"
    IMAGE = "image"
    TEXT = "text"
    WORD = "word"
    EXCEL = "excel"
    POWERPOINT = "powerpoint"


_MIME_TYPE_KINDS: dict[str, DocumentKind] = {
    "application/pdf": DocumentKind.PDF,
    "image/jpeg": DocumentKind.IMAGE,
    "image/png": DocumentKind.IMAGE,
    "image/gif": DocumentKind.IMAGE,
    "image/webp": DocumentKind.IMAGE,
    "text/plain": DocumentKind.TEXT,
    "application/msword": DocumentKind.WORD,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentKind.WORD,
    "application/vnd.ms-excel": DocumentKind.EXCEL,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentKind.EXCEL,
    "application/vnd.ms-powerpoint": DocumentKind.POWERPOINT,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": (
        DocumentKind.POWERPOINT
    ),
}

_OCR_KINDS = frozenset({DocumentKind.PDF, DocumentKind.IMAGE})
_NLP_KINDS = frozenset({DocumentKind.TEXT, DocumentKind.PDF})


def classify(mime_type: str) -> DocumentKind | None:
    """Map an exact MIME type to a document kind, or None when unknown."""
    return _MIME_TYPE_KINDS.get(mime_type)


def mime_types_for(kind: DocumentKind) -> list[str]:
    return sorted(mime for mime, mapped in _MIME_TYPE_KINDS.items() if mapped is kind)


def supports_ocr(kind: DocumentKind) -> bool:
    return kind in _OCR_KINDS


def supports_nlp(kind: DocumentKind) -> bool:
    return kind in _NLP_KINDS
