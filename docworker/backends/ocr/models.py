from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OcrResponse:
    """Result of one OCR call, in the Textract block schema.

    Each block is a dict with ``BlockType`` (LINE, WORD, TABLE,
    KEY_VALUE_SET, ...), and optionally ``Id``, ``Text``, ``Confidence``
    (percent, 0-100), ``Geometry`` and ``EntityTypes``. ``raw`` is the
    complete back-end payload, kept verbatim for audit.
    """

    blocks: list[dict[str, Any]]
    raw: dict[str, Any]
    request_id: str | None = None
    is_partial: bool = False
    status_message: str | None = None
    warnings: list[Any] = field(default_factory=list)
