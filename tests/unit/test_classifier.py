import pytest

from docworker.pipeline.classifier import (
    DocumentKind,
    classify,
    mime_types_for,
    supports_nlp,
    supports_ocr,
)


class TestClassify:
    @pytest.mark.parametrize(
        ("mime_type", "kind"),
        [
            ("application/pdf", DocumentKind.PDF),
            ("image/jpeg", DocumentKind.IMAGE),
            ("image/png", DocumentKind.IMAGE),
            ("image/gif", DocumentKind.IMAGE),
            ("image/webp", DocumentKind.IMAGE),
            ("text/plain", DocumentKind.TEXT),
            ("application/msword", DocumentKind.WORD),
            ("application/vnd.ms-excel", DocumentKind.EXCEL),
            ("application/vnd.ms-powerpoint", DocumentKind.POWERPOINT),
        ],
    )
    def test_maps_known_mime_types(self, mime_type: str, kind: DocumentKind) -> None:
        assert classify(mime_type) is kind

    def test_maps_office_open_xml_types(self) -> None:
        assert (
            classify("application/vnd.openxmlformats-officedocument.wordprocessingml.document")
            is DocumentKind.WORD
        )
        assert (
            classify("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
            is DocumentKind.EXCEL
        )

    def test_unknown_type_returns_none(self) -> None:
        assert classify("application/zip") is None

    def test_match_is_exact(self) -> None:
        assert classify("APPLICATION/PDF") is None
        assert classify("application/pdf; charset=binary") is None


class TestCapabilities:
    def test_ocr_kinds(self) -> None:
        assert supports_ocr(DocumentKind.PDF)
        assert supports_ocr(DocumentKind.IMAGE)
        assert not supports_ocr(DocumentKind.TEXT)
        assert not supports_ocr(DocumentKind.WORD)

    def test_nlp_kinds(self) -> None:
        assert supports_nlp(DocumentKind.TEXT)
        assert supports_nlp(DocumentKind.PDF)
        assert not supports_nlp(DocumentKind.IMAGE)
        assert not supports_nlp(DocumentKind.EXCEL)

    def test_mime_types_for_image(self) -> None:
        assert mime_types_for(DocumentKind.IMAGE) == [
            "image/gif",
            "image/jpeg",
            "image/png",
            "image/webp",
        ]
