"""Tests for the document intake service."""

import base64
import io
import pytest
from PIL import Image

from ..intake import DocumentIntake
from ..adapters import ContentProcessingError, InvalidFileError
from .conftest import build_minimal_docx, build_pdf, build_png

LONG_ANSWER = "\n".join([
    "Q1 Describe the brachial plexus.",
    "The plexus is formed by the ventral rami of C5 to T1.",
    "It has roots, trunks, divisions, cords and branches.",
    "Q2 Describe the shoulder joint.",
    "It is a ball and socket synovial joint.",
])


@pytest.fixture
def intake():
    return DocumentIntake(max_file_size=1024 * 1024)


class TestDocumentIntake:
    """Routing of uploads to text or binary payloads."""

    @pytest.mark.asyncio
    async def test_docx_becomes_text(self, intake):
        f = io.BytesIO(build_minimal_docx("Q1 marks 3/5", "see key"))

        payload = await intake.process_file(f, "Faculty Notes.docx")

        assert payload.is_docx is True
        assert payload.text == "Q1 marks 3/5\n\nsee key"
        assert payload.base64 is None
        assert payload.name == "Faculty Notes.docx"

    @pytest.mark.asyncio
    async def test_docx_detected_by_content_type(self, intake):
        f = io.BytesIO(build_minimal_docx("typed notes"))

        payload = await intake.process_file(
            f, "notes",
            content_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )

        assert payload.is_docx is True
        assert payload.text == "typed notes"

    @pytest.mark.asyncio
    async def test_corrupt_docx_rejected(self, intake):
        with pytest.raises(InvalidFileError):
            await intake.process_file(io.BytesIO(b"PK\x03\x04broken"), "notes.docx")

    @pytest.mark.asyncio
    async def test_text_rich_pdf_becomes_text(self, intake):
        f = io.BytesIO(build_pdf(LONG_ANSWER, LONG_ANSWER))

        payload = await intake.process_file(f, "answers.pdf")

        assert payload.is_docx is False
        assert payload.text.startswith("[P1] Q1 Describe")
        assert "[P2]" in payload.text
        assert payload.base64 is None

    @pytest.mark.asyncio
    async def test_scanned_pdf_falls_back_to_binary(self, intake):
        pdf_bytes = build_pdf("Q1")

        payload = await intake.process_file(io.BytesIO(pdf_bytes), "scan.pdf")

        assert payload.text is None
        assert payload.mime_type == "application/pdf"
        assert base64.b64decode(payload.base64) == pdf_bytes

    @pytest.mark.asyncio
    async def test_pdf_threshold_is_configurable(self):
        intake = DocumentIntake(min_pdf_text_chars=2)

        payload = await intake.process_file(io.BytesIO(build_pdf("Q1 ok")), "short.pdf")

        assert payload.text == "[P1] Q1 ok\n"

    @pytest.mark.asyncio
    async def test_unreadable_pdf_falls_back_to_binary(self, intake):
        payload = await intake.process_file(io.BytesIO(b"garbage bytes"), "broken.pdf")

        assert payload.text is None
        assert payload.mime_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_image_is_encoded(self, intake):
        png = build_png()

        payload = await intake.process_file(io.BytesIO(png), "sheet.png", content_type="image/png")

        assert payload.mime_type == "image/png"
        assert base64.b64decode(payload.base64) == png
        assert payload.has_binary is True

    @pytest.mark.asyncio
    async def test_image_mime_type_follows_content(self, intake):
        # PNG bytes uploaded under a .jpg name
        payload = await intake.process_file(io.BytesIO(build_png()), "photo.jpg")

        assert payload.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_invalid_image_rejected(self, intake):
        with pytest.raises(InvalidFileError):
            await intake.process_file(io.BytesIO(b"not really a jpeg"), "photo.jpg")

    @pytest.mark.asyncio
    async def test_oversized_image_dimensions_rejected(self, intake, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        with pytest.raises(InvalidFileError):
            await intake.process_file(io.BytesIO(build_png()), "sheet.png", content_type="image/png")

    @pytest.mark.asyncio
    async def test_text_file_becomes_text(self, intake):
        payload = await intake.process_file(io.BytesIO(b"Answer key: C5-T1"), "key.txt")

        assert payload.text == "Answer key: C5-T1"
        assert payload.is_docx is False

    @pytest.mark.asyncio
    async def test_unknown_type_is_encoded_with_declared_mime(self, intake):
        payload = await intake.process_file(
            io.BytesIO(b"\x00\x01heic"), "IMG_0001", content_type="image/heic"
        )

        assert payload.mime_type == "image/heic"
        assert base64.b64decode(payload.base64) == b"\x00\x01heic"

    @pytest.mark.asyncio
    async def test_unknown_type_without_hint_is_octet_stream(self, intake):
        payload = await intake.process_file(io.BytesIO(b"\x00\x01"), "blob")

        assert payload.mime_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, intake):
        with pytest.raises(InvalidFileError):
            await intake.process_file(io.BytesIO(b""), "empty.pdf")

    @pytest.mark.asyncio
    async def test_large_file_rejected(self):
        small_intake = DocumentIntake(max_file_size=10)

        with pytest.raises(ContentProcessingError) as exc_info:
            await small_intake.process_file(io.BytesIO(b"x" * 11), "big.txt")
        assert "exceeds maximum allowed size" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_filename_defaults(self, intake):
        payload = await intake.process_file(io.BytesIO(b"\x00\x01"), "")

        assert payload.name == "unnamed_file"

    @pytest.mark.parametrize("filename,content_type,expected", [
        ("a.pdf", None, True),
        ("A.PDF", None, True),
        ("upload", "application/pdf", True),
        ("a.docx", None, False),
    ])
    def test_is_pdf(self, filename, content_type, expected):
        assert DocumentIntake.is_pdf(filename, content_type) is expected
