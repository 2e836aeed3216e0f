"""Shared fixtures for evaluator tests."""

import io
import json
import zipfile
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from ..config import EvaluatorConfig


def build_minimal_docx(*paragraphs: str) -> bytes:
    content_types = (
        b"<?xml version='1.0' encoding='UTF-8'?>"
        b"<Types xmlns='http://schemas.openxmlformats.org/package/2006/content-types'>"
        b"<Default Extension='rels' ContentType='application/vnd.openxmlformats-package.relationships+xml'/>"
        b"<Default Extension='xml' ContentType='application/xml'/>"
        b"<Override PartName='/word/document.xml' ContentType='application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml'/>"
        b"<Override PartName='/docProps/core.xml' ContentType='application/vnd.openxmlformats-package.core-properties+xml'/>"
        b"</Types>"
    )
    rels = (
        b"<?xml version='1.0' encoding='UTF-8'?>"
        b"<Relationships xmlns='http://schemas.openxmlformats.org/package/2006/relationships'>"
        b"<Relationship Id='rId1' Type='http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument' Target='word/document.xml'/>"
        b"</Relationships>"
    )
    body = "".join(f"<w:p><w:r><w:t>{p}</w:t></w:r></w:p>" for p in paragraphs)
    document_xml = (
        "<?xml version='1.0' encoding='UTF-8'?>"
        "<w:document xmlns:w='http://schemas.openxmlformats.org/wordprocessingml/2006/main'>"
        f"<w:body>{body}</w:body>"
        "</w:document>"
    ).encode("utf-8")
    core_xml = (
        b"<?xml version='1.0' encoding='UTF-8'?>"
        b"<cp:coreProperties xmlns:cp='http://schemas.openxmlformats.org/package/2006/metadata/core-properties' "
        b"xmlns:dc='http://purl.org/dc/elements/1.1/' "
        b"xmlns:dcterms='http://purl.org/dc/terms/'>"
        b"<dc:title>Upper Limb Test</dc:title>"
        b"<dc:creator>Faculty</dc:creator>"
        b"</cp:coreProperties>"
    )

    bio = io.BytesIO()
    with zipfile.ZipFile(bio, "w", zipfile.ZIP_DEFLATED) as z:
        z.writestr("[Content_Types].xml", content_types)
        z.writestr("_rels/.rels", rels)
        z.writestr("word/document.xml", document_xml)
        z.writestr("docProps/core.xml", core_xml)
    return bio.getvalue()


def build_pdf(*pages: str) -> bytes:
    import fitz  # PyMuPDF

    doc = fitz.open()
    for text in pages:
        page = doc.new_page(width=595, height=842)  # A4
        y = 72
        for line in text.splitlines() or [""]:
            if line:
                page.insert_text((72, y), line)
            y += 14
    data = doc.tobytes()
    doc.close()
    return data


def build_png(size=(64, 48), color=(255, 255, 255)) -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", size, color).save(bio, format="PNG")
    return bio.getvalue()


SAMPLE_REPORT = {
    "studentName": "Asha Verma",
    "testTitle": "Upper Limb Unit Test",
    "testTopics": "Brachial plexus, shoulder joint",
    "testDate": "2026-09-14",
    "totalScore": 14,
    "maxScore": 20,
    "questions": [
        {
            "qNo": "1",
            "feedbackPoints": ["Correctly named all five roots."],
            "marks": 5,
            "maxMarks": 5,
            "isCorrect": True,
            "isFlagged": False,
        },
        {
            "qNo": "2a",
            "feedbackPoints": ["Nerve supply of deltoid is axillary, not radial."],
            "marks": 1,
            "maxMarks": 3,
            "isCorrect": False,
            "isFlagged": True,
        },
    ],
    "generalFeedback": {
        "overallPerformance": ["Good grasp of plexus anatomy."],
        "mcqs": [],
        "contentAccuracy": ["Review motor supply of shoulder muscles."],
        "completenessOfAnswers": ["Short notes lacked clinical correlation."],
        "presentationDiagrams": ["Label diagrams fully."],
        "investigations": [],
        "attemptingQuestions": ["All questions attempted."],
        "actionPoints": ["Revise axillary nerve injuries."],
    },
}


def completion(content):
    """Shape of an openai chat completion with a single choice."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def report_json():
    return json.dumps(SAMPLE_REPORT)


@pytest.fixture
def config():
    return EvaluatorConfig(api_key="test-key", timeout_seconds=2)


@pytest.fixture
def mock_client(report_json):
    """A stand-in for openai.AsyncOpenAI returning the sample report."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion(report_json))
    return client
