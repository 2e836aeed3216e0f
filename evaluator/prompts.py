"""Prompt text and content-part assembly for the evaluation call.

Parts use the OpenAI chat content format: ``{"type": "text", ...}`` for
instructions and extracted text, ``image_url`` data URIs for images and
``file`` parts for other binary uploads such as scanned PDFs.
"""

import json
from typing import Any, Dict, List, Optional

from .models import DocumentPayload, EvaluationMode

SOURCE_LABEL = "Source Document"
NOTES_LABEL = "Faculty Notes"
FINAL_INSTRUCTION = "Generate the comprehensive medical evaluation report."

BASE_INSTRUCTION = """
You are the "Anatomy Guru Master Evaluator", a professional medical academic auditor.
Your task is to generate a high-quality, clinical-grade evaluation report for medical students.

THE SOURCE DOCUMENT (Student Answer Sheet) contains:
1. The Question Paper (QP) with marking schemes.
2. The Official Answer Key (The Absolute Truth).
3. The Student's actual answers.
""".strip()

WITH_MANUAL_INSTRUCTION = """
FACULTY NOTES (Manual Feedback): This document contains manual marks and shorthand notes.
STRICT HIERARCHY OF TRUTH:
1. OFFICIAL ANSWER KEY: Absolute truth for medical facts.
2. FACULTY NOTES: Authority for MARKS assigned, but secondary to Key for facts.
CONTRADICTION PROTOCOL: If Faculty Notes contradict Key, use Key and set "isFlagged": true.
""".strip()

WITHOUT_MANUAL_INSTRUCTION = """
EVALUATION MODE: AUTOMATED AUDIT (No Faculty Notes).
STRICT COMPREHENSIVE PROTOCOL: Evaluate EVERY question. Provide feedback for both correct and incorrect answers against the Official Answer Key.
""".strip()

OUTPUT_INSTRUCTION = """
OUTPUT: Valid JSON only, with no markdown fences or commentary. The "questions" array MUST be exhaustive.
""".strip()

GENERAL_FEEDBACK_CATEGORIES = [
    "overallPerformance",
    "mcqs",
    "contentAccuracy",
    "completenessOfAnswers",
    "presentationDiagrams",
    "investigations",
    "attemptingQuestions",
    "actionPoints",
]

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

REPORT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "studentName": {"type": "string"},
        "testTitle": {"type": "string"},
        "testTopics": {"type": "string"},
        "testDate": {"type": "string"},
        "totalScore": {"type": "number"},
        "maxScore": {"type": "number"},
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "qNo": {"type": "string"},
                    "feedbackPoints": _STRING_LIST,
                    "marks": {"type": "number"},
                    "maxMarks": {"type": "number"},
                    "isCorrect": {"type": "boolean"},
                    "isFlagged": {"type": "boolean"},
                },
                "required": ["qNo", "feedbackPoints", "marks", "maxMarks", "isCorrect"],
            },
        },
        "generalFeedback": {
            "type": "object",
            "properties": {name: _STRING_LIST for name in GENERAL_FEEDBACK_CATEGORIES},
            "required": list(GENERAL_FEEDBACK_CATEGORIES),
        },
    },
    "required": [
        "studentName", "testTitle", "testTopics", "testDate",
        "totalScore", "maxScore", "questions", "generalFeedback",
    ],
}


def build_system_instruction(mode: EvaluationMode) -> str:
    """Return the system instruction for the given evaluation mode."""
    if mode == EvaluationMode.WITH_MANUAL:
        mode_instruction = WITH_MANUAL_INSTRUCTION
    else:
        mode_instruction = WITHOUT_MANUAL_INSTRUCTION

    return "\n\n".join([
        BASE_INSTRUCTION,
        mode_instruction,
        OUTPUT_INSTRUCTION,
        "JSON Structure (JSON Schema):\n" + json.dumps(REPORT_SCHEMA, indent=2),
    ])


def text_part(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def inline_data_part(payload: DocumentPayload) -> Dict[str, Any]:
    """Wrap a binary payload as an inline data URI part."""
    data_uri = f"data:{payload.mime_type};base64,{payload.base64}"
    if payload.mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_uri}}
    return {
        "type": "file",
        "file": {"filename": payload.name or "document", "file_data": data_uri},
    }


def build_document_parts(payload: Optional[DocumentPayload], label: str) -> List[Dict[str, Any]]:
    """Render one uploaded document as labelled content parts."""
    if payload is None:
        return [text_part(f"{label}: Not provided.")]
    if payload.has_text:
        return [text_part(f"{label}: (Extracted Text)\n{payload.text}")]
    if payload.has_binary:
        return [text_part(f"{label}: (Binary File)"), inline_data_part(payload)]
    return [text_part(f"{label}: No data.")]


def build_prompt_parts(
    source_doc: Optional[DocumentPayload],
    notes_doc: Optional[DocumentPayload],
    mode: EvaluationMode,
) -> List[Dict[str, Any]]:
    """Assemble the user message: source, faculty notes (with-manual only), closing instruction."""
    parts = build_document_parts(source_doc, SOURCE_LABEL)
    if mode == EvaluationMode.WITH_MANUAL:
        parts.extend(build_document_parts(notes_doc, NOTES_LABEL))
    parts.append(text_part(FINAL_INSTRUCTION))
    return parts
