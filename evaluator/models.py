"""Value shapes exchanged by the evaluator API.

Field names follow the camelCase wire format used by browser clients; the
Python attributes are snake_case and both spellings are accepted on input.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EvaluationMode(str, Enum):
    """Whether faculty notes take part in grading."""
    WITH_MANUAL = "with-manual"
    WITHOUT_MANUAL = "without-manual"


class DocumentPayload(BaseModel):
    """An uploaded document, either as extracted text or as base64 bytes."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = ""
    text: Optional[str] = None
    base64: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    is_docx: bool = Field(default=False, alias="isDocx")

    @property
    def has_text(self) -> bool:
        return bool(self.text)

    @property
    def has_binary(self) -> bool:
        return bool(self.base64 and self.mime_type)


class EvaluateRequest(BaseModel):
    """Body of POST /evaluate."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source_doc: Optional[DocumentPayload] = Field(default=None, alias="sourceDoc")
    dirty_feedback_doc: Optional[DocumentPayload] = Field(default=None, alias="dirtyFeedbackDoc")
    mode: EvaluationMode = EvaluationMode.WITH_MANUAL


class PromptRequest(BaseModel):
    """Body of POST /evaluate/prompt."""
    prompt: Optional[Any] = None


class QuestionFeedback(BaseModel):
    # Models often emit qNo as a bare number
    model_config = ConfigDict(populate_by_name=True, frozen=True, coerce_numbers_to_str=True)

    q_no: str = Field(alias="qNo")
    feedback_points: List[str] = Field(alias="feedbackPoints")
    marks: float
    max_marks: float = Field(alias="maxMarks")
    is_correct: bool = Field(alias="isCorrect")
    is_flagged: bool = Field(default=False, alias="isFlagged")


class GeneralFeedback(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, coerce_numbers_to_str=True)

    overall_performance: List[str] = Field(alias="overallPerformance")
    mcqs: List[str]
    content_accuracy: List[str] = Field(alias="contentAccuracy")
    completeness_of_answers: List[str] = Field(alias="completenessOfAnswers")
    presentation_diagrams: List[str] = Field(alias="presentationDiagrams")
    investigations: List[str]
    attempting_questions: List[str] = Field(alias="attemptingQuestions")
    action_points: List[str] = Field(alias="actionPoints")


class EvaluationReport(BaseModel):
    """Structured grading report produced by the model."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, coerce_numbers_to_str=True)

    student_name: str = Field(alias="studentName")
    test_title: str = Field(alias="testTitle")
    test_topics: str = Field(alias="testTopics")
    test_date: str = Field(alias="testDate")
    total_score: float = Field(alias="totalScore")
    max_score: float = Field(alias="maxScore")
    questions: List[QuestionFeedback]
    general_feedback: GeneralFeedback = Field(alias="generalFeedback")

    @property
    def flagged_questions(self) -> List[QuestionFeedback]:
        """Questions where faculty notes contradicted the answer key."""
        return [q for q in self.questions if q.is_flagged]


class EvaluationResponse(BaseModel):
    """Uniform envelope returned by every evaluation endpoint."""
    success: bool
    output: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, output: Any) -> "EvaluationResponse":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> "EvaluationResponse":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
