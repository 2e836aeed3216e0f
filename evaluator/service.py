"""
Evaluation Service

Sends an answer sheet (and optionally faculty notes) to the generation model
and turns its reply into an :class:`~evaluator.models.EvaluationReport`.

The model call is raced against a fixed timer; whichever finishes first
wins and a late model call is cancelled. Replies are sanitized before
parsing because models sometimes wrap JSON in markdown code fences even when
a JSON response format was requested.

Example:
    >>> service = EvaluationService(EvaluatorConfig.from_env())
    >>> report = await service.evaluate(EvaluateRequest(sourceDoc=payload, mode="without-manual"))
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

import openai
from pydantic import ValidationError

from .config import EvaluatorConfig
from .models import EvaluateRequest, EvaluationReport
from .prompts import REPORT_SCHEMA, build_prompt_parts, build_system_instruction

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```$")


class EvaluationError(Exception):
    """Base exception for evaluation failures."""
    pass

class MissingCredentialsError(EvaluationError):
    """Raised when no API key is configured."""
    def __init__(self, message: str = "API_KEY is not configured on the server."):
        super().__init__(message)

class EvaluationTimeoutError(EvaluationError):
    """Raised when the model does not answer within the configured bound."""
    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"AI evaluation timed out after {timeout_seconds:g} seconds")

class MalformedReportError(EvaluationError):
    """Raised when the model reply is not a report of the expected shape."""
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Model returned a malformed report: {detail}")

class UpstreamError(EvaluationError):
    """Raised when the generation API itself fails."""
    pass


def strip_markdown_fences(text: Optional[str]) -> str:
    """
    Remove a markdown code fence wrapped around a model reply.

    Only replies that start with a fence are touched; the leading
    ```` ``` ```` or ```` ```json ```` line and a trailing fence are removed.

    Example:
        >>> strip_markdown_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    if not text:
        return ""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return text
    stripped = _LEADING_FENCE.sub("", stripped, count=1)
    return _TRAILING_FENCE.sub("", stripped, count=1).strip()


def parse_report(text: Optional[str]) -> EvaluationReport:
    """
    Sanitize and parse a model reply into a report.

    Raises:
        MalformedReportError: If the reply is not JSON or does not match
            the report shape. An empty reply counts as ``{}``.
    """
    cleaned = strip_markdown_fences(text).strip() or "{}"
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedReportError(f"invalid JSON ({e.msg} at line {e.lineno} column {e.colno})") from e

    if not isinstance(data, dict):
        raise MalformedReportError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return EvaluationReport.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'report'}: {err['msg']}"
            for err in e.errors()
        )
        raise MalformedReportError(problems) from e


class EvaluationService:
    """
    Runs evaluations against an OpenAI-compatible generation endpoint.

    Args:
        config: Endpoint, model and timeout settings.
        client: Optional pre-built ``openai.AsyncOpenAI`` client.
    """

    def __init__(self, config: Optional[EvaluatorConfig] = None, client: Any = None):
        self.config = config or EvaluatorConfig.from_env()
        self._client = client

    @property
    def client(self):
        """Lazy load the OpenAI client so a missing key only fails at call time."""
        if self._client is None:
            if not self.config.api_key:
                raise MissingCredentialsError()
            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.api_base,
                max_retries=0,
            )
        return self._client

    async def close(self) -> None:
        """Close the client's connection pool, if one was built."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _require_credentials(self) -> None:
        if self._client is None and not self.config.api_key:
            raise MissingCredentialsError()

    async def evaluate(self, request: EvaluateRequest) -> EvaluationReport:
        """Grade one answer sheet and return the parsed report."""
        self._require_credentials()
        if request.source_doc is None:
            raise EvaluationError("Missing source document.")

        messages = [
            {"role": "system", "content": build_system_instruction(request.mode)},
            {
                "role": "user",
                "content": build_prompt_parts(request.source_doc, request.dirty_feedback_doc, request.mode),
            },
        ]
        response_format = {
            "type": "json_schema",
            "json_schema": {"name": "evaluation_report", "schema": REPORT_SCHEMA},
        }

        logger.info(
            f"Evaluating {request.source_doc.name or 'source document'} "
            f"(mode: {request.mode.value}, model: {self.config.model_name})"
        )
        raw = await self._generate(messages, response_format)
        report = parse_report(raw)
        logger.info(
            f"Report generated for {report.student_name or 'unknown student'}: "
            f"{len(report.questions)} questions, {len(report.flagged_questions)} flagged"
        )
        return report

    async def complete_prompt(self, prompt: Union[str, List[Dict[str, Any]]]) -> str:
        """Send a caller-built prompt and return the model's JSON text unparsed."""
        self._require_credentials()
        if not prompt:
            raise EvaluationError("Missing prompt data.")

        messages = self._prompt_messages(prompt)
        return await self._generate(messages, {"type": "json_object"})

    @staticmethod
    def _prompt_messages(prompt: Union[str, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        if isinstance(prompt, str):
            return [{"role": "user", "content": prompt}]
        if isinstance(prompt, list) and all(isinstance(m, dict) for m in prompt):
            # Already chat messages
            if all("role" in m for m in prompt):
                return prompt
            return [{"role": "user", "content": prompt}]
        raise EvaluationError("Prompt must be a string or a list of message objects.")

    async def _generate(self, messages: List[Dict[str, Any]], response_format: Dict[str, Any]) -> str:
        """Call the model, racing it against the configured timeout."""
        kwargs: Dict[str, Any] = {
            "model": self.config.model_name,
            "messages": messages,
            "response_format": response_format,
        }
        if self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Model call exceeded {self.config.timeout_seconds:g}s")
            raise EvaluationTimeoutError(self.config.timeout_seconds) from e
        except openai.APIError as e:
            raise UpstreamError(f"AI service error: {str(e)}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
