"""Runtime configuration for the evaluator service."""

import os
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL_NAME = "gemini-3-flash-preview"


class EvaluatorConfig(BaseModel):
    """Configuration for the model endpoint and the upload pipeline.

    Any OpenAI-compatible endpoint can be used by setting `api_base`; the
    default points at the Gemini compatibility layer.
    """
    api_key: Optional[str] = Field(
        default=None,
        description="API key for the generation endpoint"
    )
    api_base: str = Field(
        default=DEFAULT_API_BASE,
        description="Base URL of the OpenAI-compatible generation API"
    )
    model_name: str = Field(
        default=DEFAULT_MODEL_NAME,
        description="Model name/identifier"
    )
    timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        description="Upper bound in seconds for a single generation call"
    )
    temperature: Optional[float] = Field(
        default=None,
        description="Sampling temperature (0-2); provider default when unset"
    )
    max_file_size: int = Field(
        default=50 * 1024 * 1024,
        description="Maximum accepted upload size in bytes"
    )
    min_pdf_text_chars: int = Field(
        default=150,
        description="Minimum extracted characters for a PDF to be sent as text"
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser"
    )

    @classmethod
    def from_env(cls) -> "EvaluatorConfig":
        """Build a configuration from environment variables."""
        values = {
            "api_key": os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY") or None,
            "api_base": os.getenv("MODEL_API_BASE", DEFAULT_API_BASE),
            "model_name": os.getenv("MODEL_NAME", DEFAULT_MODEL_NAME),
            "timeout_seconds": float(os.getenv("EVALUATION_TIMEOUT", "8")),
            "max_file_size": int(os.getenv("MAX_FILE_SIZE", str(50 * 1024 * 1024))),
            "min_pdf_text_chars": int(os.getenv("MIN_PDF_TEXT_CHARS", "150")),
            "cors_origins": [
                o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
            ],
        }
        temperature = os.getenv("MODEL_TEMPERATURE")
        if temperature:
            values["temperature"] = float(temperature)
        return cls(**values)
