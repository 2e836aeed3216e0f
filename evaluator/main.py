import io
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import __version__
from .adapters import ContentProcessingError
from .config import EvaluatorConfig
from .intake import DocumentIntake
from .models import EvaluateRequest, EvaluationMode, EvaluationResponse, PromptRequest
from .service import EvaluationError, EvaluationService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_ERROR = "An unexpected error occurred during AI audit."

config = EvaluatorConfig.from_env()

# Initialize evaluation service; its model client is shared across requests
evaluation_service = EvaluationService(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the shared model client on shutdown."""
    logger.info(f"Starting Anatomy Guru Evaluator (model: {config.model_name})")
    yield
    logger.info("Shutting down Anatomy Guru Evaluator...")
    await evaluation_service.close()


# Initialize FastAPI app
app = FastAPI(
    title="Anatomy Guru Evaluator",
    description="AI-generated structured grading reports for medical answer sheets",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def get_service() -> EvaluationService:
    return evaluation_service


def get_intake() -> DocumentIntake:
    return DocumentIntake(
        max_file_size=config.max_file_size,
        min_pdf_text_chars=config.min_pdf_text_chars,
    )


def envelope(response: EvaluationResponse, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.to_dict())


def error_message(exc: Exception) -> str:
    """Turn any failure into the message shown to the evaluator."""
    if isinstance(exc, ValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in exc.errors()
        )
        return f"Invalid request: {problems}"
    if isinstance(exc, json.JSONDecodeError):
        return "Invalid request: body is not valid JSON."
    return str(exc) or DEFAULT_ERROR


def error_envelope(exc: Exception, context: str) -> JSONResponse:
    if isinstance(exc, (EvaluationError, ContentProcessingError, ValidationError, json.JSONDecodeError)):
        logger.error(f"{context}: {exc}")
    else:
        logger.error(f"{context}: {str(exc)}", exc_info=True)
    # 200 with success=false so browser clients need only one code path
    return envelope(EvaluationResponse.fail(error_message(exc)))


async def read_json_body(request: Request) -> dict:
    raw = await request.body()
    data = json.loads(raw or b"{}")
    if not isinstance(data, dict):
        raise EvaluationError("Invalid request: body must be a JSON object.")
    return data


@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": "Anatomy Guru Evaluator",
        "status": "running",
        "version": __version__,
        "model": config.model_name,
    }

@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}

@app.post("/evaluate")
async def evaluate(request: Request, service: EvaluationService = Depends(get_service)):
    """
    Generate a report from prepared document payloads.

    Body: ``{"sourceDoc": {...}, "dirtyFeedbackDoc": {...} | null, "mode": "with-manual"}``.

    Returns:
        ``{"success": true, "output": <report>}`` or ``{"success": false, "error": "..."}``
    """
    try:
        body = EvaluateRequest.model_validate(await read_json_body(request))
        report = await service.evaluate(body)
        return envelope(EvaluationResponse.ok(report.model_dump(by_alias=True)))
    except Exception as e:
        return error_envelope(e, "Evaluation failed")

@app.api_route("/evaluate", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def evaluate_method_not_allowed():
    return envelope(EvaluationResponse.fail("Method Not Allowed"), status.HTTP_405_METHOD_NOT_ALLOWED)

@app.post("/evaluate/upload")
async def evaluate_upload(
    source_doc: Optional[UploadFile] = File(None),
    faculty_notes: Optional[UploadFile] = File(None),
    mode: str = Form(EvaluationMode.WITH_MANUAL.value),
    service: EvaluationService = Depends(get_service),
    intake: DocumentIntake = Depends(get_intake),
):
    """
    Upload raw files, prepare them server-side and generate a report.

    Args:
        source_doc: The student answer sheet (question paper, key and answers)
        faculty_notes: Manually written faculty feedback (required in with-manual mode)
        mode: ``with-manual`` or ``without-manual``
    """
    try:
        try:
            eval_mode = EvaluationMode(mode)
        except ValueError:
            raise EvaluationError(f"Unknown evaluation mode: {mode}")

        if source_doc is None or not source_doc.filename:
            raise EvaluationError("Please upload the Student Answer Sheet.")
        has_notes = faculty_notes is not None and bool(faculty_notes.filename)
        if eval_mode == EvaluationMode.WITH_MANUAL and not has_notes:
            raise EvaluationError("Please upload Faculty Notes for manual feedback mode.")

        source_payload = await _intake_upload(intake, source_doc)
        notes_payload = None
        if eval_mode == EvaluationMode.WITH_MANUAL:
            notes_payload = await _intake_upload(intake, faculty_notes)

        report = await service.evaluate(EvaluateRequest(
            source_doc=source_payload,
            dirty_feedback_doc=notes_payload,
            mode=eval_mode,
        ))
        return envelope(EvaluationResponse.ok(report.model_dump(by_alias=True)))
    except Exception as e:
        return error_envelope(e, "Upload evaluation failed")
    finally:
        for upload in (source_doc, faculty_notes):
            if upload is not None:
                await upload.close()

@app.post("/evaluate/prompt")
async def evaluate_prompt(request: Request, service: EvaluationService = Depends(get_service)):
    """
    Forward a caller-built prompt to the model and return its raw JSON text.

    Body: ``{"prompt": "..."}``
    """
    try:
        body = PromptRequest.model_validate(await read_json_body(request))
        output = await service.complete_prompt(body.prompt)
        return envelope(EvaluationResponse.ok(output))
    except Exception as e:
        return error_envelope(e, "Prompt evaluation failed")

@app.post("/intake")
async def intake_file(
    file: UploadFile = File(...),
    intake: DocumentIntake = Depends(get_intake),
):
    """
    Prepare a single uploaded file as a document payload for /evaluate.

    Returns:
        The payload: ``name`` plus either ``text`` or ``base64`` and ``mimeType``.
    """
    try:
        payload = await _intake_upload(intake, file)
        return payload.model_dump(by_alias=True, exclude_none=True)

    except ContentProcessingError as e:
        logger.error(f"Error processing file {file.filename}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to process file: {str(e)}"
        )
    finally:
        await file.close()


async def _intake_upload(intake: DocumentIntake, upload: UploadFile):
    contents = await upload.read()
    return await intake.process_file(
        file=io.BytesIO(contents),
        filename=upload.filename,
        content_type=upload.content_type,
    )


def run():
    """Command line entry point: serve the API with uvicorn."""
    import uvicorn
    import argparse

    parser = argparse.ArgumentParser(description="Anatomy Guru Evaluator")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8003, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    uvicorn.run(
        "evaluator.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )


if __name__ == "__main__":
    run()
