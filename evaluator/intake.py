"""
Document Intake Service

Turns an uploaded answer sheet or faculty-notes file into a
:class:`~evaluator.models.DocumentPayload` the evaluator can send to the
model. Word documents and text-layer PDFs are reduced to text; scans,
photographs and anything else travel as base64-encoded bytes.

Example:
    >>> intake = DocumentIntake()
    >>> with open('answer_sheet.pdf', 'rb') as f:
    ...     payload = await intake.process_file(f, 'answer_sheet.pdf')
"""

import base64
import logging
from contextlib import asynccontextmanager
from typing import BinaryIO, Optional

from .adapters import (
    get_adapter,
    guess_mime_type,
    ContentProcessingError,
    InvalidFileError,
    DOCX_MIME_TYPE,
)
from .adapters.docx_adapter import DocxAdapter
from .adapters.image_adapter import ImageAdapter
from .adapters.pdf_adapter import PDFAdapter
from .adapters.text_adapter import TextAdapter
from .models import DocumentPayload

logger = logging.getLogger(__name__)


class DocumentIntake:
    """
    Prepares uploaded files for evaluation.

    Args:
        max_file_size: Maximum allowed file size in bytes (default: 50MB).
        min_pdf_text_chars: A PDF whose extracted text is not longer than
            this is treated as a scan and sent as binary.
    """

    def __init__(self, max_file_size: int = 50 * 1024 * 1024, min_pdf_text_chars: int = 150):
        self.max_file_size = max_file_size
        self.min_pdf_text_chars = min_pdf_text_chars

    @asynccontextmanager
    async def _get_file_handle(self, file: BinaryIO):
        """Context manager to ensure proper file handle management."""
        try:
            file.seek(0)
            yield file
        finally:
            file.seek(0)

    def _file_size(self, file: BinaryIO) -> int:
        current_pos = file.tell()
        file.seek(0, 2)
        size = file.tell()
        file.seek(current_pos)
        return size

    async def _validate_file_size(self, file: BinaryIO, filename: str) -> int:
        """Validate that the file is non-empty and within allowed limits."""
        size = self._file_size(file)
        if size == 0:
            raise InvalidFileError(filename=filename, message=f"File is empty: {filename}")
        if size > self.max_file_size:
            raise ContentProcessingError(
                f"File size {size} exceeds maximum allowed size of {self.max_file_size} bytes"
            )
        return size

    @staticmethod
    def is_docx(filename: str, content_type: Optional[str] = None) -> bool:
        return filename.lower().endswith('.docx') or content_type == DOCX_MIME_TYPE

    @staticmethod
    def is_pdf(filename: str, content_type: Optional[str] = None) -> bool:
        return filename.lower().endswith('.pdf') or content_type == 'application/pdf'

    async def process_file(
        self,
        file: BinaryIO,
        filename: str,
        content_type: Optional[str] = None,
    ) -> DocumentPayload:
        """
        Convert an uploaded file into a document payload.

        Args:
            file: File-like object containing the file data.
            filename: Original filename (used for type detection).
            content_type: MIME type declared by the uploader, if any.

        Returns:
            DocumentPayload holding either ``text`` or ``base64`` + ``mime_type``.

        Raises:
            InvalidFileError: If the file is empty, corrupted or not what its
                name claims.
            ContentProcessingError: For oversized files and other failures.
        """
        filename = filename or 'unnamed_file'
        size = await self._validate_file_size(file, filename)
        logger.info(f"Processing upload: {filename} (size: {size} bytes)")

        if self.is_docx(filename, content_type):
            return await self._process_docx(file, filename)

        if self.is_pdf(filename, content_type):
            text = await self._try_pdf_text(file, filename)
            if text is not None:
                return DocumentPayload(name=filename, text=text, is_docx=False)

        adapter = get_adapter(filename, content_type)
        if isinstance(adapter, TextAdapter):
            async with self._get_file_handle(file) as f:
                if not await adapter.is_valid(f):
                    raise InvalidFileError(filename=filename, message=f"Text file is not valid UTF-8: {filename}")
                text = await adapter.extract_text(f)
            return DocumentPayload(name=filename, text=text, is_docx=False)

        return await self._encode_binary(file, filename, content_type, adapter)

    async def _process_docx(self, file: BinaryIO, filename: str) -> DocumentPayload:
        logger.info(f"Parsing DOCX: {filename}")
        adapter = DocxAdapter()
        async with self._get_file_handle(file) as f:
            if not await adapter.is_valid(f):
                raise InvalidFileError(filename=filename, message=f"File is not a valid DOCX document: {filename}")
            text = await adapter.extract_text(f)
        return DocumentPayload(name=filename, text=text, is_docx=True)

    async def _try_pdf_text(self, file: BinaryIO, filename: str) -> Optional[str]:
        """Return the PDF's text layer, or None when the file should go as binary."""
        logger.info(f"Extracting PDF: {filename}")
        adapter = PDFAdapter()
        try:
            async with self._get_file_handle(file) as f:
                if not await adapter.is_valid(f):
                    logger.warning(f"{filename} has no PDF header; sending as binary")
                    return None
                text = await adapter.extract_text(f)
        except ContentProcessingError as e:
            logger.warning(f"PDF extraction fallback to vision for {filename}: {e}")
            return None

        if len(text.strip()) > self.min_pdf_text_chars:
            return text

        logger.info(f"PDF {filename} has little extractable text; sending as binary")
        return None

    async def _encode_binary(self, file, filename, content_type, adapter) -> DocumentPayload:
        logger.info(f"Encoding visual data: {filename}")
        mime_type = guess_mime_type(filename, content_type) or 'application/octet-stream'

        if isinstance(adapter, ImageAdapter):
            async with self._get_file_handle(file) as f:
                if not await adapter.is_valid(f):
                    raise InvalidFileError(filename=filename, message=f"File is not a readable image: {filename}")
                mime_type = await adapter.detect_mime_type(f) or mime_type

        async with self._get_file_handle(file) as f:
            encoded = base64.b64encode(f.read()).decode('ascii')

        return DocumentPayload(
            name=filename,
            base64=encoded,
            mime_type=mime_type,
            is_docx=False,
        )
