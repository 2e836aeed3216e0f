"""
Content adapters for the file types an evaluator can upload.

This module provides a base adapter class and specific implementations
for answer sheets and faculty notes (PDF, DOCX, plain text and images).
"""

from abc import ABC, abstractmethod
from typing import Optional, List, BinaryIO
import mimetypes

DOCX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

# Not every platform's mime.types knows about Office Open XML
mimetypes.add_type(DOCX_MIME_TYPE, '.docx')


class ContentProcessingError(Exception):
    """Base exception for content processing errors."""
    pass

class InvalidFileError(ContentProcessingError):
    """Raised when a file is invalid or corrupted."""
    def __init__(self, filename: str, message: str = ""):
        self.filename = filename
        self.message = message or f"Invalid or corrupted file: {filename}"
        super().__init__(self.message)

class ContentAdapter(ABC):
    """Abstract base class for content processing adapters."""

    @classmethod
    @abstractmethod
    def supported_mime_types(cls) -> List[str]:
        """Return a list of MIME types this adapter can handle."""
        pass

    @abstractmethod
    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Extract text content from the file."""
        pass

    @abstractmethod
    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is valid for this adapter."""
        pass


def guess_mime_type(filename: Optional[str], content_type: Optional[str] = None) -> Optional[str]:
    """Guess a MIME type from the file name, falling back to the declared type."""
    mime_type = None
    if filename:
        mime_type, _ = mimetypes.guess_type(filename)
    if not mime_type and content_type and content_type != 'application/octet-stream':
        mime_type = content_type.split(';')[0].strip().lower()
    return mime_type


def get_adapter(file_path: str, content_type: Optional[str] = None) -> Optional[ContentAdapter]:
    """
    Factory function to get the appropriate adapter for a file.

    Args:
        file_path: Name or path of the file to process
        content_type: MIME type declared by the uploader, used when the
            extension does not identify the file

    Returns:
        An instance of the appropriate ContentAdapter subclass, or None if no adapter is found.
    """
    # Lazy import to avoid circular imports
    from .text_adapter import TextAdapter
    from .pdf_adapter import PDFAdapter
    from .docx_adapter import DocxAdapter
    from .image_adapter import ImageAdapter

    mime_type = guess_mime_type(file_path, content_type)
    if not mime_type:
        return None

    # Try to find an adapter that supports this MIME type
    for adapter_cls in [TextAdapter, PDFAdapter, DocxAdapter, ImageAdapter]:
        if mime_type in adapter_cls.supported_mime_types():
            return adapter_cls()

    return None
