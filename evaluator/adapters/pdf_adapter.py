"""
PDF file adapter for answer sheets and faculty notes.
"""

from typing import List, BinaryIO

import fitz  # PyMuPDF

from . import ContentAdapter, ContentProcessingError

class PDFAdapter(ContentAdapter):
    """Adapter for PDF files.

    Text is returned page by page, each page prefixed with a ``[P<n>]``
    marker so the model can cite where an answer was found.
    """

    @classmethod
    def supported_mime_types(cls) -> List[str]:
        return [
            'application/pdf',
            'application/x-pdf',
            'application/acrobat',
            'application/vnd.pdf',
            'text/pdf',
            'text/x-pdf'
        ]

    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Extract text content from a PDF file."""
        try:
            file.seek(0)
            pdf_data = file.read()

            text_parts = []
            with fitz.open(stream=pdf_data, filetype="pdf") as doc:
                for page_num in range(len(doc)):
                    page = doc.load_page(page_num)
                    words = [w[4] for w in page.get_text("words")]
                    text_parts.append(f"[P{page_num + 1}] {' '.join(words)}\n")

            return "".join(text_parts)

        except Exception as e:
            raise ContentProcessingError(f"Error extracting text from PDF: {str(e)}")

    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is a valid PDF."""
        try:
            file.seek(0)
            # Check PDF magic number
            magic = file.read(4)
            return magic == b'%PDF'
        except Exception:
            return False
        finally:
            file.seek(0)
