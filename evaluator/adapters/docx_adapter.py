"""
DOCX file adapter for typed answer sheets and faculty notes.
"""

import io
import zipfile
import xml.etree.ElementTree as ET
from typing import List, BinaryIO
from . import ContentAdapter, ContentProcessingError, DOCX_MIME_TYPE

W_NS = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'

class DocxAdapter(ContentAdapter):
    """Adapter for DOCX files."""

    REQUIRED_PARTS = ['[Content_Types].xml', '_rels/.rels', 'word/document.xml']

    @classmethod
    def supported_mime_types(cls) -> List[str]:
        return [
            DOCX_MIME_TYPE,
            'application/vnd.ms-word.document.macroenabled.12',
        ]

    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Extract the raw paragraph text of a DOCX file."""
        try:
            file.seek(0)
            docx_io = io.BytesIO(file.read())
            return self._extract_text_from_docx(docx_io)
        except Exception as e:
            raise ContentProcessingError(f"Error extracting text from DOCX: {str(e)}")

    def _extract_text_from_docx(self, docx_io):
        """Helper method to extract text from a DOCX file."""
        text_parts = []

        with zipfile.ZipFile(docx_io) as docx_zip:
            if 'word/document.xml' not in docx_zip.namelist():
                return ''
            with docx_zip.open('word/document.xml') as doc_file:
                root = ET.parse(doc_file).getroot()

        for para in root.iter(f'{{{W_NS}}}p'):
            para_text = []
            for node in para.iter():
                if node.tag == f'{{{W_NS}}}t' and node.text:
                    para_text.append(node.text)
                elif node.tag == f'{{{W_NS}}}tab':
                    para_text.append('\t')
                elif node.tag in (f'{{{W_NS}}}br', f'{{{W_NS}}}cr'):
                    para_text.append('\n')
            joined = ''.join(para_text)
            if joined.strip():
                text_parts.append(joined)

        return '\n\n'.join(text_parts)

    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is a valid DOCX package."""
        try:
            file.seek(0)
            # ZIP local file header
            if file.read(4) != b'PK\x03\x04':
                return False

            file.seek(0)
            with zipfile.ZipFile(io.BytesIO(file.read())) as zipf:
                names = zipf.namelist()
                return all(f in names for f in self.REQUIRED_PARTS)

        except Exception:
            return False
        finally:
            file.seek(0)
