"""
Text file adapter for answer keys and notes typed as plain text.
"""

from typing import List, BinaryIO
from . import ContentAdapter, ContentProcessingError

class TextAdapter(ContentAdapter):
    """Adapter for plain text files."""

    @classmethod
    def supported_mime_types(cls) -> List[str]:
        return [
            'text/plain',
            'text/markdown',
            'text/csv',
        ]

    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Extract text content from a text file."""
        try:
            file.seek(0)
            # utf-8-sig drops a leading BOM written by some editors
            return file.read().decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise ContentProcessingError(f"Failed to decode text file: {str(e)}")
        except Exception as e:
            raise ContentProcessingError(f"Error processing text file: {str(e)}")

    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file decodes as UTF-8."""
        try:
            file.seek(0)
            file.read().decode('utf-8')
            return True
        except UnicodeDecodeError:
            return False
        finally:
            file.seek(0)
