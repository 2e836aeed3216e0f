"""
Image file adapter for scanned or photographed answer sheets.

Handwritten sheets are not OCR'd locally: the model reads them directly,
so this adapter only validates the image and reports its properties.
"""

import logging
from typing import List, Dict, BinaryIO, Any, Optional

from PIL import Image, UnidentifiedImageError

from . import ContentAdapter, ContentProcessingError

logger = logging.getLogger(__name__)

class ImageAdapter(ContentAdapter):
    """Adapter for image files sent to the model as inline data."""

    SUPPORTED_TYPES = [
        'image/jpeg',
        'image/png',
        'image/gif',
        'image/webp',
        'image/bmp',
        'image/tiff',
    ]

    # PIL format name -> MIME type sent to the model
    FORMAT_MIME_TYPES = {
        'JPEG': 'image/jpeg',
        'PNG': 'image/png',
        'GIF': 'image/gif',
        'WEBP': 'image/webp',
        'BMP': 'image/bmp',
        'TIFF': 'image/tiff',
    }

    @classmethod
    def supported_mime_types(cls) -> List[str]:
        return cls.SUPPORTED_TYPES

    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Images carry no text layer; the model reads them as binary parts."""
        return ""

    async def extract_metadata(self, file: BinaryIO) -> Dict[str, Any]:
        """Extract format and dimensions from an image."""
        try:
            file.seek(0)
            with Image.open(file) as img:
                return {
                    'format': img.format,
                    'mime_type': self.FORMAT_MIME_TYPES.get(img.format or ''),
                    'mode': img.mode,
                    'width': img.width,
                    'height': img.height,
                }
        except Exception as e:
            raise ContentProcessingError(f"Failed to extract image metadata: {str(e)}")
        finally:
            file.seek(0)

    async def detect_mime_type(self, file: BinaryIO) -> Optional[str]:
        """Return the MIME type matching the image's actual encoding, if known."""
        try:
            meta = await self.extract_metadata(file)
        except ContentProcessingError:
            return None
        return meta.get('mime_type')

    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is a readable image."""
        try:
            file.seek(0)
            with Image.open(file) as img:
                img.verify()
            return True
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
            logger.debug(f"Failed to load image: {str(e)}")
            return False
        finally:
            file.seek(0)
