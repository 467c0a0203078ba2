"""
Tesseract OCR service implementation.

Uses pytesseract to read text from prepared odometer photos.
"""

import logging
import platform
from pathlib import Path
from typing import Optional

from src.ocr.base_ocr import BaseOCRService, ProgressCallback
from src.preprocessing import PreparedImage
from src.errors import RecognitionError
from src.config import OCR_PSM_MODE, TESSERACT_CMD

logger = logging.getLogger(__name__)

# Lazy import pytesseract to avoid import errors if not installed
_pytesseract = None

# Common Tesseract install locations on Windows
WINDOWS_TESSERACT_PATHS = [
    r"C:\Program Files\Tesseract-OCR\tesseract.exe",
    r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
    r"C:\ProgramData\chocolatey\bin\tesseract.exe",
]


def _find_tesseract_windows() -> Optional[str]:
    """Find Tesseract executable on Windows."""
    for path in WINDOWS_TESSERACT_PATHS:
        if Path(path).exists():
            logger.info(f"Found Tesseract at: {path}")
            return path
    return None


def _get_pytesseract():
    """Lazy load pytesseract module and configure path if needed."""
    global _pytesseract
    if _pytesseract is None:
        try:
            import pytesseract

            # On Windows, auto-configure Tesseract path if not in PATH
            if platform.system() == "Windows":
                tesseract_path = _find_tesseract_windows()
                if tesseract_path:
                    pytesseract.pytesseract.tesseract_cmd = tesseract_path
                    logger.info(f"Configured pytesseract to use: {tesseract_path}")

            _pytesseract = pytesseract
        except ImportError:
            raise ImportError(
                "pytesseract is required for OCR. Install with: pip install pytesseract\n"
                "Also ensure Tesseract is installed on your system:\n"
                "  Windows: choco install tesseract or download from GitHub\n"
                "  Linux: apt-get install tesseract-ocr\n"
                "  macOS: brew install tesseract"
            )
    return _pytesseract


class TesseractOCRService(BaseOCRService):
    """
    Tesseract-based OCR service for odometer photos.

    Tesseract runs as a single subprocess call and exposes no intermediate
    progress, so this service reports 0.0 when it starts and 1.0 when the
    text comes back.

    Usage:
        ocr = TesseractOCRService()
        text = ocr.recognize(prepared_image)
    """

    # Valid Tesseract PSM modes (0-13)
    VALID_PSM_MODES = range(0, 14)

    def __init__(self, tesseract_cmd: Optional[str] = TESSERACT_CMD, psm: int = OCR_PSM_MODE):
        """
        Initialize the Tesseract OCR service.

        Args:
            tesseract_cmd: Optional path to tesseract executable.
                          If not provided, uses system PATH.
            psm: Page segmentation mode passed to Tesseract
        """
        if psm not in self.VALID_PSM_MODES:
            raise ValueError(f"Invalid PSM mode: {psm}. Must be 0-13.")

        self._tesseract_cmd = tesseract_cmd
        self.psm = psm

        if tesseract_cmd:
            pytesseract = _get_pytesseract()
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def is_available(self) -> bool:
        """Check if Tesseract is properly installed."""
        try:
            pytesseract = _get_pytesseract()
            version = pytesseract.get_tesseract_version()
            logger.info(f"Tesseract version: {version}")
            return True
        except Exception as e:
            logger.warning(f"Tesseract not available: {e}")
            return False

    def recognize(
        self,
        image: PreparedImage,
        lang: str = 'eng',
        on_progress: Optional[ProgressCallback] = None
    ) -> str:
        if image is None or image.pixels.size == 0:
            raise RecognitionError("Empty image provided to OCR")

        if on_progress:
            on_progress(0.0)

        config = f'--psm {self.psm} --oem 3'
        try:
            pytesseract = _get_pytesseract()
            text = pytesseract.image_to_string(image.pixels, lang=lang, config=config)
        except Exception as e:
            logger.error(f"Tesseract failed: {e}")
            raise RecognitionError(f"Tesseract failed: {e}") from e

        if on_progress:
            on_progress(1.0)

        logger.debug(f"Tesseract raw output: {text!r}")
        return text
