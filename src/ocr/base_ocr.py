"""
Base OCR service interface.

Defines the contract the odometer scanner requires from a recognition
engine, allowing for swappable implementations (Tesseract, EasyOCR, etc.)
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from src.preprocessing import PreparedImage

ProgressCallback = Callable[[float], None]
"""Receives engine progress as a fraction in [0.0, 1.0]."""


class BaseOCRService(ABC):
    """
    Abstract base class for OCR services.

    Implementations receive an already prepared (grayscale, contrast
    stretched) image and return the raw recognized text. Progress reporting
    is best effort: engines may report unevenly or not at all.

    Example usage:
        ocr = TesseractOCRService()
        text = ocr.recognize(prepared, lang='eng', on_progress=print)
    """

    @abstractmethod
    def recognize(
        self,
        image: PreparedImage,
        lang: str = 'eng',
        on_progress: Optional[ProgressCallback] = None
    ) -> str:
        """
        Recognize text in a prepared image.

        This call may block for several seconds; callers run it off the
        event loop.

        Args:
            image: Prepared image from the preprocessor
            lang: Language code (default 'eng')
            on_progress: Optional callback receiving progress fractions

        Returns:
            Raw recognized text (possibly empty)

        Raises:
            RecognitionError: If the engine fails
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the OCR service is properly installed and available.

        Returns:
            True if the service can be used, False otherwise
        """
        pass
