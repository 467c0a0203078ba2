"""
OCR package for odometer text extraction and disambiguation.

This package provides:
- BaseOCRService: Abstract interface for OCR engines
- TesseractOCRService: Tesseract-based OCR implementation
- recognize_stream: Async progress-streaming wrapper around an engine
- normalize_text: Digit look-alike cleanup of raw OCR text
- extract_candidates: Numeric candidate extraction
- resolve_reading: Odometer reading disambiguation
"""

from src.ocr.base_ocr import BaseOCRService, ProgressCallback
from src.ocr.tesseract_service import TesseractOCRService
from src.ocr.recognition import (
    recognize_stream,
    ProgressEvent,
    TextEvent,
    ErrorEvent,
    RecognitionEvent,
)
from src.ocr.text_normalizer import normalize_text, OCR_DIGIT_SUBSTITUTIONS
from src.ocr.candidate_extractor import Candidate, extract_candidates
from src.ocr.reading_resolver import ReadingResolution, resolve_reading, read_odometer, is_plausible

__all__ = [
    'BaseOCRService',
    'ProgressCallback',
    'TesseractOCRService',
    'recognize_stream',
    'ProgressEvent',
    'TextEvent',
    'ErrorEvent',
    'RecognitionEvent',
    'normalize_text',
    'OCR_DIGIT_SUBSTITUTIONS',
    'Candidate',
    'extract_candidates',
    'ReadingResolution',
    'resolve_reading',
    'read_odometer',
    'is_plausible',
]
