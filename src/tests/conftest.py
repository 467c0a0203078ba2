"""
src/tests/conftest.py: Pytest configuration and shared fixtures

Provides:
- Synthetic odometer photos (encoded bytes and CapturedImage)
- A scripted fake OCR engine
- Temporary file management
- Logging configuration
"""

import io
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest
from PIL import Image, ImageDraw

from src.errors import RecognitionError
from src.ocr.base_ocr import BaseOCRService
from src.preprocessing import CapturedImage, PreparedImage

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class FakeOCRService(BaseOCRService):
    """
    OCR engine that returns scripted text.

    Args:
        text: Text returned by recognize()
        progress: Fractions reported through on_progress, in order
        error: Exception raised instead of returning text
    """

    def __init__(self, text: str = "", progress: Optional[List[float]] = None, error: Optional[Exception] = None):
        self.text = text
        self.progress = progress or []
        self.error = error
        self.calls = []

    def recognize(self, image, lang='eng', on_progress=None):
        self.calls.append((image, lang))
        for fraction in self.progress:
            if on_progress:
                on_progress(fraction)
        if self.error is not None:
            raise self.error
        return self.text

    def is_available(self) -> bool:
        return True


def encode_image(img: Image.Image, fmt: str = 'PNG') -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def solid_png(width: int, height: int, color=(128, 128, 128)) -> bytes:
    """Lossless single-color photo"""
    return encode_image(Image.new('RGB', (width, height), color=color))


@pytest.fixture
def temp_dir():
    """
    Function-scoped temporary directory

    Yields:
        Path to temporary directory (cleaned up after test)
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path

    # Cleanup
    if temp_path.exists():
        shutil.rmtree(temp_path)


@pytest.fixture
def odometer_photo_bytes():
    """
    JPEG photo of a dashboard with a digit window

    Returns:
        Encoded image bytes
    """
    img = Image.new('RGB', (1600, 900), color=(30, 30, 40))
    draw = ImageDraw.Draw(img)

    # Odometer window
    draw.rectangle([500, 380, 1100, 520], fill=(230, 230, 220), outline='black', width=4)
    draw.text((560, 430), "045210 km", fill='black')

    # Trip counter below
    draw.text((600, 600), "TRIP 123.4", fill='white')

    return encode_image(img, 'JPEG')


@pytest.fixture
def captured_image(odometer_photo_bytes):
    """CapturedImage wrapping the synthetic odometer photo"""
    return CapturedImage(data=odometer_photo_bytes, width=1600, height=900, source='test.jpg')


@pytest.fixture
def corrupt_image():
    """CapturedImage whose bytes are not an image"""
    return CapturedImage(data=b'not an image at all', width=0, height=0, source='corrupt.jpg')


@pytest.fixture
def odometer_photo_file(temp_dir, odometer_photo_bytes):
    """Synthetic odometer photo saved to disk"""
    path = temp_dir / "odometer.jpg"
    path.write_bytes(odometer_photo_bytes)
    return path


@pytest.fixture
def prepared_image():
    """Small blank PreparedImage for engine-level tests"""
    pixels = np.full((40, 120), 255, dtype=np.uint8)
    pixels.flags.writeable = False
    return PreparedImage(pixels=pixels, original_size=(120, 40))


@pytest.fixture
def fake_engine():
    """Engine reading a dashboard with odometer and trip counter"""
    return FakeOCRService(text="Total 45210 km\nTrip  123", progress=[0.0, 0.25, 0.5, 1.0])


@pytest.fixture
def failing_engine():
    """Engine that always fails"""
    return FakeOCRService(error=RecognitionError("engine crashed"))


# Pytest hooks

def pytest_configure(config):
    """
    Pytest configuration hook

    Args:
        config: Pytest config object
    """
    # Register custom markers
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (full session or API)")
    config.addinivalue_line("markers", "tesseract: Tests requiring a Tesseract installation")


def pytest_collection_modifyitems(config, items):
    """
    Modify test items during collection

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    # Auto-mark tests based on naming conventions
    for item in items:
        if 'integration' in item.nodeid.lower():
            item.add_marker(pytest.mark.integration)
