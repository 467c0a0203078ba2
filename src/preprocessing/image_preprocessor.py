"""
src/preprocessing/image_preprocessor.py: Image preprocessing for odometer OCR

Normalizes a captured photo into a form friendlier to OCR:
bounded resize, luma grayscale, and a linear contrast stretch around mid-gray.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import cv2
import numpy as np

from src.config import PREPROCESS_MAX_DIMENSION, CONTRAST_FACTOR, CONTRAST_MIDPOINT
from src.errors import DecodeError

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


@dataclass(frozen=True)
class CapturedImage:
    """A single still photo as delivered by the capture source."""

    data: bytes = field(repr=False)
    """Encoded image bytes (JPEG, PNG, ...)."""

    width: int
    height: int

    source: Optional[str] = None
    """Where the photo came from (filename, 'upload', ...), for logging only."""

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class PreparedImage:
    """Grayscale, contrast-adjusted, resized pixel buffer ready for OCR."""

    pixels: np.ndarray = field(repr=False)
    """Read-only uint8 array of shape (height, width)."""

    original_size: Tuple[int, int] = (0, 0)
    """(width, height) of the decoded photo before resizing."""

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def to_png_bytes(self) -> bytes:
        """Encode the prepared pixels as PNG (lossless, deterministic)."""
        ok, buffer = cv2.imencode('.png', self.pixels)
        if not ok:
            raise DecodeError("Could not encode prepared image as PNG")
        return buffer.tobytes()


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes into a BGR array.

    Raises:
        DecodeError: If the bytes are empty or not a readable image
    """
    if not data:
        raise DecodeError("Captured image is empty")

    try:
        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(f"Could not decode captured image: {e}") from e

    if image is None or image.size == 0:
        raise DecodeError("Could not decode captured image: unsupported or corrupt data")

    return image


def compute_target_size(width: int, height: int, max_dimension: int = PREPROCESS_MAX_DIMENSION) -> Tuple[int, int]:
    """
    Size that fits the longer side within max_dimension, preserving aspect ratio.

    Never upscales: images already within bounds keep their size.
    """
    longer = max(width, height)
    if longer <= max_dimension:
        return width, height

    scale = max_dimension / longer
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def to_contrast_gray(
    bgr: np.ndarray,
    factor: float = CONTRAST_FACTOR,
    midpoint: int = CONTRAST_MIDPOINT
) -> np.ndarray:
    """
    Convert BGR pixels to luma and stretch contrast around the midpoint.

    gray = 0.299R + 0.587G + 0.114B
    out  = clamp(factor * (gray - midpoint) + midpoint, 0, 255)
    """
    pixels = bgr.astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    gray = wr * pixels[:, :, 2] + wg * pixels[:, :, 1] + wb * pixels[:, :, 0]

    stretched = factor * (gray - midpoint) + midpoint
    return np.rint(np.clip(stretched, 0, 255)).astype(np.uint8)


def prepare_image(
    captured: CapturedImage,
    max_dimension: int = PREPROCESS_MAX_DIMENSION,
    contrast_factor: float = CONTRAST_FACTOR
) -> PreparedImage:
    """
    Turn a captured photo into a PreparedImage.

    Deterministic: the same CapturedImage always yields byte-identical pixels.

    Args:
        captured: Photo from the capture source
        max_dimension: Upper bound for the longer side after resizing
        contrast_factor: Linear gain applied around mid-gray

    Returns:
        PreparedImage with a read-only grayscale buffer

    Raises:
        DecodeError: If the photo cannot be decoded
    """
    image = decode_image(captured.data)
    h, w = image.shape[:2]

    if captured.width and captured.height and (w, h) != (captured.width, captured.height):
        logger.warning(
            f"Decoded size {w}x{h} differs from reported {captured.width}x{captured.height}; "
            "using decoded size"
        )

    target_w, target_h = compute_target_size(w, h, max_dimension)
    if (target_w, target_h) != (w, h):
        image = cv2.resize(image, (target_w, target_h), interpolation=cv2.INTER_AREA)
        logger.debug(f"Resized {w}x{h} -> {target_w}x{target_h}")

    gray = to_contrast_gray(image, factor=contrast_factor)
    gray.flags.writeable = False

    logger.info(f"Prepared image {gray.shape[1]}x{gray.shape[0]} from {captured.source or 'capture'}")
    return PreparedImage(pixels=gray, original_size=(w, h))
