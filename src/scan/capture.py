"""
Capture sources: produce a CapturedImage from a file or uploaded bytes.

Missing or oversized photos, including headers that declare absurd pixel
counts, are rejected here with CaptureError. Bytes that turn out not to be a decodable image are passed through and
surface later as a DecodeError during preprocessing.
"""

import io
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from src.config import MAX_UPLOAD_BYTES
from src.errors import CaptureError
from src.preprocessing import CapturedImage

logger = logging.getLogger(__name__)


def _probe_size(data: bytes) -> Tuple[int, int]:
    """
    Read pixel dimensions from the image header, (0, 0) if unreadable.

    Raises:
        CaptureError: If the header claims more pixels than Pillow allows
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except Image.DecompressionBombError as e:
        raise CaptureError(f"Image dimensions too large: {e}") from e
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not read image header: {e}")
        return 0, 0


def capture_from_bytes(
    data: bytes,
    source: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES
) -> CapturedImage:
    """
    Wrap raw photo bytes as a CapturedImage.

    Raises:
        CaptureError: If no bytes were delivered, the photo is too large,
            or its header declares oversized dimensions
    """
    if not data:
        raise CaptureError("No image data captured")
    if len(data) > max_bytes:
        raise CaptureError(f"Image is {len(data)} bytes, limit is {max_bytes}")

    width, height = _probe_size(data)
    logger.info(f"Captured {len(data)} bytes ({width}x{height}) from {source or 'bytes'}")
    return CapturedImage(data=bytes(data), width=width, height=height, source=source)


def capture_from_file(path: Union[str, Path], max_bytes: int = MAX_UPLOAD_BYTES) -> CapturedImage:
    """
    Load a photo from disk.

    Raises:
        CaptureError: If the file cannot be read
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CaptureError(f"Could not read image file {path}: {e}") from e

    return capture_from_bytes(data, source=path.name, max_bytes=max_bytes)
