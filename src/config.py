"""Configuration for the odometer scan subsystem."""

import os
from dotenv import load_dotenv

load_dotenv()

# Image preprocessing
# Longer side of the prepared image never exceeds this (no upscaling)
PREPROCESS_MAX_DIMENSION = int(os.getenv("PREPROCESS_MAX_DIMENSION", "1200"))
CONTRAST_FACTOR = float(os.getenv("CONTRAST_FACTOR", "1.5"))
CONTRAST_MIDPOINT = 128

# Reading resolution
# Plausible odometer window in km; values outside are treated as noise
PLAUSIBLE_MIN_KM = int(os.getenv("PLAUSIBLE_MIN_KM", "1000"))
PLAUSIBLE_MAX_KM = int(os.getenv("PLAUSIBLE_MAX_KM", "999999"))
MAX_ALTERNATIVES = int(os.getenv("MAX_ALTERNATIVES", "5"))

# Tesseract settings
OCR_LANG = os.getenv("OCR_LANG", "eng")
OCR_PSM_MODE = int(os.getenv("OCR_PSM_MODE", "6"))  # 6 = uniform block of text
TESSERACT_CMD = os.getenv("TESSERACT_CMD") or None

# Capture
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))

# API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
