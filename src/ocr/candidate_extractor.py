"""
Numeric candidate extraction from normalized OCR text.

Two passes:
1. Primary: digit runs of 3-7 characters (typical odometer width), as integers
2. Fallback: any number with an optional decimal part ("99", "12,5", "3.7"),
   as floats; only used when the primary pass finds nothing
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]

PATTERN_ODOMETER_DIGITS = re.compile(r'\d{3,7}')

# Comma is treated as the decimal separator
PATTERN_ANY_NUMBER = re.compile(r'\d+[.,]?\d*')


@dataclass(frozen=True)
class Candidate:
    """A numeric value parsed out of recognized text."""

    value: Number

    source: str
    """Substring of the normalized text the value was parsed from."""

    fallback: bool = False
    """True if produced by the fallback pass (float parse)."""


def extract_candidates(text: str) -> List[Candidate]:
    """
    Extract numeric candidates in order of appearance.

    Args:
        text: Normalized OCR text

    Returns:
        List of candidates; empty if the text contains no numbers
    """
    if not text:
        return []

    candidates = [
        Candidate(value=int(match), source=match)
        for match in PATTERN_ODOMETER_DIGITS.findall(text)
    ]
    if candidates:
        logger.debug(f"Primary pass found {len(candidates)} candidates: {[c.value for c in candidates]}")
        return candidates

    candidates = [
        Candidate(value=float(match.replace(',', '.')), source=match, fallback=True)
        for match in PATTERN_ANY_NUMBER.findall(text)
    ]
    if candidates:
        logger.debug(f"Fallback pass found {len(candidates)} candidates: {[c.value for c in candidates]}")
    else:
        logger.debug("No numeric candidates in text")
    return candidates
