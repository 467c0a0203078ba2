"""
Digit-oriented cleanup of raw OCR text.

Odometer digits are frequently misread as look-alike letters:
- O/o read instead of 0
- l/I/| read instead of 1
- S/s read instead of 5
- B/b read instead of 6

Each confusable glyph is rewritten to its digit in a single pass, and
runs of whitespace collapse to one space.
"""

import re

# Confusable glyph -> digit it most likely was
OCR_DIGIT_SUBSTITUTIONS = {
    'o': '0',
    'O': '0',
    'l': '1',
    'I': '1',
    '|': '1',
    's': '5',
    'S': '5',
    'b': '6',
    'B': '6',
}

_TRANSLATION = str.maketrans(OCR_DIGIT_SUBSTITUTIONS)
_WHITESPACE = re.compile(r'\s+')


def normalize_text(text: str) -> str:
    """
    Rewrite commonly confused glyphs to digits and collapse whitespace.

    Examples:
        >>> normalize_text("O123b")
        '01236'
        >>> normalize_text("km  I2 345")
        'km 12 345'
    """
    if not text:
        return ""
    return _WHITESPACE.sub(' ', text.translate(_TRANSLATION))
