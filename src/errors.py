"""
Exception types for the odometer scan pipeline.

Each component raises its own error type; the scan session turns them
into a terminal FAILED state carrying a ScanFailureReason.
"""

from enum import Enum


class ScanError(Exception):
    """Base class for all odometer scan errors."""


class CaptureError(ScanError):
    """The capture source could not produce an image (session stays idle)."""


class DecodeError(ScanError):
    """The captured image could not be decoded or processed."""


class RecognitionError(ScanError):
    """The OCR engine failed or raised while recognizing text."""


class InvalidTransitionError(ScanError):
    """An operation was requested that the current session state does not allow."""

    def __init__(self, operation: str, state: "Enum"):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while session is {state.value}")


class ScanFailureReason(str, Enum):
    """Typed reason carried by a FAILED scan session."""
    DECODE_ERROR = "decode_error"
    RECOGNITION_ERROR = "recognition_error"
    NO_READING_FOUND = "no_reading_found"

    @property
    def user_action(self) -> str:
        """
        What the user should do next.

        'recapture' means the photo or engine was the problem; 'manual_entry'
        means the photo was read but held no usable number, so a clearer
        photo or typing the value is the way forward.
        """
        if self is ScanFailureReason.NO_READING_FOUND:
            return "manual_entry"
        return "recapture"
