"""Scan session module"""
from .capture import capture_from_bytes, capture_from_file
from .session import ScanSession, ScanSnapshot, ScanState, TERMINAL_STATES

__all__ = [
    'capture_from_bytes',
    'capture_from_file',
    'ScanSession',
    'ScanSnapshot',
    'ScanState',
    'TERMINAL_STATES',
]
