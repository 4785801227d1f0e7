"""
TokenReplay Common Utilities

Shared utilities and helpers used across TokenReplay modules.
"""

from .utils import TranscriptLoader, TranscriptFormatError, safe_json_parse

__all__ = [
    'TranscriptLoader',
    'TranscriptFormatError',
    'safe_json_parse',
]
