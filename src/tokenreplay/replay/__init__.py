"""
TokenReplay Replay Module

Sequential replay of captured transcripts against a live API.

This module provides:
- Token recognition and substitution (TokenMap)
- The sequential replay engine (ReplayEngine)
- A requests-based transport
- YAML run configuration
"""

from .errors import ReplayError, UnresolvedTokenError, StatusMismatchError, TransportError
from .tokens import TokenClass, TokenMap, DEFAULT_TOKEN_CLASSES
from .transcript import CapturedRequest, CapturedResponse, Step, Transcript
from .transport import RequestsTransport, TransportResponse, TransportFailure
from .replayer import ReplayEngine, ReplayResult, StepResult, save_result
from .replay_config import ReplayConfig

__all__ = [
    'ReplayError',
    'UnresolvedTokenError',
    'StatusMismatchError',
    'TransportError',
    'TokenClass',
    'TokenMap',
    'DEFAULT_TOKEN_CLASSES',
    'CapturedRequest',
    'CapturedResponse',
    'Step',
    'Transcript',
    'RequestsTransport',
    'TransportResponse',
    'TransportFailure',
    'ReplayEngine',
    'ReplayResult',
    'StepResult',
    'save_result',
    'ReplayConfig',
]
