"""
TokenReplay Transcript

Immutable captured request/response steps, in the order they were recorded.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Tuple

from ..common import TranscriptLoader, safe_json_parse


def _as_text(body: Any) -> str:
    """Bodies are stored as JSON strings; inline objects are re-encoded."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    return json.dumps(body)


@dataclass(frozen=True)
class CapturedRequest:
    """Request as it was captured, before interpolation."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""


@dataclass(frozen=True)
class CapturedResponse:
    """Response the live service is expected to reproduce."""

    code: int
    body: str = ""

    @property
    def data(self) -> Any:
        """Captured body decoded from JSON (None if not JSON)."""
        return safe_json_parse(self.body)


@dataclass(frozen=True)
class Step:
    """One captured request paired with its captured response."""

    request: CapturedRequest
    response: CapturedResponse

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Step':
        """Create Step from a transcript entry."""
        request = data['request']
        response = data['response']
        return cls(
            request=CapturedRequest(
                method=request['method'].upper(),
                url=request['url'],
                headers=dict(request.get('headers') or {}),
                body=_as_text(request.get('body'))
            ),
            response=CapturedResponse(
                code=response['code'],
                body=_as_text(response.get('body'))
            )
        )


@dataclass(frozen=True)
class Transcript:
    """Ordered sequence of steps; later steps may depend on earlier ones."""

    steps: Tuple[Step, ...] = ()

    @classmethod
    def from_list(cls, entries: List[Dict[str, Any]]) -> 'Transcript':
        """Create Transcript from validated transcript entries."""
        for index, entry in enumerate(entries):
            TranscriptLoader.validate_entry(entry, index)
        return cls(steps=tuple(Step.from_dict(entry) for entry in entries))

    @classmethod
    def from_file(cls, file_path: str) -> 'Transcript':
        """Load transcript from a JSON file (entries are validated by the loader)."""
        entries = TranscriptLoader.load_from_file(file_path)
        return cls(steps=tuple(Step.from_dict(entry) for entry in entries))

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)
