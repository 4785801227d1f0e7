"""
TokenReplay Replay Engine

Replays a transcript against a live API one step at a time, rewriting captured
identifiers with the ones the live service hands back.
"""

import json
import logging
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .errors import ReplayError, StatusMismatchError, TransportError
from .tokens import TokenMap
from .transcript import Step
from .transport import TransportFailure, TransportResponse

logger = logging.getLogger("tokenreplay.replay")

Transport = Callable[[str, str, Dict[str, str], Optional[str]], TransportResponse]


@dataclass
class StepResult:
    """Outcome of a single replayed step that passed validation."""

    method: str
    captured_url: str
    resolved_url: str
    expected_status: int
    actual_status: int
    duration_ms: float
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['duration_ms'] = round(self.duration_ms, 2)
        return data


@dataclass
class ReplayResult:
    """Result of a replay run: either every step passed, or ``error`` is set."""

    total_steps: int
    steps: List[StepResult] = field(default_factory=list)
    error: Optional[ReplayError] = None
    total_duration_sec: float = 0.0
    token_mappings: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def completed_steps(self) -> int:
        return len(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'succeeded': self.succeeded,
            'total_steps': self.total_steps,
            'completed_steps': self.completed_steps,
            'total_duration_sec': round(self.total_duration_sec, 2),
            'error': {
                'type': type(self.error).__name__,
                'message': str(self.error)
            } if self.error else None,
            'token_mappings': self.token_mappings,
            'steps': [s.to_dict() for s in self.steps]
        }


class ReplayEngine:
    """
    Sequential replay driver.

    For each step: interpolate URL and body, send the request, compare the
    status code with the captured one, then record the captured/live id pair
    so later steps can reference it. The first failure stops the run.

    Example:
        engine = ReplayEngine(RequestsTransport(), TokenMap(), base_url='https://api.stripe.com')
        result = engine.run(Transcript.from_file('requestlog-charges.json'))
        if not result.succeeded:
            print(result.error)
    """

    def __init__(
        self,
        transport: Transport,
        token_map: TokenMap,
        base_url: str = "",
        on_success: Optional[Callable[[StepResult], None]] = None
    ):
        """
        Initialize engine.

        Args:
            transport: Callable that sends a request and returns a TransportResponse
            token_map: Token map for this run, mutated as steps complete
            base_url: Prefix for the captured (relative) request URLs
            on_success: Called with the StepResult of every step that passes
        """
        self.transport = transport
        self.token_map = token_map
        self.base_url = base_url.rstrip('/')
        self.on_success = on_success

    def run(self, transcript: Iterable[Step]) -> ReplayResult:
        """
        Replay all steps in order, stopping at the first failure.

        Args:
            transcript: Transcript or list of steps

        Returns:
            ReplayResult with per-step results and the failure, if any
        """
        steps = list(transcript)
        result = ReplayResult(total_steps=len(steps))
        start_time = time.time()

        logger.info(f"Replaying {len(steps)} steps against {self.base_url or '<relative>'}")

        for index, step in enumerate(steps, 1):
            try:
                step_result = self.run_step(step)
            except ReplayError as e:
                logger.error(f"[{index}/{len(steps)}] {step.request.method} {step.request.url}: {e}")
                result.error = e
                break
            result.steps.append(step_result)

        result.total_duration_sec = time.time() - start_time
        result.token_mappings = self.token_map.to_dict()
        return result

    def run_step(self, step: Step) -> StepResult:
        """
        Replay a single step.

        Raises:
            UnresolvedTokenError: If the request references an unmapped id
            TransportError: If the transport produced no response
            StatusMismatchError: If the status code differs from the captured one
        """
        request = step.request

        url = self.base_url + self.token_map.interpolate(request.url)
        body = self.token_map.interpolate(request.body)

        logger.debug(f"Interpolated {request.method} {request.url} -> {url}")

        start_time = time.time()
        response = self._send(request.method, url, request.headers, body)
        duration_ms = (time.time() - start_time) * 1000

        if response.status != step.response.code:
            raise StatusMismatchError(request.url, step.response.code, response.status)

        step_result = StepResult(
            method=request.method,
            captured_url=request.url,
            resolved_url=url,
            expected_status=step.response.code,
            actual_status=response.status,
            duration_ms=duration_ms
        )

        logger.info(f"SUCCESS: {url}")
        if self.on_success:
            self.on_success(step_result)

        self.token_map.record(step.response.data, response.data)
        logger.debug(f"Token mappings: {len(self.token_map)}")

        return step_result

    def _send(self, method: str, url: str, headers: Dict[str, str], body: Optional[str]) -> TransportResponse:
        # Headers are sent exactly as captured
        try:
            return self.transport(method, url, headers, body)
        except TransportFailure as e:
            if e.response is None:
                raise TransportError(url, str(e)) from e
            logger.debug(f"Transport error carries response {e.response.status} for {url}")
            return e.response


def save_result(result: ReplayResult, output_file: str):
    """
    Save replay results to JSON file.

    Args:
        result: ReplayResult to save
        output_file: Path to output JSON file
    """
    with open(output_file, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)
