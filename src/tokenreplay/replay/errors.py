"""
TokenReplay Errors

Failures that abort a replay run. None of them are recovered locally: the
first one raised stops the run and is reported in the run result.
"""

from typing import Optional


class ReplayError(Exception):
    """Base class for errors that end a replay run."""


class UnresolvedTokenError(ReplayError):
    """A captured identifier was referenced before any response produced it."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Could not interpolate matching token for \"{token}\".")


class StatusMismatchError(ReplayError):
    """The live status code differs from the captured one."""

    def __init__(self, url: str, expected: int, actual: int):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Captured response status code does not match actual response status code "
            f"for url: {url}. Captured: {expected}. Actual: {actual}."
        )


class TransportError(ReplayError):
    """The transport failed without a response to validate against."""

    def __init__(self, url: str, detail: Optional[str] = None):
        self.url = url
        self.detail = detail
        message = f"Request to {url} failed with no response"
        if detail:
            message += f": {detail}"
        super().__init__(message)
