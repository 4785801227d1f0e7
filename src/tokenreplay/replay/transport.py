"""
TokenReplay Transport

HTTP transport used by the replay engine. Any callable with the signature
``(method, url, headers, body) -> TransportResponse`` can stand in for
RequestsTransport, which is how the tests drive the engine.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..common import safe_json_parse

logger = logging.getLogger("tokenreplay.transport")

# Stale once the body has been interpolated
HEADERS_TO_REMOVE = ('host', 'content-length', 'transfer-encoding')


@dataclass
class TransportResponse:
    """Status code and decoded body of a live response."""

    status: int
    data: Any = None


class TransportFailure(Exception):
    """
    Raised by a transport when a request fails.

    ``response`` is set when the failure still produced an HTTP response
    (e.g. an error status the HTTP library treats as an exception).
    """

    def __init__(self, message: str, response: Optional[TransportResponse] = None):
        super().__init__(message)
        self.response = response


class RequestsTransport:
    """
    Send replayed requests with a requests.Session.

    No retry adapter is mounted: a replay step is sent exactly once.

    Example:
        transport = RequestsTransport(timeout=10)
        response = transport('GET', 'https://api.stripe.com/v1/charges', {}, '')
        print(response.status)
    """

    def __init__(
        self,
        timeout: int = 30,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize transport.

        Args:
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify SSL certificates
            session: Optional pre-configured session
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()

    def __call__(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[str]
    ) -> TransportResponse:
        headers = {k: v for k, v in (headers or {}).items() if k.lower() not in HEADERS_TO_REMOVE}

        logger.debug(f"Sending {method} {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=headers,
                data=body.encode('utf-8') if body else None,
                timeout=self.timeout,
                verify=self.verify_ssl,
                allow_redirects=True
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            attached = None
            if e.response is not None:
                attached = self._to_transport_response(e.response)
            raise TransportFailure(str(e), response=attached) from e

        return self._to_transport_response(response)

    @staticmethod
    def _to_transport_response(response: requests.Response) -> TransportResponse:
        return TransportResponse(
            status=response.status_code,
            data=safe_json_parse(response.text)
        )

    def close(self):
        self.session.close()
