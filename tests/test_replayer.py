"""
Tests for TokenReplay Replay Engine

Tests the sequential replay driver including:
- Token propagation between steps
- Status code validation
- Fail-fast error handling
- Transport failures with and without attached responses
- Result serialization
"""

import pytest
import json
import tempfile
from pathlib import Path
from unittest.mock import Mock

from tokenreplay.replay.replayer import ReplayEngine, ReplayResult, StepResult, save_result
from tokenreplay.replay.tokens import TokenMap
from tokenreplay.replay.transcript import Transcript
from tokenreplay.replay.transport import TransportResponse, TransportFailure
from tokenreplay.replay.errors import (
    UnresolvedTokenError,
    StatusMismatchError,
    TransportError
)

BASE_URL = 'https://api.stripe.com'


@pytest.fixture
def customer_transcript():
    """Create a customer, then fetch it and charge it."""
    return Transcript.from_list([
        {
            'request': {
                'method': 'POST',
                'url': '/v1/customers',
                'headers': {'Authorization': 'Bearer sk_test_123'},
                'body': 'email=jenny%40example.com'
            },
            'response': {'code': 200, 'body': '{"id": "cus_ABC", "object": "customer"}'}
        },
        {
            'request': {
                'method': 'GET',
                'url': '/v1/customers/cus_ABC',
                'headers': {'Authorization': 'Bearer sk_test_123'},
                'body': ''
            },
            'response': {'code': 200, 'body': '{"id": "cus_ABC", "object": "customer"}'}
        },
        {
            'request': {
                'method': 'POST',
                'url': '/v1/charges',
                'headers': {'Authorization': 'Bearer sk_test_123'},
                'body': '{"amount": 2000, "customer": "cus_ABC"}'
            },
            'response': {'code': 200, 'body': '{"id": "ch_111", "object": "charge"}'}
        }
    ])


def make_transport(*responses):
    """Mock transport returning the given responses in order."""
    return Mock(side_effect=list(responses))


class TestReplayEngine:
    """Test ReplayEngine.run."""

    def test_ids_propagate_to_later_steps(self, customer_transcript):
        """Test that an id from step 1 is rewritten in step 2 and 3."""
        transport = make_transport(
            TransportResponse(200, {'id': 'cus_XYZ'}),
            TransportResponse(200, {'id': 'cus_XYZ'}),
            TransportResponse(200, {'id': 'ch_LIVE'})
        )
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(customer_transcript)

        assert result.succeeded
        assert result.completed_steps == 3
        second_call = transport.call_args_list[1]
        assert second_call.args[1] == 'https://api.stripe.com/v1/customers/cus_XYZ'
        third_call = transport.call_args_list[2]
        assert third_call.args[3] == '{"amount": 2000, "customer": "cus_XYZ"}'
        assert result.steps[1].resolved_url == 'https://api.stripe.com/v1/customers/cus_XYZ'
        assert result.token_mappings == {'cus_ABC': 'cus_XYZ', 'ch_111': 'ch_LIVE'}

    def test_headers_passed_verbatim(self, customer_transcript):
        """Test that headers are sent exactly as captured."""
        transport = make_transport(
            TransportResponse(200, {'id': 'cus_XYZ'}),
            TransportResponse(200, {'id': 'cus_XYZ'}),
            TransportResponse(200, {'id': 'ch_LIVE'})
        )
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        engine.run(customer_transcript)

        first_call = transport.call_args_list[0]
        assert first_call.args[0] == 'POST'
        assert first_call.args[2] == {'Authorization': 'Bearer sk_test_123'}

    def test_headers_not_interpolated(self):
        """Test that ids inside headers are not rewritten."""
        transcript = Transcript.from_list([
            {
                'request': {'method': 'GET', 'url': '/v1/charges', 'headers': {'X-Ref': 'ch_ABC'}},
                'response': {'code': 200, 'body': '{}'}
            }
        ])
        transport = make_transport(TransportResponse(200, {}))
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(transcript)

        assert result.succeeded
        assert transport.call_args.args[2] == {'X-Ref': 'ch_ABC'}

    def test_status_mismatch_stops_run(self, customer_transcript):
        """Test that a status mismatch aborts before step 2 is sent."""
        transport = make_transport(TransportResponse(402, {'error': {'type': 'card_error'}}))
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(customer_transcript)

        assert not result.succeeded
        assert isinstance(result.error, StatusMismatchError)
        assert result.error.url == '/v1/customers'
        assert result.error.expected == 200
        assert result.error.actual == 402
        assert transport.call_count == 1
        assert result.completed_steps == 0

    def test_unresolved_token_fails_before_transport(self):
        """Test that a reference to an unknown id fails without sending."""
        transcript = Transcript.from_list([
            {
                'request': {'method': 'GET', 'url': '/v1/refunds/re_UNSEEN'},
                'response': {'code': 200, 'body': '{"id": "re_UNSEEN"}'}
            }
        ])
        transport = Mock()
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(transcript)

        assert isinstance(result.error, UnresolvedTokenError)
        assert result.error.token == 're_UNSEEN'
        transport.assert_not_called()

    def test_unresolved_token_in_body(self):
        """Test that request bodies are interpolated too."""
        transcript = Transcript.from_list([
            {
                'request': {'method': 'POST', 'url': '/v1/refunds', 'body': '{"charge": "ch_NOPE"}'},
                'response': {'code': 200, 'body': '{}'}
            }
        ])
        transport = Mock()
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(transcript)

        assert isinstance(result.error, UnresolvedTokenError)
        transport.assert_not_called()

    def test_transport_failure_with_response_is_validated(self):
        """Test that an error carrying a response is treated as the response."""
        transcript = Transcript.from_list([
            {
                'request': {'method': 'POST', 'url': '/v1/charges', 'body': '{"amount": 1}'},
                'response': {'code': 402, 'body': '{"error": {"code": "card_declined"}}'}
            }
        ])
        transport = Mock(side_effect=TransportFailure(
            '402 Client Error',
            response=TransportResponse(402, {'error': {'code': 'card_declined'}})
        ))
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(transcript)

        assert result.succeeded
        assert result.steps[0].actual_status == 402

    def test_transport_failure_without_response_is_fatal(self, customer_transcript):
        """Test that a connection failure aborts the run."""
        transport = Mock(side_effect=TransportFailure('Connection refused'))
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(customer_transcript)

        assert isinstance(result.error, TransportError)
        assert result.error.url == 'https://api.stripe.com/v1/customers'
        assert 'Connection refused' in result.error.detail
        assert transport.call_count == 1

    def test_on_success_called_per_step(self, customer_transcript):
        """Test that the success callback sees each resolved URL in order."""
        transport = make_transport(
            TransportResponse(200, {'id': 'cus_XYZ'}),
            TransportResponse(200, {'id': 'cus_XYZ'}),
            TransportResponse(200, {'id': 'ch_LIVE'})
        )
        seen = []
        engine = ReplayEngine(
            transport,
            TokenMap(),
            base_url=BASE_URL,
            on_success=lambda step: seen.append(step.resolved_url)
        )

        engine.run(customer_transcript)

        assert seen == [
            'https://api.stripe.com/v1/customers',
            'https://api.stripe.com/v1/customers/cus_XYZ',
            'https://api.stripe.com/v1/charges',
        ]

    def test_no_callback_on_failed_step(self, customer_transcript):
        """Test that a failing step is not reported as a success."""
        transport = make_transport(TransportResponse(500, None))
        on_success = Mock()
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL, on_success=on_success)

        engine.run(customer_transcript)

        on_success.assert_not_called()

    def test_non_json_response_records_nothing(self):
        """Test that a body without an id leaves the token map untouched."""
        transcript = Transcript.from_list([
            {
                'request': {'method': 'DELETE', 'url': '/v1/customers'},
                'response': {'code': 200, 'body': 'OK'}
            }
        ])
        token_map = TokenMap()
        engine = ReplayEngine(make_transport(TransportResponse(200, None)), token_map)

        result = engine.run(transcript)

        assert result.succeeded
        assert len(token_map) == 0

    def test_accepts_list_of_steps(self, customer_transcript):
        """Test that a plain list of steps can be replayed."""
        transport = make_transport(TransportResponse(200, {'id': 'cus_XYZ'}))
        engine = ReplayEngine(transport, TokenMap(), base_url=BASE_URL)

        result = engine.run(list(customer_transcript)[:1])

        assert result.succeeded
        assert result.total_steps == 1

    def test_base_url_trailing_slash(self):
        """Test that a trailing slash on the base URL is dropped."""
        engine = ReplayEngine(Mock(), TokenMap(), base_url='http://localhost:12111/')

        assert engine.base_url == 'http://localhost:12111'

    def test_empty_transcript(self):
        """Test replaying an empty transcript."""
        engine = ReplayEngine(Mock(), TokenMap(), base_url=BASE_URL)

        result = engine.run(Transcript())

        assert result.succeeded
        assert result.total_steps == 0


class TestReplayResult:
    """Test ReplayResult serialization."""

    def test_to_dict_success(self):
        """Test converting a successful result to dictionary."""
        result = ReplayResult(
            total_steps=1,
            steps=[StepResult('GET', '/v1/charges', 'https://api.stripe.com/v1/charges', 200, 200, 12.3456)],
            total_duration_sec=0.5
        )

        data = result.to_dict()

        assert data['succeeded'] is True
        assert data['completed_steps'] == 1
        assert data['error'] is None
        assert data['steps'][0]['duration_ms'] == 12.35

    def test_to_dict_failure(self):
        """Test that the error type and message are serialized."""
        result = ReplayResult(total_steps=2, error=StatusMismatchError('/v1/charges', 200, 402))

        data = result.to_dict()

        assert data['succeeded'] is False
        assert data['error']['type'] == 'StatusMismatchError'
        assert 'Captured: 200. Actual: 402.' in data['error']['message']

    def test_save_result(self):
        """Test saving replay results to file."""
        result = ReplayResult(total_steps=3, token_mappings={'cus_ABC': 'cus_XYZ'})

        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            output_path = f.name

        try:
            save_result(result, output_path)

            with open(output_path) as f:
                data = json.load(f)

            assert data['total_steps'] == 3
            assert data['token_mappings'] == {'cus_ABC': 'cus_XYZ'}
        finally:
            Path(output_path).unlink()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
