"""
TokenReplay CLI

Replay a captured request/response transcript against a live API.

Examples:
    # Replay against the default API base
    tokenreplay requestlog-customer-charges.json

    # Replay against a local stub with a config file
    tokenreplay requestlog-charges.json --config replay.yaml --base-url http://localhost:12111
"""

import argparse
import logging
import sys
from typing import List, Optional

from .replay import (
    ReplayConfig,
    ReplayEngine,
    ReplayError,
    RequestsTransport,
    StatusMismatchError,
    TokenMap,
    Transcript,
    TransportError,
    UnresolvedTokenError,
    save_result,
)

USAGE_MESSAGE = (
    'A transcript file must be specified as the first argument, '
    'e.g.: tokenreplay requestlog-customer-charges.json'
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tokenreplay',
        description='Replay a captured API transcript against the live service',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s requestlog-charges.json
  %(prog)s requestlog-charges.json --base-url http://localhost:12111 -o result.json
        """
    )
    parser.add_argument('transcript', nargs='?', help='Transcript JSON file')
    parser.add_argument('-c', '--config', help='YAML config file')
    parser.add_argument('-b', '--base-url', help='API base URL (default: https://api.stripe.com)')
    parser.add_argument('--timeout', type=int, help='Request timeout in seconds (default: 30)')
    parser.add_argument('--no-verify-ssl', action='store_true', help='Disable SSL verification')
    parser.add_argument('-o', '--output', help='Save results to JSON file')
    parser.add_argument('--log-level', default='warning', choices=['debug', 'info', 'warning', 'error'],
                        help='Log level (default: warning)')
    return parser


def describe_failure(error: ReplayError) -> str:
    """One-line diagnostic for the step that ended the run."""
    if isinstance(error, UnresolvedTokenError):
        return f"Unresolved token: {error.token}"
    if isinstance(error, StatusMismatchError):
        return (f"Status mismatch for {error.url}: "
                f"captured {error.expected}, actual {error.actual}")
    if isinstance(error, TransportError):
        return f"Transport failure for {error.url}: {error.detail}"
    return str(error)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the CLI.

    Returns:
        Process exit code (0 when every step passed)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.transcript:
        print(USAGE_MESSAGE)
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        config = ReplayConfig.load(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    try:
        transcript = Transcript.from_file(args.transcript)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load transcript: {e}")
        return 1

    if args.base_url:
        config.base_url = args.base_url
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.no_verify_ssl:
        config.verify_ssl = False

    print(f"📡 TokenReplay")
    print(f"   Transcript: {args.transcript} ({len(transcript)} steps)")
    print(f"   Target: {config.base_url}")
    print(f"   Token classes: {', '.join(config.token_class_names)}")
    print()

    transport = RequestsTransport(timeout=config.timeout, verify_ssl=config.verify_ssl)
    engine = ReplayEngine(
        transport,
        TokenMap(config.token_classes),
        base_url=config.base_url,
        on_success=lambda step: print(f"SUCCESS: {step.resolved_url}")
    )

    try:
        result = engine.run(transcript)
    finally:
        transport.close()

    if args.output:
        save_result(result, args.output)
        print(f"✅ Saved replay results to {args.output}")

    if not result.succeeded:
        print(f"❌ ERROR: {describe_failure(result.error)}")
        return 1

    print(f"\n📊 {result.completed_steps}/{result.total_steps} steps passed "
          f"in {result.total_duration_sec:.2f}s")
    return 0


def run():
    sys.exit(main())


if __name__ == '__main__':
    run()
