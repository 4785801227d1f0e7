"""
TokenReplay Common Utilities

Shared helpers for reading transcript files and response bodies.
"""

import json
from pathlib import Path
from typing import List, Dict, Any


class TranscriptFormatError(ValueError):
    """Raised when a transcript file does not have the expected shape."""


# Bodies are JSON text, or inline JSON values re-encoded on load
BODY_TYPES = (str, dict, list)


def safe_json_parse(json_string: str, default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(step['response']['body'], default={})
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError):
        return default


class TranscriptLoader:
    """
    Loader for captured request/response transcript files.

    Handles the JSON layouts transcripts are written in:
    - Format 1: [...]                (list of steps)
    - Format 2: {"steps": [...]}     (wrapped format)
    - Format 3: {"requests": [...]}  (alternative wrapper)

    Example:
        loader = TranscriptLoader("requestlog-charges.json")
        entries = loader.load()

        for entry in entries:
            print(entry['request']['url'])
    """

    WRAPPER_KEYS = ('steps', 'requests')

    def __init__(self, file_path: str):
        """
        Initialize transcript loader.

        Args:
            file_path: Path to transcript JSON file
        """
        self.file_path = Path(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """
        Load and validate raw transcript entries from the JSON file.

        Returns:
            List of step dictionaries, in file order

        Raises:
            FileNotFoundError: If transcript file doesn't exist
            TranscriptFormatError: If JSON is invalid or an entry is malformed
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Transcript file not found: {self.file_path}")

        with open(self.file_path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise TranscriptFormatError(f"Invalid JSON in {self.file_path}: {e}") from e

        if isinstance(data, dict):
            for key in self.WRAPPER_KEYS:
                if key in data:
                    data = data[key]
                    break
            else:
                raise TranscriptFormatError(
                    f"Unexpected JSON format in {self.file_path}. "
                    f"Expected a list of steps or a dict with 'steps' or 'requests' key. "
                    f"Found keys: {list(data.keys())}"
                )

        if not isinstance(data, list):
            raise TranscriptFormatError(
                f"Unexpected JSON format in {self.file_path}. "
                f"Expected list, got {type(data).__name__}"
            )

        for index, entry in enumerate(data):
            self.validate_entry(entry, index)

        return data

    @staticmethod
    def validate_entry(entry: Any, index: int = 0):
        """
        Check that an entry has the fields replay needs.

        Raises:
            TranscriptFormatError: Naming the entry index and missing field
        """
        if not isinstance(entry, dict):
            raise TranscriptFormatError(f"Step {index}: expected object, got {type(entry).__name__}")

        request = entry.get('request')
        response = entry.get('response')
        if not isinstance(request, dict):
            raise TranscriptFormatError(f"Step {index}: missing 'request' object")
        if not isinstance(response, dict):
            raise TranscriptFormatError(f"Step {index}: missing 'response' object")

        for required in ('method', 'url'):
            value = request.get(required)
            if not isinstance(value, str) or not value:
                raise TranscriptFormatError(f"Step {index}: request '{required}' must be a non-empty string")

        headers = request.get('headers')
        if headers is not None and not isinstance(headers, dict):
            raise TranscriptFormatError(f"Step {index}: request 'headers' must be an object")

        for part, body in (('request', request.get('body')), ('response', response.get('body'))):
            if body is not None and not isinstance(body, BODY_TYPES):
                raise TranscriptFormatError(
                    f"Step {index}: {part} 'body' must be a string, object or array, "
                    f"got {type(body).__name__}"
                )

        code = response.get('code')
        if isinstance(code, bool) or not isinstance(code, int):
            raise TranscriptFormatError(f"Step {index}: response 'code' must be an integer")

    @staticmethod
    def load_from_file(file_path: str) -> List[Dict[str, Any]]:
        """
        Convenience method to load a transcript in one call.

        Example:
            entries = TranscriptLoader.load_from_file("requestlog-charges.json")
        """
        return TranscriptLoader(file_path).load()
