"""
TokenReplay Token Map

Recognizes server-generated identifiers (charge, customer and refund ids) in
request text and rewrites them with the ids observed during the live run.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Pattern, Tuple

from .errors import UnresolvedTokenError


@dataclass(frozen=True)
class TokenClass:
    """A named category of identifier with a fixed prefix."""

    name: str
    prefix: str
    pattern: Optional[str] = None
    _regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # Ids use letters and digits 1-9 after the prefix
        source = self.pattern or re.escape(self.prefix) + r'[A-Za-z1-9]+'
        try:
            regex = re.compile(source)
        except re.error as e:
            raise ValueError(f"Invalid pattern for token class '{self.name}': {e}") from e
        object.__setattr__(self, 'pattern', source)
        object.__setattr__(self, '_regex', regex)

    def search(self, text: str) -> Optional[re.Match]:
        """Return the first match of this class in text, if any."""
        return self._regex.search(text)

    def finditer(self, text: str) -> Iterator[re.Match]:
        return self._regex.finditer(text)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenClass':
        """Create TokenClass from dictionary."""
        if not isinstance(data, dict) or not isinstance(data.get('name'), str) \
                or not isinstance(data.get('prefix'), str):
            raise ValueError(f"Token class needs 'name' and 'prefix', got: {data}")
        if data.get('pattern') is not None and not isinstance(data['pattern'], str):
            raise ValueError(f"Token class '{data['name']}' pattern must be a string")
        return cls(
            name=data['name'],
            prefix=data['prefix'],
            pattern=data.get('pattern')
        )

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for YAML serialization."""
        return {'name': self.name, 'prefix': self.prefix, 'pattern': self.pattern}


# Evaluation order matters: classes are substituted one after another
DEFAULT_TOKEN_CLASSES: Tuple[TokenClass, ...] = (
    TokenClass('charge', 'ch_'),
    TokenClass('customer', 'cus_'),
    TokenClass('refund', 're_'),
)


class TokenMap:
    """
    Mapping from captured identifiers to freshly observed ones.

    The map only grows during a run. Interpolation replaces the first
    occurrence of each token class in turn; a token with no recorded
    mapping is an error, never passed through.

    Example:
        tokens = TokenMap()
        tokens.record({'id': 'cus_ABC'}, {'id': 'cus_XYZ'})
        tokens.interpolate('/v1/customers/cus_ABC')  # '/v1/customers/cus_XYZ'
    """

    def __init__(self, token_classes: Optional[Iterable[TokenClass]] = None):
        """
        Initialize token map.

        Args:
            token_classes: Ordered token classes to recognize
                           (defaults to charge, customer, refund)
        """
        self.token_classes = tuple(token_classes) if token_classes is not None else DEFAULT_TOKEN_CLASSES
        self.mappings: Dict[str, str] = {}

    def interpolate(self, text: Optional[str]) -> Optional[str]:
        """
        Replace captured identifiers in text with their live counterparts.

        Only the first occurrence of each token class is replaced.

        Args:
            text: Request URL or body

        Returns:
            Interpolated text

        Raises:
            UnresolvedTokenError: If a matched identifier has no mapping
        """
        if not text:
            return text

        # Spans of already substituted values, never scanned again
        substituted: List[Tuple[int, int]] = []

        for token_class in self.token_classes:
            match = self._first_match(token_class, text, substituted)
            if match is None:
                continue

            token = match.group(0)
            if token not in self.mappings:
                raise UnresolvedTokenError(token)

            value = self.mappings[token]
            start, end = match.span()
            text = text[:start] + value + text[end:]

            shift = len(value) - (end - start)
            substituted = [
                (s + shift, e + shift) if s >= end else (s, e)
                for s, e in substituted
            ]
            substituted.append((start, start + len(value)))

        return text

    @staticmethod
    def _first_match(
        token_class: TokenClass,
        text: str,
        substituted: List[Tuple[int, int]]
    ) -> Optional[re.Match]:
        for match in token_class.finditer(text):
            if not any(match.start() < e and s < match.end() for s, e in substituted):
                return match
        return None

    def record(self, captured_body: Any, live_body: Any):
        """
        Map the captured response id to the live response id.

        Does nothing unless both bodies are objects carrying an ``id``.
        """
        if not isinstance(captured_body, dict) or not isinstance(live_body, dict):
            return

        captured_id = captured_body.get('id')
        live_id = live_body.get('id')
        if captured_id and live_id:
            self.mappings[str(captured_id)] = str(live_id)

    def get(self, token: str) -> Optional[str]:
        return self.mappings.get(token)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.mappings)

    def __contains__(self, token: str) -> bool:
        return token in self.mappings

    def __len__(self) -> int:
        return len(self.mappings)
