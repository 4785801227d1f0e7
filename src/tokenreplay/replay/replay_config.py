"""
TokenReplay Replay Configuration

YAML-based run settings: target API, transport options and the token class
table used for interpolation.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .tokens import DEFAULT_TOKEN_CLASSES, TokenClass

DEFAULT_BASE_URL = 'https://api.stripe.com'
BASE_URL_ENV_VAR = 'TOKENREPLAY_BASE_URL'


@dataclass
class ReplayConfig:
    """
    Settings for one replay run.

    Example YAML:
        base_url: https://api.stripe.com
        timeout: 30
        verify_ssl: true
        token_classes:
          - name: charge
            prefix: ch_
          - name: customer
            prefix: cus_
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: int = 30
    verify_ssl: bool = True
    token_classes: Tuple[TokenClass, ...] = field(default_factory=lambda: DEFAULT_TOKEN_CLASSES)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], env_vars: Optional[Dict[str, str]] = None) -> 'ReplayConfig':
        """
        Create config from dictionary.

        Args:
            data: Parsed configuration
            env_vars: Environment variables (defaults to os.environ)

        Raises:
            ValueError: If a setting has the wrong type or a pattern does not compile
        """
        env_vars = os.environ if env_vars is None else env_vars

        token_classes = DEFAULT_TOKEN_CLASSES
        if data.get('token_classes'):
            if not isinstance(data['token_classes'], list):
                raise ValueError("'token_classes' must be a list")
            token_classes = tuple(TokenClass.from_dict(tc) for tc in data['token_classes'])

        base_url = data.get('base_url')
        if base_url is not None and not isinstance(base_url, str):
            raise ValueError(f"'base_url' must be a string, got {type(base_url).__name__}")

        return cls(
            base_url=base_url or env_vars.get(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL,
            timeout=_parse_timeout(data.get('timeout', 30)),
            verify_ssl=_parse_bool('verify_ssl', data.get('verify_ssl', True)),
            token_classes=token_classes
        )

    @classmethod
    def from_yaml(cls, yaml_path: str, env_vars: Optional[Dict[str, str]] = None) -> 'ReplayConfig':
        """Load config from YAML file."""
        with open(yaml_path, 'r') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {yaml_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {yaml_path}, got {type(data).__name__}")

        return cls.from_dict(data, env_vars=env_vars)

    @classmethod
    def load(cls, yaml_path: Optional[str] = None, env_vars: Optional[Dict[str, str]] = None) -> 'ReplayConfig':
        """Load config from YAML file if given, otherwise use defaults."""
        if yaml_path:
            return cls.from_yaml(yaml_path, env_vars=env_vars)
        return cls.from_dict({}, env_vars=env_vars)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base_url': self.base_url,
            'timeout': self.timeout,
            'verify_ssl': self.verify_ssl,
            'token_classes': [tc.to_dict() for tc in self.token_classes]
        }

    def save(self, yaml_path: str):
        """Save config to YAML file."""
        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @property
    def token_class_names(self) -> List[str]:
        return [tc.name for tc in self.token_classes]


def _parse_timeout(value: Any) -> int:
    # bool is an int subclass, but `timeout: yes` is not a timeout
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'timeout' must be a positive integer, got {value!r}")
    return value


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    raise ValueError(f"'{key}' must be true or false, got {value!r}")
