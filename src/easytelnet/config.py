"""Session configuration.

A :class:`SessionConfig` is an immutable record handed to a session at
construction time.  Defaults live on a single :data:`DEFAULT_CONFIG` value;
callers derive their own configuration from it::

    config = DEFAULT_CONFIG.with_overrides(host="10.0.0.1", username="admin")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from re import Pattern
from typing import Any, Union

__all__ = [
    "DEFAULT_BANNER_PROMPT",
    "DEFAULT_CONFIG",
    "DEFAULT_PASSWORD_PROMPT",
    "DEFAULT_USERNAME_PROMPT",
    "PatternLike",
    "SessionConfig",
    "compile_prompt",
]

TELNET_PORT = 23
DEFAULT_TIMEOUT = 10.0

DEFAULT_USERNAME_PROMPT = rb"[\w-]+ username:"
DEFAULT_PASSWORD_PROMPT = rb"Password:"
DEFAULT_BANNER_PROMPT = rb"[\w-]+@[\w-]+:[\w/-_~]+(\$|#)"

PatternLike = Union[str, bytes, Pattern[bytes]]


def compile_prompt(pattern: PatternLike) -> Pattern[bytes]:
    """Compile a prompt pattern for matching against raw bytes.

    ``str`` patterns are encoded as UTF-8 first.  Raises :class:`re.error`
    for an invalid expression and :class:`TypeError` for a compiled
    ``str`` pattern, which could never match bytes.
    """
    if isinstance(pattern, Pattern):
        if not isinstance(pattern.pattern, bytes):
            raise TypeError(f"prompt pattern must match bytes, got {pattern!r}")
        return pattern
    if isinstance(pattern, str):
        pattern = pattern.encode("utf-8")
    return re.compile(pattern)


@dataclass(frozen=True)
class SessionConfig:
    host: str = ""
    port: int = TELNET_PORT
    timeout: float = DEFAULT_TIMEOUT
    username: str = ""
    #: empty means the password prompt is never answered
    password: str = ""
    verbose: bool = False

    username_prompt: Pattern[bytes] = field(default=DEFAULT_USERNAME_PROMPT)  # type: ignore[assignment]
    password_prompt: Pattern[bytes] = field(default=DEFAULT_PASSWORD_PROMPT)  # type: ignore[assignment]
    banner_prompt: Pattern[bytes] = field(default=DEFAULT_BANNER_PROMPT)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive: {self.timeout}")

        # frozen, so bypass __setattr__ to store the compiled patterns
        for name in ("username_prompt", "password_prompt", "banner_prompt"):
            object.__setattr__(self, name, compile_prompt(getattr(self, name)))

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    def with_overrides(self, **changes: Any) -> SessionConfig:
        """Return a copy with ``changes`` applied; the original is untouched."""
        return replace(self, **changes)

    def validate(self) -> None:
        """Check that the configuration can be used to open a connection."""
        if not self.host:
            raise ValueError("host is required")


DEFAULT_CONFIG = SessionConfig()
