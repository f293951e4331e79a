from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from re import Pattern

    from .config import SessionConfig

__all__ = ["NEWLINE", "LoginHandshake", "LoginStage", "build_command", "strip_banner"]

#: Terminator appended to every outbound line
NEWLINE = b"\r\n"


class LoginStage(Enum):
    AWAITING_USERNAME = auto()
    AWAITING_PASSWORD = auto()
    AWAITING_BANNER = auto()
    AUTHENTICATED = auto()


class LoginHandshake:
    """
    Answers login prompts until the shell banner shows up.

    Every fragment is checked against the username prompt, then the password
    prompt (only if a password is configured), then the banner, and the first
    match wins.  The stage records what was answered last; it does not limit
    which prompts are accepted, so a server that asks for the username again
    after a failed attempt gets the same answer.
    """

    def __init__(self, config: SessionConfig) -> None:
        self._username = config.username.encode("utf-8")
        self._password = config.password.encode("utf-8")
        self._username_prompt = config.username_prompt
        self._password_prompt = config.password_prompt
        self._banner_prompt = config.banner_prompt
        self.stage = LoginStage.AWAITING_USERNAME
        #: name of the prompt answered by the latest call to feed()
        self.answered: str | None = None

    @property
    def done(self) -> bool:
        return self.stage is LoginStage.AUTHENTICATED

    def feed(self, fragment: bytes) -> bytes | None:
        """Advance on one line fragment.

        Returns the line to send back (credential plus newline) or ``None``
        when nothing needs to be written.
        """
        self.answered = None
        if self.done:
            return None

        if self._username_prompt.search(fragment):
            self.stage = LoginStage.AWAITING_PASSWORD if self._password else LoginStage.AWAITING_BANNER
            self.answered = "username"
            return self._username + NEWLINE

        if self._password and self._password_prompt.search(fragment):
            self.stage = LoginStage.AWAITING_BANNER
            self.answered = "password"
            return self._password + NEWLINE

        if self._banner_prompt.search(fragment):
            self.stage = LoginStage.AUTHENTICATED

        return None


def strip_banner(output: bytes, banner: Pattern[bytes]) -> bytes:
    """Remove the last banner match from ``output`` and trim whitespace around it.

    The last match is the prompt that ended the read; prompt-shaped lines
    earlier in the output are left alone.
    """
    matches = list(banner.finditer(output))
    if not matches:
        return output.strip()
    last = matches[-1]
    return (output[: last.start()] + output[last.end() :]).strip()


def build_command(name: str, *args: str) -> bytes:
    """Encode a command line; the space after ``name`` is sent even without arguments."""
    return (name + " " + " ".join(args)).encode("utf-8") + NEWLINE
