"""Blocking telnet session that logs in and runs commands.

Example:

    >>> from easytelnet import DEFAULT_CONFIG, Session
    >>> config = DEFAULT_CONFIG.with_overrides(host="192.0.2.10", username="admin")
    >>> with Session(config) as session:
    ...     print(session.execute("uname", "-a").decode())
    Linux gateway 5.10.0 #1 SMP armv7l GNU/Linux

The session performs no option negotiation: offers from the server are read
and thrown away.  Output flows through three layers on every read: the socket,
a :class:`~easytelnet._machine.FilterMachine` that removes control sequences,
and a :class:`~easytelnet._scanner.LineScanner` that looks for prompts.

A single read deadline covers the whole session.  It is armed by
:meth:`Session.connect` and only moves when :meth:`Session.reset_deadline` is
called, so a long lived session has to re-arm it before each exchange.
"""

from __future__ import annotations

import socket
from enum import Enum, auto
from time import monotonic
from typing import TYPE_CHECKING, Any, TypeVar

from ._login import LoginHandshake, build_command, strip_banner
from ._machine import Data, FilterMachine, Negotiation, Subnegotiation
from ._opt import Opt as opt
from ._scanner import LineScanner, scan_until

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from .config import SessionConfig

__all__ = ["Session", "SessionClosedError", "SessionState", "SessionStateError"]

T = TypeVar("T", bound="Session")

RECV_SIZE = 4096


class SessionClosedError(ConnectionError):
    """The session has no open connection."""


class SessionStateError(RuntimeError):
    """The operation is not allowed in the session's current state."""


class SessionState(Enum):
    CLOSED = auto()
    CONNECTING = auto()
    AWAITING_PROMPT = auto()
    IDLE = auto()
    EXECUTING = auto()


class Session:
    """Telnet login session.

    An instance is created closed; :meth:`connect` opens the socket and logs
    in.  Use it as a context manager to get both steps plus :meth:`close`.

    connect()
        Open the connection, answer the login prompts and wait for the shell.

    execute(name, *args)
        Run one command and return its output without the trailing prompt.

    read_byte()
        Return the next data byte, skipping control sequences; may block.

    read_until(delim)
        Read up to and including ``delim``; may block.

    read_until_prompt(predicate)
        Read until ``predicate`` accepts the current line fragment; may block.

    write(data)
        Send raw bytes as they are.

    Errors from the socket (``OSError``, ``TimeoutError``) and ``EOFError``
    are never retried.  Anything that interrupts :meth:`connect` or
    :meth:`execute`, KeyboardInterrupt included, closes the connection before
    it propagates; a half-read reply is never left for the next command.
    """

    def __init__(self, config: SessionConfig) -> None:
        self.sock: socket.socket | None = None
        self.config = config
        self.state = SessionState.CLOSED
        self._machine = FilterMachine()
        self._cookedq = bytearray()
        self._deadline = 0.0

    def __del__(self) -> None:
        """Destructor -- close the connection."""
        if self.sock is not None:
            self.sock.close()

    def __enter__(self: T) -> T:
        if self.sock is None:
            self.connect()
        return self

    def __exit__(
        self, type: type[BaseException] | None, value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        self.close()

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def buffered(self) -> int:
        """Number of data bytes received but not read yet."""
        return len(self._cookedq)

    def msg(self, msg: str, *args: Any) -> None:
        """Print a trace message when the session is verbose.

        If extra arguments are present, they are substituted in the
        message using the standard string formatting operator.
        """
        if self.config.verbose:
            print(f"Telnet({self.host},{self.port}): {msg % args}")

    def connect(self) -> None:
        """Connect to the configured host and log in.

        Returns once the shell banner has been seen.  Don't try to reopen
        an already connected session.
        """
        if self.sock is not None:
            raise SessionStateError("session is already connected")
        self.config.validate()

        self.state = SessionState.CONNECTING
        self._machine = FilterMachine()
        self._cookedq.clear()

        self.msg("Trying connect to %s:%d", self.host, self.port)
        try:
            self.sock = socket.create_connection(self.config.address, self.config.timeout)
        except OSError:
            self.state = SessionState.CLOSED
            raise

        self.reset_deadline()
        self.state = SessionState.AWAITING_PROMPT
        self.msg("Waiting for the first banner")
        try:
            self._login()
        except BaseException:
            self.close()
            raise

        self.state = SessionState.IDLE

    def close(self) -> None:
        """Close the connection.  Closing twice is harmless."""
        if self.sock is not None:
            self.msg("Closing connection")
            self.sock.close()

        self.sock = None
        self.state = SessionState.CLOSED
        self._cookedq.clear()

    def get_socket(self) -> socket.socket:
        """Return the socket object, raising if the session is closed."""
        if self.sock is None:
            raise SessionClosedError("telnet session is not connected")

        return self.sock

    def fileno(self) -> int:
        """Return the fileno() of the socket object used internally."""
        return self.get_socket().fileno()

    def reset_deadline(self, timeout: float | None = None) -> None:
        """Re-arm the read deadline, ``timeout`` seconds (default: the configured timeout) from now."""
        if timeout is None:
            timeout = self.config.timeout
        self._deadline = monotonic() + timeout

    def write(self, data: bytes) -> int:
        """Send ``data`` unchanged; IAC bytes are not escaped.

        Can block if the connection is blocked.  Returns the number of
        bytes written.
        """
        sock = self.get_socket()
        self.msg("send %r", data)
        sock.sendall(data)
        return len(data)

    def discard_buffered(self) -> int:
        """Drop data that was received but not read yet, returning its size."""
        dropped = len(self._cookedq)
        if dropped:
            self.msg("Discarding %d buffered bytes", dropped)
        self._cookedq.clear()
        return dropped

    def read_byte(self) -> int:
        """Read the next data byte, skipping telnet control sequences.

        Raise EOFError if the connection is closed by the peer and
        TimeoutError once the session deadline has passed.
        """
        self.get_socket()
        while not self._cookedq:
            self._receive()

        char = self._cookedq[0]
        del self._cookedq[0]
        return char

    def read_until(self, delim: bytes) -> bytes:
        """Read until the single byte ``delim`` is seen; it is included in the result."""
        if len(delim) != 1:
            raise ValueError(f"delimiter must be a single byte, got {delim!r}")

        buf = bytearray()
        while True:
            char = self.read_byte()
            buf.append(char)
            if char == delim[0]:
                return bytes(buf)

    def read_until_prompt(self, predicate: Callable[[bytes], bool]) -> bytes:
        """Read until ``predicate`` returns true for a line fragment.

        The predicate sees the text from the start of the current line up to
        each space received.  Everything read is returned.
        """
        return scan_until(self.read_byte, predicate)

    def read_until_banner(self) -> bytes:
        """Read until the shell banner, returning the output in front of it."""
        banner = self.config.banner_prompt
        output = self.read_until_prompt(lambda fragment: banner.search(fragment) is not None)
        return strip_banner(output, banner)

    def execute(self, name: str, *args: str) -> bytes:
        """Run a command and return its output.

        Anything the server sent before the command is thrown away first so
        that it can't leak into the result.
        """
        self.get_socket()
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"cannot execute a command while {self.state.name}")

        self.state = SessionState.EXECUTING
        try:
            self.discard_buffered()
            request = build_command(name, *args)
            self.msg("Send command: %s", request[:-2].decode("utf-8", errors="replace"))
            self.write(request)
            stdout = self.read_until_banner()
        except BaseException:
            self.close()
            raise

        self.state = SessionState.IDLE

        self.msg("Received data with size = %d", len(stdout))
        return stdout

    def _login(self) -> None:
        handshake = LoginHandshake(self.config)
        scanner = LineScanner()
        while not handshake.done:
            fragment = scanner.feed(self.read_byte())
            if fragment is None:
                continue

            reply = handshake.feed(fragment)
            if reply is not None:
                self.msg("Found %s prompt", handshake.answered)
                # credentials stay out of the trace
                self.get_socket().sendall(reply)
                scanner.skip_line()

    def _receive(self) -> None:
        sock = self.get_socket()

        remaining = self._deadline - monotonic()
        if remaining <= 0:
            raise TimeoutError("telnet read timed out")
        sock.settimeout(remaining)

        buf = sock.recv(RECV_SIZE)
        self.msg("recv %r", buf)
        if not buf:
            self._machine.receive_eof()
            raise EOFError("telnet connection closed")

        for event in self._machine.receive_data(buf):
            if isinstance(event, Data):
                self._cookedq += event.msg
            elif isinstance(event, Negotiation):
                self.msg("IAC %s %d", opt(event.cmd).name, event.opt)
            elif isinstance(event, Subnegotiation):
                self.msg("IAC SB %r", event.payload)
