from __future__ import annotations

from typing import TYPE_CHECKING, Any

import anyio
from anyio import EndOfStream, aclose_forcefully
from anyio.abc import AnyByteStream, ByteStream

from ._login import LoginHandshake, build_command, strip_banner
from ._machine import Data, FilterMachine, Negotiation, Subnegotiation
from ._opt import Opt as opt
from ._scanner import LineScanner
from .session import SessionClosedError, SessionState, SessionStateError

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import SessionConfig


class AnyioSession(ByteStream):
    """
    Login session running over an already connected anyio byte stream.

    ``receive()`` yields data with the telnet control sequences removed and
    ``send()`` writes raw bytes, so the session can stand in for the
    underlying stream once logged in.
    """

    def __init__(self, stream: AnyByteStream, config: SessionConfig) -> None:
        self._stream = stream
        self.config = config
        self.state = SessionState.CONNECTING
        self._machine = FilterMachine()
        self._cookedq = bytearray()
        self._deadline = anyio.current_time() + config.timeout

    @classmethod
    async def connect_tcp(cls, config: SessionConfig) -> AnyioSession:
        config.validate()
        with anyio.fail_after(config.timeout):
            stream = await anyio.connect_tcp(config.host, config.port)

        session = cls(stream, config)
        try:
            await session.login()
        except BaseException:
            await aclose_forcefully(session)
            raise
        return session

    @property
    def buffered(self) -> int:
        return len(self._cookedq)

    def msg(self, msg: str, *args: Any) -> None:
        if self.config.verbose:
            print(f"Telnet({self.config.host},{self.config.port}): {msg % args}")

    def reset_deadline(self, timeout: float | None = None) -> None:
        if timeout is None:
            timeout = self.config.timeout
        self._deadline = anyio.current_time() + timeout

    async def aclose(self) -> None:
        if self.state is SessionState.CLOSED:
            return

        self.msg("Closing connection")
        self.state = SessionState.CLOSED
        self._cookedq.clear()
        await self._stream.aclose()

    async def send_eof(self) -> None:
        self._check_open()
        await self._stream.send_eof()

    async def send(self, item: bytes) -> None:
        self._check_open()
        self.msg("send %r", item)
        await self._stream.send(item)

    async def write(self, data: bytes) -> int:
        await self.send(data)
        return len(data)

    async def receive(self, max_bytes: int = 65536) -> bytes:
        try:
            while not self._cookedq:
                await self._receive()
        except EOFError as exc:
            raise EndOfStream from exc

        out_data = bytes(self._cookedq[:max_bytes])
        del self._cookedq[:max_bytes]
        return out_data

    def discard_buffered(self) -> int:
        dropped = len(self._cookedq)
        if dropped:
            self.msg("Discarding %d buffered bytes", dropped)
        self._cookedq.clear()
        return dropped

    async def read_byte(self) -> int:
        while not self._cookedq:
            await self._receive()

        char = self._cookedq[0]
        del self._cookedq[0]
        return char

    async def read_until_prompt(self, predicate: Callable[[bytes], bool]) -> bytes:
        scanner = LineScanner()
        while True:
            fragment = scanner.feed(await self.read_byte())
            if fragment is not None and predicate(fragment):
                return scanner.output

    async def read_until_banner(self) -> bytes:
        banner = self.config.banner_prompt
        output = await self.read_until_prompt(lambda fragment: banner.search(fragment) is not None)
        return strip_banner(output, banner)

    async def login(self) -> None:
        """Answer the login prompts and wait for the shell banner."""
        self._check_open()
        if self.state is not SessionState.CONNECTING:
            raise SessionStateError(f"cannot log in while {self.state.name}")

        self.state = SessionState.AWAITING_PROMPT
        self.msg("Waiting for the first banner")

        handshake = LoginHandshake(self.config)
        scanner = LineScanner()
        while not handshake.done:
            fragment = scanner.feed(await self.read_byte())
            if fragment is None:
                continue

            reply = handshake.feed(fragment)
            if reply is not None:
                self.msg("Found %s prompt", handshake.answered)
                # credentials stay out of the trace
                await self._stream.send(reply)
                scanner.skip_line()

        self.state = SessionState.IDLE

    async def execute(self, name: str, *args: str) -> bytes:
        """Run a command and return its output.

        Cancellation or any error while the command runs closes the session.
        """
        self._check_open()
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"cannot execute a command while {self.state.name}")

        self.state = SessionState.EXECUTING
        try:
            self.discard_buffered()
            request = build_command(name, *args)
            self.msg("Send command: %s", request[:-2].decode("utf-8", errors="replace"))
            await self.send(request)
            stdout = await self.read_until_banner()
        except BaseException:
            await aclose_forcefully(self)
            raise

        self.state = SessionState.IDLE

        self.msg("Received data with size = %d", len(stdout))
        return stdout

    def _check_open(self) -> None:
        if self.state is SessionState.CLOSED:
            raise SessionClosedError("telnet session is closed")

    async def _receive(self) -> None:
        self._check_open()

        remaining = self._deadline - anyio.current_time()
        if remaining <= 0:
            raise TimeoutError("telnet read timed out")

        try:
            with anyio.fail_after(remaining):
                recv_data = await self._stream.receive()
        except EndOfStream:
            self._machine.receive_eof()
            raise EOFError("telnet connection closed") from None

        self.msg("recv %r", recv_data)
        for event in self._machine.receive_data(recv_data):
            if isinstance(event, Data):
                self._cookedq += event.msg
            elif isinstance(event, Negotiation):
                self.msg("IAC %s %d", opt(event.cmd).name, event.opt)
            elif isinstance(event, Subnegotiation):
                self.msg("IAC SB %r", event.payload)
