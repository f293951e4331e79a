from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from ._opt import Opt as opt


class IncompleteSequenceError(EOFError):
    """End of stream arrived in the middle of a telnet control sequence."""


class State(Enum):
    #: Receiving normal data
    DATA = auto()
    #: IAC received, next byte selects the command
    COMMAND = auto()
    #: WILL/WONT/DO/DONT received, next byte is the option code
    NEGOTIATION = auto()
    #: Inside SB ... IAC SE
    SUBN_DATA = auto()
    #: IAC received inside a subnegotiation
    SUBN_END = auto()


class Event(ABC):
    @abstractmethod
    def as_bytes(self) -> bytes:  # pragma: nocover
        ...


@dataclass(frozen=True)
class Data(Event):
    msg: bytes

    def as_bytes(self) -> bytes:
        return self.msg


@dataclass(frozen=True)
class Negotiation(Event):
    cmd: int
    opt: int

    def as_bytes(self) -> bytes:
        return bytes([opt.IAC, self.cmd, self.opt])


@dataclass(frozen=True)
class Subnegotiation(Event):
    payload: bytes

    def as_bytes(self) -> bytes:
        return bytes([opt.IAC, opt.SB]) + self.payload + bytes([opt.IAC, opt.SE])


class FilterMachine:
    """
    Sans-IO filter that strips telnet control sequences from a byte stream.

    Option offers are swallowed and never answered. An IAC followed by a byte
    that is neither a negotiation verb nor SB only loses the IAC: the next
    byte is examined again as if it started fresh. This means an escaped
    ``IAC IAC`` does not produce a literal 0xFF; both bytes are dropped.
    """

    #: List of IAC commands needing multiple (3) bytes
    _iac_mbs = (opt.DO, opt.DONT, opt.WILL, opt.WONT)

    def __init__(self) -> None:
        self._state = State.DATA
        self._cmd = 0
        self._buffer = bytearray()

    @property
    def in_sequence(self) -> bool:
        return self._state is not State.DATA

    def receive_data(self, data: bytes) -> List[Event]:
        out: List[Event] = []
        for char in data:
            event = self._receive_byte(char)
            if event is not None:
                out.append(event)
        return out

    def receive_eof(self) -> None:
        """
        Signal end of stream, raising if a control sequence was cut short.
        """
        if self.in_sequence:
            state = self._state
            self._state = State.DATA
            self._buffer.clear()
            raise IncompleteSequenceError(f"telnet stream ended inside a control sequence ({state.name})")

    def _receive_byte(self, char: int) -> Optional[Event]:
        if self._state == State.DATA:
            if char == opt.IAC:
                self._state = State.COMMAND
                return None
            return Data(char.to_bytes(1, "little"))

        elif self._state == State.COMMAND:
            if char in self._iac_mbs:
                self._cmd = char
                self._state = State.NEGOTIATION
                return None
            elif char == opt.SB:
                self._state = State.SUBN_DATA
                return None
            elif char == opt.IAC:
                # a second IAC starts a new command
                return None

            self._state = State.DATA
            return self._receive_byte(char)

        elif self._state == State.NEGOTIATION:
            self._state = State.DATA
            return Negotiation(self._cmd, char)

        elif self._state == State.SUBN_DATA:
            if char == opt.IAC:
                self._state = State.SUBN_END
            else:
                self._buffer.append(char)
            return None

        elif self._state == State.SUBN_END:
            if char == opt.SE:
                self._state = State.DATA
                payload = bytes(self._buffer)
                self._buffer.clear()
                return Subnegotiation(payload)
            elif char == opt.IAC:
                # the latest IAC may still be followed by SE
                self._buffer.append(opt.IAC)
                return None

            self._buffer.append(opt.IAC)
            self._buffer.append(char)
            self._state = State.SUBN_DATA
            return None
        else:
            raise RuntimeError(f"Unreachable state {self._state}")  # pragma: nocover
