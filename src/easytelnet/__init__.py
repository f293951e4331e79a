from ._anyio import AnyioSession
from ._login import LoginHandshake, LoginStage, build_command, strip_banner
from ._machine import Data, Event, FilterMachine, IncompleteSequenceError, Negotiation, Subnegotiation
from ._opt import Opt as opt
from ._scanner import LineScanner, find_line_start, scan_until
from .config import DEFAULT_CONFIG, SessionConfig
from .session import Session, SessionClosedError, SessionState, SessionStateError

__all__ = [
    "DEFAULT_CONFIG",
    "AnyioSession",
    "Data",
    "Event",
    "FilterMachine",
    "IncompleteSequenceError",
    "LineScanner",
    "LoginHandshake",
    "LoginStage",
    "Negotiation",
    "Session",
    "SessionClosedError",
    "SessionConfig",
    "SessionState",
    "SessionStateError",
    "Subnegotiation",
    "build_command",
    "find_line_start",
    "opt",
    "scan_until",
    "strip_banner",
]
