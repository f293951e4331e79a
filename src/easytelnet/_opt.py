from enum import Enum


class Opt(int, Enum):
    """Telnet bytes the filter recognises or the traces name."""

    IAC = 255  # "Interpret As Command"
    DONT = 254
    DO = 253
    WONT = 252
    WILL = 251
    SB = 250  # Subnegotiation Begin
    NOP = 241  # No Operation, dropped like any other lone command
    SE = 240  # Subnegotiation End

    ECHO = 1
    SGA = 3  # suppress go ahead
    TTYPE = 24  # terminal type
    NAWS = 31  # window size
