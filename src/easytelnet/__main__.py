"""Log in to a telnet host and run one command.

Usage: python -m easytelnet [-v] [-p PORT] [-u USER] [-P PASSWORD] host command [args ...]

Options go before the host.  Default port is 23.  The command output is written to stdout without the
trailing shell prompt.
"""

from __future__ import annotations

import re
import sys
from argparse import REMAINDER, ArgumentParser, RawDescriptionHelpFormatter
from typing import TYPE_CHECKING, Any

from .config import DEFAULT_CONFIG, SessionConfig
from .session import Session

if TYPE_CHECKING:
    from argparse import Namespace
    from collections.abc import Sequence


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="easytelnet",
        description=__doc__.splitlines()[0],
        epilog="If an argument has a default, it's shown in <parentheses>.",
        formatter_class=RawDescriptionHelpFormatter,
    )
    parser.add_argument("host")
    parser.add_argument("command")
    parser.add_argument("args", nargs=REMAINDER)
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_CONFIG.port, metavar="<23>")
    parser.add_argument("-t", "--timeout", type=float, default=DEFAULT_CONFIG.timeout, metavar="<10>")
    parser.add_argument("-u", "--username", default=DEFAULT_CONFIG.username)
    parser.add_argument("-P", "--password", default=DEFAULT_CONFIG.password)
    parser.add_argument("--username-prompt", help="regular expression for the username prompt")
    parser.add_argument("--password-prompt", help="regular expression for the password prompt")
    parser.add_argument("--banner-prompt", help="regular expression for the shell prompt")
    parser.add_argument("-v", "--verbose", action="store_true", help="trace the session on stdout")
    return parser


def config_from_args(args: Namespace) -> SessionConfig:
    overrides: dict[str, Any] = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "username": args.username,
        "password": args.password,
        "verbose": args.verbose,
    }
    for name in ("username_prompt", "password_prompt", "banner_prompt"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value

    return DEFAULT_CONFIG.with_overrides(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except (ValueError, re.error) as exc:
        parser.error(str(exc))

    try:
        with Session(config) as session:
            output = session.execute(args.command, *args.args)
    except (OSError, EOFError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    sys.stdout.buffer.write(output + b"\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
