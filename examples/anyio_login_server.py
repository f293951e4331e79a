"""
A toy telnet login server on port 2323 for trying the client by hand:

    python -m easytelnet -p 2323 -u demo localhost echo hello
"""

import anyio
from anyio.abc import SocketStream

from easytelnet import opt

BANNER = b"demo@toybox:/home/demo$ "


async def read_line(stream: SocketStream) -> bytes:
    line = b""
    while not line.endswith(b"\r\n"):
        line += await stream.receive()
    return line[:-2]


async def handler(stream: SocketStream) -> None:
    async with stream:
        # offers the client is expected to ignore
        await stream.send(bytes([opt.IAC, opt.DO, opt.TTYPE, opt.IAC, opt.WILL, opt.ECHO]))
        await stream.send(b"toybox username: ")
        user = await read_line(stream)
        await stream.send(user + b"\r\n" + BANNER)
        while True:
            command = await read_line(stream)
            if command.strip() == b"exit":
                return
            words = command.split()
            output = b" ".join(words[1:]) if words[:1] == [b"echo"] else b"unknown command"
            await stream.send(command + b"\r\n" + output + b"\r\n" + BANNER)


async def main() -> None:
    listener = await anyio.create_tcp_listener(local_port=2323)
    await listener.serve(handler)


anyio.run(main)
