"""JSON-RPC over stdin/stdout for local MCP clients."""

import logging
from typing import TextIO

from sysmon.protocol import Dispatcher

logger = logging.getLogger(__name__)

CONTENT_LENGTH = "content-length:"


def serve_stdio(dispatcher: Dispatcher, stdin: TextIO, stdout: TextIO) -> None:
    """
    Serve JSON-RPC messages until EOF.

    Accepts newline-delimited JSON as well as ``Content-Length`` framed
    messages, and answers each in the framing it arrived in.
    """
    while True:
        line = stdin.readline()
        if not line:
            return
        if not line.strip():
            continue

        if line.lower().startswith(CONTENT_LENGTH):
            body = _read_framed(line, stdin)
            if body is None:
                continue
            response = dispatcher.handle_raw(body)
            if response is not None:
                stdout.write(f"Content-Length: {len(response.encode('utf-8'))}\r\n\r\n{response}")
                stdout.flush()
            continue

        response = dispatcher.handle_raw(line)
        if response is not None:
            stdout.write(response + "\n")
            stdout.flush()


def _read_framed(header: str, stdin: TextIO) -> str | None:
    try:
        length = int(header.split(":", 1)[1].strip())
    except ValueError:
        logger.warning("Ignoring malformed header: %r", header.strip())
        return None

    # Remaining headers end with a blank line
    while True:
        line = stdin.readline()
        if not line or not line.strip():
            break

    # Content-Length counts bytes; stdin yields characters
    chunks: list[str] = []
    remaining = length
    while remaining > 0:
        char = stdin.read(1)
        if not char:
            break
        chunks.append(char)
        remaining -= len(char.encode("utf-8"))
    return "".join(chunks)
