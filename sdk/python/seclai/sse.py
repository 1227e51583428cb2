"""Incremental Server-Sent Events parsing.

The parser accepts arbitrarily split text chunks and emits one
:class:`SseMessage` per dispatched event. Only the ``event`` and ``data``
fields are interpreted; ``id``, ``retry`` and unknown fields are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional


@dataclass
class SseMessage:
    """A single dispatched SSE event."""
    data: str = ""
    event: Optional[str] = None


class SseParser:
    """Stateful SSE parser fed with decoded text.

    Usage::

        messages = []
        parser = SseParser(messages.append)
        parser.feed("event: done\\ndata: {}\\n")
        parser.feed("\\n")
        parser.end()
    """

    def __init__(self, on_message: Callable[[SseMessage], None]):
        self._on_message = on_message
        self._buffer = ""
        self._event: Optional[str] = None
        self._data_lines: list[str] = []

    def feed(self, chunk: str) -> None:
        """Consume a text chunk, dispatching every completed event."""
        self._buffer += chunk
        while True:
            idx = self._buffer.find("\n")
            if idx == -1:
                return
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1:]
            self._process_line(line)

    def end(self) -> None:
        """Flush an unterminated trailing line and any pending event."""
        if self._buffer:
            line, self._buffer = self._buffer, ""
            self._process_line(line)
        self._dispatch()

    def _process_line(self, line: str) -> None:
        if line.endswith("\r"):
            line = line[:-1]

        if line == "":
            self._dispatch()
            return

        # Comments and keepalives
        if line.startswith(":"):
            return

        field_name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field_name == "event":
            self._event = value
        elif field_name == "data":
            self._data_lines.append(value)

    def _dispatch(self) -> None:
        if not self._event and not self._data_lines:
            return
        message = SseMessage(data="\n".join(self._data_lines), event=self._event)
        self._event = None
        self._data_lines = []
        self._on_message(message)
