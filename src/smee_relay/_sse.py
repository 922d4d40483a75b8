"""
Line-oriented parser for the Server-Sent Events (SSE) subset relayed by smee.io.
Only the ``id``, ``event`` and ``data`` fields are meaningful; a blank line terminates an event.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Iterator, Optional, Union

from smee_relay._errors import SmeeStreamError

Line = Union[str, bytes]

ID_PREFIX = b"id:"
EVENT_PREFIX = b"event:"
DATA_PREFIX = b"data:"
RETRY_PREFIX = b"retry:"
COMMENT_PREFIX = b":"


@dataclass(frozen=True, slots=True)
class SSEEvent:
    """
    Data structure representing a single Server-Sent Event (SSE).
    ``data`` is the concatenation of every ``data:`` value of the event, in arrival order.
    """

    id: str = ""
    name: str = ""
    data: bytes = b""

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", "replace")

    def json(self) -> Any:
        """Decode ``data`` as JSON (smee.io delivers webhook payloads as JSON objects)."""
        return json.loads(self.data)


def _field_value(line: bytes, prefix: bytes) -> bytes:
    # Skip the prefix plus exactly one separating character.
    return line[len(prefix) + 1:]


def _strip_terminator(line: bytes) -> bytes:
    # One "\n", then one "\r"; a "\r" inside the line is data.
    if line.endswith(b"\n"):
        line = line[:-1]
    if line.endswith(b"\r"):
        line = line[:-1]
    return line


def split_lines(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """
    Split a body, delivered in arbitrary chunks, into lines delimited by ``\\n``.

    One trailing ``\\r`` is dropped from each line; the bytes are not decoded. A last
    line without delimiter is still yielded.
    """
    pending = b""
    for chunk in chunks:
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for line in lines:
            yield _strip_terminator(line)
    if pending:
        yield _strip_terminator(pending)


async def asplit_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    pending = b""
    async for chunk in chunks:
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for line in lines:
            yield _strip_terminator(line)
    if pending:
        yield _strip_terminator(pending)


class SSEDecoder:
    """
    Incremental SSE state machine: one line in, at most one completed event out.

    In strict mode any line that is not ``id:``, ``event:``, ``data:`` or empty is a
    protocol violation. With ``strict=False`` comment lines (``:``) and ``retry:``
    fields are ignored as well; every other line is still rejected.
    """

    def __init__(self, *, strict: bool = True) -> None:
        self.strict = strict
        self._id = ""
        self._name = ""
        self._data = bytearray()
        self._pending = False

    @property
    def pending(self) -> bool:
        """True while an event has received fields but not its blank-line terminator."""
        return self._pending

    def reset(self) -> None:
        self._id = ""
        self._name = ""
        self._data = bytearray()
        self._pending = False

    def feed(self, line: Line) -> Optional[SSEEvent]:
        """
        Process one line of input.

        Args:
            line: A single line, with or without its trailing line terminator.

        Returns:
            The completed SSEEvent when ``line`` is the blank terminator, otherwise None.

        Raises:
            SmeeStreamError: ``protocol_violation`` for an unrecognized line. The event being
                accumulated is discarded.
        """
        raw = line.encode("utf-8") if isinstance(line, str) else bytes(line)
        raw = _strip_terminator(raw)

        if not raw:
            event = SSEEvent(id=self._id, name=self._name, data=bytes(self._data))
            self.reset()
            return event

        if raw.startswith(ID_PREFIX):
            self._id = _field_value(raw, ID_PREFIX).decode("utf-8", "replace")
        elif raw.startswith(EVENT_PREFIX):
            self._name = _field_value(raw, EVENT_PREFIX).decode("utf-8", "replace")
        elif raw.startswith(DATA_PREFIX):
            self._data += _field_value(raw, DATA_PREFIX)
        elif not self.strict and (raw.startswith(COMMENT_PREFIX) or raw.startswith(RETRY_PREFIX)):
            return None
        else:
            self.reset()
            text = raw.decode("utf-8", "replace")
            raise SmeeStreamError(
                kind="protocol_violation",
                message=f"unrecognized line in event stream (len={len(raw)})",
                line=text,
            )

        self._pending = True
        return None


def iter_sse_events(lines: Iterable[Line], decoder: SSEDecoder | None = None) -> Iterator[SSEEvent]:
    """
    Parse SSE events from an iterable of lines.

    Args:
        lines: Lines of an event stream body, e.g. ``split_lines(response.iter_bytes())``.
        decoder: Optional decoder carrying the parsing mode; a strict one is used by default.

    Yields:
        Completed SSEEvent objects, in the order their terminators were seen.
        An event without terminator at the end of input is dropped.
    """
    decoder = decoder or SSEDecoder()
    for line in lines:
        event = decoder.feed(line)
        if event is not None:
            yield event


async def aiter_sse_events(
    lines: AsyncIterable[Line], decoder: SSEDecoder | None = None
) -> AsyncIterator[SSEEvent]:
    decoder = decoder or SSEDecoder()
    async for line in lines:
        event = decoder.feed(line)
        if event is not None:
            yield event
