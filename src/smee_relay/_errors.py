from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Literal

ErrorKind = Literal[
    "transport_failure",
    "unexpected_status",
    "protocol_mismatch",
    "protocol_violation",
]


class SmeeError(RuntimeError):
    """Base error of the library."""


@dataclass(slots=True)
class SmeeStreamError(SmeeError):
    """
    Error raised while opening or reading a smee event stream.

    The ``kind`` field tells the failures apart:

    - ``transport_failure``: connection or read error (``cause`` holds the httpx error).
    - ``unexpected_status``: the stream endpoint answered with something other than 200.
    - ``protocol_mismatch``: the response Content-Type is not ``text/event-stream``.
    - ``protocol_violation``: a body line matched none of the recognized SSE cases.

    A requested shutdown is never reported through this class.
    """
    kind: ErrorKind
    message: str
    status_code: int | None = None
    content_type: str | None = None
    line: str | None = None
    cause: BaseException | None = None

    def __str__(self) -> str:
        parts = [f"SmeeStreamError(kind={self.kind}"]
        if self.status_code is not None:
            parts.append(f", status_code={self.status_code}")
        if self.content_type is not None:
            parts.append(f", content_type={self.content_type!r}")
        parts.append(f", message={self.message!r}")
        if self.line is not None:
            parts.append(f", line={self.line!r}")
        if self.cause is not None:
            parts.append(f", cause={self.cause!r}")
        parts.append(")")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Converts the error to a dict for structured logging."""
        return {
            "kind": self.kind,
            "message": self.message,
            "status_code": self.status_code,
            "content_type": self.content_type,
            "line": self.line,
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    @property
    def is_transport_failure(self) -> bool:
        return self.kind == "transport_failure"

    @property
    def is_unexpected_status(self) -> bool:
        return self.kind == "unexpected_status"

    @property
    def is_protocol_mismatch(self) -> bool:
        return self.kind == "protocol_mismatch"

    @property
    def is_protocol_violation(self) -> bool:
        return self.kind == "protocol_violation"
