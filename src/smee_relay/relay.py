"""
This module relays events from a smee.io channel to a local consumer.
A background asyncio task decodes the event stream and hands each event over an
unbuffered channel; the returned Subscription is the only way to stop it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Literal, Optional

import httpx

from smee_relay._client import HttpConfig, SmeeHttpClient
from smee_relay._config import RelaySettings, SourceConfig
from smee_relay._errors import SmeeStreamError
from smee_relay._sse import (
    SSEDecoder,
    SSEEvent,
    aiter_sse_events,
    asplit_lines,
    iter_sse_events,
    split_lines,
)

Outcome = Literal["running", "drained", "failed", "stopped"]
EventObserver = Callable[[SSEEvent], None]

logger = logging.getLogger(__name__)

# httpx.StreamError is not an httpx.HTTPError subclass; DecodingError is not a TransportError.
_READ_ERRORS = (httpx.HTTPError, httpx.StreamError)

_CLOSED: Any = object()


def _read_failure(exc: Exception) -> SmeeStreamError:
    return SmeeStreamError(
        kind="transport_failure",
        message=f"error during stream read: {str(exc) or type(exc).__name__}",
        cause=exc,
    )


class Subscription:
    """
    Handle of an active relay.

    Iterate it with ``async for`` to receive events; the iteration ends when the stream
    drains, fails or is stopped. Afterwards ``outcome`` tells which one happened and
    ``error`` holds the SmeeStreamError of a failed stream.

    Usage:
        sub = await client.start()
        async for event in sub:
            ...
        sub.raise_for_error()
    """

    def __init__(
        self,
        response: httpx.Response,
        *,
        decoder: SSEDecoder,
        source: SourceConfig,
        on_event: Optional[EventObserver] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> None:
        self.source = source
        self._response = response
        self._decoder = decoder
        self._on_event = on_event

        # put() + join() makes the queue a rendezvous: the relay waits for the consumer.
        self._handoff: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._outcome: Outcome = "running"
        self._error: Optional[SmeeStreamError] = None
        self._started = False
        self._closing = False
        self._stop_requested = False
        self._exhausted = False

        self._task = asyncio.create_task(self._run(), name=f"smee-relay {source.url}")
        self._watcher: Optional[asyncio.Task[None]] = None
        if cancel is not None:
            self._watcher = asyncio.create_task(self._watch(cancel))

    @property
    def outcome(self) -> Outcome:
        return self._outcome

    @property
    def error(self) -> Optional[SmeeStreamError]:
        return self._error

    @property
    def done(self) -> bool:
        return self._outcome != "running"

    def stop(self) -> None:
        """
        Ask the relay to stop reading and close the channel. Safe to call more than once.

        The pending read is cancelled, so an idle connection does not keep the relay alive.
        """
        if self._stop_requested:
            return
        self._stop_requested = True
        # A task that has not started yet checks the flag on its first step;
        # a task already closing the response must not be interrupted.
        if self._started and not self._closing:
            self._task.cancel()

    async def wait(self) -> Optional[SmeeStreamError]:
        """
        Wait for the relay to terminate and return the terminal error, if any.

        Exceptions raised by the ``on_event`` observer are re-raised here.
        """
        await asyncio.shield(self._task)
        return self._error

    async def aclose(self) -> None:
        self.stop()
        await self.wait()

    def raise_for_error(self) -> None:
        if self._error is not None:
            raise self._error

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> SSEEvent:
        if self._exhausted:
            raise StopAsyncIteration
        item = await self._handoff.get()
        self._handoff.task_done()
        if item is _CLOSED:
            self._exhausted = True
            raise StopAsyncIteration
        return item

    async def _watch(self, cancel: asyncio.Event) -> None:
        await cancel.wait()
        self.stop()

    async def _relay(self) -> None:
        lines = asplit_lines(self._response.aiter_bytes())
        events = aiter_sse_events(lines, self._decoder)
        async with contextlib.aclosing(events):
            async for event in events:
                if self._on_event is not None:
                    try:
                        self._on_event(event)
                    except Exception:
                        logger.exception("event observer failed on %s", self.source.url)
                        raise
                await self._handoff.put(event)
                await self._handoff.join()

    async def _run(self) -> None:
        self._started = True
        outcome: Outcome = "stopped"
        try:
            if not self._stop_requested:
                outcome = "failed"
                await self._relay()
                outcome = "drained"
        except asyncio.CancelledError:
            outcome = "stopped"
        except SmeeStreamError as e:
            self._error = e
        except _READ_ERRORS as e:
            self._error = _read_failure(e)
        finally:
            self._closing = True
            try:
                await self._response.aclose()
            finally:
                self._close(outcome)

    def _close(self, outcome: Outcome) -> None:
        self._outcome = outcome
        if self._watcher is not None:
            self._watcher.cancel()

        # An event handed off but never received is dropped.
        while not self._handoff.empty():
            self._handoff.get_nowait()
            self._handoff.task_done()
        self._handoff.put_nowait(_CLOSED)

        if self._error is not None:
            logger.debug("relay %s %s: %s", self.source.url, outcome, self._error)
        else:
            logger.debug("relay %s %s", self.source.url, outcome)


@dataclass(slots=True)
class SmeeClient:
    """
    Main interface for subscribing to a smee.io channel.
    Provides an asynchronous relay (``start``) and a plain synchronous iterator (``iter_events``).
    """
    source: str | None = None
    settings: RelaySettings = field(default_factory=RelaySettings.from_env)
    on_event: EventObserver | None = None

    _http: SmeeHttpClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """
        Initialize the HTTP client from the relay settings.
        """
        self._http = SmeeHttpClient(
            config=HttpConfig(
                base_url=self.settings.base_url,
                timeout_s=self.settings.timeout_s,
                debug=self.settings.http_debug,
            )
        )

    def _decoder(self) -> SSEDecoder:
        return SSEDecoder(strict=self.settings.strict)

    def create_channel(self) -> str:
        return self._http.create_channel()

    async def acreate_channel(self) -> str:
        return await self._http.acreate_channel()

    def resolve_source(self) -> SourceConfig:
        """
        Resolve the source URL: explicit value, then SMEE_SOURCE, then a newly created channel.
        """
        config = SourceConfig.from_env_or_value(self.source)
        if config is None:
            config = SourceConfig(url=self.create_channel(), origin="created")
        return config

    async def aresolve_source(self) -> SourceConfig:
        config = SourceConfig.from_env_or_value(self.source)
        if config is None:
            config = SourceConfig(url=await self.acreate_channel(), origin="created")
        return config

    async def start(
        self,
        source: SourceConfig | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> Subscription:
        """
        Open the event stream and start relaying it in a background task.

        Args:
            source: Already resolved source; resolved with ``aresolve_source`` when omitted.
            cancel: Optional event; setting it has the same effect as ``Subscription.stop``.

        Returns:
            The Subscription handle of the running relay.

        Raises:
            SmeeStreamError: If the stream cannot be opened (transport failure, unexpected
                status or protocol mismatch). No task is started in that case.
        """
        config = source or await self.aresolve_source()
        response = await self._http.aopen_stream(config.url)
        logger.debug("stream opened: %s (%s)", config.url, config.origin)
        return Subscription(
            response,
            decoder=self._decoder(),
            source=config,
            on_event=self.on_event,
            cancel=cancel,
        )

    def iter_events(self, source: SourceConfig | None = None) -> Iterator[SSEEvent]:
        """
        Synchronously yield the events of the stream until it ends.

        The stream is opened on the first ``next()``. A failure is raised from the
        iterator as SmeeStreamError; closing the iterator closes the connection.
        """
        config = source or self.resolve_source()
        response = self._http.open_stream(config.url)
        try:
            for event in iter_sse_events(split_lines(response.iter_bytes()), self._decoder()):
                if self.on_event is not None:
                    self.on_event(event)
                yield event
        except _READ_ERRORS as e:
            raise _read_failure(e) from e
        finally:
            response.close()

    def close(self) -> None:
        self._http.close()

    async def aclose(self) -> None:
        await self._http.aclose()
