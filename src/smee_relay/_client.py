from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from smee_relay._config import DEFAULT_BASE_URL
from smee_relay._errors import SmeeStreamError

EVENT_STREAM = "text/event-stream"
NEW_CHANNEL_PATH = "/new"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HttpConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 30.0
    debug: bool = False


def _transport_failure(exc: Exception, what: str) -> SmeeStreamError:
    return SmeeStreamError(
        kind="transport_failure",
        message=f"{what}: {str(exc) or type(exc).__name__}",
        cause=exc,
    )


class SmeeHttpClient:
    """
    Wrapper HTTPX ligero con:
    - Apertura de streams SSE via httpx.Client.send / AsyncClient.send (stream=True)
    - Creacion de canales (HEAD /new sin seguir redirects)
    - Debug logging opcional
    """

    def __init__(self, *, config: HttpConfig) -> None:
        self._config = config
        self._debug_http = config.debug

        def _log_request(request: httpx.Request) -> None:
            if not self._debug_http:
                return
            logger.warning("HTTPX REQUEST %s %s", request.method, request.url)
            logger.warning("HTTPX REQUEST headers=%s", dict(request.headers))

        def _log_response(response: httpx.Response) -> None:
            if not self._debug_http:
                return
            req = response.request
            logger.warning("HTTPX RESPONSE %s %s -> %s", req.method, req.url, response.status_code)
            logger.warning("HTTPX RESPONSE headers=%s", dict(response.headers))
            # Never read the body here: the stream belongs to the decoder.
            if EVENT_STREAM in response.headers.get("content-type", ""):
                logger.warning("HTTPX RESPONSE body=(event-stream; not auto-logged)")

        async def _log_request_async(request: httpx.Request) -> None:
            _log_request(request)

        async def _log_response_async(response: httpx.Response) -> None:
            _log_response(response)

        EventHooksDict = dict[str, list[Callable[..., Any]]]

        hooks_sync: EventHooksDict = {"request": [_log_request], "response": [_log_response]}
        hooks_async: EventHooksDict = {"request": [_log_request_async], "response": [_log_response_async]}

        # The read timeout stays unbounded: an idle event stream is not an error.
        timeout = httpx.Timeout(config.timeout_s, read=None)
        self._client = httpx.Client(timeout=timeout, event_hooks=hooks_sync)
        self._aclient = httpx.AsyncClient(timeout=timeout, event_hooks=hooks_async)

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        await self._aclient.aclose()

    @staticmethod
    def _stream_headers() -> dict[str, str]:
        return {"Accept": EVENT_STREAM}

    @staticmethod
    def check_stream_response(resp: httpx.Response) -> None:
        """
        Validate the response of a stream request before any line is read.

        Raises:
            SmeeStreamError: ``unexpected_status`` when the status is not exactly 200,
                ``protocol_mismatch`` when the Content-Type is not exactly text/event-stream.
        """
        if resp.status_code != 200:
            raise SmeeStreamError(
                kind="unexpected_status",
                message=f"stream request answered with status {resp.status_code}",
                status_code=resp.status_code,
            )

        content_type = resp.headers.get("content-type", "")
        if content_type != EVENT_STREAM:
            raise SmeeStreamError(
                kind="protocol_mismatch",
                message=f"invalid Content-Type {content_type!r}, expected {EVENT_STREAM!r}",
                status_code=resp.status_code,
                content_type=content_type,
            )

    @staticmethod
    def _location(resp: httpx.Response) -> str:
        location = resp.headers.get("location")
        if not location:
            raise SmeeStreamError(
                kind="unexpected_status",
                message="channel creation returned no Location header",
                status_code=resp.status_code,
            )
        return location

    def open_stream(self, url: str) -> httpx.Response:
        """
        Open a streaming GET against ``url`` and validate it.

        The returned response has not been read; the caller owns it and must close it.
        """
        if not url:
            raise ValueError("stream URL must not be empty")

        request = self._client.build_request("GET", url, headers=self._stream_headers())
        try:
            resp = self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise _transport_failure(e, f"could not open {url}") from e

        try:
            self.check_stream_response(resp)
        except SmeeStreamError:
            resp.close()
            raise
        return resp

    async def aopen_stream(self, url: str) -> httpx.Response:
        """
        Async version of :meth:`open_stream`.

        Usage:
            resp = await client.aopen_stream(url)
            try:
                async for line in asplit_lines(resp.aiter_bytes()):
                    ...
            finally:
                await resp.aclose()
        """
        if not url:
            raise ValueError("stream URL must not be empty")

        request = self._aclient.build_request("GET", url, headers=self._stream_headers())
        try:
            resp = await self._aclient.send(request, stream=True)
        except httpx.HTTPError as e:
            raise _transport_failure(e, f"could not open {url}") from e

        try:
            self.check_stream_response(resp)
        except SmeeStreamError:
            await resp.aclose()
            raise
        return resp

    def create_channel(self) -> str:
        """Create a new channel and return its URL (the Location of ``HEAD /new``)."""
        url = f"{self._config.base_url}{NEW_CHANNEL_PATH}"
        try:
            resp = self._client.head(url, follow_redirects=False)
        except httpx.HTTPError as e:
            raise _transport_failure(e, "could not create channel") from e
        return self._location(resp)

    async def acreate_channel(self) -> str:
        url = f"{self._config.base_url}{NEW_CHANNEL_PATH}"
        try:
            resp = await self._aclient.head(url, follow_redirects=False)
        except httpx.HTTPError as e:
            raise _transport_failure(e, "could not create channel") from e
        return self._location(resp)
