from __future__ import annotations

from smee_relay._config import RelaySettings, SourceConfig
from smee_relay._errors import SmeeError, SmeeStreamError
from smee_relay._sse import SSEDecoder, SSEEvent
from smee_relay.relay import SmeeClient, Subscription

__all__ = [
    "RelaySettings",
    "SSEDecoder",
    "SSEEvent",
    "SmeeClient",
    "SmeeError",
    "SmeeStreamError",
    "SourceConfig",
    "Subscription",
]

__version__ = "0.1.0"
