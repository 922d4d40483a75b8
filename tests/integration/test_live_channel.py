import asyncio
import uuid

import httpx
import pytest

##################################################################
import logging

logging.basicConfig(
    level=logging.DEBUG,
    format="%(levelname)s [%(asctime)s] %(name)s - %(message)s",
)

logging.getLogger("httpcore").setLevel(logging.INFO)
##################################################################

from smee_relay import RelaySettings, SmeeClient


@pytest.mark.integration
def test_create_channel() -> None:
    client = SmeeClient(settings=RelaySettings())
    try:
        url = client.create_channel()
    finally:
        client.close()

    assert url.startswith("https://smee.io/")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_webhook_is_relayed() -> None:
    # smee.io envía comentarios/keepalives, por eso se usa el modo lenient.
    client = SmeeClient(settings=RelaySettings(strict=False))
    marker = uuid.uuid4().hex

    source = await client.aresolve_source()
    sub = await client.start(source)
    try:
        async with httpx.AsyncClient() as poster:
            resp = await poster.post(source.url, json={"marker": marker})
            resp.raise_for_status()

        async def first_matching() -> dict:
            async for event in sub:
                if not event.data:
                    continue
                payload = event.json()
                if isinstance(payload, dict) and payload.get("body", {}).get("marker") == marker:
                    return payload
            raise AssertionError(f"stream ended: {sub.outcome} {sub.error}")

        payload = await asyncio.wait_for(first_matching(), 30)
        assert payload["body"] == {"marker": marker}
    finally:
        await sub.aclose()
        await client.aclose()

    assert sub.outcome == "stopped"
