"""
Re-deliver every webhook received on a smee.io channel to a local HTTP endpoint.

    python examples/forward_webhooks.py http://localhost:3000/webhooks
"""

import asyncio
import sys

import dotenv
import httpx

from smee_relay import SmeeClient

dotenv.load_dotenv()

# Hop-by-hop and transport headers that must not be replayed.
SKIP_HEADERS = {"host", "content-length", "connection", "accept-encoding", "transfer-encoding"}


async def forward(target: str) -> None:
    client = SmeeClient(source=None)
    source = await client.aresolve_source()
    print(f"Forwarding {source.url} -> {target}")

    sub = await client.start(source)
    async with httpx.AsyncClient() as local:
        async for event in sub:
            if event.name in ("ready", "ping") or not event.data:
                continue
            payload = event.json()
            headers = {
                k: str(v) for k, v in payload.items()
                if isinstance(k, str) and k.lower().startswith("x-") and k.lower() not in SKIP_HEADERS
            }
            resp = await local.post(target, json=payload.get("body"), headers=headers)
            print(f"{event.id or '-'} {headers.get('x-github-event', '')} -> {resp.status_code}")

    await client.aclose()
    sub.raise_for_error()


if __name__ == "__main__":
    asyncio.run(forward(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3000/"))
