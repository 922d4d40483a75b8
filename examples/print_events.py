import asyncio

import dotenv

from smee_relay import SmeeClient

dotenv.load_dotenv()


async def main() -> None:
    client = SmeeClient()  # SMEE_SOURCE o un canal nuevo
    source = await client.aresolve_source()
    print("Forward your webhooks to:", source.url)

    sub = await client.start(source)
    try:
        async for event in sub:
            print(f"[{event.name or 'message'}] id={event.id!r}")
            print(event.text, "\n")
    finally:
        await sub.aclose()
        await client.aclose()

    print("outcome:", sub.outcome)
    sub.raise_for_error()


asyncio.run(main())
