import sys

import dotenv
import httpx

from smee_relay import RelaySettings, SmeeClient
from smee_relay._sse import split_lines

dotenv.load_dotenv()

# Print the raw body lines of a channel, before any SSE parsing.
client = SmeeClient(source=sys.argv[1] if len(sys.argv) > 1 else None, settings=RelaySettings())
source = client.resolve_source()
print("source:", source.url, f"({source.describe()})")

with httpx.stream("GET", source.url, headers={"Accept": "text/event-stream"}, timeout=None) as r:
    print("status=", r.status_code, "content-type=", r.headers.get("content-type"))
    for i, line in enumerate(split_lines(r.iter_bytes())):
        print("i=", i, "repr=", repr(line))
        if i >= 30:
            break
