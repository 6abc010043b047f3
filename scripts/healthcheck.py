"""
Container probe for the governance API.

Exits 0 when GET /health answers {"status": "ok"}, 1 otherwise. Uses only
the standard library so it runs before the app's dependencies are importable.
"""

from __future__ import annotations

import json
import os
import sys
from urllib.error import URLError
from urllib.request import urlopen


def probe(url: str, timeout: float) -> bool:
    try:
        with urlopen(url, timeout=timeout) as response:
            payload = json.loads(response.read() or b"{}")
    except (URLError, TimeoutError, ValueError):
        return False
    return isinstance(payload, dict) and payload.get("status") == "ok"


def main() -> int:
    host = os.getenv("HEALTHCHECK_HOST", "127.0.0.1")
    port = os.getenv("PORT", "8000")
    timeout = float(os.getenv("HEALTHCHECK_TIMEOUT_SECONDS", "2"))
    url = f"http://{host}:{port}/health"

    if probe(url, timeout):
        return 0
    print(f"health check failed: {url}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
