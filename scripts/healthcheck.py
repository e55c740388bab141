"""
Container health check for the ratebook API.

Exits non-zero unless /health answers with status "ok" and at least one
registered provider schema.
"""

from __future__ import annotations

import json
import os
import sys
from urllib.error import URLError
from urllib.request import urlopen


def main() -> int:
    port = os.getenv("PORT", "8000")
    url = f"http://127.0.0.1:{port}/health"

    try:
        with urlopen(url, timeout=2) as response:
            if not 200 <= response.status < 400:
                return 1
            payload = json.loads(response.read().decode("utf-8"))
    except (URLError, TimeoutError, ValueError) as exc:
        print(f"healthcheck failed: {exc}", file=sys.stderr)
        return 1

    return 0 if payload.get("status") == "ok" and payload.get("providers") else 1


if __name__ == "__main__":
    raise SystemExit(main())
