from __future__ import annotations

import json
import os
import sys
from uuid import uuid4

import httpx


def main() -> int:
    base_url = os.getenv("HASTE_SMOKE_API_BASE_URL", "http://localhost:7777").rstrip("/")
    client = httpx.Client(base_url=base_url, timeout=30)

    body = f"haste smoke test {uuid4()}\n".encode("utf-8")
    created = client.post("/docs", content=body)
    created.raise_for_status()
    key = created.json()["key"]

    fetched = client.get(f"/docs/{key}.txt")
    fetched.raise_for_status()
    if fetched.content != body:
        raise RuntimeError("Fetched document does not match what was posted")

    head = client.head(f"/docs/{key}", headers={"Accept": "text/*"})
    head.raise_for_status()

    rejected = client.get(f"/docs/{key}", headers={"Accept": "image/png"})
    if rejected.status_code != 406:
        raise RuntimeError(f"Expected 406 for image/png, got {rejected.status_code}")

    link = client.post("/docs", content=b"https://example.com\n")
    link.raise_for_status()
    redirect = client.get(f"/docs/{link.json()['key']}", follow_redirects=False)
    if redirect.status_code != 301 or redirect.headers.get("location") != "https://example.com":
        raise RuntimeError("URL paste did not redirect")

    recent = client.get("/recent")
    recent.raise_for_status()
    if key not in [item["key"] for item in recent.json()]:
        print("warning: key not in recent list (another writer may have pushed it out)", file=sys.stderr)

    keys = client.get(f"/keys/{key}")
    keys.raise_for_status()

    print(json.dumps({"status": "ok", "key": key}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
