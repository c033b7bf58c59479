"""Post-deploy smoke checks against a running booking API."""

from __future__ import annotations

import argparse
import json
import os
import urllib.error
import urllib.request
from uuid import uuid4

DEFAULT_BASE_URL = os.getenv("SMOKE_BASE_URL", "http://localhost:8000")
API = "/api/v1"

# (method, path, expected status)
STATUS_CHECKS = [
    ("GET", "/health", 200),
    ("GET", "/docs", 200),
    ("GET", "/metrics", 200),
    ("GET", f"{API}/catalog/services", 200),
    ("GET", f"{API}/booking/{uuid4()}", 404),
]


class SmokeClient:
    def __init__(self, base_url: str, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def call(
        self,
        method: str,
        path: str,
        *,
        expected: int,
        body: dict | None = None,
        headers: dict[str, str] | None = None,
    ) -> object:
        """Send a request and return the decoded JSON body (or ``None``)."""
        request_headers = {"Accept": "application/json", **(headers or {})}
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            request_headers["Content-Type"] = "application/json"
        request = urllib.request.Request(f"{self.base_url}{path}", data=data, method=method, headers=request_headers)

        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status, raw = response.getcode(), response.read()
        except urllib.error.HTTPError as exc:
            status, raw = exc.code, exc.read()

        if status != expected:
            raise RuntimeError(f"{method} {path} -> {status}, expected {expected}: {raw[:500]!r}")
        if not raw or not raw.lstrip().startswith((b"{", b"[")):
            return None
        return json.loads(raw)


def run_checks(client: SmokeClient) -> None:
    for method, path, expected in STATUS_CHECKS:
        client.call(method, path, expected=expected)

    ready = client.call("GET", "/ready", expected=200)
    if not isinstance(ready, dict) or ready.get("database") != "ok":
        raise RuntimeError(f"Unexpected readiness payload: {ready!r}")

    slots = client.call("GET", f"{API}/scheduling/slots?only_available=true&limit=5", expected=200)
    if not isinstance(slots, dict) or not {"items", "total", "has_more"} <= slots.keys():
        raise RuntimeError(f"Unexpected slot listing payload: {slots!r}")

    preview = client.call("GET", f"{API}/policies/preview", expected=200)
    if not isinstance(preview, list):
        raise RuntimeError(f"Unexpected policy preview payload: {preview!r}")

    rejected = client.call(
        "POST",
        f"{API}/scheduling/patterns/sweep",
        expected=403,
        headers={"X-Admin-Key": f"invalid-{uuid4().hex[:10]}"},
    )
    if not isinstance(rejected, dict) or rejected.get("error", {}).get("code") != "forbidden":
        raise RuntimeError(f"Admin guard returned an unexpected body: {rejected!r}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    args = parser.parse_args()

    run_checks(SmokeClient(args.base_url))
    print("Smoke checks passed.")


if __name__ == "__main__":
    main()
