from __future__ import annotations

import json
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from .endpoint import DEFAULT_TIMEOUT_SEC
from .errors import ProtocolViolationError, RequestTimeoutError, classify_request_exception
from .observability import build_log_context, log_event

TRANSPORT_CTX = build_log_context(tool="transport")

_READ_CHUNK_BYTES = 1


@dataclass(frozen=True)
class HttpResult:
    """
    Outcome of one HTTP exchange.

    `body` is decoded JSON only for a 200 response with a non-empty body; for every other
    status it is the raw response text.
    """

    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def _encode_payload(payload: Any) -> Optional[str]:
    if payload is None:
        return None
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, separators=(",", ":"))


def _check_deadline(started: float, timeout: float, url: str) -> None:
    elapsed = time.monotonic() - started
    if elapsed > timeout:
        raise RequestTimeoutError(
            "timeout",
            f"Request exceeded the {timeout:g}s deadline",
            {"url": url, "elapsed_sec": round(elapsed, 3)},
        )


def _read_body(r: requests.Response, started: float, timeout: float, url: str) -> bytes:
    buf = bytearray()
    # urllib3 blocks until a whole chunk has arrived, so read byte by byte
    for chunk in r.iter_content(chunk_size=_READ_CHUNK_BYTES):
        buf += chunk
        _check_deadline(started, timeout, url)
    return bytes(buf)


def send_request(
    url: str,
    method: str,
    *,
    headers: Mapping[str, str],
    payload: str | Dict[str, Any] | None = None,
    timeout: float = DEFAULT_TIMEOUT_SEC,
    ca: str | None = None,
) -> HttpResult:
    """
    Perform exactly one request. No retries; callers own any retry policy.

    `timeout` is a deadline for the whole exchange. requests only bounds each socket
    operation, so the body is streamed and the deadline is checked between reads; once it
    has passed the connection is closed and RequestTimeoutError is raised.
    """
    started = time.monotonic()
    try:
        r = requests.request(
            method,
            url,
            headers=dict(headers),
            data=_encode_payload(payload),
            timeout=timeout,
            verify=ca if ca else True,
            stream=True,
        )
        try:
            _check_deadline(started, timeout, url)
            raw = _read_body(r, started, timeout, url)
        finally:
            r.close()
    except requests.exceptions.RequestException as e:
        raise classify_request_exception(e, url=url) from e

    elapsed = time.monotonic() - started
    path = urllib.parse.urlsplit(url).path
    log_event(
        "remote_request",
        ctx=TRANSPORT_CTX,
        data={"method": method, "path": path, "status": r.status_code, "elapsed_ms": int(elapsed * 1000)},
        level="debug",
    )

    text = raw.decode(r.encoding or "utf-8", errors="replace")
    if r.status_code != 200:
        return HttpResult(status_code=r.status_code, body=text)

    if not raw.strip():
        return HttpResult(status_code=200, body=text)
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise ProtocolViolationError(
            "invalid_json",
            f"Remote service returned 200 with a non-JSON body: {e}",
            {"url": url},
        ) from e
    return HttpResult(status_code=200, body=body)
