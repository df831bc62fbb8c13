from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

import requests


@dataclass
class ColdStorageError(Exception):
    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class TransportError(ColdStorageError):
    """Connection refused/reset or TLS negotiation failure."""


class RequestTimeoutError(ColdStorageError):
    """The fixed request deadline elapsed and the request was abandoned."""


class ProtocolViolationError(ColdStorageError):
    """The remote service answered, but not with what the wire contract promises."""


class UnexpectedStatusError(ProtocolViolationError):
    pass


class NormalizationError(ColdStorageError):
    pass


class AddressFormatError(ColdStorageError):
    pass


class ProviderRequiredError(ColdStorageError):
    pass


def classify_request_exception(e: Exception, *, url: str = "") -> ColdStorageError:
    """
    Map `requests` failures into stable error codes.

    Timeouts are checked first: ConnectTimeout is both a Timeout and a ConnectionError.
    """
    data = {"url": url} if url else {}
    if isinstance(e, requests.exceptions.Timeout):
        return RequestTimeoutError("timeout", f"Request timed out: {e}", data)
    if isinstance(e, requests.exceptions.SSLError):
        return TransportError("tls_error", f"TLS failure: {e}", data)
    if isinstance(e, requests.exceptions.ConnectionError):
        return TransportError("connection_error", f"Connection failed: {e}", data)
    return TransportError("transport_error", str(e), data)
