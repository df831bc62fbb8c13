from __future__ import annotations

import string
from typing import Any, Dict

from .endpoint import RemoteSignerConfig
from .errors import ProtocolViolationError, UnexpectedStatusError
from .transport import HttpResult, send_request

GET_LABEL = "getLabel"
SIGN_MESSAGE = "signMessage"
SIGN_TRANSACTION = "signTransaction"

_HEX_DIGITS = frozenset(string.hexdigits)


def _check_payload_hex(payload_hex: str) -> str:
    if not isinstance(payload_hex, str):
        raise ValueError("payload must be a hex string")
    if payload_hex[:2].lower() == "0x":
        raise ValueError("payload hex must not carry a 0x prefix")
    if len(payload_hex) % 2 or not set(payload_hex) <= _HEX_DIGITS:
        raise ValueError("payload is not valid hex")
    return payload_hex


def require_key(operation: str, result: HttpResult, key: str) -> Any:
    """
    Validate an untyped response and return the value under `key`.
    """
    if not result.ok:
        raise UnexpectedStatusError(
            "unexpected_status",
            f"{operation}: remote service answered with status {result.status_code}",
            {"operation": operation, "status": result.status_code, "body": result.body},
        )
    body = result.body
    if not isinstance(body, dict) or key not in body:
        raise ProtocolViolationError(
            f"missing_{key}",
            f"{operation}: response has no '{key}' field: {body!r}",
            {"operation": operation, "body": body},
        )
    return body[key]


class ColdStorageClient:
    """
    Client for the cold storage signing service.

    Protocol (HTTPS JSON), every path scoped by the account:
    GET  /{account}/getLabel         -> {"label": "0x..."}
    POST /{account}/signMessage      body {"message": "<hex>"} -> {"signature": ...}
    POST /{account}/signTransaction  body {"message": "<hex>"} -> {"signature": ...}

    A client instance is bound to exactly one account.
    """

    def __init__(self, config: RemoteSignerConfig) -> None:
        self._config = config

    @property
    def config(self) -> RemoteSignerConfig:
        return self._config

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": self._config.authorization,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _request(self, operation: str, method: str, payload: Dict[str, Any] | None = None) -> HttpResult:
        url = self._config.endpoint.url_for(self._config.path_for(operation))
        return send_request(
            url,
            method,
            headers=self._headers(),
            payload=payload,
            timeout=self._config.timeout,
            ca=self._config.ca,
        )

    def fetch_label(self) -> str:
        label = require_key(GET_LABEL, self._request(GET_LABEL, "GET"), "label")
        if not isinstance(label, str):
            raise ProtocolViolationError(
                "invalid_label",
                f"{GET_LABEL}: label is not a string: {label!r}",
                {"operation": GET_LABEL},
            )
        return label

    def sign_message(self, payload_hex: str) -> Any:
        payload = {"message": _check_payload_hex(payload_hex)}
        return require_key(SIGN_MESSAGE, self._request(SIGN_MESSAGE, "POST", payload), "signature")

    def sign_transaction(self, payload_hex: str) -> Any:
        payload = {"message": _check_payload_hex(payload_hex)}
        return require_key(SIGN_TRANSACTION, self._request(SIGN_TRANSACTION, "POST", payload), "signature")
