from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from typing import Optional

DEFAULT_TIMEOUT_SEC = 5.0

_DEFAULT_PORTS = {"https": 443, "http": 80}


@dataclass(frozen=True)
class Endpoint:
    scheme: str
    host: str
    port: int

    @classmethod
    def from_url(cls, url: str) -> "Endpoint":
        raw = (url or "").strip()
        if not raw:
            raise ValueError("endpoint URL is empty")
        if "://" not in raw:
            raw = "https://" + raw
        parsed = urllib.parse.urlsplit(raw)
        scheme = parsed.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            raise ValueError(f"Unsupported endpoint scheme: {parsed.scheme}")
        if not parsed.hostname:
            raise ValueError(f"Endpoint URL has no host: {url}")
        port = parsed.port if parsed.port is not None else _DEFAULT_PORTS[scheme]
        return cls(scheme=scheme, host=parsed.hostname, port=port)

    def url_for(self, path: str) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}/{path.lstrip('/')}"

    def __str__(self) -> str:
        return self.url_for("")


@dataclass(frozen=True)
class RemoteSignerConfig:
    """
    Everything that identifies one remote signing identity.

    Built once and shared read-only between a signer and every instance derived from it
    with `connect()`.
    """

    account: str
    endpoint: Endpoint
    authorization: str
    ca: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SEC

    def __post_init__(self) -> None:
        if not (self.account or "").strip():
            raise ValueError("account must not be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

    def path_for(self, operation: str) -> str:
        return f"/{self.account}/{operation}"

    def __repr__(self) -> str:
        # authorization is a bearer secret
        return (
            f"RemoteSignerConfig(account={self.account!r}, endpoint={str(self.endpoint)!r}, "
            f"ca={self.ca!r}, timeout={self.timeout!r})"
        )
