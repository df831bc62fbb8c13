from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class Signer(Protocol):
    """
    The capability set of an EVM account signer.

    Implementations need not hold the private key; they only have to produce addresses and
    signatures on request.
    """

    def get_address(self) -> str: ...

    def sign_message(self, message: bytes | str) -> str: ...

    def sign_transaction(self, request: Dict[str, Any]) -> str: ...

    def connect(self, provider: Any) -> "Signer": ...
