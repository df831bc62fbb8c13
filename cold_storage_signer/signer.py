from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from eth_utils import is_address, to_checksum_address

from .client import ColdStorageClient
from .endpoint import DEFAULT_TIMEOUT_SEC, Endpoint, RemoteSignerConfig
from .errors import AddressFormatError, ProviderRequiredError
from .observability import build_log_context, log_event
from .populate import populate_transaction
from .signature import join_signature, split_signature
from .transactions import (
    checksum_matches,
    normalize_transaction,
    resolve_request,
    serialize_signed,
    serialize_unsigned,
    signing_hash,
)

SIGNER_CTX = build_log_context(tool="cold_storage_signer")


class ColdStorageSigner:
    """
    EVM signer backed by a remote cold storage service.

    No private key is held locally: transactions are normalized and encoded here, the
    unsigned bytes are signed remotely, and the signed transaction is assembled from the
    returned signature.

    Example:
        signer = ColdStorageSigner(
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
            "https://cold.example.com:8443",
            "Bearer <token>",
            provider=Web3(HTTPProvider(rpc_url)),
        )
        raw_tx = signer.sign_transaction({"to": "0x...", "value": 10**18})
    """

    def __init__(
        self,
        address: str,
        endpoint: str,
        authorization: str,
        provider: Any = None,
        ca: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        config = RemoteSignerConfig(
            account=address,
            endpoint=Endpoint.from_url(endpoint),
            authorization=authorization,
            ca=ca,
            timeout=timeout,
        )
        self._init(config, provider)

    @classmethod
    def from_config(cls, config: RemoteSignerConfig, provider: Any = None) -> "ColdStorageSigner":
        signer = cls.__new__(cls)
        signer._init(config, provider)
        return signer

    def _init(self, config: RemoteSignerConfig, provider: Any) -> None:
        self._config = config
        self._provider = provider
        self._client = ColdStorageClient(config)

    @property
    def config(self) -> RemoteSignerConfig:
        return self._config

    @property
    def address(self) -> str:
        return self._config.account

    @property
    def endpoint(self) -> Endpoint:
        return self._config.endpoint

    @property
    def authorization(self) -> str:
        return self._config.authorization

    @property
    def ca(self) -> Optional[str]:
        return self._config.ca

    @property
    def provider(self) -> Any:
        return self._provider

    def __repr__(self) -> str:
        return f"ColdStorageSigner(address={self.address!r}, endpoint={str(self.endpoint)!r})"

    def connect(self, provider: Any) -> "ColdStorageSigner":
        return ColdStorageSigner.from_config(self._config, provider)

    def get_address(self) -> str:
        label = self._client.fetch_label()
        # is_address no longer validates the checksum on every eth-utils release
        if not is_address(label) or not checksum_matches(label):
            raise AddressFormatError(
                "invalid_address",
                f"Remote label is not a valid address: {label!r}",
                {"label": label},
            )
        return to_checksum_address(label)

    def sign_message(self, message: bytes | str) -> str:
        if isinstance(message, str):
            message = message.encode("utf-8")
        material = self._client.sign_message(bytes(message).hex())
        sig = join_signature(split_signature(material))
        log_event("message_signed", ctx=SIGNER_CTX, data={"account": self.address, "message_bytes": len(message)})
        return sig

    def _require_provider(self, operation: str) -> Any:
        if self._provider is None:
            raise ProviderRequiredError(
                "provider_required",
                f"{operation} requires a chain data provider; use connect()",
                {"operation": operation},
            )
        return self._provider

    def populate_transaction(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        provider = self._require_provider("populate_transaction")
        return populate_transaction(request, source=provider, address=self.address)

    def sign_transaction(self, request: Mapping[str, Any]) -> str:
        tx = resolve_request(request)
        tx.pop("from", None)
        if self._provider is not None:
            tx = populate_transaction(tx, source=self._provider, address=self.address)
        unsigned = normalize_transaction(tx)

        material = self._client.sign_transaction(serialize_unsigned(unsigned).hex())
        raw = serialize_signed(unsigned, split_signature(material))
        log_event(
            "transaction_signed",
            ctx=SIGNER_CTX,
            data={"account": self.address, "signing_hash": "0x" + signing_hash(unsigned).hex(), **unsigned.summary()},
        )
        return "0x" + raw.hex()

    def send_transaction(self, request: Mapping[str, Any]) -> str:
        provider = self._require_provider("send_transaction")
        raw = self.sign_transaction(request)
        tx_hash = provider.eth.send_raw_transaction(raw)
        return provider.to_hex(tx_hash)

    def get_chain_id(self) -> int:
        return int(self._require_provider("get_chain_id").eth.chain_id)

    def get_transaction_count(self, block: str = "latest") -> int:
        provider = self._require_provider("get_transaction_count")
        return int(provider.eth.get_transaction_count(to_checksum_address(self.address), block))

    def get_balance(self, block: str = "latest") -> int:
        provider = self._require_provider("get_balance")
        return int(provider.eth.get_balance(to_checksum_address(self.address), block))
