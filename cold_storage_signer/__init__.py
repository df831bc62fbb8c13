from .base import Signer
from .client import ColdStorageClient
from .endpoint import Endpoint, RemoteSignerConfig
from .errors import (
    AddressFormatError,
    ColdStorageError,
    NormalizationError,
    ProtocolViolationError,
    ProviderRequiredError,
    RequestTimeoutError,
    TransportError,
    UnexpectedStatusError,
)
from .factory import get_signer
from .signature import Signature, join_signature, split_signature
from .signer import ColdStorageSigner
from .transactions import UnsignedTransaction, normalize_transaction, serialize_signed, serialize_unsigned

__version__ = "0.1.0"

__all__ = [
    "Signer",
    "ColdStorageSigner",
    "ColdStorageClient",
    "Endpoint",
    "RemoteSignerConfig",
    "get_signer",
    "Signature",
    "split_signature",
    "join_signature",
    "UnsignedTransaction",
    "normalize_transaction",
    "serialize_unsigned",
    "serialize_signed",
    "ColdStorageError",
    "TransportError",
    "RequestTimeoutError",
    "ProtocolViolationError",
    "UnexpectedStatusError",
    "NormalizationError",
    "AddressFormatError",
    "ProviderRequiredError",
]
