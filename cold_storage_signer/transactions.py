from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import rlp
from eth_utils import is_checksum_address, keccak, to_checksum_address

from .errors import NormalizationError
from .signature import Signature

LEGACY = 0
ACCESS_LIST = 1
FEE_MARKET = 2

LEGACY_FIELDS: Tuple[str, ...] = ("to", "nonce", "data", "value", "chainId", "gasLimit", "gasPrice")
ACCESS_LIST_FIELDS: Tuple[str, ...] = (
    "to",
    "nonce",
    "data",
    "value",
    "chainId",
    "gasLimit",
    "gasPrice",
    "accessList",
)
FEE_MARKET_FIELDS: Tuple[str, ...] = (
    "to",
    "nonce",
    "data",
    "value",
    "chainId",
    "type",
    "gasLimit",
    "maxPriorityFeePerGas",
    "maxFeePerGas",
    "accessList",
)

FIELDS_BY_TYPE: Dict[int, Tuple[str, ...]] = {
    LEGACY: LEGACY_FIELDS,
    ACCESS_LIST: ACCESS_LIST_FIELDS,
    FEE_MARKET: FEE_MARKET_FIELDS,
}

FEE_MARKET_KEYS = ("maxFeePerGas", "maxPriorityFeePerGas")

REQUEST_KEYS = frozenset(
    {
        "to",
        "from",
        "nonce",
        "gasLimit",
        "gas",
        "gasPrice",
        "maxFeePerGas",
        "maxPriorityFeePerGas",
        "data",
        "value",
        "chainId",
        "type",
        "accessList",
    }
)


def _to_int(v: Any, *, name: str) -> int:
    if v is None:
        raise NormalizationError("missing_field", f"Missing required tx field: {name}", {"field": name})
    if isinstance(v, bool):
        raise NormalizationError("invalid_field", f"Invalid int field {name}: {v}", {"field": name})
    if isinstance(v, int):
        out = v
    elif isinstance(v, str):
        s = v.strip().lower()
        try:
            out = int(s, 16) if s.startswith("0x") else int(s, 10)
        except ValueError:
            raise NormalizationError("invalid_field", f"Invalid int field {name}: {v!r}", {"field": name}) from None
    else:
        raise NormalizationError(
            "invalid_field", f"Invalid int field {name}: {type(v).__name__}", {"field": name}
        )
    if out < 0:
        raise NormalizationError("invalid_field", f"Negative value for {name}: {out}", {"field": name})
    return out


def _to_bytes(v: Any, *, name: str) -> bytes:
    if v is None:
        return b""
    if isinstance(v, (bytes, bytearray)):
        return bytes(v)
    if isinstance(v, str):
        s = v.strip()
        if s[:2].lower() == "0x":
            s = s[2:]
        if len(s) % 2:
            raise NormalizationError("invalid_field", f"Odd-length hex in {name}", {"field": name})
        try:
            return bytes.fromhex(s)
        except ValueError:
            raise NormalizationError("invalid_field", f"Invalid hex in {name}", {"field": name}) from None
    raise NormalizationError("invalid_field", f"Invalid bytes field {name}: {type(v).__name__}", {"field": name})


def checksum_matches(address: str) -> bool:
    """
    EIP-55 rule: an all-lowercase or all-uppercase address carries no checksum, a
    mixed-case one must be correctly checksummed.
    """
    s = address[2:] if address[:2].lower() == "0x" else address
    if s == s.lower() or s == s.upper():
        return True
    return is_checksum_address("0x" + s)


def normalize_address(v: Any, *, name: str) -> Optional[str]:
    if v is None or v == "" or v == b"":
        return None
    if isinstance(v, (bytes, bytearray)):
        raw = bytes(v)
    elif isinstance(v, str):
        s = v.strip()
        if s[:2].lower() == "0x":
            s = s[2:]
        try:
            raw = bytes.fromhex(s)
        except ValueError:
            raise NormalizationError("invalid_address", f"{name} is not a hex address", {"field": name}) from None
        if not checksum_matches(s):
            raise NormalizationError("invalid_address", f"{name} has a bad checksum", {"field": name})
    else:
        raise NormalizationError("invalid_address", f"{name} must be a hex string", {"field": name})
    if len(raw) != 20:
        raise NormalizationError("invalid_address", f"{name} must be 20 bytes", {"field": name})
    return to_checksum_address(raw)


def _to_access_list(v: Any) -> Tuple[Tuple[str, Tuple[bytes, ...]], ...]:
    if v is None:
        return ()
    if not isinstance(v, (list, tuple)):
        raise NormalizationError("invalid_field", "accessList must be a list", {"field": "accessList"})
    out = []
    for entry in v:
        if isinstance(entry, Mapping):
            address = entry.get("address")
            keys = entry.get("storageKeys") or []
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            address, keys = entry
        else:
            raise NormalizationError("invalid_field", f"Invalid accessList entry: {entry!r}", {"field": "accessList"})
        addr = normalize_address(address, name="accessList.address")
        if addr is None:
            raise NormalizationError("invalid_field", "accessList entry without address", {"field": "accessList"})
        slots = []
        for key in keys:
            b = _to_bytes(key, name="accessList.storageKeys")
            if len(b) != 32:
                raise NormalizationError(
                    "invalid_field", "accessList storage keys must be 32 bytes", {"field": "accessList"}
                )
            slots.append(b)
        out.append((addr, tuple(slots)))
    return tuple(out)


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    A transaction reduced to exactly the fields its type is encoded with.

    `fields` never carries a key outside FIELDS_BY_TYPE[type], and never a sender.
    """

    type: int
    fields: Mapping[str, Any]

    def __post_init__(self) -> None:
        expected = FIELDS_BY_TYPE.get(self.type)
        if expected is None or set(self.fields) != set(expected):
            raise NormalizationError(
                "field_set_mismatch",
                f"Fields {sorted(self.fields)} do not match transaction type {self.type}",
                {"type": self.type},
            )
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.fields)

    def summary(self) -> Dict[str, Any]:
        """Log-safe description: no calldata, only its length."""
        return {
            "type": self.type,
            "chain_id": self.fields["chainId"],
            "nonce": self.fields["nonce"],
            "to": self.fields["to"],
            "value": self.fields["value"],
            "data_bytes": len(self.fields["data"]),
        }


def resolve_request(request: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Resolve deferred values: any zero-argument callable is called once.

    Exceptions raised while resolving propagate unchanged. `None` means absent and is dropped.
    """
    out: Dict[str, Any] = {}
    for key, value in request.items():
        if callable(value):
            value = value()
        if value is not None:
            out[key] = value
    return out


def detect_type(request: Mapping[str, Any]) -> int:
    raw = request.get("type")
    has_fee_market = any(request.get(k) is not None for k in FEE_MARKET_KEYS)
    if raw is None:
        return FEE_MARKET if has_fee_market else LEGACY
    tx_type = _to_int(raw, name="type")
    if tx_type not in FIELDS_BY_TYPE:
        raise NormalizationError(
            "unsupported_type", f"Unsupported tx type: {raw} (supported: 0, 1, 2)", {"type": raw}
        )
    return tx_type


def normalize_transaction(request: Mapping[str, Any]) -> UnsignedTransaction:
    tx = resolve_request(request)
    unknown = set(tx) - REQUEST_KEYS
    if unknown:
        raise NormalizationError(
            "unknown_field", f"Unknown transaction fields: {sorted(unknown)}", {"fields": sorted(unknown)}
        )
    if "gas" in tx and "gasLimit" in tx and _to_int(tx["gas"], name="gas") != _to_int(tx["gasLimit"], name="gasLimit"):
        raise NormalizationError("conflicting_field", "gas and gasLimit disagree", {"field": "gasLimit"})

    tx_type = detect_type(tx)
    if tx_type == FEE_MARKET and tx.get("gasPrice") is not None:
        raise NormalizationError(
            "conflicting_field", "fee-market transactions do not support gasPrice", {"field": "gasPrice"}
        )
    if tx_type != FEE_MARKET and any(tx.get(k) is not None for k in FEE_MARKET_KEYS):
        raise NormalizationError(
            "conflicting_field",
            f"type {tx_type} transactions do not support maxFeePerGas/maxPriorityFeePerGas",
            {"field": "maxFeePerGas"},
        )

    values: Dict[str, Any] = {
        "to": normalize_address(tx.get("to"), name="to"),
        "nonce": _to_int(tx.get("nonce"), name="nonce"),
        "data": _to_bytes(tx.get("data"), name="data"),
        "value": _to_int(tx.get("value", 0), name="value"),
        "chainId": _to_int(tx.get("chainId"), name="chainId"),
        "type": tx_type,
        "gasLimit": _to_int(tx.get("gasLimit", tx.get("gas")), name="gasLimit"),
    }
    if tx_type == FEE_MARKET:
        values["maxPriorityFeePerGas"] = _to_int(tx.get("maxPriorityFeePerGas"), name="maxPriorityFeePerGas")
        values["maxFeePerGas"] = _to_int(tx.get("maxFeePerGas"), name="maxFeePerGas")
    else:
        values["gasPrice"] = _to_int(tx.get("gasPrice"), name="gasPrice")
    if tx_type != LEGACY:
        values["accessList"] = _to_access_list(tx.get("accessList"))
    elif tx.get("accessList"):
        raise NormalizationError(
            "conflicting_field", "legacy transactions do not support accessList", {"field": "accessList"}
        )

    return UnsignedTransaction(
        type=tx_type,
        fields={k: values[k] for k in FIELDS_BY_TYPE[tx_type]},
    )


def _rlp_int(i: int) -> bytes:
    if i == 0:
        return b""
    return int(i).to_bytes((int(i).bit_length() + 7) // 8, "big")


def _rlp_address(addr: Optional[str]) -> bytes:
    return bytes.fromhex(addr[2:]) if addr else b""


def _rlp_access_list(access_list: Tuple[Tuple[str, Tuple[bytes, ...]], ...]) -> List[Any]:
    return [[_rlp_address(addr), list(keys)] for addr, keys in access_list]


def _payload_items(tx: UnsignedTransaction) -> List[Any]:
    f = tx.fields
    if tx.type == LEGACY:
        return [
            _rlp_int(f["nonce"]),
            _rlp_int(f["gasPrice"]),
            _rlp_int(f["gasLimit"]),
            _rlp_address(f["to"]),
            _rlp_int(f["value"]),
            f["data"],
        ]
    if tx.type == ACCESS_LIST:
        return [
            _rlp_int(f["chainId"]),
            _rlp_int(f["nonce"]),
            _rlp_int(f["gasPrice"]),
            _rlp_int(f["gasLimit"]),
            _rlp_address(f["to"]),
            _rlp_int(f["value"]),
            f["data"],
            _rlp_access_list(f["accessList"]),
        ]
    return [
        _rlp_int(f["chainId"]),
        _rlp_int(f["nonce"]),
        _rlp_int(f["maxPriorityFeePerGas"]),
        _rlp_int(f["maxFeePerGas"]),
        _rlp_int(f["gasLimit"]),
        _rlp_address(f["to"]),
        _rlp_int(f["value"]),
        f["data"],
        _rlp_access_list(f["accessList"]),
    ]


def serialize_unsigned(tx: UnsignedTransaction) -> bytes:
    """
    Canonical bytes whose keccak256 is what gets signed.

    Legacy uses EIP-155 replay protection unless chainId is 0; typed transactions use the
    EIP-2718 envelope `type || rlp(payload)`.
    """
    items = _payload_items(tx)
    if tx.type == LEGACY:
        chain_id = tx.fields["chainId"]
        if chain_id:
            items += [_rlp_int(chain_id), b"", b""]
        return rlp.encode(items)
    return bytes([tx.type]) + rlp.encode(items)


def serialize_signed(tx: UnsignedTransaction, sig: Signature) -> bytes:
    items = _payload_items(tx)
    if tx.type == LEGACY:
        chain_id = tx.fields["chainId"]
        v = sig.recovery_id + 35 + 2 * chain_id if chain_id else 27 + sig.recovery_id
        items += [_rlp_int(v), _rlp_int(sig.r), _rlp_int(sig.s)]
        return rlp.encode(items)
    items += [_rlp_int(sig.recovery_id), _rlp_int(sig.r), _rlp_int(sig.s)]
    return bytes([tx.type]) + rlp.encode(items)


def signing_hash(tx: UnsignedTransaction) -> bytes:
    return keccak(serialize_unsigned(tx))
