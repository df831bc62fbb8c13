from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ProtocolViolationError

_UINT256_MAX = 2**256 - 1
_S_MASK = (1 << 255) - 1


@dataclass(frozen=True)
class Signature:
    """
    ECDSA signature material returned by the remote service.

    `recovery_id` is 0 or 1; chain-specific `v` values are derived from it when a
    transaction or message signature is assembled.
    """

    r: int
    s: int
    recovery_id: int

    @property
    def v(self) -> int:
        return 27 + self.recovery_id


def _invalid(reason: str, material: Any) -> ProtocolViolationError:
    return ProtocolViolationError(
        "invalid_signature",
        f"Remote service returned unusable signature material: {reason}",
        {"signature": material},
    )


def _int_field(value: Any, name: str, material: Any) -> int:
    if isinstance(value, bool):
        raise _invalid(f"{name} is not a number", material)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip().lower()
        try:
            if s.startswith("0x"):
                return int(s, 16) if s != "0x" else 0
            return int(s, 10)
        except ValueError:
            raise _invalid(f"{name} is not a number", material) from None
    raise _invalid(f"{name} has type {type(value).__name__}", material)


def _recovery_id_from_v(v: int, material: Any) -> int:
    if v in (0, 1):
        return v
    if v >= 27:
        # covers 27/28 and EIP-155 values (35 + 2 * chainId + recid)
        return 1 - (v % 2)
    raise _invalid(f"v={v} is out of range", material)


def _from_mapping(material: Mapping[str, Any]) -> Signature:
    if "r" not in material or "s" not in material:
        raise _invalid("missing r or s", material)
    r = _int_field(material["r"], "r", material)
    s = _int_field(material["s"], "s", material)
    if material.get("v") is not None:
        recid = _recovery_id_from_v(_int_field(material["v"], "v", material), material)
        parity = material.get("yParity", material.get("recoveryParam"))
        if parity is not None and _int_field(parity, "yParity", material) != recid:
            raise _invalid("v and yParity disagree", material)
    else:
        parity = material.get("yParity", material.get("recoveryParam"))
        if parity is None:
            raise _invalid("missing v", material)
        recid = _int_field(parity, "yParity", material)
        if recid not in (0, 1):
            raise _invalid(f"yParity={recid} is out of range", material)
    return Signature(r=r, s=s, recovery_id=recid)


def _from_bytes(raw: bytes, material: Any) -> Signature:
    if len(raw) == 65:
        r = int.from_bytes(raw[:32], "big")
        s = int.from_bytes(raw[32:64], "big")
        return Signature(r=r, s=s, recovery_id=_recovery_id_from_v(raw[64], material))
    if len(raw) == 64:
        # EIP-2098: the top bit of s carries yParity
        r = int.from_bytes(raw[:32], "big")
        vs = int.from_bytes(raw[32:], "big")
        return Signature(r=r, s=vs & _S_MASK, recovery_id=vs >> 255)
    raise _invalid(f"expected 64 or 65 bytes, got {len(raw)}", material)


def split_signature(material: Any) -> Signature:
    if isinstance(material, Mapping):
        sig = _from_mapping(material)
    elif isinstance(material, (bytes, bytearray)):
        sig = _from_bytes(bytes(material), material)
    elif isinstance(material, str):
        h = material.strip()
        if h[:2].lower() == "0x":
            h = h[2:]
        try:
            raw = bytes.fromhex(h)
        except ValueError:
            raise _invalid("not a hex string", material) from None
        sig = _from_bytes(raw, material)
    else:
        raise _invalid(f"unsupported type {type(material).__name__}", material)

    if not (0 < sig.r <= _UINT256_MAX) or not (0 < sig.s <= _UINT256_MAX):
        raise _invalid("r or s out of range", material)
    return sig


def join_signature(sig: Signature) -> str:
    """Flat 65-byte `r || s || v` hex encoding with v in {27, 28}."""
    raw = sig.r.to_bytes(32, "big") + sig.s.to_bytes(32, "big") + bytes([sig.v])
    return "0x" + raw.hex()
