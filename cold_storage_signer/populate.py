from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from eth_utils import to_checksum_address

from .errors import NormalizationError
from .transactions import FEE_MARKET, LEGACY, detect_type, normalize_address, resolve_request


def _as_int(v: Any) -> int:
    if isinstance(v, str):
        s = v.strip().lower()
        return int(s, 16) if s.startswith("0x") else int(s)
    return int(v)


def _base_fee(source: Any) -> int | None:
    block = source.eth.get_block("latest")
    try:
        base_fee = block["baseFeePerGas"]
    except (KeyError, TypeError):
        base_fee = getattr(block, "baseFeePerGas", None)
    return None if base_fee is None else int(base_fee)


def _fill_fee_market(tx: Dict[str, Any], source: Any, base_fee: Optional[int]) -> None:
    if tx.get("maxPriorityFeePerGas") is None:
        tx["maxPriorityFeePerGas"] = int(source.eth.max_priority_fee)
    if tx.get("maxFeePerGas") is None:
        if base_fee is None:
            raise NormalizationError(
                "unsupported_type",
                "Chain reports no baseFeePerGas; fee-market transactions are not supported",
                {"type": FEE_MARKET},
            )
        tx["maxFeePerGas"] = 2 * base_fee + _as_int(tx["maxPriorityFeePerGas"])


def _estimate_gas_params(tx: Mapping[str, Any], address: str) -> Dict[str, Any]:
    params: Dict[str, Any] = {"from": to_checksum_address(address)}
    if tx.get("to"):
        params["to"] = tx["to"]
    if tx.get("value") is not None:
        params["value"] = _as_int(tx["value"])
    if tx.get("data"):
        data = tx["data"]
        params["data"] = "0x" + bytes(data).hex() if isinstance(data, (bytes, bytearray)) else data
    return params


def populate_transaction(request: Mapping[str, Any], *, source: Any, address: str) -> Dict[str, Any]:
    """
    Fill absent fields of a transaction request from a chain-data source (a web3.Web3).

    Present values are never overwritten, and a present nonce (including 0) is kept as is.
    The sender is only used to query the source; `from` never survives into the result.
    A malformed `to` is rejected before the source is queried. Errors raised by the source
    propagate unchanged.
    """
    tx = resolve_request(request)
    tx.pop("from", None)
    to = normalize_address(tx.pop("to", None), name="to")
    if to is not None:
        tx["to"] = to
    if "gas" in tx and "gasLimit" not in tx:
        tx["gasLimit"] = tx.pop("gas")

    if tx.get("nonce") is None:
        tx["nonce"] = int(source.eth.get_transaction_count(to_checksum_address(address)))
    if tx.get("chainId") is None:
        tx["chainId"] = int(source.eth.chain_id)

    explicit_type = tx.get("type") is not None
    tx_type = detect_type(tx)

    if tx_type == FEE_MARKET:
        base_fee = _base_fee(source) if tx.get("maxFeePerGas") is None else None
        _fill_fee_market(tx, source, base_fee)
        tx["type"] = FEE_MARKET
    elif explicit_type or tx.get("gasPrice") is not None:
        if tx.get("gasPrice") is None:
            tx["gasPrice"] = int(source.eth.gas_price)
    else:
        # no type and no pricing at all: let the chain decide
        base_fee = _base_fee(source)
        if base_fee is not None:
            _fill_fee_market(tx, source, base_fee)
            tx["type"] = FEE_MARKET
        else:
            tx["gasPrice"] = int(source.eth.gas_price)
            tx["type"] = LEGACY

    if tx.get("gasLimit") is None:
        tx["gasLimit"] = int(source.eth.estimate_gas(_estimate_gas_params(tx, address)))
    return tx
