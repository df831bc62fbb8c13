from __future__ import annotations

import os
from typing import Optional

from web3 import Web3
from web3.providers.rpc import HTTPProvider

from .observability import build_log_context, configure_logging, log_event
from .settings import Settings
from .signer import ColdStorageSigner


def get_web3(rpc_url: str, *, timeout: float) -> Web3:
    return Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


def get_signer(settings: Optional[Settings] = None) -> ColdStorageSigner:
    """
    Build a ColdStorageSigner from COLD_SIGNER_* settings.

    A web3 provider is attached when COLD_SIGNER_RPC_URL is set; otherwise transactions
    must arrive fully populated.
    """
    s = settings or Settings()
    s.require_signer_config()
    configure_logging(s.LOG_LEVEL)

    provider = get_web3(s.RPC_URL, timeout=s.TIMEOUT_SEC) if s.RPC_URL else None
    ca = os.path.expanduser(s.CA_PATH) if s.CA_PATH else None
    signer = ColdStorageSigner(s.ACCOUNT, s.URL, s.AUTHORIZATION, provider, ca, timeout=s.TIMEOUT_SEC)
    log_event(
        "signer_configured",
        ctx=build_log_context(tool="factory", service=s.SERVICE_NAME),
        data={"account": signer.address, "endpoint": str(signer.endpoint), "has_provider": provider is not None},
    )
    return signer
