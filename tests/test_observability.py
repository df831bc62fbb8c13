import json
import logging

from cold_storage_signer.observability import build_log_context, log_event


def test_log_event_emits_json(caplog):
    ctx = build_log_context(tool="test", account=None)
    assert "account" not in ctx
    with caplog.at_level(logging.INFO, logger="cold_storage_signer"):
        log_event("transaction_signed", ctx=ctx, data={"nonce": 5})
    record = json.loads(caplog.records[-1].getMessage())
    assert record["event"] == "transaction_signed"
    assert record["tool"] == "test"
    assert record["data"] == {"nonce": 5}


def test_debug_events_are_skipped_at_info(caplog):
    with caplog.at_level(logging.INFO, logger="cold_storage_signer"):
        log_event("remote_request", ctx={}, level="debug")
    assert not caplog.records
