import json
import os
import sys
from unittest.mock import MagicMock

import pytest
from eth_keys import keys
from eth_utils import keccak

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cold_storage_signer.endpoint import Endpoint, RemoteSignerConfig

TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_URL = "https://cold.example.com:8443"
TEST_TOKEN = "Bearer test-token"


def make_response(status_code=200, body=None, text=None):
    r = MagicMock()
    r.status_code = status_code
    if text is None:
        text = json.dumps(body) if body is not None else ""
    raw = text.encode("utf-8")
    r.text = text
    r.content = raw
    r.encoding = "utf-8"
    r.iter_content.side_effect = lambda chunk_size=1, decode_unicode=False: iter(
        [raw[i : i + chunk_size] for i in range(0, len(raw), chunk_size)]
    )
    return r


class FakeColdStorage:
    """
    In-process stand-in for the remote service, used as `requests.request` side effect.

    Signs whatever hex it receives with TEST_KEY, the way the real service signs with a
    key it keeps to itself.
    """

    def __init__(self, label=None, signature_style="vrs"):
        self.private_key = keys.PrivateKey(bytes.fromhex(TEST_KEY[2:]))
        self.address = self.private_key.public_key.to_checksum_address()
        self.label = label if label is not None else self.address.lower()
        self.signature_style = signature_style
        self.calls = []

    def _signature(self, payload: bytes):
        sig = self.private_key.sign_msg_hash(keccak(payload))
        if self.signature_style == "hex":
            return "0x" + sig.to_bytes().hex()
        return {"r": hex(sig.r), "s": hex(sig.s), "v": sig.v + 27}

    def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        operation = url.rsplit("/", 1)[-1]
        if operation == "getLabel":
            return make_response(200, {"label": self.label})
        payload = bytes.fromhex(json.loads(kwargs["data"])["message"])
        return make_response(200, {"signature": self._signature(payload)})


@pytest.fixture
def http_response():
    return make_response


@pytest.fixture
def fake_cold_storage():
    return FakeColdStorage()


@pytest.fixture
def signer_config(fake_cold_storage):
    return RemoteSignerConfig(
        account=fake_cold_storage.address,
        endpoint=Endpoint.from_url(TEST_URL),
        authorization=TEST_TOKEN,
    )


@pytest.fixture
def web3_mock():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.chain_id = 1
    w3.eth.estimate_gas.return_value = 21000
    w3.eth.gas_price = 30_000_000_000
    w3.eth.max_priority_fee = 1_500_000_000
    w3.eth.get_block.return_value = {"baseFeePerGas": 10_000_000_000}
    return w3
