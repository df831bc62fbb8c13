import pytest

from cold_storage_signer.errors import NormalizationError
from cold_storage_signer.populate import populate_transaction
from cold_storage_signer.transactions import normalize_transaction

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
TO = "0x1111111111111111111111111111111111111111"


def test_fills_absent_fields_and_prefers_fee_market(web3_mock):
    tx = populate_transaction({"to": TO, "value": 1, "from": ADDRESS}, source=web3_mock, address=ADDRESS)

    assert "from" not in tx
    assert tx["nonce"] == 7
    assert tx["chainId"] == 1
    assert tx["gasLimit"] == 21000
    assert tx["type"] == 2
    assert tx["maxPriorityFeePerGas"] == 1_500_000_000
    assert tx["maxFeePerGas"] == 2 * 10_000_000_000 + 1_500_000_000
    assert "gasPrice" not in tx
    web3_mock.eth.estimate_gas.assert_called_once_with({"from": ADDRESS, "to": TO, "value": 1})


def test_falls_back_to_gas_price_without_base_fee(web3_mock):
    web3_mock.eth.get_block.return_value = {"number": 1}
    tx = populate_transaction({"to": TO}, source=web3_mock, address=ADDRESS)
    assert tx["type"] == 0
    assert tx["gasPrice"] == 30_000_000_000
    assert "maxFeePerGas" not in tx


def test_present_values_are_never_overwritten(web3_mock):
    request = {"to": TO, "nonce": 0, "chainId": 5, "gasLimit": 50000, "gasPrice": 9}
    tx = populate_transaction(request, source=web3_mock, address=ADDRESS)
    assert tx == request
    web3_mock.eth.get_transaction_count.assert_not_called()
    web3_mock.eth.estimate_gas.assert_not_called()
    web3_mock.eth.get_block.assert_not_called()
    assert normalize_transaction(tx).type == 0


def test_explicit_legacy_and_access_list_use_gas_price(web3_mock):
    for tx_type in (0, 1):
        tx = populate_transaction({"to": TO, "type": tx_type}, source=web3_mock, address=ADDRESS)
        assert tx["gasPrice"] == 30_000_000_000
        assert "maxFeePerGas" not in tx
        assert set(normalize_transaction(tx).fields) >= {"gasPrice"}


def test_fee_market_fills_missing_half(web3_mock):
    tx = populate_transaction({"to": TO, "type": 2, "maxFeePerGas": 99}, source=web3_mock, address=ADDRESS)
    assert tx["maxFeePerGas"] == 99
    assert tx["maxPriorityFeePerGas"] == 1_500_000_000


def test_gas_alias_counts_as_gas_limit(web3_mock):
    tx = populate_transaction({"to": TO, "gas": 42000}, source=web3_mock, address=ADDRESS)
    assert tx["gasLimit"] == 42000
    assert "gas" not in tx
    web3_mock.eth.estimate_gas.assert_not_called()


def test_source_errors_propagate(web3_mock):
    web3_mock.eth.get_transaction_count.side_effect = ConnectionError("rpc down")
    with pytest.raises(ConnectionError):
        populate_transaction({"to": TO}, source=web3_mock, address=ADDRESS)


def test_unsupported_type_is_rejected(web3_mock):
    with pytest.raises(NormalizationError):
        populate_transaction({"to": TO, "type": 4}, source=web3_mock, address=ADDRESS)


def test_fee_market_without_base_fee_is_unsupported(web3_mock):
    web3_mock.eth.get_block.return_value = {"number": 1}
    with pytest.raises(NormalizationError) as e:
        populate_transaction({"to": TO, "type": 2}, source=web3_mock, address=ADDRESS)
    assert e.value.code == "unsupported_type"


def test_fee_market_with_both_fees_needs_no_base_fee(web3_mock):
    web3_mock.eth.get_block.return_value = {"number": 1}
    tx = populate_transaction(
        {"to": TO, "maxFeePerGas": 5, "maxPriorityFeePerGas": 1}, source=web3_mock, address=ADDRESS
    )
    assert tx["type"] == 2
    web3_mock.eth.get_block.assert_not_called()


@pytest.mark.parametrize("to", ["0x1234", "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAeD"])
def test_malformed_to_is_rejected_before_querying_the_chain(web3_mock, to):
    with pytest.raises(NormalizationError) as e:
        populate_transaction({"to": to, "value": 1}, source=web3_mock, address=ADDRESS)
    assert e.value.code == "invalid_address"
    web3_mock.eth.get_transaction_count.assert_not_called()
    web3_mock.eth.estimate_gas.assert_not_called()


def test_lowercase_to_is_checksummed_for_gas_estimation(web3_mock):
    tx = populate_transaction({"to": ADDRESS.lower()}, source=web3_mock, address=ADDRESS)
    assert tx["to"] == ADDRESS
    assert web3_mock.eth.estimate_gas.call_args.args[0]["to"] == ADDRESS
