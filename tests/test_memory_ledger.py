"""Ledger-side rules of the in-memory backend and backend selection."""

import pytest

from nft_workflow.errors import ConfigurationError, LedgerError
from nft_workflow.ledger import AlgorandLedgerClient, InMemoryLedger, create_ledger
from nft_workflow.models import Keypair


def test_entity_ids_are_sequential(ledger, credentials):
    first = Keypair.generate()
    second = Keypair.generate()

    a = ledger.create_account(credentials.account_id, credentials.keypair, first.public_key, 10, 5000)
    b = ledger.create_account(credentials.account_id, credentials.keypair, second.public_key, 10, 5000)

    assert (a.account_id, b.account_id) == ("0.0.1001", "0.0.1002")
    assert a.status == "SUCCESS"


def test_fee_is_charged_to_payer(ledger, credentials):
    before = ledger.query_balance(credentials.account_id).native

    ledger.create_account(credentials.account_id, credentials.keypair, Keypair.generate().public_key, 250, 5000)

    assert ledger.query_balance(credentials.account_id).native == before - 250 - ledger.transaction_fee


def test_unknown_account(ledger):
    with pytest.raises(LedgerError) as excinfo:
        ledger.query_balance("0.0.9")

    assert excinfo.value.status == "INVALID_ACCOUNT_ID"


def test_treasury_is_associated_on_issue(ledger, credentials):
    supply = Keypair.generate()

    receipt = ledger.create_asset_class(
        "NFT Token Test", "TNFT", 250, credentials.account_id, credentials.keypair, supply, 100_000
    )

    assert ledger.query_balance(credentials.account_id).tokens == {receipt.asset_class_id: 0}


def test_backend_enforces_supply_limit(ledger, credentials):
    supply = Keypair.generate()
    asset_class_id = ledger.create_asset_class(
        "Tiny", "TINY", 1, credentials.account_id, credentials.keypair, supply, 100_000
    ).asset_class_id

    with pytest.raises(LedgerError) as excinfo:
        ledger.mint_batch(asset_class_id, [b"a", b"b"], supply, 100_000)

    assert excinfo.value.status == "TOKEN_MAX_SUPPLY_REACHED"
    assert ledger.asset_class_info(asset_class_id).total_supply == 0


def test_create_memory_ledger(config, credentials):
    ledger = create_ledger("memory", config, credentials, env={})

    assert isinstance(ledger, InMemoryLedger)
    assert ledger.query_balance(credentials.account_id).native > 0


def test_create_ledger_from_env(config, credentials):
    ledger = create_ledger(None, config, credentials, env={"LEDGER_BACKEND": "memory"})

    assert ledger.name == "memory"


def test_create_algorand_ledger(config, credentials):
    ledger = create_ledger("algorand", config, credentials, env={"ALGOD_NETWORK": "testnet"})

    assert isinstance(ledger, AlgorandLedgerClient)
    assert ledger.confirmation_timeout == config.confirmation_timeout


def test_unknown_backend(config, credentials):
    with pytest.raises(ConfigurationError):
        create_ledger("sqlite", config, credentials, env={})


def test_unknown_network(config, credentials):
    with pytest.raises(ConfigurationError):
        create_ledger("algorand", config, credentials, env={"ALGOD_NETWORK": "nowhere"})
