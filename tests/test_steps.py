"""Tests for the five workflow steps against the in-memory ledger."""

import dataclasses

import pytest

from nft_workflow.config import WorkflowConfig
from nft_workflow.errors import (
    AssociationError,
    IssuanceError,
    MintError,
    ProvisioningError,
    TransferError,
)
from nft_workflow.models import Account, Keypair
from nft_workflow.observers import BalanceReporter
from nft_workflow.steps import AccountProvisioner, AssetIssuer, BatchMinter, TransferExecutor


def pointers(count, prefix="ipfs://unit"):
    return [f"{prefix}-{n}/metadata.json" for n in range(count)]


class TestAccountProvisioner:
    @pytest.mark.parametrize("balance", [0, 1, 1000, 123_456])
    def test_queried_balance_matches_request(self, provisioner, ledger, balance):
        account = provisioner.create(balance).unwrap()

        assert account.balance == balance
        assert ledger.query_balance(account.id).native == balance

    def test_uses_configured_balance_by_default(self, provisioner):
        assert provisioner.create().unwrap().balance == 1000

    def test_generates_fresh_keypair(self, provisioner):
        first = provisioner.create().unwrap()
        second = provisioner.create().unwrap()

        assert first.id != second.id
        assert first.keypair.public_key != second.keypair.public_key

    def test_negative_balance(self, provisioner, ledger):
        result = provisioner.create(-5)

        assert isinstance(result.error, ProvisioningError)
        assert ledger.transactions == []

    def test_operator_cannot_afford(self, ledger, config, credentials):
        result = AccountProvisioner(ledger, config, credentials).create(10**15)

        assert isinstance(result.error, ProvisioningError)
        assert result.error.status == "INSUFFICIENT_PAYER_BALANCE"

    def test_fee_ceiling_too_low(self, ledger, credentials):
        config = WorkflowConfig(default_max_transaction_fee=500)

        result = AccountProvisioner(ledger, config, credentials).create()

        assert result.error.status == "INSUFFICIENT_TX_FEE"

    def test_wrong_operator_key(self, ledger, config, credentials):
        impostor = credentials.model_copy(update={"keypair": Keypair.generate()})

        result = AccountProvisioner(ledger, config, impostor).create()

        assert isinstance(result.error, ProvisioningError)
        assert result.error.status == "INVALID_SIGNATURE"

    def test_unwrap_raises(self, provisioner):
        with pytest.raises(ProvisioningError):
            provisioner.create(-1).unwrap()


class TestAssetIssuer:
    def test_issue_defaults(self, issuer, treasury, ledger):
        asset_class = issuer.issue(treasury).unwrap()

        assert asset_class.symbol == "TNFT"
        assert asset_class.max_supply == 250
        assert asset_class.decimals == 0
        assert asset_class.supply_type == "FINITE"
        assert asset_class.treasury_id == treasury.id
        assert asset_class.supply_key is not None
        info = ledger.asset_class_info(asset_class.id)
        assert (info.max_supply, info.total_supply) == (250, 0)

    def test_issue_with_given_supply_key(self, issuer, treasury):
        supply_key = Keypair.generate()

        asset_class = issuer.issue(treasury, name="Art", symbol="ART", max_supply=3, supply_key=supply_key).unwrap()

        assert asset_class.supply_key == supply_key
        assert asset_class.name == "Art"

    def test_wrong_treasury_key(self, issuer, treasury):
        impostor = Account(id=treasury.id, keypair=Keypair.generate())

        result = issuer.issue(impostor)

        assert isinstance(result.error, IssuanceError)
        assert result.error.status == "INVALID_SIGNATURE"

    def test_non_positive_max_supply(self, issuer, treasury):
        assert isinstance(issuer.issue(treasury, max_supply=0).error, IssuanceError)

    def test_treasury_without_key(self, issuer, treasury):
        assert isinstance(issuer.issue(Account(id=treasury.id)).error, IssuanceError)


class TestBatchMinter:
    def test_serials_start_at_one(self, minter, asset_class, config, ledger):
        units = minter.mint_batch(asset_class, config.metadata).unwrap()

        assert [unit.serial for unit in units] == [1, 2, 3, 4, 5]
        assert all(unit.owner_id == asset_class.treasury_id for unit in units)
        assert ledger.metadata_of(asset_class.id, 3) == config.metadata[2].encode()

    def test_serials_continue_from_supply(self, minter, asset_class, units):
        more = minter.mint_batch(asset_class, pointers(2)).unwrap()

        assert [unit.serial for unit in more] == [6, 7]

    def test_batch_over_limit(self, minter, asset_class, ledger):
        submitted = len(ledger.transactions)

        result = minter.mint_batch(asset_class, pointers(11))

        assert isinstance(result.error, MintError)
        assert result.error.status == "BATCH_SIZE_LIMIT_EXCEEDED"
        assert len(ledger.transactions) == submitted

    def test_exceeding_max_supply_rejected_before_submission(self, issuer, minter, treasury, ledger):
        asset_class = issuer.issue(treasury, max_supply=4).unwrap()
        submitted = len(ledger.transactions)

        result = minter.mint_batch(asset_class, pointers(5))

        assert isinstance(result.error, MintError)
        assert result.error.status == "TOKEN_MAX_SUPPLY_REACHED"
        assert len(ledger.transactions) == submitted
        assert ledger.asset_class_info(asset_class.id).total_supply == 0

    def test_remaining_supply_is_checked(self, issuer, minter, treasury):
        asset_class = issuer.issue(treasury, max_supply=6).unwrap()
        minter.mint_batch(asset_class, pointers(5)).unwrap()

        assert minter.mint_batch(asset_class, pointers(2, "ipfs://more")).error.status == "TOKEN_MAX_SUPPLY_REACHED"
        assert [u.serial for u in minter.mint_batch(asset_class, pointers(1, "ipfs://last")).unwrap()] == [6]

    def test_missing_supply_key(self, minter, asset_class):
        keyless = dataclasses.replace(asset_class, supply_key=None)

        result = minter.mint_batch(keyless, pointers(1))

        assert isinstance(result.error, MintError)

    def test_wrong_supply_key(self, minter, asset_class):
        result = minter.mint_batch(asset_class, pointers(1), supply_key=Keypair.generate())

        assert result.error.status == "INVALID_SIGNATURE"

    def test_empty_batch(self, minter, asset_class):
        assert isinstance(minter.mint_batch(asset_class, []).error, MintError)

    def test_metadata_too_long(self, minter, asset_class):
        result = minter.mint_batch(asset_class, ["ipfs://" + "a" * 200])

        assert result.error.status == "METADATA_TOO_LONG"

    def test_mint_fee_ceiling(self, ledger, asset_class):
        minter = BatchMinter(ledger, WorkflowConfig(mint_max_transaction_fee=10))

        assert minter.mint_batch(asset_class, pointers(1)).error.status == "INSUFFICIENT_TX_FEE"

    def test_bytes_metadata(self, minter, asset_class):
        units = minter.mint_batch(asset_class, [b"ipfs://raw"]).unwrap()

        assert units[0].metadata == b"ipfs://raw"


class TestAssociationRegistrar:
    def test_associate(self, registrar, recipient, asset_class, ledger):
        associations = registrar.associate(recipient, [asset_class.id]).unwrap()

        assert [(a.account_id, a.asset_class_id) for a in associations] == [(recipient.id, asset_class.id)]
        assert ledger.query_balance(recipient.id).tokens == {asset_class.id: 0}

    def test_reassociation_is_well_defined(self, registrar, recipient, asset_class, units, ledger, executor, treasury):
        registrar.associate(recipient, [asset_class.id]).unwrap()
        executor.transfer(units[0], treasury, recipient).unwrap()
        before = ledger.query_balance(recipient.id)

        result = registrar.associate(recipient, [asset_class.id])

        assert isinstance(result.error, AssociationError)
        assert result.error.status == "TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT"
        assert ledger.query_balance(recipient.id) == before
        assert ledger.owner_of(asset_class.id, 1) == recipient.id

    def test_signed_by_treasury_is_rejected(self, registrar, recipient, asset_class, treasury):
        result = registrar.associate(recipient, [asset_class.id], signer=treasury.keypair)

        assert isinstance(result.error, AssociationError)
        assert result.error.status == "INVALID_SIGNATURE"

    def test_unknown_class(self, registrar, recipient):
        assert registrar.associate(recipient, ["0.0.999999"]).error.status == "INVALID_TOKEN_ID"

    def test_no_classes(self, registrar, recipient):
        assert isinstance(registrar.associate(recipient, []).error, AssociationError)

    def test_duplicate_ids_collapse(self, registrar, recipient, asset_class):
        associations = registrar.associate(recipient, [asset_class.id, asset_class.id]).unwrap()

        assert len(associations) == 1


class TestTransferExecutor:
    def test_transfer_after_association(self, registrar, executor, recipient, treasury, asset_class, units, ledger):
        registrar.associate(recipient, [asset_class.id]).unwrap()

        record = executor.transfer(units[0], treasury, recipient).unwrap()

        assert record.status == "SUCCESS"
        assert (record.from_id, record.to_id, record.serial) == (treasury.id, recipient.id, 1)
        assert ledger.query_balance(recipient.id).units_of(asset_class.id) == 1
        assert ledger.query_balance(treasury.id).units_of(asset_class.id) == 4

    def test_transfer_without_association_fails(self, executor, recipient, treasury, asset_class, units, ledger):
        result = executor.transfer(units[0], treasury, recipient)

        assert isinstance(result.error, TransferError)
        assert result.error.status == "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT"
        assert ledger.owner_of(asset_class.id, 1) == treasury.id

    def test_source_must_own_unit(self, registrar, executor, provisioner, recipient, asset_class, units):
        other = provisioner.create(5000).unwrap()
        registrar.associate(other, [asset_class.id]).unwrap()
        registrar.associate(recipient, [asset_class.id]).unwrap()

        result = executor.transfer(units[0], other, recipient)

        assert result.error.status == "SENDER_DOES_NOT_OWN_NFT_SERIAL_NO"

    def test_source_key_must_sign(self, registrar, executor, recipient, treasury, asset_class, units):
        registrar.associate(recipient, [asset_class.id]).unwrap()
        impostor = Account(id=treasury.id, keypair=Keypair.generate())

        assert executor.transfer(units[0], impostor, recipient).error.status == "INVALID_SIGNATURE"

    def test_insufficient_transfer_fee(self, ledger, registrar, recipient, treasury, asset_class, units):
        registrar.associate(recipient, [asset_class.id]).unwrap()
        executor = TransferExecutor(ledger, WorkflowConfig(default_max_transaction_fee=1))

        assert executor.transfer(units[0], treasury, recipient).error.status == "INSUFFICIENT_TX_FEE"

    def test_same_account(self, executor, treasury, units):
        assert isinstance(executor.transfer(units[0], treasury, treasury).error, TransferError)

    def test_observers_see_balances(self, ledger, config, registrar, recipient, treasury, asset_class, units):
        registrar.associate(recipient, [asset_class.id]).unwrap()
        lines = []
        reporter = BalanceReporter(ledger, emit=lines.append)
        executor = TransferExecutor(ledger, config, observers=[reporter])

        executor.transfer(units[0], treasury, recipient).unwrap()

        before, after = reporter.latest("before"), reporter.latest("after")
        assert before.source.units_of(asset_class.id) == 5
        assert before.destination.units_of(asset_class.id) == 0
        assert after.source.units_of(asset_class.id) == 4
        assert after.destination.units_of(asset_class.id) == 1
        assert lines[0] == f"Treasury balance: 5 NFTs of ID {asset_class.id}"
        assert lines[-1] == f"New account's balance: 1 NFTs of ID {asset_class.id}"

    def test_observers_run_on_failure(self, ledger, config, recipient, treasury, units):
        reporter = BalanceReporter(ledger)
        executor = TransferExecutor(ledger, config, observers=[reporter])

        assert not executor.transfer(units[0], treasury, recipient).ok
        assert [s.phase for s in reporter.snapshots] == ["before", "after"]
