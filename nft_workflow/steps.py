"""The five workflow steps.

Each step validates its inputs, submits one logical request to the ledger and
blocks until the receipt is final. Expected failures come back as a
``StepResult`` carrying the step's error type; nothing here retries.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from .config import Credentials, WorkflowConfig
from .errors import (
    AssociationError,
    IssuanceError,
    LedgerError,
    MintError,
    ProvisioningError,
    TransferError,
)
from .ledger.base import LedgerClient
from .models import (
    Account,
    AssetClass,
    AssetUnit,
    Association,
    Keypair,
    StepResult,
    TransferRecord,
)
from .observers import TransferObserver

logger = logging.getLogger(__name__)


class _Step:
    def __init__(self, ledger: LedgerClient, config: WorkflowConfig):
        self.ledger = ledger
        self.config = config


class AccountProvisioner(_Step):
    """Creates a fresh keypair-controlled account funded by the operator."""

    def __init__(self, ledger: LedgerClient, config: WorkflowConfig, payer: Credentials):
        super().__init__(ledger, config)
        self.payer = payer

    def create(self, initial_balance: Optional[int] = None) -> StepResult[Account]:
        balance = self.config.initial_balance if initial_balance is None else initial_balance
        if balance < 0:
            return StepResult.failure(ProvisioningError(f"Initial balance must be non-negative, got {balance}"))

        keypair = self.ledger.generate_keypair()
        try:
            receipt = self.ledger.create_account(
                self.payer.account_id,
                self.payer.keypair,
                keypair.public_key,
                balance,
                self.config.default_max_transaction_fee,
            )
            queried = self.ledger.query_balance(receipt.account_id)
        except LedgerError as e:
            return StepResult.failure(ProvisioningError.from_ledger("Account creation", e))

        logger.info(f"Created account {receipt.account_id} with balance {queried.native}")
        return StepResult.success(Account(id=receipt.account_id, keypair=keypair, balance=queried.native))


class AssetIssuer(_Step):
    def issue(
        self,
        treasury: Account,
        name: Optional[str] = None,
        symbol: Optional[str] = None,
        max_supply: Optional[int] = None,
        supply_key: Optional[Keypair] = None,
    ) -> StepResult[AssetClass]:
        """Define a finite non-fungible class held by ``treasury``.

        A supply keypair is generated when none is given.
        """
        name = name or self.config.asset_name
        symbol = symbol or self.config.asset_symbol
        max_supply = self.config.max_supply if max_supply is None else max_supply
        if max_supply <= 0:
            return StepResult.failure(IssuanceError(f"Max supply must be positive, got {max_supply}"))
        if treasury.keypair is None:
            return StepResult.failure(IssuanceError(f"Treasury {treasury.id} has no signing key"))
        supply_key = supply_key or self.ledger.generate_keypair()

        try:
            receipt = self.ledger.create_asset_class(
                name,
                symbol,
                max_supply,
                treasury.id,
                treasury.keypair,
                supply_key,
                self.config.default_max_transaction_fee,
            )
        except LedgerError as e:
            return StepResult.failure(IssuanceError.from_ledger("Asset class creation", e))

        logger.info(f"Created asset class {receipt.asset_class_id} ({symbol}) with max supply {max_supply}")
        return StepResult.success(
            AssetClass(
                id=receipt.asset_class_id,
                name=name,
                symbol=symbol,
                max_supply=max_supply,
                treasury_id=treasury.id,
                supply_key=supply_key,
            )
        )


class BatchMinter(_Step):
    def mint_batch(
        self,
        asset_class: AssetClass,
        metadata: Sequence[Union[bytes, str]],
        supply_key: Optional[Keypair] = None,
        max_fee: Optional[int] = None,
    ) -> StepResult[List[AssetUnit]]:
        """Mint one unit per metadata pointer into the class treasury.

        Batch size, pointer size and remaining supply are checked before
        anything is submitted.
        """
        pointers = [p.encode("utf-8") if isinstance(p, str) else bytes(p) for p in metadata]
        supply_key = supply_key or asset_class.supply_key
        max_fee = self.config.mint_max_transaction_fee if max_fee is None else max_fee

        if supply_key is None:
            return StepResult.failure(MintError(f"Minting {asset_class.id} requires the supply key"))
        if not pointers:
            return StepResult.failure(MintError("At least one metadata pointer is required"))
        if len(pointers) > self.config.batch_limit:
            return StepResult.failure(
                MintError(
                    f"Batch of {len(pointers)} exceeds the limit of {self.config.batch_limit} units per mint",
                    status="BATCH_SIZE_LIMIT_EXCEEDED",
                )
            )
        oversized = [p for p in pointers if len(p) > self.config.max_metadata_bytes]
        if oversized:
            return StepResult.failure(
                MintError(
                    f"{len(oversized)} metadata pointer(s) exceed {self.config.max_metadata_bytes} bytes",
                    status="METADATA_TOO_LONG",
                )
            )

        try:
            info = self.ledger.asset_class_info(asset_class.id)
            if info.remaining_supply < len(pointers):
                return StepResult.failure(
                    MintError(
                        f"Minting {len(pointers)} units would exceed max supply {info.max_supply} "
                        f"({info.remaining_supply} remaining)",
                        status="TOKEN_MAX_SUPPLY_REACHED",
                    )
                )
            receipt = self.ledger.mint_batch(asset_class.id, pointers, supply_key, max_fee)
        except LedgerError as e:
            return StepResult.failure(MintError.from_ledger("Mint", e))

        logger.info(f"Minted {asset_class.id} serials {list(receipt.serials)}")
        return StepResult.success(
            [
                AssetUnit(
                    asset_class_id=asset_class.id,
                    serial=serial,
                    metadata=pointer,
                    owner_id=asset_class.treasury_id,
                )
                for serial, pointer in zip(receipt.serials, pointers)
            ]
        )


class AssociationRegistrar(_Step):
    """Lets an account receive units of one or more asset classes.

    The association is signed by the receiving account, not the treasury.
    """

    def associate(
        self, account: Account, asset_class_ids: Sequence[str], signer: Optional[Keypair] = None
    ) -> StepResult[List[Association]]:
        signer = signer or account.keypair
        asset_class_ids = list(dict.fromkeys(asset_class_ids))
        if not asset_class_ids:
            return StepResult.failure(AssociationError("At least one asset class is required"))
        if signer is None:
            return StepResult.failure(AssociationError(f"Account {account.id} has no signing key"))

        try:
            receipt = self.ledger.associate(
                account.id, asset_class_ids, signer, self.config.default_max_transaction_fee
            )
        except LedgerError as e:
            return StepResult.failure(AssociationError.from_ledger("Association", e))

        logger.info(f"Account {account.id} associated with {asset_class_ids}: {receipt.status}")
        return StepResult.success([Association(account_id=account.id, asset_class_id=c) for c in asset_class_ids])


class TransferExecutor(_Step):
    def __init__(
        self,
        ledger: LedgerClient,
        config: WorkflowConfig,
        observers: Sequence[TransferObserver] = (),
    ):
        super().__init__(ledger, config)
        self.observers = list(observers)

    def transfer(self, unit: AssetUnit, source: Account, destination: Account) -> StepResult[TransferRecord]:
        if source.keypair is None:
            return StepResult.failure(TransferError(f"Source {source.id} has no signing key"))
        if source.id == destination.id:
            return StepResult.failure(TransferError("Source and destination must differ"))

        for observer in self.observers:
            observer.before_transfer(unit, source, destination)

        record = None
        try:
            receipt = self.ledger.transfer(
                unit.asset_class_id,
                unit.serial,
                source.id,
                destination.id,
                source.keypair,
                self.config.default_max_transaction_fee,
            )
            record = TransferRecord(
                asset_class_id=unit.asset_class_id,
                serial=unit.serial,
                from_id=source.id,
                to_id=destination.id,
                status=receipt.status,
                transaction_id=receipt.transaction_id,
            )
            result = StepResult.success(record)
            logger.info(f"Transferred {unit.nft_id} from {source.id} to {destination.id}: {receipt.status}")
        except LedgerError as e:
            result = StepResult.failure(TransferError.from_ledger("Transfer", e))

        for observer in self.observers:
            observer.after_transfer(unit, source, destination, record)
        return result
