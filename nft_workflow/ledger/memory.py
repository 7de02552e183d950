"""Deterministic in-process ledger.

Enforces the same rules a real network would (signatures, fees, associations,
supply limits) so the workflow can be exercised without network access.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from ..errors import LedgerError
from ..models import SUCCESS, AssetClassInfo, Balance, Keypair, Receipt
from .base import LedgerClient

logger = logging.getLogger(__name__)


@dataclass
class _AccountState:
    public_key: str
    native: int
    associations: Set[str] = field(default_factory=set)


@dataclass
class _ClassState:
    name: str
    symbol: str
    max_supply: int
    treasury_id: str
    supply_public_key: str
    owners: Dict[int, str] = field(default_factory=dict)
    metadata: Dict[int, bytes] = field(default_factory=dict)

    @property
    def total_supply(self) -> int:
        return len(self.owners)


class InMemoryLedger(LedgerClient):
    name = "memory"

    def __init__(self, transaction_fee: int = 1000, batch_limit: int = 10, max_metadata_bytes: int = 100):
        self.transaction_fee = transaction_fee
        self.batch_limit = batch_limit
        self.max_metadata_bytes = max_metadata_bytes
        self._accounts: Dict[str, _AccountState] = {}
        self._classes: Dict[str, _ClassState] = {}
        self._entity_numbers = itertools.count(1001)
        self._tx_numbers = itertools.count(1)
        self.transactions: List[Receipt] = []

    # ----- setup -----

    def register_account(self, account_id: str, public_key: str, balance: int) -> None:
        """Seed an existing (operator) account."""
        self._accounts[account_id] = _AccountState(public_key=public_key, native=balance)

    # ----- helpers -----

    def _next_entity_id(self) -> str:
        return f"0.0.{next(self._entity_numbers)}"

    def _account(self, account_id: str) -> _AccountState:
        state = self._accounts.get(account_id)
        if state is None:
            raise LedgerError("INVALID_ACCOUNT_ID", f"Account {account_id} does not exist")
        return state

    def _asset_class(self, asset_class_id: str) -> _ClassState:
        state = self._classes.get(asset_class_id)
        if state is None:
            raise LedgerError("INVALID_TOKEN_ID", f"Asset class {asset_class_id} does not exist")
        return state

    def _check_signature(self, expected_public_key: str, signer: Optional[Keypair]) -> None:
        if signer is None or signer.public_key != expected_public_key:
            raise LedgerError("INVALID_SIGNATURE", "Transaction is not signed by the required key")

    def _charge(self, payer_id: str, max_fee: int, amount: int = 0) -> None:
        if self.transaction_fee > max_fee:
            raise LedgerError(
                "INSUFFICIENT_TX_FEE",
                f"Fee {self.transaction_fee} exceeds max transaction fee {max_fee}",
            )
        payer = self._account(payer_id)
        if payer.native < self.transaction_fee + amount:
            raise LedgerError("INSUFFICIENT_PAYER_BALANCE", f"Account {payer_id} cannot cover fee and amount")
        payer.native -= self.transaction_fee

    def _receipt(self, **fields) -> Receipt:
        receipt = Receipt(status=SUCCESS, transaction_id=f"tx-{next(self._tx_numbers)}", **fields)
        self.transactions.append(receipt)
        logger.info(f"Transaction {receipt.transaction_id} reached consensus: {receipt.status}")
        return receipt

    # ----- LedgerClient -----

    def create_account(self, payer_id, payer_key, public_key, initial_balance, max_fee):
        payer = self._account(payer_id)
        self._check_signature(payer.public_key, payer_key)
        if initial_balance < 0:
            raise LedgerError("INVALID_INITIAL_BALANCE", "Initial balance must be non-negative")
        self._charge(payer_id, max_fee, initial_balance)
        payer.native -= initial_balance

        account_id = self._next_entity_id()
        self._accounts[account_id] = _AccountState(public_key=public_key, native=initial_balance)
        return self._receipt(account_id=account_id)

    def create_asset_class(self, name, symbol, max_supply, treasury_id, treasury_key, supply_key, max_fee):
        treasury = self._account(treasury_id)
        self._check_signature(treasury.public_key, treasury_key)
        if max_supply <= 0:
            raise LedgerError("INVALID_TOKEN_MAX_SUPPLY", "Max supply must be positive")
        if supply_key is None:
            raise LedgerError("TOKEN_HAS_NO_SUPPLY_KEY", "A supply key is required for non-fungible classes")
        self._charge(treasury_id, max_fee)

        asset_class_id = self._next_entity_id()
        self._classes[asset_class_id] = _ClassState(
            name=name,
            symbol=symbol,
            max_supply=max_supply,
            treasury_id=treasury_id,
            supply_public_key=supply_key.public_key,
        )
        treasury.associations.add(asset_class_id)
        return self._receipt(asset_class_id=asset_class_id)

    def mint_batch(self, asset_class_id, metadata, supply_key, max_fee):
        asset_class = self._asset_class(asset_class_id)
        self._check_signature(asset_class.supply_public_key, supply_key)
        if not metadata:
            raise LedgerError("INVALID_TOKEN_MINT_METADATA", "At least one metadata pointer is required")
        if len(metadata) > self.batch_limit:
            raise LedgerError("BATCH_SIZE_LIMIT_EXCEEDED", f"At most {self.batch_limit} units per mint")
        if any(len(pointer) > self.max_metadata_bytes for pointer in metadata):
            raise LedgerError("METADATA_TOO_LONG", f"Metadata is limited to {self.max_metadata_bytes} bytes")
        if asset_class.total_supply + len(metadata) > asset_class.max_supply:
            raise LedgerError("TOKEN_MAX_SUPPLY_REACHED", f"Max supply of {asset_class.max_supply} reached")
        self._charge(asset_class.treasury_id, max_fee)

        start = asset_class.total_supply + 1
        serials = tuple(range(start, start + len(metadata)))
        for serial, pointer in zip(serials, metadata):
            asset_class.owners[serial] = asset_class.treasury_id
            asset_class.metadata[serial] = bytes(pointer)
        return self._receipt(asset_class_id=asset_class_id, serials=serials)

    def associate(self, account_id, asset_class_ids, signer, max_fee):
        target = self._account(account_id)
        self._check_signature(target.public_key, signer)
        for asset_class_id in asset_class_ids:
            self._asset_class(asset_class_id)
            if asset_class_id in target.associations:
                raise LedgerError(
                    "TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT",
                    f"Account {account_id} is already associated with {asset_class_id}",
                )
        self._charge(account_id, max_fee)

        target.associations.update(asset_class_ids)
        return self._receipt(account_id=account_id)

    def transfer(self, asset_class_id, serial, source_id, destination_id, signer, max_fee):
        asset_class = self._asset_class(asset_class_id)
        source = self._account(source_id)
        destination = self._account(destination_id)
        self._check_signature(source.public_key, signer)
        if serial not in asset_class.owners:
            raise LedgerError("INVALID_NFT_ID", f"Serial {serial} of {asset_class_id} has not been minted")
        if asset_class.owners[serial] != source_id:
            raise LedgerError(
                "SENDER_DOES_NOT_OWN_NFT_SERIAL_NO",
                f"Account {source_id} does not own serial {serial} of {asset_class_id}",
            )
        if asset_class_id not in destination.associations:
            raise LedgerError(
                "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT",
                f"Account {destination_id} is not associated with {asset_class_id}",
            )
        self._charge(source_id, max_fee)

        asset_class.owners[serial] = destination_id
        return self._receipt(asset_class_id=asset_class_id, serials=(serial,))

    def query_balance(self, account_id: str) -> Balance:
        state = self._account(account_id)
        tokens: Dict[str, int] = {asset_class_id: 0 for asset_class_id in sorted(state.associations)}
        for asset_class_id, asset_class in self._classes.items():
            held = sum(1 for owner in asset_class.owners.values() if owner == account_id)
            if held:
                tokens[asset_class_id] = held
        return Balance(account_id=account_id, native=state.native, tokens=tokens)

    def asset_class_info(self, asset_class_id: str) -> AssetClassInfo:
        asset_class = self._asset_class(asset_class_id)
        return AssetClassInfo(
            id=asset_class_id,
            max_supply=asset_class.max_supply,
            total_supply=asset_class.total_supply,
            treasury_id=asset_class.treasury_id,
        )

    def owner_of(self, asset_class_id: str, serial: int) -> Optional[str]:
        return self._asset_class(asset_class_id).owners.get(serial)

    def metadata_of(self, asset_class_id: str, serial: int) -> Optional[bytes]:
        return self._asset_class(asset_class_id).metadata.get(serial)
