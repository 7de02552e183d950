"""Backend interface every ledger implementation provides."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..models import AssetClassInfo, Balance, Keypair, Receipt


class LedgerClient(ABC):
    """Submits signed transactions and blocks until their receipt is final.

    Every mutating call returns a ``Receipt`` with status ``SUCCESS`` or raises
    ``LedgerError`` carrying the backend status code.
    """

    name = "ledger"

    def generate_keypair(self) -> Keypair:
        return Keypair.generate()

    @abstractmethod
    def create_account(
        self, payer_id: str, payer_key: Keypair, public_key: str, initial_balance: int, max_fee: int
    ) -> Receipt:
        """Create an account controlled by ``public_key``; receipt carries ``account_id``."""

    @abstractmethod
    def create_asset_class(
        self,
        name: str,
        symbol: str,
        max_supply: int,
        treasury_id: str,
        treasury_key: Keypair,
        supply_key: Keypair,
        max_fee: int,
    ) -> Receipt:
        """Define a finite non-fungible class; receipt carries ``asset_class_id``."""

    @abstractmethod
    def mint_batch(
        self, asset_class_id: str, metadata: Sequence[bytes], supply_key: Keypair, max_fee: int
    ) -> Receipt:
        """Mint one unit per metadata pointer into the treasury; receipt carries ``serials``."""

    @abstractmethod
    def associate(
        self, account_id: str, asset_class_ids: Sequence[str], signer: Keypair, max_fee: int
    ) -> Receipt:
        pass

    @abstractmethod
    def transfer(
        self,
        asset_class_id: str,
        serial: int,
        source_id: str,
        destination_id: str,
        signer: Keypair,
        max_fee: int,
    ) -> Receipt:
        pass

    @abstractmethod
    def query_balance(self, account_id: str) -> Balance:
        pass

    @abstractmethod
    def asset_class_info(self, asset_class_id: str) -> AssetClassInfo:
        pass
