"""Observability hooks around the transfer step."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from . import reporting
from .errors import LedgerError
from .ledger.base import LedgerClient
from .models import Account, AssetUnit, Balance, TransferRecord

logger = logging.getLogger(__name__)


class TransferObserver(Protocol):
    def before_transfer(self, unit: AssetUnit, source: Account, destination: Account) -> None: ...

    def after_transfer(self, unit: AssetUnit, source: Account, destination: Account,
                       record: Optional[TransferRecord]) -> None: ...


@dataclass(frozen=True)
class BalanceSnapshot:
    phase: str
    asset_class_id: str
    source: Balance
    destination: Balance


class BalanceReporter:
    """Queries both parties' class balances before and after a transfer."""

    def __init__(
        self,
        ledger: LedgerClient,
        emit: Optional[Callable[[str], None]] = None,
        source_label: str = "Treasury",
        destination_label: str = "New account's",
    ):
        self.ledger = ledger
        self.emit = emit
        self.source_label = source_label
        self.destination_label = destination_label
        self.snapshots: List[BalanceSnapshot] = []

    def before_transfer(self, unit, source, destination):
        self._snapshot("before", unit, source, destination)

    def after_transfer(self, unit, source, destination, record):
        self._snapshot("after", unit, source, destination)

    def _snapshot(self, phase, unit, source, destination):
        try:
            snapshot = BalanceSnapshot(
                phase=phase,
                asset_class_id=unit.asset_class_id,
                source=self.ledger.query_balance(source.id),
                destination=self.ledger.query_balance(destination.id),
            )
        except LedgerError as e:
            logger.warning(f"Balance query {phase} transfer failed: {e}")
            return
        self.snapshots.append(snapshot)

        asset_class_id = unit.asset_class_id
        held_by_source = snapshot.source.units_of(asset_class_id)
        held_by_destination = snapshot.destination.units_of(asset_class_id)
        logger.info(
            f"Balances {phase} transfer of {asset_class_id}: "
            f"{source.id}={held_by_source} {destination.id}={held_by_destination}"
        )
        if self.emit is not None:
            self.emit(reporting.class_balance(self.source_label, held_by_source, asset_class_id))
            self.emit(reporting.class_balance(self.destination_label, held_by_destination, asset_class_id))

    def reset(self) -> None:
        self.snapshots.clear()

    def latest(self, phase: str) -> Optional[BalanceSnapshot]:
        for snapshot in reversed(self.snapshots):
            if snapshot.phase == phase:
                return snapshot
        return None
