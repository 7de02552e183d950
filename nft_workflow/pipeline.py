"""Five-step provisioning-and-transfer pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from . import reporting
from .config import Credentials, WorkflowConfig
from .ledger.base import LedgerClient
from .models import Account, AssetClass, AssetUnit, Association, StepResult, TransferRecord
from .observers import BalanceReporter, BalanceSnapshot
from .steps import (
    AccountProvisioner,
    AssetIssuer,
    AssociationRegistrar,
    BatchMinter,
    TransferExecutor,
)

logger = logging.getLogger(__name__)

STEPS = ("provision", "issue", "mint", "associate", "transfer")


@dataclass
class WorkflowReport:
    account: Optional[Account] = None
    asset_class: Optional[AssetClass] = None
    units: List[AssetUnit] = field(default_factory=list)
    associations: List[Association] = field(default_factory=list)
    transfer: Optional[TransferRecord] = None
    balances_before: Optional[BalanceSnapshot] = None
    balances_after: Optional[BalanceSnapshot] = None
    completed: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None and "transfer" in self.completed

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view; key material is never included."""
        return {
            "ok": self.ok,
            "completed": list(self.completed),
            "failed_step": self.failed_step,
            "error": str(self.error) if self.error else None,
            "error_status": getattr(self.error, "status", None),
            "account_id": self.account.id if self.account else None,
            "account_balance": self.account.balance if self.account else None,
            "asset_class_id": (
                self.asset_class.id if self.asset_class else getattr(self.error, "asset_class_id", None)
            ),
            "supply_public_key": (
                self.asset_class.supply_key.public_key
                if self.asset_class and self.asset_class.supply_key
                else None
            ),
            "serials": [unit.serial for unit in self.units],
            "associations": [a.asset_class_id for a in self.associations],
            "transfer_status": self.transfer.status if self.transfer else None,
            "balances_before": _snapshot_dict(self.balances_before),
            "balances_after": _snapshot_dict(self.balances_after),
        }


def _snapshot_dict(snapshot: Optional[BalanceSnapshot]) -> Optional[Dict[str, int]]:
    if snapshot is None:
        return None
    return {
        "treasury": snapshot.source.units_of(snapshot.asset_class_id),
        "recipient": snapshot.destination.units_of(snapshot.asset_class_id),
    }


class ProvisioningPipeline:
    """Runs provision -> issue -> mint -> associate -> transfer, stopping at the first failure.

    One instance covers one run; the credentials and config are fixed at
    construction.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        config: WorkflowConfig,
        credentials: Credentials,
        emit: Optional[Callable[[str], None]] = None,
    ):
        self.ledger = ledger
        self.config = config
        self.credentials = credentials
        self.emit = emit
        self.balances = BalanceReporter(ledger, emit=emit)

        self.provisioner = AccountProvisioner(ledger, config, credentials)
        self.issuer = AssetIssuer(ledger, config)
        self.minter = BatchMinter(ledger, config)
        self.registrar = AssociationRegistrar(ledger, config)
        self.executor = TransferExecutor(ledger, config, observers=[self.balances])

    def _say(self, line: str) -> None:
        if self.emit is not None:
            self.emit(line)

    def _take(self, report: WorkflowReport, step: str, result: StepResult):
        if not result.ok:
            report.failed_step = step
            report.error = result.error
            logger.error(f"Step {step} failed: {result.error}")
            self._say(reporting.step_failed(step, result.error))
            return None
        report.completed.append(step)
        return result.value

    def run(self, skip_association: bool = False) -> WorkflowReport:
        report = WorkflowReport()
        self.balances.reset()
        treasury = self.credentials.as_account()

        account = self._take(report, "provision", self.provisioner.create())
        if account is None:
            return report
        report.account = account
        self._say(reporting.account_created(account.id))
        self._say(reporting.account_balance(account.balance))

        asset_class = self._take(report, "issue", self.issuer.issue(treasury))
        if asset_class is None:
            return report
        report.asset_class = asset_class
        self._say(reporting.supply_key(asset_class.supply_key.public_key))
        self._say(reporting.asset_class_created(asset_class.id))

        units = self._take(report, "mint", self.minter.mint_batch(asset_class, self.config.metadata))
        if units is None:
            return report
        report.units = units
        self._say(reporting.units_minted(asset_class.id, [unit.serial for unit in units]))

        if skip_association:
            logger.warning(f"Skipping association of {account.id} with {asset_class.id}")
        else:
            associations = self._take(report, "associate", self.registrar.associate(account, [asset_class.id]))
            if associations is None:
                return report
            report.associations = associations
            self._say(reporting.association_status("SUCCESS"))

        unit = _select_unit(units, self.config.transfer_serial)
        record = self._take(report, "transfer", self.executor.transfer(unit, treasury, account))
        report.balances_before = self.balances.latest("before")
        report.balances_after = self.balances.latest("after")
        if record is None:
            return report
        report.transfer = record
        self._say(reporting.transfer_status(record.status))
        return report


def _select_unit(units: List[AssetUnit], serial: int) -> AssetUnit:
    for unit in units:
        if unit.serial == serial:
            return unit
    # not minted in this batch; the ledger decides whether it exists
    first = units[0]
    return AssetUnit(asset_class_id=first.asset_class_id, serial=serial, metadata=b"", owner_id=first.owner_id)
