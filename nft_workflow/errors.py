"""Error taxonomy for the provisioning-and-transfer workflow.

Backends raise ``LedgerError``. Workflow steps convert those into one of the
step errors below and hand them back inside a ``StepResult`` rather than
raising them.
"""


class LedgerError(Exception):
    """Raised by a ledger backend when a request is rejected."""

    def __init__(self, status, message="", asset_class_id=None):
        self.status = status
        self.message = message or status
        # set when the rejection left an asset class behind on the ledger
        self.asset_class_id = asset_class_id
        super().__init__(f"{status}: {self.message}" if message else status)


class ConfirmationTimeout(LedgerError):
    """Raised when a receipt does not arrive within the configured timeout."""

    def __init__(self, txid, timeout):
        self.txid = txid
        self.timeout = timeout
        super().__init__(
            "RECEIPT_TIMEOUT",
            f"Transaction {txid} not confirmed within {timeout} seconds",
        )


class WorkflowError(Exception):
    """Base class for every error surfaced by the workflow."""

    def __init__(self, message, status=None, asset_class_id=None):
        self.status = status
        self.asset_class_id = asset_class_id
        super().__init__(message)

    @classmethod
    def from_ledger(cls, action, exc):
        return cls(f"{action} failed: {exc.message}", status=exc.status, asset_class_id=exc.asset_class_id)


class ConfigurationError(WorkflowError):
    """Missing or malformed credentials or settings."""


class ProvisioningError(WorkflowError):
    pass


class IssuanceError(WorkflowError):
    pass


class MintError(WorkflowError):
    pass


class AssociationError(WorkflowError):
    pass


class TransferError(WorkflowError):
    pass
