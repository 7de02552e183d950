"""Provision an account, issue and mint an NFT class, associate and transfer."""

from .config import Credentials, WorkflowConfig
from .errors import (
    AssociationError,
    ConfigurationError,
    IssuanceError,
    LedgerError,
    MintError,
    ProvisioningError,
    TransferError,
    WorkflowError,
)
from .pipeline import ProvisioningPipeline, WorkflowReport
from .steps import AccountProvisioner, AssetIssuer, AssociationRegistrar, BatchMinter, TransferExecutor

__version__ = "1.0.0"

__all__ = [
    "AccountProvisioner",
    "AssetIssuer",
    "AssociationError",
    "AssociationRegistrar",
    "BatchMinter",
    "ConfigurationError",
    "Credentials",
    "IssuanceError",
    "LedgerError",
    "MintError",
    "ProvisioningError",
    "ProvisioningPipeline",
    "TransferError",
    "TransferExecutor",
    "WorkflowConfig",
    "WorkflowError",
    "WorkflowReport",
]
