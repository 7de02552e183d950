"""Workflow configuration and operator credentials."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import Account, Keypair

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ACCOUNT_ID_VAR = "MY_ACCOUNT_ID"
PRIVATE_KEY_VAR = "MY_PRIVATE_KEY"

# IPFS metadata documents for the default "TNFT" batch
DEFAULT_METADATA = [
    "ipfs://bafyreiao6ajgsfji6qsgbqwdtjdu5gmul7tv2v3pd6kjgcw5o65b2ogst4/metadata.json",
    "ipfs://bafyreic463uarchq4mlufp7pvfkfut7zeqsqmn3b2x3jjxwcjqx6b5pk7q/metadata.json",
    "ipfs://bafyreihhja55q6h2rijscl3gra7a3ntiroyglz45z5wlyxdzs6kjh2dinu/metadata.json",
    "ipfs://bafyreidb23oehkttjbff3gdi4vz7mjijcxjyxadwg32pngod4huozcwphu/metadata.json",
    "ipfs://bafyreie7ftl6erd5etz5gscfwfiwjmht3b52cevdrf7hjwxx5ddns7zneu/metadata.json",
]


class WorkflowConfig(BaseModel):
    """Parameters of one provisioning-and-transfer run.

    All amounts are in the ledger's smallest unit.
    """

    asset_name: str = "NFT Token Test"
    asset_symbol: str = "TNFT"
    initial_balance: int = Field(default=1000, ge=0)
    max_supply: int = Field(default=250, gt=0)
    batch_limit: int = Field(default=10, gt=0)
    max_metadata_bytes: int = Field(default=100, gt=0)
    default_max_transaction_fee: int = Field(default=100_000, gt=0)
    mint_max_transaction_fee: int = Field(default=20_000, gt=0)
    metadata: List[str] = Field(default_factory=lambda: list(DEFAULT_METADATA))
    transfer_serial: int = Field(default=1, gt=0)
    confirmation_timeout: float = Field(default=30.0, gt=0)
    poll_interval: float = Field(default=1.0, gt=0)

    @field_validator("asset_name", "asset_symbol")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("metadata")
    @classmethod
    def _distinct_pointers(cls, value: List[str]) -> List[str]:
        if any(not pointer for pointer in value):
            raise ValueError("metadata pointers must be non-empty")
        if len(set(value)) != len(value):
            raise ValueError("metadata pointers must be distinct")
        return value

    @classmethod
    def from_file(cls, path) -> "WorkflowConfig":
        path = Path(path)
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid config file {path}: {exc}") from exc

    def metadata_bytes(self) -> List[bytes]:
        return [pointer.encode("utf-8") for pointer in self.metadata]


class Credentials(BaseModel):
    """Operator account that pays for the run and acts as treasury."""

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    account_id: str
    keypair: Keypair

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Credentials":
        if env is None:
            load_dotenv()
            env = os.environ

        account_id = (env.get(ACCOUNT_ID_VAR) or "").strip()
        secret = (env.get(PRIVATE_KEY_VAR) or "").strip()
        if not account_id or not secret:
            raise ConfigurationError(
                f"Environment Variables {ACCOUNT_ID_VAR} and {PRIVATE_KEY_VAR} must be present."
            )

        try:
            keypair = Keypair.from_secret(secret)
        except ValueError as exc:
            raise ConfigurationError(f"{PRIVATE_KEY_VAR} is invalid: {exc}") from exc
        return cls(account_id=account_id, keypair=keypair)

    def as_account(self, balance: int = 0) -> Account:
        return Account(id=self.account_id, keypair=self.keypair, balance=balance)
