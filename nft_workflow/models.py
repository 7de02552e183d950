"""Domain records passed between the workflow steps."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict, Generic, Optional, Tuple, TypeVar

from algosdk import account, mnemonic
from algosdk.error import WrongChecksumError, WrongMnemonicLengthError

T = TypeVar("T")

SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class Keypair:
    """ed25519 keypair in algosdk encoding (base64 private key, address as public key)."""

    private_key: str = field(repr=False)
    public_key: str

    @classmethod
    def generate(cls) -> "Keypair":
        private_key, address = account.generate_account()
        return cls(private_key=private_key, public_key=address)

    @classmethod
    def from_private_key(cls, private_key: str) -> "Keypair":
        try:
            raw = base64.b64decode(private_key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("private key is not valid base64") from exc
        if len(raw) != 64:
            raise ValueError("private key must decode to 64 bytes")
        return cls(private_key=private_key, public_key=account.address_from_private_key(private_key))

    @classmethod
    def from_secret(cls, secret: str) -> "Keypair":
        """Accept either a base64 private key or a 25-word mnemonic."""
        secret = secret.strip()
        if len(secret.split()) > 1:
            try:
                private_key = mnemonic.to_private_key(secret)
            except (WrongChecksumError, WrongMnemonicLengthError, KeyError, ValueError) as exc:
                raise ValueError(f"invalid mnemonic: {exc}") from exc
            return cls.from_private_key(private_key)
        return cls.from_private_key(secret)


@dataclass(frozen=True)
class Account:
    id: str
    keypair: Optional[Keypair] = None
    balance: int = 0


@dataclass(frozen=True)
class AssetClass:
    """Finite-supply non-fungible asset class owned by a treasury account."""

    id: str
    name: str
    symbol: str
    max_supply: int
    treasury_id: str
    supply_key: Optional[Keypair] = None
    decimals: int = 0
    supply_type: str = "FINITE"


@dataclass(frozen=True)
class AssetUnit:
    asset_class_id: str
    serial: int
    metadata: bytes
    owner_id: str

    @property
    def nft_id(self) -> str:
        return f"{self.asset_class_id}/{self.serial}"


@dataclass(frozen=True)
class Association:
    account_id: str
    asset_class_id: str


@dataclass(frozen=True)
class TransferRecord:
    asset_class_id: str
    serial: int
    from_id: str
    to_id: str
    status: str
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class Receipt:
    """Backend confirmation of a finalized transaction."""

    status: str
    transaction_id: str
    account_id: Optional[str] = None
    asset_class_id: Optional[str] = None
    serials: Tuple[int, ...] = ()
    confirmed_round: Optional[int] = None


@dataclass(frozen=True)
class Balance:
    account_id: str
    native: int
    tokens: Dict[str, int] = field(default_factory=dict)

    def units_of(self, asset_class_id: str) -> int:
        return self.tokens.get(asset_class_id, 0)


@dataclass(frozen=True)
class AssetClassInfo:
    id: str
    max_supply: int
    total_supply: int
    treasury_id: Optional[str] = None

    @property
    def remaining_supply(self) -> int:
        return self.max_supply - self.total_supply


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Tagged outcome of one workflow step: exactly one of value or error is set."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: T) -> "StepResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "StepResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value
