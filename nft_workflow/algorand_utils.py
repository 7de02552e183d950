import json
import logging
import os
import time
from typing import Mapping, Optional

from algosdk import transaction
from algosdk.error import AlgodHTTPError
from algosdk.v2client import algod
from pydantic import BaseModel, Field, field_validator

from .errors import ConfirmationTimeout, LedgerError

logger = logging.getLogger(__name__)

NETWORKS = {
    "testnet": "https://testnet-api.algonode.cloud",
    "mainnet": "https://mainnet-api.algonode.cloud",
}

MAX_NOTE_BYTES = 1024


class AlgorandSettings(BaseModel):
    """Connection settings for the algod node."""

    network: str = "testnet"
    algod_address: Optional[str] = None
    algod_token: str = ""
    # pays the supply account's minimum balance plus one opted-in asset and fees
    supply_account_funding: int = Field(default=300_000, gt=0)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AlgorandSettings":
        env = os.environ if env is None else env
        return cls(
            network=env.get("ALGOD_NETWORK", "testnet"),
            algod_address=env.get("ALGOD_ADDRESS") or None,
            algod_token=env.get("ALGOD_TOKEN", ""),
        )

    @field_validator("network")
    @classmethod
    def _known_network(cls, value: str) -> str:
        if value not in NETWORKS:
            raise ValueError(f"Unknown network {value!r}, expected one of {sorted(NETWORKS)}")
        return value

    @property
    def address(self) -> str:
        return self.algod_address or NETWORKS[self.network]


def make_algod_client(settings: AlgorandSettings) -> algod.AlgodClient:
    return algod.AlgodClient(settings.algod_token, settings.address)


def encode_note(data: dict) -> bytes:
    note_bytes = json.dumps(data, sort_keys=True).encode("utf-8")
    if len(note_bytes) > MAX_NOTE_BYTES:
        raise LedgerError("METADATA_TOO_LONG", f"Note too large: {len(note_bytes)} bytes (max {MAX_NOTE_BYTES})")
    return note_bytes


def create_funding_txn(params, sender, receiver, amount):
    return transaction.PaymentTxn(sender=sender, sp=params, receiver=receiver, amt=amount)


def create_optin_txn(params, asset_id, address):
    return transaction.AssetTransferTxn(sender=address, sp=params, receiver=address, amt=0, index=asset_id)


def create_asset_class_txn(params, supply_addr, treasury_addr, asset_name, unit_name, total):
    """Asset definition whose whole supply is held in reserve by the supply account."""
    return transaction.AssetConfigTxn(
        sender=supply_addr,
        sp=params,
        total=total,
        default_frozen=False,
        unit_name=unit_name,
        asset_name=asset_name,
        manager=treasury_addr,
        reserve=supply_addr,
        freeze="",
        clawback="",
        decimals=0,
        strict_empty_address_check=False,
    )


def create_unit_transfer_txn(params, asset_id, sender, receiver, note=None):
    return transaction.AssetTransferTxn(
        sender=sender,
        sp=params,
        receiver=receiver,
        amt=1,
        index=asset_id,
        note=note,
    )


def check_fee_ceiling(txns, max_fee):
    total_fee = sum(txn.fee for txn in txns)
    if total_fee > max_fee:
        raise LedgerError("INSUFFICIENT_TX_FEE", f"Fee {total_fee} exceeds max transaction fee {max_fee}")
    return total_fee


def wait_for_confirmation(client, txid, timeout=30, poll_interval=1.0):
    """
    Wait for transaction confirmation with timeout

    Returns:
        dict: Confirmed transaction information
    """
    start = time.time()
    while True:
        try:
            pending = client.pending_transaction_info(txid)
        except AlgodHTTPError as e:
            logger.debug(f"Waiting for confirmation: {e}")
        else:
            if pending.get("confirmed-round", 0) > 0:
                logger.info(f"Transaction {txid} confirmed in round {pending['confirmed-round']}")
                return pending
            if pending.get("pool-error"):
                raise LedgerError("REJECTED", f"Pool error: {pending['pool-error']}")
        if time.time() - start > timeout:
            raise ConfirmationTimeout(txid, timeout)
        time.sleep(poll_interval)


def submit_and_wait(client, signed_txns, timeout=30, poll_interval=1.0):
    """Send one signed transaction or an atomic group and wait for the first to confirm."""
    try:
        if len(signed_txns) == 1:
            txid = client.send_transaction(signed_txns[0])
        else:
            txid = client.send_transactions(signed_txns)
    except AlgodHTTPError as e:
        raise LedgerError(_status_from_error(str(e)), str(e)) from e
    logger.info(f"Transaction submitted: {txid}")
    return txid, wait_for_confirmation(client, txid, timeout=timeout, poll_interval=poll_interval)


def _status_from_error(message):
    lowered = message.lower()
    if "overspend" in lowered or "below min" in lowered:
        return "INSUFFICIENT_PAYER_BALANCE"
    if "missing from" in lowered:
        return "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT"
    if "should have been authorized by" in lowered or "signature" in lowered:
        return "INVALID_SIGNATURE"
    if "underflow" in lowered:
        return "SENDER_DOES_NOT_OWN_NFT_SERIAL_NO"
    return "REJECTED"
