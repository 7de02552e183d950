"""Ledger backend on Algorand Standard Assets.

An asset class is one ASA whose entire ``total`` sits in reserve with a
dedicated supply account and whose manager is the treasury. Minting moves
units from that reserve to the treasury, so circulating supply is
``total - reserve holding``. Serial numbers and metadata pointers are
recorded in transaction notes.
"""

import logging

from algosdk import transaction
from algosdk.error import AlgodHTTPError

from .. import algorand_utils as utils
from ..errors import LedgerError
from ..models import SUCCESS, AssetClassInfo, Balance, Receipt
from .base import LedgerClient

logger = logging.getLogger(__name__)


def _asset_id(asset_class_id):
    try:
        return int(asset_class_id)
    except (TypeError, ValueError):
        raise LedgerError("INVALID_TOKEN_ID", f"{asset_class_id!r} is not an asset id")


class AlgorandLedgerClient(LedgerClient):
    name = "algorand"

    def __init__(self, client, settings=None, confirmation_timeout=30, poll_interval=1.0, batch_limit=10):
        self.client = client
        self.settings = settings or utils.AlgorandSettings()
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        # atomic groups are capped at 16 transactions
        self.batch_limit = min(batch_limit, 16)
        # (asset id, serial) -> holder, from the notes this client has written
        self.owners = {}

    @classmethod
    def from_settings(cls, settings, **kwargs):
        return cls(utils.make_algod_client(settings), settings=settings, **kwargs)

    def _params(self):
        try:
            return self.client.suggested_params()
        except AlgodHTTPError as e:
            raise LedgerError("REJECTED", f"Cannot fetch suggested params: {e}") from e

    def _submit(self, signed_txns):
        return utils.submit_and_wait(
            self.client, signed_txns, timeout=self.confirmation_timeout, poll_interval=self.poll_interval
        )

    def _receipt(self, txid, info, **fields):
        return Receipt(status=SUCCESS, transaction_id=txid, confirmed_round=info.get("confirmed-round"), **fields)

    def create_account(self, payer_id, payer_key, public_key, initial_balance, max_fee):
        params = self._params()
        pay = utils.create_funding_txn(params, payer_id, public_key, initial_balance)
        utils.check_fee_ceiling([pay], max_fee)

        txid, info = self._submit([pay.sign(payer_key.private_key)])
        return self._receipt(txid, info, account_id=public_key)

    def create_asset_class(self, name, symbol, max_supply, treasury_id, treasury_key, supply_key, max_fee):
        if supply_key is None:
            raise LedgerError("TOKEN_HAS_NO_SUPPLY_KEY", "A supply key is required for non-fungible classes")
        params = self._params()
        supply_addr = supply_key.public_key

        fund = utils.create_funding_txn(params, treasury_id, supply_addr, self.settings.supply_account_funding)
        acfg = utils.create_asset_class_txn(params, supply_addr, treasury_id, name, symbol, max_supply)
        utils.check_fee_ceiling([fund, acfg], max_fee)

        fund, acfg = transaction.assign_group_id([fund, acfg])
        signed_acfg = acfg.sign(supply_key.private_key)
        self._submit([fund.sign(treasury_key.private_key), signed_acfg])
        txid = signed_acfg.get_txid()
        info = utils.wait_for_confirmation(
            self.client, txid, timeout=self.confirmation_timeout, poll_interval=self.poll_interval
        )
        asset_id = info.get("asset-index")
        if not asset_id:
            raise LedgerError("INVALID_TOKEN_ID", "Asset ID not found in transaction info")
        logger.info(f"Asset class {asset_id} created with reserve {supply_addr}")

        try:
            optin = utils.create_optin_txn(self._params(), asset_id, treasury_id)
            utils.check_fee_ceiling([optin], max_fee)
            self._submit([optin.sign(treasury_key.private_key)])
        except LedgerError as e:
            logger.error(f"Asset class {asset_id} exists but treasury opt-in failed: {e}")
            raise LedgerError(
                e.status,
                f"Asset class {asset_id} was created but the treasury opt-in failed: {e.message}",
                asset_class_id=str(asset_id),
            ) from e
        return self._receipt(txid, info, asset_class_id=str(asset_id))

    def mint_batch(self, asset_class_id, metadata, supply_key, max_fee):
        if len(metadata) > self.batch_limit:
            raise LedgerError("BATCH_SIZE_LIMIT_EXCEEDED", f"At most {self.batch_limit} units per mint")
        info = self.asset_class_info(asset_class_id)
        if info.total_supply + len(metadata) > info.max_supply:
            raise LedgerError("TOKEN_MAX_SUPPLY_REACHED", f"Max supply of {info.max_supply} reached")

        asset_id = _asset_id(asset_class_id)
        params = self._params()
        start = info.total_supply + 1
        serials = tuple(range(start, start + len(metadata)))
        txns = [
            utils.create_unit_transfer_txn(
                params,
                asset_id,
                supply_key.public_key,
                info.treasury_id,
                note=utils.encode_note({"serial": serial, "metadata": bytes(pointer).decode("utf-8")}),
            )
            for serial, pointer in zip(serials, metadata)
        ]
        utils.check_fee_ceiling(txns, max_fee)
        if len(txns) > 1:
            txns = transaction.assign_group_id(txns)

        txid, confirmed = self._submit([txn.sign(supply_key.private_key) for txn in txns])
        for serial in serials:
            self.owners[(asset_id, serial)] = info.treasury_id
        return self._receipt(txid, confirmed, asset_class_id=asset_class_id, serials=serials)

    def associate(self, account_id, asset_class_ids, signer, max_fee):
        params = self._params()
        txns = [
            utils.create_optin_txn(params, _asset_id(asset_class_id), account_id)
            for asset_class_id in asset_class_ids
        ]
        utils.check_fee_ceiling(txns, max_fee)
        if len(txns) > 1:
            txns = transaction.assign_group_id(txns)

        txid, info = self._submit([txn.sign(signer.private_key) for txn in txns])
        return self._receipt(txid, info, account_id=account_id)

    def _check_owner(self, asset_class_id, serial, source_id):
        asset_id = _asset_id(asset_class_id)
        info = self.asset_class_info(asset_class_id)
        if serial < 1 or serial > info.total_supply:
            raise LedgerError("INVALID_NFT_ID", f"Serial {serial} of {asset_class_id} has not been minted")

        owner = self.owners.get((asset_id, serial))
        if owner is not None:
            if owner != source_id:
                raise LedgerError(
                    "SENDER_DOES_NOT_OWN_NFT_SERIAL_NO", f"{source_id} does not own {asset_class_id}/{serial}"
                )
            return
        # minted elsewhere; only the unit count can be checked
        try:
            holding = self.client.account_asset_info(source_id, asset_id).get("asset-holding", {})
        except AlgodHTTPError as e:
            raise LedgerError("TOKEN_NOT_ASSOCIATED_TO_ACCOUNT", str(e)) from e
        if holding.get("amount", 0) < 1:
            raise LedgerError(
                "SENDER_DOES_NOT_OWN_NFT_SERIAL_NO", f"{source_id} holds no units of {asset_class_id}"
            )

    def transfer(self, asset_class_id, serial, source_id, destination_id, signer, max_fee):
        self._check_owner(asset_class_id, serial, source_id)
        asset_id = _asset_id(asset_class_id)
        xfer = utils.create_unit_transfer_txn(
            self._params(),
            asset_id,
            source_id,
            destination_id,
            note=utils.encode_note({"serial": serial}),
        )
        utils.check_fee_ceiling([xfer], max_fee)

        txid, info = self._submit([xfer.sign(signer.private_key)])
        self.owners[(asset_id, serial)] = destination_id
        return self._receipt(txid, info, asset_class_id=asset_class_id, serials=(serial,))

    def query_balance(self, account_id):
        try:
            info = self.client.account_info(account_id)
        except AlgodHTTPError as e:
            raise LedgerError("INVALID_ACCOUNT_ID", str(e)) from e
        tokens = {str(holding["asset-id"]): holding.get("amount", 0) for holding in info.get("assets", [])}
        return Balance(account_id=account_id, native=info.get("amount", 0), tokens=tokens)

    def asset_class_info(self, asset_class_id):
        asset_id = _asset_id(asset_class_id)
        try:
            params = self.client.asset_info(asset_id).get("params", {})
            reserve = params.get("reserve")
            holding = self.client.account_asset_info(reserve, asset_id).get("asset-holding", {})
        except AlgodHTTPError as e:
            raise LedgerError("INVALID_TOKEN_ID", str(e)) from e
        total = params.get("total", 0)
        return AssetClassInfo(
            id=asset_class_id,
            max_supply=total,
            total_supply=total - holding.get("amount", 0),
            treasury_id=params.get("manager"),
        )
