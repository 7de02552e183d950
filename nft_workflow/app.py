import logging
import os
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import LOG_FORMAT, Credentials, WorkflowConfig
from .errors import AssociationError, LedgerError, WorkflowError
from .ledger import create_ledger
from .models import Account, AssetClass, AssetUnit
from .observers import BalanceReporter
from .pipeline import ProvisioningPipeline
from .steps import AccountProvisioner, AssetIssuer, AssociationRegistrar, BatchMinter, TransferExecutor

logger = logging.getLogger(__name__)

VERSION = "1.0"


# ===== Pydantic Models =====
class CreateAccountRequest(BaseModel):
    initial_balance: Optional[int] = Field(default=None, ge=0)


class CreateAssetClassRequest(BaseModel):
    name: Optional[str] = None
    symbol: Optional[str] = None
    max_supply: Optional[int] = Field(default=None, gt=0)


class MintRequest(BaseModel):
    metadata: List[str]


class AssociateRequest(BaseModel):
    account_id: str
    asset_class_ids: List[str]


class TransferRequest(BaseModel):
    asset_class_id: str
    serial: int
    destination_id: str
    source_id: Optional[str] = None  # defaults to the treasury


class RunWorkflowRequest(BaseModel):
    skip_association: bool = False


class Keystore:
    """Accounts and asset classes created by this process, keys included."""

    def __init__(self, treasury: Account):
        self.treasury = treasury
        self.accounts: Dict[str, Account] = {treasury.id: treasury}
        self.asset_classes: Dict[str, AssetClass] = {}

    def account(self, account_id: str) -> Account:
        if account_id not in self.accounts:
            raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
        return self.accounts[account_id]

    def asset_class(self, asset_class_id: str) -> AssetClass:
        if asset_class_id not in self.asset_classes:
            raise HTTPException(status_code=404, detail=f"Asset class {asset_class_id} not found")
        return self.asset_classes[asset_class_id]


def _step_error(error: WorkflowError) -> HTTPException:
    status_code = 400
    if isinstance(error, AssociationError) and error.status == "TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT":
        status_code = 409
    return HTTPException(status_code=status_code, detail={"error": str(error), "status": error.status})


def _unwrap(result):
    if not result.ok:
        logger.warning(f"Step failed: {result.error}")
        raise _step_error(result.error)
    return result.value


def create_app(ledger=None, credentials=None, config=None) -> FastAPI:
    config = config or WorkflowConfig()
    credentials = credentials or Credentials.from_env()
    ledger = ledger or create_ledger(None, config, credentials)

    app = FastAPI(title="NFT Provisioning and Transfer Service", version=VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    keystore = Keystore(credentials.as_account())
    app.state.keystore = keystore
    app.state.ledger = ledger

    @app.get("/")
    def root():
        """Health check endpoint"""
        return {
            "status": "online",
            "service": "NFT Provisioning and Transfer",
            "version": VERSION,
            "backend": ledger.name,
        }

    @app.post("/accounts")
    def create_account(request: CreateAccountRequest):
        """Step 1: Create a funded account with a fresh keypair."""
        account = _unwrap(AccountProvisioner(ledger, config, credentials).create(request.initial_balance))
        keystore.accounts[account.id] = account
        logger.info(f"Created account {account.id}")
        return {"account_id": account.id, "balance": account.balance, "public_key": account.keypair.public_key}

    @app.get("/accounts/{account_id}/balance")
    def get_balance(account_id: str):
        try:
            balance = ledger.query_balance(account_id)
        except LedgerError as e:
            raise HTTPException(status_code=404, detail={"error": e.message, "status": e.status})
        return {"account_id": account_id, "native": balance.native, "tokens": balance.tokens}

    @app.post("/asset-classes")
    def create_asset_class(request: CreateAssetClassRequest):
        """Step 2: Create an NFT class with the operator as treasury."""
        asset_class = _unwrap(
            AssetIssuer(ledger, config).issue(
                keystore.treasury, name=request.name, symbol=request.symbol, max_supply=request.max_supply
            )
        )
        keystore.asset_classes[asset_class.id] = asset_class
        return {
            "asset_class_id": asset_class.id,
            "name": asset_class.name,
            "symbol": asset_class.symbol,
            "max_supply": asset_class.max_supply,
            "supply_public_key": asset_class.supply_key.public_key,
        }

    @app.post("/asset-classes/{asset_class_id}/mint")
    def mint(asset_class_id: str, request: MintRequest):
        """Step 3: Mint a batch of NFTs into the treasury."""
        asset_class = keystore.asset_class(asset_class_id)
        units = _unwrap(BatchMinter(ledger, config).mint_batch(asset_class, request.metadata))
        return {"asset_class_id": asset_class_id, "serials": [unit.serial for unit in units]}

    @app.post("/associations")
    def associate(request: AssociateRequest):
        """Step 4: Associate an account with asset classes, signed by that account."""
        account = keystore.account(request.account_id)
        associations = _unwrap(AssociationRegistrar(ledger, config).associate(account, request.asset_class_ids))
        return {
            "account_id": account.id,
            "asset_class_ids": [a.asset_class_id for a in associations],
            "status": "SUCCESS",
        }

    @app.post("/transfers")
    def transfer(request: TransferRequest):
        """Step 5: Transfer one NFT, reporting balances before and after."""
        source = keystore.account(request.source_id) if request.source_id else keystore.treasury
        destination = keystore.account(request.destination_id)
        unit = AssetUnit(
            asset_class_id=request.asset_class_id, serial=request.serial, metadata=b"", owner_id=source.id
        )
        balances = BalanceReporter(ledger)
        record = _unwrap(TransferExecutor(ledger, config, observers=[balances]).transfer(unit, source, destination))
        before, after = balances.latest("before"), balances.latest("after")
        return {
            "status": record.status,
            "transaction_id": record.transaction_id,
            "asset_class_id": record.asset_class_id,
            "serial": record.serial,
            "from": record.from_id,
            "to": record.to_id,
            "balances_before": {
                "source": before.source.units_of(unit.asset_class_id) if before else None,
                "destination": before.destination.units_of(unit.asset_class_id) if before else None,
            },
            "balances_after": {
                "source": after.source.units_of(unit.asset_class_id) if after else None,
                "destination": after.destination.units_of(unit.asset_class_id) if after else None,
            },
        }

    @app.post("/workflow/run")
    def run_workflow(request: RunWorkflowRequest):
        """Run all five steps with the service configuration."""
        report = ProvisioningPipeline(ledger, config, credentials).run(skip_association=request.skip_association)
        if report.account is not None:
            keystore.accounts[report.account.id] = report.account
        if report.asset_class is not None:
            keystore.asset_classes[report.asset_class.id] = report.asset_class
        if not report.ok:
            logger.warning(f"Workflow stopped at step {report.failed_step}: {report.error}")
            return JSONResponse(status_code=400, content=report.to_dict())
        return report.to_dict()

    return app


def main():
    import uvicorn

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    config_path = os.environ.get("WORKFLOW_CONFIG")
    config = WorkflowConfig.from_file(config_path) if config_path else WorkflowConfig()
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(create_app(config=config), host=host, port=port)


if __name__ == "__main__":
    main()
