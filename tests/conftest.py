import pytest

from nft_workflow.config import Credentials, WorkflowConfig
from nft_workflow.ledger import InMemoryLedger
from nft_workflow.models import Keypair
from nft_workflow.steps import (
    AccountProvisioner,
    AssetIssuer,
    AssociationRegistrar,
    BatchMinter,
    TransferExecutor,
)

OPERATOR_ID = "0.0.2"
OPERATOR_FUNDS = 10_000_000_000


@pytest.fixture
def operator_key():
    return Keypair.generate()


@pytest.fixture
def credentials(operator_key):
    return Credentials(account_id=OPERATOR_ID, keypair=operator_key)


@pytest.fixture
def ledger(credentials):
    ledger = InMemoryLedger()
    ledger.register_account(credentials.account_id, credentials.keypair.public_key, OPERATOR_FUNDS)
    return ledger


@pytest.fixture
def config():
    return WorkflowConfig()


@pytest.fixture
def treasury(credentials):
    return credentials.as_account()


@pytest.fixture
def provisioner(ledger, config, credentials):
    return AccountProvisioner(ledger, config, credentials)


@pytest.fixture
def issuer(ledger, config):
    return AssetIssuer(ledger, config)


@pytest.fixture
def minter(ledger, config):
    return BatchMinter(ledger, config)


@pytest.fixture
def registrar(ledger, config):
    return AssociationRegistrar(ledger, config)


@pytest.fixture
def executor(ledger, config):
    return TransferExecutor(ledger, config)


@pytest.fixture
def asset_class(issuer, treasury):
    return issuer.issue(treasury).unwrap()


@pytest.fixture
def units(minter, asset_class, config):
    return minter.mint_batch(asset_class, config.metadata).unwrap()


@pytest.fixture
def recipient(provisioner):
    return provisioner.create(1000).unwrap()
