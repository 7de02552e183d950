import os

from ..algorand_utils import AlgorandSettings
from ..errors import ConfigurationError
from .algorand import AlgorandLedgerClient
from .base import LedgerClient
from .memory import InMemoryLedger

__all__ = ["AlgorandLedgerClient", "InMemoryLedger", "LedgerClient", "create_ledger"]

BACKENDS = ("algorand", "memory")

# operator funds for the in-process backend, in smallest units
MEMORY_OPERATOR_BALANCE = 10_000_000_000


def create_ledger(backend, config, credentials, env=None):
    """Build the ledger client named by ``backend`` (or ``LEDGER_BACKEND``)."""
    env = os.environ if env is None else env
    backend = (backend or env.get("LEDGER_BACKEND") or "algorand").lower()
    if backend == "memory":
        ledger = InMemoryLedger(batch_limit=config.batch_limit, max_metadata_bytes=config.max_metadata_bytes)
        ledger.register_account(credentials.account_id, credentials.keypair.public_key, MEMORY_OPERATOR_BALANCE)
        return ledger
    if backend == "algorand":
        try:
            settings = AlgorandSettings.from_env(env)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        return AlgorandLedgerClient.from_settings(
            settings,
            confirmation_timeout=config.confirmation_timeout,
            poll_interval=config.poll_interval,
            batch_limit=config.batch_limit,
        )
    raise ConfigurationError(f"Unknown ledger backend {backend!r}, expected one of {BACKENDS}")
