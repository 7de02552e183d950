"""
mint.py - provision, issue, mint, associate and transfer in one run

Runs the five-step NFT workflow against the configured ledger:
- Creates a new funded account for the recipient
- Creates a finite NFT class with the operator as treasury
- Mints one NFT per metadata pointer in a single batch
- Associates the new account with the class
- Transfers one NFT from the treasury and reports balances

Credentials come from MY_ACCOUNT_ID / MY_PRIVATE_KEY (a .env file is read).
"""

import argparse
import logging
import sys

from . import reporting
from .config import LOG_FORMAT, Credentials, WorkflowConfig
from .errors import ConfigurationError
from .ledger import BACKENDS, create_ledger
from .pipeline import ProvisioningPipeline


def build_parser():
    parser = argparse.ArgumentParser(prog="nft-workflow", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--config", help="JSON file with workflow parameters")
    parser.add_argument("--backend", choices=BACKENDS, help="ledger backend (default: $LEDGER_BACKEND or algorand)")
    parser.add_argument(
        "--skip-association",
        action="store_true",
        help="leave out the association step (the transfer is expected to fail)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    print(reporting.banner("NFT PROVISIONING AND TRANSFER WORKFLOW"))
    try:
        config = WorkflowConfig.from_file(args.config) if args.config else WorkflowConfig()
        credentials = Credentials.from_env()
        ledger = create_ledger(args.backend, config, credentials)
    except ConfigurationError as e:
        print(f"\n❌ CONFIGURATION ERROR: {e}")
        return 2

    print(f"\n👤 Operator / Treasury: {credentials.account_id}")
    print(f"  • Backend: {ledger.name}")
    print(f"  • NFT Name: {config.asset_name}")
    print(f"  • NFT Symbol: {config.asset_symbol}")
    print(f"  • Max Supply: {config.max_supply}")
    print(f"  • Batch Size: {len(config.metadata)} (limit {config.batch_limit})")

    report = ProvisioningPipeline(ledger, config, credentials, emit=print).run(
        skip_association=args.skip_association
    )

    if not report.ok:
        print(reporting.banner(f"❌ WORKFLOW STOPPED AT STEP: {report.failed_step}"))
        return 1

    print(reporting.banner("🎉 WORKFLOW COMPLETE - SUCCESS!"))
    print(f"\n📋 Summary:")
    print(f"  • New Account: {report.account.id}")
    print(f"  • Token ID: {report.asset_class.id}")
    print(f"  • Serials: {[unit.serial for unit in report.units]}")
    print(f"  • Transferred serial {report.transfer.serial} to {report.transfer.to_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
