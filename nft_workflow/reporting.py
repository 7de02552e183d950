"""Human-readable status lines for a workflow run."""

RULE = "=" * 70


def banner(title):
    return f"\n{RULE}\n{title}\n{RULE}"


def account_created(account_id):
    return f"The new Account ID is: {account_id}"


def account_balance(native):
    return f"The new account balance is: {native} smallest units"


def supply_key(public_key):
    return f"Supply Key: {public_key}"


def asset_class_created(asset_class_id):
    return f"Created NFT with Token ID: {asset_class_id}"


def units_minted(asset_class_id, serials):
    return f"Created NFT {asset_class_id} with serial numbers: {list(serials)}"


def association_status(status):
    return f"NFT association with account: {status}"


def class_balance(label, count, asset_class_id):
    return f"{label} balance: {count} NFTs of ID {asset_class_id}"


def transfer_status(status):
    return f"NFT transfer from Treasury to New Account: {status}"


def step_failed(step, error):
    status = getattr(error, "status", None)
    suffix = f" [{status}]" if status else ""
    return f"STEP {step} FAILED{suffix}: {error}"
