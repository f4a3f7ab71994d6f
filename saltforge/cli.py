"""
saltforge — deterministic CREATE2 deployments.

Commands
  compute   -> One-shot CREATE2 (and optional CREATE) address
  mine      -> Search salts for an address containing a hex pattern
  accounts  -> Derive the configured deployer accounts from the seed phrase
  deploy    -> Factory + admin proxy + implementation + upgradeable proxy

Configuration comes from the environment (and ``.env``): PROVIDER_HTTP,
ACCOUNT_MNEMONIC, ACCOUNTS_COUNT, MAX_GAS_PRICE, MAX_PRIORITY_FEE_PER_GAS,
SALT_MAX_ATTEMPTS, RECEIPT_TIMEOUT, ARTIFACTS_DIR, DERIVATION_PATH.

Examples
  # Address for salt keccak("1") and a known init code hash
  $ saltforge compute --deployer 0xDepl... --salt-nonce 1 --init-code-hash 0xabc...

  # Smallest salt nonce whose address contains "dead"
  $ saltforge mine --deployer 0xDepl... --bytecode 0x60... --constructor "address" \
        --arg 0xCafe... --pattern dead

  # Full upgradeable deployment against PROVIDER_HTTP
  $ saltforge deploy --proxy-pattern c0de --json deployments.json --csv deployments.csv
"""

import json
import logging

import click
from eth_utils import keccak

from . import keys
from .artifacts import ArtifactStore, build_init_code
from .config import Settings
from .coordinator import ADMIN_SALT, IMPLEMENTATION_SALT, DeploymentCoordinator
from .hexutil import as_word, checksum, hex0x, to_bytes
from .ledger import Web3Ledger
from .miner import mine, salt_from_nonce
from .oracle import create_address, predict
from .records import write_csv, write_json

log = logging.getLogger(__name__)


def _code_hash(init_code, init_code_hash, bytecode, ctor_types, ctor_args) -> bytes:
    if init_code_hash:
        return as_word(init_code_hash, "init code hash")
    ic = to_bytes(init_code, "init code") if init_code else build_init_code(bytecode, ctor_types, ctor_args)
    if ic is None:
        raise click.UsageError("Provide one of --init-code / --init-code-hash / --bytecode (+constructor)")
    return keccak(ic)


def _connect(settings: Settings, account) -> Web3Ledger:
    return Web3Ledger.connect(settings, account, ArtifactStore(settings.artifacts_dir))


def init_code_options(f):
    for opt in reversed([
        click.option("--init-code", type=str, default=None, help="Full init code (0x...)."),
        click.option("--init-code-hash", type=str, default=None, help="Keccak256 of init code (0x...)."),
        click.option("--bytecode", type=str, default=None, help="Creation bytecode (no args)."),
        click.option("--constructor", "ctor_types", type=str, default=None,
                     help='Constructor types CSV, e.g. "address,uint256". Empty string means no args.'),
        click.option("--arg", "ctor_args", multiple=True, help="Constructor arg (repeat)."),
    ]):
        f = opt(f)
    return f


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="dotenv file to load.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def cli(ctx, env_file, verbose):
    """saltforge — deterministic CREATE2 deployments."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", lambda: Settings.from_env(env_file=env_file))
    ctx.obj.setdefault("connect", _connect)


@cli.command("compute")
@click.option("--deployer", required=True, type=str, help="0x deployer (factory) address, 20 bytes.")
@click.option("--salt-nonce", type=int, default=None, help="Salt = keccak256 of this decimal nonce.")
@click.option("--salt-hex", type=str, default=None, help="Salt as 32-byte hex (0x...).")
@init_code_options
@click.option("--create-nonce", type=int, default=None, help="Also compute legacy CREATE address for deployer+nonce.")
def compute_cmd(deployer, salt_nonce, salt_hex, init_code, init_code_hash, bytecode, ctor_types, ctor_args, create_nonce):
    """Compute CREATE2 (and optional CREATE) addresses."""
    if salt_nonce is not None and salt_hex is not None:
        raise click.UsageError("Provide at most one of --salt-nonce / --salt-hex")
    out = {}
    if salt_nonce is not None or salt_hex is not None:
        salt = salt_from_nonce(salt_nonce) if salt_nonce is not None else as_word(salt_hex, "salt")
        ich = _code_hash(init_code, init_code_hash, bytecode, ctor_types, ctor_args)
        out["create2"] = {
            "address": checksum(predict(deployer, salt, ich)),
            "salt": hex0x(salt),
            "init_code_hash": hex0x(ich),
        }
    if create_nonce is not None:
        out["create"] = {"address": checksum(create_address(deployer, create_nonce)), "nonce": create_nonce}
    if not out:
        raise click.UsageError("Nothing to compute: give a salt and/or --create-nonce")
    click.echo(json.dumps(out, indent=2))


@cli.command("mine")
@click.option("--deployer", required=True, type=str, help="0x deployer (factory) address.")
@init_code_options
@click.option("--pattern", type=str, default=None, help='Hex substring the address must contain (e.g. "dead").')
@click.option("--salt-hex", type=str, default=None, help="Explicit salt; skips the search.")
@click.option("--max-attempts", type=int, default=None, help="Search bound (default: SALT_MAX_ATTEMPTS).")
@click.option("--json", "json_out", type=click.Path(writable=True), default=None, help="Write JSON result.")
@click.pass_context
def mine_cmd(ctx, deployer, init_code, init_code_hash, bytecode, ctor_types, ctor_args, pattern, salt_hex,
             max_attempts, json_out):
    """Find the smallest salt nonce whose CREATE2 address contains PATTERN."""
    if max_attempts is None:
        max_attempts = ctx.obj["settings"]().max_attempts
    ich = _code_hash(init_code, init_code_hash, bytecode, ctor_types, ctor_args)
    mined = mine(deployer, ich, pattern=pattern, salt=salt_hex, max_attempts=max_attempts)
    resp = {"deployer": checksum(deployer), "init_code_hash": hex0x(ich), "pattern": pattern, **mined.as_dict()}
    click.echo(json.dumps(resp, indent=2))
    if json_out:
        with open(json_out, "w", encoding="utf-8") as f:
            json.dump(resp, f, indent=2)
        click.echo(f"Wrote JSON: {json_out}")


@cli.command("accounts")
@click.option("--count", type=int, default=None, help="How many accounts (default: ACCOUNTS_COUNT).")
@click.option("--show-keys", is_flag=True, help="Also print private keys (and a generated seed phrase).")
@click.pass_context
def accounts_cmd(ctx, count, show_keys):
    """Derive deployer accounts from ACCOUNT_MNEMONIC."""
    settings = ctx.obj["settings"]()
    if count is None:
        count = settings.accounts_count
    accounts = keys.derive(settings.mnemonic, count, settings.derivation_path)
    rows = []
    for a in accounts:
        row = {"index": a.index, "path": a.path, "address": a.address}
        if show_keys:
            row["private_key"] = a.private_key_hex
        rows.append(row)
    out = {"accounts": rows}
    if settings.mnemonic is None:
        if show_keys:
            out["seed_phrase"] = accounts.seed_phrase
        else:
            click.echo("No ACCOUNT_MNEMONIC set: these accounts come from a throwaway phrase "
                       "(use --show-keys to see it).", err=True)
    click.echo(json.dumps(out, indent=2))


@cli.command("deploy")
@click.option("--factory", type=str, default=None, help="Existing Deployer factory; deployed fresh if omitted.")
@click.option("--factory-artifact", default="Deployer", show_default=True)
@click.option("--admin-artifact", default="AdminProxy", show_default=True)
@click.option("--implementation-artifact", default="AssetMarket", show_default=True)
@click.option("--proxy-artifact", default="UpgradeableContract", show_default=True)
@click.option("--proxy-pattern", default="0x", show_default=True, help="Hex substring for the proxy address.")
@click.option("--admin-salt", default=hex0x(ADMIN_SALT), show_default=True)
@click.option("--implementation-salt", default=hex0x(IMPLEMENTATION_SALT), show_default=True)
@click.option("--signer-index", type=click.IntRange(min=0), default=0, show_default=True, help="Account index that signs.")
@click.option("--owner-index", type=click.IntRange(min=0), default=0, show_default=True, help="Account index that receives ownership.")
@click.option("--json", "json_out", type=click.Path(writable=True), default=None, help="Write JSON deployment log.")
@click.option("--csv", "csv_out", type=click.Path(writable=True), default=None, help="Write CSV deployment log.")
@click.pass_context
def deploy_cmd(ctx, factory, factory_artifact, admin_artifact, implementation_artifact, proxy_artifact,
               proxy_pattern, admin_salt, implementation_salt, signer_index, owner_index, json_out, csv_out):
    """Deploy an upgradeable contract at predicted CREATE2 addresses."""
    settings = ctx.obj["settings"]()
    log.debug("settings: %s", settings.redacted())
    if settings.mnemonic is None:
        raise click.UsageError("ACCOUNT_MNEMONIC is required for deploy")
    count = max(settings.accounts_count, signer_index + 1, owner_index + 1)
    accounts = keys.derive(settings.mnemonic, count, settings.derivation_path)
    signer = accounts[signer_index]
    owner = accounts[owner_index].address

    ledger = ctx.obj["connect"](settings, signer.local_account())
    coordinator = DeploymentCoordinator(ledger, settings)
    if factory is None:
        factory = coordinator.deploy_factory(ledger.read_artifact(factory_artifact))
        click.echo(f"deployer deployed @ {factory}")
    else:
        factory = checksum(factory)
    records = coordinator.deploy_upgradeable(
        factory, owner,
        ledger.read_artifact(admin_artifact),
        ledger.read_artifact(implementation_artifact),
        ledger.read_artifact(proxy_artifact),
        proxy_pattern=proxy_pattern,
        admin_salt=admin_salt,
        implementation_salt=implementation_salt,
    )

    for r in records:
        click.echo(f"{r.name} deployed @ {r.address} with salt {r.salt}")
    if json_out:
        write_json(json_out, records, network=settings.network, deployer=factory)
        click.echo(f"Wrote JSON: {json_out}")
    if csv_out:
        write_csv(csv_out, records)
        click.echo(f"Wrote CSV: {csv_out}")
    click.echo("MIGRATIONS DONE")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
