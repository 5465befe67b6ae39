"""
# Setup
Create a .env file in the directory you run the commands from:
```
PRIVATE_KEY=<deployer private key>
NETWORK=baseSepolia
BASE_SEPOLIA_RPC_URL=<optional rpc override>
PROXY_ADDRESS=<proxy to upgrade>
ADMIN_ADDRESS=<address to make admin>
```

# Usage
```
passport --network baseSepolia deploy
passport --network baseSepolia deploy --upgradeable
passport --network base upgrade --proxy-address 0x...
passport --network base add-admin --admin-address 0x...
passport --network base owner
```
"""

import functools

import click
from dotenv import load_dotenv

from creator_passport.admin import AdminManager
from creator_passport.artifacts import load_artifact
from creator_passport.client import Web3Client
from creator_passport.config import Settings
from creator_passport.constants import (
    PASSPORT_CONTRACT,
    PROXY_CONTRACT,
    UPGRADEABLE_PASSPORT_CONTRACT,
)
from creator_passport.contracts import PassportContract
from creator_passport.deploy import Deployer
from creator_passport.errors import ConfigurationError, DeploymentError
from creator_passport.networks import NetworkProfile, resolve_network
from creator_passport.options import (
    admin_address_option,
    artifacts_option,
    autosign_option,
    contract_address_option,
    network_option,
    proxy_address_option,
    registry_option,
    timeout_option,
)
from creator_passport.registry import (
    contract_address_from_registry,
    registry_entry,
    write_registry,
)
from creator_passport.signer import Identity
from creator_passport.transactor import Transactor
from creator_passport.upgrade import UpgradeState, Upgrader


def _report_error(error: DeploymentError, profile: NetworkProfile = None) -> None:
    click.secho(f"\nERROR [{error.kind}] {error}", fg="red", err=True)
    tx_hash = getattr(error, "tx_hash", None)
    if tx_hash:
        click.secho(f"Outstanding transaction: {tx_hash}", fg="red", err=True)
        url = profile.transaction_url(tx_hash) if profile else None
        if url:
            click.secho(f"Track it at {url}", fg="red", err=True)
    click.secho(f"Hint: {error.remediation}", fg="red", err=True)


def handle_errors(func):
    """Reports lifecycle errors with their kind and remediation hint, then exits non-zero."""

    @functools.wraps(func)
    @click.pass_context
    def wrapper(ctx, *args, **kwargs):
        try:
            return func(ctx, *args, **kwargs)
        except DeploymentError as e:
            _report_error(e, profile=ctx.obj.get("profile"))
            ctx.exit(1)

    return wrapper


def _print_summary(title: str, rows) -> None:
    click.secho(f"\n{title}", fg="green", bold=True)
    for label, value in rows:
        if value is not None:
            click.echo(f"\t{label}: {value}")


def _print_warnings(warnings) -> None:
    for warning in warnings:
        click.secho(f"\t! {warning.kind}: {warning}", fg="yellow")


def _print_verification_hint(
    profile: NetworkProfile, implementation_address: str, proxied: bool
) -> None:
    if profile.is_local:
        return
    click.echo("\nTo verify the source on the block explorer, run:")
    click.echo(f"\tnpx hardhat verify --network {profile.name} {implementation_address}")
    if proxied:
        click.echo("Verify the implementation address, not the proxy address.")


def _connect(ctx: click.Context) -> Transactor:
    """
    Builds the transactor for this invocation. Credentials and network configuration
    are checked here, before any RPC traffic.
    """
    settings: Settings = ctx.obj["settings"]
    identity = Identity.from_private_key(settings.private_key)
    profile = resolve_network(settings.network, settings.environ)
    ctx.obj["profile"] = profile
    client_factory = ctx.obj.get("client_factory", Web3Client)
    return Transactor.from_settings(
        settings,
        client=client_factory(profile),
        identity=identity,
        profile=profile,
        **ctx.obj.get("transactor_options", {}),
    )


def _verify_chain(transactor: Transactor) -> None:
    """First network call of every command: the endpoint must serve the expected chain."""
    profile = transactor.profile
    chain_id = transactor.read(transactor.client.chain_id)
    if chain_id != profile.chain_id:
        raise ConfigurationError(
            f"RPC endpoint {profile.rpc_url} serves chain id {chain_id}, "
            f"but {profile.name} expects {profile.chain_id}.",
            remediation=f"Fix the RPC URL override for {profile.name}.",
        )


def _passport_address(settings: Settings, profile: NetworkProfile) -> str:
    address = settings.contract_address or contract_address_from_registry(
        settings.registry_filepath,
        chain_id=profile.chain_id,
        names=[UPGRADEABLE_PASSPORT_CONTRACT, PASSPORT_CONTRACT],
    )
    if not address:
        raise ConfigurationError(
            f"No passport contract address configured for {profile.name}.",
            remediation="Set PASSPORT_CONTRACT_ADDRESS or pass --contract-address.",
        )
    return address


@click.group()
@network_option
@autosign_option
@timeout_option
@artifacts_option
@registry_option
@click.pass_context
def cli(ctx, network, autosign, confirmation_timeout, artifacts_dir, registry_filepath):
    """CreatorPassport contract lifecycle tooling."""
    load_dotenv()
    ctx.ensure_object(dict)
    try:
        settings = Settings.from_env().with_overrides(
            network=network,
            autosign=autosign or None,
            confirmation_timeout=confirmation_timeout,
            artifacts_dir=artifacts_dir,
            registry_filepath=registry_filepath,
        )
    except DeploymentError as e:
        _report_error(e)
        ctx.exit(1)
    ctx.obj["settings"] = settings


@cli.command()
@click.option(
    "--upgradeable",
    "-u",
    help="Deploy behind an ERC1967 (UUPS) proxy.",
    is_flag=True,
    default=False,
)
@handle_errors
def deploy(ctx, upgradeable):
    """Deploy a new CreatorPassport contract."""
    settings: Settings = ctx.obj["settings"]
    if upgradeable:
        implementation = load_artifact(settings.artifacts_dir, UPGRADEABLE_PASSPORT_CONTRACT)
        proxy = load_artifact(settings.artifacts_dir, PROXY_CONTRACT)
    else:
        implementation = load_artifact(settings.artifacts_dir, PASSPORT_CONTRACT)

    transactor = _connect(ctx)
    _verify_chain(transactor)
    deployer = Deployer(transactor)
    if upgradeable:
        result = deployer.deploy_proxy(implementation, proxy)
    else:
        result = deployer.deploy(implementation)

    profile = transactor.profile
    write_registry(
        [
            registry_entry(
                chain_id=profile.chain_id,
                name=implementation.name,
                address=result.contract_address,
                abi=implementation.abi,
                receipt=result.transaction,
                deployer=transactor.address,
            )
        ],
        filepath=settings.registry_filepath,
    )

    _print_summary(
        f"{implementation.name} deployed!",
        [
            ("Network", f"{profile.name} (chain id {profile.chain_id})"),
            ("Contract address", result.contract_address),
            ("Implementation address", result.implementation_address),
            ("Transaction hash", result.transaction.tx_hash),
            ("Explorer", profile.address_url(result.contract_address)),
        ],
    )
    _print_warnings(result.warnings)
    _print_verification_hint(
        profile,
        result.implementation_address or result.contract_address,
        proxied=result.implementation_address is not None,
    )
    click.echo(f"\nSet PASSPORT_CONTRACT_ADDRESS={result.contract_address} in your app config.")
    if upgradeable:
        click.echo(f"Upgrade later with: passport --network {profile.name} upgrade")


@cli.command()
@proxy_address_option
@handle_errors
def upgrade(ctx, proxy_address):
    """Upgrade a proxied CreatorPassport to a newly compiled implementation."""
    settings: Settings = ctx.obj["settings"].with_overrides(proxy_address=proxy_address)
    transactor = _connect(ctx)
    upgrader = Upgrader(transactor, settings.proxy_address)
    implementation = load_artifact(settings.artifacts_dir, UPGRADEABLE_PASSPORT_CONTRACT)

    _verify_chain(transactor)
    result = upgrader.upgrade(implementation)

    profile = transactor.profile
    write_registry(
        [
            registry_entry(
                chain_id=profile.chain_id,
                name=implementation.name,
                address=result.proxy_address,
                abi=implementation.abi,
                receipt=result.transaction,
                deployer=transactor.address,
            )
        ],
        filepath=settings.registry_filepath,
    )

    title = (
        "Contract upgraded successfully!"
        if result.state is UpgradeState.UPGRADED
        else "Upgrade transaction confirmed, but the new implementation could not be verified."
    )
    _print_summary(
        title,
        [
            ("State", result.state.value),
            ("Proxy address (unchanged)", result.proxy_address),
            ("Previous implementation", result.previous_implementation),
            ("New implementation", result.new_implementation),
            ("Transaction hash", result.transaction.tx_hash),
            ("Explorer", profile.address_url(result.new_implementation)),
        ],
    )
    _print_warnings(result.warnings)
    _print_verification_hint(profile, result.deployed_implementation, proxied=True)


@cli.command("add-admin")
@contract_address_option
@admin_address_option
@handle_errors
def add_admin(ctx, contract_address, admin_address):
    """Grant admin rights on the passport contract (owner only)."""
    settings: Settings = ctx.obj["settings"].with_overrides(
        contract_address=contract_address, admin_address=admin_address
    )
    if not settings.admin_address:
        raise ConfigurationError(
            "No admin address given.", remediation="Set ADMIN_ADDRESS or pass --admin-address."
        )
    transactor = _connect(ctx)
    contract = PassportContract(
        transactor, _passport_address(settings, transactor.profile)
    )
    _verify_chain(transactor)
    click.echo(f"Contract: {contract.address}\nAdmin to add: {settings.admin_address}")
    result = AdminManager(transactor, contract).add_admin(settings.admin_address)

    _print_summary(
        "Admin added!" if result.added else "Admin already registered.",
        [
            ("Contract", contract.address),
            ("Admin", result.admin_address),
            ("Transaction hash", result.transaction.tx_hash if result.transaction else None),
        ],
    )


@cli.command()
@contract_address_option
@handle_errors
def owner(ctx, contract_address):
    """Print the owner of the passport contract."""
    settings: Settings = ctx.obj["settings"].with_overrides(contract_address=contract_address)
    transactor = _connect(ctx)
    contract = PassportContract(
        transactor, _passport_address(settings, transactor.profile)
    )
    _verify_chain(transactor)
    click.echo(f"Contract owner: {AdminManager(transactor, contract).owner()}")


if __name__ == "__main__":
    cli()
