from pathlib import Path

import click

from creator_passport.types import NetworkName, PositiveFloat

network_option = click.option(
    "--network",
    "-n",
    help="Network to connect to (baseSepolia, base, celoSepolia, hardhat). Defaults to NETWORK.",
    type=NetworkName(),
    required=False,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation.",
    is_flag=True,
    default=False,
)

timeout_option = click.option(
    "--timeout",
    "-t",
    "confirmation_timeout",
    help="Seconds to wait for a transaction to be confirmed.",
    type=PositiveFloat(),
    required=False,
)

artifacts_option = click.option(
    "--artifacts-dir",
    help="Directory holding the compiled contract artifacts.",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
)

registry_option = click.option(
    "--registry-filepath",
    "-f",
    help="Deployment registry to read from and write to.",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)

contract_address_option = click.option(
    "--contract-address",
    "-c",
    help="Passport contract address; defaults to PASSPORT_CONTRACT_ADDRESS or the registry.",
    type=str,
    required=False,
)

proxy_address_option = click.option(
    "--proxy-address",
    "-p",
    help="Address of the proxy to upgrade; defaults to PROXY_ADDRESS.",
    type=str,
    required=False,
)

admin_address_option = click.option(
    "--admin-address",
    "-a",
    help="Address to grant admin rights to; defaults to ADMIN_ADDRESS.",
    type=str,
    required=False,
)
