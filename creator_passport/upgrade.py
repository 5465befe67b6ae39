from enum import Enum
from typing import NamedTuple, Optional, Tuple

import click
from eth_typing import ChecksumAddress
from eth_utils import is_same_address

from creator_passport.artifacts import ContractArtifact
from creator_passport.client import TransactionReceipt
from creator_passport.contracts import PassportContract, checksum_address
from creator_passport.deploy import deploy_contract
from creator_passport.errors import (
    DeploymentWarning,
    MissingProxyAddressError,
    NotAProxyError,
    StateVerificationError,
    UpgradeVerificationWarning,
)
from creator_passport.transactor import Transactor


class UpgradeState(Enum):
    UPGRADED = "upgraded"
    UPGRADED_UNVERIFIED = "upgraded-unverified"


class UpgradeResult(NamedTuple):
    proxy_address: ChecksumAddress
    previous_implementation: ChecksumAddress
    new_implementation: ChecksumAddress
    state: UpgradeState
    transaction: TransactionReceipt
    deployed_implementation: ChecksumAddress
    warnings: Tuple[DeploymentWarning, ...] = ()


class Upgrader:
    """
    Repoints an existing proxy at a freshly deployed implementation.
    The proxy address never changes; only its implementation slot does.
    """

    def __init__(self, transactor: Transactor, proxy_address: Optional[str]):
        # both checks happen before any network traffic
        if not proxy_address:
            raise MissingProxyAddressError("No proxy address configured for the upgrade.")
        self.proxy_address = checksum_address(proxy_address, label="proxy address")
        self.transactor = transactor

    def upgrade(self, implementation: ContractArtifact, data: bytes = b"") -> UpgradeResult:
        profile = self.transactor.profile
        click.echo(
            f"Network: {profile.name} (chain id {profile.chain_id})\n"
            f"Proxy address: {self.proxy_address}\n"
            f"Upgrading from: {self.transactor.address}"
        )
        self.transactor.check_funds(fatal=True)

        proxy = PassportContract(self.transactor, self.proxy_address, implementation.abi)
        previous = proxy.implementation_address()
        if previous is None:
            raise NotAProxyError(
                f"Implementation slot for contract at {self.proxy_address} is empty. "
                "Are you sure this is an EIP1967-compatible proxy?"
            )
        click.echo(f"Current implementation: {previous}")

        deployed, _ = deploy_contract(self.transactor, implementation)

        # submitted once; never retried automatically
        receipt = self.transactor.wait(proxy.upgrade_to(deployed, data))

        current = proxy.implementation_address()
        warnings = []
        if current is not None and is_same_address(current, previous):
            state = UpgradeState.UPGRADED_UNVERIFIED
            warning = UpgradeVerificationWarning(
                f"Implementation address did not change ({current}); the upgrade could not "
                "be verified. This might indicate an issue."
            )
            click.secho(f"WARNING: {warning}", fg="yellow", err=True)
            warnings.append(warning)
        elif current is not None and is_same_address(current, deployed):
            state = UpgradeState.UPGRADED
            click.secho("Implementation address changed - upgrade successful!", fg="green")
        else:
            raise StateVerificationError(
                f"Proxy {self.proxy_address} points at {current} after upgrade transaction "
                f"{receipt.tx_hash}; expected {deployed}."
            )

        return UpgradeResult(
            proxy_address=self.proxy_address,
            previous_implementation=previous,
            new_implementation=current,
            state=state,
            transaction=receipt,
            deployed_implementation=deployed,
            warnings=tuple(warnings),
        )
