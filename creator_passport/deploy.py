from typing import List, NamedTuple, Optional, Tuple

import click
from eth_typing import ChecksumAddress
from eth_utils import from_wei, is_same_address

from creator_passport.artifacts import ContractArtifact
from creator_passport.client import TransactionReceipt
from creator_passport.constants import INITIALIZER, OPERATIONS_ADDRESS, OPERATIONS_FEE
from creator_passport.contracts import ContractFactory, FeeConfigured, PassportContract
from creator_passport.errors import (
    ConstantMismatchWarning,
    DeploymentWarning,
    RevertedError,
    RpcUnavailableError,
    StateVerificationError,
)
from creator_passport.transactor import Transactor


class DeploymentResult(NamedTuple):
    contract_address: ChecksumAddress
    transaction: TransactionReceipt
    implementation_address: Optional[ChecksumAddress] = None
    warnings: Tuple[DeploymentWarning, ...] = ()


def _warn(warning: DeploymentWarning) -> DeploymentWarning:
    click.secho(f"WARNING: {warning}", fg="yellow", err=True)
    return warning


def deploy_contract(
    transactor: Transactor, artifact: ContractArtifact, *args
) -> Tuple[ChecksumAddress, TransactionReceipt]:
    """
    Submits a contract creation and waits for it; the address is taken from the
    confirmed receipt since it is only authoritative after inclusion.
    """
    factory = ContractFactory(transactor, artifact)
    receipt = transactor.wait(factory.deploy(*args))
    if not receipt.contract_address:
        raise StateVerificationError(
            f"Creation transaction {receipt.tx_hash} was confirmed without a contract address."
        )
    click.secho(f"{artifact.name} deployed to {receipt.contract_address}", fg="green")
    return receipt.contract_address, receipt


def verify_constants(
    contract: FeeConfigured,
    expected_address: str = OPERATIONS_ADDRESS,
    expected_fee: int = OPERATIONS_FEE,
) -> List[DeploymentWarning]:
    """
    Post-hoc sanity check of the fee constants baked into a freshly deployed contract.
    Never raises: the deployment already happened and cannot be rolled back.
    """
    try:
        operations_address = contract.operations_address()
        operations_fee = contract.operations_fee()
    except (RpcUnavailableError, RevertedError) as e:
        return [
            _warn(
                ConstantMismatchWarning(
                    f"Could not verify contract constants ({e}). Expected operations address "
                    f"{expected_address} and fee {from_wei(expected_fee, 'ether')} ETH; "
                    "check them manually on the block explorer."
                )
            )
        ]

    click.echo(f"Operations fee address: {operations_address}")
    click.echo(f"Operations fee amount: {from_wei(operations_fee, 'ether')} ETH")

    warnings = []
    if not is_same_address(operations_address, expected_address):
        warnings.append(
            _warn(
                ConstantMismatchWarning(
                    f"Operations address mismatch: expected {expected_address}, "
                    f"got {operations_address}"
                )
            )
        )
    else:
        click.echo("Operations address verified")

    if operations_fee != expected_fee:
        warnings.append(
            _warn(
                ConstantMismatchWarning(
                    f"Operations fee mismatch: expected {from_wei(expected_fee, 'ether')} ETH, "
                    f"got {from_wei(operations_fee, 'ether')} ETH"
                )
            )
        )
    else:
        click.echo(f"Operations fee verified ({from_wei(expected_fee, 'ether')} ETH)")
    return warnings


class Deployer:
    """Drives fresh deployments of the passport contract."""

    def __init__(self, transactor: Transactor):
        self.transactor = transactor

    def _preflight(self) -> List[DeploymentWarning]:
        profile = self.transactor.profile
        click.echo(
            f"Network: {profile.name} (chain id {profile.chain_id})\n"
            f"Deploying from: {self.transactor.address}"
        )
        warning = self.transactor.check_funds(fatal=profile.is_production)
        return [warning] if warning else []

    def deploy(self, artifact: ContractArtifact) -> DeploymentResult:
        """Deploys the contract directly (no proxy) and checks its fee constants."""
        warnings = self._preflight()
        address, receipt = deploy_contract(self.transactor, artifact)

        contract = PassportContract(self.transactor, address, artifact.abi)
        warnings.extend(verify_constants(contract))
        return DeploymentResult(
            contract_address=address, transaction=receipt, warnings=tuple(warnings)
        )

    def deploy_proxy(
        self, implementation: ContractArtifact, proxy: ContractArtifact
    ) -> DeploymentResult:
        """
        Deploys an implementation behind a fresh ERC1967 (UUPS) proxy initialized with the
        deployer as owner. The proxy address is the one users interact with.
        """
        warnings = self._preflight()
        implementation_address, _ = deploy_contract(self.transactor, implementation)

        initializer = ContractFactory(self.transactor, implementation).encode_initializer(
            INITIALIZER, self.transactor.address
        )
        proxy_address, receipt = deploy_contract(
            self.transactor, proxy, implementation_address, initializer
        )

        contract = PassportContract(self.transactor, proxy_address, implementation.abi)
        observed = contract.implementation_address()
        if observed is None or not is_same_address(observed, implementation_address):
            raise StateVerificationError(
                f"Proxy {proxy_address} points at {observed}, "
                f"expected implementation {implementation_address}."
            )
        warnings.extend(verify_constants(contract))
        return DeploymentResult(
            contract_address=proxy_address,
            transaction=receipt,
            implementation_address=implementation_address,
            warnings=tuple(warnings),
        )
