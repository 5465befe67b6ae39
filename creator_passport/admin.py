from typing import NamedTuple, Optional

import click
from eth_typing import ChecksumAddress
from eth_utils import is_same_address

from creator_passport.client import TransactionReceipt
from creator_passport.contracts import AdminManageable, checksum_address
from creator_passport.errors import StateVerificationError, UnauthorizedError
from creator_passport.transactor import Transactor


class AdminResult(NamedTuple):
    admin_address: ChecksumAddress
    added: bool
    transaction: Optional[TransactionReceipt] = None


class AdminManager:
    """Owner-gated management of the contract's admin list."""

    def __init__(self, transactor: Transactor, contract: AdminManageable):
        self.transactor = transactor
        self.contract = contract

    def owner(self) -> ChecksumAddress:
        return self.contract.owner()

    def add_admin(self, target_address: str) -> AdminResult:
        """
        Grants admin rights to target_address.

        Preconditions are checked in order and short-circuit: the address must be valid,
        the caller must be the owner (checked locally so no gas is spent on a revert),
        and an existing admin is a successful no-op.
        """
        target = checksum_address(target_address, label="admin address")

        owner = self.contract.owner()
        click.echo(f"Contract owner: {owner}")
        if not is_same_address(owner, self.transactor.address):
            raise UnauthorizedError(
                f"Wallet {self.transactor.address} is not the contract owner ({owner}). "
                "Only the owner can add admins."
            )

        if self.contract.is_admin(target):
            click.secho(f"{target} is already an admin; nothing to do.", fg="green")
            return AdminResult(admin_address=target, added=False)

        receipt = self.transactor.wait(self.contract.add_admin(target))
        if not self.contract.is_admin(target):
            raise StateVerificationError(
                f"Transaction {receipt.tx_hash} was confirmed but {target} is still not an admin."
            )
        click.secho(f"{target} is now an admin.", fg="green")
        return AdminResult(admin_address=target, added=True, transaction=receipt)
