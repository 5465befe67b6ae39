from typing import Optional

import click
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress
from web3 import Web3

from creator_passport.client import ChainClient, TransactionReceipt, TransactionRequest
from creator_passport.errors import (
    ConfigurationError,
    MissingCredentialError,
    RpcUnavailableError,
)


class Identity:
    """
    The single transacting account of an invocation.
    The private key stays inside the eth_account LocalAccount and is never exposed again.
    """

    def __init__(self, account: LocalAccount):
        self._account = account

    @classmethod
    def from_private_key(cls, private_key: Optional[str]) -> "Identity":
        if not private_key:
            raise MissingCredentialError("No private key configured (PRIVATE_KEY is not set).")
        try:
            account = Account.from_key(private_key)
        except (ValueError, TypeError):
            # never echo the key itself
            raise ConfigurationError(
                "PRIVATE_KEY is not a valid secp256k1 private key."
            ) from None
        return cls(account)

    @property
    def address(self) -> ChecksumAddress:
        return self._account.address

    def __repr__(self) -> str:
        return f"Identity({self.address})"

    def read_balance(self, client: ChainClient) -> int:
        return client.get_balance(self.address)

    def sign_and_send(self, client: ChainClient, request: TransactionRequest) -> TransactionReceipt:
        """
        Signs and broadcasts a transaction, returning a pending receipt.
        The hash is known (and printed) before broadcasting so an interrupted
        run can still be followed up on a block explorer.
        """
        tx = client.build_transaction(self.address, request)
        signed = self._account.sign_transaction(tx)
        local_hash = Web3.to_hex(signed.hash)
        click.echo(f"Broadcasting transaction {local_hash} (nonce {tx.get('nonce')})")
        try:
            tx_hash = client.send_raw_transaction(signed.raw_transaction)
        except RpcUnavailableError as e:
            # the broadcast may still have reached the mempool
            e.tx_hash = local_hash
            raise
        return TransactionReceipt(tx_hash=tx_hash)
