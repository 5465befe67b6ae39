import time
from typing import Any, Callable, Dict, Optional, Sequence, TypeVar

import click
from eth_typing import ABI, ChecksumAddress
from eth_utils import from_wei

from creator_passport.client import ChainClient, TransactionReceipt, TransactionRequest
from creator_passport.confirm import _confirm_transaction
from creator_passport.confirmations import ConfirmationPolicy, wait_for_confirmations
from creator_passport.config import Settings
from creator_passport.constants import MAX_POLL_INTERVAL
from creator_passport.errors import (
    DeploymentError,
    InsufficientFundsError,
    LowBalanceWarning,
    PendingTransactionError,
    RevertedError,
    RpcUnavailableError,
)
from creator_passport.networks import NetworkProfile
from creator_passport.retry import Backoff, retry
from creator_passport.signer import Identity

T = TypeVar("T")


def _named_args(request: TransactionRequest) -> Dict[str, Any]:
    """Pairs the request arguments with their ABI input names, when the ABI has them."""
    entry_type = "constructor" if request.is_creation else "function"
    for entry in request.abi:
        if entry.get("type") != entry_type:
            continue
        if not request.is_creation and entry.get("name") != request.method:
            continue
        inputs = entry.get("inputs", [])
        if len(inputs) == len(request.args):
            return {
                abi_input.get("name") or f"arg{i}": value
                for i, (abi_input, value) in enumerate(zip(inputs, request.args))
            }
    return {f"arg{i}": value for i, value in enumerate(request.args)}


class Transactor:
    """
    Represents the invocation's identity plus validated/annotated transaction execution
    against one network.

    Only one transaction may be outstanding at a time; reads are refused until it is
    confirmed to the depth required by the confirmation policy.
    """

    def __init__(
        self,
        client: ChainClient,
        identity: Identity,
        profile: NetworkProfile,
        policy: Optional[ConfirmationPolicy] = None,
        confirmation_timeout: float = 300,
        poll_interval: float = 2.0,
        rpc_retries: int = 3,
        autosign: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.identity = identity
        self.profile = profile
        self.policy = policy or ConfirmationPolicy()
        self.confirmation_timeout = confirmation_timeout
        self.backoff = Backoff(initial=poll_interval, factor=1.5, maximum=MAX_POLL_INTERVAL)
        self.rpc_retries = rpc_retries
        if autosign:
            click.secho(
                "WARNING: Autosign is enabled. Transactions will be signed automatically.",
                fg="yellow",
                err=True,
            )
        self.autosign = autosign
        self._sleep = sleep
        self._clock = clock
        self._outstanding: Optional[TransactionReceipt] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: ChainClient,
        identity: Identity,
        profile: NetworkProfile,
        **kwargs,
    ) -> "Transactor":
        return cls(
            client=client,
            identity=identity,
            profile=profile,
            confirmation_timeout=settings.confirmation_timeout,
            poll_interval=settings.poll_interval,
            rpc_retries=settings.rpc_retries,
            autosign=settings.autosign,
            **kwargs,
        )

    @property
    def address(self) -> ChecksumAddress:
        return self.identity.address

    @property
    def outstanding(self) -> Optional[TransactionReceipt]:
        return self._outstanding

    @property
    def required_confirmations(self) -> int:
        return self.policy.required(self.profile)

    def _ensure_settled(self, action: str) -> None:
        if self._outstanding is not None:
            tx_hash = self._outstanding.tx_hash
            raise PendingTransactionError(
                f"Cannot {action} while transaction {tx_hash} is unconfirmed.", tx_hash=tx_hash
            )

    #
    # Reads
    #

    def read(self, operation: Callable[[], T]) -> T:
        """Runs a read against the network, retrying transient RPC failures."""
        self._ensure_settled("read remote state")
        return retry(
            operation,
            max_attempts=self.rpc_retries,
            backoff=self.backoff,
            retry_on=(RpcUnavailableError,),
            sleep=self._sleep,
        )

    def call(
        self, address: ChecksumAddress, abi: ABI, method: str, args: Sequence[Any] = ()
    ) -> Any:
        return self.read(lambda: self.client.call(address, abi, method, args))

    def storage_at(self, address: ChecksumAddress, slot: int) -> bytes:
        return self.read(lambda: self.client.get_storage_at(address, slot))

    def balance(self) -> int:
        return self.read(lambda: self.identity.read_balance(self.client))

    def encode_call(self, abi: ABI, method: str, args: Sequence[Any] = ()) -> bytes:
        return self.client.encode_call(abi, method, args)

    def check_funds(self, fatal: bool) -> Optional[LowBalanceWarning]:
        """
        Zero balance is fatal when `fatal` is set; otherwise a warning is returned.
        """
        balance = self.balance()
        click.echo(f"Account balance: {from_wei(balance, 'ether')} ETH")
        if balance > 0:
            return None
        message = f"Account {self.address} has 0 balance on {self.profile.name}."
        if fatal:
            raise InsufficientFundsError(message)
        warning = LowBalanceWarning(message + " Make sure you have ETH for gas fees!")
        click.secho(f"WARNING: {warning}", fg="yellow", err=True)
        return warning

    #
    # Writes
    #

    def submit(self, request: TransactionRequest, description: str) -> TransactionReceipt:
        """Signs and broadcasts a transaction without waiting for it."""
        self._ensure_settled("submit a new transaction")
        if not self.autosign:
            _confirm_transaction(description, _named_args(request))
        else:
            click.echo(f"\n{description}")
        try:
            receipt = self.identity.sign_and_send(self.client, request)
        except RpcUnavailableError as e:
            # the node may have accepted the broadcast before the connection dropped
            if e.tx_hash is not None:
                self._outstanding = TransactionReceipt(tx_hash=e.tx_hash)
            raise
        self._outstanding = receipt
        click.echo(f"Transaction hash: {receipt.tx_hash}")
        return receipt

    def wait(self, receipt: TransactionReceipt) -> TransactionReceipt:
        """Waits until the transaction is confirmed to the depth the policy requires."""
        try:
            confirmed = wait_for_confirmations(
                self.client,
                receipt,
                confirmations=self.required_confirmations,
                timeout=self.confirmation_timeout,
                backoff=self.backoff,
                sleep=self._sleep,
                clock=self._clock,
            )
        except DeploymentError as e:
            if isinstance(e, RevertedError) and e.tx_hash == receipt.tx_hash:
                # the transaction landed and failed; nothing is outstanding anymore
                self._outstanding = None
            elif e.tx_hash is None:
                e.tx_hash = receipt.tx_hash
            raise
        self._outstanding = None
        click.echo(f"Confirmed in block {confirmed.block_number}")
        return confirmed

    def transact(self, request: TransactionRequest, description: str) -> TransactionReceipt:
        return self.wait(self.submit(request, description))
