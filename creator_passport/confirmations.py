import time
from typing import Callable, NamedTuple, Optional

import click

from creator_passport.client import ChainClient, TransactionReceipt, TxStatus
from creator_passport.constants import (
    LOCAL_CONFIRMATIONS,
    PRODUCTION_CONFIRMATIONS,
    TESTNET_CONFIRMATIONS,
)
from creator_passport.errors import (
    ConfirmationTimeoutError,
    RevertedError,
    RpcUnavailableError,
)
from creator_passport.networks import NetworkProfile
from creator_passport.retry import Backoff, RetryExhausted, poll_until


class ConfirmationPolicy(NamedTuple):
    """Number of blocks to observe on top of the inclusion block, per class of network."""

    production: int = PRODUCTION_CONFIRMATIONS
    testnet: int = TESTNET_CONFIRMATIONS
    local: int = LOCAL_CONFIRMATIONS

    def required(self, profile: NetworkProfile) -> int:
        if profile.is_local:
            return self.local
        if profile.is_production:
            return self.production
        return self.testnet


def _observe(client: ChainClient, tx_hash: str, confirmations: int) -> Optional[TransactionReceipt]:
    """Returns the receipt once it is deep enough, otherwise None."""
    receipt = client.get_receipt(tx_hash)
    if receipt is None:
        return None
    if receipt.status is TxStatus.FAILED:
        # included but reverted; no amount of waiting changes that
        raise RevertedError(f"Transaction {tx_hash} reverted.", tx_hash=tx_hash)
    depth = max(client.block_number() - receipt.block_number, 0)
    if depth < confirmations:
        return None
    return receipt._replace(confirmations=depth)


def wait_for_confirmations(
    client: ChainClient,
    receipt: TransactionReceipt,
    confirmations: int,
    timeout: float,
    backoff: Backoff,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> TransactionReceipt:
    """
    Polls until the transaction is included and buried under `confirmations` blocks.

    Transient RPC failures are tolerated while polling. When the time budget runs out a
    ConfirmationTimeoutError is raised; the transaction itself stays outstanding on the network.
    """
    tx_hash = receipt.tx_hash
    click.echo(f"Waiting for {tx_hash} ({confirmations} confirmation(s), timeout {timeout:g}s)...")
    try:
        return poll_until(
            lambda: _observe(client, tx_hash, confirmations),
            backoff=backoff,
            timeout=timeout,
            tolerate=(RpcUnavailableError,),
            sleep=sleep,
            clock=clock,
        )
    except RetryExhausted as e:
        detail = f" Last RPC error: {e.last_error}" if e.last_error else ""
        raise ConfirmationTimeoutError(
            f"Transaction {tx_hash} was not confirmed within {timeout:g}s "
            f"({e.attempts} polls).{detail}",
            tx_hash=tx_hash,
        )
    except KeyboardInterrupt:
        click.secho(
            f"\nInterrupted while waiting; transaction {tx_hash} is still outstanding "
            "and may be included later.",
            fg="red",
            err=True,
        )
        raise
