from typing import Optional


class DeploymentError(Exception):
    """Base class for every failure surfaced by the lifecycle tooling."""

    remediation = "Inspect the error message above and retry."
    tx_hash: Optional[str] = None

    def __init__(self, message: str, remediation: Optional[str] = None):
        super().__init__(message)
        if remediation:
            self.remediation = remediation

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigurationError(DeploymentError):
    """Missing or invalid input; always raised before any network call."""

    remediation = "Check your .env file and command line options."


class MissingCredentialError(DeploymentError):
    remediation = "Set PRIVATE_KEY in your environment or .env file."


class MissingProxyAddressError(ConfigurationError):
    remediation = "Set PROXY_ADDRESS or pass --proxy-address."


class ArtifactMissingError(ConfigurationError):
    remediation = "Compile the contracts first (e.g. `npx hardhat compile` or `forge build`)."


class InvalidAddressError(ConfigurationError):
    remediation = "Provide a 20-byte hex address (0x followed by 40 hex characters)."


class NotAProxyError(ConfigurationError):
    remediation = "Make sure the address points at an EIP-1967 proxy, not an implementation."


class RpcUnavailableError(DeploymentError):
    """The RPC endpoint is unreachable or timed out; retryable."""

    remediation = "The RPC endpoint may be down; retry later or set a <NETWORK>_RPC_URL override."


class RevertedError(DeploymentError):
    """A transaction (or its gas estimation) was reverted by the contract."""

    remediation = "The contract rejected the transaction; review the arguments before resubmitting."

    def __init__(
        self, message: str, tx_hash: Optional[str] = None, remediation: Optional[str] = None
    ):
        super().__init__(message, remediation)
        self.tx_hash = tx_hash


class NonceConflictError(DeploymentError):
    """The node refused the transaction because its nonce is already taken."""

    remediation = (
        "Another transaction from this account holds the nonce; "
        "check its pending transactions on a block explorer before resubmitting."
    )


class UnauthorizedError(DeploymentError):
    remediation = "Use the private key of the contract owner."


class InsufficientFundsError(DeploymentError):
    remediation = "Fund the deployer account with native currency for gas fees."


class ConfirmationTimeoutError(DeploymentError):
    """The transaction was sent but not confirmed in time; it may still land."""

    remediation = "Monitor the transaction hash on a block explorer before resubmitting anything."

    def __init__(self, message: str, tx_hash: str, remediation: Optional[str] = None):
        super().__init__(message, remediation)
        self.tx_hash = tx_hash


class StateVerificationError(DeploymentError):
    """Observed remote state contradicts what a confirmed transaction should have produced."""

    remediation = "Inspect the contract state manually; the contract may not behave as expected."


class PendingTransactionError(DeploymentError):
    """A read or a second send was attempted while a transaction is still outstanding."""

    remediation = "Wait for the outstanding transaction to be confirmed first."

    def __init__(self, message: str, tx_hash: str, remediation: Optional[str] = None):
        super().__init__(message, remediation)
        self.tx_hash = tx_hash


#
# Warnings (collected on results and printed, never raised)
#


class DeploymentWarning(UserWarning):
    @property
    def kind(self) -> str:
        return type(self).__name__


class LowBalanceWarning(DeploymentWarning):
    pass


class ConstantMismatchWarning(DeploymentWarning):
    pass


class UpgradeVerificationWarning(DeploymentWarning):
    pass
