import functools
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import requests
from eth_typing import ABI, ChecksumAddress
from web3 import Web3
from web3.exceptions import (
    ContractLogicError,
    InvalidAddress,
    ProviderConnectionError,
    TransactionNotFound,
    Web3RPCError,
)
from web3.middleware import ExtraDataToPOAMiddleware

from creator_passport.errors import (
    DeploymentError,
    InsufficientFundsError,
    InvalidAddressError,
    NonceConflictError,
    RevertedError,
    RpcUnavailableError,
)
from creator_passport.networks import NetworkProfile

RPC_REQUEST_TIMEOUT = 30  # seconds


class TxStatus(Enum):
    PENDING = "pending"
    INCLUDED = "included"
    FAILED = "failed"


class TransactionReceipt(NamedTuple):
    """Snapshot of a transaction as last observed on the network."""

    tx_hash: str
    status: TxStatus = TxStatus.PENDING
    confirmations: int = 0
    block_number: Optional[int] = None
    contract_address: Optional[ChecksumAddress] = None


class TransactionRequest(NamedTuple):
    """
    A state-changing call, still unsigned.
    `method=None` together with `bytecode` describes a contract creation.
    """

    to: Optional[ChecksumAddress]
    abi: ABI
    method: Optional[str]
    args: Sequence[Any] = ()
    bytecode: Optional[str] = None
    value: int = 0

    @property
    def is_creation(self) -> bool:
        return self.to is None


class ChainClient(ABC):
    """The JSON-RPC operations the lifecycle tooling relies on."""

    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_balance(self, address: ChecksumAddress) -> int:
        raise NotImplementedError

    @abstractmethod
    def block_number(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_storage_at(self, address: ChecksumAddress, slot: int) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def call(self, address: ChecksumAddress, abi: ABI, method: str, args: Sequence[Any]) -> Any:
        raise NotImplementedError

    @abstractmethod
    def encode_call(self, abi: ABI, method: str, args: Sequence[Any]) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def build_transaction(self, sender: ChecksumAddress, request: TransactionRequest) -> Dict:
        """Returns a complete transaction dict (nonce, gas, fees, chain id) ready for signing."""
        raise NotImplementedError

    @abstractmethod
    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        """Returns None while the transaction is not yet included."""
        raise NotImplementedError


# JSON-RPC replies that say nothing about the transaction itself: node load, rate limits,
# lagging or pruned nodes. Worth retrying with backoff.
TRANSIENT_RPC_CODES = {-32000, -32005, -32016, -32603, 429}
TRANSIENT_RPC_MESSAGES = (
    "rate limit",
    "too many requests",
    "limit exceeded",
    "header not found",
    "timeout",
    "timed out",
    "busy",
    "unavailable",
)
NONCE_CONFLICT_MESSAGES = (
    "already known",
    "nonce too low",
    "replacement transaction underpriced",
)


def _rpc_error_code(error: Web3RPCError) -> Optional[int]:
    response = getattr(error, "rpc_response", None) or {}
    code = (response.get("error") or {}).get("code")
    return code if isinstance(code, int) else None


def _translate_rpc_error(error: Web3RPCError, rpc_url: str) -> DeploymentError:
    message = str(error).lower()
    if "insufficient funds" in message:
        return InsufficientFundsError(f"RPC node rejected the transaction: {error}")
    if any(marker in message for marker in NONCE_CONFLICT_MESSAGES):
        return NonceConflictError(f"RPC node rejected the transaction: {error}")
    if "revert" in message:
        return RevertedError(f"Execution reverted: {error}")
    if _rpc_error_code(error) in TRANSIENT_RPC_CODES or any(
        marker in message for marker in TRANSIENT_RPC_MESSAGES
    ):
        return RpcUnavailableError(f"RPC endpoint {rpc_url} unavailable: {error}")
    return DeploymentError(f"RPC node rejected the request: {error}")


def _translate_errors(func):
    """Maps web3 and transport exceptions onto the tooling's error taxonomy."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except (requests.exceptions.RequestException, ProviderConnectionError) as e:
            # connection refused, timeouts and HTTP 429/5xx from the endpoint
            raise RpcUnavailableError(f"RPC endpoint {self.profile.rpc_url} unavailable: {e}")
        except ContractLogicError as e:
            raise RevertedError(f"Execution reverted: {e}")
        except InvalidAddress as e:
            raise InvalidAddressError(f"Invalid address: {e}")
        except Web3RPCError as e:
            raise _translate_rpc_error(e, self.profile.rpc_url)

    return wrapper


class Web3Client(ChainClient):
    """ChainClient backed by a web3.py HTTP provider."""

    def __init__(self, profile: NetworkProfile, w3: Optional[Web3] = None):
        self.profile = profile
        if w3 is None:
            w3 = Web3(
                Web3.HTTPProvider(profile.rpc_url, request_kwargs={"timeout": RPC_REQUEST_TIMEOUT})
            )
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3

    def _contract(self, abi: ABI, address: Optional[ChecksumAddress] = None, **kwargs):
        if address is None:
            return self.w3.eth.contract(abi=abi, **kwargs)
        return self.w3.eth.contract(address=address, abi=abi, **kwargs)

    @_translate_errors
    def chain_id(self) -> int:
        return self.w3.eth.chain_id

    @_translate_errors
    def get_balance(self, address: ChecksumAddress) -> int:
        return self.w3.eth.get_balance(address)

    @_translate_errors
    def block_number(self) -> int:
        return self.w3.eth.block_number

    @_translate_errors
    def get_storage_at(self, address: ChecksumAddress, slot: int) -> bytes:
        return bytes(self.w3.eth.get_storage_at(address, slot))

    @_translate_errors
    def call(self, address: ChecksumAddress, abi: ABI, method: str, args: Sequence[Any]) -> Any:
        contract = self._contract(abi, address)
        return contract.functions[method](*args).call()

    def encode_call(self, abi: ABI, method: str, args: Sequence[Any]) -> bytes:
        encoded = self._contract(abi).encode_abi(method, args=list(args))
        return Web3.to_bytes(hexstr=encoded)

    @_translate_errors
    def build_transaction(self, sender: ChecksumAddress, request: TransactionRequest) -> Dict:
        params = {
            "from": sender,
            "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
            "chainId": self.profile.chain_id,
            "value": request.value,
        }
        if request.is_creation:
            container = self._contract(request.abi, bytecode=request.bytecode)
            tx = container.constructor(*request.args).build_transaction(params)
        else:
            contract = self._contract(request.abi, request.to)
            tx = contract.functions[request.method](*request.args).build_transaction(params)
        tx.pop("from", None)
        return tx

    @_translate_errors
    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        tx_hash = self.w3.eth.send_raw_transaction(raw_transaction)
        return Web3.to_hex(tx_hash)

    @_translate_errors
    def get_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        status = TxStatus.INCLUDED if receipt["status"] == 1 else TxStatus.FAILED
        return TransactionReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=receipt["blockNumber"],
            contract_address=receipt.get("contractAddress"),
        )


def abi_function_names(abi: ABI) -> List[str]:
    return [entry["name"] for entry in abi if entry.get("type") == "function"]
