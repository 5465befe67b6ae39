from abc import ABC, abstractmethod
from typing import Any, Optional

from eth_typing import ABI, ChecksumAddress
from eth_utils import is_address, to_checksum_address

from creator_passport.artifacts import ContractArtifact
from creator_passport.client import TransactionReceipt, TransactionRequest, abi_function_names
from creator_passport.constants import EIP1967_IMPLEMENTATION_SLOT
from creator_passport.errors import InvalidAddressError
from creator_passport.transactor import Transactor


def _fn(name, inputs=(), outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t, "internalType": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t, "internalType": t} for n, t in outputs],
        "stateMutability": mutability,
    }


# The subset of the CreatorPassport interface the lifecycle tooling talks to;
# enough to administer an already deployed contract without compiled artifacts.
PASSPORT_ABI: ABI = [
    _fn("owner", outputs=[("", "address")]),
    _fn("admins", inputs=[("", "address")], outputs=[("", "bool")]),
    _fn("addAdmin", inputs=[("admin", "address")], mutability="nonpayable"),
    _fn("OPERATIONS_ADDRESS", outputs=[("", "address")]),
    _fn("OPERATIONS_FEE", outputs=[("", "uint256")]),
    _fn("initialize", inputs=[("initialOwner", "address")], mutability="nonpayable"),
    _fn(
        "upgradeToAndCall",
        inputs=[("newImplementation", "address"), ("data", "bytes")],
        mutability="payable",
    ),
]


def checksum_address(address: Optional[str], label: str = "address") -> ChecksumAddress:
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid {label}: {address!r}")
    return to_checksum_address(address)


#
# Roles
#


class Deployable(ABC):
    @abstractmethod
    def deploy(self, *args) -> TransactionReceipt:
        """Submits the contract creation transaction; does not wait for it."""
        raise NotImplementedError


class FeeConfigured(ABC):
    @abstractmethod
    def operations_address(self) -> ChecksumAddress:
        raise NotImplementedError

    @abstractmethod
    def operations_fee(self) -> int:
        raise NotImplementedError


class AdminManageable(ABC):
    @abstractmethod
    def owner(self) -> ChecksumAddress:
        raise NotImplementedError

    @abstractmethod
    def is_admin(self, address: ChecksumAddress) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add_admin(self, address: ChecksumAddress) -> TransactionReceipt:
        raise NotImplementedError


class Upgradeable(ABC):
    @abstractmethod
    def implementation_address(self) -> Optional[ChecksumAddress]:
        """Current implementation behind the proxy, or None if the slot is empty."""
        raise NotImplementedError

    @abstractmethod
    def upgrade_to(self, implementation: ChecksumAddress, data: bytes = b"") -> TransactionReceipt:
        raise NotImplementedError


#
# Remote handles
#


class ContractHandle:
    """
    A deployed contract bound to a transactor.
    Reads go through the transactor's stale-read guard; sends only submit.
    """

    def __init__(self, transactor: Transactor, address: str, abi: ABI, name: str = "Contract"):
        self.transactor = transactor
        self.address = checksum_address(address, label=f"{name} address")
        self.abi = abi
        self.name = name

    def __repr__(self) -> str:
        return f"{self.name}[{self.address}]"

    def has_method(self, method: str) -> bool:
        return method in abi_function_names(self.abi)

    def call(self, method: str, *args) -> Any:
        return self.transactor.call(self.address, self.abi, method, args)

    def send(self, method: str, *args, value: int = 0) -> TransactionReceipt:
        request = TransactionRequest(
            to=self.address, abi=self.abi, method=method, args=args, value=value
        )
        return self.transactor.submit(request, description=f"Transacting {self}.{method}")


class ContractFactory(Deployable):
    """Creates new instances of a compiled contract."""

    def __init__(self, transactor: Transactor, artifact: ContractArtifact):
        self.transactor = transactor
        self.artifact = artifact

    def deploy(self, *args) -> TransactionReceipt:
        request = TransactionRequest(
            to=None,
            abi=self.artifact.abi,
            method=None,
            args=args,
            bytecode=self.artifact.bytecode,
        )
        return self.transactor.submit(request, description=f"Deploying {self.artifact.name}")

    def encode_initializer(self, method: str, *args) -> bytes:
        return self.transactor.encode_call(self.artifact.abi, method, args)


class PassportContract(ContractHandle, FeeConfigured, AdminManageable, Upgradeable):
    """CreatorPassport, either deployed directly or behind an ERC1967 proxy."""

    def __init__(self, transactor: Transactor, address: str, abi: Optional[ABI] = None):
        super().__init__(transactor, address, abi or PASSPORT_ABI, name="CreatorPassport")

    def operations_address(self) -> ChecksumAddress:
        return to_checksum_address(self.call("OPERATIONS_ADDRESS"))

    def operations_fee(self) -> int:
        return int(self.call("OPERATIONS_FEE"))

    def owner(self) -> ChecksumAddress:
        return to_checksum_address(self.call("owner"))

    def is_admin(self, address: ChecksumAddress) -> bool:
        return bool(self.call("admins", address))

    def add_admin(self, address: ChecksumAddress) -> TransactionReceipt:
        return self.send("addAdmin", address)

    def implementation_address(self) -> Optional[ChecksumAddress]:
        raw = self.transactor.storage_at(self.address, EIP1967_IMPLEMENTATION_SLOT)
        raw = bytes(raw).rjust(32, b"\x00")
        if not any(raw):
            return None
        return to_checksum_address(raw[-20:])

    def upgrade_to(self, implementation: ChecksumAddress, data: bytes = b"") -> TransactionReceipt:
        # UUPS (OpenZeppelin 5) only exposes upgradeToAndCall; older versions have upgradeTo
        if not self.has_method("upgradeToAndCall") and self.has_method("upgradeTo"):
            return self.send("upgradeTo", implementation)
        return self.send("upgradeToAndCall", implementation, data)
