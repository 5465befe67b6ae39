import json
from typing import Any, Dict, List, Optional

import pytest
from eth_account import Account
from eth_utils import keccak, to_checksum_address
from web3 import Web3

from creator_passport.artifacts import ContractArtifact
from creator_passport.client import ChainClient, TransactionReceipt, TxStatus
from creator_passport.constants import (
    OPERATIONS_ADDRESS,
    OPERATIONS_FEE,
    PASSPORT_CONTRACT,
    PROXY_CONTRACT,
    UPGRADEABLE_PASSPORT_CONTRACT,
)
from creator_passport.contracts import PASSPORT_ABI
from creator_passport.errors import RevertedError, RpcUnavailableError
from creator_passport.networks import resolve_network
from creator_passport.signer import Identity
from creator_passport.transactor import Transactor

# hardhat's first two development keys
OWNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
STRANGER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

TARGET_ADDRESS = "0x7d85fcbb505d48e6176483733b62b51704e0bf95"

PASSPORT_BYTECODE = "0x6001"
UPGRADEABLE_BYTECODE = "0x6002"
PROXY_BYTECODE = "0x6003"

PROXY_ABI = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "_data", "type": "bytes"},
        ],
        "stateMutability": "payable",
    }
]

ONE_ETHER = 10**18


class FakePassport:
    """Contract state of a CreatorPassport (possibly living in a proxy's storage)."""

    def __init__(self, owner: Optional[str], operations_address: str, operations_fee: int):
        self.owner = owner
        self.admins = set()
        self.operations_address = operations_address
        self.operations_fee = operations_fee
        self.implementation: Optional[str] = None


class FakeChain(ChainClient):
    """
    An in-memory stand-in for a JSON-RPC node.

    Transactions are executed when broadcast; their receipts show up one block later.
    Every get_receipt call mines one block.
    """

    def __init__(self, chain_id: int = 84532):
        self._chain_id = chain_id
        self.block = 100
        self.balances: Dict[str, int] = {}
        self.default_balance = ONE_ETHER
        self.contracts: Dict[str, FakePassport] = {}
        self.nonces: Dict[str, int] = {}
        self.receipts: Dict[str, TransactionReceipt] = {}
        self.sent: List[Any] = []  # (sender, request)
        self.rpc_calls: List[str] = []
        self._prepared: Dict[str, Any] = {}

        # knobs for failure injection
        self.unavailable_calls = 0
        self.never_include = False
        self.ignore_upgrades = False
        self.ignore_admin_grants = False
        self.operations_address = OPERATIONS_ADDRESS
        self.operations_fee = OPERATIONS_FEE

    def _rpc(self, name: str) -> None:
        self.rpc_calls.append(name)
        if self.unavailable_calls > 0:
            self.unavailable_calls -= 1
            raise RpcUnavailableError("connection refused")

    # reads

    def chain_id(self) -> int:
        self._rpc("eth_chainId")
        return self._chain_id

    def get_balance(self, address) -> int:
        self._rpc("eth_getBalance")
        return self.balances.get(address, self.default_balance)

    def block_number(self) -> int:
        self._rpc("eth_blockNumber")
        return self.block

    def get_storage_at(self, address, slot) -> bytes:
        self._rpc("eth_getStorageAt")
        contract = self.contracts.get(address)
        if contract is None or contract.implementation is None:
            return b"\x00" * 32
        return b"\x00" * 12 + bytes.fromhex(contract.implementation[2:])

    def call(self, address, abi, method, args) -> Any:
        self._rpc("eth_call")
        contract = self.contracts.get(address)
        if contract is None:
            raise RevertedError(f"Execution reverted: no contract at {address}")
        if method == "owner":
            return contract.owner
        if method == "admins":
            return args[0] in contract.admins
        if method == "OPERATIONS_ADDRESS":
            return contract.operations_address
        if method == "OPERATIONS_FEE":
            return contract.operations_fee
        raise RevertedError(f"Execution reverted: unknown method {method}")

    def encode_call(self, abi, method, args) -> bytes:
        return json.dumps([method, list(args)]).encode()

    # writes

    def build_transaction(self, sender, request) -> Dict:
        self._rpc("eth_estimateGas")
        nonce = self.nonces.get(sender, 0)
        self._prepared[sender] = request
        tx = {
            "nonce": nonce,
            "gas": 3_000_000,
            "gasPrice": 1_000_000_000,
            "chainId": self._chain_id,
            "value": request.value,
            "data": "0x",
        }
        if not request.is_creation:
            tx["to"] = request.to
        return tx

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        self._rpc("eth_sendRawTransaction")
        sender = Account.recover_transaction(raw_transaction)
        request = self._prepared.pop(sender)
        nonce = self.nonces.get(sender, 0)
        self.nonces[sender] = nonce + 1
        tx_hash = Web3.to_hex(keccak(raw_transaction))
        self.sent.append((sender, request))

        contract_address = None
        try:
            if request.is_creation:
                contract_address = self._create(sender, nonce, request)
            else:
                self._transact(sender, request)
            status = TxStatus.INCLUDED
        except RevertedError:
            status = TxStatus.FAILED

        self.receipts[tx_hash] = TransactionReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=self.block + 1,
            contract_address=contract_address,
        )
        return tx_hash

    def get_receipt(self, tx_hash) -> Optional[TransactionReceipt]:
        self._rpc("eth_getTransactionReceipt")
        self.block += 1
        receipt = self.receipts.get(tx_hash)
        if self.never_include or receipt is None or receipt.block_number > self.block:
            return None
        return receipt

    # contract semantics

    def _create(self, sender: str, nonce: int, request) -> str:
        address = to_checksum_address(keccak(text=f"{sender}:{nonce}")[-20:])
        if request.bytecode == PROXY_BYTECODE:
            implementation, data = request.args
            if implementation not in self.contracts:
                raise RevertedError("ERC1967InvalidImplementation")
            contract = FakePassport(None, self.operations_address, self.operations_fee)
            contract.implementation = implementation
            if data:
                method, args = json.loads(bytes(data).decode())
                assert method == "initialize"
                contract.owner = to_checksum_address(args[0])
        else:
            owner = sender if request.bytecode == PASSPORT_BYTECODE else None
            contract = FakePassport(owner, self.operations_address, self.operations_fee)
        self.contracts[address] = contract
        return address

    def _transact(self, sender: str, request) -> None:
        contract = self.contracts.get(request.to)
        if contract is None:
            raise RevertedError("no contract")
        if contract.owner != sender:
            raise RevertedError("OwnableUnauthorizedAccount")
        if request.method == "addAdmin":
            if not self.ignore_admin_grants:
                contract.admins.add(to_checksum_address(request.args[0]))
        elif request.method in ("upgradeToAndCall", "upgradeTo"):
            if contract.implementation is None:
                raise RevertedError("UUPSUnauthorizedCallContext")
            if not self.ignore_upgrades:
                contract.implementation = to_checksum_address(request.args[0])
        else:
            raise RevertedError(f"unknown method {request.method}")


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _artifact(name, bytecode, abi=None):
    return ContractArtifact(name=name, abi=abi or PASSPORT_ABI, bytecode=bytecode)


# Fixtures


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def owner():
    return Identity.from_private_key(OWNER_KEY)


@pytest.fixture
def stranger():
    return Identity.from_private_key(STRANGER_KEY)


@pytest.fixture
def profile():
    return resolve_network("baseSepolia", environ={})


@pytest.fixture
def production_profile():
    return resolve_network("base", environ={})


@pytest.fixture
def make_transactor(chain, clock, profile):
    def _make(identity, network_profile=None, **kwargs):
        options = dict(
            confirmation_timeout=60,
            poll_interval=1.0,
            rpc_retries=3,
            autosign=True,
            sleep=clock.sleep,
            clock=clock,
        )
        options.update(kwargs)
        return Transactor(
            client=chain,
            identity=identity,
            profile=network_profile or profile,
            **options,
        )

    return _make


@pytest.fixture
def transactor(make_transactor, owner):
    return make_transactor(owner)


@pytest.fixture
def passport_artifact():
    return _artifact(PASSPORT_CONTRACT, PASSPORT_BYTECODE)


@pytest.fixture
def upgradeable_artifact():
    return _artifact(UPGRADEABLE_PASSPORT_CONTRACT, UPGRADEABLE_BYTECODE)


@pytest.fixture
def proxy_artifact():
    return _artifact(PROXY_CONTRACT, PROXY_BYTECODE, abi=PROXY_ABI)


@pytest.fixture
def write_artifacts(tmp_path):
    """Writes hardhat-style artifacts for the fake bytecodes."""

    def _write(root=None):
        root = root or tmp_path / "artifacts"
        layout = [
            (
                f"contracts/{PASSPORT_CONTRACT}.sol",
                PASSPORT_CONTRACT,
                PASSPORT_BYTECODE,
                PASSPORT_ABI,
            ),
            (
                f"contracts/{UPGRADEABLE_PASSPORT_CONTRACT}.sol",
                UPGRADEABLE_PASSPORT_CONTRACT,
                UPGRADEABLE_BYTECODE,
                PASSPORT_ABI,
            ),
            (
                f"@openzeppelin/contracts/proxy/ERC1967/{PROXY_CONTRACT}.sol",
                PROXY_CONTRACT,
                PROXY_BYTECODE,
                PROXY_ABI,
            ),
        ]
        for directory, name, bytecode, abi in layout:
            path = root / directory
            path.mkdir(parents=True, exist_ok=True)
            (path / f"{name}.json").write_text(
                json.dumps({"contractName": name, "abi": abi, "bytecode": bytecode})
            )
        return root

    return _write
