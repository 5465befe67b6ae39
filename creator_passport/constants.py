from pathlib import Path

from eth_utils import to_wei

#
# Filesystem
#

DEFAULT_ARTIFACTS_DIR = Path("artifacts")
DEFAULT_REGISTRY_FILEPATH = Path("deployments") / "registry.json"

#
# Networks
#

BASE_SEPOLIA = "baseSepolia"
BASE = "base"
CELO_SEPOLIA = "celoSepolia"
HARDHAT = "hardhat"
LOCALHOST = "localhost"

DEFAULT_NETWORK = BASE_SEPOLIA

LOCAL_RPC_URL = "http://127.0.0.1:8545"
LOCAL_CHAIN_ID = 31337

# name -> (rpc url, chain id, production, local, explorer)
DEFAULT_NETWORKS = {
    BASE_SEPOLIA: ("https://sepolia.base.org", 84532, False, False, "https://sepolia.basescan.org"),
    BASE: ("https://mainnet.base.org", 8453, True, False, "https://basescan.org"),
    CELO_SEPOLIA: (
        "https://alfajores-forno.celo-testnet.org",
        44787,
        False,
        False,
        "https://alfajores.celoscan.io",
    ),
    HARDHAT: (LOCAL_RPC_URL, LOCAL_CHAIN_ID, False, True, None),
    LOCALHOST: (LOCAL_RPC_URL, LOCAL_CHAIN_ID, False, True, None),
}

RPC_URL_ENVVAR_SUFFIX = "_RPC_URL"
CHAIN_ID_ENVVAR_SUFFIX = "_CHAIN_ID"
PRODUCTION_ENVVAR_SUFFIX = "_PRODUCTION"

#
# Confirmations (blocks observed on top of the inclusion block)
#

PRODUCTION_CONFIRMATIONS = 3
TESTNET_CONFIRMATIONS = 1
LOCAL_CONFIRMATIONS = 0

DEFAULT_CONFIRMATION_TIMEOUT = 300  # seconds
DEFAULT_POLL_INTERVAL = 2.0  # seconds
MAX_POLL_INTERVAL = 15.0  # seconds
DEFAULT_RPC_RETRIES = 3

#
# Contracts
#

PASSPORT_CONTRACT = "CreatorPassport"
UPGRADEABLE_PASSPORT_CONTRACT = "CreatorPassportUpgradeable"
PROXY_CONTRACT = "ERC1967Proxy"

# Values baked into the contract; checked after every deployment
OPERATIONS_ADDRESS = "0x7eB8F203167dF3bC14D59536E671528dd97FB72a"
OPERATIONS_FEE = to_wei("0.00025", "ether")

# EIP1967 Implementation slot - https://eips.ethereum.org/EIPS/eip-1967#logic-contract-address
EIP1967_IMPLEMENTATION_SLOT = 0x360894A13BA1A3210667C828492DB98DCA3E2076CC3735A920A3CA505D382BBC

INITIALIZER = "initialize"
