import re
from typing import Mapping, NamedTuple, Optional

from creator_passport.constants import (
    CHAIN_ID_ENVVAR_SUFFIX,
    DEFAULT_NETWORKS,
    PRODUCTION_ENVVAR_SUFFIX,
    RPC_URL_ENVVAR_SUFFIX,
)
from creator_passport.errors import ConfigurationError

_FALSY = {"0", "false", "no", "off"}


class NetworkProfile(NamedTuple):
    """Connection parameters for a single logical network."""

    name: str
    rpc_url: str
    chain_id: int
    is_production: bool
    is_local: bool = False
    explorer_url: Optional[str] = None

    def address_url(self, address: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/address/{address}"

    def transaction_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/tx/{tx_hash}"


def envvar_prefix(name: str) -> str:
    """baseSepolia -> BASE_SEPOLIA"""
    snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name)
    return re.sub(r"[^A-Za-z0-9]+", "_", snake).upper()


def rpc_url_envvar(name: str) -> str:
    return envvar_prefix(name) + RPC_URL_ENVVAR_SUFFIX


def _custom_network(name: str, rpc_url: str, environ: Mapping[str, str]) -> NetworkProfile:
    prefix = envvar_prefix(name)
    chain_id_envvar = prefix + CHAIN_ID_ENVVAR_SUFFIX
    raw_chain_id = environ.get(chain_id_envvar)
    if not raw_chain_id:
        raise ConfigurationError(
            f"Unknown network '{name}': {chain_id_envvar} must be set alongside "
            f"{rpc_url_envvar(name)}."
        )
    try:
        chain_id = int(raw_chain_id, 0)
    except ValueError:
        raise ConfigurationError(f"{chain_id_envvar}={raw_chain_id!r} is not a valid chain id.")

    # unknown networks are treated as production unless stated otherwise
    production = environ.get(prefix + PRODUCTION_ENVVAR_SUFFIX, "true").strip().lower()
    return NetworkProfile(
        name=name,
        rpc_url=rpc_url,
        chain_id=chain_id,
        is_production=production not in _FALSY,
    )


def resolve_network(name: str, environ: Mapping[str, str]) -> NetworkProfile:
    """
    Resolves a network name into a NetworkProfile.
    An RPC URL override in the environment takes precedence over the built-in defaults.
    """
    if not name:
        raise ConfigurationError(
            "No network selected.", remediation="Set NETWORK or pass --network."
        )

    override = environ.get(rpc_url_envvar(name))
    default = DEFAULT_NETWORKS.get(name)
    if default is None:
        if not override:
            supported = ", ".join(sorted(DEFAULT_NETWORKS))
            raise ConfigurationError(
                f"Unrecognized network '{name}' (supported: {supported}).",
                remediation=f"Pick a supported network or set {rpc_url_envvar(name)}.",
            )
        return _custom_network(name, override, environ)

    rpc_url, chain_id, production, local, explorer = default
    return NetworkProfile(
        name=name,
        rpc_url=override or rpc_url,
        chain_id=chain_id,
        is_production=production,
        is_local=local,
        explorer_url=explorer,
    )
