import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from creator_passport.constants import (
    DEFAULT_ARTIFACTS_DIR,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_NETWORK,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REGISTRY_FILEPATH,
    DEFAULT_RPC_RETRIES,
)
from creator_passport.errors import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}


def _get(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_number(environ: Mapping[str, str], key: str, default, cast):
    raw = _get(environ, key)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{key}={raw!r} is not a valid number.")
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {raw}.")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Everything a single invocation needs, resolved once from the environment.
    Components receive this object explicitly; nothing reads os.environ behind its back.
    """

    network: str = DEFAULT_NETWORK
    private_key: Optional[str] = field(default=None, repr=False)
    proxy_address: Optional[str] = None
    contract_address: Optional[str] = None
    admin_address: Optional[str] = None
    artifacts_dir: Path = DEFAULT_ARTIFACTS_DIR
    registry_filepath: Path = DEFAULT_REGISTRY_FILEPATH
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    rpc_retries: int = DEFAULT_RPC_RETRIES
    autosign: bool = False
    # snapshot of the environment, used for per-network RPC overrides
    environ: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = dict(os.environ if environ is None else environ)
        return cls(
            network=_get(environ, "NETWORK") or DEFAULT_NETWORK,
            private_key=_get(environ, "PRIVATE_KEY"),
            proxy_address=_get(environ, "PROXY_ADDRESS"),
            contract_address=_get(environ, "PASSPORT_CONTRACT_ADDRESS"),
            admin_address=_get(environ, "ADMIN_ADDRESS"),
            artifacts_dir=Path(_get(environ, "ARTIFACTS_DIR") or DEFAULT_ARTIFACTS_DIR),
            registry_filepath=Path(
                _get(environ, "REGISTRY_FILEPATH") or DEFAULT_REGISTRY_FILEPATH
            ),
            confirmation_timeout=_get_number(
                environ, "CONFIRMATION_TIMEOUT", DEFAULT_CONFIRMATION_TIMEOUT, float
            ),
            poll_interval=_get_number(environ, "POLL_INTERVAL", DEFAULT_POLL_INTERVAL, float),
            rpc_retries=_get_number(environ, "RPC_RETRIES", DEFAULT_RPC_RETRIES, int),
            autosign=(_get(environ, "AUTOSIGN") or "").lower() in _TRUTHY,
            environ=MappingProxyType(environ),
        )

    def with_overrides(self, **overrides) -> "Settings":
        """Returns a copy with every non-None override applied."""
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **overrides)
