"""Runtime settings resolved once from the environment and ``.env``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .constants import (
    DEFAULT_DEPLOYMENTS_DIR,
    DEFAULT_GAS_PRICE_GWEI,
    DEPLOYMENTS_DIR_ENV,
    GAS_LIMIT_ENV,
    GAS_PRICE_GWEI_ENV,
    MAX_FEE_GWEI_ENV,
    NETWORK_ENV,
    PRIORITY_FEE_GWEI_ENV,
    PRIVATE_KEY_ENV,
    RECEIPT_TIMEOUT_ENV,
    RPC_URL_ENV,
)
from .env_utils import resolve_env_value
from .errors import ConfigurationError


@dataclass(frozen=True)
class RunnerSettings:
    network: str
    rpc_url: Optional[str]
    private_key: Optional[str]
    deployments_dir: Path
    gas_limit: Optional[int] = None
    gas_price_gwei: str = DEFAULT_GAS_PRICE_GWEI
    priority_fee_gwei: Optional[int] = None
    max_fee_gwei: Optional[int] = None
    receipt_timeout: Optional[float] = None

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise ConfigurationError(
                f"No RPC URL for network '{self.network}'; set {network_rpc_env(self.network)} or {RPC_URL_ENV}"
            )
        return self.rpc_url

    def require_private_key(self) -> str:
        if not self.private_key:
            raise ConfigurationError(f"No signer key; set {PRIVATE_KEY_ENV}")
        return self.private_key


def network_rpc_env(network: str) -> str:
    return f"{network.upper().replace('-', '_')}_RPC_URL"


def _optional_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = resolve_env_value(name, env)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def load_settings(env: Mapping[str, str], network: Optional[str] = None) -> RunnerSettings:
    """Build settings from ``env``; an explicit ``network`` overrides the env value."""

    active = (network or resolve_env_value(NETWORK_ENV, env) or "").strip()
    if not active:
        raise ConfigurationError(f"No active network; pass --network or set {NETWORK_ENV}")

    rpc_url = resolve_env_value(network_rpc_env(active), env) or resolve_env_value(RPC_URL_ENV, env)
    deployments = resolve_env_value(DEPLOYMENTS_DIR_ENV, env)

    timeout_raw = resolve_env_value(RECEIPT_TIMEOUT_ENV, env)
    try:
        receipt_timeout = float(timeout_raw) if timeout_raw else None
    except ValueError as exc:
        raise ConfigurationError(f"{RECEIPT_TIMEOUT_ENV} must be a number, got {timeout_raw!r}") from exc

    return RunnerSettings(
        network=active,
        rpc_url=rpc_url,
        private_key=resolve_env_value(PRIVATE_KEY_ENV, env),
        deployments_dir=Path(deployments).expanduser() if deployments else DEFAULT_DEPLOYMENTS_DIR,
        gas_limit=_optional_int(env, GAS_LIMIT_ENV),
        gas_price_gwei=resolve_env_value(GAS_PRICE_GWEI_ENV, env) or DEFAULT_GAS_PRICE_GWEI,
        priority_fee_gwei=_optional_int(env, PRIORITY_FEE_GWEI_ENV),
        max_fee_gwei=_optional_int(env, MAX_FEE_GWEI_ENV),
        receipt_timeout=receipt_timeout,
    )
