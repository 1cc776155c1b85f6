from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from .constants import NETWORK_ENV, PLACEHOLDER_MARKERS, PRIVATE_KEY_ENV, RPC_URL_ENV

# Map canonical env names to alternative aliases operators already have in their .env
ENV_ALIASES: Dict[str, list[str]] = {
    NETWORK_ENV: ["NETWORK", "HARDHAT_NETWORK"],
    PRIVATE_KEY_ENV: ["DEPLOYER_PRIVATE_KEY"],
    RPC_URL_ENV: ["ETH_RPC_URL"],
}


def parse_env_file(path: Path, env: Dict[str, str]) -> None:
    """Load KEY=VALUE pairs from a .env-style file into ``env``.

    Keys already present in ``env`` win, so real environment variables
    override the file. Missing files are ignored.
    """

    if not path.exists():
        return

    for key, value in dotenv_values(path).items():
        if value is None or key in env:
            continue
        env[key] = value


def load_env(path: Optional[Path] = None) -> Dict[str, str]:
    env: Dict[str, str] = dict(os.environ)
    if path is not None:
        parse_env_file(path, env)
    return env


def is_placeholder(value: str) -> bool:
    upper_value = value.upper()
    return any(marker in upper_value for marker in PLACEHOLDER_MARKERS)


def resolve_env_value(name: str, env: Mapping[str, str]) -> str | None:
    """Return the first non-placeholder value for ``name`` or one of its aliases."""

    for candidate in [name, *ENV_ALIASES.get(name, [])]:
        value = (env.get(candidate) or "").strip()
        if value and not is_placeholder(value):
            return value
    return None


def mask_secret(value: str) -> str:
    return f"{value[:6]}...{value[-4:]}" if len(value) > 12 else "***"
