"""Read deployment records written by the deploy scripts.

Records follow the hardhat-deploy layout: ``<root>/<network>/<Name>.json``
holding an ``address`` and the contract ``abi``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Tuple

from web3 import Web3

from .errors import ConfigurationError, NotDeployedError

Abi = List[dict[str, Any]]


def extract_abi(data: Any, source: Path) -> Abi:
    # Some artifact JSONs wrap the ABI under an "abi" key
    if isinstance(data, dict) and isinstance(data.get("abi"), list):
        return data["abi"]
    if isinstance(data, list):
        return data
    raise ConfigurationError(
        f"Deployment record does not contain a valid ABI (expected dict with 'abi' key or list): {source}"
    )


class DeploymentRegistry:
    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    def record_path(self, name: str, network: str) -> Path:
        return self.root / network / f"{name}.json"

    def names(self, network: str) -> list[str]:
        network_dir = self.root / network
        if not network_dir.is_dir():
            return []
        return sorted(p.stem for p in network_dir.glob("*.json"))

    def resolve(self, name: str, network: str) -> Tuple[str, Abi]:
        path = self.record_path(name, network)
        if not path.is_file():
            raise NotDeployedError(name, network)

        text = path.read_text(encoding="utf-8")
        if not text.strip():
            raise ConfigurationError(f"Deployment record is empty: {path}")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Deployment record is not valid JSON: {path} - {exc}") from exc

        address = data.get("address") if isinstance(data, dict) else None
        if not address:
            raise ConfigurationError(f"Deployment record has no address: {path}")
        try:
            checksum = Web3.to_checksum_address(address)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"Deployment record has an invalid address {address!r}: {path}") from exc

        return checksum, extract_abi(data, path)
