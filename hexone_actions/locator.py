from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol, Tuple

from .registry import Abi


class Registry(Protocol):
    def resolve(self, name: str, network: str) -> Tuple[str, Abi]: ...


@dataclass(frozen=True)
class ContractHandle:
    """A logical contract bound to its deployed address on one network."""

    name: str
    network: str
    address: str
    abi: Abi = field(default_factory=list, repr=False, compare=False)

    def has_function(self, fn_name: str) -> bool:
        return any(
            entry.get("type") == "function" and entry.get("name") == fn_name for entry in self.abi
        )


class ContractLocator:
    """Resolve logical contract names to handles, one lookup per (name, network)."""

    def __init__(self, registry: Registry) -> None:
        self._registry = registry
        self._handles: Dict[Tuple[str, str], ContractHandle] = {}

    def locate(self, name: str, network: str) -> ContractHandle:
        key = (name, network)
        handle = self._handles.get(key)
        if handle is None:
            address, abi = self._registry.resolve(name, network)
            handle = ContractHandle(name=name, network=network, address=address, abi=abi)
            self._handles[key] = handle
        return handle
