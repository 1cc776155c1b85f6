from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from hexone_actions.errors import RemoteCallError  # noqa: E402
from hexone_actions.ledger import Confirmation, ConfirmationStatus, PendingTx  # noqa: E402
from hexone_actions.locator import ContractHandle, ContractLocator  # noqa: E402
from hexone_actions.params import ParameterTable  # noqa: E402
from hexone_actions.registry import DeploymentRegistry  # noqa: E402
from hexone_actions.sequencer import ActionSequencer  # noqa: E402

HEX_TOKEN = "0xEb06b60E0b3A421a7100A3b09fd25DE119831694"

DEPLOYED: Dict[str, str] = {
    "HexOneProtocol": "0x1111111111111111111111111111111111111111",
    "HexOneStaking": "0x2222222222222222222222222222222222222222",
    "HexOneBootstrap": "0x3333333333333333333333333333333333333333",
    "HexOnePriceFeedTest": "0x4444444444444444444444444444444444444444",
    "HexOneEscrow": "0x5555555555555555555555555555555555555555",
    "HexOneVault": "0x6666666666666666666666666666666666666666",
}


def _abi(*names: str) -> List[Dict[str, Any]]:
    return [{"type": "function", "name": name, "inputs": [], "outputs": []} for name in names]


class FakeLedger:
    """In-memory ledger: reads come from ``state``, confirmations apply ``effects``."""

    def __init__(
        self,
        state: Optional[Dict[Tuple[Any, ...], Any]] = None,
        effects: Optional[Dict[Tuple[str, str], Callable[["FakeLedger", Tuple[Any, ...]], None]]] = None,
        reverts: Sequence[Tuple[str, str]] = (),
    ) -> None:
        self.state: Dict[Tuple[Any, ...], Any] = dict(state or {})
        self.effects = dict(effects or {})
        self.reverts = set(reverts)
        self.calls: List[Tuple[str, str, str]] = []
        self.submissions: List[Tuple[str, str, Tuple[Any, ...]]] = []
        self._pending: Dict[str, Tuple[str, str, Tuple[Any, ...]]] = {}

    def read(self, handle: ContractHandle, method: str, args: Sequence[Any] = ()) -> Any:
        self.calls.append(("read", handle.name, method))
        key = (handle.name, method, tuple(args))
        if key in self.state:
            return self.state[key]
        if (handle.name, method) in self.state:
            return self.state[(handle.name, method)]
        raise RemoteCallError(f"{handle.name}.{method} reverted")

    def submit(self, handle: ContractHandle, method: str, args: Sequence[Any] = ()) -> PendingTx:
        self.calls.append(("submit", handle.name, method))
        tx_hash = f"0x{len(self.submissions) + 1:064x}"
        self.submissions.append((handle.name, method, tuple(args)))
        self._pending[tx_hash] = (handle.name, method, tuple(args))
        return PendingTx(tx_hash=tx_hash, contract=handle.name, method=method)

    def confirm(self, pending: PendingTx) -> Confirmation:
        self.calls.append(("confirm", pending.contract, pending.method))
        name, method, args = self._pending[pending.tx_hash]
        receipt = {"transactionHash": pending.tx_hash, "blockNumber": len(self.calls)}
        if (name, method) in self.reverts:
            receipt["status"] = 0
            return Confirmation(ConfirmationStatus.REVERTED, pending.tx_hash, receipt, "execution reverted")
        effect = self.effects.get((name, method))
        if effect is not None:
            effect(self, args)
        receipt["status"] = 1
        return Confirmation(ConfirmationStatus.CONFIRMED, pending.tx_hash, receipt)

    @property
    def submitted_methods(self) -> List[str]:
        return [method for _, method, _ in self.submissions]


def write_deployments(root: Path, network: str = "fuji", names: Optional[Sequence[str]] = None) -> Path:
    network_dir = root / network
    network_dir.mkdir(parents=True, exist_ok=True)
    for name in names or DEPLOYED:
        record = {"address": DEPLOYED[name], "abi": _abi("owner")}
        (network_dir / f"{name}.json").write_text(json.dumps(record), encoding="utf-8")
    return root


@pytest.fixture()
def deployments_dir(tmp_path: Path) -> Path:
    return write_deployments(tmp_path / "deployments")


@pytest.fixture()
def locator(deployments_dir: Path) -> ContractLocator:
    return ContractLocator(DeploymentRegistry(deployments_dir))


@pytest.fixture()
def make_sequencer(locator: ContractLocator) -> Callable[..., ActionSequencer]:
    def _make(steps, ledger, network: str = "fuji") -> ActionSequencer:
        return ActionSequencer(
            steps,
            network=network,
            params=ParameterTable.default().resolve(network),
            locator=locator,
            ledger=ledger,
            logger=logging.getLogger("hexone.actions.tests"),
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_runner_logger():
    yield
    logger = logging.getLogger("hexone.actions")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
