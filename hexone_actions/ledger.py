"""Remote ledger access: reads, submissions and confirmation waits.

``RemoteLedger`` is the small interface the action steps talk to.
``Web3Ledger`` implements it against a JSON-RPC node with a local signer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Sequence, Type

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    TimeExhausted,
    Web3Exception,
)

from .constants import DEFAULT_GAS_PRICE_GWEI, LOGGER_NAME
from .errors import ActionError, ConfigurationError, RemoteCallError, SubmissionError
from .locator import ContractHandle
from .settings import RunnerSettings

logger = logging.getLogger(LOGGER_NAME)


class ConfirmationStatus(str, Enum):
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    ERROR = "error"


@dataclass(frozen=True)
class PendingTx:
    tx_hash: str
    contract: str
    method: str


@dataclass(frozen=True)
class Confirmation:
    status: ConfirmationStatus
    tx_hash: str
    receipt: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED


class RemoteLedger(Protocol):
    def read(self, handle: ContractHandle, method: str, args: Sequence[Any] = ()) -> Any: ...

    def submit(self, handle: ContractHandle, method: str, args: Sequence[Any] = ()) -> PendingTx: ...

    def confirm(self, pending: PendingTx) -> Confirmation: ...


def format_receipt(receipt: Any) -> dict[str, Any]:
    if receipt is None:
        return {"status": "pending"}
    tx_hash = receipt.get("transactionHash")
    return {
        "transactionHash": Web3.to_hex(tx_hash) if tx_hash else None,
        "status": receipt.get("status"),
        "blockNumber": receipt.get("blockNumber"),
        "gasUsed": receipt.get("gasUsed"),
        "cumulativeGasUsed": receipt.get("cumulativeGasUsed"),
    }


def _revert_message(exc: Exception) -> Optional[str]:
    message = getattr(exc, "message", None) or str(exc)
    if not message or message in {
        "execution reverted",
        "execution reverted: no data",
        "('execution reverted', 'no data')",
    }:
        return None
    if "revert reason:" in message:
        return message.split("revert reason:", 1)[1].strip()
    if "execution reverted:" in message:
        return message.split("execution reverted:", 1)[1].strip()
    return message


class Web3Ledger:
    """Sign locally and submit through a web3 provider, one transaction at a time."""

    def __init__(
        self,
        w3: Web3,
        private_key: str,
        *,
        gas_limit: Optional[int] = None,
        gas_price_gwei: str = DEFAULT_GAS_PRICE_GWEI,
        priority_fee_gwei: Optional[int] = None,
        max_fee_gwei: Optional[int] = None,
        receipt_timeout: Optional[float] = None,
    ) -> None:
        try:
            self._account: LocalAccount = Account.from_key(private_key)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"Invalid signer key: {exc}") from exc
        self.w3 = w3
        self.gas_limit = gas_limit
        self.gas_price_gwei = gas_price_gwei
        self.priority_fee_gwei = priority_fee_gwei
        self.max_fee_gwei = max_fee_gwei
        self.receipt_timeout = receipt_timeout
        self._contracts: Dict[str, Contract] = {}
        self._sent: Dict[str, Dict[str, Any]] = {}
        self._last_nonce: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: RunnerSettings) -> "Web3Ledger":
        rpc_url = settings.require_rpc_url()
        w3 = Web3(Web3.HTTPProvider(rpc_url))
        try:
            chain_id = w3.eth.chain_id
        except (Web3Exception, ValueError, OSError) as exc:
            raise RemoteCallError(f"RPC endpoint {rpc_url} is unreachable: {exc}") from exc
        logger.debug("connected to chain %s via %s", chain_id, rpc_url)
        return cls(
            w3,
            settings.require_private_key(),
            gas_limit=settings.gas_limit,
            gas_price_gwei=settings.gas_price_gwei,
            priority_fee_gwei=settings.priority_fee_gwei,
            max_fee_gwei=settings.max_fee_gwei,
            receipt_timeout=settings.receipt_timeout,
        )

    @property
    def address(self) -> str:
        return self._account.address

    def _contract(self, handle: ContractHandle) -> Contract:
        contract = self._contracts.get(handle.address)
        if contract is None:
            contract = self.w3.eth.contract(address=handle.address, abi=handle.abi)
            self._contracts[handle.address] = contract
        return contract

    def _function(
        self,
        handle: ContractHandle,
        method: str,
        args: Sequence[Any],
        error: Type[ActionError],
    ) -> Any:
        try:
            fn = getattr(self._contract(handle).functions, method)
        except AttributeError as exc:
            raise error(f"{handle.name} has no function '{method}'") from exc
        # MismatchedABI / Web3ValidationError when args don't fit the recorded ABI
        try:
            return fn(*args)
        except (Web3Exception, TypeError, ValueError) as exc:
            raise error(f"{handle.name}.{method} arguments {tuple(args)!r} do not match the ABI: {exc}") from exc

    def read(self, handle: ContractHandle, method: str, args: Sequence[Any] = ()) -> Any:
        fn = self._function(handle, method, args, RemoteCallError)
        try:
            return fn.call()
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            raise RemoteCallError(f"{handle.name}.{method} reverted: {exc}") from exc
        # web3 v6 surfaces JSON-RPC error responses as plain ValueError
        except (Web3Exception, ValueError, OSError) as exc:
            raise RemoteCallError(f"{handle.name}.{method} call failed: {exc}") from exc

    def supports_eip1559(self) -> bool:
        try:
            latest = self.w3.eth.get_block("latest")
        except (Web3Exception, ValueError, OSError):
            return False
        return latest.get("baseFeePerGas") is not None

    def fee_params(self) -> Dict[str, int]:
        """EIP-1559 fees when the chain supports them, otherwise legacy gasPrice."""

        if self.supports_eip1559():
            base = int(self.w3.eth.get_block("latest")["baseFeePerGas"])
            prio = Web3.to_wei(self.priority_fee_gwei or 1, "gwei")
            max_fee = base * 2 + prio
            if self.max_fee_gwei:
                max_fee = Web3.to_wei(self.max_fee_gwei, "gwei")
            return {"maxFeePerGas": max_fee, "maxPriorityFeePerGas": prio}
        return {"gasPrice": Web3.to_wei(int(self.gas_price_gwei), "gwei")}

    def next_nonce(self) -> int:
        """Pending nonce, bumped past the last one used by this ledger."""

        pending = self.w3.eth.get_transaction_count(self.address, "pending")
        if self._last_nonce is not None and pending <= self._last_nonce:
            pending = self._last_nonce + 1
        self._last_nonce = pending
        return pending

    def submit(self, handle: ContractHandle, method: str, args: Sequence[Any] = ()) -> PendingTx:
        fn = self._function(handle, method, args, SubmissionError)
        try:
            tx_params: Dict[str, Any] = {
                "from": self.address,
                "nonce": self.next_nonce(),
                "chainId": self.w3.eth.chain_id,
                **self.fee_params(),
            }
            if self.gas_limit:
                tx_params["gas"] = self.gas_limit
            tx = fn.build_transaction(tx_params)
        except ContractLogicError as exc:
            raise SubmissionError(f"{handle.name}.{method} would revert: {_revert_message(exc) or exc}") from exc
        except (Web3Exception, ValueError, OSError) as exc:
            raise SubmissionError(f"{handle.name}.{method} could not be prepared: {exc}") from exc

        signed = self._account.sign_transaction(tx)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
        if raw_tx is None:
            raise SubmissionError("Signed transaction missing raw_transaction/rawTransaction")
        local_hash = Web3.to_hex(Web3.keccak(raw_tx))
        try:
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(raw_tx))
        except (Web3Exception, ValueError) as exc:
            if "already known" not in str(exc):
                raise SubmissionError(f"{handle.name}.{method} rejected: {exc}") from exc
            tx_hash = local_hash
        except OSError as exc:
            raise SubmissionError(f"{handle.name}.{method} could not be sent: {exc}") from exc

        self._sent[tx_hash] = tx
        return PendingTx(tx_hash=tx_hash, contract=handle.name, method=method)

    def confirm(self, pending: PendingTx) -> Confirmation:
        kwargs: Dict[str, Any] = {}
        if self.receipt_timeout is not None:
            kwargs["timeout"] = self.receipt_timeout
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(pending.tx_hash, **kwargs)
        except TimeExhausted as exc:
            return Confirmation(ConfirmationStatus.ERROR, pending.tx_hash, reason=str(exc))
        except (Web3Exception, ValueError, OSError) as exc:
            return Confirmation(ConfirmationStatus.ERROR, pending.tx_hash, reason=f"receipt lookup failed: {exc}")

        formatted = format_receipt(receipt)
        if formatted.get("status") in (1, True):
            return Confirmation(ConfirmationStatus.CONFIRMED, pending.tx_hash, formatted)
        reason = self._extract_revert_reason(self._sent.get(pending.tx_hash), formatted)
        return Confirmation(ConfirmationStatus.REVERTED, pending.tx_hash, formatted, reason)

    def _extract_revert_reason(self, tx: Optional[Dict[str, Any]], receipt: Dict[str, Any]) -> Optional[str]:
        block_number = receipt.get("blockNumber")
        if tx is None or block_number is None:
            return None

        call_tx = dict(tx)
        for key in ("nonce", "gas", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas", "chainId"):
            call_tx.pop(key, None)
        try:
            self.w3.eth.call(call_tx, block_identifier=block_number)
        except Exception as exc:  # pylint: disable=broad-except
            # expected: replaying the reverted call raises with the revert data
            return _revert_message(exc)
        return None
