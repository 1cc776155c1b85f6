"""Administrative actions against the deployed HexOne contracts.

Each step declares the contracts it needs and the run-state tokens it
``requires`` from, or ``provides`` to, other steps of the same plan. Inside
``execute`` every submission goes through ``StepContext.transact``, which
blocks until the transaction is confirmed, so a later submission is never
issued before an earlier one has landed.

Already-applied policy, per step:

* ``set-deposit-fee`` and ``enable-staking`` read the current state first and
  succeed without submitting when it already matches.
* every other mutating step always submits; a remote revert (for instance an
  already registered token) fails the step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple, Type

from web3 import Web3

from .constants import BOOTSTRAP, ESCROW, PRICE_FEED_TEST, PROTOCOL, STAKING, VAULT
from .errors import ActionError, ConfigurationError, ConfirmationFailure, RemoteCallError
from .ledger import Confirmation, RemoteLedger
from .limits import check_fee_rate, check_non_negative, check_positive, parse_int
from .locator import ContractHandle, ContractLocator
from .params import ParameterSet

ESCROW_LINKED = "escrow-linked"
HEX_STAKING_POOL = "hex-staking-pool"


@dataclass
class ActionResult:
    step_id: str
    label: str
    ok: bool = False
    skipped: bool = False
    reads: Dict[str, Any] = field(default_factory=dict)
    transactions: List[str] = field(default_factory=list)
    error: Optional[ActionError] = None


@dataclass
class StepContext:
    """Everything a step may touch while it runs."""

    network: str
    params: ParameterSet
    locator: ContractLocator
    ledger: RemoteLedger
    logger: logging.Logger
    result: ActionResult

    def contract(self, name: str) -> ContractHandle:
        return self.locator.locate(name, self.network)

    def read(self, name: str, method: str, *args: Any, label: Optional[str] = None) -> Any:
        value = self.ledger.read(self.contract(name), method, args)
        self.result.reads[label or method] = value
        self.logger.info("%s.%s(%s) -> %r", name, method, _format_args(args), value)
        return value

    def transact(self, name: str, method: str, *args: Any) -> Confirmation:
        """Submit ``name.method(*args)`` and wait for its confirmation."""

        self.logger.info("submitting %s.%s(%s)", name, method, _format_args(args))
        pending = self.ledger.submit(self.contract(name), method, args)
        self.result.transactions.append(pending.tx_hash)
        self.logger.info("waiting for %s", pending.tx_hash)
        confirmation = self.ledger.confirm(pending)
        if not confirmation.ok:
            raise ConfirmationFailure(
                f"{name}.{method} {confirmation.status.value} ({pending.tx_hash})",
                tx_hash=pending.tx_hash,
                receipt=confirmation.receipt,
                reason=confirmation.reason,
            )
        self.logger.info(
            "confirmed %s in block %s", pending.tx_hash, confirmation.receipt.get("blockNumber")
        )
        return confirmation

    def skip(self, reason: str) -> None:
        self.result.skipped = True
        self.logger.info("nothing to submit: %s", reason)


def _format_args(args: Tuple[Any, ...]) -> str:
    return ", ".join(repr(arg) for arg in args)


class ActionStep:
    step_id: ClassVar[str] = ""
    label: ClassVar[str] = ""
    contracts: ClassVar[Tuple[str, ...]] = ()
    requires: ClassVar[FrozenSet[str]] = frozenset()
    provides: ClassVar[FrozenSet[str]] = frozenset()
    arguments: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "ActionStep":
        _reject_unknown(cls, args)
        return cls()

    def describe(self) -> str:
        return self.label

    def execute(self, ctx: StepContext) -> None:
        raise NotImplementedError


def _reject_unknown(cls: Type[ActionStep], args: Mapping[str, str]) -> None:
    unknown = sorted(set(args) - set(cls.arguments))
    if unknown:
        raise ConfigurationError(f"{cls.step_id} does not accept argument(s): {', '.join(unknown)}")


def _int_arg(cls: Type[ActionStep], args: Mapping[str, str], key: str, default: Optional[int] = None) -> int:
    raw = args.get(key)
    if raw is None:
        if default is None:
            raise ConfigurationError(f"{cls.step_id} requires {key}=<integer>")
        return default
    value = parse_int(raw)
    if value is None:
        raise ConfigurationError(f"{cls.step_id}: {key} must be an integer, got {raw!r}")
    return value


def _guard(problem: Optional[str]) -> None:
    if problem:
        raise ConfigurationError(problem)


def _fee_state(raw: Any) -> Tuple[int, bool]:
    """Unpack the ``fees(token)`` struct into (feeRate, enabled)."""

    if isinstance(raw, (tuple, list)) and len(raw) >= 2:
        return int(raw[0]), bool(raw[1])
    if isinstance(raw, Mapping) and "feeRate" in raw and "enabled" in raw:
        return int(raw["feeRate"]), bool(raw["enabled"])
    raise RemoteCallError(f"fees() returned an unexpected shape: {raw!r}")


class FeeInfo(ActionStep):
    step_id = "fee-info"
    label = "read hex token deposit fee"
    contracts = (PROTOCOL,)

    def execute(self, ctx: StepContext) -> None:
        ctx.read(PROTOCOL, "fees", ctx.params.require_address("hexToken"))


class SetDepositFee(ActionStep):
    """Set the hex token deposit fee rate, then enable fee collection.

    The enable submission depends on the rate submission and is only issued
    once that one is confirmed. Parts already in the requested state are not
    resubmitted; a fully applied configuration is a successful no-op.
    """

    step_id = "set-deposit-fee"
    label = "set hex token deposit fee"
    contracts = (PROTOCOL,)
    arguments = ("fee_rate",)

    def __init__(self, fee_rate: int) -> None:
        _guard(check_fee_rate(fee_rate))
        self.fee_rate = fee_rate

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "SetDepositFee":
        _reject_unknown(cls, args)
        return cls(_int_arg(cls, args, "fee_rate"))

    def describe(self) -> str:
        return f"{self.label} to {self.fee_rate}/1000"

    def execute(self, ctx: StepContext) -> None:
        token = ctx.params.require_address("hexToken")
        rate, enabled = _fee_state(ctx.read(PROTOCOL, "fees", token, label="fees.before"))
        if rate == self.fee_rate and enabled:
            ctx.skip(f"deposit fee already {rate} and enabled")
            return

        if rate != self.fee_rate:
            ctx.transact(PROTOCOL, "setDepositFee", token, self.fee_rate)
        if not enabled:
            ctx.transact(PROTOCOL, "setDepositFeeEnable", token, True)
        ctx.read(PROTOCOL, "fees", token, label="fees.after")


class RewardsPoolInfo(ActionStep):
    step_id = "rewards-pool"
    label = "read staking rewards pool"
    contracts = (STAKING,)

    def execute(self, ctx: StepContext) -> None:
        ctx.read(STAKING, "rewardsPool")


class GenerateAdditionalTokens(ActionStep):
    step_id = "generate-additional-tokens"
    label = "generate additional tokens and buy hexit for staking"
    contracts = (BOOTSTRAP, STAKING)

    def execute(self, ctx: StepContext) -> None:
        ctx.read(STAKING, "rewardsPool", label="rewardsPool.before")
        ctx.transact(BOOTSTRAP, "generateAdditionalTokens")
        ctx.read(STAKING, "rewardsPool", label="rewardsPool.after")


class EnableStaking(ActionStep):
    step_id = "enable-staking"
    label = "enable staking"
    contracts = (STAKING,)

    def execute(self, ctx: StepContext) -> None:
        if ctx.read(STAKING, "stakingEnable", label="stakingEnable.before"):
            ctx.skip("staking already enabled")
            return
        ctx.transact(STAKING, "enableStaking")
        if not ctx.read(STAKING, "stakingEnable", label="stakingEnable.after"):
            raise ConfirmationFailure("enableStaking confirmed but stakingEnable() still reads false")


class CreateHexStakingPool(ActionStep):
    step_id = "create-hex-staking-pool"
    label = "add hex token to the staking allow list"
    contracts = (STAKING,)
    provides = frozenset({HEX_STAKING_POOL})
    arguments = ("hex_dist_rate", "hexit_dist_rate")

    def __init__(self, hex_dist_rate: int = 0, hexit_dist_rate: int = 2000) -> None:
        _guard(check_non_negative("hex_dist_rate", hex_dist_rate))
        _guard(check_non_negative("hexit_dist_rate", hexit_dist_rate))
        self.hex_dist_rate = hex_dist_rate
        self.hexit_dist_rate = hexit_dist_rate

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "CreateHexStakingPool":
        _reject_unknown(cls, args)
        return cls(
            _int_arg(cls, args, "hex_dist_rate", 0),
            _int_arg(cls, args, "hexit_dist_rate", 2000),
        )

    def execute(self, ctx: StepContext) -> None:
        token = ctx.params.require_address("hexToken")
        ctx.transact(
            STAKING,
            "addAllowedTokens",
            [token],
            [(self.hex_dist_rate, self.hexit_dist_rate)],
        )


class SetPriceFeedRate(ActionStep):
    step_id = "set-price-feed-rate"
    label = "set test price feed rate"
    contracts = (PRICE_FEED_TEST,)
    arguments = ("rate",)
    default_rate: ClassVar[Optional[int]] = None

    def __init__(self, rate: int) -> None:
        _guard(check_positive("rate", rate))
        self.rate = rate

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "SetPriceFeedRate":
        _reject_unknown(cls, args)
        return cls(_int_arg(cls, args, "rate", cls.default_rate))

    def describe(self) -> str:
        return f"{self.label} to {self.rate / 10:g}%"

    def execute(self, ctx: StepContext) -> None:
        ctx.transact(PRICE_FEED_TEST, "setTestRate", self.rate)


class IncreasePriceFeedRate(SetPriceFeedRate):
    step_id = "increase-price-feed-rate"
    default_rate = 1500


class DecreasePriceFeedRate(SetPriceFeedRate):
    step_id = "decrease-price-feed-rate"
    default_rate = 800


class SetEscrowAddress(ActionStep):
    step_id = "set-escrow-address"
    label = "register escrow contract with the protocol"
    contracts = (PROTOCOL, ESCROW)
    provides = frozenset({ESCROW_LINKED})

    def execute(self, ctx: StepContext) -> None:
        escrow = ctx.contract(ESCROW)
        ctx.transact(PROTOCOL, "setEscrowContract", escrow.address)


class DepositEscrowCollateral(ActionStep):
    step_id = "deposit-escrow-collateral"
    label = "deposit escrowed hex to the protocol"
    contracts = (ESCROW,)
    requires = frozenset({ESCROW_LINKED})
    arguments = ("amount",)

    def __init__(self, amount: int) -> None:
        _guard(check_positive("amount", amount))
        self.amount = amount

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "DepositEscrowCollateral":
        _reject_unknown(cls, args)
        return cls(_int_arg(cls, args, "amount"))

    def execute(self, ctx: StepContext) -> None:
        ctx.transact(ESCROW, "depositCollateralToHexOneProtocol", self.amount)


class EscrowOverview(ActionStep):
    step_id = "escrow-overview"
    label = "read escrow overview"
    contracts = (ESCROW,)
    requires = frozenset({ESCROW_LINKED})
    arguments = ("wallet",)

    def __init__(self, wallet: Optional[str] = None) -> None:
        self.wallet = wallet

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "EscrowOverview":
        _reject_unknown(cls, args)
        return cls(args.get("wallet") or None)

    def execute(self, ctx: StepContext) -> None:
        wallet = self.wallet or ctx.params.require_address("escrowOverviewWallet")
        try:
            wallet = Web3.to_checksum_address(wallet)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid wallet address {wallet!r}") from exc
        ctx.read(ESCROW, "getOverview", wallet)


class LiquidableDeposits(ActionStep):
    step_id = "liquidable-deposits"
    label = "read liquidable vault deposits"
    contracts = (VAULT,)

    def execute(self, ctx: StepContext) -> None:
        ctx.read(VAULT, "getLiquidableDeposits")


STEP_TYPES: Dict[str, Type[ActionStep]] = {
    step.step_id: step
    for step in (
        FeeInfo,
        SetDepositFee,
        RewardsPoolInfo,
        GenerateAdditionalTokens,
        EnableStaking,
        CreateHexStakingPool,
        SetPriceFeedRate,
        IncreasePriceFeedRate,
        DecreasePriceFeedRate,
        SetEscrowAddress,
        DepositEscrowCollateral,
        EscrowOverview,
        LiquidableDeposits,
    )
}


def build_step(step_id: str, args: Optional[Mapping[str, str]] = None) -> ActionStep:
    step_type = STEP_TYPES.get(step_id)
    if step_type is None:
        raise ConfigurationError(f"Unknown step '{step_id}'; run 'list' to see available steps")
    return step_type.from_args(args or {})
