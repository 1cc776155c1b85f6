from __future__ import annotations

import pytest

from hexone_actions.errors import ConfigurationError, ConfirmationFailure, RemoteCallError
from hexone_actions.sequencer import RunState
from hexone_actions.steps import (
    STEP_TYPES,
    CreateHexStakingPool,
    DecreasePriceFeedRate,
    EnableStaking,
    EscrowOverview,
    IncreasePriceFeedRate,
    SetDepositFee,
    build_step,
)

from conftest import DEPLOYED, HEX_TOKEN, FakeLedger, write_deployments

FEES = ("HexOneProtocol", "fees", (HEX_TOKEN,))


def _fee_ledger(rate: int, enabled: bool) -> FakeLedger:
    def set_rate(ledger, args):
        ledger.state[FEES] = (args[1], ledger.state[FEES][1])

    def set_enabled(ledger, args):
        ledger.state[FEES] = (ledger.state[FEES][0], args[1])

    return FakeLedger(
        state={FEES: (rate, enabled)},
        effects={
            ("HexOneProtocol", "setDepositFee"): set_rate,
            ("HexOneProtocol", "setDepositFeeEnable"): set_enabled,
        },
    )


def _staking_ledger(enabled: bool) -> FakeLedger:
    def enable(ledger, args):
        ledger.state[("HexOneStaking", "stakingEnable")] = True

    return FakeLedger(
        state={("HexOneStaking", "stakingEnable"): enabled},
        effects={("HexOneStaking", "enableStaking"): enable},
    )


def test_enable_staking_submits_once_and_reports_new_state(make_sequencer):
    ledger = _staking_ledger(False)

    report = make_sequencer([EnableStaking()], ledger).run()

    assert report.ok
    assert ledger.submitted_methods == ["enableStaking"]
    assert ledger.calls == [
        ("read", "HexOneStaking", "stakingEnable"),
        ("submit", "HexOneStaking", "enableStaking"),
        ("confirm", "HexOneStaking", "enableStaking"),
        ("read", "HexOneStaking", "stakingEnable"),
    ]
    result = report.results[0]
    assert result.reads == {"stakingEnable.before": False, "stakingEnable.after": True}
    assert result.transactions == [f"0x{1:064x}"]


def test_enable_staking_when_already_enabled_is_a_noop(make_sequencer):
    ledger = _staking_ledger(True)

    report = make_sequencer([EnableStaking()], ledger).run()

    assert report.ok
    assert report.results[0].skipped
    assert ledger.submissions == []


def test_enable_staking_fails_when_state_does_not_change(make_sequencer):
    ledger = FakeLedger(state={("HexOneStaking", "stakingEnable"): False})

    report = make_sequencer([EnableStaking()], ledger).run()

    assert report.state is RunState.FAILED
    assert isinstance(report.error, ConfirmationFailure)


def test_set_deposit_fee_submits_rate_then_enable(make_sequencer):
    ledger = _fee_ledger(0, False)

    report = make_sequencer([SetDepositFee(50)], ledger).run()

    assert report.ok
    assert ledger.submissions == [
        ("HexOneProtocol", "setDepositFee", (HEX_TOKEN, 50)),
        ("HexOneProtocol", "setDepositFeeEnable", (HEX_TOKEN, True)),
    ]
    assert [kind for kind, _, _ in ledger.calls] == ["read", "submit", "confirm", "submit", "confirm", "read"]
    assert report.results[0].reads["fees.after"] == (50, True)


def test_set_deposit_fee_twice_is_a_noop_the_second_time(make_sequencer):
    ledger = _fee_ledger(0, False)
    assert make_sequencer([SetDepositFee(50)], ledger).run().ok
    submitted = list(ledger.submissions)

    report = make_sequencer([SetDepositFee(50)], ledger).run()

    assert report.ok
    assert report.results[0].skipped
    assert ledger.submissions == submitted


def test_set_deposit_fee_only_enables_when_rate_already_set(make_sequencer):
    ledger = _fee_ledger(50, False)

    assert make_sequencer([SetDepositFee(50)], ledger).run().ok
    assert ledger.submitted_methods == ["setDepositFeeEnable"]


def test_set_deposit_fee_stops_when_rate_submission_reverts(make_sequencer):
    ledger = _fee_ledger(0, False)
    ledger.reverts.add(("HexOneProtocol", "setDepositFee"))

    report = make_sequencer([SetDepositFee(50)], ledger).run()

    assert report.state is RunState.FAILED
    assert isinstance(report.error, ConfirmationFailure)
    assert report.error.tx_hash == f"0x{1:064x}"
    assert ledger.submitted_methods == ["setDepositFee"]


def test_set_deposit_fee_rejects_unexpected_fee_shape(make_sequencer):
    ledger = FakeLedger(state={FEES: 50})

    report = make_sequencer([SetDepositFee(50)], ledger).run()

    assert isinstance(report.error, RemoteCallError)
    assert ledger.submissions == []


def test_set_deposit_fee_needs_configured_token(make_sequencer, deployments_dir):
    write_deployments(deployments_dir, network="mainnet")
    ledger = _fee_ledger(0, False)

    report = make_sequencer([SetDepositFee(50)], ledger, network="mainnet").run()

    assert isinstance(report.error, ConfigurationError)
    assert "hexToken" in str(report.error)
    assert ledger.calls == []


@pytest.mark.parametrize("rate", [-1, 1001])
def test_set_deposit_fee_bounds(rate):
    with pytest.raises(ConfigurationError):
        SetDepositFee(rate)


def test_create_hex_staking_pool_registers_hex_token(make_sequencer):
    ledger = FakeLedger()

    assert make_sequencer([CreateHexStakingPool()], ledger).run().ok
    assert ledger.submissions == [("HexOneStaking", "addAllowedTokens", ([HEX_TOKEN], [(0, 2000)]))]


def test_create_hex_staking_pool_already_registered_fails(make_sequencer):
    ledger = FakeLedger(reverts=[("HexOneStaking", "addAllowedTokens")])

    report = make_sequencer([CreateHexStakingPool()], ledger).run()

    assert report.state is RunState.FAILED
    assert isinstance(report.error, ConfirmationFailure)


def test_price_feed_presets(make_sequencer):
    ledger = FakeLedger()

    assert make_sequencer([IncreasePriceFeedRate.from_args({}), DecreasePriceFeedRate.from_args({})], ledger).run().ok
    assert ledger.submissions == [
        ("HexOnePriceFeedTest", "setTestRate", (1500,)),
        ("HexOnePriceFeedTest", "setTestRate", (800,)),
    ]


def test_escrow_overview_defaults_to_configured_wallet(make_sequencer):
    wallet = "0xd1C56Cf01B810e6AD2c22A583A7DeaB7F1d5eFfa"
    ledger = FakeLedger(state={("HexOneEscrow", "getOverview", (wallet,)): (1, 2, 3)})

    report = make_sequencer([EscrowOverview()], ledger).run()

    assert report.ok
    assert report.results[0].reads == {"getOverview": (1, 2, 3)}


def test_escrow_overview_rejects_bad_wallet(make_sequencer):
    report = make_sequencer([EscrowOverview("0xnot-an-address")], FakeLedger()).run()

    assert isinstance(report.error, ConfigurationError)


def test_set_escrow_address_links_deployed_escrow(make_sequencer):
    ledger = FakeLedger()

    assert make_sequencer([build_step("set-escrow-address")], ledger).run().ok
    assert ledger.submissions == [("HexOneProtocol", "setEscrowContract", (DEPLOYED["HexOneEscrow"],))]


def test_build_step_parses_arguments():
    step = build_step("set-deposit-fee", {"fee_rate": "0x32"})
    pool = build_step("create-hex-staking-pool", {"hexit_dist_rate": "1_500"})

    assert isinstance(step, SetDepositFee)
    assert step.fee_rate == 50
    assert (pool.hex_dist_rate, pool.hexit_dist_rate) == (0, 1500)


@pytest.mark.parametrize(
    "step_id, args",
    [
        ("no-such-step", {}),
        ("set-deposit-fee", {}),
        ("set-deposit-fee", {"fee_rate": "five"}),
        ("enable-staking", {"force": "1"}),
        ("set-price-feed-rate", {}),
        ("deposit-escrow-collateral", {"amount": "0"}),
    ],
)
def test_build_step_rejects_bad_input(step_id, args):
    with pytest.raises(ConfigurationError):
        build_step(step_id, args)


def test_every_step_declares_contracts():
    for step_id, step_type in STEP_TYPES.items():
        assert step_type.step_id == step_id
        assert step_type.contracts
