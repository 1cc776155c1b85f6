"""Command line entry point: select steps by id and run them in order."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .cmd_parser import StepSpec, parse_plan_file, parse_step_tokens, plan_step_specs
from .constants import (
    BOOTSTRAP,
    DEFAULT_ENV_FILE,
    ESCROW,
    LOG_FILE,
    PRICE_FEED_TEST,
    PROTOCOL,
    STAKING,
    VAULT,
)
from .env_utils import load_env, mask_secret
from .errors import ActionError, ConfigurationError, NotDeployedError
from .ledger import RemoteLedger, Web3Ledger
from .locator import ContractLocator
from .logging_utils import attach_log_file, get_logger, log_section
from .params import ParameterTable
from .registry import DeploymentRegistry
from .sequencer import ActionSequencer
from .settings import RunnerSettings, load_settings
from .steps import STEP_TYPES, ActionStep, build_step

CONTRACT_FUNCTIONS: Dict[str, Tuple[str, ...]] = {
    PROTOCOL: ("fees", "setDepositFee", "setDepositFeeEnable", "setEscrowContract"),
    STAKING: ("rewardsPool", "stakingEnable", "enableStaking", "addAllowedTokens"),
    BOOTSTRAP: ("generateAdditionalTokens",),
    PRICE_FEED_TEST: ("setTestRate",),
    ESCROW: ("depositCollateralToHexOneProtocol", "getOverview"),
    VAULT: ("getLiquidableDeposits",),
}


def build_ledger(settings: RunnerSettings) -> RemoteLedger:
    return Web3Ledger.from_settings(settings)


def build_plan(specs: Sequence[StepSpec]) -> List[ActionStep]:
    if not specs:
        raise ConfigurationError("No steps selected; pass step ids or --plan FILE")
    return [build_step(step_id, args) for step_id, args in specs]


def _collect_specs(args: argparse.Namespace, logger: logging.Logger) -> List[StepSpec]:
    specs: List[StepSpec] = []
    if args.plan:
        plan_path = Path(args.plan)
        if not plan_path.exists():
            raise ConfigurationError(f"Plan file not found: {plan_path}")
        entries = parse_plan_file(plan_path)
        for entry_type, content in entries:
            if entry_type == "comment":
                log_section(logger, f"# {content}")
        specs.extend(plan_step_specs(entries))
    specs.extend(parse_step_tokens(args.steps))
    return specs


def cmd_run(args: argparse.Namespace, env: Dict[str, str]) -> int:
    logger = get_logger(logging.DEBUG if args.verbose else logging.INFO)
    file_handler = attach_log_file(logger, Path(args.log_file)) if args.log_file else None
    try:
        steps = build_plan(_collect_specs(args, logger))
        settings = load_settings(env, args.network)
        params = ParameterTable.default().resolve(settings.network)
        if not params:
            logger.warning("no deployment parameters configured for network '%s'", settings.network)

        ledger = build_ledger(settings)
        account = getattr(ledger, "address", None)
        if account:
            logger.info("Action contract with the account: %s", account)

        locator = ContractLocator(DeploymentRegistry(settings.deployments_dir))
        sequencer = ActionSequencer(
            steps,
            network=settings.network,
            params=params,
            locator=locator,
            ledger=ledger,
            logger=logger,
        )
        report = sequencer.run()
    except ActionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if file_handler is not None:
            logger.removeHandler(file_handler)
            file_handler.close()

    if not report.ok:
        failed = report.failed_step
        step_id = failed.step_id if failed else "?"
        print(f"step {(report.step_index or 0) + 1} ({step_id}) failed: {report.error}", file=sys.stderr)
        return 1
    return 0


def cmd_list(args: argparse.Namespace, env: Dict[str, str]) -> int:
    for step_id, step_type in STEP_TYPES.items():
        extras = " ".join(f"{name}=" for name in step_type.arguments)
        print(f"{step_id:28} {step_type.label}")
        print(f"{'':28} contracts: {', '.join(step_type.contracts)}")
        if extras:
            print(f"{'':28} arguments: {extras}")
        if step_type.requires:
            print(f"{'':28} requires: {', '.join(sorted(step_type.requires))}")
        if step_type.provides:
            print(f"{'':28} provides: {', '.join(sorted(step_type.provides))}")
    return 0


def cmd_params(args: argparse.Namespace, env: Dict[str, str]) -> int:
    try:
        settings = load_settings(env, args.network)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    params = ParameterTable.default().resolve(settings.network)
    print(json.dumps({"network": settings.network, "params": dict(params)}, indent=2))
    return 0


def cmd_check(args: argparse.Namespace, env: Dict[str, str]) -> int:
    """Diagnose settings and deployment records for the active network."""

    try:
        settings = load_settings(env, args.network)
    except ConfigurationError as exc:
        print(f"✗ {exc}")
        return 1

    issues: List[str] = []
    print("=" * 60)
    print(f"Action runner configuration: {settings.network}")
    print("=" * 60)

    if settings.rpc_url:
        display = settings.rpc_url[:40] + "..." if len(settings.rpc_url) > 40 else settings.rpc_url
        print(f"  ✓ {'RPC URL':20} = {display}")
    else:
        print(f"  ✗ {'RPC URL':20} = NOT SET")
        issues.append("Missing RPC URL")
    if settings.private_key:
        print(f"  ✓ {'Signer key':20} = {mask_secret(settings.private_key)}")
    else:
        print(f"  ✗ {'Signer key':20} = NOT SET")
        issues.append("Missing signer key")

    params = ParameterTable.default().resolve(settings.network)
    if params:
        print(f"  ✓ {'Parameters':20} = {len(params)} configured")
    else:
        print(f"  ○ {'Parameters':20} = none configured for this network")

    registry = DeploymentRegistry(settings.deployments_dir)
    print(f"\n  Deployment records: {registry.root / settings.network}")
    locator = ContractLocator(registry)
    for name, functions in CONTRACT_FUNCTIONS.items():
        try:
            handle = locator.locate(name, settings.network)
        except NotDeployedError:
            print(f"    ○ {name:22} not deployed")
            continue
        except ConfigurationError as exc:
            print(f"    ✗ {name:22} {exc}")
            issues.append(str(exc))
            continue
        print(f"    ✓ {name:22} {handle.address}")
        for fn_name in functions:
            if not handle.has_function(fn_name):
                print(f"        ⚠️  {fn_name} (not in ABI)")
    for name in registry.names(settings.network):
        if name not in CONTRACT_FUNCTIONS:
            print(f"    ○ {name:22} not used by any step")

    print()
    if issues:
        print(f"⚠️  Found {len(issues)} issue(s):")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        return 1
    print("✅ All checks passed.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hexone-actions",
        description="Run administrative actions against deployed HexOne contracts.",
    )
    parser.add_argument("--network", help="Target network (default: $HEXONE_NETWORK)")
    parser.add_argument("--env-file", default=str(DEFAULT_ENV_FILE), help="Path to a .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run steps in the given order")
    run.add_argument("steps", nargs="*", help="Step ids, each optionally followed by key=value arguments")
    run.add_argument("--plan", help="File listing one step per line")
    run.add_argument(
        "--log-file",
        nargs="?",
        const=str(LOG_FILE),
        help=f"Also write the run log to a file (default when given without a path: {LOG_FILE.name})",
    )
    run.add_argument("-v", "--verbose", action="store_true")
    run.set_defaults(handler=cmd_run)

    sub.add_parser("list", help="List available steps").set_defaults(handler=cmd_list)
    sub.add_parser("params", help="Print deployment parameters for the network").set_defaults(handler=cmd_params)
    sub.add_parser("check", help="Check settings and deployment records").set_defaults(handler=cmd_check)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    env = load_env(Path(args.env_file))
    return args.handler(args, env)


if __name__ == "__main__":
    sys.exit(main())
