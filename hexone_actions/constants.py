from __future__ import annotations

from pathlib import Path
from typing import Final


BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_ENV_FILE = BASE_DIR / ".env"
DEFAULT_DEPLOYMENTS_DIR = BASE_DIR / "deployments"
LOG_FILE = BASE_DIR / "protocol_action_results.log"

LOGGER_NAME: Final[str] = "hexone.actions"

PLACEHOLDER_MARKERS = ("YOUR", "REPLACE", "<", ">")

# Env keys; names stay close to the hardhat network config they replace
NETWORK_ENV = "HEXONE_NETWORK"
RPC_URL_ENV = "RPC_URL"
PRIVATE_KEY_ENV = "PRIVATE_KEY"
DEPLOYMENTS_DIR_ENV = "DEPLOYMENTS_DIR"
GAS_LIMIT_ENV = "GAS_LIMIT"
GAS_PRICE_GWEI_ENV = "GAS_PRICE_GWEI"
PRIORITY_FEE_GWEI_ENV = "PRIORITY_FEE_GWEI"
MAX_FEE_GWEI_ENV = "MAX_FEE_GWEI"
RECEIPT_TIMEOUT_ENV = "RECEIPT_TIMEOUT"

DEFAULT_GAS_PRICE_GWEI = "25"

# Logical contract names, matching the deployment record file names
PROTOCOL = "HexOneProtocol"
STAKING = "HexOneStaking"
BOOTSTRAP = "HexOneBootstrap"
PRICE_FEED_TEST = "HexOnePriceFeedTest"
ESCROW = "HexOneEscrow"
VAULT = "HexOneVault"


__all__ = [
    "BASE_DIR",
    "DEFAULT_ENV_FILE",
    "DEFAULT_DEPLOYMENTS_DIR",
    "LOG_FILE",
    "LOGGER_NAME",
    "PLACEHOLDER_MARKERS",
    "NETWORK_ENV",
    "RPC_URL_ENV",
    "PRIVATE_KEY_ENV",
    "DEPLOYMENTS_DIR_ENV",
    "GAS_LIMIT_ENV",
    "GAS_PRICE_GWEI_ENV",
    "PRIORITY_FEE_GWEI_ENV",
    "MAX_FEE_GWEI_ENV",
    "RECEIPT_TIMEOUT_ENV",
    "DEFAULT_GAS_PRICE_GWEI",
    "PROTOCOL",
    "STAKING",
    "BOOTSTRAP",
    "PRICE_FEED_TEST",
    "ESCROW",
    "VAULT",
]
