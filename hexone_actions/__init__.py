from __future__ import annotations

from .constants import BASE_DIR, DEFAULT_DEPLOYMENTS_DIR, DEFAULT_ENV_FILE, LOG_FILE
from .errors import (
    ActionError,
    ConfigurationError,
    ConfirmationFailure,
    NotDeployedError,
    RemoteCallError,
    SubmissionError,
)
from .ledger import Confirmation, ConfirmationStatus, PendingTx, RemoteLedger, Web3Ledger
from .locator import ContractHandle, ContractLocator
from .params import ParameterSet, ParameterTable
from .registry import DeploymentRegistry
from .sequencer import ActionSequencer, RunReport, RunState
from .steps import STEP_TYPES, ActionResult, ActionStep, build_step
