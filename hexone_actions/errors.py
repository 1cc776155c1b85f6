"""Error kinds raised while resolving configuration and running actions."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ActionError(Exception):
    """Base class for every failure that aborts an action run."""


class ConfigurationError(ActionError):
    """Unknown network, missing parameter or an invalid step plan."""


class NotDeployedError(ActionError):
    """No deployment record exists for a (contract, network) pair."""

    def __init__(self, name: str, network: str) -> None:
        super().__init__(f"{name} is not deployed on network '{network}'")
        self.name = name
        self.network = network


class RemoteCallError(ActionError):
    """A read call reverted or returned an unexpected shape."""


class SubmissionError(ActionError):
    """A mutating call was rejected before it was included."""


class ConfirmationFailure(ActionError):
    """A submitted mutation was included but did not apply."""

    def __init__(
        self,
        message: str,
        *,
        tx_hash: Optional[str] = None,
        receipt: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
    ) -> None:
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt or {}
        self.reason = reason
