from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ActionError, ConfigurationError
from .ledger import RemoteLedger
from .locator import ContractLocator
from .logging_utils import get_logger, log_section
from .params import ParameterSet
from .steps import ActionResult, ActionStep, StepContext


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RunReport:
    network: str
    state: RunState = RunState.NOT_STARTED
    step_index: Optional[int] = None
    error: Optional[BaseException] = None
    results: List[ActionResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is RunState.SUCCEEDED

    @property
    def failed_step(self) -> Optional[ActionResult]:
        if self.state is not RunState.FAILED or self.step_index is None:
            return None
        if self.step_index < len(self.results):
            return self.results[self.step_index]
        return None

    def raise_for_status(self) -> None:
        if self.state is RunState.FAILED and self.error is not None:
            raise self.error


def validate_plan(steps: Sequence[ActionStep]) -> List[Tuple[int, str]]:
    """Reject plans where a step runs before the step providing its prerequisite.

    Requirements that no step in the plan provides are assumed to hold from an
    earlier run; they are returned as ``(step index, token)`` pairs.
    """

    provided_at: Dict[str, int] = {}
    for index, step in enumerate(steps):
        for token in step.provides:
            provided_at.setdefault(token, index)

    external: List[Tuple[int, str]] = []
    for index, step in enumerate(steps):
        for token in sorted(step.requires):
            provider = provided_at.get(token)
            if provider is None:
                external.append((index, token))
            elif provider > index:
                raise ConfigurationError(
                    f"step {index + 1} ({step.step_id}) requires '{token}', which step "
                    f"{provider + 1} ({steps[provider].step_id}) only provides later in the plan"
                )
    return external


class ActionSequencer:
    """Run steps strictly in order and stop at the first failure."""

    def __init__(
        self,
        steps: Sequence[ActionStep],
        *,
        network: str,
        params: ParameterSet,
        locator: ContractLocator,
        ledger: RemoteLedger,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.steps = list(steps)
        self.network = network
        self.params = params
        self.locator = locator
        self.ledger = ledger
        self.logger = logger or get_logger()
        self.report = RunReport(network=network)

    def run(self) -> RunReport:
        if self.report.state is not RunState.NOT_STARTED:
            raise RuntimeError("A sequencer can only be run once; build a new one to re-run the plan")
        for index, token in validate_plan(self.steps):
            self.logger.warning(
                "step %d (%s) requires '%s', which no step in this plan provides; assuming an earlier run did",
                index + 1,
                self.steps[index].step_id,
                token,
            )

        total = len(self.steps)
        for index, step in enumerate(self.steps):
            self.report.state = RunState.RUNNING
            self.report.step_index = index
            log_section(self.logger, f"[{index + 1}/{total}] {step.step_id}: {step.describe()}")
            try:
                result = self._run_step(step)
            except Exception as exc:
                self.report.state = RunState.FAILED
                self.report.error = exc
                raise
            self.report.results.append(result)

            if not result.ok:
                self.report.state = RunState.FAILED
                self.report.error = result.error
                self.logger.error("step %d (%s) failed: %s", index + 1, step.step_id, result.error)
                skipped = total - index - 1
                if skipped:
                    self.logger.error("aborting run; %d remaining step(s) not executed", skipped)
                return self.report

        self.report.state = RunState.SUCCEEDED
        self.report.step_index = None
        self.logger.info("all %d step(s) completed on %s", total, self.network)
        return self.report

    def _run_step(self, step: ActionStep) -> ActionResult:
        result = ActionResult(step_id=step.step_id, label=step.describe())
        ctx = StepContext(
            network=self.network,
            params=self.params,
            locator=self.locator,
            ledger=self.ledger,
            logger=self.logger,
            result=result,
        )
        try:
            for name in step.contracts:
                ctx.contract(name)
            step.execute(ctx)
        except ActionError as exc:
            result.error = exc
            return result
        result.ok = True
        return result
