"""Flow simulation engine."""

import copy
import logging
from collections import deque
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Literal

from .expression_evaluator import evaluate_condition
from .history import FlowHistory
from .history import SimulationMessage
from .history import SimulationSnapshot
from .interpolation import interpolate_variables
from .mocks import ApiMocker
from .models import Flow
from .models import FlowStep
from .models import SimulationConfig
from .validator import validate_input

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Invalid input, please try again."

SimulationStatus = Literal["completed", "ended", "waiting_for_input", "failed"]


class SimulationError(Exception):
    """Raised when a step cannot be simulated."""

    pass


@dataclass
class SimulationResult:
    """Outcome of a simulation run."""

    status: SimulationStatus
    variables: dict[str, Any]
    messages: list[SimulationMessage]
    completed_steps: list[str] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)
    current_step: str | None = None  # Step the run stopped at, if any
    error: str | None = None


class FlowSimulator:
    """Runs a flow step by step against mocked APIs and scripted answers."""

    def __init__(
        self,
        flow: Flow,
        mocker: ApiMocker | None = None,
        config: SimulationConfig | None = None,
    ):
        """
        Initialize simulator.

        Args:
            flow: Flow to simulate
            mocker: Mock registry for api steps (defaults to the flow's mocks)
            config: Simulation limits (defaults to the flow's simulation block)
        """
        self.flow = flow
        self.config = config or flow.simulation
        self.mocker = mocker or ApiMocker(flow.mocks)
        self.history = FlowHistory(self.config.max_history)
        self.reset()

    def reset(self, variables: Mapping[str, Any] | None = None) -> None:
        """Discard all progress and start from the first step."""
        self.variables: dict[str, Any] = {**self.flow.variables, **(variables or {})}
        self.messages: list[SimulationMessage] = []
        self._outcomes: dict[int, str] = {}  # step index -> "completed" | "skipped"
        self.step_index = 0
        self.retry_count = 0
        self.steps_run = 0  # Completed steps since reset, across resumes and undos
        self._answers: dict[str, deque[str]] = {}
        self._prompted_index: int | None = None
        self._finished: SimulationStatus | None = None
        self.history.clear_history()
        self.history.save_snapshot(-1, "start", self.variables, self.messages)

    @property
    def completed_steps(self) -> list[str]:
        """Names of executed steps before the cursor, in order."""
        return self._step_names("completed")

    @property
    def skipped_steps(self) -> list[str]:
        """Names of steps skipped by their condition before the cursor, in order."""
        return self._step_names("skipped")

    def _step_names(self, outcome: str) -> list[str]:
        return [
            self.flow.steps[index].step_name
            for index in sorted(self._outcomes)
            if index < self.step_index and self._outcomes[index] == outcome
        ]

    def add_answers(self, answers: Mapping[str, Sequence[str]]) -> None:
        """Queue user answers for input steps, keyed by step name."""
        for step_name, values in answers.items():
            if isinstance(values, str):
                values = [values]
            self._answers.setdefault(step_name, deque()).extend(values)

    async def run(
        self,
        variables: Mapping[str, Any] | None = None,
        answers: Mapping[str, Sequence[str]] | None = None,
    ) -> SimulationResult:
        """
        Simulate the flow from the beginning.

        Args:
            variables: Initial variables (merged over flow.variables)
            answers: Scripted user answers per input step name

        Returns:
            SimulationResult describing where the run stopped
        """
        self.reset(variables)
        return await self.resume(answers)

    async def resume(self, answers: Mapping[str, Sequence[str]] | None = None) -> SimulationResult:
        """Continue from the current step, e.g. after waiting_for_input or undo."""
        if answers:
            self.add_answers(answers)
        if self._finished in ("ended", "failed"):
            return self._result(self._finished)

        while self.step_index < len(self.flow.steps):
            step = self.flow.steps[self.step_index]

            # Check condition if present
            if step.condition and not evaluate_condition(step.condition, self.variables):
                logger.debug(f"Skipping step '{step.step_name}': condition {step.condition!r} is false")
                self._outcomes[self.step_index] = "skipped"
                self.step_index += 1
                continue

            if self.steps_run >= self.config.max_steps:
                error = f"Simulation exceeded max_steps ({self.config.max_steps})"
                logger.warning(error)
                return self._finish("failed", step, error)

            try:
                outcome = await self.execute_step(step)
            except Exception as e:
                raise SimulationError(f"Step '{step.step_name}' failed: {e}") from e

            if outcome == "waiting_for_input":
                self._prompted_index = self.step_index
                return self._result("waiting_for_input", step)
            if outcome == "failed":
                return self._finish("failed", step, f"Step '{step.step_name}': too many invalid answers")

            self._outcomes[self.step_index] = "completed"
            self.steps_run += 1
            self.history.save_snapshot(self.step_index, step.step_name, self.variables, self.messages)
            self.step_index += 1

            if outcome == "ended":
                return self._finish("ended", None)

        logger.info(f"Flow '{self.flow.name}' completed ({len(self.completed_steps)} steps)")
        return self._result("completed")

    async def execute_step(self, step: FlowStep) -> SimulationStatus | None:
        """
        Execute a single step.

        Returns:
            None to continue with the next step, otherwise the status that stops the run
        """
        logger.info(f"Executing step '{step.step_name}' ({step.type})")

        if step.type == "message":
            self._say("bot", step.message or "", step)
            return None
        if step.type == "input":
            return self._execute_input_step(step)
        if step.type == "api":
            await self._execute_api_step(step)
            return None
        if step.type == "end":
            if step.message:
                self._say("bot", step.message, step)
            return "ended"
        raise SimulationError(f"Unknown step type: {step.type}")

    def _execute_input_step(self, step: FlowStep) -> SimulationStatus | None:
        assert step.variable is not None, "Input step must have a variable"
        max_retries = step.max_retries if step.max_retries is not None else self.config.default_max_retries

        # Prompt only once, even across resumes
        if step.message and self._prompted_index != self.step_index:
            self._say("bot", step.message, step)

        queue = self._answers.get(step.step_name)
        while True:
            if not queue:
                return "waiting_for_input"

            answer = queue.popleft()
            self.messages.append(SimulationMessage("user", answer, step.step_name))

            if validate_input(answer, step.validation):
                self.variables[step.variable] = answer
                self.retry_count = 0
                self._prompted_index = None
                return None

            self.retry_count += 1
            logger.debug(f"Step '{step.step_name}': invalid answer {answer!r} (attempt {self.retry_count})")
            if self.retry_count > max_retries:
                self._say("system", f"Maximum retries ({max_retries}) exceeded", step)
                return "failed"
            self._say("bot", step.error_message or DEFAULT_ERROR_MESSAGE, step)

    async def _execute_api_step(self, step: FlowStep) -> None:
        assert step.api is not None, "Api step must have an api config"
        url = interpolate_variables(step.api.url, self.variables)

        result = await self.mocker.execute_mocked_api_call(step, self.variables)
        self.variables["api_status"] = result.status_code

        if result.success:
            extracted = self.mocker.extract_variables_from_response(result.data or {}, step.api.response_mapping)
            self.variables.update(extracted)
            self.variables["api_error"] = ""
            self._say("system", f"{step.api.method.upper()} {url} -> {result.status_code}", step)
        else:
            self.variables["api_error"] = result.error or ""
            logger.info(f"Step '{step.step_name}': mocked call failed: {result.error}")
            self._say("system", f"{step.api.method.upper()} {url} failed: {result.error}", step)

    def _say(self, role: Literal["bot", "user", "system"], template: str, step: FlowStep) -> None:
        content = interpolate_variables(template, self.variables) if role == "bot" else template
        self.messages.append(SimulationMessage(role, content, step.step_name))

    def _finish(self, status: SimulationStatus, step: FlowStep | None, error: str | None = None) -> SimulationResult:
        self._finished = status
        return self._result(status, step, error)

    def _result(
        self, status: SimulationStatus, step: FlowStep | None = None, error: str | None = None
    ) -> SimulationResult:
        return SimulationResult(
            status=status,
            variables=dict(self.variables),
            messages=list(self.messages),
            completed_steps=list(self.completed_steps),
            skipped_steps=list(self.skipped_steps),
            current_step=step.step_name if step else None,
            error=error,
        )

    # === Undo/redo ===

    def undo(self) -> SimulationSnapshot | None:
        """Return to the state after the previous executed step."""
        snapshot = self.history.undo()
        if snapshot:
            self._restore(snapshot)
        return snapshot

    def redo(self) -> SimulationSnapshot | None:
        """Re-apply the next snapshot after an undo."""
        snapshot = self.history.redo()
        if snapshot:
            self._restore(snapshot)
        return snapshot

    def _restore(self, snapshot: SimulationSnapshot) -> None:
        self.variables = copy.deepcopy(snapshot.variables)
        self.messages = list(snapshot.messages)
        self.retry_count = snapshot.retry_count
        self.step_index = snapshot.step_index + 1
        self._prompted_index = None
        self._finished = None
        logger.debug(f"Restored snapshot at step '{snapshot.step_name}'")
