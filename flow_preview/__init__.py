"""Flow preview - safe condition evaluation and flow simulation."""

import logging
from typing import Any

from .errors import ExpressionError
from .errors import ExpressionEvaluationError
from .errors import ExpressionSyntaxError
from .expression_evaluator import evaluate_condition
from .history import FlowHistory
from .interpolation import interpolate_variables
from .mocks import ApiMocker
from .models import Flow
from .models import SimulationConfig
from .simulator import FlowSimulator
from .simulator import SimulationResult
from .validator import validate_flow
from .validator import validate_input

logger = logging.getLogger(__name__)

__all__ = [
    "ApiMocker",
    "ExpressionError",
    "ExpressionEvaluationError",
    "ExpressionSyntaxError",
    "Flow",
    "FlowHistory",
    "FlowSimulator",
    "SimulationConfig",
    "SimulationResult",
    "create_simulator",
    "evaluate_condition",
    "interpolate_variables",
    "validate_flow",
    "validate_input",
]


def create_simulator(flow: Flow, config: dict[str, Any] | None = None) -> FlowSimulator:
    """
    Create a simulator for a flow.

    Args:
        flow: Flow to simulate
        config: Optional overrides for the flow's simulation block
            (max_history, max_steps, default_max_retries)

    Returns:
        FlowSimulator wired to a mocker holding the flow's mocks

    Raises:
        ValueError: If the resulting simulation config is out of range
    """
    config = config or {}

    simulation = SimulationConfig(
        max_history=config.get("max_history", flow.simulation.max_history),
        max_steps=config.get("max_steps", flow.simulation.max_steps),
        default_max_retries=config.get("default_max_retries", flow.simulation.default_max_retries),
    )
    errors = simulation.validate()
    if errors:
        raise ValueError(f"Invalid simulation config: {'; '.join(errors)}")

    mocker = ApiMocker(flow.mocks)
    simulator = FlowSimulator(flow, mocker, simulation)

    logger.info(f"Created simulator for flow '{flow.name}'")
    return simulator
