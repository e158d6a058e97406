"""Flow data models and YAML parsing."""

from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Literal

import yaml

STEP_TYPES = ("message", "input", "api", "end")
HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


@dataclass
class SimulationConfig:
    """Limits applied while simulating a flow."""

    max_history: int = 50  # Default: 50, configurable 1-500
    max_steps: int = 100  # Default: 100, configurable 1-1000
    default_max_retries: int = 3  # Default: 3, configurable 0-20

    def validate(self) -> list[str]:
        """Validate simulation config."""
        errors = []
        if not 1 <= self.max_history <= 500:
            errors.append(f"simulation.max_history must be 1-500, got {self.max_history}")
        if not 1 <= self.max_steps <= 1000:
            errors.append(f"simulation.max_steps must be 1-1000, got {self.max_steps}")
        if not 0 <= self.default_max_retries <= 20:
            errors.append(f"simulation.default_max_retries must be 0-20, got {self.default_max_retries}")
        return errors


@dataclass
class ApiConfig:
    """HTTP call made by an api step."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    response_mapping: dict[str, str] = field(default_factory=dict)  # variable -> dotted path

    def validate(self) -> list[str]:
        """Validate API configuration."""
        errors = []
        if not self.url:
            errors.append("api.url is required")
        if self.method.upper() not in HTTP_METHODS:
            errors.append(f"api.method must be one of {', '.join(HTTP_METHODS)}, got '{self.method}'")
        for var_name, path in self.response_mapping.items():
            if not var_name.replace("_", "").isalnum():
                errors.append(f"api.response_mapping key '{var_name}' must be alphanumeric with underscores")
            if not isinstance(path, str) or not path:
                errors.append(f"api.response_mapping['{var_name}'] must be a non-empty path")
        return errors


@dataclass
class MockApiResponse:
    """Canned response returned in place of a real API call."""

    status_code: int = 200
    response_body: dict[str, Any] = field(default_factory=dict)
    delay: int = 0  # Milliseconds

    def validate(self) -> list[str]:
        errors = []
        if not 100 <= self.status_code <= 599:
            errors.append(f"mock status_code must be 100-599, got {self.status_code}")
        if self.delay < 0:
            errors.append("mock delay must be non-negative")
        return errors


@dataclass
class FlowStep:
    """Represents a single step in a conversation flow."""

    step_name: str
    type: Literal["message", "input", "api", "end"] = "message"
    message: str | None = None

    # Input step fields
    variable: str | None = None  # Variable bound to the user's answer
    validation: str | None = None  # Regex the answer must match
    error_message: str | None = None
    max_retries: int | None = None  # Falls back to simulation.default_max_retries

    # Api step fields
    api: ApiConfig | None = None

    # Common fields
    condition: str | None = None

    def validate(self) -> list[str]:
        """Validate step structure and constraints."""
        errors = []

        if not self.step_name:
            errors.append("Step missing required field: step_name")

        if self.type not in STEP_TYPES:
            errors.append(f"Step '{self.step_name}': type must be one of {', '.join(STEP_TYPES)}, got '{self.type}'")
        elif self.type == "message":
            if not self.message:
                errors.append(f"Step '{self.step_name}': message steps require 'message' field")
        elif self.type == "input":
            if not self.variable:
                errors.append(f"Step '{self.step_name}': input steps require 'variable' field")
            elif not self.variable.replace("_", "").isalnum():
                errors.append(f"Step '{self.step_name}': variable name must be alphanumeric with underscores")
        elif self.type == "api":
            if self.api is None:
                errors.append(f"Step '{self.step_name}': api steps require 'api' field")
            else:
                for err in self.api.validate():
                    errors.append(f"Step '{self.step_name}': {err}")

        if self.type != "input" and (self.validation or self.variable):
            errors.append(f"Step '{self.step_name}': only input steps can have 'variable' or 'validation'")
        if self.type != "api" and self.api is not None:
            errors.append(f"Step '{self.step_name}': only api steps can have 'api' field")

        if self.max_retries is not None and self.max_retries < 0:
            errors.append(f"Step '{self.step_name}': max_retries must be non-negative")

        return errors


@dataclass
class Flow:
    """Represents a complete flow definition."""

    name: str
    description: str = ""
    version: str = ""
    steps: list[FlowStep] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)  # Initial bindings
    mocks: dict[str, MockApiResponse] = field(default_factory=dict)  # step_name -> mock
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    @classmethod
    def _parse_step(cls, step_data: dict[str, Any]) -> FlowStep:
        """Parse a single step from YAML data."""
        if not isinstance(step_data, dict):
            raise ValueError("Each step must be a dictionary")

        step_data_copy = dict(step_data)

        # Accept 'name' as shorthand for 'step_name'
        if "name" in step_data_copy and "step_name" not in step_data_copy:
            step_data_copy["step_name"] = step_data_copy.pop("name")

        if "api" in step_data_copy and step_data_copy["api"] is not None:
            if not isinstance(step_data_copy["api"], dict):
                raise ValueError("Step 'api' must be a dictionary")
            step_data_copy["api"] = ApiConfig(**step_data_copy["api"])

        return FlowStep(**step_data_copy)

    @classmethod
    def _parse_mocks(cls, mocks_data: Any) -> dict[str, MockApiResponse]:
        """Parse per-step mock responses from YAML data."""
        if mocks_data is None:
            return {}
        if not isinstance(mocks_data, dict):
            raise ValueError("'mocks' must be a dictionary of step name to response")

        mocks = {}
        for step_name, mock_data in mocks_data.items():
            if not isinstance(mock_data, dict):
                raise ValueError(f"Mock for step '{step_name}' must be a dictionary")
            mocks[step_name] = MockApiResponse(**mock_data)
        return mocks

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Flow":
        """Build a flow from already-loaded YAML/JSON data."""
        if not isinstance(data, dict):
            raise ValueError("Flow YAML must be a dictionary")

        steps_data = data.get("steps") or []
        if not isinstance(steps_data, list):
            raise ValueError("'steps' must be a list")

        try:
            steps = [cls._parse_step(sd) for sd in steps_data]
            mocks = cls._parse_mocks(data.get("mocks"))
            simulation_data = data.get("simulation") or {}
            if not isinstance(simulation_data, dict):
                raise ValueError("'simulation' must be a dictionary")
            simulation = SimulationConfig(**simulation_data)
        except TypeError as e:
            # Unknown keys surface as dataclass constructor errors
            raise ValueError(f"Invalid flow definition: {e}") from e

        variables = data.get("variables") or {}
        if not isinstance(variables, dict):
            raise ValueError("'variables' must be a dictionary")

        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            version=str(data.get("version", "")),
            steps=steps,
            variables=variables,
            mocks=mocks,
            simulation=simulation,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "Flow":
        """Load flow from YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Flow file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)

    def validate(self) -> list[str]:
        """Validate flow structure and constraints."""
        errors = []

        if not self.name:
            errors.append("Flow missing required field: name")
        if self.name and not self.name.replace("-", "").replace("_", "").isalnum():
            errors.append("Flow name must be alphanumeric with hyphens/underscores")

        if not self.steps:
            errors.append("Flow must have at least one step")

        for step in self.steps:
            errors.extend(step.validate())

        step_names = [step.step_name for step in self.steps]
        duplicates = [name for name in step_names if step_names.count(name) > 1]
        if duplicates:
            errors.append(f"Duplicate step names: {', '.join(sorted(set(duplicates)))}")

        for step_name, mock in self.mocks.items():
            step = self.get_step(step_name)
            if step is None:
                errors.append(f"Mock references unknown step '{step_name}'")
            elif step.type != "api":
                errors.append(f"Mock for step '{step_name}' but step type is '{step.type}', not 'api'")
            for err in mock.validate():
                errors.append(f"Step '{step_name}': {err}")

        errors.extend(self.simulation.validate())

        return errors

    def get_step(self, step_name: str) -> FlowStep | None:
        """Get step by name."""
        for step in self.steps:
            if step.step_name == step_name:
                return step
        return None
