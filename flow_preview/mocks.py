"""Mocked API calls for flow simulation."""

import asyncio
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .interpolation import MISSING
from .interpolation import get_nested_value
from .models import ApiConfig
from .models import FlowStep
from .models import MockApiResponse

logger = logging.getLogger(__name__)


@dataclass
class ApiCallResult:
    """Outcome of a mocked API call."""

    success: bool
    status_code: int
    duration: float  # Milliseconds
    data: dict[str, Any] | None = None
    error: str | None = None


class MockConfigurationPendingError(Exception):
    """Raised when a second call waits for a mock while one is already pending."""

    def __init__(self, step_name: str):
        self.step_name = step_name
        super().__init__(f"Already waiting for a mock configuration for step '{step_name}'")


class ApiMocker:
    """Registry of per-step mock responses.

    A call for a step without a mock parks until ``submit_mock_config`` is
    called with a response (stored and replayed) or None (cancelled). Only
    one call can be parked at a time.
    """

    def __init__(self, mocks: Mapping[str, MockApiResponse] | None = None):
        self.mocks: dict[str, MockApiResponse] = dict(mocks or {})
        self.current_mock_step: str | None = None
        self._pending: asyncio.Future | None = None

    @property
    def awaiting_mock(self) -> bool:
        """True while a call is waiting for a mock to be configured."""
        return self._pending is not None and not self._pending.done()

    def set_mock(self, step_name: str, mock: MockApiResponse) -> None:
        self.mocks[step_name] = mock

    def get_mock(self, step_name: str) -> MockApiResponse | None:
        return self.mocks.get(step_name)

    def remove_mock(self, step_name: str) -> None:
        self.mocks.pop(step_name, None)

    def clear_mocks(self) -> None:
        self.mocks.clear()

    async def execute_mocked_api_call(self, step: FlowStep, variables: Mapping[str, Any]) -> ApiCallResult:
        """
        Execute a mocked API call for an api step.

        Args:
            step: Step whose mock should answer
            variables: Current flow variables

        Returns:
            ApiCallResult; non-2xx mocks produce success=False
        """
        start_time = time.monotonic()
        mock = self.get_mock(step.step_name)

        if mock is None:
            response = await self._wait_for_mock(step.step_name)
            if response is None:
                logger.info(f"Mock configuration cancelled for step '{step.step_name}'")
                return ApiCallResult(
                    success=False,
                    status_code=0,
                    duration=_elapsed_ms(start_time),
                    error="Mock configuration cancelled",
                )
            self.set_mock(step.step_name, response)
            return await self.execute_mocked_api_call(step, variables)

        # Simulate network delay
        await asyncio.sleep(mock.delay / 1000)

        if 200 <= mock.status_code < 300:
            return ApiCallResult(
                success=True,
                status_code=mock.status_code,
                duration=_elapsed_ms(start_time),
                data=mock.response_body,
            )

        return ApiCallResult(
            success=False,
            status_code=mock.status_code,
            duration=_elapsed_ms(start_time),
            error=f"HTTP {mock.status_code}",
        )

    async def _wait_for_mock(self, step_name: str) -> MockApiResponse | None:
        if self.awaiting_mock:
            raise MockConfigurationPendingError(self.current_mock_step or step_name)

        logger.info(f"No mock configured for step '{step_name}', waiting for configuration")
        future = asyncio.get_running_loop().create_future()
        self.current_mock_step = step_name
        self._pending = future
        try:
            return await future
        finally:
            # A newer call may already own the slot
            if self._pending is future:
                self.current_mock_step = None
                self._pending = None

    def submit_mock_config(self, response: MockApiResponse | None) -> bool:
        """Resolve the pending call. Returns False if nothing was waiting."""
        if not self.awaiting_mock:
            return False
        assert self._pending is not None
        self._pending.set_result(response)
        return True

    def extract_variables_from_response(
        self, response_data: Any, response_mapping: Mapping[str, str]
    ) -> dict[str, Any]:
        """Pull variables out of a response body; paths that do not resolve are omitted."""
        extracted = {}
        for var_name, path in response_mapping.items():
            value = get_nested_value(response_data, path, default=MISSING)
            if value is not MISSING:
                extracted[var_name] = value
        return extracted

    def generate_sample_response(self, api_config: ApiConfig) -> str:
        """Build a JSON skeleton matching an api step's response mapping."""
        sample: dict[str, Any] = {}

        for var_name, path in (api_config.response_mapping or {}).items():
            parts = path.split(".")
            current = sample
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]
            current[parts[-1]] = f"sample_{var_name}"

        return json.dumps(sample, indent=2)


def _elapsed_ms(start_time: float) -> float:
    return (time.monotonic() - start_time) * 1000
