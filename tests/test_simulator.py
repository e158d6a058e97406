"""Tests for flow simulation."""

import asyncio
from pathlib import Path

import pytest
from flow_preview import create_simulator
from flow_preview.mocks import ApiMocker
from flow_preview.models import ApiConfig
from flow_preview.models import Flow
from flow_preview.models import FlowStep
from flow_preview.models import MockApiResponse
from flow_preview.models import SimulationConfig
from flow_preview.simulator import FlowSimulator
from flow_preview.simulator import SimulationError


def bot_messages(result) -> list[str]:
    return [m.content for m in result.messages if m.role == "bot"]


class TestConditions:
    """Condition evaluation decides which steps run."""

    @pytest.mark.asyncio
    async def test_adult_branch(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        result = await simulator.run(answers={"ask_name": ["Ada"], "ask_age": ["36"]})

        assert result.status == "completed"
        assert result.variables["name"] == "Ada"
        assert result.variables["age"] == "36"
        assert result.completed_steps == ["welcome", "ask_name", "ask_age", "adult"]
        assert result.skipped_steps == ["minor"]
        assert bot_messages(result)[-1] == "Hello Ada"

    @pytest.mark.asyncio
    async def test_minor_branch(self, greeting_flow: Flow):
        result = await FlowSimulator(greeting_flow).run(answers={"ask_name": ["Bo"], "ask_age": ["9"]})

        assert result.skipped_steps == ["adult"]
        assert bot_messages(result)[-1] == "Sorry Bo"

    @pytest.mark.asyncio
    async def test_malformed_condition_skips_step(self):
        flow = Flow(
            name="f",
            steps=[
                FlowStep(step_name="broken", message="never", condition="((x"),
                FlowStep(step_name="after", message="shown"),
            ],
        )
        result = await FlowSimulator(flow).run()

        assert result.status == "completed"
        assert result.skipped_steps == ["broken"]
        assert bot_messages(result) == ["shown"]

    @pytest.mark.asyncio
    async def test_initial_variables_override_flow_variables(self, greeting_flow: Flow):
        result = await FlowSimulator(greeting_flow).run(variables={"company": "Globex"})
        assert bot_messages(result)[0] == "Welcome to Globex!"


class TestInputSteps:
    """Input steps consume scripted answers and validate them."""

    @pytest.mark.asyncio
    async def test_waits_for_input_and_resumes(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        result = await simulator.run()

        assert result.status == "waiting_for_input"
        assert result.current_step == "ask_name"
        assert bot_messages(result) == ["Welcome to Acme!", "What is your name?"]

        result = await simulator.resume({"ask_name": ["Ada"]})
        assert result.status == "waiting_for_input"
        assert result.current_step == "ask_age"

        result = await simulator.resume({"ask_age": "40"})
        assert result.status == "completed"
        # Prompts are not repeated when resuming
        assert bot_messages(result).count("What is your name?") == 1

    @pytest.mark.asyncio
    async def test_invalid_answer_reprompts(self, greeting_flow: Flow):
        result = await FlowSimulator(greeting_flow).run(answers={"ask_name": ["Ada"], "ask_age": ["old", "30"]})

        assert result.status == "completed"
        assert result.variables["age"] == "30"
        assert "Please enter a number" in bot_messages(result)
        user = [m.content for m in result.messages if m.role == "user"]
        assert user == ["Ada", "old", "30"]

    @pytest.mark.asyncio
    async def test_too_many_invalid_answers_fails(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        result = await simulator.run(answers={"ask_name": ["Ada"], "ask_age": ["a", "b", "c"]})

        assert result.status == "failed"
        assert result.current_step == "ask_age"
        assert "too many invalid answers" in result.error
        assert result.messages[-1].role == "system"

        # A failed run stays failed
        again = await simulator.resume({"ask_age": ["12"]})
        assert again.status == "failed"

    @pytest.mark.asyncio
    async def test_invalid_pattern_accepts_anything(self):
        flow = Flow(name="f", steps=[FlowStep(step_name="ask", type="input", variable="v", validation="[")])
        result = await FlowSimulator(flow).run(answers={"ask": ["whatever"]})
        assert result.status == "completed"
        assert result.variables["v"] == "whatever"

    @pytest.mark.asyncio
    async def test_default_retries_from_config(self):
        flow = Flow(
            name="f",
            steps=[FlowStep(step_name="ask", type="input", variable="v", validation=r"^\d$")],
            simulation=SimulationConfig(default_max_retries=0),
        )
        result = await FlowSimulator(flow).run(answers={"ask": ["x", "1"]})
        assert result.status == "failed"


class TestApiSteps:
    """Api steps call the mocker and bind mapped variables."""

    @pytest.mark.asyncio
    async def test_success_binds_mapping(self, api_flow: Flow):
        result = await FlowSimulator(api_flow).run()

        assert result.status == "completed"
        assert result.variables["status"] == "shipped"
        assert result.variables["first_item"] == "lamp"
        assert result.variables["api_status"] == 200
        assert result.variables["api_error"] == ""
        assert bot_messages(result) == ["Your lamp shipped"]
        assert result.skipped_steps == ["failed"]
        system = [m.content for m in result.messages if m.role == "system"]
        assert system == ["GET https://api.example.com/orders/42 -> 200"]

    @pytest.mark.asyncio
    async def test_null_response_value_renders_empty(self, api_flow: Flow):
        body = {"order": {"status": "shipped", "items": [{"name": None}]}}
        mocker = ApiMocker({"lookup": MockApiResponse(response_body=body)})
        result = await FlowSimulator(api_flow, mocker=mocker).run()

        assert "first_item" in result.variables
        assert result.variables["first_item"] is None
        assert bot_messages(result) == ["Your  shipped"]

    @pytest.mark.asyncio
    async def test_failure_binds_error(self, api_flow: Flow):
        mocker = ApiMocker({"lookup": MockApiResponse(status_code=500)})
        result = await FlowSimulator(api_flow, mocker=mocker).run()

        assert result.status == "completed"
        assert result.variables["api_error"] == "HTTP 500"
        assert result.variables["api_status"] == 500
        assert bot_messages(result) == ["Lookup failed: HTTP 500"]

    @pytest.mark.asyncio
    async def test_unconfigured_mock_waits(self, api_flow: Flow):
        mocker = ApiMocker()
        simulator = FlowSimulator(api_flow, mocker=mocker)
        task = asyncio.create_task(simulator.run())
        await asyncio.sleep(0)

        assert mocker.current_mock_step == "lookup"
        mocker.submit_mock_config(MockApiResponse(response_body={"order": {"status": "pending"}}))
        result = await task

        assert result.variables["status"] == "pending"
        assert "first_item" not in result.variables
        assert result.skipped_steps == ["shipped", "failed"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, api_flow: Flow):
        mocker = ApiMocker()
        simulator = FlowSimulator(api_flow, mocker=mocker)
        blocker = asyncio.create_task(mocker.execute_mocked_api_call(api_flow.steps[0], {}))
        await asyncio.sleep(0)

        with pytest.raises(SimulationError, match="Step 'lookup' failed"):
            await simulator.run()

        mocker.submit_mock_config(None)
        await blocker


class TestEndAndLimits:
    """End steps and max_steps stop the run."""

    @pytest.mark.asyncio
    async def test_end_step_stops(self):
        flow = Flow(
            name="f",
            steps=[
                FlowStep(step_name="bye", type="end", message="Bye"),
                FlowStep(step_name="after", message="unreachable"),
            ],
        )
        result = await FlowSimulator(flow).run()

        assert result.status == "ended"
        assert result.completed_steps == ["bye"]
        assert bot_messages(result) == ["Bye"]

    @pytest.mark.asyncio
    async def test_max_steps(self):
        flow = Flow(
            name="f",
            steps=[FlowStep(step_name=f"s{i}", message="m") for i in range(5)],
            simulation=SimulationConfig(max_steps=3),
        )
        result = await FlowSimulator(flow).run()

        assert result.status == "failed"
        assert "max_steps" in result.error
        assert result.completed_steps == ["s0", "s1", "s2"]

    @pytest.mark.asyncio
    async def test_max_steps_counts_across_resumes(self):
        flow = Flow(
            name="f",
            steps=[
                FlowStep(step_name="m0", message="m"),
                FlowStep(step_name="q", type="input", message="?", variable="answer"),
                FlowStep(step_name="m1", message="m"),
                FlowStep(step_name="m2", message="m"),
            ],
            simulation=SimulationConfig(max_steps=3),
        )
        simulator = FlowSimulator(flow)
        result = await simulator.run()
        assert result.status == "waiting_for_input"

        result = await simulator.resume({"q": ["yes"]})
        assert result.status == "failed"
        assert "max_steps" in result.error
        assert result.completed_steps == ["m0", "q", "m1"]


class TestUndoRedo:
    """Undo and redo restore simulator state from history."""

    @pytest.mark.asyncio
    async def test_undo_then_answer_differently(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        result = await simulator.run(answers={"ask_name": ["Ada"], "ask_age": ["36"]})
        assert bot_messages(result)[-1] == "Hello Ada"

        # Back to just after ask_name
        snapshot = simulator.undo()
        assert snapshot.step_name == "ask_age"
        snapshot = simulator.undo()
        assert snapshot.step_name == "ask_name"
        assert "age" not in simulator.variables
        assert simulator.completed_steps == ["welcome", "ask_name"]

        result = await simulator.resume({"ask_age": ["12"]})
        assert result.status == "completed"
        assert bot_messages(result)[-1] == "Sorry Ada"
        assert result.skipped_steps == ["adult"]

    @pytest.mark.asyncio
    async def test_redo(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        await simulator.run(answers={"ask_name": ["Ada"], "ask_age": ["36"]})

        simulator.undo()
        simulator.undo()
        snapshot = simulator.redo()

        assert snapshot.step_name == "ask_age"
        assert simulator.variables["age"] == "36"
        assert simulator.completed_steps == ["welcome", "ask_name", "ask_age"]

    @pytest.mark.asyncio
    async def test_undo_to_start(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        await simulator.run(answers={"ask_name": ["Ada"], "ask_age": ["36"]})

        while simulator.undo():
            pass

        assert simulator.step_index == 0
        assert simulator.messages == []
        assert simulator.variables == {"company": "Acme"}

    @pytest.mark.asyncio
    async def test_undo_revives_failed_run(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        result = await simulator.run(answers={"ask_name": ["Ada"], "ask_age": ["x", "y", "z"]})
        assert result.status == "failed"

        simulator.undo()  # back to after welcome
        result = await simulator.resume({"ask_name": ["Cy"], "ask_age": ["50"]})
        assert result.status == "completed"
        assert result.variables["name"] == "Cy"

    @pytest.mark.asyncio
    async def test_nothing_to_undo(self, greeting_flow: Flow):
        simulator = FlowSimulator(greeting_flow)
        assert simulator.undo() is None
        assert simulator.redo() is None


class TestCreateSimulator:
    """Tests for create_simulator configuration."""

    @pytest.mark.asyncio
    async def test_from_yaml(self, yaml_flow_file: Path):
        flow = Flow.from_yaml(yaml_flow_file)
        simulator = create_simulator(flow)

        assert simulator.history.max_size == 10
        result = await simulator.run(answers={"ask_email": ["nope", "ada@example.com"]})

        assert result.status == "ended"
        assert result.variables["tier"] == "gold"
        assert bot_messages(result)[-2:] == ["Welcome back, VIP", "Bye ada@example.com"]

    def test_overrides(self, greeting_flow: Flow):
        simulator = create_simulator(greeting_flow, {"max_history": 5, "max_steps": 7})
        assert simulator.config.max_history == 5
        assert simulator.config.max_steps == 7
        assert simulator.config.default_max_retries == 3
        assert simulator.history.max_size == 5

    def test_invalid_overrides(self, greeting_flow: Flow):
        with pytest.raises(ValueError, match="Invalid simulation config"):
            create_simulator(greeting_flow, {"max_steps": 0})

    def test_mocker_uses_flow_mocks(self, api_flow: Flow):
        simulator = create_simulator(api_flow)
        assert simulator.mocker.get_mock("lookup") is api_flow.mocks["lookup"]
        assert isinstance(api_flow.steps[0].api, ApiConfig)
