"""Pytest fixtures for flow-preview tests."""

import tempfile
from pathlib import Path

import pytest
from flow_preview.models import ApiConfig
from flow_preview.models import Flow
from flow_preview.models import FlowStep
from flow_preview.models import MockApiResponse


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def greeting_flow() -> Flow:
    """Flow that asks for a name and age, then branches on the age."""
    return Flow(
        name="greeting",
        description="Greets the user",
        version="1.0.0",
        steps=[
            FlowStep(step_name="welcome", type="message", message="Welcome to {{company}}!"),
            FlowStep(step_name="ask_name", type="input", message="What is your name?", variable="name"),
            FlowStep(
                step_name="ask_age",
                type="input",
                message="How old are you, {{name}}?",
                variable="age",
                validation=r"^\d+$",
                error_message="Please enter a number",
                max_retries=2,
            ),
            FlowStep(step_name="adult", type="message", message="Hello {{name}}", condition="age >= 18"),
            FlowStep(step_name="minor", type="message", message="Sorry {{name}}", condition="age < 18"),
        ],
        variables={"company": "Acme"},
    )


@pytest.fixture
def api_flow() -> Flow:
    """Flow that looks up an order through an api step."""
    return Flow(
        name="order-status",
        description="Looks up an order",
        version="1.0.0",
        steps=[
            FlowStep(
                step_name="lookup",
                type="api",
                api=ApiConfig(
                    url="https://api.example.com/orders/{{order_id}}",
                    response_mapping={"status": "order.status", "first_item": "order.items[0].name"},
                ),
            ),
            FlowStep(
                step_name="shipped",
                type="message",
                message="Your {{first_item}} shipped",
                condition="status == 'shipped'",
            ),
            FlowStep(step_name="failed", type="message", message="Lookup failed: {{api_error}}", condition="api_error"),
        ],
        variables={"order_id": "42"},
        mocks={
            "lookup": MockApiResponse(
                status_code=200,
                response_body={"order": {"status": "shipped", "items": [{"name": "lamp"}]}},
            )
        },
    )


@pytest.fixture
def sample_yaml_content() -> str:
    """Return valid YAML content for a flow."""
    return """
name: support-bot
description: Routes support requests
version: 1.2.0

variables:
  company: Acme

simulation:
  max_history: 10
  default_max_retries: 1

steps:
  - step_name: greet
    type: message
    message: "Hi from {{company}}"

  - step_name: ask_email
    type: input
    message: "Your email?"
    variable: email
    validation: "^[^@]+@[^@]+$"
    error_message: "That is not an email"

  - step_name: lookup
    type: api
    api:
      method: POST
      url: https://api.example.com/customers
      response_mapping:
        tier: customer.tier

  - step_name: vip
    type: message
    message: "Welcome back, VIP"
    condition: "tier == 'gold' or tier == 'platinum'"

  - name: bye
    type: end
    message: "Bye {{email}}"

mocks:
  lookup:
    status_code: 200
    response_body:
      customer:
        tier: gold
"""


@pytest.fixture
def yaml_flow_file(temp_dir: Path, sample_yaml_content: str) -> Path:
    """Create a YAML flow file in temp directory."""
    flow_path = temp_dir / "support-bot.yaml"
    flow_path.write_text(sample_yaml_content)
    return flow_path
