"""Flow validation and user-input pattern checks."""

import logging
import re
from dataclasses import dataclass

from .errors import ExpressionError
from .interpolation import extract_variables
from .models import Flow
from .parser import parse
from .tokenizer import TokenType
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

# Bound by the simulator when an api step fails
API_ERROR_VARIABLES = {"api_error", "api_status"}


@dataclass
class ValidationResult:
    """Result of flow validation."""

    is_valid: bool
    errors: list[str]
    warnings: list[str]


def validate_input(input: str, pattern: str | None) -> bool:
    """Check user input against a regex pattern.

    An empty pattern accepts everything. A pattern that does not compile also
    accepts everything, so a broken rule never blocks the user. Otherwise the
    pattern must match somewhere in the input.
    """
    if not pattern or not pattern.strip():
        return True

    try:
        regex = re.compile(pattern)
    except re.error as e:
        logger.warning(f"Invalid regex pattern {pattern!r}: {e}")
        return True

    return regex.search(input or "") is not None


def validate_flow(flow: Flow) -> ValidationResult:
    """
    Comprehensive flow validation.

    Args:
        flow: Flow to validate

    Returns:
        ValidationResult with errors and warnings
    """
    errors = []
    warnings = []

    # Basic structure validation
    errors.extend(flow.validate())

    # Conditions must parse
    errors.extend(check_conditions(flow))

    # Variable reference validation
    var_errors, var_warnings = check_variable_references(flow)
    errors.extend(var_errors)
    warnings.extend(var_warnings)

    # Broken patterns fail open at run time, so only warn
    warnings.extend(check_input_patterns(flow))

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def check_conditions(flow: Flow) -> list[str]:
    """Check every step condition parses."""
    errors = []
    for step in flow.steps:
        if not step.condition:
            continue
        try:
            parse(tokenize(step.condition))
        except ExpressionError as e:
            errors.append(f"Step '{step.step_name}': invalid condition {step.condition!r}: {e}")
    return errors


def condition_identifiers(condition: str) -> set[str]:
    """Return the variable names a condition reads."""
    return {str(token.value) for token in tokenize(condition) if token.type == TokenType.IDENTIFIER}


def check_variable_references(flow: Flow) -> tuple[list[str], list[str]]:
    """Check variables are bound before the step that reads them.

    Messages and URLs referencing an unknown variable are errors, since the
    placeholder would be shown verbatim. Conditions reading an unknown
    variable are warnings, since they read it as an empty string.
    """
    errors = []
    warnings = []

    available = set(flow.variables.keys())

    for step in flow.steps:
        if step.condition:
            for var in sorted(condition_identifiers(step.condition)):
                if var not in available:
                    warnings.append(
                        f"Step '{step.step_name}': condition reads '{var}' before it is set (evaluates as empty)"
                    )

        templates = {"message": step.message, "error_message": step.error_message}
        if step.api:
            templates["api.url"] = step.api.url

        for field_name, template in templates.items():
            for var in sorted(extract_variables(template or "")):
                if var not in available:
                    errors.append(
                        f"Step '{step.step_name}': {field_name} variable {{{{{var}}}}} is not defined. "
                        f"Available variables: {', '.join(sorted(available))}"
                    )

        # Add this step's bindings for the steps that follow
        if step.type == "input" and step.variable:
            available.add(step.variable)
        if step.type == "api" and step.api:
            available.update(step.api.response_mapping.keys())
            available.update(API_ERROR_VARIABLES)

    return errors, warnings


def check_input_patterns(flow: Flow) -> list[str]:
    """Warn about validation patterns that do not compile."""
    warnings = []
    for step in flow.steps:
        if not step.validation or not step.validation.strip():
            continue
        try:
            re.compile(step.validation)
        except re.error as e:
            warnings.append(
                f"Step '{step.step_name}': validation pattern {step.validation!r} is invalid ({e}); "
                f"all input will be accepted"
            )
    return warnings
