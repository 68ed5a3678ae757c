"""Reusable assertions for contract tests.

Consumers can import these to write their own contract assertions:
    from openapi_testing.pytest_helpers import assert_conforms, assert_violates
"""
from __future__ import annotations

from typing import Any

from openapi_testing.models import ValidationResult
from openapi_testing.validator import Validator


def assert_conforms(validator: Validator, request: Any, response: Any) -> ValidationResult:
    """Assert a request/response pair conforms to the definition."""
    result = validator.validate(request, response)
    if not result.valid:
        raise AssertionError(
            "Message pair does not conform to the OpenAPI definition:\n"
            + "\n".join(f"  {violation}" for violation in result.violations)
        )
    return result


def assert_violates(validator: Validator, request: Any, response: Any) -> ValidationResult:
    """Assert a request/response pair DOES NOT conform (expected invalid)."""
    result = validator.validate(request, response)
    if result.valid:
        raise AssertionError(
            "Message pair was expected to violate the OpenAPI definition but conforms."
        )
    return result
