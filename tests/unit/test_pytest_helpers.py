"""Tests for the reusable contract assertions."""
import httpx
import pytest

from openapi_testing import Validator, ValidatorBuilder
from openapi_testing.pytest_helpers import assert_conforms, assert_violates


@pytest.fixture
def validator(json_text: str) -> Validator:
    return ValidatorBuilder.from_json_string(json_text).get_validator()


def test_assert_conforms_passes(validator: Validator) -> None:
    request = httpx.Request("GET", "https://api.example.com/users/1")
    response = httpx.Response(200, json={"id": 1, "name": "Ada"})
    assert assert_conforms(validator, request, response).valid


def test_assert_conforms_lists_violations(validator: Validator) -> None:
    request = httpx.Request("GET", "https://api.example.com/users/1")
    response = httpx.Response(200, json={"id": 1})
    with pytest.raises(AssertionError, match="'name' is a required property"):
        assert_conforms(validator, request, response)


def test_assert_violates(validator: Validator) -> None:
    request = httpx.Request("GET", "https://api.example.com/users/1")
    response = httpx.Response(200, json={"name": "Ada"})
    result = assert_violates(validator, request, response)
    assert len(result.violations) == 1


def test_assert_violates_fails_on_conforming_pair(validator: Validator) -> None:
    request = httpx.Request("GET", "https://api.example.com/users/1")
    response = httpx.Response(200, json={"id": 1, "name": "Ada"})
    with pytest.raises(AssertionError, match="expected to violate"):
        assert_violates(validator, request, response)
