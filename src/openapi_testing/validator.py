"""Validator objects bound to a compiled OpenAPI definition."""
from __future__ import annotations

from typing import Any

from openapi_testing.adapters.message import MessageAdapter
from openapi_testing.engine import CompiledSpec
from openapi_testing.models import CanonicalRequest, CanonicalResponse, ValidationResult


class Validator:
    """Checks HTTP messages against one OpenAPI definition.

    Validators are created by
    :meth:`~openapi_testing.builder.ValidatorBuilder.get_validator` and are
    never mutated afterwards, so one instance can be reused across tests and
    threads.
    """

    __slots__ = ("_spec", "_adapter")

    def __init__(self, spec: CompiledSpec, adapter: MessageAdapter) -> None:
        self._spec = spec
        self._adapter = adapter

    @property
    def adapter(self) -> MessageAdapter:
        return self._adapter

    def _request(self, message: Any) -> CanonicalRequest:
        canonical = self._adapter.convert(message)
        if not isinstance(canonical, CanonicalRequest):
            raise TypeError(f"Expected a request, got {type(message).__name__}")
        return canonical

    def _response(self, message: Any) -> CanonicalResponse:
        canonical = self._adapter.convert(message)
        if not isinstance(canonical, CanonicalResponse):
            raise TypeError(f"Expected a response, got {type(message).__name__}")
        return canonical

    def validate(self, request: Any, response: Any) -> ValidationResult:
        """Validate a request and the response it produced.

        The response is checked against the operation the request routes to.
        """
        canonical = self._request(request)
        result = ValidationResult(self._spec.validate_request(canonical))
        return result.merge(
            ValidationResult(
                self._spec.validate_response(
                    self._response(response), canonical.path, canonical.method
                )
            )
        )

    def validate_request(self, request: Any) -> ValidationResult:
        return ValidationResult(self._spec.validate_request(self._request(request)))

    def validate_response(self, response: Any, path: str, method: str) -> ValidationResult:
        """Validate a response against the operation at *path* and *method*.

        *path* may be a concrete path (``/users/1``) or a template from the
        definition (``/users/{id}``); the leading slash is optional.
        """
        if not path.startswith("/"):
            path = "/" + path
        return ValidationResult(
            self._spec.validate_response(self._response(response), path, method)
        )

    def get(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "get")

    def post(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "post")

    def put(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "put")

    def patch(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "patch")

    def delete(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "delete")

    def head(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "head")

    def options(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "options")

    def trace(self, response: Any, path: str) -> ValidationResult:
        return self.validate_response(response, path, "trace")
