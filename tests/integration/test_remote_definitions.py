"""End-to-end loading of remote definitions through httpx."""
from typing import Any, List

import httpx
import pytest

from openapi_testing import (
    DefaultSpecReader,
    DefinitionLoadError,
    Strategy,
    ValidatorBuilder,
    set_spec_reader_factory,
)


@pytest.fixture
def served(yaml_text: str) -> List[str]:
    """Serve the YAML fixture at https://api.example.com/openapi.yaml."""
    requested: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.path == "/openapi.yaml":
            return httpx.Response(200, text=yaml_text)
        return httpx.Response(404)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    set_spec_reader_factory(lambda: DefaultSpecReader(client=client))
    return requested


@pytest.mark.integration
class TestRemoteDefinitions:
    """Remote strategy with the default reader over a mock transport."""

    def test_remote_yaml_validates_messages(self, served: List[str]) -> None:
        builder = ValidatorBuilder.from_yaml("https://api.example.com/openapi.yaml")
        validator = builder.get_validator()

        request = httpx.Request("GET", "https://api.example.com/v1/users/1")
        response = httpx.Response(200, json={"id": 1, "name": "Ada", "email": None})

        assert builder.strategy is Strategy.REMOTE_YAML
        assert served == ["https://api.example.com/openapi.yaml"]
        assert validator.validate(request, response).valid

    def test_remote_not_found(self, served: List[str]) -> None:
        with pytest.raises(DefinitionLoadError, match="404"):
            ValidatorBuilder.from_yaml_url("https://api.example.com/missing.yaml")

    def test_ftp_url_is_not_fetched(self, served: List[str]) -> None:
        with pytest.raises(DefinitionLoadError):
            ValidatorBuilder.from_yaml("ftp://api.example.com/openapi.yaml")
        assert served == []

    def test_validator_reused_across_pairs(self, served: Any) -> None:
        validator = ValidatorBuilder.from_yaml("https://api.example.com/openapi.yaml").get_validator()
        for user_id in range(1, 4):
            request = httpx.Request("GET", f"https://api.example.com/v1/users/{user_id}")
            response = httpx.Response(200, json={"id": user_id, "name": f"user-{user_id}"})
            assert validator.validate(request, response).valid
        assert len(served) == 1
