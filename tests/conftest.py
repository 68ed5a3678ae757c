"""Shared pytest fixtures for openapi-contract-testing tests."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, List

import pytest

from openapi_testing import DefinitionFormat, SpecReader, set_spec_reader_factory
from openapi_testing.reader import parse_document

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeSpecReader(SpecReader):
    """Reader serving canned documents without network or disk access."""

    def __init__(self, documents: Dict[str, str]) -> None:
        self.documents = documents
        self.calls: List[tuple] = []

    def read_remote(self, url: str, fmt: DefinitionFormat) -> Dict[str, Any]:
        self.calls.append(("remote", url, fmt))
        return parse_document(self.documents[url], fmt, origin=url)

    def read_local_file(self, path: str, fmt: DefinitionFormat) -> Dict[str, Any]:
        self.calls.append(("file", path, fmt))
        return parse_document(self.documents[path], fmt, origin=path)


@pytest.fixture(autouse=True)
def _reset_reader_factory() -> Iterator[None]:
    """Keep the process-wide reader hook from leaking between tests."""
    set_spec_reader_factory(None)
    yield
    set_spec_reader_factory(None)


@pytest.fixture
def yaml_path() -> Path:
    """Path to the YAML (OpenAPI 3.0) fixture definition."""
    return FIXTURES_DIR / "openapi.yaml"


@pytest.fixture
def json_path() -> Path:
    """Path to the JSON (OpenAPI 3.1) fixture definition."""
    return FIXTURES_DIR / "openapi.json"


@pytest.fixture
def yaml_text(yaml_path: Path) -> str:
    return yaml_path.read_text(encoding="utf-8")


@pytest.fixture
def json_text(json_path: Path) -> str:
    return json_path.read_text(encoding="utf-8")


@pytest.fixture
def fake_reader(yaml_text: str, json_text: str) -> FakeSpecReader:
    """Fake reader knowing one remote and one local copy of each fixture."""
    return FakeSpecReader({
        "https://api.example.com/openapi.yaml": yaml_text,
        "https://api.example.com/openapi.json": json_text,
        "/etc/specs/openapi.yaml": yaml_text,
        "/etc/specs/openapi.json": json_text,
    })
