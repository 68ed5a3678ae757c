"""Core data models for openapi-contract-testing."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, Field

Headers = Tuple[Tuple[str, str], ...]


class DefinitionFormat(str, Enum):
    """Serialization format of an OpenAPI definition."""

    YAML = "yaml"
    JSON = "json"


class SourceKind(str, Enum):
    """Where an OpenAPI definition is loaded from."""

    REMOTE = "remote"
    FILE = "file"
    INLINE = "inline"


class Strategy(str, Enum):
    """Resolved loading method for a definition reference."""

    INLINE_YAML = "inline-yaml"
    INLINE_JSON = "inline-json"
    FILE_YAML = "file-yaml"
    FILE_JSON = "file-json"
    REMOTE_YAML = "remote-yaml"
    REMOTE_JSON = "remote-json"

    @property
    def kind(self) -> SourceKind:
        return SourceKind(self.value.split("-", 1)[0])

    @property
    def format(self) -> DefinitionFormat:
        return DefinitionFormat(self.value.split("-", 1)[1])

    @classmethod
    def of(cls, kind: SourceKind, fmt: DefinitionFormat) -> "Strategy":
        """Build the strategy matching a source kind and a format."""
        return cls(f"{SourceKind(kind).value}-{DefinitionFormat(fmt).value}")


class DefinitionSource(BaseModel):
    """Immutable reference to an OpenAPI definition.

    ``kind`` is left to ``None`` when the caller does not know whether
    ``definition`` is a URL, a file path or the document itself; the
    builder then asks the locator.
    """

    model_config = ConfigDict(frozen=True)

    definition: str = Field(
        ...,
        min_length=1,
        description="URL, file path or raw text of the OpenAPI definition",
    )
    format: DefinitionFormat = Field(
        ...,
        description="Declared serialization format (yaml or json)",
    )
    kind: Optional[SourceKind] = Field(
        None,
        description="Source kind; None to auto-detect",
    )

    def __repr__(self) -> str:
        """Human-readable representation."""
        preview = self.definition if len(self.definition) <= 40 else self.definition[:37] + "..."
        kind = self.kind.value if self.kind is not None else "auto"
        return f"DefinitionSource({preview!r}, format={self.format.value}, kind={kind})"


def _find_header(headers: Headers, name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers:
        if key.lower() == wanted:
            return value
    return None


@dataclass(frozen=True)
class CanonicalRequest:
    """Framework-independent view of an HTTP request."""

    method: str
    uri: str
    headers: Headers = ()
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())

    @property
    def path(self) -> str:
        return urlsplit(self.uri).path or "/"

    @property
    def query(self) -> Dict[str, List[str]]:
        return parse_qs(urlsplit(self.uri).query, keep_blank_values=True)

    def header(self, name: str) -> Optional[str]:
        """Return the first value of header *name* (case-insensitive)."""
        return _find_header(self.headers, name)


@dataclass(frozen=True)
class CanonicalResponse:
    """Framework-independent view of an HTTP response."""

    status_code: int
    headers: Headers = ()
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        """Return the first value of header *name* (case-insensitive)."""
        return _find_header(self.headers, name)


@dataclass(frozen=True)
class Violation:
    """A single schema rule broken by a request or response."""

    location: str
    rule: str
    message: str
    pointer: str = "$"

    def __str__(self) -> str:
        return f"[{self.location}] {self.pointer}: {self.message} ({self.rule})"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a message pair against a definition.

    A result with no violations is valid. An invalid result is a normal
    outcome, not an error: the contract was evaluated and broken.
    """

    violations: Tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return not self.violations

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(())

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(self.violations + other.violations)

    def __repr__(self) -> str:
        """Human-readable representation."""
        if self.valid:
            return "ValidationResult(valid)"
        return f"ValidationResult(invalid, violations={len(self.violations)})"


# Custom Exceptions
class OpenApiTestingError(Exception):
    """Base exception for all library errors."""
    pass


class DefinitionLoadError(OpenApiTestingError):
    """The definition could not be fetched, read or parsed."""

    def __init__(self, message: str, source: Any = None) -> None:
        self.source = source
        super().__init__(message)


class InvalidAdapterError(OpenApiTestingError):
    """A selected adapter type does not implement the expected interface."""

    def __init__(self, adapter: Any, expected: type) -> None:
        self.adapter = adapter
        self.expected = expected
        name = getattr(adapter, "__qualname__", None) or repr(adapter)
        super().__init__(
            f"{name} does not implement the {expected.__name__} interface"
        )


class IncompleteConfigurationError(OpenApiTestingError):
    """A validator was requested before a definition was bound."""
    pass


class DefinitionAlreadyBoundError(OpenApiTestingError):
    """A builder was asked to bind a second definition."""
    pass
