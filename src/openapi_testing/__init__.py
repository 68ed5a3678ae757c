"""
openapi-contract-testing: check HTTP messages against OpenAPI definitions.

A definition is given as a URL, a file path or raw text, in YAML or JSON.
The builder works out how to load it, and the validator it produces checks
request/response pairs against it.

Example:
    >>> from openapi_testing import ValidatorBuilder
    >>> validator = ValidatorBuilder.from_yaml("openapi.yaml").get_validator()  # doctest: +SKIP
    >>> validator.validate(request, response).valid  # doctest: +SKIP
    True

Messages are read through a :class:`MessageAdapter` (httpx by default) and
caches through a :class:`CacheAdapter` (any mutable mapping by default).
Both can be replaced with ``set_message_adapter`` and ``set_cache_adapter``.
"""

__version__ = "1.0.0"

# Core data models
from openapi_testing.models import (
    CanonicalRequest,
    CanonicalResponse,
    DefinitionAlreadyBoundError,
    DefinitionFormat,
    DefinitionLoadError,
    DefinitionSource,
    IncompleteConfigurationError,
    InvalidAdapterError,
    OpenApiTestingError,
    SourceKind,
    Strategy,
    ValidationResult,
    Violation,
)

# Definition loading
from openapi_testing.locator import classify
from openapi_testing.reader import (
    DefaultSpecReader,
    SpecReader,
    get_spec_reader,
    parse_document,
    set_spec_reader_factory,
)

# Adapters
from openapi_testing.adapters import (
    CacheAdapter,
    CacheStore,
    HttpxAdapter,
    KeyValueCacheAdapter,
    MappingCacheAdapter,
    MessageAdapter,
)

# Building and validating
from openapi_testing.builder import ValidatorBuilder
from openapi_testing.validator import Validator

__all__ = [
    # Core data models
    "CanonicalRequest",
    "CanonicalResponse",
    "DefinitionFormat",
    "DefinitionSource",
    "SourceKind",
    "Strategy",
    "ValidationResult",
    "Violation",
    # Errors
    "OpenApiTestingError",
    "DefinitionAlreadyBoundError",
    "DefinitionLoadError",
    "IncompleteConfigurationError",
    "InvalidAdapterError",
    # Definition loading
    "classify",
    "DefaultSpecReader",
    "SpecReader",
    "get_spec_reader",
    "parse_document",
    "set_spec_reader_factory",
    # Adapters
    "CacheAdapter",
    "CacheStore",
    "HttpxAdapter",
    "KeyValueCacheAdapter",
    "MappingCacheAdapter",
    "MessageAdapter",
    # Building and validating
    "ValidatorBuilder",
    "Validator",
]
