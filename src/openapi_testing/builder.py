"""Construction of validators from OpenAPI definitions.

Example:
    >>> builder = ValidatorBuilder.from_yaml("tests/fixtures/openapi.yaml")
    >>> validator = builder.get_validator()
    >>> result = validator.validate(request, response)  # doctest: +SKIP

A builder binds exactly one definition. Adapter selections and the cache
may be changed in any order before :meth:`ValidatorBuilder.get_validator`,
which can be called repeatedly; every validator it returns shares the same
loaded document.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Optional, Type, Union

from pydantic import ValidationError as PydanticValidationError

from openapi_testing.adapters.cache import CacheAdapter, CacheStore, MappingCacheAdapter
from openapi_testing.adapters.message import HttpxAdapter, MessageAdapter
from openapi_testing.engine import OpenApiEngine, bind_schema
from openapi_testing.locator import detect_kind
from openapi_testing.models import (
    DefinitionAlreadyBoundError,
    DefinitionFormat,
    DefinitionLoadError,
    DefinitionSource,
    IncompleteConfigurationError,
    InvalidAdapterError,
    SourceKind,
    Strategy,
)
from openapi_testing.reader import SpecReader, get_spec_reader, parse_document
from openapi_testing.validator import Validator

logger = logging.getLogger("openapi_testing.builder")


def _check_adapter(candidate: Any, expected: type) -> None:
    if not (
        isinstance(candidate, type)
        and issubclass(candidate, expected)
        and not inspect.isabstract(candidate)
    ):
        raise InvalidAdapterError(candidate, expected)


class ValidatorBuilder:
    """Builds :class:`~openapi_testing.validator.Validator` objects."""

    def __init__(self, reader: Optional[SpecReader] = None) -> None:
        self._reader = reader
        self._engine: Optional[OpenApiEngine] = None
        self._strategy: Optional[Strategy] = None
        self._adapter: Type[MessageAdapter] = HttpxAdapter
        self._cache_adapter: Type[CacheAdapter] = MappingCacheAdapter
        self._cache: Optional[CacheStore] = None
        self._ttl: Optional[int] = None

    # -- entry points -----------------------------------------------------

    @classmethod
    def from_definition(
        cls,
        definition: str,
        format: Union[DefinitionFormat, str],
        kind: Union[SourceKind, str, None] = None,
        *,
        reader: Optional[SpecReader] = None,
    ) -> "ValidatorBuilder":
        """Create a builder bound to *definition*.

        Args:
            definition: URL, file path or raw text of the definition.
            format: ``"yaml"`` or ``"json"``.
            kind: ``"remote"``, ``"file"`` or ``"inline"``; ``None`` lets the
                locator decide.
            reader: Reader used for URLs and files. Defaults to the reader
                from :func:`~openapi_testing.reader.get_spec_reader`.

        Raises:
            DefinitionLoadError: If the definition cannot be loaded.
        """
        fmt = DefinitionFormat(format)
        try:
            source = DefinitionSource(
                definition=definition,
                format=fmt,
                kind=SourceKind(kind) if kind is not None else None,
            )
        except PydanticValidationError as exc:
            raise DefinitionLoadError(
                f"Invalid {fmt.value.upper()} definition {definition!r}: "
                f"{exc.errors()[0]['msg']}",
                source=definition,
            ) from exc
        return cls(reader=reader).bind(source)

    @classmethod
    def from_yaml(cls, definition: str, *, reader: Optional[SpecReader] = None) -> "ValidatorBuilder":
        return cls.from_definition(definition, DefinitionFormat.YAML, reader=reader)

    @classmethod
    def from_json(cls, definition: str, *, reader: Optional[SpecReader] = None) -> "ValidatorBuilder":
        return cls.from_definition(definition, DefinitionFormat.JSON, reader=reader)

    @classmethod
    def from_yaml_file(cls, path: str, *, reader: Optional[SpecReader] = None) -> "ValidatorBuilder":
        return cls.from_definition(path, DefinitionFormat.YAML, SourceKind.FILE, reader=reader)

    @classmethod
    def from_json_file(cls, path: str, *, reader: Optional[SpecReader] = None) -> "ValidatorBuilder":
        return cls.from_definition(path, DefinitionFormat.JSON, SourceKind.FILE, reader=reader)

    @classmethod
    def from_yaml_url(cls, url: str, *, reader: Optional[SpecReader] = None) -> "ValidatorBuilder":
        return cls.from_definition(url, DefinitionFormat.YAML, SourceKind.REMOTE, reader=reader)

    @classmethod
    def from_json_url(cls, url: str, *, reader: Optional[SpecReader] = None) -> "ValidatorBuilder":
        return cls.from_definition(url, DefinitionFormat.JSON, SourceKind.REMOTE, reader=reader)

    @classmethod
    def from_yaml_string(cls, text: str) -> "ValidatorBuilder":
        return cls.from_definition(text, DefinitionFormat.YAML, SourceKind.INLINE)

    @classmethod
    def from_json_string(cls, text: str) -> "ValidatorBuilder":
        return cls.from_definition(text, DefinitionFormat.JSON, SourceKind.INLINE)

    # -- binding ----------------------------------------------------------

    @property
    def strategy(self) -> Optional[Strategy]:
        """Strategy used to load the bound definition, None while unbound."""
        return self._strategy

    @property
    def is_bound(self) -> bool:
        return self._engine is not None

    def bind(self, source: DefinitionSource) -> "ValidatorBuilder":
        """Load *source* and bind this builder to it.

        Raises:
            DefinitionAlreadyBoundError: If a definition is already bound.
            DefinitionLoadError: If the definition cannot be loaded.
        """
        if self._engine is not None:
            raise DefinitionAlreadyBoundError(
                f"Builder is already bound ({self._strategy.value if self._strategy else '?'}); "
                f"create a new builder for {source!r}"
            )

        kind = source.kind if source.kind is not None else detect_kind(source.definition)
        strategy = Strategy.of(kind, source.format)
        logger.debug("Loading %r with strategy %s", source, strategy.value)

        if kind is SourceKind.INLINE:
            document = parse_document(source.definition, source.format)
        else:
            reader = self._reader if self._reader is not None else get_spec_reader()
            if kind is SourceKind.REMOTE:
                document = reader.read_remote(source.definition, source.format)
            else:
                document = reader.read_local_file(source.definition, source.format)

        self._engine = bind_schema(document)
        self._strategy = strategy
        return self

    # -- configuration ----------------------------------------------------

    def set_message_adapter(self, adapter: Type[MessageAdapter]) -> "ValidatorBuilder":
        """Select the message adapter class used by built validators.

        Raises:
            InvalidAdapterError: If *adapter* is not a MessageAdapter subclass.
        """
        _check_adapter(adapter, MessageAdapter)
        self._adapter = adapter
        return self

    def set_cache_adapter(self, adapter: Type[CacheAdapter]) -> "ValidatorBuilder":
        """Select the cache adapter class used by :meth:`set_cache`.

        Raises:
            InvalidAdapterError: If *adapter* is not a CacheAdapter subclass.
        """
        _check_adapter(adapter, CacheAdapter)
        self._cache_adapter = adapter
        return self

    def set_cache(self, cache: Any, ttl: Optional[int] = None) -> "ValidatorBuilder":
        """Cache compiled definitions in *cache* for *ttl* seconds.

        *cache* is converted with the currently selected cache adapter.
        """
        self._cache = self._cache_adapter().convert(cache)
        self._ttl = ttl
        return self

    def get_validator(self) -> Validator:
        """Return a new validator for the bound definition.

        Raises:
            IncompleteConfigurationError: If no definition is bound.
        """
        if self._engine is None:
            raise IncompleteConfigurationError(
                "No OpenAPI definition is bound; call bind() or use a from_* constructor"
            )
        self._engine.set_cache(self._cache, self._ttl)
        return Validator(self._engine.compile(), self._adapter())
