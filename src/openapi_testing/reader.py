"""Loading of OpenAPI definitions from URLs, files and raw text.

The reader is the only I/O boundary of the library. Every failure to fetch,
read or parse a definition surfaces as :class:`DefinitionLoadError`.

Tests that must not touch the network or the disk can either pass a reader
to :class:`~openapi_testing.builder.ValidatorBuilder` directly or install a
process-wide factory with :func:`set_spec_reader_factory`. The factory is
global state: configure it once at startup, never from several threads, and
reset it with ``set_spec_reader_factory(None)``.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import httpx
import yaml

from openapi_testing.models import DefinitionFormat, DefinitionLoadError

logger = logging.getLogger("openapi_testing.reader")

DEFAULT_TIMEOUT = 10.0

Document = Dict[str, Any]


def parse_document(
    text: str,
    fmt: Union[DefinitionFormat, str],
    origin: str = "<string>",
) -> Document:
    """Parse YAML or JSON text into an OpenAPI document mapping.

    Raises:
        DefinitionLoadError: If the text is malformed or is not a mapping.
    """
    fmt = DefinitionFormat(fmt)
    try:
        if fmt is DefinitionFormat.YAML:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise DefinitionLoadError(
            f"Malformed {fmt.value.upper()} definition in {origin}: {exc}",
            source=origin,
        ) from exc

    if not isinstance(data, dict):
        raise DefinitionLoadError(
            f"Definition in {origin} must be a mapping, "
            f"got {type(data).__name__}",
            source=origin,
        )
    return data


class SpecReader(ABC):
    """Abstract reader of remote and local OpenAPI definitions."""

    @abstractmethod
    def read_remote(self, url: str, fmt: DefinitionFormat) -> Document:
        """Fetch and parse the definition served at *url*."""
        pass

    @abstractmethod
    def read_local_file(self, path: str, fmt: DefinitionFormat) -> Document:
        """Read and parse the definition stored at *path*."""
        pass


class DefaultSpecReader(SpecReader):
    """Reader backed by httpx for URLs and the filesystem for paths."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client
        self._timeout = timeout

    def _fetch(self, url: str) -> str:
        if self._client is not None:
            response = self._client.get(url)
        else:
            with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
                response = client.get(url)
        response.raise_for_status()
        return response.text

    def read_remote(self, url: str, fmt: DefinitionFormat) -> Document:
        logger.info("Fetching OpenAPI definition from %s", url)
        try:
            text = self._fetch(url)
        except httpx.HTTPError as exc:
            raise DefinitionLoadError(
                f"Unable to fetch definition from {url}: {exc}", source=url
            ) from exc
        return parse_document(text, fmt, origin=url)

    def read_local_file(self, path: str, fmt: DefinitionFormat) -> Document:
        logger.info("Reading OpenAPI definition from %s", path)
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DefinitionLoadError(
                f"Unable to read definition file {path}: {exc}", source=path
            ) from exc
        return parse_document(text, fmt, origin=path)


_reader_factory: Optional[Callable[[], SpecReader]] = None


def set_spec_reader_factory(factory: Optional[Callable[[], SpecReader]] = None) -> None:
    """Install a process-wide reader factory, or reset it with ``None``."""
    global _reader_factory
    _reader_factory = factory


def get_spec_reader() -> SpecReader:
    """Return a reader from the installed factory, or the default reader."""
    if _reader_factory is None:
        return DefaultSpecReader()
    return _reader_factory()
