"""Classification of OpenAPI definition references."""

import logging
import os
from typing import Union

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from openapi_testing.models import DefinitionFormat, SourceKind, Strategy

logger = logging.getLogger("openapi_testing.locator")

_HTTP_URL: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


def is_remote_url(definition: str) -> bool:
    """Return True when *definition* is a well-formed http(s) URL."""
    if not definition or any(ch.isspace() for ch in definition):
        return False
    if not definition.lower().startswith(("http://", "https://")):
        return False
    try:
        _HTTP_URL.validate_python(definition)
    except PydanticValidationError:
        return False
    return True


def is_local_file(definition: str) -> bool:
    """Return True when *definition* names an existing regular file."""
    # os.path.isfile swallows OSError/ValueError (overlong or NUL-bearing text)
    return os.path.isfile(definition)


def detect_kind(definition: str) -> SourceKind:
    """Infer the source kind of *definition*.

    The URL check runs before the file check, so a string that is both a
    URL and an existing path is remote. Nothing is memoized.
    """
    if is_remote_url(definition):
        return SourceKind.REMOTE
    if is_local_file(definition):
        return SourceKind.FILE
    return SourceKind.INLINE


def classify(definition: str, fmt: Union[DefinitionFormat, str]) -> Strategy:
    """Pick the loading strategy for a definition and its declared format.

    Args:
        definition: URL, file path or raw text of the OpenAPI definition.
        fmt: ``"yaml"`` or ``"json"``.

    Returns:
        One of the six :class:`Strategy` members.

    Raises:
        ValueError: If *fmt* is not a known format.
    """
    strategy = Strategy.of(detect_kind(definition), DefinitionFormat(fmt))
    logger.debug("Classified definition as %s", strategy.value)
    return strategy
