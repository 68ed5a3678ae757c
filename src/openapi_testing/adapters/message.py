"""Conversion of framework HTTP messages into canonical requests/responses."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Union

import httpx

from openapi_testing.models import CanonicalRequest, CanonicalResponse, Headers

CanonicalMessage = Union[CanonicalRequest, CanonicalResponse]


class MessageAdapter(ABC):
    """Abstract converter from an HTTP framework's message objects.

    Implementations must accept the request and response types of one
    framework and return the matching canonical message. Any other type
    is a caller error and should raise ``TypeError``.
    """

    @abstractmethod
    def convert(self, message: Any) -> CanonicalMessage:
        """Convert a framework message into its canonical form."""
        pass


class HttpxAdapter(MessageAdapter):
    """Adapter for :class:`httpx.Request` and :class:`httpx.Response`.

    Also covers Starlette and FastAPI test clients, which are built on httpx.
    """

    def convert(self, message: Any) -> CanonicalMessage:
        if isinstance(message, httpx.Response):
            return CanonicalResponse(
                status_code=message.status_code,
                headers=_headers(message.headers),
                body=message.read(),
            )
        if isinstance(message, httpx.Request):
            return CanonicalRequest(
                method=message.method,
                uri=str(message.url),
                headers=_headers(message.headers),
                body=message.read(),
            )
        raise TypeError(
            f"{type(self).__name__} cannot convert {type(message).__name__} objects"
        )


def _headers(headers: httpx.Headers) -> Headers:
    return tuple((name, value) for name, value in headers.multi_items())
