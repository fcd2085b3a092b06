# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Structural types shared by signing clients and transports.

Signing clients only rely on these protocols, so any transport whose requests and
responses have this shape can be wrapped.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import AsyncIterable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeAlias, runtime_checkable

RequestBody: TypeAlias = bytes | Iterable[bytes] | AsyncIterable[bytes] | None
"""Body of a request: fixed bytes, a sync or async stream of chunks, or nothing."""


class FieldPosition(Enum):
    """Where a field is placed in an HTTP message."""

    HEADER = 0
    """Sent before the body. Headers can be signed."""

    TRAILER = 1
    """Sent after a chunked body. Trailers never participate in a signature."""


class Field(Protocol):
    """A field name with one or more values, in transmission order."""

    name: str
    values: list[str]
    kind: FieldPosition = FieldPosition.HEADER

    def add(self, value: str) -> None: ...

    def as_tuples(self) -> list[tuple[str, str]]:
        """One ``(name, value)`` pair per value."""
        ...


class Fields(Protocol):
    """Fields of one message, looked up by name without regard to case."""

    entries: OrderedDict[str, Field]

    def set_field(self, field: Field) -> None: ...

    def __setitem__(self, name: str, field: Field) -> None: ...

    def __getitem__(self, name: str) -> Field: ...

    def __delitem__(self, name: str) -> None: ...

    def __contains__(self, name: str) -> bool: ...

    def __iter__(self) -> Iterator[Field]: ...

    def __len__(self) -> int: ...

    def get_by_type(self, kind: FieldPosition) -> list[Field]: ...


@runtime_checkable
class URI(Protocol):
    """An absolute ``http`` or ``https`` destination.

    ``path`` and ``query`` hold exactly the characters that go on the wire, with
    percent-encoding already applied.
    """

    scheme: str
    username: str | None
    password: str | None
    host: str
    port: int | None
    path: str | None
    query: str | None
    fragment: str | None

    def build(self) -> str:
        """The full URL string."""
        ...

    @property
    def netloc(self) -> str:
        """``[username[:password]@]host[:port]``"""
        ...


class HTTPRequest(Protocol):
    """A request handed to a transport.

    :param destination: Where the request is sent.
    :param method: The HTTP method, for example ``GET``.
    :param fields: Headers and trailers.
    :param body: The payload, if any.
    :param timeout: Per-request timeout in seconds, if any.
    """

    destination: URI
    method: str
    fields: Fields
    body: RequestBody
    timeout: float | None


class HTTPResponse(Protocol):
    """A response returned by a transport."""

    status: int
    fields: Fields
    reason: str | None
    body: RequestBody


@dataclass(kw_only=True)
class HTTPClientConfiguration:
    """Settings for every request a transport sends."""


@dataclass(kw_only=True)
class HTTPRequestConfiguration:
    """Settings for a single send.

    :param read_timeout: Seconds to wait for the first byte of the response once the
        connection is open.
    """

    read_timeout: float | None = None


class HTTPClient(Protocol):
    """An asynchronous transport."""

    async def send(
        self,
        request: HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Send ``request`` and return the response.

        :param request: The request to send as is.
        :param request_config: Settings for this send only.
        """
        ...


class SyncHTTPClient(Protocol):
    """A synchronous transport."""

    def send(
        self,
        request: HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Send ``request`` and return the response.

        :param request: The request to send as is.
        :param request_config: Settings for this send only.
        """
        ...
