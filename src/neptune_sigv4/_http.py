# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections import OrderedDict
from collections.abc import AsyncIterable, Iterable, Iterator
from copy import deepcopy
from dataclasses import dataclass
from functools import cached_property
from typing import Any
from urllib.parse import urlsplit, urlunparse

import neptune_sigv4.interfaces.http as interfaces_http

from .exceptions import InvalidRequestError
from .interfaces.http import FieldPosition, RequestBody

SUPPORTED_SCHEMES: tuple[str, ...] = ("http", "https")


class Field(interfaces_http.Field):
    """One named header or trailer with all of its values, in transmission order.

    Names keep the spelling they were given. :py:class:`Fields` compares them
    case-insensitively.
    """

    def __init__(
        self,
        *,
        name: str,
        values: Iterable[str] | None = None,
        kind: FieldPosition = FieldPosition.HEADER,
    ):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []
        self.kind = kind

    def add(self, value: str) -> None:
        """Append a value to a field."""
        self.values.append(value)

    def as_tuples(self) -> list[tuple[str, str]]:
        """One ``(name, value)`` pair per value."""
        return [(self.name, val) for val in self.values]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return (self.name, self.kind, self.values) == (
            other.name,
            other.kind,
            other.values,
        )

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, value={self.values!r}, kind={self.kind!r})"


class Fields(interfaces_http.Fields):
    """Headers and trailers keyed by lower-cased name, in insertion order."""

    def __init__(self, initial: Iterable[interfaces_http.Field] | None = None):
        """
        :param initial: Fields to start with. Names must be unique, ignoring case.
        :raises ValueError: If two initial fields share a name.
        """
        self.entries: OrderedDict[str, interfaces_http.Field] = OrderedDict()
        for field in initial or ():
            if field.name in self:
                raise ValueError(
                    "Field names of the initial list of fields must be unique. "
                    f"{field.name.lower()!r} appears more than once."
                )
            self.set_field(field)

    def set_field(self, field: interfaces_http.Field) -> None:
        """Add ``field``, replacing any field with the same name."""
        self[field.name] = field

    def __setitem__(self, name: str, field: interfaces_http.Field) -> None:
        if name.lower() != field.name.lower():
            raise ValueError(
                f"Supplied key {name} does not match Field.name "
                f"provided: {field.name.lower()}"
            )
        self.entries[name.lower()] = field

    def __getitem__(self, name: str) -> interfaces_http.Field:
        return self.entries[name.lower()]

    def __delitem__(self, name: str) -> None:
        del self.entries[name.lower()]

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.entries

    def get_by_type(self, kind: FieldPosition) -> list[interfaces_http.Field]:
        """All headers, or all trailers."""
        return [entry for entry in self.entries.values() if entry.kind is kind]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __iter__(self) -> Iterator[interfaces_http.Field]:
        yield from self.entries.values()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Fields({self.entries})"


def tuples_to_fields(
    tuples: Iterable[tuple[str, str]], *, kind: FieldPosition = FieldPosition.HEADER
) -> Fields:
    """Convert an ordered multimap of ``(name, value)`` pairs to ``Fields``.

    Repeated names, compared case-insensitively, are collapsed into one ``Field``
    whose values keep their original order. The first spelling of a name wins.
    """
    fields = Fields()
    for name, value in tuples:
        if name in fields:
            fields[name].add(value)
        else:
            fields.set_field(Field(name=name, values=[value], kind=kind))
    return fields


@dataclass(kw_only=True, frozen=True)
class URI(interfaces_http.URI):
    """Universal Resource Identifier, target location for a :py:class:`HTTPRequest`."""

    scheme: str = "https"
    """For example ``http`` or ``https``."""

    username: str | None = None
    """Username part of the userinfo URI component."""

    password: str | None = None
    """Password part of the userinfo URI component."""

    host: str
    """The hostname, for example ``my-cluster.us-east-1.neptune.amazonaws.com``."""

    port: int | None = None
    """An explicit port number."""

    path: str | None = None
    """Path component of the URI."""

    query: str | None = None
    """Query component of the URI as string."""

    fragment: str | None = None
    """Part of the URI specification, but may not be transmitted by a client."""

    @classmethod
    def from_string(cls, url: str) -> URI:
        """Parse an absolute ``http`` or ``https`` URL.

        The path and query are kept exactly as written, percent-encoding included.

        :raises InvalidRequestError: If the URL isn't absolute, uses another scheme,
            has no host, or has an invalid port.
        """
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as e:
            raise InvalidRequestError(f"Malformed URI {url!r}: {e}") from e
        scheme = parts.scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise InvalidRequestError(
                f"Unsupported URI scheme {parts.scheme!r} in {url!r}. Expected one "
                f"of: {', '.join(SUPPORTED_SCHEMES)}."
            )
        if not parts.hostname:
            raise InvalidRequestError(f"URI {url!r} has no host.")
        return cls(
            scheme=scheme,
            username=parts.username,
            password=parts.password,
            host=parts.hostname,
            port=port,
            path=parts.path or None,
            query=parts.query or None,
            fragment=parts.fragment or None,
        )

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{username}:{password}@{host}:{port}``

        ``username``, ``password``, and ``port`` are only included if set. ``password``
        is ignored, unless ``username`` is also set.
        """
        return self._netloc

    # cached_property does NOT behave like property, it actually allows for setting.
    # Therefore we need a layer of indirection.
    @cached_property
    def _netloc(self) -> str:
        if self.username is not None:
            password = "" if self.password is None else f":{self.password}"
            userinfo = f"{self.username}{password}@"
        else:
            userinfo = ""

        if self.port is not None:
            port = f":{self.port}"
        else:
            port = ""

        host = self.host
        if ":" in host and not host.startswith("["):
            # IPv6 literals must be bracketed in a netloc.
            host = f"[{host}]"

        return f"{userinfo}{host}{port}"

    def build(self) -> str:
        """Construct URI string representation.

        Returns a string of the form
        ``{scheme}://{username}:{password}@{host}:{port}{path}?{query}#{fragment}``
        """
        components = (
            self.scheme,
            self.netloc,
            self.path or "",
            "",  # params
            self.query,
            self.fragment,
        )
        return urlunparse(components)


class HTTPRequest(interfaces_http.HTTPRequest):
    def __init__(
        self,
        *,
        destination: URI,
        method: str,
        fields: Fields | None = None,
        body: RequestBody = None,
        timeout: float | None = None,
    ):
        self.destination = destination
        self.method = method
        self.fields = fields if fields is not None else Fields()
        self.body = body
        self.timeout = timeout

    def __deepcopy__(self, memo: dict[int, Any] | None = None) -> HTTPRequest:
        """Copy the fields only. The destination is immutable and the body may be a
        stream, so both are shared with the copy."""
        memo = {} if memo is None else memo
        if id(self) not in memo:
            memo[id(self)] = type(self)(
                destination=self.destination,
                method=self.method,
                fields=deepcopy(self.fields, memo),
                body=self.body,
                timeout=self.timeout,
            )
        return memo[id(self)]

    def __repr__(self) -> str:
        return (
            f"HTTPRequest(method={self.method!r}, "
            f"destination={self.destination.build()!r}, fields={self.fields!r})"
        )


@dataclass(kw_only=True)
class HTTPResponse(interfaces_http.HTTPResponse):
    """Basic implementation of :py:class:`.interfaces_http.HTTPResponse`."""

    status: int
    """The 3 digit response status code (1xx, 2xx, 3xx, 4xx, 5xx)."""

    fields: Fields
    """HTTP header and trailer fields."""

    body: RequestBody = b""
    """The response payload."""

    reason: str | None = None
    """Optional string provided by the server explaining the status."""

    def consume_body(self) -> bytes:
        """Read the response body into bytes."""
        return read_body(self.body)

    async def consume_body_async(self) -> bytes:
        """Read the response body into bytes, awaiting async streams."""
        return await read_body_async(self.body)


def read_body(body: RequestBody) -> bytes:
    """Synchronously reads a body into bytes.

    :param body: The body to read from.
    :raises TypeError: If the body is an async type.
    """
    match body:
        case None:
            return b""
        case bytes():
            return body
        case bytearray():
            return bytes(body)
        case Iterable():
            return b"".join(body)
        case _:
            raise TypeError(
                f"Expected bytes or Iterable[bytes] body, but was {type(body)}. Use "
                "the async signing client for async bodies."
            )


async def read_body_async(body: RequestBody) -> bytes:
    """Asynchronously reads a body into bytes.

    :param body: The body to read from.
    """
    if isinstance(body, AsyncIterable):
        full = b""
        async for chunk in body:
            full += chunk
        return full
    return read_body(body)
