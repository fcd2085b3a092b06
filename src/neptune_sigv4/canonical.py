# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Canonical request serialization for the AWS Signature Version 4 algorithm.

The canonical request is a standardized string laying out the components used in
the signature. Two parties that build it from the same method, URI, headers and body
bytes always produce byte-identical output, which is what lets the service recompute
and compare a signature.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from hashlib import sha256
from typing import TypeAlias
from urllib.parse import quote, unquote_plus

from ._http import SUPPORTED_SCHEMES, URI
from .exceptions import InvalidRequestError
from .interfaces.http import FieldPosition, Fields

SUPPORTED_METHODS: tuple[str, ...] = (
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
)
# The authorization header carries the signature itself.
HEADERS_EXCLUDED_FROM_SIGNING: tuple[str, ...] = ("authorization",)
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}
EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

HeaderInput: TypeAlias = Fields | Mapping[str, str] | Iterable[tuple[str, str]]


@dataclass(kw_only=True, frozen=True)
class CanonicalRequest:
    """The six components of a SigV4 canonical request."""

    method: str
    canonical_uri: str
    canonical_query: str
    canonical_headers: tuple[tuple[str, str], ...]
    """Lower-cased header names with normalized values, sorted by name."""

    signed_headers: str
    """Sorted lower-cased header names joined by ``;``."""

    payload_hash: str
    """Hex encoded SHA-256 digest of the request body."""

    def header(self, name: str) -> str | None:
        """Get the canonical value of a signed header, if present."""
        name = name.lower()
        for header_name, value in self.canonical_headers:
            if header_name == name:
                return value
        return None

    def to_string(self) -> str:
        """Render the canonical request.

        The SigV4 specification defines the canonical request to be:
            <HTTPMethod>\n
            <CanonicalURI>\n
            <CanonicalQueryString>\n
            <CanonicalHeaders>\n
            <SignedHeaders>\n
            <HashedPayload>
        """
        canonical_headers = "".join(
            f"{name}:{value}\n" for name, value in self.canonical_headers
        )
        return (
            f"{self.method}\n"
            f"{self.canonical_uri}\n"
            f"{self.canonical_query}\n"
            f"{canonical_headers}\n"
            f"{self.signed_headers}\n"
            f"{self.payload_hash}"
        )

    def digest(self) -> str:
        """Hex encoded SHA-256 digest of the rendered canonical request."""
        return sha256(self.to_string().encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        return self.to_string()


class CanonicalRequestBuilder:
    """Builds :py:class:`CanonicalRequest` values.

    Every header passed in is signed except ``authorization``, so callers control
    exactly which headers participate in the signature.
    """

    def build(
        self,
        *,
        method: str,
        uri: URI | str,
        headers: HeaderInput,
        body: bytes | None,
    ) -> CanonicalRequest:
        """Build the canonical request for the given request components.

        :param method: The HTTP method, in any case.
        :param uri: The absolute destination URI.
        :param headers: Headers in their original order. Repeated names are allowed.
        :param body: The exact body bytes that will be transmitted, if any.
        :raises InvalidRequestError: If the method is unsupported or the URI is
            malformed.
        """
        canonical_method = self.canonical_method(method)
        destination = self._validate_uri(uri)
        canonical_headers = self.canonical_headers(headers)
        return CanonicalRequest(
            method=canonical_method,
            canonical_uri=self.canonical_path(destination.path),
            canonical_query=self.canonical_query(destination.query),
            canonical_headers=canonical_headers,
            signed_headers=";".join(name for name, _ in canonical_headers),
            payload_hash=self.payload_hash(body),
        )

    def canonical_method(self, method: str) -> str:
        normalized = method.strip().upper()
        if normalized not in SUPPORTED_METHODS:
            raise InvalidRequestError(
                f"Unsupported HTTP method {method!r}. Expected one of: "
                f"{', '.join(SUPPORTED_METHODS)}."
            )
        return normalized

    def canonical_path(self, path: str | None) -> str:
        if not path:
            return "/"
        normalized_path = _remove_dot_segments(path)
        return quote(string=normalized_path, safe="/")

    def canonical_query(self, query: str | None) -> str:
        if not query:
            return ""

        query_parts: list[tuple[str, str]] = []
        for segment in query.split("&"):
            if not segment:
                continue
            key, _, value = segment.partition("=")
            query_parts.append(
                (
                    quote(string=unquote_plus(key), safe=""),
                    quote(string=unquote_plus(value), safe=""),
                )
            )
        # key-value pairs must be in sorted order for their encoded forms.
        return "&".join(f"{key}={value}" for key, value in sorted(query_parts))

    def canonical_headers(self, headers: HeaderInput) -> tuple[tuple[str, str], ...]:
        grouped: dict[str, list[str]] = {}
        for name, value in _iter_headers(headers):
            normalized_name = name.strip().lower()
            if normalized_name in HEADERS_EXCLUDED_FROM_SIGNING:
                continue
            grouped.setdefault(normalized_name, []).append(" ".join(value.split()))
        return tuple(
            (name, ",".join(values)) for name, values in sorted(grouped.items())
        )

    def payload_hash(self, body: bytes | None) -> str:
        if body is None:
            return EMPTY_SHA256_HASH
        if not isinstance(body, bytes | bytearray):
            raise TypeError(
                f"Expected the exact body bytes to hash, but received {type(body)}."
            )
        return sha256(body).hexdigest()

    def _validate_uri(self, uri: URI | str) -> URI:
        if isinstance(uri, str):
            return URI.from_string(uri)
        if uri.scheme not in SUPPORTED_SCHEMES or not uri.host:
            raise InvalidRequestError(f"Malformed URI {uri.build()!r}.")
        return uri


def host_header_value(uri: URI) -> str:
    """The ``host`` header a transport sends for ``uri``.

    Default ports are omitted and userinfo is never part of the host header.
    """
    port = uri.port
    if port is not None and DEFAULT_PORTS.get(uri.scheme) == port:
        port = None
    return URI(scheme=uri.scheme, host=uri.host, port=port).netloc


def _iter_headers(headers: HeaderInput) -> Iterable[tuple[str, str]]:
    if isinstance(headers, Mapping):
        yield from headers.items()
        return
    if hasattr(headers, "get_by_type"):
        for field in headers.get_by_type(FieldPosition.HEADER):  # type: ignore
            yield from field.as_tuples()
        return
    yield from headers  # type: ignore


def _remove_dot_segments(path: str, remove_consecutive_slashes: bool = True) -> str:
    """Removes dot segments from a path per :rfc:`3986#section-5.2.4`.

    Optionally removes consecutive slashes, true by default.
    :param path: The path to modify.
    :param remove_consecutive_slashes: Whether to remove consecutive slashes.
    :returns: The path with dot segments removed.
    """
    output: list[str] = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        elif segment != "..":
            output.append(segment)
        elif output:
            output.pop()
    if path.startswith("/") and (not output or output[0]):
        output.insert(0, "")
    if output and path.endswith(("/.", "/..")):
        output.append("")
    result = "/".join(output)
    if remove_consecutive_slashes:
        result = re.sub(r"/{2,}", "/", result)
    return result
