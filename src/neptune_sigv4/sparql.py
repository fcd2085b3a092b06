# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""SPARQL 1.1 Protocol requests over a signing transport.

A signature covers exactly one body, so :py:class:`AsyncSparqlClient` creates a new
signing client for every request it sends while sharing one transport between them.
"""

import inspect
import logging
from dataclasses import replace
from typing import Final, Literal, TypeAlias
from urllib.parse import quote

from ._http import URI, HTTPRequest, tuples_to_fields
from .client import AsyncSigningHTTPClient
from .config import SigningConfig
from .interfaces.http import HTTPClient, HTTPRequestConfiguration, HTTPResponse
from .interfaces.identity import IdentityResolver

logger: Final = logging.getLogger(__name__)

SPARQL_PATH = "/sparql"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
DEFAULT_ACCEPT = "application/sparql-results+json"

QueryMethod: TypeAlias = Literal["GET", "POST"]


class SparqlRequestFactory:
    """Builds SPARQL query and update requests for one endpoint.

    Parameters are percent-encoded with ``%20`` for spaces. Queries go in the query
    string of a GET request or in a form-encoded POST body. Updates are always
    form-encoded POST bodies.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        accept: str = DEFAULT_ACCEPT,
        timeout: float | None = None,
    ) -> None:
        """
        :param endpoint: The endpoint URL. ``/sparql`` is used when it has no path,
            so ``https://my-cluster:8182`` and ``https://my-cluster:8182/sparql`` are
            equivalent.
        :param accept: ``Accept`` header sent with every request.
        :param timeout: Per-request timeout in seconds.
        """
        destination = URI.from_string(endpoint)
        if not destination.path or destination.path == "/":
            destination = replace(destination, path=SPARQL_PATH)
        self._destination = destination
        self._accept = accept
        self._timeout = timeout

    @property
    def destination(self) -> URI:
        return self._destination

    def query(self, query: str, *, method: QueryMethod = "GET") -> HTTPRequest:
        """Build a query request.

        :param query: The SPARQL query text.
        :param method: ``GET`` to send the query in the URL, ``POST`` to send it in a
            form-encoded body.
        """
        match method.upper():
            case "GET":
                encoded = f"query={_encode(query)}"
                existing = self._destination.query
                destination = replace(
                    self._destination,
                    query=f"{existing}&{encoded}" if existing else encoded,
                )
                return HTTPRequest(
                    destination=destination,
                    method="GET",
                    fields=tuples_to_fields([("Accept", self._accept)]),
                    timeout=self._timeout,
                )
            case "POST":
                return self._form_request("query", query)
            case _:
                raise ValueError(
                    f"Unsupported SPARQL query method {method!r}. Expected GET or POST."
                )

    def update(self, update: str) -> HTTPRequest:
        """Build an update request with a form-encoded ``update`` parameter."""
        return self._form_request("update", update)

    def _form_request(self, name: str, value: str) -> HTTPRequest:
        return HTTPRequest(
            destination=self._destination,
            method="POST",
            fields=tuples_to_fields(
                [("Content-Type", FORM_CONTENT_TYPE), ("Accept", self._accept)]
            ),
            body=f"{name}={_encode(value)}".encode("utf-8"),
            timeout=self._timeout,
        )


class AsyncSparqlClient:
    """Sends SPARQL queries and updates, signing each request when credentials are
    available.

    Without an identity resolver requests are sent unsigned, for endpoints that don't
    use IAM authentication.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        transport: HTTPClient,
        identity_resolver: IdentityResolver | None = None,
        config: SigningConfig | None = None,
        accept: str = DEFAULT_ACCEPT,
        timeout: float | None = None,
    ) -> None:
        """
        :param endpoint: The SPARQL endpoint URL.
        :param transport: The transport shared by every request.
        :param identity_resolver: Resolves credentials for signing. Requests are sent
            unsigned when this is ``None``.
        :param config: Signing configuration, resolved once here. Defaults to
            resolving both the service and the region.
        :param accept: ``Accept`` header sent with every request.
        :param timeout: Per-request timeout in seconds.
        :raises ConfigurationError: If signing is enabled and the region can't be
            resolved.
        """
        self._requests = SparqlRequestFactory(endpoint, accept=accept, timeout=timeout)
        self._transport = transport
        self._identity_resolver = identity_resolver
        self._config: SigningConfig | None = None
        if identity_resolver is not None:
            config = config or SigningConfig()
            self._config = config if config.resolved else config.resolve()

    @property
    def signed(self) -> bool:
        """Whether requests are signed."""
        return self._identity_resolver is not None

    @property
    def requests(self) -> SparqlRequestFactory:
        return self._requests

    async def query(
        self,
        query: str,
        *,
        method: QueryMethod = "GET",
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        return await self.send(
            self._requests.query(query, method=method), request_config=request_config
        )

    async def update(
        self,
        update: str,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        return await self.send(
            self._requests.update(update), request_config=request_config
        )

    async def send(
        self,
        request: HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Send a request, signed with a signing client bound to its body.

        :raises SigningFailedError: If the request couldn't be signed.
        """
        if self._identity_resolver is None:
            logger.debug("Sending unsigned %s request.", request.method)
            return await self._transport.send(request, request_config=request_config)

        body = request.body if isinstance(request.body, bytes | bytearray) else None
        signing_client = AsyncSigningHTTPClient(
            transport=self._transport,
            identity_resolver=self._identity_resolver,
            config=self._config,
            body=body,
        )
        return await signing_client.send(request, request_config=request_config)

    async def close(self) -> None:
        """Close the shared transport, if it can be closed."""
        if (close := getattr(self._transport, "close", None)) is not None:
            result = close()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "AsyncSparqlClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def _encode(value: str) -> str:
    return quote(value, safe="")
