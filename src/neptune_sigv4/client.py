# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Transport decorators that sign every outgoing request with SigV4.

A signing client wraps an existing transport, implements the same ``send``
operation, and only intercepts the outgoing request. Each client is bound to the
exact body bytes it signs. A SPARQL client that sends a different query or update
needs a new signing client for that body::

    transport = AIOHTTPClient()
    resolver = StaticCredentialsResolver.from_keys(access_key_id, secret_access_key)
    body = b"update=INSERT+DATA+%7B%7D"
    async with AsyncSigningHTTPClient.for_neptune(
        transport, resolver, region="us-east-1", body=body
    ) as client:
        response = await client.send(request)
"""

import inspect
import logging
from collections.abc import Awaitable
from copy import deepcopy
from typing import Any, Final, Self

from ._http import Field, HTTPRequest
from .canonical import CanonicalRequestBuilder, host_header_value
from .config import NEPTUNE_ANALYTICS_SERVICE_NAME, NEPTUNE_SERVICE_NAME, SigningConfig
from .exceptions import InvalidRequestError, SigningFailedError
from .interfaces.http import (
    FieldPosition,
    HTTPClient,
    HTTPClientConfiguration,
    HTTPRequestConfiguration,
    HTTPResponse,
    RequestBody,
    SyncHTTPClient,
)
from .interfaces.http import HTTPRequest as _HTTPRequest
from .interfaces.identity import AWSCredentialsIdentity, IdentityResolver
from .signers import (
    AMZ_DATE_HEADER,
    AUTHORIZATION_HEADER,
    SECURITY_TOKEN_HEADER,
    SigningContext,
    SigV4Signature,
    SigV4Signer,
)

logger: Final = logging.getLogger(__name__)

# Headers the signing clients set themselves.
_GENERATED_HEADERS: Final = frozenset(
    {AMZ_DATE_HEADER.lower(), SECURITY_TOKEN_HEADER.lower()}
)


class _RequestSigner:
    """Signs requests for one configured body.

    Nothing is cached between calls. Every call takes a fresh timestamp and the
    identity it is handed.
    """

    def __init__(self, *, config: SigningConfig, body: bytes | None) -> None:
        self._config = config
        self._body = body
        self._builder = CanonicalRequestBuilder()
        self._signer = SigV4Signer()

    @property
    def body(self) -> bytes | None:
        return self._body

    def sign(
        self, request: _HTTPRequest, identity: AWSCredentialsIdentity
    ) -> HTTPRequest:
        payload = self.resolve_body(request.body)
        context = SigningContext.now(
            service=self._config.service, region=self._config.region
        )
        logger.debug(
            "Signing %s request to %s://%s%s for %s in %s.",
            request.method,
            request.destination.scheme,
            request.destination.host,
            request.destination.path or "/",
            context.service,
            context.region,
        )
        canonical_request = self._builder.build(
            method=request.method,
            uri=request.destination,  # type: ignore
            headers=self.signing_headers(request, context, identity),
            body=payload,
        )
        signature = self._signer.sign(
            canonical_request=canonical_request, context=context, identity=identity
        )
        logger.debug("Signed headers: %s", signature.signed_headers)
        return self.signed_request(request, signature, identity)

    def resolve_body(self, body: RequestBody) -> bytes | None:
        """Return the bytes to hash for the body the request declares.

        A request without a body is hashed as empty. Byte bodies must match the
        configured bytes exactly. Streamed bodies are not read; the configured bytes
        stand in for them.
        """
        if body is None:
            return None
        if isinstance(body, bytes | bytearray):
            if bytes(body) != (self._body or b""):
                raise InvalidRequestError(
                    "Request body mismatch: the request body differs from the body "
                    "this client was configured to sign. Create a new signing client "
                    "for every distinct request body."
                )
            return self._body
        if self._body is None:
            raise InvalidRequestError(
                "The request declares a streamed body, but this client was not "
                "configured with the exact body bytes to sign."
            )
        return self._body

    def signing_headers(
        self,
        request: _HTTPRequest,
        context: SigningContext,
        identity: AWSCredentialsIdentity,
    ) -> list[tuple[str, str]]:
        headers: list[tuple[str, str]] = []
        for field in request.fields.get_by_type(FieldPosition.HEADER):
            if field.name.lower() in _GENERATED_HEADERS:
                continue
            headers.extend(field.as_tuples())
        if "host" not in request.fields:
            host = host_header_value(request.destination)  # type: ignore
            headers.append(("host", host))
        headers.append((AMZ_DATE_HEADER.lower(), context.amz_date))
        if identity.session_token is not None:
            headers.append((SECURITY_TOKEN_HEADER.lower(), identity.session_token))
        return headers

    def signed_request(
        self,
        request: _HTTPRequest,
        signature: SigV4Signature,
        identity: AWSCredentialsIdentity,
    ) -> HTTPRequest:
        fields = deepcopy(request.fields)
        generated = {
            AUTHORIZATION_HEADER: signature.authorization,
            AMZ_DATE_HEADER: signature.amz_date,
        }
        if identity.session_token is not None:
            generated[SECURITY_TOKEN_HEADER] = identity.session_token
        for name, value in generated.items():
            if name in fields:
                del fields[name]
            fields.set_field(Field(name=name, values=[value]))

        # The body is re-attached as is. Streams must not be read here.
        return HTTPRequest(
            destination=request.destination,  # type: ignore
            method=request.method,
            fields=fields,  # type: ignore
            body=request.body,
            timeout=request.timeout,
        )


class _SigningClientBase:
    def __init__(
        self,
        *,
        transport: Any,
        identity_resolver: IdentityResolver,
        config: SigningConfig | None = None,
        service: str | None = None,
        region: str | None = None,
        body: bytes | bytearray | str | None = None,
    ) -> None:
        """
        :param transport: The transport that sends the signed requests.
        :param identity_resolver: Resolves the credentials for every signed request.
        :param config: Signing configuration. Resolved here if it isn't already.
            Mutually exclusive with ``service`` and ``region``.
        :param service: Signing service name, if no ``config`` is given.
        :param region: Signing region, if no ``config`` is given.
        :param body: The exact body bytes this client signs. Strings are encoded as
            UTF-8.
        :raises ConfigurationError: If the service or region can't be resolved.
        """
        if config is None:
            config = SigningConfig(service=service, region=region)
        elif service is not None or region is not None:
            raise ValueError(
                "Pass either a SigningConfig or service and region values, not both."
            )
        self._config = config if config.resolved else config.resolve()
        self._transport = transport
        self._identity_resolver = identity_resolver
        if isinstance(body, str):
            body = body.encode("utf-8")
        elif isinstance(body, bytearray):
            body = bytes(body)
        self._signer = _RequestSigner(config=self._config, body=body)

    @classmethod
    def for_neptune(
        cls,
        transport: Any,
        identity_resolver: IdentityResolver,
        *,
        region: str | None = None,
        body: bytes | bytearray | str | None = None,
        properties: dict[str, str] | None = None,
    ) -> Self:
        """Create a client that signs for Amazon Neptune (``neptune-db``)."""
        return cls(
            transport=transport,
            identity_resolver=identity_resolver,
            config=SigningConfig(
                service=NEPTUNE_SERVICE_NAME, region=region, properties=properties
            ),
            body=body,
        )

    @classmethod
    def for_neptune_analytics(
        cls,
        transport: Any,
        identity_resolver: IdentityResolver,
        *,
        region: str | None = None,
        body: bytes | bytearray | str | None = None,
        properties: dict[str, str] | None = None,
    ) -> Self:
        """Create a client that signs for Neptune Analytics (``neptune-graph``)."""
        return cls(
            transport=transport,
            identity_resolver=identity_resolver,
            config=SigningConfig(
                service=NEPTUNE_ANALYTICS_SERVICE_NAME,
                region=region,
                properties=properties,
            ),
            body=body,
        )

    @classmethod
    def with_defaults(
        cls,
        transport: Any,
        identity_resolver: IdentityResolver,
        *,
        body: bytes | bytearray | str | None = None,
        properties: dict[str, str] | None = None,
    ) -> Self:
        """Create a client whose service and region are both resolved from
        properties, the environment and the shared config file."""
        return cls(
            transport=transport,
            identity_resolver=identity_resolver,
            config=SigningConfig(properties=properties),
            body=body,
        )

    @property
    def transport(self) -> Any:
        """The wrapped transport."""
        return self._transport

    @property
    def config(self) -> SigningConfig:
        """The resolved signing configuration."""
        return self._config

    @property
    def body(self) -> bytes | None:
        """The body bytes this client signs."""
        return self._signer.body

    @property
    def client_config(self) -> HTTPClientConfiguration | None:
        """The wrapped transport's client configuration, if it exposes one."""
        return getattr(self._transport, "client_config", None)


class SigningHTTPClient(_SigningClientBase, SyncHTTPClient):
    """Signs requests for a synchronous transport.

    The identity resolver must return identities directly. Use
    :py:class:`AsyncSigningHTTPClient` with coroutine resolvers.
    """

    def __init__(
        self,
        *,
        transport: SyncHTTPClient,
        identity_resolver: IdentityResolver,
        config: SigningConfig | None = None,
        service: str | None = None,
        region: str | None = None,
        body: bytes | bytearray | str | None = None,
    ) -> None:
        super().__init__(
            transport=transport,
            identity_resolver=identity_resolver,
            config=config,
            service=service,
            region=region,
            body=body,
        )

    def sign(self, request: _HTTPRequest) -> HTTPRequest:
        """Return a signed copy of ``request`` without sending it.

        :raises SigningFailedError: If the request couldn't be signed.
        """
        try:
            identity = self._identity_resolver.get_identity()
            if inspect.isawaitable(identity):
                _discard(identity)
                raise TypeError(
                    "The identity resolver returned an awaitable. Use "
                    "AsyncSigningHTTPClient with asynchronous identity resolvers."
                )
            return self._signer.sign(request, identity)
        except Exception as e:
            raise SigningFailedError(f"Unable to sign request: {e}", e) from e

    def send(
        self,
        request: _HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Sign ``request`` and send it with the wrapped transport.

        Transport errors and responses, including 403 responses for rejected
        signatures, are returned to the caller unchanged.

        :raises SigningFailedError: If the request couldn't be signed.
        """
        signed_request = self.sign(request)
        logger.debug("Sending signed request with %s.", type(self._transport).__name__)
        return self._transport.send(signed_request, request_config=request_config)

    def close(self) -> None:
        """Close the wrapped transport, if it can be closed."""
        if (close := getattr(self._transport, "close", None)) is not None:
            close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class AsyncSigningHTTPClient(_SigningClientBase, HTTPClient):
    """Signs requests for an asynchronous transport.

    The identity resolver may be synchronous or a coroutine function.
    """

    def __init__(
        self,
        *,
        transport: HTTPClient,
        identity_resolver: IdentityResolver,
        config: SigningConfig | None = None,
        service: str | None = None,
        region: str | None = None,
        body: bytes | bytearray | str | None = None,
    ) -> None:
        super().__init__(
            transport=transport,
            identity_resolver=identity_resolver,
            config=config,
            service=service,
            region=region,
            body=body,
        )

    async def sign(self, request: _HTTPRequest) -> HTTPRequest:
        """Return a signed copy of ``request`` without sending it.

        :raises SigningFailedError: If the request couldn't be signed.
        """
        try:
            identity = self._identity_resolver.get_identity()
            if inspect.isawaitable(identity):
                identity = await identity
            return self._signer.sign(request, identity)
        except Exception as e:
            raise SigningFailedError(f"Unable to sign request: {e}", e) from e

    async def send(
        self,
        request: _HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Sign ``request`` and send it with the wrapped transport.

        Transport errors and responses, including 403 responses for rejected
        signatures, are returned to the caller unchanged.

        :raises SigningFailedError: If the request couldn't be signed.
        """
        signed_request = await self.sign(request)
        logger.debug("Sending signed request with %s.", type(self._transport).__name__)
        return await self._transport.send(signed_request, request_config=request_config)

    async def close(self) -> None:
        """Close the wrapped transport, if it can be closed."""
        if (close := getattr(self._transport, "close", None)) is not None:
            result = close()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def _discard(awaitable: Awaitable[Any]) -> None:
    # Avoids a "coroutine was never awaited" warning.
    if inspect.iscoroutine(awaitable):
        awaitable.close()

