# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging
from collections.abc import Iterable
from copy import deepcopy
from itertools import chain
from typing import Any, Final

import aiohttp
import yarl

from .._http import Field, Fields, HTTPResponse
from ..interfaces.http import (
    URI,
    FieldPosition,
    HTTPClient,
    HTTPClientConfiguration,
    HTTPRequest,
    HTTPRequestConfiguration,
    RequestBody,
)

logger: Final = logging.getLogger(__name__)


class AIOHTTPClientConfig(HTTPClientConfiguration):
    pass


class AIOHTTPClient(HTTPClient):
    """Implementation of :py:class:`.interfaces.http.HTTPClient` using aiohttp.

    The destination is sent exactly as given. aiohttp must not re-encode the path or
    query of a signed request, or the service computes a different signature.
    """

    def __init__(
        self,
        *,
        client_config: AIOHTTPClientConfig | None = None,
        _session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        :param client_config: Configuration that applies to all requests made with this
        client.
        """
        self._config = client_config or AIOHTTPClientConfig()
        # The session binds to the running event loop, so it's created on first use.
        self._session = _session

    @property
    def client_config(self) -> AIOHTTPClientConfig:
        return self._config

    async def send(
        self,
        request: HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Send HTTP request using aiohttp client.

        :param request: The request including destination URI, fields, payload.
        :param request_config: Configuration specific to this request.
        """
        request_config = request_config or HTTPRequestConfiguration()

        headers_list = list(
            chain.from_iterable(
                fld.as_tuples()
                for fld in request.fields.get_by_type(FieldPosition.HEADER)
            )
        )

        kwargs: dict[str, Any] = {}
        if (timeout := self._timeout(request.timeout, request_config)) is not None:
            kwargs["timeout"] = timeout

        logger.debug(
            "Sending %s request to %s.", request.method, request.destination.host
        )
        async with self._get_session().request(
            method=request.method,
            url=self._serialize_uri(request.destination),
            headers=headers_list,
            data=self._serialize_body(request.body),
            **kwargs,
        ) as resp:
            return await self._marshal_response(resp)

    async def close(self) -> None:
        """Close the underlying session, if one was opened."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "AIOHTTPClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _serialize_uri(self, uri: URI) -> yarl.URL:
        """Serialize the URI up to and including the query, keeping its encoding."""
        url = f"{uri.scheme}://{uri.netloc}{uri.path or ''}"
        if uri.query:
            url = f"{url}?{uri.query}"
        return yarl.URL(url, encoded=True)

    def _serialize_body(self, body: RequestBody) -> Any:
        # aiohttp streams async iterables itself.
        if isinstance(body, Iterable) and not isinstance(body, bytes | bytearray):
            return b"".join(body)
        return body

    def _timeout(
        self, timeout: float | None, request_config: HTTPRequestConfiguration
    ) -> aiohttp.ClientTimeout | None:
        if timeout is None and request_config.read_timeout is None:
            return None
        return aiohttp.ClientTimeout(
            total=timeout, sock_read=request_config.read_timeout
        )

    async def _marshal_response(
        self, aiohttp_resp: aiohttp.ClientResponse
    ) -> HTTPResponse:
        """Convert a ``aiohttp.ClientResponse`` to a ``neptune_sigv4.HTTPResponse``"""
        headers = Fields()
        for header_name, header_val in aiohttp_resp.headers.items():
            try:
                headers[header_name].add(header_val)
            except KeyError:
                headers[header_name] = Field(
                    name=header_name,
                    values=[header_val],
                    kind=FieldPosition.HEADER,
                )

        return HTTPResponse(
            status=aiohttp_resp.status,
            fields=headers,
            body=await aiohttp_resp.read(),
            reason=aiohttp_resp.reason,
        )

    def __deepcopy__(self, memo: Any) -> "AIOHTTPClient":
        return AIOHTTPClient(
            client_config=deepcopy(self._config),
            _session=self._session,
        )
