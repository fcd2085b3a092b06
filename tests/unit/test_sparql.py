# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from pathlib import Path

import pytest
from neptune_sigv4 import (
    AWSCredentialIdentity,
    SigningConfig,
    StaticCredentialsResolver,
)
from neptune_sigv4.exceptions import ConfigurationError, SigningFailedError
from neptune_sigv4.sparql import (
    DEFAULT_ACCEPT,
    FORM_CONTENT_TYPE,
    AsyncSparqlClient,
    SparqlRequestFactory,
)
from neptune_sigv4.testing import MockHTTPClient

from .test_client import header, signature_matches
from .vectors import INSERT_ONE, INSERT_TWO, SPARQL_QUERY_URL

SELECT_ALL = "SELECT * { ?s ?p ?o }"
INSERT_ONE_TEXT = 'INSERT DATA { <urn:s> <urn:p> "one" }'
INSERT_TWO_TEXT = 'INSERT DATA { <urn:s> <urn:p> "two" }'


@pytest.fixture
def transport() -> MockHTTPClient:
    return MockHTTPClient()


@pytest.fixture
def sparql(
    transport: MockHTTPClient,
    resolver: StaticCredentialsResolver,
    signing_config: SigningConfig,
) -> AsyncSparqlClient:
    return AsyncSparqlClient(
        "https://host",
        transport=transport,
        identity_resolver=resolver,
        config=signing_config,
    )


class TestSparqlRequestFactory:
    @pytest.mark.parametrize(
        "endpoint", ["https://host", "https://host/", "https://host/sparql"]
    )
    def test_default_path(self, endpoint: str) -> None:
        factory = SparqlRequestFactory(endpoint)
        assert factory.destination.path == "/sparql"

    def test_custom_path_is_kept(self) -> None:
        factory = SparqlRequestFactory("https://host:8182/custom/sparql")
        assert factory.destination.path == "/custom/sparql"
        assert factory.destination.port == 8182

    def test_get_query(self) -> None:
        request = SparqlRequestFactory("https://host").query(SELECT_ALL)

        assert request.method == "GET"
        assert request.destination.build() == SPARQL_QUERY_URL
        assert request.body is None
        assert header(request, "Accept") == DEFAULT_ACCEPT

    def test_get_query_keeps_existing_parameters(self) -> None:
        factory = SparqlRequestFactory("https://host/sparql?explain=static")
        request = factory.query("ASK {}")
        assert request.destination.query == "explain=static&query=ASK%20%7B%7D"

    def test_post_query(self) -> None:
        request = SparqlRequestFactory("https://host").query(
            SELECT_ALL, method="post"  # type: ignore
        )

        assert request.method == "POST"
        assert request.destination.query is None
        assert request.body == b"query=" + SPARQL_QUERY_URL.split("query=")[1].encode()
        assert header(request, "Content-Type") == FORM_CONTENT_TYPE

    def test_update(self) -> None:
        factory = SparqlRequestFactory(
            "https://host", accept="text/plain", timeout=12.5
        )
        request = factory.update(INSERT_ONE_TEXT)

        assert request.method == "POST"
        assert request.body == INSERT_ONE
        assert header(request, "Content-Type") == FORM_CONTENT_TYPE
        assert header(request, "Accept") == "text/plain"
        assert request.timeout == 12.5

    def test_unsupported_method(self) -> None:
        with pytest.raises(ValueError, match="PUT"):
            SparqlRequestFactory("https://host").query(
                SELECT_ALL, method="PUT"  # type: ignore
            )


class TestAsyncSparqlClient:
    async def test_query_is_signed(
        self,
        sparql: AsyncSparqlClient,
        transport: MockHTTPClient,
        identity: AWSCredentialIdentity,
    ) -> None:
        transport.add_response(body=b'{"results": {}}')

        response = await sparql.query(SELECT_ALL)

        assert sparql.signed
        assert response.body == b'{"results": {}}'
        sent = transport.captured_requests[0]
        assert signature_matches(sent, None, identity)

    async def test_each_update_is_signed_over_its_own_body(
        self,
        sparql: AsyncSparqlClient,
        transport: MockHTTPClient,
        identity: AWSCredentialIdentity,
    ) -> None:
        transport.add_response()
        transport.add_response()

        await sparql.update(INSERT_ONE_TEXT)
        await sparql.update(INSERT_TWO_TEXT)

        first, second = transport.captured_requests
        assert first.body == INSERT_ONE
        assert second.body == INSERT_TWO
        assert signature_matches(first, INSERT_ONE, identity)
        assert signature_matches(second, INSERT_TWO, identity)
        assert header(first, "Authorization") != header(second, "Authorization")

    async def test_post_query_is_signed_over_the_form(
        self,
        sparql: AsyncSparqlClient,
        transport: MockHTTPClient,
        identity: AWSCredentialIdentity,
    ) -> None:
        transport.add_response()

        await sparql.query(SELECT_ALL, method="POST")

        sent = transport.captured_requests[0]
        assert isinstance(sent.body, bytes)
        assert signature_matches(sent, sent.body, identity)

    async def test_unsigned(self, transport: MockHTTPClient) -> None:
        transport.add_response()
        sparql = AsyncSparqlClient("https://host", transport=transport)

        await sparql.query(SELECT_ALL)

        assert not sparql.signed
        sent = transport.captured_requests[0]
        assert "Authorization" not in sent.fields
        assert "X-Amz-Date" not in sent.fields

    async def test_signing_errors_are_wrapped(
        self, transport: MockHTTPClient, signing_config: SigningConfig
    ) -> None:
        class FailingResolver:
            def get_identity(self) -> AWSCredentialIdentity:
                raise RuntimeError("no credentials")

        sparql = AsyncSparqlClient(
            "https://host",
            transport=transport,
            identity_resolver=FailingResolver(),
            config=signing_config,
        )

        with pytest.raises(SigningFailedError):
            await sparql.query(SELECT_ALL)
        assert transport.call_count == 0

    def test_unresolvable_region(
        self,
        transport: MockHTTPClient,
        resolver: StaticCredentialsResolver,
        tmp_path: Path,
    ) -> None:
        config = SigningConfig(environ={}, config_file=tmp_path / "missing")
        with pytest.raises(ConfigurationError):
            AsyncSparqlClient(
                "https://host",
                transport=transport,
                identity_resolver=resolver,
                config=config,
            )

    def test_config_is_resolved_once(
        self, transport: MockHTTPClient, resolver: StaticCredentialsResolver
    ) -> None:
        config = SigningConfig(region="us-west-2", environ={})
        AsyncSparqlClient(
            "https://host",
            transport=transport,
            identity_resolver=resolver,
            config=config,
        )
        assert config.resolved
        assert config.region == "us-west-2"

    async def test_context_manager_closes_transport(
        self, sparql: AsyncSparqlClient, transport: MockHTTPClient
    ) -> None:
        async with sparql:
            pass
        assert transport.closed
