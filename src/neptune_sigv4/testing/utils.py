# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from .._http import URI, HTTPRequest, tuples_to_fields
from ..interfaces.http import RequestBody


def create_test_request(
    method: str = "GET",
    host: str = "test.aws.dev",
    path: str | None = None,
    query: str | None = None,
    headers: list[tuple[str, str]] | None = None,
    body: RequestBody = None,
    timeout: float | None = None,
) -> HTTPRequest:
    """Create test HTTPRequest with defaults.

    :param method: HTTP method (GET, POST, etc.)
    :param host: Host name (e.g., "test.aws.dev")
    :param path: Optional path (e.g., "/sparql")
    :param query: Optional raw, already encoded query string
    :param headers: Optional headers as list of (name, value) tuples
    :param body: Request body, if any
    :param timeout: Optional per-request timeout in seconds
    :return: Configured HTTPRequest for testing
    """
    return HTTPRequest(
        destination=URI(host=host, path=path, query=query),
        method=method,
        fields=tuples_to_fields(headers or []),
        body=body,
        timeout=timeout,
    )
