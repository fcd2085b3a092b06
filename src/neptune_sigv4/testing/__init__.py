# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""In-memory transports and request builders for testing signed requests."""

from .mockhttp import MockHTTPClient, MockHTTPClientError, SyncMockHTTPClient
from .utils import create_test_request

__all__ = (
    "MockHTTPClient",
    "MockHTTPClientError",
    "SyncMockHTTPClient",
    "create_test_request",
)
