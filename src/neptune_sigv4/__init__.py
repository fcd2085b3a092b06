# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Signs SPARQL-over-HTTP requests to Amazon Neptune with AWS Signature Version 4."""

from ._http import URI, Field, Fields, HTTPRequest, HTTPResponse, tuples_to_fields
from ._identity import AWSCredentialIdentity
from .canonical import CanonicalRequest, CanonicalRequestBuilder
from .client import AsyncSigningHTTPClient, SigningHTTPClient
from .config import (
    NEPTUNE_ANALYTICS_SERVICE_NAME,
    NEPTUNE_SERVICE_NAME,
    ConfigValue,
    SigningConfig,
)
from .exceptions import (
    ConfigurationError,
    CredentialResolutionError,
    InvalidRequestError,
    NeptuneSigV4Error,
    SigningFailedError,
)
from .identity import StaticCredentialsResolver
from .signers import SigningContext, SigV4Signature, SigV4Signer

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "AWSCredentialIdentity",
    "AsyncSigningHTTPClient",
    "CanonicalRequest",
    "CanonicalRequestBuilder",
    "ConfigValue",
    "ConfigurationError",
    "CredentialResolutionError",
    "Field",
    "Fields",
    "HTTPRequest",
    "HTTPResponse",
    "InvalidRequestError",
    "NEPTUNE_ANALYTICS_SERVICE_NAME",
    "NEPTUNE_SERVICE_NAME",
    "NeptuneSigV4Error",
    "SigV4Signature",
    "SigV4Signer",
    "SigningConfig",
    "SigningContext",
    "SigningFailedError",
    "SigningHTTPClient",
    "StaticCredentialsResolver",
    "URI",
    "tuples_to_fields",
)
