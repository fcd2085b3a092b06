# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import pytest
from neptune_sigv4 import (
    AWSCredentialIdentity,
    SigningConfig,
    StaticCredentialsResolver,
)

from .vectors import ACCESS_KEY, REGION, SECRET_KEY, SERVICE, SESSION_TOKEN


@pytest.fixture
def identity() -> AWSCredentialIdentity:
    return AWSCredentialIdentity(access_key_id=ACCESS_KEY, secret_access_key=SECRET_KEY)


@pytest.fixture
def session_identity() -> AWSCredentialIdentity:
    return AWSCredentialIdentity(
        access_key_id=ACCESS_KEY,
        secret_access_key=SECRET_KEY,
        session_token=SESSION_TOKEN,
    )


@pytest.fixture
def resolver(identity: AWSCredentialIdentity) -> StaticCredentialsResolver:
    return StaticCredentialsResolver(credentials=identity)


@pytest.fixture
def signing_config() -> SigningConfig:
    return SigningConfig.explicit(service=SERVICE, region=REGION)
