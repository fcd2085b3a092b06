# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Identity(Protocol):
    """Who a request is made as, and until when."""

    expiration: datetime | None = None
    """When the identity stops being valid, in UTC. ``None`` never expires."""

    @property
    def is_expired(self) -> bool:
        """Whether the identity is expired."""
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration


@runtime_checkable
class AWSCredentialsIdentity(Identity, Protocol):
    """Access key credentials used to derive SigV4 signing keys."""

    access_key_id: str
    """Appears in the credential scope of every signature."""

    secret_access_key: str
    """Seeds the signing key. Never sent or logged."""

    session_token: str | None = None
    """Set for temporary credentials. Sent as ``X-Amz-Security-Token`` and signed."""


class IdentityResolver(Protocol):
    """Resolves the identity used to sign a request.

    Signing clients call ``get_identity`` once per signed request and never cache
    the result, so implementations are free to rotate credentials between calls.
    Implementations may be coroutine functions; only the async signing client can
    use those. Failures should be raised as
    :py:class:`neptune_sigv4.exceptions.CredentialResolutionError`.
    """

    def get_identity(
        self,
    ) -> AWSCredentialsIdentity | Awaitable[AWSCredentialsIdentity]: ...
