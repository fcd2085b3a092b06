# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from ._identity import AWSCredentialIdentity
from .exceptions import CredentialResolutionError
from .interfaces.identity import AWSCredentialsIdentity, IdentityResolver


class StaticCredentialsResolver(IdentityResolver):
    """Resolve a fixed set of AWS credentials."""

    def __init__(self, *, credentials: AWSCredentialsIdentity) -> None:
        self._credentials = credentials

    def get_identity(self) -> AWSCredentialsIdentity:
        if self._credentials.is_expired:
            raise CredentialResolutionError(
                f"Static credentials for {self._credentials.access_key_id} expired "
                f"at {self._credentials.expiration}."
            )
        return self._credentials

    @classmethod
    def from_keys(
        cls,
        access_key_id: str,
        secret_access_key: str,
        session_token: str | None = None,
    ) -> "StaticCredentialsResolver":
        return cls(
            credentials=AWSCredentialIdentity(
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                session_token=session_token,
            )
        )
