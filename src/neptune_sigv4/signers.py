# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import datetime
import hmac
from dataclasses import dataclass
from hashlib import sha256

from ._identity import ensure_utc
from .canonical import CanonicalRequest
from .exceptions import CredentialResolutionError, InvalidRequestError
from .interfaces.identity import AWSCredentialsIdentity as _AWSCredentialsIdentity

SIGV4_ALGORITHM: str = "AWS4-HMAC-SHA256"
SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
SIGV4_DATE_FORMAT: str = "%Y%m%d"
SIGV4_SCOPE_TERMINATOR: str = "aws4_request"

AMZ_DATE_HEADER: str = "X-Amz-Date"
SECURITY_TOKEN_HEADER: str = "X-Amz-Security-Token"
AUTHORIZATION_HEADER: str = "Authorization"


@dataclass(kw_only=True, frozen=True)
class SigningContext:
    """Service, region and signing time for one signing operation."""

    service: str
    region: str
    timestamp: datetime.datetime
    """Signing time. Stored in UTC with sub-second precision dropped."""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "timestamp", ensure_utc(self.timestamp).replace(microsecond=0)
        )

    @classmethod
    def now(cls, *, service: str, region: str) -> "SigningContext":
        """Create a context for the current wall-clock time."""
        return cls(
            service=service,
            region=region,
            timestamp=datetime.datetime.now(datetime.UTC),
        )

    @property
    def amz_date(self) -> str:
        """The signing time in ISO-8601 basic format, ``YYYYMMDD'T'HHMMSS'Z'``."""
        return self.timestamp.strftime(SIGV4_TIMESTAMP_FORMAT)

    @property
    def date_stamp(self) -> str:
        return self.amz_date[0:8]

    @property
    def credential_scope(self) -> str:
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        return (
            f"{self.date_stamp}/{self.region}/{self.service}/{SIGV4_SCOPE_TERMINATOR}"
        )


@dataclass(kw_only=True, frozen=True)
class SigV4Signature:
    """The result of signing a canonical request."""

    authorization: str
    """Value of the ``Authorization`` header."""

    amz_date: str
    """Value of the ``X-Amz-Date`` header."""

    signature: str
    credential_scope: str
    signed_headers: str

    def __repr__(self) -> str:
        return (
            f"SigV4Signature(amz_date={self.amz_date!r}, "
            f"credential_scope={self.credential_scope!r}, "
            f"signed_headers={self.signed_headers!r})"
        )


class SigV4Signer:
    """Signature engine for the AWS Signature Version 4 algorithm.

    The signer is stateless. Identical canonical requests, contexts and identities
    always produce identical signatures.
    """

    def sign(
        self,
        *,
        canonical_request: CanonicalRequest,
        context: SigningContext,
        identity: _AWSCredentialsIdentity,
    ) -> SigV4Signature:
        """Sign a canonical request.

        Any ``X-Amz-Date`` and ``X-Amz-Security-Token`` headers must already be part
        of the canonical request. The signer only renders the header values; it never
        adds headers itself.

        :param canonical_request: The canonical form of the request to sign.
        :param context: The service, region and time to scope the signature to.
        :param identity: A set of credentials representing an AWS Identity or role
            capacity.
        :raises CredentialResolutionError: If the identity is missing or expired.
        :raises InvalidRequestError: If the canonical request is missing the session
            token header or carries a timestamp other than the context's.
        """
        self._validate_identity(identity=identity)
        self._validate_canonical_request(
            canonical_request=canonical_request, context=context, identity=identity
        )

        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request, context=context
        )
        signature = self.signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            context=context,
        )
        authorization = self.generate_authorization_value(
            credential=f"{identity.access_key_id}/{context.credential_scope}",
            signed_headers=canonical_request.signed_headers,
            signature=signature,
        )
        return SigV4Signature(
            authorization=authorization,
            amz_date=context.amz_date,
            signature=signature,
            credential_scope=context.credential_scope,
            signed_headers=canonical_request.signed_headers,
        )

    def string_to_sign(
        self, *, canonical_request: CanonicalRequest, context: SigningContext
    ) -> str:
        """The string to sign concatenates the formal identifier of our signing
        algorithm, the signing DateTime, the scope of our credentials, and a hash of
        the canonical request.

        The SigV4 specification defines the string to sign as:
            Algorithm \n
            RequestDateTime \n
            CredentialScope  \n
            HashedCanonicalRequest
        """
        return (
            f"{SIGV4_ALGORITHM}\n"
            f"{context.amz_date}\n"
            f"{context.credential_scope}\n"
            f"{canonical_request.digest()}"
        )

    def signing_key(self, *, secret_key: str, context: SigningContext) -> bytes:
        """Derive the signing key scoped to one date, region and service.

        DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
        DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
        DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
        SigningKey           = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
        """
        k_date = self._hash(key=f"AWS4{secret_key}".encode(), value=context.date_stamp)
        k_region = self._hash(key=k_date, value=context.region)
        k_service = self._hash(key=k_region, value=context.service)
        return self._hash(key=k_service, value=SIGV4_SCOPE_TERMINATOR)

    def signature(
        self, *, string_to_sign: str, secret_key: str, context: SigningContext
    ) -> str:
        """Sign the string to sign with the derived signing key."""
        k_signing = self.signing_key(secret_key=secret_key, context=context)
        return self._hash(key=k_signing, value=string_to_sign).hex()

    def generate_authorization_value(
        self, *, credential: str, signed_headers: str, signature: str
    ) -> str:
        """Generate the value of the `Authorization` header.

        :param credential:
            Credential scope string for generating the Authorization header.
            Defined as:
                <access_key>/<date>/<region>/<service>/<request_type>
        :param signed_headers:
            Semicolon separated field names used in signing.
        :param signature:
            Final hash of the SigV4 signing algorithm.
        """
        return (
            f"{SIGV4_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

    def _hash(self, key: bytes, value: str) -> bytes:
        return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()

    def _validate_identity(self, *, identity: _AWSCredentialsIdentity) -> None:
        """Perform runtime and expiration checks before attempting signing."""
        if not isinstance(identity, _AWSCredentialsIdentity):  # pyright: ignore
            raise CredentialResolutionError(
                "Received unexpected value for identity parameter. Expected "
                f"AWSCredentialIdentity but received {type(identity)}."
            )
        if not identity.access_key_id or not identity.secret_access_key:
            raise CredentialResolutionError(
                "The identity is missing an access key id or secret access key."
            )
        if identity.is_expired:
            raise CredentialResolutionError(
                f"Provided identity expired at {identity.expiration}. Please "
                "refresh the credentials or update the expiration parameter."
            )

    def _validate_canonical_request(
        self,
        *,
        canonical_request: CanonicalRequest,
        context: SigningContext,
        identity: _AWSCredentialsIdentity,
    ) -> None:
        if identity.session_token is not None:
            token = canonical_request.header(SECURITY_TOKEN_HEADER)
            if token != identity.session_token:
                raise InvalidRequestError(
                    f"The identity carries a session token, so the "
                    f"{SECURITY_TOKEN_HEADER} header must be signed with that token."
                )
        signed_date = canonical_request.header(AMZ_DATE_HEADER)
        if signed_date is not None and signed_date != context.amz_date:
            raise InvalidRequestError(
                f"The signed {AMZ_DATE_HEADER} header {signed_date!r} does not match "
                f"the signing time {context.amz_date!r}."
            )
