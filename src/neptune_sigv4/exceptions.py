# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class NeptuneSigV4Error(Exception):
    """Top-level exception to capture request signing errors."""


class InvalidRequestError(NeptuneSigV4Error, ValueError):
    """The request can't be signed as given, for example because its URI is
    malformed or its method is unsupported.

    This indicates a bug in the caller and is never retryable.
    """


class CredentialResolutionError(NeptuneSigV4Error):
    """No usable identity was available, or the identity has expired.

    Retrying, if desired, belongs to the identity resolver.
    """


class ConfigurationError(NeptuneSigV4Error):
    """The signing service name or region could not be resolved."""


class SigningFailedError(NeptuneSigV4Error):
    """Raised by the signing clients when a request could not be signed.

    The original exception is available as ``cause`` as well as ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause
