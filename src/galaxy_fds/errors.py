"""Error definitions for the Galaxy FDS client."""

from __future__ import annotations

from dataclasses import dataclass


class FDSError(Exception):
    """A client-side error with a stable code and a message.

    Attributes:
        code: Short machine-readable error code (e.g. "ConfigurationError").
        message: Human-readable error description.
    """

    def __init__(self, code: str, message: str) -> None:
        """Initialize the error.

        Args:
            code: Error code.
            message: Error description.
        """
        super().__init__(message)
        self.code = code
        self.message = message


# -- Local, pre-network errors ------------------------------------------------


class ConfigurationError(FDSError):
    """Invalid client configuration (unknown signing algorithm, bad config file)."""

    def __init__(self, message: str = "Invalid client configuration.") -> None:
        super().__init__(code="ConfigurationError", message=message)


class SigningPreconditionError(FDSError):
    """A request cannot be signed because required inputs are missing."""

    def __init__(self, message: str = "Missing input required for signing.") -> None:
        super().__init__(code="SigningPreconditionError", message=message)


class TranslationError(FDSError):
    """A wire payload is missing required fields or carries invalid values."""

    def __init__(self, message: str = "Malformed payload.") -> None:
        super().__init__(code="TranslationError", message=message)


# -- Presigned URI verification ------------------------------------------------


class PresignedUriError(FDSError):
    """Base class for presigned URI verification failures."""


class SignatureDoesNotMatch(PresignedUriError):
    """The presigned signature does not match the request."""

    def __init__(
        self,
        message: str = "The request signature we calculated does not match the signature you provided.",
    ) -> None:
        super().__init__(code="SignatureDoesNotMatch", message=message)


class ExpiredPresignedUri(PresignedUriError):
    """The presigned URI has expired."""

    def __init__(self, message: str = "Request has expired.") -> None:
        super().__init__(code="ExpiredPresignedUri", message=message)


class MissingPresignParameters(PresignedUriError):
    """One of the presign query parameters is absent or malformed."""

    def __init__(
        self,
        message: str = "Query-string authentication requires the GalaxyAccessKeyId, Expires, and Signature parameters.",
    ) -> None:
        super().__init__(code="MissingPresignParameters", message=message)


class InvalidAccessKeyId(PresignedUriError):
    """The access key id in the URI does not belong to the verifying credential."""

    def __init__(self, message: str = "The access key id you provided is not recognized.") -> None:
        super().__init__(code="InvalidAccessKeyId", message=message)


# -- Service responses ---------------------------------------------------------


class FDSServiceException(FDSError):
    """Raised from a ServiceError by callers that prefer exception control flow.

    Attributes:
        status_code: HTTP status returned by the service.
        body: Raw response body, decoded as UTF-8 with replacement.
    """

    def __init__(self, operation: str, status_code: int, body: str) -> None:
        super().__init__(
            code="ServiceError",
            message=f"{operation} failed, status={status_code}, reason={body}",
        )
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class ServiceError:
    """A non-200 service response, returned by facade methods instead of raised.

    Attributes:
        operation: The facade operation that failed (e.g. "get_bucket_acl").
        status_code: HTTP status code.
        body: Raw response body.
    """

    operation: str
    status_code: int
    body: bytes = b""

    @property
    def reason(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def raise_for_error(self) -> None:
        """Raise this error as an FDSServiceException."""
        raise FDSServiceException(self.operation, self.status_code, self.reason)
