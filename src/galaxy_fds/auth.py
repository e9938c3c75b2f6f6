"""Galaxy-V2 request signing for the FDS client.

Implements canonicalization and HMAC signing for both header-based auth
(``Authorization`` header) and query-string auth (presigned URIs), plus
verification of presigned URIs.

The canonical string is::

    METHOD\\n
    Content-MD5\\n
    Content-Type\\n
    Date (or Expires for presigned URIs)\\n
    x-xiaomi-meta-* headers, sorted, one "name:value\\n" each ("\\n" if none)
    /resource[?subresource]

The resulting signature is base64 encoded and sent as
``Authorization: Galaxy-V2 <access key id>:<signature>``.
"""

from __future__ import annotations

import base64
import email.utils
import hashlib
import hmac
import logging
import time
import urllib.parse
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from galaxy_fds import metrics
from galaxy_fds.errors import (
    ConfigurationError,
    ExpiredPresignedUri,
    InvalidAccessKeyId,
    MissingPresignParameters,
    SignatureDoesNotMatch,
    SigningPreconditionError,
)
from galaxy_fds.models import USER_METADATA_PREFIX, Credential, SignableRequest, Signature

logger = logging.getLogger(__name__)

# Constants
SCHEME = "Galaxy-V2"
DEFAULT_ALGORITHM = "sha1"
DEFAULT_BASE_URI = "http://files.fds.api.xiaomi.com/"

# algorithm name -> (label, hashlib constructor)
SUPPORTED_ALGORITHMS: dict[str, tuple[str, Any]] = {
    "sha1": ("HMAC-SHA1", hashlib.sha1),
    "sha256": ("HMAC-SHA256", hashlib.sha256),
}

# Query-string keys that take part in the canonical resource. Anything
# else on the query string is excluded from the signature.
SIGNABLE_SUBRESOURCES = frozenset({"acl", "metadata", "quota"})

# Presigned URI query parameters
GALAXY_ACCESS_KEY_ID = "GalaxyAccessKeyId"
EXPIRES = "Expires"
SIGNATURE = "Signature"

AUTHORIZATION = "Authorization"
CONTENT_MD5 = "Content-MD5"
CONTENT_TYPE = "Content-Type"
DATE = "Date"


class SigningEngine:
    """Signs canonical strings with a configured HMAC digest.

    The engine is stateless apart from its digest choice and may be shared
    across threads.

    Attributes:
        algorithm: The configured algorithm name (e.g. ``sha1``).
        label: The signature label (e.g. ``HMAC-SHA1``).
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        """Initialize the engine.

        Args:
            algorithm: Digest name, one of SUPPORTED_ALGORITHMS.

        Raises:
            ConfigurationError: If the algorithm is not supported.
        """
        name = (algorithm or "").lower()
        if name not in SUPPORTED_ALGORITHMS:
            raise ConfigurationError(
                f"Unsupported signing algorithm: {algorithm!r} "
                f"(expected one of {', '.join(sorted(SUPPORTED_ALGORITHMS))})"
            )
        self.algorithm = name
        self.label, self._digest = SUPPORTED_ALGORITHMS[name]

    # -- Core ------------------------------------------------------------------

    def sign(self, canonical_string: str, secret: str) -> Signature:
        """HMAC the canonical string and base64-encode the raw digest.

        Args:
            canonical_string: Output of build_canonical_string().
            secret: The access secret.

        Returns:
            The computed Signature.
        """
        digest = hmac.new(
            secret.encode("utf-8"), canonical_string.encode("utf-8"), self._digest
        ).digest()
        return Signature(
            algorithm=self.label,
            base64_value=base64.b64encode(digest).decode("ascii"),
        )

    def authorization_header(self, access_key_id: str, signature: Signature) -> str:
        """Format the Authorization header value."""
        return f"{SCHEME} {access_key_id}:{signature.base64_value}"

    # -- Header mode -------------------------------------------------------------

    def sign_request(self, request: SignableRequest, credential: Credential) -> dict[str, str]:
        """Sign a request in header mode.

        Args:
            request: The request to sign. Its headers must include Date.
            credential: The signing credential.

        Returns:
            A copy of the request headers with Authorization added.
        """
        canonical = build_canonical_string(
            request.http_method,
            request.resource_path,
            request.subresource,
            request.headers,
        )
        logger.debug(
            "Canonical string for %s %s: %r",
            request.http_method,
            request.resource_path,
            canonical,
        )
        signature = self.sign(canonical, credential.access_secret)
        headers = dict(request.headers)
        headers[AUTHORIZATION] = self.authorization_header(credential.access_key_id, signature)
        metrics.record_signature("header")
        return headers

    # -- Query mode ----------------------------------------------------------------

    def presign(
        self,
        method: str,
        resource_path: str | None,
        credential: Credential,
        expires_at: int | datetime | None,
        base_uri: str = "",
        subresource: str | None = None,
    ) -> str:
        """Build a presigned URI.

        The access key id and expiration are embedded as query parameters,
        the expiration takes the Date slot of the canonical string, and the
        signature is appended as the last query parameter.

        Args:
            method: HTTP method the URI will be valid for.
            resource_path: ``/bucket/object`` path.
            credential: The signing credential.
            expires_at: Absolute expiration, epoch seconds or aware datetime.
            base_uri: Service base URI to prefix the path with.
            subresource: Optional signable subresource.

        Returns:
            The presigned URI.

        Raises:
            SigningPreconditionError: If the path or expiration is missing.
        """
        if not resource_path:
            raise SigningPreconditionError("Cannot presign without a resource path.")
        expires = _epoch_seconds(expires_at)
        path = _normalize_path(resource_path)

        canonical = build_canonical_string(
            method, path, subresource, headers=None, expires=expires
        )
        signature = self.sign(canonical, credential.access_secret)

        params = []
        if subresource in SIGNABLE_SUBRESOURCES:
            params.append(subresource)
        access_key_id = urllib.parse.quote(credential.access_key_id, safe="")
        params.append(f"{GALAXY_ACCESS_KEY_ID}={access_key_id}")
        params.append(f"{EXPIRES}={expires}")
        params.append(f"{SIGNATURE}={urllib.parse.quote(signature.base64_value, safe='')}")

        metrics.record_signature("query")
        return f"{base_uri.rstrip('/')}{quote_path(path)}?{'&'.join(params)}"

    def verify_presigned_uri(
        self,
        uri: str,
        method: str,
        credential: Credential,
        now: float | None = None,
        base_uri: str = "",
    ) -> None:
        """Verify a presigned URI for the given method.

        Args:
            uri: The presigned URI as received.
            method: The HTTP method being performed.
            credential: The credential the URI must have been signed with.
            now: Current epoch seconds (defaults to time.time()).
            base_uri: Service base URI to strip before canonicalization.

        Raises:
            MissingPresignParameters: On missing or malformed parameters.
            InvalidAccessKeyId: If the URI names another access key.
            ExpiredPresignedUri: If the expiration has passed.
            SignatureDoesNotMatch: If method, path or expiration were altered.
        """
        path, query = split_resource(uri, base_uri)
        params = dict(urllib.parse.parse_qsl(query, keep_blank_values=True))
        for name in (GALAXY_ACCESS_KEY_ID, EXPIRES, SIGNATURE):
            if not params.get(name):
                raise MissingPresignParameters()

        if params[GALAXY_ACCESS_KEY_ID] != credential.access_key_id:
            raise InvalidAccessKeyId()

        try:
            expires = int(params[EXPIRES])
        except ValueError:
            raise MissingPresignParameters(f"Invalid {EXPIRES} value.")

        current = time.time() if now is None else now
        if current > expires:
            raise ExpiredPresignedUri()

        canonical = build_canonical_string(
            method, path, _pick_subresource(params), headers=None, expires=expires
        )
        expected = self.sign(canonical, credential.access_secret).base64_value

        # Constant-time comparison
        if not hmac.compare_digest(expected, params[SIGNATURE]):
            logger.debug("Presigned signature mismatch for %s %s", method, path)
            raise SignatureDoesNotMatch()


# ---------------------------------------------------------------------------
# Module-level canonicalization functions
# ---------------------------------------------------------------------------


def build_canonical_string(
    method: str,
    resource_path: str,
    subresource: str | None = None,
    headers: Mapping[str, str] | None = None,
    expires: int | None = None,
) -> str:
    """Build the canonical string for a request.

    Args:
        method: HTTP method (any case).
        resource_path: Path only, e.g. ``/bucket`` or ``/bucket/object``.
        subresource: Optional subresource; unsupported names are ignored.
        headers: Request headers (names may be mixed case).
        expires: Presigned expiration; replaces the Date header when set.

    Returns:
        The canonical string.
    """
    headers = headers or {}
    if expires is not None:
        date = str(expires)
    else:
        date = _header_value(headers, DATE)

    parts = [
        method.upper(),
        "\n",
        _header_value(headers, CONTENT_MD5),
        "\n",
        _header_value(headers, CONTENT_TYPE),
        "\n",
        date,
        "\n",
        canonicalize_metadata_headers(headers if expires is None else {}),
        canonicalize_resource(resource_path, subresource),
    ]
    return "".join(parts)


def canonicalize_metadata_headers(headers: Mapping[str, str]) -> str:
    """Canonicalize user-metadata headers.

    Matching names (case-insensitive prefix) are lower-cased and sorted;
    each becomes ``name:value\\n``. Repeated names are joined with commas.
    When no header matches the block is a single newline.
    """
    collected: dict[str, str] = {}
    for name, value in headers.items():
        lower_name = name.lower()
        if not lower_name.startswith(USER_METADATA_PREFIX):
            continue
        if lower_name in collected:
            collected[lower_name] += "," + value
        else:
            collected[lower_name] = value

    if not collected:
        return "\n"
    return "".join(f"{name}:{collected[name]}\n" for name in sorted(collected))


def canonicalize_resource(resource_path: str, subresource: str | None = None) -> str:
    """Append a recognized subresource to the resource path."""
    path = _normalize_path(resource_path)
    if subresource in SIGNABLE_SUBRESOURCES:
        return f"{path}?{subresource}"
    return path


def split_resource(uri: str, base_uri: str = "") -> tuple[str, str]:
    """Split a URI into its resource path and raw query string.

    When ``base_uri`` is set and prefixes ``uri`` on a path boundary it is
    stripped, so the same resource signs identically whichever endpoint
    alias addressed it. Otherwise scheme and host are dropped.

    Returns:
        A ``(path, query)`` tuple. The path is percent-decoded and always
        starts with ``/``.
    """
    base = base_uri.rstrip("/")
    remainder = uri[len(base):] if base and uri.startswith(base) else None
    if remainder is not None and (not remainder or remainder[0] in "/?"):
        path, _, query = remainder.partition("?")
    else:
        parts = urllib.parse.urlsplit(uri)
        path, query = parts.path, parts.query
    return _normalize_path(urllib.parse.unquote(path)), query


def resource_path_from_uri(uri: str, base_uri: str = "") -> tuple[str, str | None]:
    """Return the signable ``(path, subresource)`` pair for a full URI."""
    path, query = split_resource(uri, base_uri)
    params = dict(urllib.parse.parse_qsl(query, keep_blank_values=True))
    return path, _pick_subresource(params)


def format_date(timestamp: float | None = None) -> str:
    """Format a Date header value (RFC-1123, GMT)."""
    return email.utils.formatdate(timestamp, usegmt=True)


def quote_path(path: str) -> str:
    """Percent-encode a resource path for the wire, keeping ``/`` separators."""
    return urllib.parse.quote(path, safe="/")


def _pick_subresource(params: Mapping[str, str]) -> str | None:
    for name in sorted(params):
        if name in SIGNABLE_SUBRESOURCES:
            return name
    return None


def _header_value(headers: Mapping[str, str], name: str) -> str:
    lower = name.lower()
    for key, value in headers.items():
        if key.lower() == lower:
            return value
    return ""


def _normalize_path(path: str) -> str:
    if not path.startswith("/"):
        return "/" + path
    return path


def _epoch_seconds(expires_at: int | datetime | None) -> int:
    if expires_at is None:
        raise SigningPreconditionError("Cannot presign without an expiration.")
    if isinstance(expires_at, datetime):
        if expires_at.tzinfo is None:
            raise SigningPreconditionError("Expiration datetime must be timezone-aware.")
        return int(expires_at.timestamp())
    if isinstance(expires_at, bool) or not isinstance(expires_at, int) or expires_at < 0:
        raise SigningPreconditionError(f"Invalid expiration: {expires_at!r}")
    return expires_at
