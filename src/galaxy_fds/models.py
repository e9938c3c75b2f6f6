"""Data model types for the Galaxy FDS client.

These dataclasses represent the values the signing, listing and ACL
components exchange: credentials, signatures, listing pages, grants and
policies. Values that cross thread boundaries (credentials, signatures,
cursors) are frozen.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field

from galaxy_fds.errors import TranslationError

# Caller-supplied metadata headers carry this prefix. They take part in
# request signing and are handed back to callers as user metadata.
USER_METADATA_PREFIX = "x-xiaomi-meta-"

# Standard headers surfaced as object metadata.
PREDEFINED_METADATA = (
    "cache-control",
    "content-encoding",
    "content-length",
    "content-md5",
    "content-type",
    "last-modified",
)


@dataclass(frozen=True)
class Credential:
    """Access key pair used to sign requests.

    Attributes:
        access_key_id: The public access key identifier.
        access_secret: The secret used as HMAC key. Never logged.
    """

    access_key_id: str
    access_secret: str = field(repr=False)


@dataclass
class SignableRequest:
    """A request about to be signed.

    Attributes:
        http_method: HTTP verb.
        resource_path: Path portion only, e.g. ``/bucket/object``.
        subresource: Optional subresource name (``acl``, ``metadata``, ``quota``).
        headers: Request headers in insertion order.
        has_body: Whether the request carries a body.
    """

    http_method: str
    resource_path: str
    subresource: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    has_body: bool = False


@dataclass(frozen=True)
class Signature:
    """A computed request signature.

    Attributes:
        algorithm: Signing algorithm label, e.g. ``HMAC-SHA1``.
        base64_value: Base64 of the raw HMAC digest.
    """

    algorithm: str
    base64_value: str


# -- Listing -------------------------------------------------------------------


@dataclass(frozen=True)
class Owner:
    """Owner of a bucket, object or policy."""

    id: str
    display_name: str = ""


@dataclass(frozen=True)
class ObjectSummary:
    """One entry of a listing page.

    Attributes:
        bucket_name: The bucket the object lives in.
        object_name: The object name.
        owner: The object owner, if reported.
        size: Size in bytes.
    """

    bucket_name: str
    object_name: str
    owner: Owner | None = None
    size: int = 0


@dataclass(frozen=True)
class ListingCursor:
    """An immutable snapshot of one listing page.

    ``is_truncated`` is False exactly when ``next_marker`` is None; a cursor
    violating that cannot be constructed.

    Attributes:
        bucket_name: The listed bucket.
        prefix: Prefix filter the page was requested with.
        delimiter: Delimiter reported by the service for this page.
        marker: Marker the page was requested with.
        next_marker: Opaque marker for the following page.
        is_truncated: Whether more pages follow.
        items: Object summaries in service order.
        common_prefixes: Collapsed prefix groups.
    """

    bucket_name: str
    prefix: str = ""
    delimiter: str | None = None
    marker: str | None = None
    next_marker: str | None = None
    is_truncated: bool = False
    items: tuple[ObjectSummary, ...] = ()
    common_prefixes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.is_truncated and self.next_marker is not None:
            raise TranslationError("An exhausted listing cannot carry a next marker.")
        if self.is_truncated and self.next_marker is None:
            raise TranslationError("A truncated listing must carry a next marker.")

    @property
    def has_more(self) -> bool:
        return self.is_truncated


# -- Access control --------------------------------------------------------------


class Permission(str, enum.Enum):
    """Permissions a grant can confer."""

    READ = "READ"
    WRITE = "WRITE"
    FULL_CONTROL = "FULL_CONTROL"


@dataclass(frozen=True)
class Grantee:
    """The principal a grant applies to."""

    id: str


@dataclass(frozen=True)
class Grant:
    """A single permission granted to a grantee."""

    grantee: Grantee
    permission: Permission


@dataclass
class AccessControlList:
    """Caller-facing list of grants.

    Semantically unordered; insertion order is preserved so a list survives
    a round trip through the wire policy unchanged.
    """

    grants: list[Grant] = field(default_factory=list)

    def add_grant(self, grant: Grant) -> None:
        self.grants.append(grant)


@dataclass
class AccessControlPolicy:
    """Wire shape of an ACL: the owner plus an ordered grant sequence."""

    owner: Owner
    grants: list[Grant] = field(default_factory=list)


# -- Quota -----------------------------------------------------------------------


@dataclass(frozen=True)
class Quota:
    """A single bucket quota rule.

    Attributes:
        type: Quota kind as named by the service (e.g. ``QPS``).
        action: Operation the quota limits (e.g. ``GET``).
        value: The limit.
    """

    type: str
    action: str
    value: int


@dataclass
class QuotaPolicy:
    """The set of quotas attached to a bucket."""

    quotas: list[Quota] = field(default_factory=list)

    @classmethod
    def from_wire(cls, payload: Mapping | None) -> QuotaPolicy:
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise TranslationError("Quota policy must be an object.")
        entries = payload.get("quotas") or []
        if not isinstance(entries, list):
            raise TranslationError("Quota policy field 'quotas' must be a list.")
        quotas = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                raise TranslationError(f"Quota entry at index {index} is not an object.")
            try:
                quotas.append(
                    Quota(type=entry["type"], action=entry["action"], value=int(entry["value"]))
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise TranslationError(f"Malformed quota entry at index {index}: {exc}") from exc
        return cls(quotas=quotas)

    def to_wire(self) -> dict:
        return {
            "quotas": [{"type": q.type, "action": q.action, "value": q.value} for q in self.quotas]
        }


# -- Object metadata ---------------------------------------------------------------


@dataclass
class ObjectMetadata:
    """Standard and user-defined metadata of an object.

    Attributes:
        metadata: Predefined headers (lower-cased names).
        user_metadata: Headers carrying the user-metadata prefix.
    """

    metadata: dict[str, str] = field(default_factory=dict)
    user_metadata: dict[str, str] = field(default_factory=dict)

    def add_user_metadata(self, name: str, value: str) -> None:
        """Add a user metadata header.

        Raises:
            ValueError: If the name does not carry the user-metadata prefix.
        """
        lower = name.lower()
        if not lower.startswith(USER_METADATA_PREFIX):
            raise ValueError(f"User metadata must start with {USER_METADATA_PREFIX}: {name}")
        self.user_metadata[lower] = value

    def to_headers(self) -> dict[str, str]:
        headers = dict(self.metadata)
        headers.update(self.user_metadata)
        return headers

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> ObjectMetadata:
        """Collect predefined and user metadata from response headers."""
        result = cls()
        for name, value in headers.items():
            lower = name.lower()
            if lower in PREDEFINED_METADATA:
                result.metadata[lower] = value
            elif lower.startswith(USER_METADATA_PREFIX):
                result.user_metadata[lower] = value
        return result
