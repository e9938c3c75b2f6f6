"""Galaxy FDS client: request signing, paginated listings and ACL translation."""

from galaxy_fds.acl import policy_from_wire, policy_to_wire, to_acl, to_policy
from galaxy_fds.auth import SigningEngine, build_canonical_string, format_date
from galaxy_fds.client import GalaxyFDSClient
from galaxy_fds.errors import (
    ConfigurationError,
    FDSError,
    FDSServiceException,
    ServiceError,
    SigningPreconditionError,
    TranslationError,
)
from galaxy_fds.listing import ListingRequest, advance, cursor_from_response, first_page
from galaxy_fds.models import (
    AccessControlList,
    AccessControlPolicy,
    Credential,
    Grant,
    Grantee,
    ListingCursor,
    ObjectMetadata,
    ObjectSummary,
    Owner,
    Permission,
    QuotaPolicy,
    Signature,
)

__version__ = "0.1.0"

__all__ = [
    "AccessControlList",
    "AccessControlPolicy",
    "ConfigurationError",
    "Credential",
    "FDSError",
    "FDSServiceException",
    "GalaxyFDSClient",
    "Grant",
    "Grantee",
    "ListingCursor",
    "ListingRequest",
    "ObjectMetadata",
    "ObjectSummary",
    "Owner",
    "Permission",
    "QuotaPolicy",
    "ServiceError",
    "Signature",
    "SigningEngine",
    "SigningPreconditionError",
    "TranslationError",
    "advance",
    "build_canonical_string",
    "cursor_from_response",
    "first_page",
    "format_date",
    "policy_from_wire",
    "policy_to_wire",
    "to_acl",
    "to_policy",
]
