"""ACL helpers for Galaxy FDS access control.

Translates between the caller-facing :class:`AccessControlList` and the
wire :class:`AccessControlPolicy`, and between the policy and its decoded
JSON shape::

    {
        "owner": {"id": "..."},
        "accessControlList": [
            {"grantee": {"id": "..."}, "permission": "READ"},
            ...
        ]
    }

Grant order is preserved in both directions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from galaxy_fds.errors import TranslationError
from galaxy_fds.models import (
    AccessControlList,
    AccessControlPolicy,
    Grant,
    Grantee,
    Owner,
    Permission,
)


def to_policy(
    acl: AccessControlList | None, signing_access_key_id: str
) -> AccessControlPolicy | None:
    """Convert an ACL into the policy sent on outbound writes.

    The signing credential is always recorded as the owner.

    Args:
        acl: The caller's ACL, or None.
        signing_access_key_id: Access key id of the acting credential.

    Returns:
        The policy, or None when no ACL was given.
    """
    if acl is None:
        return None
    return AccessControlPolicy(owner=Owner(id=signing_access_key_id), grants=list(acl.grants))


def to_acl(policy: AccessControlPolicy | None) -> AccessControlList | None:
    """Convert a policy into a caller-facing ACL.

    The owner is not part of the ACL. An absent policy means "no ACL" and
    yields None rather than an error.

    Args:
        policy: The policy, or None.

    Returns:
        An AccessControlList with one grant per policy entry, or None.
    """
    if policy is None:
        return None
    acl = AccessControlList()
    for grant in policy.grants:
        acl.add_grant(Grant(grantee=Grantee(id=grant.grantee.id), permission=grant.permission))
    return acl


def policy_from_wire(payload: Mapping[str, Any] | None) -> AccessControlPolicy | None:
    """Build a policy from a decoded JSON body.

    Fields outside the ``{grantee.id, permission}`` shape are discarded.

    Args:
        payload: The decoded JSON object, or None.

    Returns:
        The policy, or None for an absent payload.

    Raises:
        TranslationError: If an entry lacks a grantee id or a valid permission.
    """
    if payload is None:
        return None
    if not isinstance(payload, Mapping):
        raise TranslationError("Access control policy must be an object.")

    owner_data = payload.get("owner")
    if not isinstance(owner_data, Mapping):
        owner_data = {}
    owner = Owner(id=owner_data.get("id") or "", display_name=owner_data.get("displayName") or "")

    grants = [
        _parse_grant(entry, index)
        for index, entry in enumerate(payload.get("accessControlList") or [])
    ]
    return AccessControlPolicy(owner=owner, grants=grants)


def policy_to_wire(policy: AccessControlPolicy) -> dict[str, Any]:
    """Render a policy as a JSON-ready dict."""
    return {
        "owner": {"id": policy.owner.id},
        "accessControlList": [
            {"grantee": {"id": grant.grantee.id}, "permission": grant.permission.value}
            for grant in policy.grants
        ],
    }


def _parse_grant(entry: Any, index: int) -> Grant:
    """Parse one ``accessControlList`` entry.

    Raises:
        TranslationError: If the grantee id or permission is missing or invalid.
    """
    if not isinstance(entry, Mapping):
        raise TranslationError(f"Grant at index {index} is not an object.")

    grantee = entry.get("grantee")
    if not isinstance(grantee, Mapping) or not grantee.get("id"):
        raise TranslationError(f"Grant at index {index} has no grantee id.")

    permission = entry.get("permission")
    if permission is None:
        raise TranslationError(f"Grant at index {index} has no permission.")
    try:
        parsed = Permission(permission)
    except ValueError as exc:
        raise TranslationError(
            f"Grant at index {index} has unknown permission: {permission!r}"
        ) from exc

    return Grant(grantee=Grantee(id=grantee["id"]), permission=parsed)
