"""Tests for ACL <-> policy translation."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from galaxy_fds.acl import policy_from_wire, policy_to_wire, to_acl, to_policy
from galaxy_fds.errors import TranslationError
from galaxy_fds.models import (
    AccessControlList,
    AccessControlPolicy,
    Grant,
    Grantee,
    Owner,
    Permission,
)

grants_strategy = st.lists(
    st.builds(
        Grant,
        grantee=st.builds(Grantee, id=st.text(min_size=1, max_size=12)),
        permission=st.sampled_from(list(Permission)),
    ),
    max_size=10,
)


def _acl(*pairs: tuple[str, Permission]) -> AccessControlList:
    acl = AccessControlList()
    for grantee_id, permission in pairs:
        acl.add_grant(Grant(Grantee(grantee_id), permission))
    return acl


class TestToPolicy:
    """Tests for to_policy()."""

    def test_owner_is_signing_key(self):
        policy = to_policy(_acl(("alice", Permission.READ)), "AKEXAMPLE")
        assert policy.owner == Owner(id="AKEXAMPLE")

    def test_grant_order_preserved(self):
        acl = _acl(("c", Permission.WRITE), ("a", Permission.READ), ("b", Permission.FULL_CONTROL))
        policy = to_policy(acl, "AK")
        assert [g.grantee.id for g in policy.grants] == ["c", "a", "b"]

    def test_policy_grants_are_a_copy(self):
        acl = _acl(("a", Permission.READ))
        policy = to_policy(acl, "AK")
        acl.add_grant(Grant(Grantee("b"), Permission.WRITE))
        assert len(policy.grants) == 1

    def test_none_acl(self):
        assert to_policy(None, "AK") is None


class TestToAcl:
    """Tests for to_acl()."""

    def test_none_policy_is_no_acl(self):
        """An absent policy is a legitimate 'no ACL' result."""
        assert to_acl(None) is None

    def test_builds_one_grant_per_entry(self):
        policy = AccessControlPolicy(
            owner=Owner("someone"),
            grants=[Grant(Grantee("x"), Permission.READ), Grant(Grantee("x"), Permission.WRITE)],
        )
        acl = to_acl(policy)
        assert acl.grants == policy.grants

    @given(grants=grants_strategy, access_key_id=st.text(max_size=12))
    def test_round_trip(self, grants, access_key_id):
        """to_acl(to_policy(L, A)).grants == L for any grant list and key id."""
        acl = AccessControlList(grants=list(grants))
        assert to_acl(to_policy(acl, access_key_id)).grants == grants

    @given(grants=grants_strategy)
    def test_round_trip_through_wire(self, grants):
        acl = AccessControlList(grants=list(grants))
        wire = policy_to_wire(to_policy(acl, "AK"))
        assert to_acl(policy_from_wire(wire)).grants == grants


class TestWireFormat:
    """Tests for policy_from_wire() and policy_to_wire()."""

    def test_policy_to_wire_shape(self):
        policy = to_policy(_acl(("alice", Permission.FULL_CONTROL)), "AK")
        assert policy_to_wire(policy) == {
            "owner": {"id": "AK"},
            "accessControlList": [{"grantee": {"id": "alice"}, "permission": "FULL_CONTROL"}],
        }

    def test_extra_fields_discarded(self):
        payload = {
            "owner": {"id": "AK", "displayName": "Owner"},
            "accessControlList": [
                {
                    "grantee": {"id": "bob", "displayName": "Bob", "type": "USER"},
                    "permission": "READ",
                    "type": "GROUP",
                }
            ],
        }
        policy = policy_from_wire(payload)
        assert policy.owner == Owner("AK", "Owner")
        assert policy.grants == [Grant(Grantee("bob"), Permission.READ)]

    def test_absent_payload(self):
        assert policy_from_wire(None) is None

    def test_empty_list(self):
        assert policy_from_wire({"owner": {"id": "AK"}}).grants == []

    @pytest.mark.parametrize(
        "entry",
        [
            {"permission": "READ"},
            {"grantee": {}, "permission": "READ"},
            {"grantee": {"id": "bob"}},
            {"grantee": {"id": "bob"}, "permission": "EXECUTE"},
            "READ",
        ],
    )
    def test_malformed_entry_surfaced(self, entry):
        """Malformed entries raise instead of being silently dropped."""
        with pytest.raises(TranslationError):
            policy_from_wire({"owner": {"id": "AK"}, "accessControlList": [entry]})

    def test_non_mapping_rejected(self):
        with pytest.raises(TranslationError):
            policy_from_wire(["not", "a", "policy"])
