"""Property tests for policy resolution invariants.

These tests verify that role resolution behaves the same for every role
list a credential can carry: any order, duplicates and unrecognized
strings included.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from src.swrpg.shared.auth.catalog import get_default_catalog
from src.swrpg.shared.auth.enums import VALID_ROLES, Permission, Role
from src.swrpg.shared.auth.policy import (
    build_permission_context,
    has_permission,
    permissions_for,
    resolve_highest_role,
    token_limit_for,
)
from src.swrpg.shared.middleware.enforcement import requested_tokens_from

known_roles = st.sampled_from(sorted(VALID_ROLES))
unknown_roles = st.text(max_size=12).filter(lambda s: s not in VALID_ROLES)


@st.composite
def role_lists(draw, max_size=8):
    """Role lists mixing recognized and unrecognized strings, with duplicates."""
    return draw(st.lists(st.one_of(known_roles, unknown_roles), max_size=max_size))


class TestHighestRoleProperties:
    @settings(max_examples=200)
    @given(roles=role_lists())
    def test_order_independent(self, roles):
        """Resolution depends on the set of roles, not their order."""
        assert resolve_highest_role(roles) == resolve_highest_role(
            list(reversed(roles))
        )
        assert resolve_highest_role(roles) == resolve_highest_role(sorted(roles))

    @settings(max_examples=200)
    @given(roles=role_lists())
    def test_result_is_present_or_guest(self, roles):
        highest = resolve_highest_role(roles)
        assert highest.value in roles or highest == Role.GUEST

    @settings(max_examples=200)
    @given(roles=role_lists())
    def test_no_present_role_outranks_result(self, roles):
        catalog = get_default_catalog()
        highest_rank = catalog.rank_of(resolve_highest_role(roles))
        for role in roles:
            if role in VALID_ROLES:
                assert catalog.rank_of(role) >= highest_rank

    @settings(max_examples=100)
    @given(roles=role_lists(), junk=st.lists(unknown_roles, max_size=4))
    def test_unrecognized_roles_never_matter(self, roles, junk):
        assert resolve_highest_role(roles + junk) == resolve_highest_role(roles)

    @settings(max_examples=100)
    @given(roles=role_lists())
    def test_duplicates_never_matter(self, roles):
        assert resolve_highest_role(roles + roles) == resolve_highest_role(roles)


class TestPermissionProperties:
    @settings(max_examples=200)
    @given(roles=role_lists())
    def test_permissions_equal_highest_role_set(self, roles):
        """No union: the effective set is exactly the highest role's set."""
        highest = resolve_highest_role(roles)
        assert permissions_for(roles) == permissions_for([highest.value])

    @settings(max_examples=100)
    @given(roles=role_lists(), permission=st.sampled_from(list(Permission)))
    def test_super_admin_dominates(self, roles, permission):
        assert has_permission(roles + ["super_admin"], permission)

    @settings(max_examples=100)
    @given(roles=role_lists())
    def test_context_consistent(self, roles):
        context = build_permission_context(roles)
        assert context.highest_role == resolve_highest_role(roles)
        assert context.permissions == permissions_for(roles)
        assert context.token_limit == token_limit_for(roles)


class TestTokenProperties:
    @settings(max_examples=100)
    @given(roles=role_lists())
    def test_default_request_always_fits(self, roles):
        """The default request size fits every role's token limit."""
        assert requested_tokens_from({}) <= token_limit_for(roles)

    @settings(max_examples=100)
    @given(value=st.integers(min_value=1, max_value=10**9))
    def test_positive_request_read_back(self, value):
        assert requested_tokens_from({"maxTokens": value}) == value
