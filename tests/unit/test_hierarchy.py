"""Pointer inheritance and the ownership predicate, without a database."""

import uuid
from types import SimpleNamespace

from helpdesk.models.models import Role
from helpdesk.services.hierarchy import (
    HierarchyPointers,
    coerce_id,
    inherit_pointers,
    owns,
    slot_for,
)


def _account(role, **pointers):
    base = dict(system_owner_id=None, super_admin_id=None, admin_id=None, it_person_id=None)
    base.update(pointers)
    return SimpleNamespace(id=uuid.uuid4(), role=role, **base)


class TestInheritPointers:

    def test_chain_append(self):
        """Each level copies its creator's pointers and adds the creator at its own slot."""
        so, sa, ad, it = (uuid.uuid4() for _ in range(4))

        sa_ptrs = inherit_pointers(Role.SYSTEM_OWNER, so, HierarchyPointers())
        assert sa_ptrs == HierarchyPointers(system_owner_id=so)

        ad_ptrs = inherit_pointers(Role.SUPER_ADMIN, sa, sa_ptrs)
        it_ptrs = inherit_pointers(Role.ADMIN, ad, ad_ptrs)
        user_ptrs = inherit_pointers(Role.IT_PERSON, it, it_ptrs)

        assert user_ptrs == HierarchyPointers(
            system_owner_id=so, super_admin_id=sa, admin_id=ad, it_person_id=it
        )

    def test_admin_created_user_has_no_it_pointer(self):
        so, sa, ad = (uuid.uuid4() for _ in range(3))
        ptrs = HierarchyPointers(system_owner_id=so, super_admin_id=sa)
        child = inherit_pointers(Role.ADMIN, ad, ptrs)
        assert child.admin_id == ad
        assert child.it_person_id is None

    def test_creator_pointers_are_not_mutated(self):
        ptrs = HierarchyPointers()
        inherit_pointers(Role.SYSTEM_OWNER, uuid.uuid4(), ptrs)
        assert ptrs == HierarchyPointers()

    def test_user_slot_is_empty(self):
        assert slot_for(Role.USER) is None
        ptrs = HierarchyPointers(admin_id=uuid.uuid4())
        assert inherit_pointers(Role.USER, uuid.uuid4(), ptrs) == ptrs


class TestOwns:

    def test_self_is_owned(self):
        user = _account(Role.USER)
        assert owns(user, user)

    def test_ancestor_owns_by_role_slot(self):
        admin = _account(Role.ADMIN)
        user = _account(Role.USER, admin_id=admin.id)
        assert owns(admin, user)
        assert not owns(user, admin)

    def test_other_branch_is_not_owned(self):
        admin = _account(Role.ADMIN)
        stranger = _account(Role.USER, admin_id=uuid.uuid4())
        assert not owns(admin, stranger)

    def test_pointer_in_wrong_slot_does_not_count(self):
        admin = _account(Role.ADMIN)
        user = _account(Role.USER, it_person_id=admin.id)
        assert not owns(admin, user)


class TestCoerceId:

    def test_round_trip(self):
        value = uuid.uuid4()
        assert coerce_id(value) is value
        assert coerce_id(str(value)) == value

    def test_garbage_is_none(self):
        assert coerce_id("not-a-uuid") is None
        assert coerce_id(None) is None
