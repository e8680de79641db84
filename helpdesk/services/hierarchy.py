"""
Ownership chain for accounts.

Every account carries four optional pointers naming the nearest ancestor of
each managing role in the chain that created it. Pointers are computed once,
at creation, and never rewritten. "A owns D" means D's pointer for A's role
is A's id, or A and D are the same account.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Dict, Optional

from sqlalchemy import or_

from ..models.models import Account, Role


HIERARCHY_SLOTS: Dict[Role, Optional[str]] = {
    Role.SYSTEM_OWNER: "system_owner_id",
    Role.SUPER_ADMIN: "super_admin_id",
    Role.ADMIN: "admin_id",
    Role.IT_PERSON: "it_person_id",
    Role.USER: None,
}

POINTER_FIELDS = ("system_owner_id", "super_admin_id", "admin_id", "it_person_id")


@dataclass(frozen=True)
class HierarchyPointers:
    system_owner_id: Optional[uuid.UUID] = None
    super_admin_id: Optional[uuid.UUID] = None
    admin_id: Optional[uuid.UUID] = None
    it_person_id: Optional[uuid.UUID] = None

    def as_dict(self) -> Dict[str, Optional[uuid.UUID]]:
        return {f: getattr(self, f) for f in POINTER_FIELDS}

    def contains(self, account_id: uuid.UUID) -> bool:
        return any(getattr(self, f) == account_id for f in POINTER_FIELDS)


def coerce_id(value) -> Optional[uuid.UUID]:
    """Parse an account id; ``None`` for anything that is not a UUID."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def slot_for(role: Role) -> Optional[str]:
    return HIERARCHY_SLOTS[Role(role)]


def pointers_of(account: Account) -> HierarchyPointers:
    return HierarchyPointers(**{f: getattr(account, f) for f in POINTER_FIELDS})


def inherit_pointers(
    creator_role: Role,
    creator_id: uuid.UUID,
    creator_pointers: HierarchyPointers,
) -> HierarchyPointers:
    """Child pointers: the creator's own pointers plus the creator at its role slot."""
    slot = slot_for(creator_role)
    if slot is None:
        # Users never create accounts; nothing to append
        return creator_pointers
    return replace(creator_pointers, **{slot: creator_id})


def owns(ancestor: Account, descendant: Account) -> bool:
    if ancestor.id == descendant.id:
        return True
    slot = slot_for(ancestor.role)
    if slot is None:
        return False
    return getattr(descendant, slot) == ancestor.id


def subtree_clause(account_id: uuid.UUID, self_column=None):
    """OR over the pointer columns; ``self_column`` adds ``self_column == account_id``."""
    clauses = [getattr(Account, f) == account_id for f in POINTER_FIELDS]
    if self_column is not None:
        clauses.append(self_column == account_id)
    return or_(*clauses)
