"""
Role predicates for account and ticket operations.

Pure functions over ``Role``; callers combine them with the ownership check in
``hierarchy.owns``. ``can_manage`` is necessary but never sufficient on its own.
"""
from typing import Dict, FrozenSet

from ..models.models import Role


CAN_CREATE: Dict[Role, FrozenSet[Role]] = {
    Role.SYSTEM_OWNER: frozenset({Role.SUPER_ADMIN}),
    Role.SUPER_ADMIN: frozenset({Role.ADMIN}),
    Role.ADMIN: frozenset({Role.IT_PERSON, Role.USER}),
    Role.IT_PERSON: frozenset({Role.USER}),
    Role.USER: frozenset(),
}

CAN_MANAGE: Dict[Role, FrozenSet[Role]] = {
    Role.SYSTEM_OWNER: frozenset(Role),
    Role.SUPER_ADMIN: frozenset({Role.ADMIN, Role.IT_PERSON, Role.USER}),
    Role.ADMIN: frozenset({Role.IT_PERSON, Role.USER}),
    Role.IT_PERSON: frozenset({Role.USER}),
    Role.USER: frozenset(),
}

TICKET_VIEWERS: FrozenSet[Role] = frozenset({Role.SYSTEM_OWNER, Role.SUPER_ADMIN, Role.ADMIN, Role.IT_PERSON})
TICKET_CREATORS: FrozenSet[Role] = frozenset({Role.USER, Role.IT_PERSON})
# Only IT staff resolve tickets
TICKET_CLOSERS: FrozenSet[Role] = frozenset({Role.IT_PERSON})


def can_create(creator_role: Role, target_role: Role) -> bool:
    return Role(target_role) in CAN_CREATE.get(Role(creator_role), frozenset())


def can_manage(manager_role: Role, target_role: Role) -> bool:
    return Role(target_role) in CAN_MANAGE.get(Role(manager_role), frozenset())


def can_view_tickets(role: Role) -> bool:
    return Role(role) in TICKET_VIEWERS


def can_create_tickets(role: Role) -> bool:
    return Role(role) in TICKET_CREATORS


def can_close_tickets(role: Role) -> bool:
    return Role(role) in TICKET_CLOSERS
