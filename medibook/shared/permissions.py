"""Role/ownership policy shared by every domain.

The policy is a table keyed by ``(Resource, Action)``; each entry maps a role
to a rule. Admins are allowed everywhere. A role missing from an entry is
denied. ``OWNER`` grants access only when the caller's user id is one of the
resource's owning user ids, which the service resolves and passes in.

Nothing here touches the database or raises on a plain "no"; ``is_allowed``
returns a bool and ``ensure_allowed`` is the one place that turns a denial
into ``ForbiddenError``.
"""

import enum
import logging
from collections.abc import Iterable

from ..exceptions import ForbiddenError
from ..models import Role

logger = logging.getLogger(__name__)


class Resource(str, enum.Enum):
    user = "user"
    doctor = "doctor"
    timeslot = "timeslot"
    appointment = "appointment"
    message = "message"


class Action(str, enum.Enum):
    create = "create"
    list = "list"
    read = "read"
    update = "update"
    delete = "delete"
    mark_read = "mark_read"


class Rule(str, enum.Enum):
    ALLOW = "allow"
    OWNER = "owner"


ALLOW, OWNER = Rule.ALLOW, Rule.OWNER
C, D = Role.customer, Role.doctor

POLICY: dict[tuple[Resource, Action], dict[Role, Rule]] = {
    (Resource.user, Action.create): {},
    (Resource.user, Action.list): {},
    (Resource.user, Action.read): {C: OWNER, D: OWNER},
    (Resource.user, Action.update): {C: OWNER, D: OWNER},
    (Resource.user, Action.delete): {C: OWNER, D: OWNER},
    (Resource.doctor, Action.create): {},
    (Resource.doctor, Action.list): {C: ALLOW, D: ALLOW},
    (Resource.doctor, Action.read): {C: ALLOW, D: ALLOW},
    (Resource.doctor, Action.update): {D: OWNER},
    (Resource.doctor, Action.delete): {},
    (Resource.timeslot, Action.create): {D: OWNER},
    # list rows are scoped per role by the service (own rows, available rows, ...)
    (Resource.timeslot, Action.list): {C: ALLOW, D: ALLOW},
    (Resource.timeslot, Action.read): {C: ALLOW, D: OWNER},
    (Resource.timeslot, Action.update): {D: OWNER},
    (Resource.timeslot, Action.delete): {D: OWNER},
    (Resource.appointment, Action.create): {C: ALLOW},
    (Resource.appointment, Action.list): {C: ALLOW, D: ALLOW},
    (Resource.appointment, Action.read): {C: OWNER, D: OWNER},
    (Resource.appointment, Action.update): {C: OWNER},
    (Resource.appointment, Action.delete): {C: OWNER},
    (Resource.message, Action.create): {C: ALLOW, D: ALLOW},
    (Resource.message, Action.list): {C: ALLOW, D: ALLOW},
    (Resource.message, Action.read): {C: OWNER, D: OWNER},
    (Resource.message, Action.mark_read): {C: OWNER, D: OWNER},
    (Resource.message, Action.delete): {C: OWNER, D: OWNER},
}


def rule_for(role: Role, resource: Resource, action: Action):
    """Return the rule a role gets for (resource, action), or None when denied"""
    if role == Role.admin:
        return ALLOW
    return POLICY.get((resource, action), {}).get(role)


def is_allowed(caller, resource: Resource, action: Action, owner_ids: Iterable[int] = ()) -> bool:
    """
    Decide whether ``caller`` may perform ``action`` on ``resource``.

    Args:
        caller: anything with ``user_id`` and ``role`` (normally ``auth.Caller``)
        owner_ids: user ids that own the concrete resource; ignored for ALLOW rules
    """
    rule = rule_for(caller.role, resource, action)
    if rule is None:
        return False
    if rule == ALLOW:
        return True
    return caller.user_id in {oid for oid in owner_ids if oid is not None}


def ensure_allowed(
    caller,
    resource: Resource,
    action: Action,
    owner_ids: Iterable[int] = (),
    detail: str = "Forbidden: Access is denied.",
) -> None:
    owner_ids = tuple(owner_ids)
    if not is_allowed(caller, resource, action, owner_ids):
        logger.warning(
            f"🚫 Access denied: user {caller.user_id} ({caller.role.value}) "
            f"tried {action.value} on {resource.value} owned by {list(owner_ids)}"
        )
        raise ForbiddenError(detail)
