"""
Access control for every service operation.

POLICY maps an operation name to the roles allowed outright and, optionally,
the roles allowed only when an ownership predicate holds for the resource.
Services call authorize() twice for resource-scoped operations: once before
loading (role gate), once after loading with the resource (ownership gate).
An employee therefore learns a resource exists (403 instead of 404); this
matches the behaviour clients already depend on.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from app.errors import AuthenticationError, ForbiddenError, UnauthorizedError
from app.models.user import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_SECURITY, ROLES
from app.utils.logger import get_logger

logger = get_logger(__name__)

SECURITY_OR_ADMIN = (ROLE_ADMIN, ROLE_SECURITY)


# ── Predicates ───────────────────────────────────────────────────────────────
def is_admin(actor) -> bool:
    return actor.role == ROLE_ADMIN


def is_security_or_admin(actor) -> bool:
    return actor.role in SECURITY_OR_ADMIN


def _host_id_of(resource) -> Optional[int]:
    """Visitors and appointments carry host_id; passes and check logs reach it through their visitor."""
    host_id = getattr(resource, "host_id", None)
    if host_id is None and getattr(resource, "visitor", None) is not None:
        host_id = resource.visitor.host_id
    return host_id


def is_owner_host(actor, resource) -> bool:
    return actor.role == ROLE_EMPLOYEE and actor.id == _host_id_of(resource)


def is_host_or_attendee(actor, appointment) -> bool:
    if actor.id == appointment.host_id:
        return True
    return any(user.id == actor.id for user in appointment.attendees)


def is_appointment_host(actor, appointment) -> bool:
    return actor.id == appointment.host_id


def is_self_or_admin(actor, user) -> bool:
    return is_admin(actor) or actor.id == user.id


# ── Policy table ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Rule:
    roles: tuple = ()
    owner_roles: tuple = ()
    owner: Optional[Callable[[Any, Any], bool]] = None


_HOST_SCOPED = Rule(roles=SECURITY_OR_ADMIN, owner_roles=(ROLE_EMPLOYEE,), owner=is_owner_host)
_NON_ADMIN = (ROLE_SECURITY, ROLE_EMPLOYEE)

POLICY: dict[str, Rule] = {
    # Passes
    "pass.issue":            Rule(roles=SECURITY_OR_ADMIN),
    "pass.revoke":           Rule(roles=SECURITY_OR_ADMIN),
    "pass.verify":           Rule(roles=SECURITY_OR_ADMIN),
    "pass.list":             Rule(roles=ROLES),
    "pass.read":             _HOST_SCOPED,
    # Check-in / check-out
    "checklog.check_in":     Rule(roles=SECURITY_OR_ADMIN),
    "checklog.check_out":    Rule(roles=SECURITY_OR_ADMIN),
    "checklog.stats":        Rule(roles=SECURITY_OR_ADMIN),
    "checklog.list":         Rule(roles=ROLES),
    "checklog.read":         _HOST_SCOPED,
    "checklog.history":      _HOST_SCOPED,
    # Visitors
    "visitor.create":        Rule(roles=ROLES),
    "visitor.list":          Rule(roles=ROLES),
    "visitor.read":          _HOST_SCOPED,
    "visitor.update":        _HOST_SCOPED,
    "visitor.set_status":    _HOST_SCOPED,
    # Appointments
    "appointment.create":    Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_owner_host),
    "appointment.list":      Rule(roles=ROLES),
    "appointment.read":      Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_host_or_attendee),
    "appointment.update":    Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_appointment_host),
    "appointment.delete":    Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_appointment_host),
    "appointment.set_status": Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_host_or_attendee),
    # Users
    "user.create":           Rule(roles=(ROLE_ADMIN,)),
    "user.list":             Rule(roles=(ROLE_ADMIN,)),
    "user.stats":            Rule(roles=(ROLE_ADMIN,)),
    "user.delete":           Rule(roles=(ROLE_ADMIN,)),
    "user.read":             Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_self_or_admin),
    "user.update":           Rule(roles=(ROLE_ADMIN,), owner_roles=_NON_ADMIN, owner=is_self_or_admin),
}


def authorize(operation: str, actor, resource=None) -> None:
    """
    Raise unless `actor` may run `operation` (on `resource`, when given).
    AuthenticationError: no identity. UnauthorizedError: role not allowed.
    ForbiddenError: role allowed only for own resources and this one is not.
    """
    if actor is None:
        raise AuthenticationError()

    rule = POLICY[operation]
    if actor.role in rule.roles:
        return
    if actor.role in rule.owner_roles:
        if resource is None or rule.owner(actor, resource):
            return
        logger.warning(f"[ACCESS] {operation} denied for user {actor.id}: not the owner")
        raise ForbiddenError()

    logger.warning(f"[ACCESS] {operation} denied for user {actor.id} with role {actor.role}")
    raise UnauthorizedError()


def is_scoped_to_own_visitors(actor) -> bool:
    """List endpoints restrict employees to visitors they host."""
    return actor.role == ROLE_EMPLOYEE
