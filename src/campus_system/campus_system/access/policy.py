from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Protocol

from ..core.enums import Role
from ..core.exceptions import AuthorizationError


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of an operation."""

    user_id: int
    role: Role
    full_name: Optional[str] = None


class Capability(str, Enum):
    MANAGE_TIMETABLE = "MANAGE_TIMETABLE"
    VIEW_TIMETABLE = "VIEW_TIMETABLE"
    TAKE_ATTENDANCE = "TAKE_ATTENDANCE"
    LOCK_SESSION = "LOCK_SESSION"
    VIEW_SUBJECT_REPORT = "VIEW_SUBJECT_REPORT"
    VIEW_STAFF_REPORT = "VIEW_STAFF_REPORT"
    VIEW_ANY_STUDENT_REPORT = "VIEW_ANY_STUDENT_REPORT"


class AccessPolicy(Protocol):
    """Answers "does principal P have capability C"."""

    def allows(self, principal: Principal, capability: Capability) -> bool:
        raise NotImplementedError

    def require(self, principal: Principal, capability: Capability) -> None:
        raise NotImplementedError


DEFAULT_GRANTS: Mapping[Role, frozenset] = {
    Role.ADMIN: frozenset(
        {
            Capability.MANAGE_TIMETABLE,
            Capability.VIEW_TIMETABLE,
            Capability.LOCK_SESSION,
            Capability.VIEW_SUBJECT_REPORT,
            Capability.VIEW_STAFF_REPORT,
            Capability.VIEW_ANY_STUDENT_REPORT,
        }
    ),
    Role.STAFF: frozenset(
        {
            Capability.VIEW_TIMETABLE,
            Capability.TAKE_ATTENDANCE,
            Capability.LOCK_SESSION,
            Capability.VIEW_SUBJECT_REPORT,
            Capability.VIEW_STAFF_REPORT,
            Capability.VIEW_ANY_STUDENT_REPORT,
        }
    ),
    Role.STUDENT: frozenset({Capability.VIEW_TIMETABLE}),
}


@dataclass(frozen=True)
class RoleAccessPolicy:
    """Static role -> capability table."""

    grants: Mapping[Role, frozenset] = field(default_factory=lambda: DEFAULT_GRANTS)

    def allows(self, principal: Principal, capability: Capability) -> bool:
        return capability in self.grants.get(principal.role, frozenset())

    def require(self, principal: Principal, capability: Capability) -> None:
        if not self.allows(principal, capability):
            raise AuthorizationError("You do not have permission to perform this action")
