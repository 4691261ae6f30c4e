from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import RosterStudent, User


class UserRepository(Protocol):
    """Repository interface for users.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def list_students_for_class(
        self,
        *,
        dept_id: int,
        semester: Optional[int],
        section: Optional[str],
    ) -> Sequence[RosterStudent]:
        """Active students of a department whose profile semester/section
        equal the given values exactly (NULL only matches NULL)."""

        raise NotImplementedError
