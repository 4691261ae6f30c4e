from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an account (admin, staff or student).

    Plain data object; no DB access here.
    """

    user_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    dept_id: Optional[int]
    is_active: bool = True


@dataclass(frozen=True)
class RosterStudent:
    """Read-model: a student as listed on a session roster."""

    user_id: int
    full_name: str
    username: str
    dept_id: Optional[int]
    regno: Optional[str]
    semester: Optional[int]
    section: Optional[str]
