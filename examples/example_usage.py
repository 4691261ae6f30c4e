"""Example: drive the service layer directly (no Flask).

Prints today's attendance sessions for a staff member, creating them if they
do not exist yet.
"""

import importlib
import sys

from config import get_settings_module

from src.campus_system.campus_system.access.policy import Principal
from src.campus_system.campus_system.container import build_container
from src.campus_system.campus_system.core.enums import Role


def main(staff_id: int = 2):
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    staff = Principal(user_id=staff_id, role=Role.STAFF)
    for item in container.attendance_service.get_today_sessions(actor=staff):
        s = item.session
        print(f"#{s.session_id} {s.start_time:%H:%M}-{s.end_time:%H:%M} subject={s.subject_id} {s.status.value}")


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 2)
