from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
            buf.append(ch)
            continue

        if ch == '"' and not in_single:
            in_double = not in_double
            buf.append(ch)
            continue

        if ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _exec_sql(cur, sql: str) -> None:
    for stmt in _iter_sql_statements(sql):
        cur.execute(stmt)


def ensure_database_exists(db_config: dict) -> None:
    factory = DatabaseConnection(DBConfig.from_dict(db_config))
    conn = factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{factory.config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)

    schema_path = Path(schema_path)
    sql = _strip_create_db_and_use(_strip_line_comments(schema_path.read_text(encoding="utf-8")))

    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        _exec_sql(cur, sql)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied from %s", schema_path)


def ensure_demo_data(db_config: dict) -> None:
    """Idempotently insert a small demo campus.

    One department, one subject, an admin, a staff member with a Monday slot
    and a handful of semester 5 / section A students.
    """

    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor(dictionary=True)

        def get_or_insert(select_sql: str, select_args: tuple, insert_sql: str, insert_args: tuple) -> int:
            cur.execute(select_sql, select_args)
            row = cur.fetchone()
            if row:
                return int(next(iter(row.values())))
            cur.execute(insert_sql, insert_args)
            return int(cur.lastrowid)

        dept_id = get_or_insert(
            "SELECT dept_id FROM departments WHERE dept_name=%s",
            ("Computer Science",),
            "INSERT INTO departments (dept_name) VALUES (%s)",
            ("Computer Science",),
        )
        subject_id = get_or_insert(
            "SELECT subject_id FROM subjects WHERE subject_code=%s",
            ("CS501",),
            "INSERT INTO subjects (subject_code, subject_name, dept_id) VALUES (%s, %s, %s)",
            ("CS501", "Compiler Design", dept_id),
        )

        def upsert_user(full_name: str, username: str, password: str, role: str) -> int:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, password_hash=%s, role=%s, dept_id=%s, is_active=1
                    WHERE username=%s
                    """,
                    (full_name, password_hash, role, dept_id, username),
                )
                return int(existing["user_id"])
            cur.execute(
                """
                INSERT INTO users (full_name, username, password_hash, role, dept_id)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (full_name, username, password_hash, role, dept_id),
            )
            return int(cur.lastrowid)

        upsert_user("Admin Demo", "admin", "admin123", "ADMIN")
        staff_id = upsert_user("Staff Demo", "staff", "staff123", "STAFF")

        for n in range(1, 6):
            student_id = upsert_user(f"Student {n}", f"student{n}", "student123", "STUDENT")
            cur.execute(
                """
                INSERT INTO student_profiles (user_id, regno, semester, section)
                VALUES (%s, %s, 5, 'A')
                ON DUPLICATE KEY UPDATE semester=VALUES(semester), section=VALUES(section)
                """,
                (student_id, f"CS5A{n:03d}"),
            )

        cur.execute(
            "SELECT timetable_id FROM timetable_entries WHERE staff_id=%s AND day_of_week='MONDAY'",
            (staff_id,),
        )
        if not cur.fetchone():
            cur.execute(
                """
                INSERT INTO timetable_entries
                    (staff_id, subject_id, dept_id, day_of_week, start_time, end_time, room, semester, section)
                VALUES (%s, %s, %s, 'MONDAY', '09:00:00', '10:00:00', 'R101', 5, 'A')
                """,
                (staff_id, subject_id, dept_id),
            )

        conn.commit()
    finally:
        conn.close()
    logger.info("Demo data ready")


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
