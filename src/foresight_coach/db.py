"""Database initialization, connection management and aggregate persistence."""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from foresight_coach.config import DEFAULT_DB_PATH
from foresight_coach.errors import NotFoundError
from foresight_coach.models import LearningJourney, Lesson, Preferences, Profile, User

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    profile TEXT NOT NULL DEFAULT '{}',
    preferences TEXT NOT NULL DEFAULT '{}',
    journey TEXT NOT NULL DEFAULT '{}',
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS lessons (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    day INTEGER NOT NULL,
    title TEXT NOT NULL,
    payload TEXT NOT NULL,
    is_fallback INTEGER DEFAULT 0,
    generated_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH, timeout: float = 5.0) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path, timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        profile=Profile.from_dict(json.loads(row["profile"])),
        preferences=Preferences.from_dict(json.loads(row["preferences"])),
        journey=LearningJourney.from_dict(json.loads(row["journey"])),
        created_at=row["created_at"],
    )


def _fetch_user(conn: sqlite3.Connection, user_id: int) -> User:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        raise NotFoundError(f"User {user_id} not found")
    return _row_to_user(row)


def _write_user(conn: sqlite3.Connection, user: User) -> None:
    conn.execute(
        "UPDATE users SET name = ?, profile = ?, preferences = ?, journey = ?, updated_at = ? WHERE id = ?",
        (
            user.name,
            json.dumps(user.profile.to_dict()),
            json.dumps(user.preferences.to_dict()),
            json.dumps(user.journey.to_dict()),
            datetime.now().isoformat(),
            user.id,
        ),
    )


def create_user(db_path: str, email: str, name: str,
                profile: Optional[Profile] = None, preferences: Optional[Preferences] = None) -> User:
    """Register a user with a fresh learning journey."""
    email = email.strip().lower()
    profile = profile or Profile()
    preferences = preferences or Preferences()
    now = datetime.now().isoformat()
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO users (email, name, profile, preferences, journey, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            email, name,
            json.dumps(profile.to_dict()),
            json.dumps(preferences.to_dict()),
            json.dumps(LearningJourney().to_dict()),
            now, now,
        ),
    )
    conn.commit()
    user = _fetch_user(conn, cur.lastrowid)
    conn.close()
    return user


def get_user(db_path: str, user_id: int) -> User:
    conn = get_connection(db_path)
    try:
        return _fetch_user(conn, user_id)
    finally:
        conn.close()


def find_user_by_email(db_path: str, email: str) -> User | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email.strip().lower(),)).fetchone()
    conn.close()
    return _row_to_user(row) if row else None


def load_journey(db_path: str, user_id: int) -> LearningJourney:
    return get_user(db_path, user_id).journey


def save_journey(db_path: str, user_id: int, journey: LearningJourney) -> None:
    conn = get_connection(db_path)
    cur = conn.execute(
        "UPDATE users SET journey = ?, updated_at = ? WHERE id = ?",
        (json.dumps(journey.to_dict()), datetime.now().isoformat(), user_id),
    )
    if cur.rowcount == 0:
        conn.close()
        raise NotFoundError(f"User {user_id} not found")
    conn.commit()
    conn.close()


@contextmanager
def user_transaction(db_path: str, user_id: int, timeout: float = 5.0) -> Iterator[tuple[sqlite3.Connection, User]]:
    """Load a user under a write lock and persist it when the block succeeds.

    The lock is taken before the read, so concurrent operations on the same
    database run one after another. Any exception rolls the changes back.
    """
    conn = get_connection(db_path, timeout=timeout)
    try:
        conn.execute("BEGIN IMMEDIATE")
        user = _fetch_user(conn, user_id)
        yield conn, user
        _write_user(conn, user)
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def archive_lesson(conn: sqlite3.Connection, user_id: int, lesson: Lesson) -> None:
    """Keep a copy of a generated lesson. Runs inside the caller's transaction."""
    conn.execute(
        "INSERT INTO lessons (user_id, day, title, payload, is_fallback, generated_at) VALUES (?, ?, ?, ?, ?, ?)",
        (
            user_id, lesson.day, lesson.title,
            json.dumps(lesson.to_dict()),
            int(lesson.is_fallback),
            lesson.generated_at.isoformat() if lesson.generated_at else None,
        ),
    )


def get_archived_lessons(db_path: str, user_id: int) -> list[Lesson]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT payload FROM lessons WHERE user_id = ? ORDER BY id", (user_id,)).fetchall()
    conn.close()
    return [Lesson.from_dict(json.loads(r["payload"])) for r in rows]
