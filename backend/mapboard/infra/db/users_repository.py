from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import bcrypt
from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from .tables import users_table

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes; longer passwords are refused
MAX_PASSWORD_BYTES = 72
ROLES = ("user", "admin")


def hash_password(password: str, *, rounds: int = BCRYPT_ROUNDS) -> str:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def check_password(password: str, stored: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, stored.encode("ascii"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


class UsersRepository:
    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine

    def upsert_user(self, username: str, password: str, role: str = "user") -> int:
        if role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}")
        password_hash = hash_password(password)
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(users_table.c.id).where(users_table.c.username == username)
            ).scalar_one_or_none()
            if existing:
                conn.execute(
                    update(users_table)
                    .where(users_table.c.id == existing)
                    .values(password_hash=password_hash, role=role)
                )
                return existing
            result = conn.execute(
                insert(users_table).values(
                    username=username,
                    password_hash=password_hash,
                    role=role,
                    created_at=datetime.now(timezone.utc),
                )
            )
            return result.inserted_primary_key[0]

    def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        with self.engine.begin() as conn:
            row = conn.execute(select(users_table).where(users_table.c.username == username)).mappings().first()
        return dict(row) if row else None

    def verify_credentials(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        user = self.get_user(username)
        if user is None or not check_password(password, user["password_hash"]):
            return None
        return user
