"""Tenant user accounts stored in the ``users`` database."""

import asyncio
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..databases import DatabaseManager
from .passwords import DEFAULT_ROUNDS, hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass
class User:
    id: int
    uuid: str
    username: str
    email: str
    role: str = "user"
    first_name: str = ""
    last_name: str = ""
    active: bool = True
    password_hash: str = field(default="", repr=False)
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        return cls(
            id=row["id"],
            uuid=row["uuid"],
            username=row["username"],
            email=row["email"],
            role=row["role"] or "user",
            first_name=row["first_name"] or "",
            last_name=row["last_name"] or "",
            active=bool(row["active"]),
            password_hash=row["password_hash"],
            created_at=row["created_at"],
            last_login=row["last_login"],
        )


_USER_COLUMNS = ("id, uuid, username, email, password_hash, first_name, last_name, role, active, "
                 "created_at, last_login")


class UserRepository:
    def __init__(self, databases: DatabaseManager, rounds: int = DEFAULT_ROUNDS):
        self.databases = databases
        self.rounds = rounds

    async def create(self, username: str, email: str, password: str, role: str = "user",
                     first_name: str = "", last_name: str = "") -> User:
        """Create a user; raises ValueError when the username or email is taken"""
        username = username.strip()
        email = email.strip().lower()
        if not username or not email:
            raise ValueError("Username and email are required")
        if not password:
            raise ValueError("Password is required")

        password_hash = await asyncio.to_thread(hash_password, password, self.rounds)
        try:
            user_id = await self.databases.execute(
                "users",
                "INSERT INTO users (uuid, username, email, password_hash, first_name, last_name, role) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (str(uuid.uuid4()), username, email, password_hash,
                 first_name, last_name, role),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"User '{username}' or email '{email}' already exists") from e

        logger.info("Created user %s", username)
        return await self.get_by_id(user_id)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self._get_one("id = ?", (user_id,))

    async def get_by_username(self, username: str) -> Optional[User]:
        return await self._get_one("username = ?", (username.strip(),))

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._get_one("email = ?", (email.strip().lower(),))

    async def get_by_login(self, identifier: str) -> Optional[User]:
        if "@" in identifier:
            return await self.get_by_email(identifier)
        return await self.get_by_username(identifier)

    async def authenticate(self, identifier: str, password: str) -> Optional[User]:
        """Return the active user matching the credentials and record the login"""
        user = await self.get_by_login(identifier)
        if user is None or not user.active:
            return None
        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            return None
        await self.databases.execute(
            "users", "UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?", (user.id,))
        return user

    async def _get_one(self, where: str, params: tuple) -> Optional[User]:
        row = await self.databases.fetch_one("users", f"SELECT {_USER_COLUMNS} FROM users WHERE {where}", params)
        return User.from_row(row) if row is not None else None
