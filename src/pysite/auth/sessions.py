"""Login sessions stored in the tenant ``users`` database."""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from ..config import SessionConfig
from ..databases import DatabaseManager
from .users import User, _USER_COLUMNS

if TYPE_CHECKING:
    from ..http import Request
    from ..sites import Site

logger = logging.getLogger(__name__)

# Same layout as SQLite's CURRENT_TIMESTAMP so values compare as strings
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


class SessionStore:
    def __init__(self, databases: DatabaseManager, config: Optional[SessionConfig] = None):
        self.databases = databases
        self.config = config or SessionConfig()

    async def create(self, user: User, ip_address: Optional[str] = None,
                     user_agent: Optional[str] = None) -> str:
        """Start a session for ``user``; returns the opaque session token"""
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.config.max_age)
        await self.databases.execute(
            "users",
            "INSERT INTO user_sessions (uuid, user_id, session_token, expires_at, ip_address, user_agent) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (str(uuid.uuid4()), user.id, token, _timestamp(expires_at), ip_address, user_agent),
        )
        logger.debug("Created session for user %s", user.username)
        return token

    async def get_user(self, token: str) -> Optional[User]:
        """The active user owning an unexpired session, or None"""
        if not token:
            return None
        columns = ", ".join(f"u.{column.strip()}" for column in _USER_COLUMNS.split(","))
        row = await self.databases.fetch_one(
            "users",
            f"SELECT {columns} FROM user_sessions s JOIN users u ON u.id = s.user_id "
            "WHERE s.session_token = ? AND s.expires_at > ? AND u.active = 1",
            (token, _timestamp(datetime.now(timezone.utc))),
        )
        return User.from_row(row) if row is not None else None

    async def delete(self, token: str) -> None:
        await self.databases.execute("users", "DELETE FROM user_sessions WHERE session_token = ?", (token,))

    async def cleanup(self) -> int:
        """Remove expired sessions; returns how many were removed"""
        connection = await self.databases.get_connection("users")
        cursor = await connection.execute(
            "DELETE FROM user_sessions WHERE expires_at <= ?", (_timestamp(datetime.now(timezone.utc)),))
        await connection.commit()
        if cursor.rowcount:
            logger.info("Removed %d expired session(s)", cursor.rowcount)
        return cursor.rowcount


async def authenticate_request(request: "Request", site: "Site",
                               config: Optional[SessionConfig] = None) -> Optional[User]:
    """Resolve the request's session cookie to a user of ``site``; None when anonymous"""
    config = config or SessionConfig()
    token = request.cookies.get(config.cookie_name)
    if not token:
        return None
    return await SessionStore(site.databases, config).get_user(token)
