"""
Per-tenant SQLite databases.

Each tenant keeps one SQLite file per concern under ``<site>/databases/``.
Connections are opened lazily and the schema is created on first use.
"""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import aiosqlite

from .schemas import SCHEMAS

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, directory):
        self.directory = Path(directory)
        self._connections: Dict[str, aiosqlite.Connection] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def available() -> List[str]:
        return list(SCHEMAS)

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}.db"

    async def get_connection(self, name: str) -> aiosqlite.Connection:
        """Open (and scaffold) the named database on first use"""
        if name not in SCHEMAS:
            raise ValueError(f"Unknown database '{name}', expected one of {', '.join(SCHEMAS)}")

        async with self._lock:
            connection = self._connections.get(name)
            if connection is None:
                self.directory.mkdir(parents=True, exist_ok=True)
                connection = await aiosqlite.connect(self.path_for(name))
                connection.row_factory = aiosqlite.Row
                await connection.execute("PRAGMA foreign_keys = ON")
                await connection.executescript(SCHEMAS[name])
                await connection.commit()
                self._connections[name] = connection
                logger.debug("Opened database %s", self.path_for(name))
            return connection

    async def scaffold_all(self) -> None:
        for name in SCHEMAS:
            await self.get_connection(name)

    async def execute(self, name: str, query: str, params: tuple = ()) -> int:
        """Run a write statement; returns the last inserted row id"""
        connection = await self.get_connection(name)
        cursor = await connection.execute(query, params)
        await connection.commit()
        return cursor.lastrowid

    async def fetch_one(self, name: str, query: str, params: tuple = ()) -> Optional[aiosqlite.Row]:
        connection = await self.get_connection(name)
        async with connection.execute(query, params) as cursor:
            return await cursor.fetchone()

    async def fetch_all(self, name: str, query: str, params: tuple = ()) -> List[aiosqlite.Row]:
        connection = await self.get_connection(name)
        async with connection.execute(query, params) as cursor:
            return list(await cursor.fetchall())

    async def close(self) -> None:
        async with self._lock:
            connections, self._connections = self._connections, {}
        for name, connection in connections.items():
            await connection.close()
            logger.debug("Closed database %s", self.path_for(name))

    async def record_page_view(self, page_path: str, page_title: Optional[str] = None,
                               referrer: Optional[str] = None, user_agent: Optional[str] = None,
                               ip_address: Optional[str] = None, session_id: Optional[str] = None) -> int:
        return await self.execute(
            "analytics",
            "INSERT INTO page_views (page_path, page_title, referrer, user_agent, ip_address, session_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (page_path, page_title, referrer, user_agent, ip_address, session_id),
        )

    async def store_form_submission(self, form_name: str, data: Mapping[str, Any],
                                    ip_address: Optional[str] = None,
                                    user_agent: Optional[str] = None) -> str:
        """Store a submission, creating the form record on first use; returns the submission uuid"""
        row = await self.fetch_one("forms", "SELECT id FROM forms WHERE name = ?", (form_name,))
        if row is None:
            form_id = await self.execute(
                "forms",
                "INSERT INTO forms (uuid, name, title, fields) VALUES (?, ?, ?, ?)",
                (str(uuid.uuid4()), form_name, form_name, json.dumps(sorted(data))),
            )
        else:
            form_id = row["id"]

        submission_id = str(uuid.uuid4())
        await self.execute(
            "forms",
            "INSERT INTO form_submissions (uuid, form_id, data, ip_address, user_agent) VALUES (?, ?, ?, ?, ?)",
            (submission_id, form_id, json.dumps(dict(data), default=str), ip_address, user_agent),
        )
        return submission_id

    async def list_forms(self) -> List[Dict[str, Any]]:
        """Every form with its submission count, by name"""
        rows = await self.fetch_all(
            "forms",
            "SELECT f.name, f.title, f.created_at, COUNT(s.id) AS submissions "
            "FROM forms f LEFT JOIN form_submissions s ON s.form_id = f.id "
            "GROUP BY f.id ORDER BY f.name",
        )
        return [dict(row) for row in rows]

    async def get_form_submissions(self, form_name: str, limit: int = 100) -> Optional[List[Dict[str, Any]]]:
        """Newest submissions first; None when no form has that name"""
        form = await self.fetch_one("forms", "SELECT id FROM forms WHERE name = ?", (form_name,))
        if form is None:
            return None
        rows = await self.fetch_all(
            "forms",
            "SELECT uuid, data, ip_address, user_agent, created_at FROM form_submissions "
            "WHERE form_id = ? ORDER BY id DESC LIMIT ?",
            (form["id"], limit),
        )
        submissions = []
        for row in rows:
            submission = dict(row)
            submission["data"] = json.loads(submission["data"])
            submissions.append(submission)
        return submissions
