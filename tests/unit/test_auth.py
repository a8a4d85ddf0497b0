"""
Unit tests for tenant databases, users, passwords and sessions
"""
import json
import sqlite3
import threading

import pytest

from pysite.auth import users as users_module
from pysite.auth import SessionStore, UserRepository, hash_password, needs_rehash, verify_password
from pysite.config import SessionConfig
from pysite.databases import DatabaseManager


@pytest.fixture
async def databases(tmp_path):
    manager = DatabaseManager(tmp_path / "databases")
    yield manager
    await manager.close()


@pytest.fixture
def users(databases):
    return UserRepository(databases, rounds=4)


@pytest.mark.unit
class TestPasswords:
    """Test bcrypt password helpers"""

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret", rounds=4)
        assert hashed.startswith("$2")
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_matches(self):
        assert verify_password("x", "not-a-hash") is False

    def test_too_long(self):
        with pytest.raises(ValueError):
            hash_password("x" * 73, rounds=4)

    def test_needs_rehash(self):
        hashed = hash_password("pw", rounds=4)
        assert needs_rehash(hashed, rounds=12)
        assert not needs_rehash(hashed, rounds=4)
        assert needs_rehash("plain")


@pytest.mark.unit
@pytest.mark.database
class TestDatabaseManager:
    """Test DatabaseManager class"""

    @pytest.mark.asyncio
    async def test_scaffold_all(self, databases):
        await databases.scaffold_all()
        for name in DatabaseManager.available():
            assert databases.path_for(name).is_file()
        rows = await databases.fetch_all("analytics", "SELECT name FROM sqlite_master WHERE type = 'table'")
        assert {"page_views", "events"} <= {row["name"] for row in rows}

    @pytest.mark.asyncio
    async def test_unknown_database(self, databases):
        with pytest.raises(ValueError):
            await databases.get_connection("nope")

    @pytest.mark.asyncio
    async def test_connection_reused(self, databases):
        assert await databases.get_connection("content") is await databases.get_connection("content")

    @pytest.mark.asyncio
    async def test_record_page_view(self, databases):
        await databases.record_page_view("/about", page_title="About", ip_address="1.2.3.4")
        row = await databases.fetch_one("analytics", "SELECT page_path, page_title, ip_address FROM page_views")
        assert tuple(row) == ("/about", "About", "1.2.3.4")

    @pytest.mark.asyncio
    async def test_form_submissions(self, databases, faker):
        data = {"name": faker.name(), "email": faker.email()}
        first = await databases.store_form_submission("contact", data)
        second = await databases.store_form_submission("contact", {"name": "x"})
        assert first != second

        forms = await databases.fetch_all("forms", "SELECT id, name FROM forms")
        assert [row["name"] for row in forms] == ["contact"]
        submissions = await databases.fetch_all(
            "forms", "SELECT uuid, form_id, data FROM form_submissions ORDER BY id")
        assert [row["uuid"] for row in submissions] == [first, second]
        assert {row["form_id"] for row in submissions} == {forms[0]["id"]}
        assert json.loads(submissions[0]["data"]) == data

    @pytest.mark.asyncio
    async def test_list_forms_and_submissions(self, databases):
        await databases.store_form_submission("contact", {"n": "1"})
        await databases.store_form_submission("contact", {"n": "2"})
        await databases.store_form_submission("newsletter", {"email": "a@example.com"})

        forms = await databases.list_forms()
        assert [(form["name"], form["submissions"]) for form in forms] == [("contact", 2), ("newsletter", 1)]

        submissions = await databases.get_form_submissions("contact")
        assert [submission["data"] for submission in submissions] == [{"n": "2"}, {"n": "1"}]
        assert len(await databases.get_form_submissions("contact", limit=1)) == 1
        assert await databases.get_form_submissions("missing") is None

    @pytest.mark.asyncio
    async def test_close_and_reopen(self, databases):
        await databases.execute("content", "INSERT INTO content (slug, title, content) VALUES (?, ?, ?)",
                                ("a", "A", "body"))
        await databases.close()
        row = await databases.fetch_one("content", "SELECT title FROM content WHERE slug = ?", ("a",))
        assert row["title"] == "A"


@pytest.mark.unit
@pytest.mark.database
class TestUsers:
    """Test UserRepository class"""

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, users, faker):
        username, email = faker.user_name(), faker.email()
        user = await users.create(username, email.upper(), "pw", first_name="Ada", last_name="L")
        assert user.id is not None
        assert user.email == email.lower()
        assert user.full_name == "Ada L"
        assert user.role == "user"
        assert (await users.get_by_username(username)).id == user.id
        assert (await users.get_by_login(email)).id == user.id
        assert await users.get_by_id(9999) is None

    @pytest.mark.asyncio
    async def test_duplicate(self, users):
        await users.create("ada", "ada@example.com", "pw")
        with pytest.raises(ValueError):
            await users.create("ada", "other@example.com", "pw")

    @pytest.mark.asyncio
    async def test_required_fields(self, users):
        with pytest.raises(ValueError):
            await users.create("", "a@example.com", "pw")
        with pytest.raises(ValueError):
            await users.create("ada", "a@example.com", "")

    @pytest.mark.asyncio
    async def test_authenticate(self, users, databases):
        await users.create("ada", "ada@example.com", "right")
        assert await users.authenticate("ada", "wrong") is None
        assert await users.authenticate("nobody", "right") is None
        user = await users.authenticate("ada@example.com", "right")
        assert user.username == "ada"
        assert (await users.get_by_id(user.id)).last_login is not None

    @pytest.mark.asyncio
    async def test_bcrypt_runs_off_the_event_loop(self, users, monkeypatch):
        loop_thread = threading.get_ident()
        calls = []

        def recorded(func):
            def wrapper(*args):
                calls.append((func.__name__, threading.get_ident()))
                return func(*args)
            return wrapper

        monkeypatch.setattr(users_module, "hash_password", recorded(users_module.hash_password))
        monkeypatch.setattr(users_module, "verify_password", recorded(users_module.verify_password))

        await users.create("ada", "ada@example.com", "pw")
        assert await users.authenticate("ada", "pw") is not None
        assert [name for name, _ in calls] == ["hash_password", "verify_password"]
        assert all(thread != loop_thread for _, thread in calls)

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_log_in(self, users, databases):
        user = await users.create("ada", "ada@example.com", "pw")
        await databases.execute("users", "UPDATE users SET active = 0 WHERE id = ?", (user.id,))
        assert await users.authenticate("ada", "pw") is None


@pytest.mark.unit
@pytest.mark.database
class TestSessions:
    """Test SessionStore class"""

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, users, databases):
        user = await users.create("ada", "ada@example.com", "pw")
        store = SessionStore(databases)
        token = await store.create(user, ip_address="1.2.3.4")
        assert len(token) >= 32
        assert (await store.get_user(token)).id == user.id

        await store.delete(token)
        assert await store.get_user(token) is None

    @pytest.mark.asyncio
    async def test_unknown_token(self, databases):
        assert await SessionStore(databases).get_user("nope") is None
        assert await SessionStore(databases).get_user("") is None

    @pytest.mark.asyncio
    async def test_expired_sessions(self, users, databases):
        user = await users.create("ada", "ada@example.com", "pw")
        store = SessionStore(databases, SessionConfig(max_age=-60))
        token = await store.create(user)
        assert await store.get_user(token) is None
        assert await store.cleanup() == 1

    @pytest.mark.asyncio
    async def test_deleting_user_removes_sessions(self, users, databases):
        user = await users.create("ada", "ada@example.com", "pw")
        store = SessionStore(databases)
        token = await store.create(user)
        await databases.execute("users", "DELETE FROM users WHERE id = ?", (user.id,))
        row = await databases.fetch_one("users", "SELECT COUNT(*) AS n FROM user_sessions WHERE session_token = ?",
                                        (token,))
        assert row["n"] == 0

    @pytest.mark.asyncio
    async def test_session_requires_existing_user(self, databases, users):
        user = await users.create("ada", "ada@example.com", "pw")
        user.id = 12345
        with pytest.raises(sqlite3.IntegrityError):
            await SessionStore(databases).create(user)
