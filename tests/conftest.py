from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from bodycomp.config import Settings
from bodycomp.core.models import Account, NewAccount, StatEntry
from bodycomp.core.passwords import default_codec
from bodycomp.errors import ConflictError
from bodycomp.main import create_app
from bodycomp.services.chat import ChatClient

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
TEST_ITERATIONS = 1_000


class MemoryDirectory:
    """Dict-backed stand-in for AccountDirectory with the same contract."""

    def __init__(self) -> None:
        self.accounts: dict[int, Account] = {}
        self._next_id = 1
        self.inserts = 0

    def __len__(self) -> int:
        return len(self.accounts)

    def add(self, account: Account) -> Account:
        self.accounts[account.id] = account
        self._next_id = max(self._next_id, account.id + 1)
        return account

    async def find_by_identifier_or_email(self, value: str) -> Optional[Account]:
        for account in self.accounts.values():
            if account.username == value:
                return account
        for account in self.accounts.values():
            if account.email == value:
                return account
        return None

    async def find_by_id(self, user_id: int) -> Optional[Account]:
        return self.accounts.get(user_id)

    async def exists(self, username: str, email: str) -> bool:
        return any(a.username == username or a.email == email for a in self.accounts.values())

    async def insert(self, record: NewAccount) -> Account:
        if any(a.username == record.username or a.email == record.email for a in self.accounts.values()):
            raise ConflictError()
        self.inserts += 1
        return self.add(Account(
            id=self._next_id,
            username=record.username,
            email=record.email,
            password_hash=record.password_hash,
            age=record.age,
            gender=record.gender,
            height=record.height,
            created_at=datetime(2024, 1, 1),
        ))

    async def delete(self, user_id: int) -> bool:
        return self.accounts.pop(user_id, None) is not None


class FakePool:
    """Tracks acquire/release so leaks show up in assertions."""

    def __init__(self, conn=None, acquire_error=None):
        self.conn = conn or AsyncMock()
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0
        self.timeouts = []
        self.close = AsyncMock()

    def acquire(self, timeout=None):
        self.timeouts.append(timeout)

        @asynccontextmanager
        async def _ctx():
            if self.acquire_error is not None:
                raise self.acquire_error
            self.acquired += 1
            try:
                yield self.conn
            finally:
                self.released += 1

        return _ctx()


class MemoryStatistics:
    def __init__(self) -> None:
        self.rows: dict[int, list[StatEntry]] = {}

    async def for_user(self, user_id: int, limit: int = 100) -> list[StatEntry]:
        rows = sorted(self.rows.get(user_id, []), key=lambda e: e.measured_at, reverse=True)
        return rows[:limit]


def make_account(user_id: int, username: str, password: str = "pw", **kw) -> Account:
    codec = default_codec(TEST_ITERATIONS)
    return Account(
        id=user_id,
        username=username,
        email=kw.pop("email", f"{username}@example.com"),
        password_hash=codec.hash(password),
        **kw,
    )


def chat_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "Drink water."}}]})


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        pbkdf2_iterations=TEST_ITERATIONS,
        chat_api_key="sk-test",
        chat_api_url="https://chat.test/v1/chat/completions",
    )


@pytest.fixture()
def codec():
    return default_codec(TEST_ITERATIONS)


@pytest.fixture()
def directory() -> MemoryDirectory:
    return MemoryDirectory()


@pytest.fixture()
def statistics() -> MemoryStatistics:
    stats = MemoryStatistics()
    now = datetime.now(timezone.utc)
    stats.rows[1] = [
        StatEntry(measured_at=now - timedelta(days=7), weight=81.0, body_fat=22.5, bmi=25.1),
        StatEntry(measured_at=now, weight=80.2, body_fat=21.9, bmi=24.8),
    ]
    return stats


@pytest.fixture()
def client(settings, directory, statistics):
    chat_client = ChatClient(
        settings.chat_api_url,
        settings.chat_api_key,
        settings.chat_model,
        transport=httpx.MockTransport(chat_handler),
    )
    app = create_app(settings, directory=directory, statistics=statistics, chat_client=chat_client)
    with TestClient(app) as c:
        yield c
