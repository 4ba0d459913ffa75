"""Account directory — uniqueness checks and persistence over an asyncpg pool.

The pool is owned by the application lifespan and handed in here; the
directory never opens or closes it. Every query runs inside
``_connection()``, which releases the connection on every exit path and
maps driver errors onto the app's error taxonomy.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from bodycomp.core.models import Account, NewAccount
from bodycomp.errors import ConflictError, StorageError, TransientStorageError

logger = logging.getLogger("bodycomp.directory")

_ACCOUNT_COLUMNS = "id, username, email, password_hash, age, gender, height, created_at"

_TRANSIENT_ERRORS = (
    asyncio.TimeoutError,
    OSError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
)


@asynccontextmanager
async def scoped_connection(pool: asyncpg.Pool, timeout: float, what: str) -> AsyncIterator:
    """Borrow a connection for one unit of work, translating driver failures."""
    try:
        async with pool.acquire(timeout=timeout) as conn:
            yield conn
    except asyncpg.exceptions.UniqueViolationError as exc:
        logger.info("Unique constraint rejected %s: %s", what, getattr(exc, "constraint_name", None))
        raise ConflictError() from exc
    except _TRANSIENT_ERRORS as exc:
        logger.warning("Transient storage failure during %s: %r", what, exc)
        raise TransientStorageError() from exc
    except asyncpg.exceptions.PostgresError as exc:
        logger.error("Storage failure during %s: %r", what, exc)
        raise StorageError() from exc


class AccountDirectory:
    def __init__(self, pool: asyncpg.Pool, timeout: float = 10.0) -> None:
        self.pool = pool
        self.timeout = timeout

    def _connection(self, what: str):
        return scoped_connection(self.pool, self.timeout, what)

    async def find_by_identifier_or_email(self, value: str) -> Optional[Account]:
        """Exact, case-sensitive match against username or email."""
        async with self._connection("account lookup") as conn:
            row = await conn.fetchrow(
                f"SELECT {_ACCOUNT_COLUMNS} FROM users WHERE username = $1 OR email = $1 "
                "ORDER BY (username = $1) DESC LIMIT 1",
                value, timeout=self.timeout,
            )
        return Account.from_row(row) if row else None

    async def find_by_id(self, user_id: int) -> Optional[Account]:
        async with self._connection("account lookup by id") as conn:
            row = await conn.fetchrow(
                f"SELECT {_ACCOUNT_COLUMNS} FROM users WHERE id = $1",
                user_id, timeout=self.timeout,
            )
        return Account.from_row(row) if row else None

    async def exists(self, username: str, email: str) -> bool:
        """Pre-insert check. Not atomic with ``insert``; the unique constraints are."""
        async with self._connection("existence check") as conn:
            found = await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM users WHERE username = $1 OR email = $2)",
                username, email, timeout=self.timeout,
            )
        return bool(found)

    async def insert(self, record: NewAccount) -> Account:
        """Insert and return the stored account. Raises ConflictError on a duplicate."""
        async with self._connection("account insert") as conn:
            row = await conn.fetchrow(
                "INSERT INTO users (username, email, password_hash, age, gender, height) "
                f"VALUES ($1, $2, $3, $4, $5, $6) RETURNING {_ACCOUNT_COLUMNS}",
                record.username, record.email, record.password_hash,
                record.age, record.gender, record.height,
                timeout=self.timeout,
            )
        return Account.from_row(row)

    async def delete(self, user_id: int) -> bool:
        """Remove one account. True if a row was deleted, False if none matched."""
        async with self._connection("account delete") as conn:
            status = await conn.execute(
                "DELETE FROM users WHERE id = $1", user_id, timeout=self.timeout,
            )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return status.split()[-1] != "0"
