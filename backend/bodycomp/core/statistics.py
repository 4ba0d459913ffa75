"""Read-only access to the per-account body_stats time series."""

import asyncpg

from bodycomp.core.directory import scoped_connection
from bodycomp.core.models import StatEntry


class StatisticsReader:
    def __init__(self, pool: asyncpg.Pool, timeout: float = 10.0) -> None:
        self.pool = pool
        self.timeout = timeout

    async def for_user(self, user_id: int, limit: int = 100) -> list[StatEntry]:
        """Newest measurements first."""
        async with scoped_connection(self.pool, self.timeout, "statistics read") as conn:
            rows = await conn.fetch(
                "SELECT measured_at, weight, body_fat, muscle_mass, water, bmi "
                "FROM body_stats WHERE user_id = $1 ORDER BY measured_at DESC LIMIT $2",
                user_id, limit, timeout=self.timeout,
            )
        return [StatEntry.from_row(r) for r in rows]
