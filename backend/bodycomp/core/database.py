"""Async PostgreSQL connection pool using asyncpg."""

import logging

import asyncpg

from bodycomp.config import Settings

logger = logging.getLogger("bodycomp.database")

_CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    username VARCHAR(100) UNIQUE NOT NULL,
    email VARCHAR(255) UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    age INTEGER,
    gender VARCHAR(32),
    height REAL,
    created_at TIMESTAMP DEFAULT NOW()
);
"""

_CREATE_STATS_TABLE = """
CREATE TABLE IF NOT EXISTS body_stats (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    measured_at TIMESTAMP NOT NULL DEFAULT NOW(),
    weight REAL,
    body_fat REAL,
    muscle_mass REAL,
    water REAL,
    bmi REAL
);
CREATE INDEX IF NOT EXISTS body_stats_user_measured_idx
    ON body_stats (user_id, measured_at DESC);
"""


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Create and return an asyncpg connection pool."""
    pool = await asyncpg.create_pool(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_user,
        password=settings.db_password,
        database=settings.db_database,
        min_size=1,
        max_size=settings.db_pool_size,
        timeout=settings.db_timeout_seconds,
        command_timeout=settings.db_timeout_seconds,
    )
    logger.info(
        "Database pool created (%s:%d/%s, max %d connections)",
        settings.db_host, settings.db_port, settings.db_database, settings.db_pool_size,
    )
    return pool


async def ensure_schema(pool: asyncpg.Pool, timeout: float = 10.0) -> None:
    """Create the users and body_stats tables if they don't exist."""
    async with pool.acquire(timeout=timeout) as conn:
        await conn.execute(_CREATE_USERS_TABLE)
        await conn.execute(_CREATE_STATS_TABLE)
    logger.info("Schema ensured")


async def close_pool(pool: asyncpg.Pool) -> None:
    """Close the connection pool."""
    await pool.close()
    logger.info("Database pool closed")
