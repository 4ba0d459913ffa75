"""Credential pipeline — register, login, profile and self-deletion.

Hashing and verification are CPU-bound, so they run in the threadpool and
leave the event loop free for other requests.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from starlette.concurrency import run_in_threadpool

from bodycomp.core.auth import DEFAULT_TOKEN_TTL, create_token
from bodycomp.core.models import Account, NewAccount, SessionClaims
from bodycomp.core.passwords import PasswordCodec
from bodycomp.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger("bodycomp.auth")


@dataclass(frozen=True)
class LoginResult:
    account: Account
    token: str


class CredentialService:
    def __init__(
        self,
        directory,
        codec: PasswordCodec,
        token_secret: str,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
    ) -> None:
        self.directory = directory
        self.codec = codec
        self.token_secret = token_secret
        self.token_ttl = token_ttl
        self._dummy_hash = None

    async def _dummy(self) -> str:
        # Unknown accounts are checked against this so both login failures cost the same.
        if self._dummy_hash is None:
            self._dummy_hash = await run_in_threadpool(self.codec.hash, secrets.token_urlsafe(16))
        return self._dummy_hash

    async def register(
        self, username: str, password: str, email: str,
        age=None, gender=None, height=None,
    ) -> Account:
        if not username or not password or not email:
            raise ValidationError()

        if await self.directory.exists(username, email):
            raise ConflictError()

        password_hash = await run_in_threadpool(self.codec.hash, password)
        # Two concurrent registrations can both pass exists(); the unique
        # constraints make insert() raise ConflictError for the loser.
        account = await self.directory.insert(
            NewAccount(
                username=username,
                email=email,
                password_hash=password_hash,
                age=age,
                gender=gender,
                height=height,
            )
        )
        logger.info("User registered: %s (id=%d)", account.username, account.id)
        return account

    async def login(self, identifier: str, password: str) -> LoginResult:
        if not identifier or not password:
            raise ValidationError("Please enter username and password.")

        account = await self.directory.find_by_identifier_or_email(identifier)
        if account is None:
            await run_in_threadpool(self.codec.verify, password, await self._dummy())
            raise AuthenticationError()

        if not await run_in_threadpool(self.codec.verify, password, account.password_hash):
            raise AuthenticationError()

        if self.codec.needs_rehash(account.password_hash):
            logger.debug("User %d has a password record from an older scheme", account.id)

        token = create_token(account.id, account.username, self.token_secret, self.token_ttl)
        logger.info("User logged in: %s", account.username)
        return LoginResult(account=account, token=token)

    async def profile(self, claims: SessionClaims) -> Account:
        account = await self.directory.find_by_id(claims.user_id)
        if account is None:
            raise NotFoundError("User not found.")
        return account

    async def delete_account(self, claims: SessionClaims, target_id: int) -> None:
        """Owners may delete only themselves."""
        if claims.user_id != target_id:
            logger.warning("User %d tried to delete user %d", claims.user_id, target_id)
            raise AuthorizationError("You are not allowed to delete this user.")

        if not await self.directory.delete(target_id):
            raise NotFoundError("User not found.")
        logger.info("User deleted: %s (id=%d)", claims.username, target_id)
