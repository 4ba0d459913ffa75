"""Password hashing — self-describing PBKDF2 records plus legacy bcrypt.

Stored representations carry their own parameters so records hashed
under older settings keep verifying:

    pbkdf2:sha256:600000$<salt>$<hash hex>    current (werkzeug format)
    pbkdf2:sha512:1000$<salt>$<hash hex>      older revisions
    $2b$10$...                                bcrypt, oldest revisions

New hashes always use the codec's preferred scheme. ``verify`` picks the
scheme from the record itself and fails closed on anything it cannot parse.
"""

import logging

import bcrypt
from werkzeug.security import check_password_hash, generate_password_hash

from bodycomp.errors import HashingError

logger = logging.getLogger("bodycomp.passwords")

PBKDF2_DEFAULT_ITERATIONS = 600_000
PBKDF2_MAX_ITERATIONS = 10_000_000
SALT_LENGTH = 16
# bcrypt only ever looked at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class MalformedHash(ValueError):
    """Stored representation cannot be parsed by the scheme that claims it."""


class PasswordScheme:
    """One hashing scheme. Subclasses recognise, produce and check their records."""

    name = ""

    def identify(self, stored: str) -> bool:
        raise NotImplementedError

    def hash(self, plain: str) -> str:
        raise NotImplementedError

    def verify(self, plain: str, stored: str) -> bool:
        raise NotImplementedError

    def needs_update(self, stored: str) -> bool:
        return False


class Pbkdf2Scheme(PasswordScheme):
    name = "pbkdf2"
    # digest -> hex length of the derived key
    digests = {"sha256": 64, "sha512": 128}

    def __init__(self, digest: str = "sha256", iterations: int = PBKDF2_DEFAULT_ITERATIONS) -> None:
        if digest not in self.digests:
            raise ValueError(f"unsupported digest: {digest}")
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.digest = digest
        self.iterations = iterations

    def identify(self, stored: str) -> bool:
        return stored.startswith(self.name + ":")

    def hash(self, plain: str) -> str:
        try:
            return generate_password_hash(
                plain,
                method=f"{self.name}:{self.digest}:{self.iterations}",
                salt_length=SALT_LENGTH,
            )
        except (ValueError, OverflowError, MemoryError) as exc:
            raise HashingError() from exc

    @staticmethod
    def parse(stored: str) -> tuple[str, int, str, str]:
        """Split a record into (digest, iterations, salt, hash hex)."""
        try:
            params, salt, hash_hex = stored.split("$")
            _, digest, iterations_raw = params.split(":")
            iterations = int(iterations_raw)
            bytes.fromhex(hash_hex)
        except ValueError as exc:
            raise MalformedHash(stored[:16]) from exc
        if not 0 < iterations <= PBKDF2_MAX_ITERATIONS or not salt or not hash_hex:
            raise MalformedHash(stored[:16])
        return digest, iterations, salt, hash_hex

    def verify(self, plain: str, stored: str) -> bool:
        digest, iterations, _, hash_hex = self.parse(stored)
        if digest not in self.digests:
            return False
        # a truncated or padded hash can never match; skip the derivation
        if len(hash_hex) != self.digests[digest]:
            return False
        try:
            return check_password_hash(stored, plain)
        except ValueError as exc:
            raise MalformedHash(stored[:16]) from exc

    def needs_update(self, stored: str) -> bool:
        try:
            digest, iterations, salt, _ = self.parse(stored)
        except MalformedHash:
            return True
        return digest != self.digest or iterations < self.iterations or len(salt) < SALT_LENGTH


class BcryptScheme(PasswordScheme):
    name = "bcrypt"
    prefixes = ("$2a$", "$2b$", "$2y$")

    def __init__(self, rounds: int = 12) -> None:
        if rounds < 10:
            raise ValueError("bcrypt cost factor must be at least 10")
        self.rounds = rounds

    def identify(self, stored: str) -> bool:
        return stored.startswith(self.prefixes)

    def hash(self, plain: str) -> str:
        secret = plain.encode()[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self.rounds)).decode()
        except ValueError as exc:
            raise HashingError() from exc

    def verify(self, plain: str, stored: str) -> bool:
        secret = plain.encode()[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(secret, stored.encode())
        except ValueError as exc:
            raise MalformedHash(stored[:7]) from exc

    def needs_update(self, stored: str) -> bool:
        try:
            cost = int(stored.split("$")[2])
        except (IndexError, ValueError):
            return True
        return cost < self.rounds


class PasswordCodec:
    """Registry of schemes; hashes with the preferred one, verifies with any."""

    def __init__(self, preferred: PasswordScheme, others: tuple = ()) -> None:
        self.preferred = preferred
        self._schemes: list[PasswordScheme] = [preferred]
        for scheme in others:
            self.register(scheme)

    def register(self, scheme: PasswordScheme) -> None:
        if any(s.name == scheme.name for s in self._schemes):
            raise ValueError(f"scheme already registered: {scheme.name}")
        self._schemes.append(scheme)

    @property
    def schemes(self) -> list[str]:
        return [s.name for s in self._schemes]

    def identify(self, stored: str) -> PasswordScheme | None:
        if not stored:
            return None
        for scheme in self._schemes:
            if scheme.identify(stored):
                return scheme
        return None

    def hash(self, plain: str) -> str:
        return self.preferred.hash(plain)

    def verify(self, plain: str, stored: str) -> bool:
        """Check ``plain`` against a stored record. Unknown or broken records return False."""
        scheme = self.identify(stored)
        if scheme is None:
            logger.warning("Stored password uses an unknown scheme")
            return False
        try:
            return scheme.verify(plain, stored)
        except MalformedHash:
            logger.warning("Malformed %s password record", scheme.name)
            return False

    def needs_rehash(self, stored: str) -> bool:
        scheme = self.identify(stored)
        return scheme is not self.preferred or scheme.needs_update(stored)


def default_codec(iterations: int = PBKDF2_DEFAULT_ITERATIONS) -> PasswordCodec:
    """PBKDF2-SHA256 for new records, bcrypt accepted for old ones."""
    return PasswordCodec(Pbkdf2Scheme("sha256", iterations), others=(BcryptScheme(),))
