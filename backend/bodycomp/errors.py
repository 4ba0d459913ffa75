"""Error taxonomy. Every error maps to an HTTP status and a caller-facing message."""


class AppError(Exception):
    status_code = 500
    message = "Server error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(AppError):
    status_code = 400
    message = "Please fill in all fields."


class AuthenticationError(AppError):
    status_code = 401
    message = "Invalid username or password."


class AuthorizationError(AppError):
    status_code = 403
    message = "You are not allowed to do this."


class NotFoundError(AppError):
    status_code = 404
    message = "Not found."


class ConflictError(AppError):
    status_code = 409
    message = "Username or e-mail already exists."


class InternalError(AppError):
    status_code = 500
    message = "Server error."


class StorageError(InternalError):
    """Unexpected database failure."""


class TransientStorageError(StorageError):
    """Pool exhaustion, timeout or lost connection. Safe to retry."""

    message = "Server busy, please retry."


class HashingError(InternalError):
    """The key-derivation function itself failed (not a wrong password)."""


class UpstreamError(AppError):
    status_code = 502
    message = "Upstream service failed."


class ServiceUnavailableError(AppError):
    status_code = 503
    message = "Service not available."
