from __future__ import annotations


class MailcraftError(Exception):
    """Base class for errors that map onto a caller-facing HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(MailcraftError):
    status_code = 400


class FetchError(MailcraftError):
    status_code = 502


class UnauthorizedError(MailcraftError):
    status_code = 401


class NotFoundError(MailcraftError):
    status_code = 404


class ValidationError(MailcraftError):
    status_code = 400


class IntegrationNotConnectedError(ValidationError):
    pass


class ConfigurationError(MailcraftError):
    status_code = 500


class BackendError(MailcraftError):
    """Gateway failure from the external ESP backend.

    `upstream_status` is None when the request never produced an HTTP response.
    """

    status_code = 502

    def __init__(self, message: str, *, upstream_status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body
