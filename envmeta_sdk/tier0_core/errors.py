"""
envmeta_sdk.tier0_core.errors
──────────────────────────────
Error taxonomy for environment resolution and key-value access. Every
error carries enough context (key path, environment, data center, service
name) to diagnose a failure without re-querying the store.

Nothing here is ever retried. Raising an EnvMetaError reports it to the
configured error backend, if any.

Select via: ENVMETA_ERROR_BACKEND=sentry|none
"""
from __future__ import annotations

import os
from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class EnvMetaError(Exception):
    """
    Base class for all envmeta errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: safe to surface to operators
    - detail: internal context
    - status_code: closest HTTP status, for services wrapping the SDK
    - metadata: key_path / environment / datacenter / url etc.
    """

    status_code: int = 500
    code: str = "envmeta_error"

    def __init__(
        self,
        user_message: str = "An unexpected error occurred.",
        *,
        code: str | None = None,
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)
        _capture(self)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
                **{k: v for k, v in self.metadata.items() if v is not None},
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class TransportError(EnvMetaError):
    """Non-2xx response or connection failure talking to the store."""
    status_code = 502
    code = "transport_error"

    def __init__(
        self,
        user_message: str = "Key-value store request failed.",
        *,
        url: str | None = None,
        method: str | None = None,
        status: int | None = None,
        **metadata: Any,
    ) -> None:
        self.url = url
        self.method = method
        self.status = status
        super().__init__(user_message, url=url, method=method, status=status, **metadata)


class PartialWriteError(TransportError):
    """A multi-field write failed partway. Earlier fields stay written."""
    code = "partial_write"

    def __init__(
        self,
        user_message: str,
        *,
        field: str,
        written: list[str] | None = None,
        **metadata: Any,
    ) -> None:
        self.field = field
        self.written = list(written or [])
        super().__init__(user_message, field=field, written=self.written, **metadata)


class DecodeError(EnvMetaError):
    """Malformed JSON envelope or base64 value."""
    status_code = 502
    code = "decode_error"


class NotFoundError(EnvMetaError):
    """Key absent, or empty catalog result."""
    status_code = 404
    code = "not_found"


class MissingIdentityError(EnvMetaError):
    """The local agent could not say which environment it belongs to."""
    status_code = 500
    code = "missing_identity"


class InvalidCountError(EnvMetaError):
    """number_of_servers is not a non-negative integer."""
    status_code = 500
    code = "invalid_count"


class ValidationError(EnvMetaError):
    """Bad caller input."""
    status_code = 422
    code = "validation_error"


class ConfigurationError(EnvMetaError):
    """Misconfiguration detected at startup."""
    status_code = 500
    code = "configuration_error"


# ── Error capture backend ─────────────────────────────────────────────────────

def _capture(error: EnvMetaError) -> None:
    """Send error to configured backend. Called automatically by EnvMetaError.__init__."""
    backend = os.getenv("ENVMETA_ERROR_BACKEND", "none").lower()
    if backend == "sentry":
        _capture_sentry(error)


def _capture_sentry(error: EnvMetaError) -> None:
    import sentry_sdk

    if error.status_code >= 500:
        sentry_sdk.capture_exception(error)
    else:
        sentry_sdk.capture_message(
            str(error),
            level="warning",
            extras={"code": error.code, **error.metadata},
        )


def configure_sentry(dsn: str, **kwargs: Any) -> None:
    """Initialize Sentry. Call once at application startup."""
    import sentry_sdk
    sentry_sdk.init(dsn=dsn, **kwargs)
    os.environ["ENVMETA_ERROR_BACKEND"] = "sentry"


__all__ = [
    "EnvMetaError", "TransportError", "PartialWriteError", "DecodeError",
    "NotFoundError", "MissingIdentityError", "InvalidCountError",
    "ValidationError", "ConfigurationError", "configure_sentry",
]
