"""
envmeta_sdk.tier0_core.logging
───────────────────────────────
Structured logs for every remote lookup and resolution step. Sensitive
fields (ACL tokens, auth headers) are redacted before output.

Log fields travel on each ResolutionContext rather than in contextvars,
so nothing here merges ambient context.

Minimal stack: structlog, rendered through stdlib logging to stdout
Configure via: ENVMETA_LOG_LEVEL, ENVMETA_LOG_FORMAT=json|console,
               or configure_logging() from EnvMetaConfig
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

_REDACT_KEYS = frozenset({
    "token", "acl_token", "x-consul-token", "authorization",
    "secret", "password", "private_key",
})

_REDACTED = "[REDACTED]"

_configured = False
_handler: logging.Handler | None = None


def _redact_processor(
    logger: Any, method: str, event_dict: dict
) -> dict:
    """Strip sensitive fields from log records before output."""
    for key in list(event_dict.keys()):
        if key.lower() in _REDACT_KEYS:
            event_dict[key] = _REDACTED
    return event_dict


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Route structlog through one stdout handler at ``level``. Safe to call
    again; the previous handler is replaced, not stacked.
    """
    global _configured, _handler
    numeric = _level(level or os.getenv("ENVMETA_LOG_LEVEL", "INFO"))
    fmt = (fmt or os.getenv("ENVMETA_LOG_FORMAT", "json")).lower()

    pre_chain: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_processor,
    ]
    renderer = structlog.dev.ConsoleRenderer() if fmt == "console" else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(numeric)
    _handler = handler
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger bound to the given name.

    Usage:
        log = get_logger(__name__)
        log.debug("kv.read", url="http://localhost:8500/v1/kv/environment/self")
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(name or __name__)


__all__ = ["get_logger", "configure_logging"]
