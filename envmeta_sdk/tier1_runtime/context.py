"""
envmeta_sdk.tier1_runtime.context
──────────────────────────────────
Resolution context — the trace id, verbosity and extra log fields that
travel with one resolution or write sequence.

The context is immutable and passed explicitly down the call chain, so
independent resolutions running side by side never share log state.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

import structlog

from envmeta_sdk.tier0_core.logging import get_logger


# ── Domain model ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResolutionContext:
    """Per-call diagnostic metadata, available to every step of a resolution."""
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    verbose: bool = False
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def bind(self, **fields: Any) -> "ResolutionContext":
        """Return a new context with extra log fields."""
        return replace(self, fields={**self.fields, **fields})

    def logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        """Return a logger carrying this context's trace id and fields."""
        return get_logger(name).bind(trace_id=self.trace_id, **self.fields)

    def trace(self, name: str | None, event: str, **fields: Any) -> None:
        """
        Log a per-call event: every store request and resolution step.
        Verbose contexts emit these at INFO, others at DEBUG.
        """
        log = self.logger(name)
        if self.verbose:
            log.info(event, **fields)
        else:
            log.debug(event, **fields)

    def headers(self) -> dict[str, str]:
        """Propagation headers for outbound store requests."""
        return {"X-Request-Id": self.trace_id}


def new_context(verbose: bool = False, **fields: Any) -> ResolutionContext:
    """Create a fresh context with a new trace id."""
    return ResolutionContext(verbose=verbose, fields=fields)


__all__ = ["ResolutionContext", "new_context"]
