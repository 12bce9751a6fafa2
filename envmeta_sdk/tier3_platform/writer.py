"""
envmeta_sdk.tier3_platform.writer
──────────────────────────────────
Write path into the store. A write target is either an environment name,
routed the same way key reads are, or explicit coordinates. The target is
resolved to concrete coordinates once, before any write is sent.

Multi-field writes are sequential and not transactional: a failure
partway leaves the earlier fields written and raises PartialWriteError
naming the field that failed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from envmeta_sdk.tier0_core.errors import PartialWriteError, TransportError, ValidationError
from envmeta_sdk.tier1_runtime.context import ResolutionContext
from envmeta_sdk.tier3_platform.kv import Coordinates, RoutedStore
from envmeta_sdk.tier3_platform.resolver import (
    ENDPOINT_FIELDS,
    EnvironmentResolver,
    ResolvedEnvironmentEndpoint,
    require_environment,
)
from envmeta_sdk.tier3_platform.servers import server_count_key, server_key


# ── Targets ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ByEnvironmentName:
    name: str


@dataclass(frozen=True)
class ByCoordinates:
    datacenter: str
    http: str


Target = Union[ByEnvironmentName, ByCoordinates]


class KeyValueWriter:
    """
    Writes values and environment connection records.

    Usage::

        writer = KeyValueWriter(resolver)
        writer.set_value(ByEnvironmentName("staging"), "app/feature", "on")
        writer.set_value(ByCoordinates("dc-meta", "http://10.0.0.5:8500"), "app/feature", "on")
    """

    def __init__(self, resolver: EnvironmentResolver) -> None:
        self._resolver = resolver

    def resolve_target(
        self, target: Target, *, context: ResolutionContext | None = None
    ) -> Coordinates:
        if isinstance(target, ByCoordinates):
            if not target.datacenter or not target.http:
                raise ValidationError(
                    "Coordinates need both a data center and an HTTP address.",
                    datacenter=target.datacenter,
                    url=target.http,
                )
            return Coordinates(datacenter=target.datacenter, http=target.http.rstrip("/"))
        if isinstance(target, ByEnvironmentName):
            return self._resolver.resolve_coordinates(target.name, context=context)
        raise ValidationError(f"Unsupported write target {target!r}.")

    def _store(self, target: Target, ctx: ResolutionContext) -> RoutedStore:
        return RoutedStore(self._resolver.local.client, self.resolve_target(target, context=ctx))

    # ── Operations ────────────────────────────────────────────────────────────

    def set_value(
        self,
        target: Target,
        key: str,
        value: str,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        ctx = context or ResolutionContext()
        if not key:
            raise ValidationError("Key path must not be empty.")
        store = self._store(target, ctx)
        store.write(key, value, context=ctx)
        ctx.logger(__name__).info("kv.written", key_path=key, store=repr(store))

    def set_environment_endpoint(
        self,
        meta_target: Target,
        environment: str,
        endpoint: ResolvedEnvironmentEndpoint,
        index: int = 0,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        """Write the six connection fields of one server record."""
        env = require_environment(environment)
        _check_index(index)
        ctx = (context or ResolutionContext()).bind(environment=env, index=index)
        store = self._store(meta_target, ctx)

        written: list[str] = []
        for field in ENDPOINT_FIELDS:
            key = server_key(env, index, field)
            try:
                store.write(key, getattr(endpoint, field), context=ctx)
            except TransportError as exc:
                ctx.logger(__name__).warning("endpoint.partial_write", field=field, written=written)
                raise PartialWriteError(
                    f"Writing {field!r} of {env} failed.",
                    detail=f"Endpoint write for {env}[{index}] stopped at {field!r}: {exc.detail}",
                    field=field,
                    written=written,
                    key_path=key,
                    environment=env,
                    datacenter=store.coordinates.datacenter,
                ) from exc
            written.append(field)
        ctx.logger(__name__).info("endpoint.written", fields=written)

    def set_dns_fallback(
        self,
        target: Target,
        environment: str,
        ip: str,
        index: int = 0,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        env = require_environment(environment)
        _check_index(index)
        if not ip:
            raise ValidationError("DNS fallback address must not be empty.", environment=env)
        self.set_value(target, server_key(env, index, "dns_fallback"), ip, context=context)

    def set_server_count(
        self,
        target: Target,
        environment: str,
        count: int,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        env = require_environment(environment)
        if count < 0:
            raise ValidationError("Server count must not be negative.", environment=env, count=count)
        self.set_value(target, server_count_key(env), str(count), context=context)


def _check_index(index: int) -> None:
    if index < 0:
        raise ValidationError("Server index must not be negative.", index=index)


__all__ = [
    "KeyValueWriter", "Target", "ByEnvironmentName", "ByCoordinates",
]
