"""
envmeta_sdk.client
───────────────────
One object wiring the transport, local agent, resolver, service locator
and writer from configuration.

Usage::

    from envmeta_sdk import EnvMetaClient

    with EnvMetaClient.from_config() as envmeta:
        endpoint = envmeta.resolve_endpoint("production")
        web = envmeta.locate_service("production", "web", tag="blue")
"""
from __future__ import annotations

import random
from typing import Any

import httpx

from envmeta_sdk.tier0_core.config import EnvMetaConfig, get_config
from envmeta_sdk.tier0_core.logging import configure_logging
from envmeta_sdk.tier1_runtime.context import ResolutionContext
from envmeta_sdk.tier3_platform.discovery import ServiceLocator
from envmeta_sdk.tier3_platform.kv import KeyValueClient, LocalAgent
from envmeta_sdk.tier3_platform.meta import MetaLocator, MetaServerInfo
from envmeta_sdk.tier3_platform.resolver import EnvironmentResolver, ResolvedEnvironmentEndpoint
from envmeta_sdk.tier3_platform.servers import ServerCountResolver, ServerPicker
from envmeta_sdk.tier3_platform.writer import KeyValueWriter, Target


class EnvMetaClient:
    def __init__(
        self,
        kv: KeyValueClient,
        local_agent: str,
        *,
        meta_environment: str = "meta",
        context: ResolutionContext | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.kv = kv
        self.context = context or ResolutionContext()
        self.local = LocalAgent(kv, local_agent)
        counter = ServerCountResolver()
        picker = ServerPicker(rng)
        self.resolver = EnvironmentResolver(
            self.local,
            meta_locator=MetaLocator(meta_environment, counter=counter, picker=picker),
            counter=counter,
            picker=picker,
        )
        self.services = ServiceLocator(self.resolver)
        self.writer = KeyValueWriter(self.resolver)

    @classmethod
    def from_config(
        cls,
        config: EnvMetaConfig | None = None,
        *,
        context: ResolutionContext | None = None,
        transport: httpx.BaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> "EnvMetaClient":
        cfg = config or get_config()
        configure_logging(cfg.log_level, cfg.log_format)
        token = cfg.acl_token.get_secret_value() if cfg.acl_token else None
        kv = KeyValueClient(timeout=cfg.http_timeout, token=token, transport=transport)
        return cls(
            kv,
            cfg.local_agent,
            meta_environment=cfg.meta_environment,
            context=context,
            rng=rng,
        )

    def __enter__(self) -> "EnvMetaClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self.kv.close()

    def _ctx(self, context: ResolutionContext | None) -> ResolutionContext:
        return context or self.context

    # ── Reads ─────────────────────────────────────────────────────────────────

    def identify(self, *, context: ResolutionContext | None = None) -> str:
        return self.resolver.identify(context=self._ctx(context))

    def locate_meta(self, *, context: ResolutionContext | None = None) -> MetaServerInfo:
        return self.resolver.meta_locator.locate(self.local, context=self._ctx(context))

    def resolve_key(
        self, environment: str, key: str, *, context: ResolutionContext | None = None
    ) -> str:
        return self.resolver.resolve_key(environment, key, context=self._ctx(context))

    def resolve_endpoint(
        self, environment: str, *, context: ResolutionContext | None = None
    ) -> ResolvedEnvironmentEndpoint:
        return self.resolver.resolve_endpoint(environment, context=self._ctx(context))

    def locate_service(
        self,
        environment: str,
        service: str,
        tag: str | None = None,
        *,
        context: ResolutionContext | None = None,
    ) -> str:
        return self.services.locate(environment, service, tag, context=self._ctx(context))

    # ── Writes ────────────────────────────────────────────────────────────────

    def register_service(
        self,
        environment: str,
        node: str,
        node_address: str,
        service: str,
        service_address: str | None = None,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        self.services.register(
            environment, node, node_address, service, service_address, context=self._ctx(context),
        )

    def set_value(
        self, target: Target, key: str, value: str, *, context: ResolutionContext | None = None
    ) -> None:
        self.writer.set_value(target, key, value, context=self._ctx(context))

    def set_environment_endpoint(
        self,
        meta_target: Target,
        environment: str,
        endpoint: ResolvedEnvironmentEndpoint,
        index: int = 0,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        self.writer.set_environment_endpoint(
            meta_target, environment, endpoint, index, context=self._ctx(context),
        )

    def set_dns_fallback(
        self,
        target: Target,
        environment: str,
        ip: str,
        index: int = 0,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        self.writer.set_dns_fallback(target, environment, ip, index, context=self._ctx(context))

    def set_server_count(
        self, target: Target, environment: str, count: int, *, context: ResolutionContext | None = None
    ) -> None:
        self.writer.set_server_count(target, environment, count, context=self._ctx(context))


__all__ = ["EnvMetaClient"]
