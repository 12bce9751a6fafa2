"""
envmeta_sdk.tier3_platform.discovery
─────────────────────────────────────
Service endpoint resolution across environments. Translates a service
name (optionally tag-filtered) in a named environment to a network
address using the store's service catalog.

Catalog traffic always goes through the meta server's public HTTP
address, even when the target is the local environment. Key reads in
resolver.py route locally in that case; the catalog deliberately does not.
"""
from __future__ import annotations

from envmeta_sdk.tier0_core.errors import NotFoundError, ValidationError
from envmeta_sdk.tier1_runtime.context import ResolutionContext
from envmeta_sdk.tier3_platform.kv import Coordinates
from envmeta_sdk.tier3_platform.resolver import EnvironmentResolver, require_environment


class ServiceLocator:
    """
    Resolve and register services in any environment's catalog.

    Usage::

        locator = ServiceLocator(resolver)
        address = locator.locate("production", "web", tag="blue")
    """

    def __init__(self, resolver: EnvironmentResolver) -> None:
        self._resolver = resolver

    def _catalog_coordinates(self, env: str, ctx: ResolutionContext) -> Coordinates:
        datacenter = self._resolver.resolve_datacenter(env, context=ctx)
        meta = self._resolver.meta_locator.locate(self._resolver.local, context=ctx)
        return Coordinates(datacenter=datacenter, http=meta.http)

    def locate(
        self,
        target: str,
        service: str,
        tag: str | None = None,
        *,
        context: ResolutionContext | None = None,
    ) -> str:
        """Return the ``Address`` of the first catalog record for ``service``."""
        if not service:
            raise ValidationError("Service name must not be empty.")
        env = require_environment(target)
        ctx = (context or ResolutionContext()).bind(environment=env, service=service)
        coords = self._catalog_coordinates(env, ctx)

        records = self._resolver.local.client.catalog_service(
            coords.http, service, coords.datacenter, tag or None, context=ctx,
        )
        if not records:
            ctx.logger(__name__).warning("service.not_found", tag=tag, datacenter=coords.datacenter)
            raise NotFoundError(
                "Service not found.",
                detail=f"No catalog record for {service!r} (tag={tag!r}) in {env} (dc={coords.datacenter})",
                service=service,
                tag=tag,
                environment=env,
                datacenter=coords.datacenter,
            )
        address = records[0].get("Address")
        if not address:
            raise NotFoundError(
                "Service record has no address.",
                detail=f"First catalog record for {service!r} in {env} carries no Address",
                service=service,
                environment=env,
                datacenter=coords.datacenter,
            )
        ctx.logger(__name__).info("service.located", address=address, datacenter=coords.datacenter)
        return address

    def register(
        self,
        target: str,
        node: str,
        node_address: str,
        service: str,
        service_address: str | None = None,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        """Register ``service`` on ``node`` in the target environment's catalog."""
        if not service or not node:
            raise ValidationError("Node and service names must not be empty.")
        env = require_environment(target)
        ctx = (context or ResolutionContext()).bind(environment=env, service=service)
        coords = self._catalog_coordinates(env, ctx)
        self._resolver.local.client.catalog_register(
            coords.http,
            coords.datacenter,
            node=node,
            node_address=node_address,
            service=service,
            service_address=service_address or node_address,
            context=ctx,
        )
        ctx.logger(__name__).info("service.registered", node=node, datacenter=coords.datacenter)


__all__ = ["ServiceLocator"]
