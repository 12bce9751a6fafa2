"""
envmeta_sdk.tier3_platform.resolver
────────────────────────────────────
Environment resolution. Decides, per call, whether the target environment
is the one the local agent belongs to or a foreign one reached through
the meta server, and builds the endpoint set for it.

Routing rule for every key read:
  - target == local environment → read from the local agent, no ``dc``
  - otherwise                   → read from the meta server's HTTP address
                                  with ``dc=<target's data center>``

Nothing is cached: every call re-identifies the local environment and
re-locates the meta server.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from envmeta_sdk.tier0_core.errors import NotFoundError, ValidationError
from envmeta_sdk.tier1_runtime.context import ResolutionContext
from envmeta_sdk.tier3_platform.kv import Coordinates, LocalAgent, RoutedStore, normalize_environment
from envmeta_sdk.tier3_platform.meta import LocalEnvironmentIdentifier, MetaLocator
from envmeta_sdk.tier3_platform.servers import (
    ServerCountResolver,
    ServerPicker,
    choose_server,
    server_key,
)

ENDPOINT_FIELDS = ("datacenter", "http", "dns", "serf_lan", "serf_wan", "server")


@dataclass(frozen=True)
class ResolvedEnvironmentEndpoint:
    """Everything needed to talk to one environment's store cluster."""
    domain: str
    datacenter: str
    http: str
    dns: str
    serf_lan: str
    serf_wan: str
    server: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def require_environment(name: str) -> str:
    """Normalize an environment name, rejecting blanks."""
    if not name or not name.strip():
        raise ValidationError("Environment name must not be empty.", environment=name)
    return normalize_environment(name)


class EnvironmentResolver:
    """
    Resolves keys and endpoints for a named environment.

    Usage::

        resolver = EnvironmentResolver(LocalAgent(client, "http://localhost:8500"))
        resolver.resolve_key("production", "environment/production/consul/0/http")
    """

    def __init__(
        self,
        local: LocalAgent,
        *,
        meta_locator: MetaLocator | None = None,
        identifier: LocalEnvironmentIdentifier | None = None,
        counter: ServerCountResolver | None = None,
        picker: ServerPicker | None = None,
    ) -> None:
        self.local = local
        self._counter = counter or ServerCountResolver()
        self._picker = picker or ServerPicker()
        self._meta = meta_locator or MetaLocator(counter=self._counter, picker=self._picker)
        self._identifier = identifier or LocalEnvironmentIdentifier()

    @property
    def meta_locator(self) -> MetaLocator:
        return self._meta

    # ── Identity ──────────────────────────────────────────────────────────────

    def identify(self, *, context: ResolutionContext | None = None) -> str:
        return self._identifier.identify(self.local, context=context)

    def is_local(self, target: str, *, context: ResolutionContext | None = None) -> bool:
        return require_environment(target) == self.identify(context=context)

    # ── Data center and routing ───────────────────────────────────────────────

    def resolve_datacenter(self, target: str, *, context: ResolutionContext | None = None) -> str:
        """Read the target's data center from one of its server records, via the local agent."""
        env = require_environment(target)
        index = choose_server(self.local, env, self._counter, self._picker, context=context)
        return self.local.read(server_key(env, index, "datacenter"), context=context)

    def route(
        self, target: str, *, context: ResolutionContext | None = None
    ) -> LocalAgent | RoutedStore:
        """Return the store a read for ``target`` must go to."""
        ctx = context or ResolutionContext()
        env = require_environment(target)
        if env == self.identify(context=ctx):
            ctx.trace(__name__, "environment.route", environment=env, mode="local", agent=self.local.address)
            return self.local
        datacenter = self.resolve_datacenter(env, context=ctx)
        meta = self._meta.locate(self.local, context=ctx)
        ctx.trace(
            __name__, "environment.route", environment=env, mode="meta", meta=meta.http, datacenter=datacenter,
        )
        return RoutedStore(self.local.client, Coordinates(datacenter=datacenter, http=meta.http))

    def resolve_key(
        self, target: str, key: str, *, context: ResolutionContext | None = None
    ) -> str:
        """Read ``key`` from the target environment's store."""
        ctx = context or ResolutionContext()
        return self.route(target, context=ctx).read(key, context=ctx)

    def resolve_coordinates(
        self, target: str, *, context: ResolutionContext | None = None
    ) -> Coordinates:
        """Write-path routing: where a PUT for ``target`` goes, and with which ``dc``."""
        ctx = context or ResolutionContext()
        env = require_environment(target)
        local = env == self.identify(context=ctx)
        datacenter = self.resolve_datacenter(env, context=ctx)
        if local:
            return Coordinates(datacenter=datacenter, http=self.local.address)
        meta = self._meta.locate(self.local, context=ctx)
        return Coordinates(datacenter=datacenter, http=meta.http)

    # ── Endpoint ──────────────────────────────────────────────────────────────

    def resolve_endpoint(
        self, target: str, *, context: ResolutionContext | None = None
    ) -> ResolvedEnvironmentEndpoint:
        """
        Resolve the full endpoint set of one server of ``target``.

        One server index and one route are chosen for the whole resolution,
        so all six fields come from the same store. Any failed read aborts;
        no partial endpoint is returned.
        """
        env = require_environment(target)
        ctx = (context or ResolutionContext()).bind(environment=env)
        index = choose_server(self.local, env, self._counter, self._picker, context=ctx)
        store = self.route(env, context=ctx)

        values: dict[str, str] = {}
        for field in ENDPOINT_FIELDS:
            values[field] = store.read(server_key(env, index, field), context=ctx)

        domain = self._domain(values["http"], ctx)
        endpoint = ResolvedEnvironmentEndpoint(domain=domain, **values)
        ctx.logger(__name__).info(
            "environment.resolved", index=index, datacenter=endpoint.datacenter, http=endpoint.http,
        )
        return endpoint

    def _domain(self, http: str, ctx: ResolutionContext) -> str:
        payload = self.local.client.agent_self(http, context=ctx)
        domain = _extract_domain(payload)
        if not domain:
            raise NotFoundError(
                "Agent does not report a DNS domain.",
                detail=f"agent/self on {http} has no Domain field",
                url=http,
            )
        return domain.rstrip(".")


def _extract_domain(payload: dict[str, Any]) -> str | None:
    domain = payload.get("Domain")
    if domain:
        return domain
    config = payload.get("Config")
    if isinstance(config, dict):
        return config.get("Domain")
    return None


__all__ = [
    "EnvironmentResolver", "ResolvedEnvironmentEndpoint",
    "ENDPOINT_FIELDS", "require_environment",
]
