"""
envmeta_sdk.tier3_platform.meta
────────────────────────────────
Local identity and meta-server location. Both read only through the local
agent: every agent replicates the meta environment's records, and the
resolver depends on these lookups, so they must never depend on it.
"""
from __future__ import annotations

from dataclasses import dataclass

from envmeta_sdk.tier0_core.errors import MissingIdentityError, NotFoundError, TransportError
from envmeta_sdk.tier1_runtime.context import ResolutionContext
from envmeta_sdk.tier3_platform.kv import SELF_KEY, LocalAgent, normalize_environment
from envmeta_sdk.tier3_platform.servers import (
    ServerCountResolver,
    ServerPicker,
    choose_server,
    server_key,
)


@dataclass(frozen=True)
class MetaServerInfo:
    """The meta server chosen for one resolution. Never cached."""
    datacenter: str
    http: str


class LocalEnvironmentIdentifier:
    """Asks the local agent which environment it belongs to."""

    def identify(self, local: LocalAgent, *, context: ResolutionContext | None = None) -> str:
        ctx = context or ResolutionContext()
        try:
            name = local.read(SELF_KEY, context=ctx)
        except (NotFoundError, TransportError) as exc:
            ctx.logger(__name__).warning("environment.unidentified", agent=local.address, error=str(exc))
            raise MissingIdentityError(
                "Local agent does not report an environment.",
                detail=f"Reading {SELF_KEY!r} from {local.address} failed: {exc}",
                key_path=SELF_KEY,
                agent=local.address,
            ) from exc
        name = normalize_environment(name)
        if not name:
            raise MissingIdentityError(
                "Local agent reports an empty environment name.",
                key_path=SELF_KEY,
                agent=local.address,
            )
        ctx.trace(__name__, "environment.identified", environment=name, agent=local.address)
        return name


class MetaLocator:
    """Finds the meta environment's data center and HTTP address."""

    def __init__(
        self,
        meta_environment: str = "meta",
        *,
        counter: ServerCountResolver | None = None,
        picker: ServerPicker | None = None,
    ) -> None:
        self.meta_environment = normalize_environment(meta_environment)
        self._counter = counter or ServerCountResolver()
        self._picker = picker or ServerPicker()

    def locate(self, local: LocalAgent, *, context: ResolutionContext | None = None) -> MetaServerInfo:
        ctx = context or ResolutionContext()
        env = self.meta_environment
        index = choose_server(local, env, self._counter, self._picker, context=ctx)
        http = local.read(server_key(env, index, "http"), context=ctx)
        datacenter = local.read(server_key(env, index, "datacenter"), context=ctx)
        info = MetaServerInfo(datacenter=datacenter, http=http.rstrip("/"))
        ctx.trace(__name__, "meta.located", index=index, http=info.http, datacenter=info.datacenter)
        return info


__all__ = ["MetaServerInfo", "LocalEnvironmentIdentifier", "MetaLocator"]
