"""
envmeta_sdk.tier3_platform.servers
───────────────────────────────────
Server records under ``environment/<env>/consul/<index>/...``.

The count is always read through the local agent. Indices are 0-based,
matching how records are written.
"""
from __future__ import annotations

import random

from envmeta_sdk.tier0_core.errors import InvalidCountError, NotFoundError, ValidationError
from envmeta_sdk.tier1_runtime.context import ResolutionContext
from envmeta_sdk.tier3_platform.kv import LocalAgent, key_path

SERVERS_SEGMENT = "consul"
COUNT_KEY = "number_of_servers"


def server_count_key(environment: str) -> str:
    return key_path(environment, SERVERS_SEGMENT, COUNT_KEY)


def server_key(environment: str, index: int, field: str) -> str:
    return key_path(environment, SERVERS_SEGMENT, index, field)


class ServerCountResolver:
    """Reads how many server records an environment has."""

    def count(
        self,
        local: LocalAgent,
        environment: str,
        *,
        context: ResolutionContext | None = None,
    ) -> int:
        ctx = context or ResolutionContext()
        key = server_count_key(environment)
        raw = local.read(key, context=ctx).strip()
        if not (raw.isascii() and raw.isdigit()):
            raise InvalidCountError(
                "Server count is not a non-negative integer.",
                detail=f"{key!r} holds {raw!r}",
                key_path=key,
                environment=environment,
            )
        count = int(raw)
        ctx.trace(__name__, "servers.counted", environment=environment, count=count)
        return count


def pick_server(count: int, rng: random.Random | None = None) -> int:
    """Pick a server index uniformly from [0, count)."""
    if count < 1:
        raise ValidationError(
            "Cannot pick a server from an empty environment.",
            detail=f"pick_server called with count={count}",
            count=count,
        )
    return (rng or random).randrange(count)


class ServerPicker:
    """Uniform random choice of a server index. Pass a seeded Random for repeatable picks."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng

    def pick(self, count: int) -> int:
        return pick_server(count, self._rng)


def choose_server(
    local: LocalAgent,
    environment: str,
    counter: ServerCountResolver,
    picker: ServerPicker,
    *,
    context: ResolutionContext | None = None,
) -> int:
    """Count an environment's servers via the local agent and pick one index."""
    count = counter.count(local, environment, context=context)
    if count == 0:
        raise NotFoundError(
            "Environment has no server records.",
            detail=f"{server_count_key(environment)!r} is 0",
            key_path=server_count_key(environment),
            environment=environment,
        )
    return picker.pick(count)


__all__ = [
    "ServerCountResolver", "ServerPicker", "pick_server", "choose_server",
    "server_count_key", "server_key",
]
