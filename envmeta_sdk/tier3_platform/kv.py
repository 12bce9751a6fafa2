"""
envmeta_sdk.tier3_platform.kv
──────────────────────────────
Key-value and catalog access over the store's HTTP API. Every read in the
SDK funnels through KeyValueClient.

Two capabilities sit on top of the raw client:
  - LocalAgent   — talks to the caller's own agent, never sends ``dc``
  - RoutedStore  — talks to some agent on behalf of a data center, always
                   sends ``dc``

Server counting, identity lookup and meta location accept only a
LocalAgent, so they can never be routed through the meta layer they help
discover.

Backed by: httpx (sync client). Timeouts are the transport's concern.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from envmeta_sdk.tier0_core.errors import DecodeError, NotFoundError, TransportError
from envmeta_sdk.tier0_core.http import HTTP
from envmeta_sdk.tier1_runtime.codec import decode_value, to_bytes
from envmeta_sdk.tier1_runtime.context import ResolutionContext

ENVIRONMENT_ROOT = "environment"
SELF_KEY = f"{ENVIRONMENT_ROOT}/self"


def normalize_environment(name: str) -> str:
    return name.strip().lower()


def key_path(environment: str, *parts: Any) -> str:
    """
    Build ``environment/<env>/<parts...>`` with the environment segment
    lowercased and percent-encoded.

        key_path("Prod", "consul", 0, "http") -> "environment/prod/consul/0/http"
    """
    segment = quote(normalize_environment(environment), safe="")
    return "/".join([ENVIRONMENT_ROOT, segment, *(str(p) for p in parts)])


@dataclass(frozen=True)
class Coordinates:
    """Where to send a data-center-scoped request: (data center, agent HTTP address)."""
    datacenter: str
    http: str


class KeyValueClient:
    """
    Synchronous client for one store's KV, catalog and agent endpoints.

    Usage::

        with KeyValueClient(timeout=5.0) as kv:
            value = kv.read("http://localhost:8500", "environment/self")
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"X-Consul-Token": token} if token else {}
        self._http = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    def __enter__(self) -> "KeyValueClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # ── KV ────────────────────────────────────────────────────────────────────

    def read(
        self,
        address: str,
        key: str,
        datacenter: str | None = None,
        *,
        context: ResolutionContext | None = None,
    ) -> str:
        """GET one key and return its decoded value."""
        ctx = context or ResolutionContext()
        params = {"dc": datacenter} if datacenter else None
        response = self._send(
            "kv.read", "GET", _kv_url(address, key), ctx, params=params, key_path=key, datacenter=datacenter,
        )
        if response.status_code == HTTP.NOT_FOUND:
            raise NotFoundError(
                "Key not found.",
                detail=f"No entry at {key!r} on {address} (dc={datacenter})",
                key_path=key,
                datacenter=datacenter,
                url=str(response.request.url),
            )
        self._raise_for_status(response, key_path=key, datacenter=datacenter)

        records = _json(response, key_path=key)
        if not records:
            raise NotFoundError(
                "Key not found.",
                detail=f"Empty result for {key!r} on {address} (dc={datacenter})",
                key_path=key,
                datacenter=datacenter,
            )
        if not isinstance(records, list) or not isinstance(records[0], dict):
            raise DecodeError(
                "Unexpected key-value response shape.",
                detail=f"Expected a list of records for {key!r}, got {type(records).__name__}",
                key_path=key,
            )
        encoded = records[0].get("Value")
        if encoded is None:
            raise NotFoundError(
                "Key has no value.",
                detail=f"Entry {key!r} on {address} (dc={datacenter}) holds no value",
                key_path=key,
                datacenter=datacenter,
            )
        return decode_value(encoded, key_path=key)

    def write(
        self,
        address: str,
        key: str,
        value: str,
        datacenter: str,
        *,
        context: ResolutionContext | None = None,
    ) -> None:
        """PUT one key. The body is the plain value; the store base64s it on read."""
        ctx = context or ResolutionContext()
        response = self._send(
            "kv.write",
            "PUT",
            _kv_url(address, key),
            ctx,
            params={"dc": datacenter},
            content=to_bytes(value),
            key_path=key,
            datacenter=datacenter,
        )
        if response.status_code != HTTP.OK:
            raise TransportError(
                f"Failed to write key {key!r}.",
                detail=f"PUT {key!r}={value!r} (dc={datacenter}) returned {response.status_code}",
                url=str(response.request.url),
                method="PUT",
                status=response.status_code,
                key_path=key,
                value=value,
                datacenter=datacenter,
            )

    # ── Catalog ───────────────────────────────────────────────────────────────

    def catalog_service(
        self,
        address: str,
        service: str,
        datacenter: str | None = None,
        tag: str | None = None,
        *,
        context: ResolutionContext | None = None,
    ) -> list[dict[str, Any]]:
        """Return the catalog records for a service (possibly empty)."""
        ctx = context or ResolutionContext()
        params: dict[str, str] = {}
        if datacenter:
            params["dc"] = datacenter
        if tag:
            params["tag"] = tag
        url = f"{address.rstrip('/')}/v1/catalog/service/{quote(service, safe='')}"
        response = self._send(
            "catalog.query", "GET", url, ctx, params=params or None, service=service, datacenter=datacenter,
        )
        self._raise_for_status(response, service=service, datacenter=datacenter)
        records = _json(response, service=service)
        if records is None:
            return []
        if not isinstance(records, list):
            raise DecodeError(
                "Unexpected catalog response shape.",
                detail=f"Expected a list for service {service!r}, got {type(records).__name__}",
                service=service,
            )
        return records

    def catalog_register(
        self,
        address: str,
        datacenter: str,
        *,
        node: str,
        node_address: str,
        service: str,
        service_address: str,
        context: ResolutionContext | None = None,
    ) -> None:
        """Register a node and one service on it."""
        ctx = context or ResolutionContext()
        payload = {
            "Datacenter": datacenter,
            "Node": node,
            "Address": node_address,
            "Service": {"Service": service, "Address": service_address},
        }
        url = f"{address.rstrip('/')}/v1/catalog/register"
        response = self._send(
            "catalog.register", "PUT", url, ctx, params={"dc": datacenter}, json=payload,
            service=service, datacenter=datacenter,
        )
        self._raise_for_status(response, service=service, datacenter=datacenter, node=node)

    # ── Agent ─────────────────────────────────────────────────────────────────

    def agent_self(self, address: str, *, context: ResolutionContext | None = None) -> dict[str, Any]:
        """Return the agent's self-description."""
        ctx = context or ResolutionContext()
        url = f"{address.rstrip('/')}/v1/agent/self"
        response = self._send("agent.self", "GET", url, ctx)
        self._raise_for_status(response)
        payload = _json(response)
        if not isinstance(payload, dict):
            raise DecodeError(
                "Unexpected agent response shape.",
                detail=f"agent/self on {address} returned {type(payload).__name__}",
                url=url,
            )
        return payload

    # ── Internals ─────────────────────────────────────────────────────────────

    def _send(
        self,
        event: str,
        method: str,
        url: str,
        ctx: ResolutionContext,
        *,
        params: dict[str, str] | None = None,
        content: bytes | None = None,
        json: Any = None,
        **log_fields: Any,
    ) -> httpx.Response:
        try:
            response = self._http.request(
                method, url, params=params, content=content, json=json, headers=ctx.headers(),
            )
        except httpx.HTTPError as exc:
            ctx.logger(__name__).warning(f"{event}.failed", method=method, url=url, error=str(exc), **log_fields)
            raise TransportError(
                "Key-value store is unreachable.",
                detail=f"{method} {url} failed: {exc}",
                url=url,
                method=method,
                **log_fields,
            ) from exc
        ctx.trace(
            __name__,
            event,
            method=method,
            url=str(response.request.url),
            status=response.status_code,
            **log_fields,
        )
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, **metadata: Any) -> None:
        if HTTP.is_success(response.status_code):
            return
        request = response.request
        raise TransportError(
            f"Store returned HTTP {response.status_code}.",
            detail=f"{request.method} {request.url} returned {response.status_code}: {response.text[:200]}",
            url=str(request.url),
            method=request.method,
            status=response.status_code,
            **metadata,
        )


def _kv_url(address: str, key: str) -> str:
    return f"{address.rstrip('/')}/v1/kv/{key}"


def _json(response: httpx.Response, **metadata: Any) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise DecodeError(
            "Store returned malformed JSON.",
            detail=f"{response.request.method} {response.request.url}: {exc}",
            **metadata,
        ) from exc


# ── Capabilities ──────────────────────────────────────────────────────────────

class LocalAgent:
    """The caller's own agent. Reads carry no ``dc`` parameter."""

    def __init__(self, client: KeyValueClient, address: str) -> None:
        self.client = client
        self.address = address.rstrip("/")

    def read(self, key: str, *, context: ResolutionContext | None = None) -> str:
        return self.client.read(self.address, key, context=context)

    def agent_self(self, *, context: ResolutionContext | None = None) -> dict[str, Any]:
        return self.client.agent_self(self.address, context=context)

    def __repr__(self) -> str:
        return f"LocalAgent({self.address!r})"


class RoutedStore:
    """An agent addressed on behalf of one data center. Every call carries ``dc``."""

    def __init__(self, client: KeyValueClient, coordinates: Coordinates) -> None:
        self.client = client
        self.coordinates = coordinates

    def read(self, key: str, *, context: ResolutionContext | None = None) -> str:
        return self.client.read(
            self.coordinates.http, key, self.coordinates.datacenter, context=context,
        )

    def write(self, key: str, value: str, *, context: ResolutionContext | None = None) -> None:
        self.client.write(
            self.coordinates.http, key, value, self.coordinates.datacenter, context=context,
        )

    def __repr__(self) -> str:
        return f"RoutedStore({self.coordinates.http!r}, dc={self.coordinates.datacenter!r})"


__all__ = [
    "KeyValueClient", "LocalAgent", "RoutedStore", "Coordinates",
    "key_path", "normalize_environment", "SELF_KEY",
]
