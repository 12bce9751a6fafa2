"""
envmeta_sdk test configuration.

All tests run against an in-memory federated store served through
httpx.MockTransport — no agent needs to be running.

World layout:
  staging    — local agent http://localhost:8500, data center dc-staging
  meta       — meta server http://10.0.0.5:8500,   data center dc-meta
  production — server      http://10.0.1.10:8500,  data center dc-prod
"""
from __future__ import annotations

import json
import os
import random
from typing import Any

import httpx
import pytest

# ── Environment defaults ───────────────────────────────────────────────────
# These must be set before any envmeta_sdk modules are imported.

os.environ.setdefault("ENVMETA_ERROR_BACKEND", "none")
os.environ.setdefault("ENVMETA_LOG_LEVEL", "WARNING")

from envmeta_sdk.client import EnvMetaClient  # noqa: E402
from envmeta_sdk.tier1_runtime.codec import encode_value, from_bytes  # noqa: E402
from envmeta_sdk.tier3_platform.kv import KeyValueClient, LocalAgent  # noqa: E402

LOCAL = "http://localhost:8500"
META = "http://10.0.0.5:8500"
PROD = "http://10.0.1.10:8500"

SERVER_FIELDS = {
    "staging": {
        "datacenter": "dc-staging",
        "http": LOCAL,
        "dns": "10.0.2.1:8600",
        "serf_lan": "10.0.2.1:8301",
        "serf_wan": "10.0.2.1:8302",
        "server": "10.0.2.1:8300",
    },
    "production": {
        "datacenter": "dc-prod",
        "http": PROD,
        "dns": "10.0.1.10:8600",
        "serf_lan": "10.0.1.10:8301",
        "serf_wan": "10.0.1.10:8302",
        "server": "10.0.1.10:8300",
    },
}


class FakeStore:
    """
    A federated key-value store. Each agent has a home data center; a
    ``dc`` query parameter selects another data center's data, the way a
    WAN-joined cluster forwards requests.
    """

    def __init__(self) -> None:
        self.agents: dict[str, tuple[str, str]] = {}
        self.kv: dict[str, dict[str, str]] = {}
        self.catalog: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self.requests: list[httpx.Request] = []
        self.failing_puts: set[str] = set()
        self.raw_bodies: dict[str, bytes] = {}

    # ── Setup ─────────────────────────────────────────────────────────────

    def add_agent(self, address: str, datacenter: str, domain: str = "consul.") -> None:
        self.agents[_host(httpx.URL(address))] = (datacenter, domain)
        self.kv.setdefault(datacenter, {})

    def put(self, datacenter: str, key: str, value: str) -> None:
        self.kv.setdefault(datacenter, {})[key] = value

    def add_service(self, datacenter: str, service: str, address: str, tags: list[str] | None = None) -> None:
        self.catalog.setdefault(datacenter, {}).setdefault(service, []).append(
            {"ServiceName": service, "Address": address, "ServiceTags": tags or []}
        )

    # ── Inspection ────────────────────────────────────────────────────────

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, str(r.url)) for r in self.requests]

    def reset_calls(self) -> None:
        self.requests.clear()

    # ── Transport ─────────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        agent = self.agents.get(_host(request.url))
        if agent is None:
            raise httpx.ConnectError(f"connection refused: {request.url}", request=request)
        home_dc, domain = agent
        dc = request.url.params.get("dc") or home_dc
        path = request.url.path

        if path == "/v1/agent/self":
            return httpx.Response(200, json={"Config": {"Datacenter": home_dc, "Domain": domain}})

        if path.startswith("/v1/kv/"):
            key = path[len("/v1/kv/"):]
            if key in self.raw_bodies:
                return httpx.Response(200, content=self.raw_bodies[key])
            if request.method == "PUT":
                if key in self.failing_puts:
                    return httpx.Response(500, text="rpc error")
                self.put(dc, key, from_bytes(request.content))
                return httpx.Response(200, json=True)
            value = self.kv.get(dc, {}).get(key)
            if value is None:
                return httpx.Response(404)
            return httpx.Response(200, json=[{"Key": key, "Flags": 0, "Value": encode_value(value)}])

        if path.startswith("/v1/catalog/service/"):
            service = path[len("/v1/catalog/service/"):]
            tag = request.url.params.get("tag")
            records = self.catalog.get(dc, {}).get(service, [])
            if tag:
                records = [r for r in records if tag in r["ServiceTags"]]
            return httpx.Response(200, json=records)

        if path == "/v1/catalog/register" and request.method == "PUT":
            body = json.loads(request.content)
            self.add_service(dc, body["Service"]["Service"], body["Service"]["Address"])
            return httpx.Response(200, json=True)

        return httpx.Response(404)


def _host(url: httpx.URL) -> str:
    return f"{url.host}:{url.port}"


def seed_environment(store: FakeStore, datacenter: str, environment: str, fields: dict[str, str]) -> None:
    store.put(datacenter, f"environment/{environment}/consul/number_of_servers", "1")
    for name, value in fields.items():
        store.put(datacenter, f"environment/{environment}/consul/0/{name}", value)


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    s.add_agent(LOCAL, "dc-staging", domain="staging.consul.")
    s.add_agent(META, "dc-meta", domain="meta.consul.")
    s.add_agent(PROD, "dc-prod", domain="prod.consul.")

    # Local agent view: own identity, replicated meta records, and the
    # data-center field of every environment.
    s.put("dc-staging", "environment/self", "staging")
    s.put("dc-staging", "environment/meta/consul/number_of_servers", "1")
    s.put("dc-staging", "environment/meta/consul/0/http", META)
    s.put("dc-staging", "environment/meta/consul/0/datacenter", "dc-meta")
    s.put("dc-staging", "environment/production/consul/number_of_servers", "1")
    s.put("dc-staging", "environment/production/consul/0/datacenter", "dc-prod")
    seed_environment(s, "dc-staging", "staging", SERVER_FIELDS["staging"])
    s.put("dc-staging", "foo", "bar-staging")

    # Production's own cluster.
    seed_environment(s, "dc-prod", "production", SERVER_FIELDS["production"])
    s.put("dc-prod", "foo", "bar-prod")
    return s


@pytest.fixture
def kv_client(store: FakeStore):
    client = KeyValueClient(transport=httpx.MockTransport(store.handler))
    yield client
    client.close()


@pytest.fixture
def local_agent(kv_client: KeyValueClient) -> LocalAgent:
    return LocalAgent(kv_client, LOCAL)


@pytest.fixture
def envmeta(store: FakeStore):
    client = EnvMetaClient(
        KeyValueClient(transport=httpx.MockTransport(store.handler)),
        LOCAL,
        rng=random.Random(7),
    )
    yield client
    client.close()
