"""Tests for tier0_core modules."""
from __future__ import annotations

import logging

import pytest

from envmeta_sdk.tier0_core.config import EnvMetaConfig, _reset_config, get_config
from envmeta_sdk.tier0_core.errors import (
    ConfigurationError,
    DecodeError,
    EnvMetaError,
    MissingIdentityError,
    NotFoundError,
    PartialWriteError,
    TransportError,
    ValidationError,
)
from envmeta_sdk.tier0_core.http import HTTP
from envmeta_sdk.tier0_core.logging import _redact_processor, configure_logging, get_logger


# ── errors ─────────────────────────────────────────────────────────────────

class TestErrors:
    def test_base_error_has_code(self):
        e = EnvMetaError("Something broke", code="custom_code")
        assert e.code == "custom_code"
        assert "Something broke" in str(e)

    def test_detail_overrides_message_in_str(self):
        e = NotFoundError("Key not found.", detail="No entry at 'foo'", key_path="foo")
        assert str(e) == "No entry at 'foo'"
        assert e.user_message == "Key not found."
        assert e.metadata["key_path"] == "foo"

    def test_not_found_is_not_transport(self):
        e = NotFoundError("missing")
        assert not isinstance(e, TransportError)
        assert e.status_code == 404

    def test_transport_error_carries_request(self):
        e = TransportError("boom", url="http://x/v1/kv/a", method="GET", status=503)
        assert e.status == 503
        assert e.url == "http://x/v1/kv/a"
        assert e.status_code == 502

    def test_partial_write_is_transport_error(self):
        e = PartialWriteError("failed", field="dns", written=["datacenter", "http"])
        assert isinstance(e, TransportError)
        assert e.field == "dns"
        assert e.written == ["datacenter", "http"]
        assert e.code == "partial_write"

    def test_to_dict_drops_empty_metadata(self):
        d = TransportError("boom", url="http://x").to_dict()
        assert d["error"]["code"] == "transport_error"
        assert d["error"]["url"] == "http://x"
        assert "status" not in d["error"]

    @pytest.mark.parametrize("cls", [DecodeError, MissingIdentityError, ValidationError, ConfigurationError])
    def test_all_errors_share_base(self, cls):
        assert issubclass(cls, EnvMetaError)


# ── http ───────────────────────────────────────────────────────────────────

class TestHttp:
    def test_status_codes(self):
        assert HTTP.OK == 200
        assert HTTP.NOT_FOUND == 404

    def test_is_success(self):
        assert HTTP.is_success(200)
        assert HTTP.is_success(204)
        assert not HTTP.is_success(404)
        assert not HTTP.is_success(500)


# ── config ─────────────────────────────────────────────────────────────────

class TestConfig:
    @pytest.fixture(autouse=True)
    def _fresh(self):
        _reset_config()
        yield
        _reset_config()

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVMETA_LOCAL_AGENT", raising=False)
        monkeypatch.delenv("ENVMETA_META_ENVIRONMENT", raising=False)
        cfg = get_config()
        assert cfg.local_agent == "http://localhost:8500"
        assert cfg.meta_environment == "meta"
        assert cfg.http_timeout == 10.0
        assert cfg.acl_token is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ENVMETA_LOCAL_AGENT", "http://agent.internal:8500/")
        monkeypatch.setenv("ENVMETA_META_ENVIRONMENT", "Meta-Global")
        monkeypatch.setenv("ENVMETA_HTTP_TIMEOUT", "2.5")
        cfg = get_config()
        assert cfg.local_agent == "http://agent.internal:8500"
        assert cfg.meta_environment == "meta-global"
        assert cfg.http_timeout == 2.5

    def test_config_is_cached(self):
        assert get_config() is get_config()

    def test_acl_token_is_secret(self, monkeypatch):
        monkeypatch.setenv("ENVMETA_ACL_TOKEN", "s3cr3t-token")
        cfg = get_config()
        assert cfg.acl_token.get_secret_value() == "s3cr3t-token"
        assert "s3cr3t-token" not in repr(cfg)

    def test_invalid_timeout_is_configuration_error(self, monkeypatch):
        monkeypatch.setenv("ENVMETA_HTTP_TIMEOUT", "0")
        with pytest.raises(ConfigurationError):
            get_config()

    def test_invalid_agent_url_is_configuration_error(self, monkeypatch):
        monkeypatch.setenv("ENVMETA_LOCAL_AGENT", "localhost:8500")
        with pytest.raises(ConfigurationError):
            get_config()

    def test_construct_by_field_name(self):
        cfg = EnvMetaConfig(local_agent="https://agent:8501", meta_environment="META")
        assert cfg.local_agent == "https://agent:8501"
        assert cfg.meta_environment == "meta"


# ── logging ────────────────────────────────────────────────────────────────

class TestLogging:
    def test_get_logger_binds(self):
        log = get_logger("envmeta.test").bind(environment="staging")
        log.debug("test.event")

    def test_redacts_token(self):
        event = _redact_processor(None, "info", {"event": "x", "acl_token": "abc", "key_path": "k"})
        assert event["acl_token"] == "[REDACTED]"
        assert event["key_path"] == "k"

    def test_reconfigure_replaces_handler(self):
        configure_logging("INFO", "console")
        handlers = len(logging.getLogger().handlers)
        configure_logging("DEBUG", "json")
        assert len(logging.getLogger().handlers) == handlers
        assert logging.getLogger().level == logging.DEBUG
        configure_logging()

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO
        configure_logging()
