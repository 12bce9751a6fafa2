"""
envmeta_sdk
───────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from envmeta_sdk.tier0_core.logging import get_logger, configure_logging
from envmeta_sdk.tier0_core.errors import (
    EnvMetaError,
    TransportError,
    PartialWriteError,
    DecodeError,
    NotFoundError,
    MissingIdentityError,
    InvalidCountError,
    ValidationError,
    ConfigurationError,
)
from envmeta_sdk.tier0_core.config import get_config, EnvMetaConfig

from envmeta_sdk.tier1_runtime.context import ResolutionContext, new_context
from envmeta_sdk.tier1_runtime.codec import encode_value, decode_value

from envmeta_sdk.tier3_platform.kv import KeyValueClient, LocalAgent, RoutedStore, Coordinates, key_path
from envmeta_sdk.tier3_platform.servers import ServerCountResolver, ServerPicker, pick_server
from envmeta_sdk.tier3_platform.meta import LocalEnvironmentIdentifier, MetaLocator, MetaServerInfo
from envmeta_sdk.tier3_platform.resolver import EnvironmentResolver, ResolvedEnvironmentEndpoint
from envmeta_sdk.tier3_platform.discovery import ServiceLocator
from envmeta_sdk.tier3_platform.writer import KeyValueWriter, ByEnvironmentName, ByCoordinates, Target

from envmeta_sdk.client import EnvMetaClient

__version__ = "0.1.0"
__all__ = [
    # logging
    "get_logger", "configure_logging",
    # errors
    "EnvMetaError", "TransportError", "PartialWriteError", "DecodeError",
    "NotFoundError", "MissingIdentityError", "InvalidCountError",
    "ValidationError", "ConfigurationError",
    # config
    "get_config", "EnvMetaConfig",
    # context
    "ResolutionContext", "new_context",
    # codec
    "encode_value", "decode_value",
    # kv
    "KeyValueClient", "LocalAgent", "RoutedStore", "Coordinates", "key_path",
    # servers
    "ServerCountResolver", "ServerPicker", "pick_server",
    # meta
    "LocalEnvironmentIdentifier", "MetaLocator", "MetaServerInfo",
    # resolver
    "EnvironmentResolver", "ResolvedEnvironmentEndpoint",
    # discovery
    "ServiceLocator",
    # writer
    "KeyValueWriter", "ByEnvironmentName", "ByCoordinates", "Target",
    # facade
    "EnvMetaClient",
]
