"""
envmeta_sdk.tier0_core.http
────────────────────────────
HTTP status codes the store transport classifies responses by.
"""
from __future__ import annotations


class HTTP:
    """HTTP status codes returned by the key-value and catalog API."""

    OK = 200
    NOT_FOUND = 404
    FORBIDDEN = 403
    INTERNAL_SERVER_ERROR = 500

    @staticmethod
    def is_success(status: int) -> bool:
        return 200 <= status < 300


__all__ = ["HTTP"]
