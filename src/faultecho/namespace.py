"""Tenant namespace derivation."""

import re

from starlette.requests import Request

DEFAULT_NAMESPACE = "default"

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]")


def sanitize_namespace(value: str | None) -> str:
    """Lowercase and replace anything outside ``[a-z0-9_-]`` with ``_``."""
    if not value:
        return DEFAULT_NAMESPACE
    return _UNSAFE_CHARS.sub("_", value.lower())


def namespace_from_request(request: Request) -> str:
    """Derive the namespace from the request's Host header."""
    return sanitize_namespace(request.headers.get("host"))
