"""Shared type aliases for attendload."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# JSON object sent as a request body.
JsonBody = dict[str, object]
