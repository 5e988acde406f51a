"""Setup phase: log in once and hold the session token."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from attendload._internal.errors import SetupError
from attendload._internal.logging import get_logger

if TYPE_CHECKING:
    from attendload._internal.types import Headers
    from attendload.http_client import HttpClient

logger = get_logger("scenario.auth")

LOGIN_PATH = "/login"
JSON_HEADERS: Headers = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class SessionToken:
    """Bearer token obtained during setup.

    Immutable once created and shared read-only by every virtual user.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            msg = "Session token must be non-empty"
            raise SetupError(msg)

    def headers(self) -> Headers:
        """Return the headers every authorized request carries."""
        return {**JSON_HEADERS, "Authorization": f"Bearer {self.value}"}

    def __repr__(self) -> str:
        return "SessionToken(value='***')"


async def login(client: HttpClient, username: str, password: str) -> SessionToken:
    """Authenticate against ``POST /login`` and return the session token.

    Args:
        client: Open HTTP client pointed at the API root.
        username: Login name.
        password: Login password.

    Returns:
        The SessionToken taken from the ``token`` field of the response.

    Raises:
        SetupError: If the request fails, the body is not a JSON object, or
            the body has no non-empty string ``token``.
    """
    url = f"{client.base_url}{LOGIN_PATH}"
    try:
        resp = await client.post(
            LOGIN_PATH,
            {"username": username, "password": password},
            name="Login",
        )
    except (aiohttp.ClientError, TimeoutError) as exc:
        msg = f"Login request to {url} failed: {type(exc).__name__}: {exc}"
        raise SetupError(msg) from exc

    try:
        data = await resp.json(content_type=None)
    except (ValueError, aiohttp.ClientError) as exc:
        msg = f"Login response from {url} (HTTP {resp.status}) is not valid JSON"
        raise SetupError(msg) from exc
    finally:
        resp.release()

    if not isinstance(data, dict):
        msg = f"Login response from {url} (HTTP {resp.status}) is not a JSON object"
        raise SetupError(msg)

    token = data.get("token")
    if not isinstance(token, str) or not token:
        detail = data.get("human_error") or data.get("message")
        msg = f"Login response from {url} (HTTP {resp.status}) has no token"
        if detail:
            msg = f"{msg}: {detail}"
        raise SetupError(msg)

    logger.info("Logged in as %s", username)
    return SessionToken(token)
