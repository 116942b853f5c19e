"""Twitch Helix status source adapter.

Implements the core StatusSourcePort with aiohttp. Uses an app access token
from the client-credentials grant, fetched on first use and again once if
Twitch rejects it.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import aiohttp

from core.models import StreamStatus

LOGGER = logging.getLogger(__name__)

HELIX_URL = "https://api.twitch.tv/helix"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"


def status_from_streams_payload(payload: dict) -> StreamStatus:
    """Map a ``GET /streams`` response to a StreamStatus."""

    streams = payload.get("data") or []
    if not streams:
        return StreamStatus.offline()
    stream = streams[0]
    if stream.get("type", "live") != "live":
        return StreamStatus.offline()
    return StreamStatus(
        live=True,
        stream_id=str(stream["id"]),
        title=stream.get("title") or "",
        user_name=stream.get("user_login") or stream.get("user_name"),
    )


def user_id_from_users_payload(payload: dict) -> Optional[str]:
    users = payload.get("data") or []
    if not users:
        return None
    return str(users[0]["id"])


class TwitchStatusSource:
    """Status source backed by the Twitch Helix API."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        session: Optional[aiohttp.ClientSession] = None,
        request_timeout: float = 10.0,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._token: Optional[str] = None

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _fetch_token(self) -> str:
        LOGGER.info("Requesting Twitch app access token")
        params = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }
        async with self._get_session().post(TOKEN_URL, params=params) as response:
            response.raise_for_status()
            payload = await response.json()
        return payload["access_token"]

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        # A rejected token is refreshed once before giving up.
        for _ in range(2):
            if self._token is None:
                self._token = await self._fetch_token()
            headers = {
                "Client-Id": self._client_id,
                "Authorization": f"Bearer {self._token}",
            }
            async with self._get_session().get(f"{HELIX_URL}{path}", params=params, headers=headers) as response:
                if response.status != 401:
                    response.raise_for_status()
                    return await response.json()
            LOGGER.info("Twitch token rejected for %s", path)
            self._token = None
        raise RuntimeError(f"Twitch rejected a fresh token for {path}")

    async def resolve_user_id(self, name: str) -> Optional[str]:
        payload = await self._get("/users", {"login": name})
        return user_id_from_users_payload(payload)

    async def get_live_status(self, user_id: str) -> StreamStatus:
        payload = await self._get("/streams", {"user_id": user_id})
        return status_from_streams_payload(payload)
