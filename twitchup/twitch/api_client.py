import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import urlparse

import httpx

from twitchup.errors import TransientFetchError

log = logging.getLogger(__name__)

BASE_URL = "https://api.twitch.tv/helix"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
TWITCH_HOSTS = ("twitch.tv", "www.twitch.tv", "m.twitch.tv")
# refresh this long before Twitch says the token expires
TOKEN_EXPIRY_MARGIN_SEC = 60


@dataclass
class TwitchUser:
    id: str
    login: str
    display_name: str
    profile_image_url: str = ""


@dataclass
class StreamSnapshot:
    title: str
    game_name: str
    viewer_count: int
    thumbnail_url: str
    started_at: Optional[str] = None


@dataclass
class AppAccessToken:
    access_token: str
    expires_at: float

    def is_valid(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.monotonic()) < self.expires_at


def extract_login(handle_or_url: str) -> Optional[str]:
    """Turn a channel URL, ``@handle`` or bare handle into a lower-case login."""
    raw = (handle_or_url or "").strip()
    if not raw:
        return None
    if "/" in raw or "." in raw:
        url = urlparse(raw if "://" in raw else f"https://{raw}")
        if url.hostname not in TWITCH_HOSTS:
            return None
        parts = [p for p in url.path.split("/") if p]
        return parts[0].lower() if parts else None
    return raw.lstrip("@").lower() or None


class TwitchClient:
    def __init__(self, client_id: str, client_secret: str, http: Optional[httpx.AsyncClient] = None, timeout: float = 10):
        self._client_id = client_id
        self._secret = client_secret
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._token: Optional[AppAccessToken] = None
        self._token_lock = asyncio.Lock()

    async def aclose(self):
        await self._http.aclose()

    async def access_token(self) -> str:
        async with self._token_lock:
            if self._token and self._token.is_valid():
                return self._token.access_token
            params = {
                "client_id": self._client_id,
                "client_secret": self._secret,
                "grant_type": "client_credentials",
            }
            try:
                r = await self._http.post(TOKEN_URL, params=params)
                r.raise_for_status()
            except httpx.HTTPError as e:
                raise TransientFetchError(f"Failed to get Twitch access token: {e}") from e
            try:
                data = r.json()
                expires_in = int(data.get("expires_in", 0))
                token = AppAccessToken(
                    access_token=data["access_token"],
                    expires_at=time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SEC, 0),
                )
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise TransientFetchError(f"Malformed Twitch token response: {e!r}") from e
            self._token = token
            log.info("Refreshed Twitch app access token (expires in %ss)", expires_in)
            return self._token.access_token

    async def _get(self, path: str, params: dict) -> list:
        token = await self.access_token()
        headers = {"Client-ID": self._client_id, "Authorization": f"Bearer {token}"}
        try:
            r = await self._http.get(f"{BASE_URL}{path}", params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransientFetchError(f"Twitch request {path} failed: {e}") from e
        if r.status_code == 401:
            self._token = None
        if r.is_error:
            raise TransientFetchError(f"Twitch request {path} failed with HTTP {r.status_code}")
        try:
            items = r.json().get("data", []) or []
        except (ValueError, AttributeError) as e:
            raise TransientFetchError(f"Twitch request {path} returned a malformed body: {e!r}") from e
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise TransientFetchError(f"Twitch request {path} returned unexpected data")
        return items

    async def resolve_user(self, handle: str) -> Optional[TwitchUser]:
        login = extract_login(handle)
        if not login:
            return None
        items = await self._get("/users", {"login": login})
        if not items:
            return None
        u = items[0]
        if not u.get("id"):
            raise TransientFetchError(f"Twitch user {login} came back without an id")
        return TwitchUser(
            id=str(u["id"]),
            login=u.get("login", login),
            display_name=u.get("display_name") or login,
            profile_image_url=u.get("profile_image_url", ""),
        )

    async def fetch_stream(self, user_id: str) -> Optional[StreamSnapshot]:
        items = await self._get("/streams", {"user_id": user_id})
        if not items:
            return None
        s = items[0]
        try:
            viewers = int(s.get("viewer_count") or 0)
        except (TypeError, ValueError) as e:
            raise TransientFetchError(f"Twitch stream for {user_id} has a bad viewer_count: {e!r}") from e
        return StreamSnapshot(
            title=s.get("title", ""),
            game_name=s.get("game_name", ""),
            viewer_count=viewers,
            thumbnail_url=s.get("thumbnail_url", ""),
            started_at=s.get("started_at") or None,
        )

    async def get_streamer_info(self, handle: str) -> Optional[Tuple[TwitchUser, Optional[StreamSnapshot]]]:
        user = await self.resolve_user(handle)
        if user is None:
            return None
        return user, await self.fetch_stream(user.id)
