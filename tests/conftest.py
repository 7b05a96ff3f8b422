"""Shared fixtures: a temp-file store plus in-memory Twitch and Discord fakes."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from twitchup.errors import TransientFetchError
from twitchup.storage.watch_store import WatchedEntity, WatchStore
from twitchup.twitch.api_client import StreamSnapshot, TwitchUser, extract_login
from twitchup.twitch.poller import Poller


def make_snapshot(started_at: Optional[str] = "2024-01-01T00:00:00Z", title: str = "Speedruns") -> StreamSnapshot:
    return StreamSnapshot(
        title=title,
        game_name="Celeste",
        viewer_count=42,
        thumbnail_url="https://static-cdn.jtvnw.net/previews-ttv/live_user_alice-{width}x{height}.jpg",
        started_at=started_at,
    )


def make_entity(entity_id: str = "123", login: str = "alice") -> WatchedEntity:
    return WatchedEntity(id=entity_id, login=login, display_name=login.capitalize())


class FakeTwitchClient:
    """Serves scripted snapshots; a value of TransientFetchError raises it."""

    def __init__(self):
        self.users: Dict[str, TwitchUser] = {}
        self.streams: Dict[str, object] = {}
        self.fetched: List[str] = []

    def add_user(self, user_id: str, login: str):
        self.users[login] = TwitchUser(id=user_id, login=login, display_name=login.capitalize(), profile_image_url=f"https://img/{login}.png")

    async def resolve_user(self, handle: str) -> Optional[TwitchUser]:
        login = extract_login(handle)
        if self.streams.get(f"resolve:{login}") is TransientFetchError:
            raise TransientFetchError("resolve failed")
        return self.users.get(login)

    async def fetch_stream(self, user_id: str) -> Optional[StreamSnapshot]:
        self.fetched.append(user_id)
        value = self.streams.get(user_id)
        if value is TransientFetchError:
            raise TransientFetchError(f"fetch failed for {user_id}")
        return value

    async def get_streamer_info(self, handle: str):
        user = await self.resolve_user(handle)
        if user is None:
            return None
        return user, await self.fetch_stream(user.id)


class FakeSink:
    def __init__(self):
        self.delivered = []

    async def deliver(self, notification):
        self.delivered.append(notification)
        return []


@pytest.fixture()
def store(tmp_path) -> WatchStore:
    return WatchStore(tmp_path / "streamers.json")


@pytest.fixture()
def twitch() -> FakeTwitchClient:
    return FakeTwitchClient()


@pytest.fixture()
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture()
def poller(twitch, store, sink) -> Poller:
    return Poller(twitch, store, sink, interval_min=5)
