import logging
from dataclasses import dataclass
from typing import List, Optional

from twitchup.errors import NotFound
from twitchup.storage.watch_store import WatchedEntity, WatchStore
from twitchup.twitch.api_client import TwitchClient, extract_login
from twitchup.twitch.poller import Poller, SweepResult

log = logging.getLogger(__name__)


@dataclass
class AddResult:
    added: bool
    entity: WatchedEntity
    is_live: bool = False


@dataclass
class RemoveResult:
    removed: bool
    entity: Optional[WatchedEntity] = None


class WatchService:
    """Operations behind the user-facing commands.

    Store access shares the poller's lock, so a command never interleaves
    with a sweep's read-decide-write of the same channel.
    """

    def __init__(self, client: TwitchClient, store: WatchStore, poller: Poller):
        self.client = client
        self.store = store
        self.poller = poller

    async def add_watch(self, handle: str) -> AddResult:
        # TransientFetchError propagates: a direct command reports it
        info = await self.client.get_streamer_info(handle)
        if info is None:
            raise NotFound(f"Could not find a valid Twitch streamer for {handle!r}.")
        user, stream = info
        entity = WatchedEntity(
            id=user.id,
            login=user.login,
            display_name=user.display_name,
            profile_image_url=user.profile_image_url,
        )
        async with self.poller.store_lock:
            added = self.store.add(entity)
            stored = self.store.get(user.id)
        if added:
            log.info("Now monitoring %s (%s)", user.display_name, user.id)
        return AddResult(added=added, entity=stored, is_live=stream is not None)

    async def remove_watch(self, handle: str) -> RemoveResult:
        login = extract_login(handle) or handle.strip().lower()
        async with self.poller.store_lock:
            entity = self.store.find_by_login(login)
            if entity is None:
                return RemoveResult(removed=False)
            removed = self.store.remove(entity.id)
        if removed:
            log.info("Stopped monitoring %s (%s)", entity.display_name, entity.id)
        return RemoveResult(removed=removed, entity=entity)

    async def list_watches(self) -> List[WatchedEntity]:
        async with self.poller.store_lock:
            return self.store.list()

    async def force_sweep_and_report(self) -> SweepResult:
        # unlike the timer loop, the caller sees which channels could not be checked
        return await self.poller.sweep()
