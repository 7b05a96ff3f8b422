import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .api_client import StreamSnapshot, TwitchClient
from .live_detector import LiveDecision, decide
from twitchup.config.settings import settings
from twitchup.errors import TransientFetchError
from twitchup.notify.discord_sink import DiscordWebhookSink, LiveNotification, render_thumbnail
from twitchup.storage.watch_store import StreamSession, WatchedEntity, WatchStore, utc_now_iso
from twitchup.metrics.registry import (
    sweep_duration_seconds, sweep_errors_total, sweeps_skipped_total, last_sweep_timestamp,
    watched_channels, live_channels, notifications_sent_total, notifications_suppressed_total,
)

log = logging.getLogger(__name__)


@dataclass
class SweepFailure:
    entity_id: str
    login: str
    message: str


@dataclass
class SweepResult:
    live: List[WatchedEntity] = field(default_factory=list)
    failed: List[SweepFailure] = field(default_factory=list)


def channel_url(login: str) -> str:
    return f"https://twitch.tv/{login}"


def to_session(snapshot: Optional[StreamSnapshot]) -> Optional[StreamSession]:
    if snapshot is None:
        return None
    return StreamSession(
        title=snapshot.title,
        game_name=snapshot.game_name,
        viewer_count=snapshot.viewer_count,
        thumbnail_url=snapshot.thumbnail_url,
        started_at=snapshot.started_at,
    )


def to_notification(entity: WatchedEntity, snapshot: StreamSnapshot) -> LiveNotification:
    return LiveNotification(
        display_name=entity.display_name,
        url=channel_url(entity.login),
        title=snapshot.title,
        category=snapshot.game_name,
        viewer_count=snapshot.viewer_count,
        thumbnail_url=render_thumbnail(snapshot.thumbnail_url),
        started_at=snapshot.started_at,
        profile_image_url=entity.profile_image_url,
    )


class Poller:
    def __init__(self, client: TwitchClient, store: WatchStore, sink: DiscordWebhookSink,
                 store_lock: Optional[asyncio.Lock] = None, interval_min: Optional[int] = None):
        self.client = client
        self.store = store
        self.sink = sink
        # every store read/write, from sweeps and from commands, goes through this
        self.store_lock = store_lock or asyncio.Lock()
        self._interval_min = interval_min
        self._sweep_lock = asyncio.Lock()
        self.last_sweep_at: Optional[str] = None

    def get_interval(self) -> int:
        return self._interval_min if self._interval_min is not None else settings.check_interval_min

    @property
    def sweep_in_progress(self) -> bool:
        return self._sweep_lock.locked()

    async def run(self):
        log.info("Starting periodic check every %s minutes", self.get_interval())
        while True:
            if self.sweep_in_progress:
                sweeps_skipped_total.inc()
                log.warning("Previous sweep still running, skipping this tick")
            else:
                try:
                    await self.sweep()
                except Exception as e:
                    log.exception("Sweep failed: %s", e)
            await asyncio.sleep(self.get_interval() * 60)

    async def sweep(self) -> SweepResult:
        """Check every watched channel once.

        Returns the channels that are live afterwards and the ones whose check
        failed this time. The timer loop only logs failures; a caller that asked
        for the sweep gets them back.
        """
        async with self._sweep_lock:
            start = asyncio.get_running_loop().time()
            async with self.store_lock:
                logins = {e.id: e.login for e in self.store.list()}
            failed: List[SweepFailure] = []
            if logins:
                log.info("Checking status for %d channels", len(logins))
            for entity_id, login in logins.items():
                try:
                    await self._check_entity(entity_id)
                except TransientFetchError as e:
                    sweep_errors_total.inc()
                    log.warning("Fetch failed for %s, leaving state unchanged: %s", entity_id, e)
                    failed.append(SweepFailure(entity_id, login, str(e)))
                except Exception as e:
                    sweep_errors_total.inc()
                    log.exception("Sweep error channel=%s error=%s", entity_id, e)
                    failed.append(SweepFailure(entity_id, login, f"{type(e).__name__}: {e}"))
            async with self.store_lock:
                entities = self.store.list()
            live = [e for e in entities if e.is_live]
            watched_channels.set(len(entities))
            live_channels.set(len(live))
            sweep_duration_seconds.observe(asyncio.get_running_loop().time() - start)
            last_sweep_timestamp.set_to_current_time()
            self.last_sweep_at = utc_now_iso()
            return SweepResult(live=live, failed=failed)

    async def _check_entity(self, entity_id: str):
        snapshot = await self.client.fetch_stream(entity_id)
        async with self.store_lock:
            entity = self.store.get(entity_id)
            if entity is None:
                # removed while we were fetching
                return
            decision = decide(entity.is_live, snapshot, self.store.last_notified(entity_id))
            notification = to_notification(entity, snapshot) if decision is LiveDecision.NOTIFY else None

        notified_at = None
        if notification is not None:
            await self.sink.deliver(notification)
            notifications_sent_total.inc()
            notified_at = snapshot.started_at or utc_now_iso()
        elif decision is LiveDecision.SUPPRESS:
            notifications_suppressed_total.inc()
            log.info("Already notified for %s session started %s", entity_id, snapshot.started_at)

        async with self.store_lock:
            self.store.record(entity_id, snapshot is not None, to_session(snapshot), notified_at)
