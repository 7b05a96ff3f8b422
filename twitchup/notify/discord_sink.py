import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from twitchup.errors import SinkDeliveryError
from twitchup.metrics.registry import sink_delivery_failures_total

log = logging.getLogger(__name__)

TWITCH_PURPLE = 0x6441A5
THUMBNAIL_SIZE = (640, 360)


@dataclass
class LiveNotification:
    display_name: str
    url: str
    title: str
    category: str
    viewer_count: int
    thumbnail_url: str
    started_at: Optional[str] = None
    profile_image_url: str = ""


@dataclass
class DeliveryResult:
    destination: str
    ok: bool
    error: Optional[SinkDeliveryError] = None


def render_thumbnail(template: str) -> str:
    width, height = THUMBNAIL_SIZE
    return (template or "").replace("{width}", str(width)).replace("{height}", str(height))


def destination_label(webhook_url: str) -> str:
    # /api/webhooks/<id>/<token>: never log the token
    parts = [p for p in urlparse(webhook_url).path.split("/") if p]
    if len(parts) >= 3 and parts[-3] == "webhooks":
        return f"webhook:{parts[-2]}"
    return urlparse(webhook_url).hostname or "webhook"


def build_message(n: LiveNotification) -> dict:
    embed = {
        "title": f"{n.display_name} is now live on Twitch!",
        "url": n.url,
        "description": n.title or "No stream title",
        "color": TWITCH_PURPLE,
        "fields": [
            {"name": "Game", "value": n.category or "Unknown", "inline": True},
            {"name": "Viewers", "value": str(n.viewer_count), "inline": True},
        ],
        "footer": {"text": "Stream started"},
    }
    if n.profile_image_url:
        embed["thumbnail"] = {"url": n.profile_image_url}
    if n.thumbnail_url:
        embed["image"] = {"url": n.thumbnail_url}
    if n.started_at:
        embed["timestamp"] = n.started_at
    return {"content": f"\U0001F534 **{n.display_name}** is now live! {n.url}", "embeds": [embed]}


class DiscordWebhookSink:
    """Posts live notifications to every configured Discord webhook."""

    def __init__(self, webhook_urls: Sequence[str], http: Optional[httpx.AsyncClient] = None, timeout: float = 10):
        self.webhook_urls = list(webhook_urls)
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        await self._http.aclose()

    async def deliver(self, notification: LiveNotification) -> List[DeliveryResult]:
        if not self.webhook_urls:
            log.warning("No notification destinations configured; dropping notification for %s", notification.display_name)
            return []
        body = build_message(notification)
        results: List[DeliveryResult] = []
        for url in self.webhook_urls:
            label = destination_label(url)
            reason = None
            try:
                r = await self._http.post(url, json=body)
                if r.is_error:
                    reason = f"HTTP {r.status_code}"
            except httpx.HTTPError as e:
                # httpx messages embed the URL, which carries the webhook token
                reason = type(e).__name__
            if reason:
                err = SinkDeliveryError(f"Delivery to {label} failed: {reason}", destination=label)
                log.warning("%s", err.message)
                sink_delivery_failures_total.labels(destination=label).inc()
                results.append(DeliveryResult(destination=label, ok=False, error=err))
                continue
            log.info("Sent live notification for %s to %s", notification.display_name, label)
            results.append(DeliveryResult(destination=label, ok=True))
        return results
