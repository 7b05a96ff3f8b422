import logging
import asyncio
import sys
from pathlib import Path
from prometheus_client import start_http_server
from twitchup.twitch.api_client import TwitchClient
from twitchup.twitch.poller import Poller
from twitchup.notify.discord_sink import DiscordWebhookSink
from twitchup.storage.watch_store import WatchStore
from twitchup.orchestration.watches import WatchService
from twitchup.config.settings import settings
from twitchup.api.server import app, set_service
import uvicorn

log = logging.getLogger(__name__)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

def configure_logging():
    if settings.log_format == 'json':
        import json
        class JsonFormatter(logging.Formatter):
            def format(self, record):
                base = {
                    'time': self.formatTime(record),
                    'level': record.levelname,
                    'logger': record.name,
                    'msg': record.getMessage(),
                }
                if record.exc_info:
                    base['exc'] = self.formatException(record.exc_info)
                return json.dumps(base, ensure_ascii=False)
        root = logging.getLogger()
        for h in list(root.handlers):
            root.removeHandler(h)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)

def build_service() -> WatchService:
    if not settings.twitch_client_id or not settings.twitch_client_secret:
        raise SystemExit("Missing TWITCH_CLIENT_ID / TWITCH_CLIENT_SECRET")
    client = TwitchClient(settings.twitch_client_id, settings.twitch_client_secret, timeout=settings.http_timeout_sec)
    store = WatchStore(Path(settings.storage_file))
    sink = DiscordWebhookSink(settings.discord_webhook_urls, timeout=settings.http_timeout_sec)
    poller = Poller(client, store, sink)
    return WatchService(client, store, poller)

async def main():
    configure_logging()
    if settings.metrics_port:
        start_http_server(settings.metrics_port)
    service = build_service()
    set_service(service)
    if not settings.discord_webhook_urls:
        log.warning("DISCORD_WEBHOOK_URLS is empty; live notifications will only be logged")
    # Run poller and API server concurrently
    async def run_api():
        config = uvicorn.Config(app, host="0.0.0.0", port=settings.api_port, log_level="info", lifespan="on")
        server = uvicorn.Server(config)
        await server.serve()
    try:
        await asyncio.gather(service.poller.run(), run_api())
    finally:
        await service.client.aclose()
        await service.poller.sink.aclose()

if __name__ == "__main__":
    asyncio.run(main())
