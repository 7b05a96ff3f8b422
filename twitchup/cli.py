import asyncio
import argparse
import logging
from twitchup.orchestration.service import main as service_main

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

def _base_url() -> str:
    from twitchup.config.settings import settings
    return f"http://127.0.0.1:{settings.api_port}"


def _print_error(resp):
    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = resp.text
    print(f"Error ({resp.status_code}): {detail}")


async def _oneshot(handle: str):
    from twitchup.twitch.api_client import TwitchClient
    from twitchup.config.settings import settings
    from twitchup.errors import TransientFetchError

    if not settings.twitch_client_id or not settings.twitch_client_secret:
        print("Twitch credentials not configured")
        return
    client = TwitchClient(settings.twitch_client_id, settings.twitch_client_secret, timeout=settings.http_timeout_sec)
    try:
        info = await client.get_streamer_info(handle)
    except TransientFetchError as e:
        print(f"Twitch check failed: {e}")
        return
    finally:
        await client.aclose()
    if info is None:
        print(f"No Twitch channel found for {handle}")
        return
    user, stream = info
    if stream is None:
        print(f"{user.display_name} ({user.id}) is offline")
    else:
        print(f"{user.display_name} ({user.id}) is live: {stream.title} [{stream.game_name}] viewers={stream.viewer_count} since {stream.started_at}")


async def _list():
    import httpx
    async with httpx.AsyncClient(timeout=5) as client:
        data = (await client.get(f"{_base_url()}/watches")).json()
        settings_resp = await client.get(f"{_base_url()}/settings")
        print(f"Check interval: {settings_resp.json().get('check_interval_min')} min")
        if not data:
            print("No streamers are currently being monitored.")
        for w in data:
            print(f"Channel={w['login']} Id={w['id']} Live={w['is_live']} Added={w['added_at']}")


async def _add(handle: str):
    import httpx
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.post(f"{_base_url()}/watches", json={"handle": handle})
        if resp.is_error:
            _print_error(resp)
            return
        data = resp.json()
        print(f"Added {data['watch']['display_name']} (currently live: {data['is_live']})")


async def _remove(handle: str):
    import httpx
    from twitchup.twitch.api_client import extract_login
    login = extract_login(handle) or handle
    async with httpx.AsyncClient(timeout=5) as client:
        resp = await client.delete(f"{_base_url()}/watches/{login}")
        if resp.is_error:
            _print_error(resp)
            return
        print(f"Removed {resp.json()['watch']['display_name']} from monitoring.")


async def _status():
    import httpx
    async with httpx.AsyncClient(timeout=120) as client:
        resp = await client.post(f"{_base_url()}/watches/status")
        if resp.is_error:
            _print_error(resp)
            return
        data = resp.json()
        for f in data.get("failed", []):
            print(f"Could not check {f['login']}: {f['message']}")
        if not data["live"]:
            if data.get("failed"):
                print("None of the channels that could be checked are currently live.")
            else:
                print("None of the monitored streamers are currently live.")
            return
        print(f"{len(data['live'])} out of {data['watched']} monitored streamer(s) are currently live.")
        for w in data["live"]:
            stream = w.get("current_stream") or {}
            print(f"{w['display_name']} {w['url']} Playing={stream.get('game_name')} Viewers={stream.get('viewer_count')}")


def main():
    parser = argparse.ArgumentParser(description="Twitch live notifier")
    parser.add_argument("command", nargs="?", default="run", choices=["run", "check", "list", "add", "remove", "status"], help="run service or talk to a running one")
    parser.add_argument("arg", nargs="?", help="channel URL or handle for check/add/remove")
    args = parser.parse_args()

    if args.command in ("check", "add", "remove") and not args.arg:
        print("Missing channel URL or handle")
    elif args.command == "check":
        asyncio.run(_oneshot(args.arg))
    elif args.command == "list":
        asyncio.run(_list())
    elif args.command == "add":
        asyncio.run(_add(args.arg))
    elif args.command == "remove":
        asyncio.run(_remove(args.arg))
    elif args.command == "status":
        asyncio.run(_status())
    else:
        # Start the long-running service (poller + API server)
        asyncio.run(service_main())
if __name__ == "__main__":
    main()
