import json

import httpx
import pytest

from twitchup.notify.discord_sink import DiscordWebhookSink, LiveNotification, destination_label, render_thumbnail

GOOD = "https://discord.com/api/webhooks/111/token-a"
BAD = "https://discord.com/api/webhooks/222/token-b"
DOWN = "https://discord.com/api/webhooks/333/token-c"


def _notification():
    return LiveNotification(
        display_name="Alice",
        url="https://twitch.tv/alice",
        title="Speedruns",
        category="Celeste",
        viewer_count=42,
        thumbnail_url=render_thumbnail("https://thumb/{width}x{height}.jpg"),
        started_at="2024-01-01T00:00:00Z",
    )


def test_destination_label_hides_token():
    assert destination_label(GOOD) == "webhook:111"
    assert "token" not in destination_label(GOOD)


@pytest.mark.asyncio
async def test_one_failing_destination_does_not_block_others():
    posted = []

    def handler(request: httpx.Request) -> httpx.Response:
        posted.append(str(request.url))
        if str(request.url) == BAD:
            return httpx.Response(403, json={"message": "Missing Access"})
        if str(request.url) == DOWN:
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(204)

    sink = DiscordWebhookSink([BAD, DOWN, GOOD], http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    results = await sink.deliver(_notification())

    assert posted == [BAD, DOWN, GOOD]
    assert [(r.destination, r.ok) for r in results] == [
        ("webhook:222", False),
        ("webhook:333", False),
        ("webhook:111", True),
    ]
    assert results[0].error.destination == "webhook:222"
    assert "token-b" not in results[0].error.message
    assert "token-c" not in results[1].error.message


@pytest.mark.asyncio
async def test_message_body():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(204)

    sink = DiscordWebhookSink([GOOD], http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    await sink.deliver(_notification())

    body = bodies[0]
    assert "https://twitch.tv/alice" in body["content"]
    embed = body["embeds"][0]
    assert embed["description"] == "Speedruns"
    assert embed["image"]["url"] == "https://thumb/640x360.jpg"
    assert embed["timestamp"] == "2024-01-01T00:00:00Z"


@pytest.mark.asyncio
async def test_no_destinations_is_not_an_error():
    sink = DiscordWebhookSink([], http=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))))
    assert await sink.deliver(_notification()) == []
