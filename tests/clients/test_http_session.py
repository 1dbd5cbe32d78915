import asyncio

import httpx

from snorkel_insight.clients.http_session import RETRYABLE_STATUS, configure_client, is_retryable


def test_configure_client_sets_headers_and_timeout():
    client = configure_client(headers={"X-Test": "1"}, timeout_seconds=5, retries=1)

    assert client.headers["X-Test"] == "1"
    assert client.timeout.read == 5
    assert client.timeout.connect == 5
    asyncio.run(client.aclose())


def test_configure_client_uses_injected_transport():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = configure_client(
        headers={"User-Agent": "unit"},
        timeout_seconds=1,
        retries=0,
        transport=httpx.MockTransport(handler),
    )

    async def go():
        async with client:
            return await client.get("https://example.com/ping")

    resp = asyncio.run(go())
    assert resp.json() == {"ok": True}
    assert seen[0].headers["User-Agent"] == "unit"


def test_is_retryable_covers_throttling_and_gateway_errors():
    assert all(is_retryable(code) for code in RETRYABLE_STATUS)
    assert is_retryable(429)
    assert not is_retryable(404)
    assert not is_retryable(200)
    assert is_retryable(418, status_forcelist=(418,))
