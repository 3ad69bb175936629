from __future__ import annotations

import httpx

from app.config import Settings

USER_AGENT = "leave-manager-client/1.0"


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    transport = httpx.AsyncHTTPTransport(retries=settings.MAX_RETRIES)
    anon_key = settings.SUPABASE_ANON_KEY.get_secret_value()
    return httpx.AsyncClient(
        base_url=settings.SUPABASE_URL,
        transport=transport,
        timeout=httpx.Timeout(settings.REQUEST_TIMEOUT),
        headers={"User-Agent": USER_AGENT, "apikey": anon_key},
    )


async def close_http_client(client: httpx.AsyncClient) -> None:
    await client.aclose()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def error_message(resp: httpx.Response, fallback: str = "Request failed") -> str:
    """Pull the human-readable message out of an auth, PostgREST or function error body."""
    try:
        body = resp.json()
    except ValueError:
        text = resp.text.strip()
        return text[:300] or fallback
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback
