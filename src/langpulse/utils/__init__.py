from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from dateutil import parser as dateutil_parser
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from langpulse.config import Settings
from langpulse.metrics import count_rate_limit


class RateLimitedError(httpx.HTTPStatusError):
    """GitHub answered 429, or 403 with an exhausted rate limit."""


def get_logger() -> structlog.stdlib.BoundLogger:
    if not structlog.is_configured():
        structlog.configure(
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.JSONRenderer(),
            ]
        )
    return structlog.get_logger()


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(val: Any) -> Optional[datetime]:
    """ISO-8601 text to an aware datetime; ``None`` when absent or unparsable."""
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        dt = val
    else:
        try:
            dt = dateutil_parser.isoparse(str(val))
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def github_auth_headers(settings: Settings) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    return headers


def http_client(
    settings: Settings, transport: Optional[httpx.BaseTransport] = None
) -> httpx.Client:
    return httpx.Client(
        base_url=settings.api_base,
        timeout=30.0,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )


def http_async_client(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.api_base,
        timeout=30.0,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )


def _is_rate_limited(resp: httpx.Response) -> bool:
    if resp.status_code == 429:
        return True
    return resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0"


def _check_rate_limit(resp: httpx.Response) -> httpx.Response:
    if _is_rate_limited(resp):
        count_rate_limit(resp.status_code)
        get_logger().warning(
            "rate_limited",
            url=str(resp.request.url),
            status=resp.status_code,
            reset=resp.headers.get("X-RateLimit-Reset"),
        )
        raise RateLimitedError(
            f"GitHub rate limit hit for {resp.request.url}",
            request=resp.request,
            response=resp,
        )
    return resp


@retry(
    reraise=True,
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.TransportError, RateLimitedError)),
)
def http_get(
    client: httpx.Client,
    url: str,
    headers: dict[str, str],
    params: Optional[dict[str, Any]] = None,
) -> httpx.Response:
    return _check_rate_limit(client.get(url, headers=headers, params=params))


@retry(
    reraise=True,
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.TransportError, RateLimitedError)),
)
async def http_get_async(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str],
    params: Optional[dict[str, Any]] = None,
) -> httpx.Response:
    resp = await client.get(url, headers=headers, params=params)
    return _check_rate_limit(resp)
