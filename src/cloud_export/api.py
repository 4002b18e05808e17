"""Async HTTP clients for the exported services."""

import math
import time
from typing import Any, Self

import httpx
from loguru import logger

from cloud_export.errors import ApiError, AuthorizationError
from cloud_export.pagination import Cursor, PageFetch

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Refresh Google access tokens slightly before they actually expire.
_EXPIRY_MARGIN_MS = 60_000


def _drop_none(params: dict[str, Any] | None) -> dict[str, Any] | None:
    if params is None:
        return None
    return {k: v for k, v in params.items() if v is not None}


class ApiClient:
    """Encapsulated JSON/text API access over a shared httpx session.

    No timeouts are set: a hung request hangs the step that issued it.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        name: str = "api",
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.sess = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            auth=auth,
            transport=transport,
            timeout=None,
            follow_redirects=True,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.sess.aclose()

    async def _auth_headers(self) -> dict[str, str]:
        """Per-request auth headers; static credentials live on the session."""
        return {}

    async def _get(self, url: str, params: dict[str, Any] | None) -> httpx.Response:
        logger.debug("Making request: {} {!r} {}", self.name, url, repr(params)[:64])
        r = await self.sess.get(url, params=_drop_none(params), headers=await self._auth_headers())
        r.raise_for_status()
        return r

    def _check(self, url: str, body: Any) -> Any:
        """Validate a decoded JSON body; providers override this."""
        return body

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET url and return the decoded JSON body."""
        r = await self._get(url, params)
        return self._check(url, r.json())

    async def get_text(self, url: str, params: dict[str, Any] | None = None) -> str:
        """GET url and return the body as text."""
        r = await self._get(url, params)
        return r.text


class CloudflareApi(ApiClient):
    """Cloudflare v4 API, authenticated with an API token."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = CLOUDFLARE_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url,
            name="cloudflare",
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )

    def _check(self, url: str, body: Any) -> Any:
        if isinstance(body, dict) and body.get("success") is False:
            msg = f"API call failed: {url!r} -> {body.get('errors')!r}"
            raise ApiError(msg)
        return body

    def page_fetcher(self, path: str, params: dict[str, Any] | None = None) -> PageFetch[Any]:
        """Adapt a page-numbered listing to the cursor walker.

        The cursor is the next page number, derived from result_info. Some
        endpoints omit total_pages; the page count then comes from total_count,
        or failing that, a full page means another one may follow. A listing
        without result_info is treated as a single page.
        """

        async def fetch(cursor: Cursor | None, page_size: int | None) -> tuple[list[Any], Cursor | None]:
            page = cursor or 1
            body = await self.get_json(path, params={**(params or {}), "page": page, "per_page": page_size})
            result = body.get("result") or []
            info = body.get("result_info")
            if not info:
                return result, None
            current = info.get("page", page)
            per_page = info.get("per_page", page_size)
            if "total_pages" in info:
                has_more = current < info["total_pages"]
            elif "total_count" in info and per_page:
                has_more = current < math.ceil(info["total_count"] / per_page)
            else:
                has_more = bool(per_page) and len(result) >= per_page
            return result, current + 1 if has_more else None

        return fetch

    async def get_result(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a non-paginated endpoint and return its "result" member."""
        body = await self.get_json(path, params)
        return body.get("result")


class GitHubApi(ApiClient):
    """GitHub REST API with basic auth (username + personal access token)."""

    def __init__(
        self,
        api_url: str,
        username: str,
        access_token: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_url,
            name="github",
            headers={"Accept": "application/vnd.github+json"},
            auth=(username, access_token),
            transport=transport,
        )


def with_expiry_date(token: dict[str, Any], *, now: float | None = None) -> dict[str, Any]:
    """Add an absolute expiry_date (epoch milliseconds) derived from expires_in."""
    token = dict(token)
    if "expires_in" in token:
        now = time.time() if now is None else now
        token["expiry_date"] = int((now + float(token["expires_in"])) * 1000)
    return token


async def request_google_token(
    form: dict[str, str],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """POST to Google's token endpoint and return the token response."""
    async with httpx.AsyncClient(transport=transport, timeout=None) as sess:
        r = await sess.post(GOOGLE_TOKEN_URL, data=form)
    if r.is_error:
        msg = f"Token request rejected ({form.get('grant_type')}): HTTP {r.status_code} {r.text[:200]}"
        raise AuthorizationError(msg)
    return with_expiry_date(r.json())


class GoogleApi(ApiClient):
    """Google APIs authorized with an OAuth2 token pair.

    An expired access token is refreshed in memory when a refresh token is
    available. The refreshed pair is not written back to the token cache.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token: dict[str, Any],
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name="google", transport=transport)
        self._client_id = client_id
        self._client_secret = client_secret
        self._transport = transport
        self.token = dict(token)

    def _is_expired(self) -> bool:
        expiry_date = self.token.get("expiry_date")
        if expiry_date is None or not self.token.get("refresh_token"):
            return False
        return time.time() * 1000 >= float(expiry_date) - _EXPIRY_MARGIN_MS

    async def refresh(self) -> None:
        logger.debug("Refreshing Google access token")
        refreshed = await request_google_token(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": self.token["refresh_token"],
                "grant_type": "refresh_token",
            },
            transport=self._transport,
        )
        self.token = {**self.token, **refreshed}

    async def access_token(self) -> str:
        if self._is_expired():
            await self.refresh()
        return str(self.token["access_token"])

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self.access_token()}"}

    def page_fetcher(
        self,
        url: str,
        *,
        items_field: str,
        page_size_param: str = "maxResults",
        params: dict[str, Any] | None = None,
    ) -> PageFetch[Any]:
        """Adapt a Google listing (items + nextPageToken) to the cursor walker."""

        async def fetch(cursor: Cursor | None, page_size: int | None) -> tuple[list[Any], Cursor | None]:
            body = await self.get_json(
                url,
                params={**(params or {}), page_size_param: page_size, "pageToken": cursor},
            )
            return body.get(items_field) or [], body.get("nextPageToken")

        return fetch
