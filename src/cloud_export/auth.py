"""Authorizers: turn step credentials into ready-to-use API clients.

Google needs a three-legged OAuth2 flow. On first use the operator opens an
authorization URL in a browser, Google redirects to a short-lived listener
on localhost, and the resulting token pair is cached on disk. Later runs
trust the cache without contacting Google.
"""

import asyncio
import json
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx
from loguru import logger

from cloud_export.api import CloudflareApi, GoogleApi, request_google_token
from cloud_export.errors import AuthorizationError
from cloud_export.steps import CloudflareCredentials, GoogleCredentials

if TYPE_CHECKING:
    from loguru import Logger

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"

CALLBACK_SUCCESS = "Success. You can now close this tab."
CALLBACK_FAILURE = "Failure. Try again."


class TokenCache:
    """A token pair stored as JSON, exactly as the token endpoint returned it."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> dict[str, Any] | None:
        """Return the cached token, or None if it is missing or unreadable."""
        try:
            token = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("No usable token cache at {!r}: {}", str(self.path), e)
            return None
        if not isinstance(token, dict):
            logger.debug("Ignoring token cache {!r}: not a JSON object", str(self.path))
            return None
        return token

    def save(self, token: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(token), encoding="utf-8")
        logger.debug("Saved token cache to {!r}", str(self.path))


def parse_callback_code(request_line: str) -> str | None:
    """Extract the authorization code from an HTTP request line.

    >>> parse_callback_code("GET /?code=4%2Fabc&scope=x HTTP/1.1")
    '4/abc'
    """
    parts = request_line.split()
    if len(parts) < 2:
        return None
    codes = parse_qs(urlsplit(parts[1]).query).get("code")
    return codes[0] if codes else None


class OAuthCallbackListener:
    """Local HTTP listener that waits for exactly one OAuth redirect.

    Use as an async context manager. The listener is closed on exit, together
    with every connection it accepted, so an idle browser connection never
    keeps the process alive.
    """

    def __init__(self, port: int, *, host: str = "localhost") -> None:
        self.host = host
        self.port = port
        self._server: asyncio.Server | None = None
        self._code: asyncio.Future[str] | None = None
        self._writers: set[asyncio.StreamWriter] = set()

    async def __aenter__(self) -> "OAuthCallbackListener":
        self._code = asyncio.get_running_loop().create_future()
        self._server = await asyncio.start_server(self._handle_connection, self.host, self.port)
        # Resolve port 0 to the port actually bound
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._server is not None:
            self._server.close()
            self._server = None
        for writer in list(self._writers):
            writer.close()
        self._writers.clear()

    async def wait_for_code(self) -> str:
        """Block until the redirect arrives; raise AuthorizationError if it has no code."""
        if self._code is None:
            msg = "listener is not running"
            raise RuntimeError(msg)
        return await self._code

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._writers.add(writer)
        try:
            request_line = (await reader.readline()).decode("latin-1")
            if not request_line or self._code is None or self._code.done():
                return
            # Skip the headers, we only care about the request line.
            while (await reader.readline()) not in (b"\r\n", b"\n", b""):
                pass

            code = parse_callback_code(request_line)
            body = (CALLBACK_SUCCESS if code else CALLBACK_FAILURE).encode("utf-8")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: text/plain; charset=utf-8\r\n"
                + f"Content-Length: {len(body)}\r\n".encode("ascii")
                + b"Connection: close\r\n\r\n"
                + body
            )
            await writer.drain()

            if self._code.done():
                return
            if code:
                self._code.set_result(code)
            else:
                self._code.set_exception(AuthorizationError("Invalid token received"))
        except ConnectionError as e:
            logger.debug("OAuth callback connection dropped: {}", e)
        finally:
            self._writers.discard(writer)
            writer.close()


class GoogleAuthorizer:
    """Produce a GoogleApi client, running the OAuth flow at most once.

    The client is memoized on the instance. Concurrent callers wait for the
    first authorization instead of starting their own.
    """

    def __init__(
        self,
        credentials: GoogleCredentials,
        token_cache_path: str | Path,
        callback_port: int,
        scopes: Iterable[str],
        *,
        flow_lock: asyncio.Lock | None = None,
        listen_host: str = "localhost",
        transport: httpx.AsyncBaseTransport | None = None,
        log: "Logger | None" = None,
    ) -> None:
        self.credentials = credentials
        self.cache = TokenCache(token_cache_path)
        self.callback_port = callback_port
        self.scopes = list(dict.fromkeys(scopes))
        self.listen_host = listen_host
        self.log = log or logger
        self._transport = transport
        # Shared between authorizers so only one browser flow runs at a time
        self._flow_lock = flow_lock or asyncio.Lock()
        self._client_lock = asyncio.Lock()
        self._client: GoogleApi | None = None

    @property
    def redirect_uri(self) -> str:
        return f"http://localhost:{self.callback_port}"

    def authorization_url(self) -> str:
        query = urlencode(
            {
                "access_type": "offline",
                "scope": " ".join(self.scopes),
                "response_type": "code",
                "client_id": self.credentials.client_id,
                "redirect_uri": self.redirect_uri,
            }
        )
        return f"{GOOGLE_AUTH_URL}?{query}"

    async def get_client(self) -> GoogleApi:
        async with self._client_lock:
            if self._client is None:
                token = self.cache.load()
                if token is None:
                    token = await self._authorize()
                else:
                    self.log.debug("Using cached token from {!r}", str(self.cache.path))
                self._client = GoogleApi(
                    self.credentials.client_id,
                    self.credentials.client_secret,
                    token,
                    transport=self._transport,
                )
            return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _authorize(self) -> dict[str, Any]:
        async with self._flow_lock:
            async with OAuthCallbackListener(self.callback_port, host=self.listen_host) as listener:
                self.log.warning("Log in to Google by visiting this url: {}", self.authorization_url())
                code = await listener.wait_for_code()

        token = await request_google_token(
            {
                "code": code,
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            transport=self._transport,
        )
        self.cache.save(token)
        self.log.success("Authorized with Google")
        return token


class CloudflareAuthorizer:
    """Static-token counterpart of GoogleAuthorizer."""

    def __init__(
        self,
        credentials: CloudflareCredentials,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self._transport = transport
        self._client: CloudflareApi | None = None

    def get_client(self) -> CloudflareApi:
        if self._client is None:
            self._client = CloudflareApi(self.credentials.token, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
