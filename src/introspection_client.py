from __future__ import annotations

import asyncio
import base64
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import aiohttp
from graphql import get_introspection_query

from config import IntrospectionConfig, load_introspection_config
from errors import FetchFailure, GraphQLError, IntrospectionError, TransportError

NO_AUTH_IDENTITY = "no-auth"
logger = logging.getLogger("graphql-introspection")


def _run_coroutine_sync(coro):
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    result: dict[str, object] = {}

    def runner() -> None:
        try:
            result["value"] = asyncio.run(coro)
        except Exception as exc:
            result["error"] = exc

    thread = threading.Thread(target=runner, name="introspection-client")
    thread.start()
    thread.join()
    if "error" in result:
        raise result["error"]
    return result.get("value")


@dataclass(frozen=True)
class AuthOptions:
    username: str | None = None
    password: str | None = None
    bearer_token: str | None = None

    @property
    def identity(self) -> str:
        # Password is not part of the identity.
        return self.username or self.bearer_token or NO_AUTH_IDENTITY

    def authorization(self) -> str | None:
        if self.bearer_token:
            return f"Bearer {self.bearer_token}"
        if self.username and self.password:
            credentials = f"{self.username}:{self.password}".encode("utf-8")
            return f"Basic {base64.b64encode(credentials).decode('ascii')}"
        return None

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        authorization = self.authorization()
        if authorization:
            headers["Authorization"] = authorization
        return headers


def cache_key(endpoint: str, auth: AuthOptions) -> str:
    return f"{endpoint}:{auth.identity}"


@dataclass(frozen=True)
class CacheEntry:
    data: dict
    timestamp: float


class IntrospectionCache:
    """In-memory introspection documents with a fixed time-to-live.

    Entries are never evicted; an expired entry is simply ignored on read and
    replaced by the next successful fetch for the same key.
    """

    def __init__(self, duration_s: float, *, clock: Callable[[], float] = time.monotonic):
        self.duration_s = duration_s
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> dict | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp < self.duration_s:
            return entry.data
        return None

    def set(self, key: str, data: dict) -> None:
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())


class IntrospectionClient:
    def __init__(
        self,
        *,
        config: IntrospectionConfig | None = None,
        cache: IntrospectionCache | None = None,
    ):
        self._config = config or load_introspection_config()
        self.cache = cache if cache is not None else IntrospectionCache(self._config.cache_duration_s)
        self._query = get_introspection_query(descriptions=True)

    @property
    def default_endpoint(self) -> str:
        return self._config.default_endpoint

    def resolve_endpoint(self, endpoint: str | None) -> str:
        return self._config.resolve_endpoint(endpoint)

    def fetch(self, endpoint: str, auth: AuthOptions | None = None) -> dict:
        return _run_coroutine_sync(self.fetch_async(endpoint, auth))

    async def fetch_async(self, endpoint: str, auth: AuthOptions | None = None) -> dict:
        auth = auth or AuthOptions()
        logger.info("Fetching introspection from %s", endpoint)
        key = cache_key(endpoint, auth)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Using cached introspection for %s", endpoint)
            return cached

        payload = {
            "query": self._query,
            "operationName": "IntrospectionQuery",
            "variables": {},
        }
        try:
            result = await self._post_json(endpoint, payload, auth.headers())
        except IntrospectionError:
            raise
        except Exception as exc:
            raise FetchFailure(str(exc) or "Unknown error") from exc

        if result.get("errors"):
            raise GraphQLError(result["errors"])
        data = result.get("data")
        if not data:
            raise FetchFailure("Introspection response missing 'data'")

        self.cache.set(key, data)
        return data

    async def _post_json(self, endpoint: str, payload: dict, headers: dict[str, str]) -> dict:
        session_kwargs = {}
        if self._config.timeout_s:
            session_kwargs["timeout"] = aiohttp.ClientTimeout(total=self._config.timeout_s)
        async with aiohttp.ClientSession(**session_kwargs) as session:
            async with session.post(endpoint, json=payload, headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    raise TransportError(resp.status, resp.reason)
                text = await resp.text()
                if not text:
                    return {}
                try:
                    parsed = json.loads(text)
                except json.JSONDecodeError as exc:
                    raise FetchFailure("Introspection response was not valid JSON") from exc
                if not isinstance(parsed, dict):
                    raise FetchFailure("Introspection response was not a JSON object")
                return parsed
