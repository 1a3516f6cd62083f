"""Minecraft account UUID <-> username resolution with a process-wide cache."""

from __future__ import annotations

import logging
import threading

import httpx

from plotty.errors import ProfileLookupError

MOJANG_API_ROOT = "https://api.mojang.com"


class IdentityCache:
    """UUID -> username mapping shared by every lookup in the process.

    The mapping is created lazily by :meth:`init` (or on first use) and guarded
    by a lock. Entries are never evicted; the number of distinct accounts of a
    community server is small.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._names: dict[str, str] | None = None

    def init(self) -> dict[str, str]:
        with self._lock:
            if self._names is None:
                self._names = {}
            return self._names

    def lookup(self, uuid: str) -> str | None:
        with self._lock:
            return self._mapping().get(uuid)

    def lookup_uuid(self, username: str) -> str | None:
        wanted = username.lower()
        with self._lock:
            for uuid, name in self._mapping().items():
                if name.lower() == wanted:
                    return uuid
        return None

    def insert(self, uuid: str, username: str) -> None:
        with self._lock:
            self._mapping()[uuid] = username

    def __len__(self) -> int:
        with self._lock:
            return len(self._mapping())

    def _mapping(self) -> dict[str, str]:
        return self.init()


class MojangProfileClient:
    """Resolves account names and UUIDs through the Mojang profile API."""

    def __init__(
        self,
        *,
        cache: IdentityCache | None = None,
        api_root: str = MOJANG_API_ROOT,
        client: httpx.Client | None = None,
        timeout_seconds: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._cache = cache or IdentityCache()
        self._api_root = api_root.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._logger = logger or logging.getLogger("plotty.idcache")

    @property
    def cache(self) -> IdentityCache:
        return self._cache

    def get_username_by_uuid(self, uuid: str) -> str:
        cached = self._cache.lookup(uuid)
        if cached is not None:
            return cached

        payload = self._get(f"{self._api_root}/user/profile/{uuid}")
        self._cache.insert(payload["id"], payload["name"])
        return payload["name"]

    def get_uuid_by_username(self, username: str) -> str:
        cached = self._cache.lookup_uuid(username)
        if cached is not None:
            return cached

        payload = self._get(f"{self._api_root}/users/profiles/minecraft/{username}")
        self._cache.insert(payload["id"], payload["name"])
        return payload["id"]

    def close(self) -> None:
        self._client.close()

    def _get(self, url: str) -> dict:
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise ProfileLookupError(0, "TransportError", str(exc)) from exc

        status = response.status_code
        if status == 204:
            raise ProfileLookupError(404, "NotFound", "This user does not exist.")
        if status > 399:
            try:
                body = response.json()
            except ValueError:
                body = {}
            self._logger.info("profile_lookup_failed", extra={"url": url, "status_code": status})
            raise ProfileLookupError(
                status,
                body.get("error", response.reason_phrase),
                body.get("errorMessage", response.text),
            )
        return response.json()
