"""
War log API client.
Wraps the external REST API behind three coroutines and turns HTTP
outcomes into the exception types the pipeline understands.
"""
import asyncio
import logging
from typing import List, Optional
from urllib.parse import quote

import aiohttp

from config import settings
from exceptions import APITimeoutError, NotFoundError, TransientAPIError, WarLogAPIError
from .utils.cache import TTLCache
from .warlog_models import ClanInfo, Period, PlayerInfo, parse_clan, parse_player, parse_war_log

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


class WarLogClient:
    """
    Async client for the clan / war log / player endpoints.

    Use as an async context manager, or call close() when done:

        async with WarLogClient(token=...) as client:
            periods = await client.get_war_log("ABC123")
    """

    def __init__(self, base_url=None, token=None, timeout=None, max_retries=None,
                 backoff=None, cache_ttl=None, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = (base_url or settings.WAR_API_URL).rstrip("/")
        self.token = token if token is not None else settings.WAR_API_TOKEN
        self.timeout = timeout if timeout is not None else settings.WAR_API_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.WAR_API_MAX_RETRIES
        self.backoff = backoff if backoff is not None else settings.WAR_API_BACKOFF
        self.cache = TTLCache(default_ttl=cache_ttl if cache_ttl is not None else settings.WAR_LOG_CACHE_TTL)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                trust_env=True,
            )
            self._owns_session = True

    async def close(self):
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()

    def get_headers(self):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def _tag_path(tag: str) -> str:
        return quote(f"#{tag}", safe="")

    async def _get_json(self, path: str, what: str) -> dict:
        """
        GET base_url/path with retry and exponential backoff for transient
        failures. 404 raises NotFoundError straight away.
        """
        self._ensure_session()
        url = f"{self.base_url}/{path}"
        attempts = max(1, self.max_retries)
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                async with self.session.get(url, headers=self.get_headers()) as response:
                    if response.status == 200:
                        return await response.json()

                    body = await response.text()
                    if response.status == 404:
                        raise NotFoundError(f"{what} not found in API")
                    if response.status not in TRANSIENT_STATUSES:
                        logger.warning(f"API request for {what} failed with status {response.status}. Response: {body[:200]}")
                        raise WarLogAPIError(
                            f"API request for {what} failed with status {response.status}",
                            status_code=response.status,
                            response=body,
                        )
                    last_error = TransientAPIError(f"API request for {what} failed with status {response.status}")
            except asyncio.TimeoutError:
                last_error = APITimeoutError(f"API request for {what} timed out after {self.timeout}s")
            except aiohttp.ClientError as e:
                last_error = TransientAPIError(f"HTTP error when fetching {what}: {e}")

            if attempt < attempts:
                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning(f"{last_error} (Attempt {attempt}/{attempts}). Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)

        logger.error(f"Giving up on {what} after {attempts} attempts: {last_error}")
        raise last_error

    async def get_clan(self, clan_tag: str) -> ClanInfo:
        """Current name and war trophies of a clan"""
        logger.info(f"Making API request for clan {clan_tag}")
        payload = await self._get_json(f"clans/{self._tag_path(clan_tag)}", f"Clan '{clan_tag}'")
        clan = parse_clan(payload)
        if clan is None:
            raise WarLogAPIError(f"Clan data is missing required fields for tag {clan_tag}", response=payload)
        logger.info(f"Successfully retrieved clan {clan.name} with tag {clan.tag}")
        return clan

    async def get_war_log(self, clan_tag: str, use_cache: bool = True) -> List[Period]:
        """The clan's past periods, most recent first as returned by the API"""
        cache_key = f"warlog:{clan_tag}"
        if use_cache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache HIT: {cache_key}")
                return cached

        logger.info(f"Making API request for war log of clan {clan_tag}")
        payload = await self._get_json(
            f"clans/{self._tag_path(clan_tag)}/riverracelog", f"War log for clan '{clan_tag}'"
        )
        periods = parse_war_log(payload)
        logger.info(f"Retrieved {len(periods)} periods of war log for clan {clan_tag}")
        await self.cache.set(cache_key, periods)
        return periods

    async def get_player(self, player_tag: str) -> Optional[PlayerInfo]:
        """Player profile with current clan, None if the player does not exist"""
        try:
            payload = await self._get_json(f"players/{self._tag_path(player_tag)}", f"Player '{player_tag}'")
        except NotFoundError:
            logger.warning(f"Player {player_tag} not found in API")
            return None
        return parse_player(payload)
