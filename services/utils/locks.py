import asyncio
from collections import defaultdict


class ClanLocks:
    """
    One asyncio.Lock per clan tag. Everything that writes a clan's
    snapshots or war history holds the clan's lock, so overlapping runs
    cannot both pass the skip-if-exists check for the same rows.
    """

    def __init__(self):
        self._locks = defaultdict(asyncio.Lock)

    def for_clan(self, clan_tag: str) -> asyncio.Lock:
        return self._locks[clan_tag]

    def __len__(self):
        return len(self._locks)
