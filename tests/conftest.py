import asyncio

import pytest

from database import DatabaseAdapter
from exceptions import NotFoundError, TransientAPIError
from services.warlog_models import ClanInfo, Participant, Period, Standing


class FakeWarLogClient:
    """In-memory stand-in for WarLogClient"""

    def __init__(self):
        self.clans = {}
        self.logs = {}
        self.players = {}
        self.failing = set()
        self.calls = []

    def add_clan(self, tag, name, war_trophies, periods=None):
        self.clans[tag] = ClanInfo(tag=tag, name=name, war_trophies=war_trophies)
        if periods is not None:
            self.logs[tag] = periods

    async def get_clan(self, clan_tag):
        self.calls.append(("clan", clan_tag))
        if clan_tag in self.failing:
            raise TransientAPIError(f"API request for Clan '{clan_tag}' failed with status 503")
        if clan_tag not in self.clans:
            raise NotFoundError(f"Clan '{clan_tag}' not found in API")
        return self.clans[clan_tag]

    async def get_war_log(self, clan_tag, use_cache=True):
        self.calls.append(("warlog", clan_tag))
        if clan_tag in self.failing:
            raise TransientAPIError(f"API request for War log for clan '{clan_tag}' failed with status 503")
        if clan_tag not in self.logs:
            raise NotFoundError(f"War log for clan '{clan_tag}' not found in API")
        return self.logs[clan_tag]

    async def get_player(self, player_tag):
        self.calls.append(("player", player_tag))
        return self.players.get(player_tag)


def make_period(season_id, week_index, clan_tag=None, trophy_change=0, participants=(), other_clans=()):
    """
    Build a Period. participants are (tag, name, fame, decks_used, boat_attacks)
    tuples; other_clans are extra (clan_tag, trophy_change) standings.
    """
    standings = [Standing(tag, f"Clan {tag}", change) for tag, change in other_clans]
    if clan_tag is not None:
        standings.insert(0, Standing(
            clan_tag=clan_tag,
            clan_name=f"Clan {clan_tag}",
            trophy_change=trophy_change,
            participants=[
                Participant(tag=tag, name=name, fame=fame, decks_used=decks, boat_attacks=boats)
                for tag, name, fame, decks, boats in participants
            ],
        ))
    return Period(season_id=season_id, week_index=week_index, standings=standings)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def db(tmp_path):
    adapter = DatabaseAdapter(f"sqlite:///{tmp_path / 'wartracker_test.db'}")
    adapter.init_db()
    yield adapter
    adapter.close()


@pytest.fixture
def client():
    return FakeWarLogClient()
