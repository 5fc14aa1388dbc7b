"""
Parsed shapes of the external war log.
A log is a list of Period objects, most recent first.
"""
from dataclasses import dataclass, field
from typing import List, Optional


def strip_tag(tag: Optional[str]) -> str:
    """API tags carry a leading '#', stored tags do not"""
    return (tag or "").replace("#", "").strip()


@dataclass
class Participant:
    tag: str
    name: str
    fame: int = 0
    decks_used: int = 0
    boat_attacks: int = 0
    repair_points: int = 0


@dataclass
class Standing:
    clan_tag: str
    clan_name: str
    trophy_change: int
    rank: int = 0
    fame: int = 0
    participants: List[Participant] = field(default_factory=list)


@dataclass
class Period:
    season_id: int
    week_index: int
    created_date: Optional[str] = None
    standings: List[Standing] = field(default_factory=list)

    @property
    def key(self):
        return (self.season_id, self.week_index)

    def standing_for(self, clan_tag: str) -> Optional[Standing]:
        """The clan's standing in this period, None if it did not take part"""
        wanted = strip_tag(clan_tag)
        for standing in self.standings:
            if standing.clan_tag == wanted:
                return standing
        return None


@dataclass
class ClanInfo:
    tag: str
    name: str
    war_trophies: int


@dataclass
class PlayerInfo:
    tag: str
    name: str
    clan_tag: Optional[str] = None
    clan_name: Optional[str] = None


def _int(value, default=0):
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_participant(data: dict) -> Participant:
    return Participant(
        tag=strip_tag(data.get("tag")),
        name=data.get("name") or "",
        fame=_int(data.get("fame")),
        decks_used=_int(data.get("decksUsed")),
        boat_attacks=_int(data.get("boatAttacks")),
        repair_points=_int(data.get("repairPoints")),
    )


def parse_standing(data: dict) -> Standing:
    clan = data.get("clan") or {}
    return Standing(
        clan_tag=strip_tag(clan.get("tag")),
        clan_name=clan.get("name") or "",
        trophy_change=_int(data.get("trophyChange")),
        rank=_int(data.get("rank")),
        fame=_int(clan.get("fame")),
        participants=[parse_participant(p) for p in clan.get("participants") or []],
    )


def parse_war_log(payload: dict) -> List[Period]:
    """Convert a riverracelog response body into Period objects, keeping API order"""
    items = payload.get("items", []) if isinstance(payload, dict) else []
    return [
        Period(
            season_id=_int(item.get("seasonId")),
            week_index=_int(item.get("sectionIndex")),
            created_date=item.get("createdDate"),
            standings=[parse_standing(s) for s in item.get("standings") or []],
        )
        for item in items
    ]


def parse_clan(payload: dict) -> Optional[ClanInfo]:
    tag = strip_tag(payload.get("tag"))
    name = payload.get("name")
    if not tag or not name:
        return None
    return ClanInfo(tag=tag, name=name, war_trophies=_int(payload.get("clanWarTrophies")))


def parse_player(payload: dict) -> Optional[PlayerInfo]:
    tag = strip_tag(payload.get("tag"))
    if not tag:
        return None
    clan = payload.get("clan") or {}
    return PlayerInfo(
        tag=tag,
        name=payload.get("name") or "",
        clan_tag=strip_tag(clan.get("tag")) or None,
        clan_name=clan.get("name"),
    )
