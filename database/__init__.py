# Database package for the War Tracker
from .models import Base, Clan, ClanHistory, Player, PlayerWarHistory, PlayerAverage, RosterAssignment, PlayerStatus, Tier
from .adapter import DatabaseAdapter

__all__ = [
    'Base',
    'Clan',
    'ClanHistory',
    'Player',
    'PlayerWarHistory',
    'PlayerAverage',
    'RosterAssignment',
    'PlayerStatus',
    'Tier',
    'DatabaseAdapter'
]
