# Service layer for the War Tracker
from .results import ServiceResult, WeeklyUpdateSummary, RunStatus
from .warlog_client import WarLogClient
from .clans import ClanService
from .clan_history import ClanHistoryReconciler, compute_clan_history
from .war_history import WarHistoryIngester, correct_war_history
from .averages import AverageAggregator, compute_average
from .roster import RosterAssigner, allocate_roster, rank_players
from .weekly_update import WeeklyOrchestrator
from .tracker import WarTrackerService

__all__ = [
    'ServiceResult',
    'WeeklyUpdateSummary',
    'RunStatus',
    'WarLogClient',
    'ClanService',
    'ClanHistoryReconciler',
    'compute_clan_history',
    'WarHistoryIngester',
    'correct_war_history',
    'AverageAggregator',
    'compute_average',
    'RosterAssigner',
    'allocate_roster',
    'rank_players',
    'WeeklyOrchestrator',
    'WarTrackerService'
]
