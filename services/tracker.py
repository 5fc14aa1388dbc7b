"""
WarTrackerService - single entry point for the CLI and any admin layer.
Wires the stage services together and exposes each stage on its own.
"""
import logging
from typing import Optional

from config import settings
from database import DatabaseAdapter, PlayerStatus
from exceptions import InvalidTagError
from .averages import AverageAggregator
from .clan_history import ClanHistoryReconciler
from .clans import ClanService
from .results import ServiceResult
from .roster import RosterAssigner
from .utils.locks import ClanLocks
from .utils.validators import sanitize_tag
from .war_history import WarHistoryIngester, correct_war_history
from .weekly_update import WeeklyOrchestrator

logger = logging.getLogger(__name__)


class WarTrackerService:

    def __init__(self, db: DatabaseAdapter, client, max_concurrent_clans: int = None,
                 threshold: int = None, roster_tiers=None):
        self.db = db
        self.client = client
        self.locks = ClanLocks()
        self.clans = ClanService(db, client)
        self.reconciler = ClanHistoryReconciler(db, client)
        self.ingester = WarHistoryIngester(db, client)
        self.aggregator = AverageAggregator(db, threshold=threshold)
        self.roster = RosterAssigner(db, client, tiers=roster_tiers)
        self.orchestrator = WeeklyOrchestrator(
            db, self.clans, self.reconciler, self.ingester, self.aggregator, self.roster,
            locks=self.locks, max_concurrent_clans=max_concurrent_clans,
        )

    async def run_weekly_update(self, window: int = None, average_weeks: int = None,
                                assign_roster: bool = False) -> ServiceResult:
        return await self.orchestrator.run(window, average_weeks, assign_roster=assign_roster)

    async def reconcile_clan_history(self, clan_tag: str) -> ServiceResult:
        try:
            tag = sanitize_tag(clan_tag)
        except InvalidTagError as e:
            return ServiceResult.failure(str(e))
        async with self.locks.for_clan(tag):
            return await self.reconciler.reconcile(tag)

    async def ingest_war_history(self, clan_tag: str, period_count: int = None) -> ServiceResult:
        try:
            tag = sanitize_tag(clan_tag)
        except InvalidTagError as e:
            return ServiceResult.failure(str(e))
        async with self.locks.for_clan(tag):
            return await self.ingester.ingest(tag, period_count)

    async def recompute_averages(self, tier: str, window_size: int = None) -> ServiceResult:
        return await self.aggregator.recompute(tier, window_size)

    async def assign_roster(self, season_id: int, week_index: int, capacity: int = None) -> ServiceResult:
        return await self.roster.assign(season_id, week_index, capacity)

    async def refresh_in_clan_status(self, season_id: int, week_index: int) -> ServiceResult:
        return await self.roster.refresh_in_clan_status(season_id, week_index)

    async def update_roster_assignment(self, assignment_id: int, clan_id: Optional[int],
                                       updated_by: str) -> ServiceResult:
        return await self.roster.update_assignment(assignment_id, clan_id, updated_by)

    async def add_clan(self, clan_tag: str) -> ServiceResult:
        return await self.clans.add_clan(clan_tag)

    async def add_clan_with_history(self, clan_tag: str, period_count: int = None) -> ServiceResult:
        """Add a clan, then reconcile and ingest its recent history"""
        added = await self.clans.add_clan(clan_tag)
        if not added.success:
            return added

        clan = added.data
        async with self.locks.for_clan(clan.tag):
            history = await self.reconciler.reconcile(clan.tag)
            if not history.success:
                return ServiceResult.failure(f"Clan {clan.name} added, but {history.message}", clan)
            war = await self.ingester.ingest(clan.tag, period_count)
            if not war.success:
                return ServiceResult.failure(f"Clan {clan.name} added, but {war.message}", clan)

        return ServiceResult.successful(
            f"Clan {clan.name} added with {history.data['inserted']} history weeks "
            f"and {war.data['inserted']} player records.",
            clan,
        )

    async def update_player_status(self, player_id: int, status: str, updated_by: str) -> ServiceResult:
        if status not in PlayerStatus.ALL:
            return ServiceResult.failure(f"Invalid status '{status}', expected one of {', '.join(PlayerStatus.ALL)}")
        if not await self.db.update_player_status(player_id, status, updated_by):
            return ServiceResult.failure(f"Player {player_id} not found.")
        logger.info(f"Player {player_id} status set to {status} by {updated_by}")
        return ServiceResult.successful("Player status updated.")

    async def update_player_notes(self, player_id: int, notes: Optional[str], updated_by: str) -> ServiceResult:
        notes = (notes or "").strip() or None
        if notes and len(notes) > settings.PLAYER_NOTES_MAX_LENGTH:
            return ServiceResult.failure(f"Notes cannot exceed {settings.PLAYER_NOTES_MAX_LENGTH} characters")
        if not await self.db.update_player_notes(player_id, notes, updated_by):
            return ServiceResult.failure(f"Player {player_id} not found.")
        return ServiceResult.successful("Player notes updated.")

    async def correct_war_history(self, record_id: int, fame: int, decks_used: int,
                                  boat_attacks: int, updated_by: str) -> ServiceResult:
        return await correct_war_history(self.db, record_id, fame, decks_used, boat_attacks, updated_by)

    # === READ HELPERS ===

    async def list_clans(self):
        return await self.clans.list_clans()

    async def get_clan_histories(self, clan_tag: str):
        """Snapshots of a clan, newest first. Unknown or malformed tags give an empty list."""
        try:
            clan = await self.clans.get_clan(clan_tag)
        except InvalidTagError as e:
            logger.warning(f"Clan history lookup rejected: {e}")
            return []
        return await self.db.get_clan_histories(clan.id) if clan else []

    async def get_player_war_histories(self, player_tag: str):
        """War records of a player. Unknown or malformed tags give an empty list."""
        try:
            tag = sanitize_tag(player_tag)
        except InvalidTagError as e:
            logger.warning(f"Player war history lookup rejected: {e}")
            return []
        player = await self.db.get_player_by_tag(tag)
        return await self.db.get_war_histories_for_player(player.id) if player else []

    async def get_averages(self, tier: str):
        return await self.db.get_player_averages(tier)

    async def get_roster(self, season_id: int, week_index: int, clan_id: Optional[int] = None):
        return await self.db.get_roster_assignments(season_id, week_index, clan_id=clan_id)

    async def get_roster_periods(self):
        return await self.db.get_roster_periods()
