"""
Weekly update orchestration.

For every tracked clan: refresh the clan, reconcile its history, ingest
player war history. Then back up the working roster, recompute both tier
averages and optionally reassign the working roster. Each stage is counted
on its own and a failure in one clan never stops the others.
"""
import asyncio
import logging

from config import settings
from database import DatabaseAdapter, Tier
from .averages import AverageAggregator
from .clan_history import ClanHistoryReconciler
from .clans import ClanService
from .results import ServiceResult, WeeklyUpdateSummary
from .roster import RosterAssigner
from .utils.locks import ClanLocks
from .war_history import WarHistoryIngester

logger = logging.getLogger(__name__)


class WeeklyOrchestrator:

    def __init__(self, db: DatabaseAdapter, clans: ClanService, reconciler: ClanHistoryReconciler,
                 ingester: WarHistoryIngester, aggregator: AverageAggregator, roster: RosterAssigner,
                 locks: ClanLocks = None, max_concurrent_clans: int = None):
        self.db = db
        self.clans = clans
        self.reconciler = reconciler
        self.ingester = ingester
        self.aggregator = aggregator
        self.roster = roster
        self.locks = locks if locks is not None else ClanLocks()
        self.max_concurrent_clans = max_concurrent_clans or settings.MAX_CONCURRENT_CLANS

    async def _process_clan(self, clan, window: int, semaphore: asyncio.Semaphore,
                            summary: WeeklyUpdateSummary):
        async with semaphore, self.locks.for_clan(clan.tag):
            logger.info(f"Processing clan {clan.name} ({clan.tag})")
            stages = (
                ("update", summary.clan_updates, lambda: self.clans.update_clan(clan.tag)),
                ("clan_history", summary.history_updates, lambda: self.reconciler.reconcile(clan.tag)),
                ("war_history", summary.war_history_updates, lambda: self.ingester.ingest(clan.tag, window)),
            )
            for name, counter, run_stage in stages:
                result = await run_stage()
                counter.record(result)
                if not result.success:
                    summary.failed_clans.setdefault(clan.tag, []).append(name)
                    logger.warning(f"Stage {name} failed for clan {clan.name} ({clan.tag}): {result.message}")

    async def run(self, window: int = None, average_weeks: int = None,
                  assign_roster: bool = False) -> ServiceResult:
        """
        One full weekly update. `window` is the number of most recent
        periods ingested per clan, `average_weeks` the averaging window.
        """
        window = window or settings.WAR_HISTORY_WINDOW
        average_weeks = average_weeks or settings.AVERAGE_WINDOW_WEEKS
        try:
            clans = await self.db.get_all_clans()
            if not clans:
                logger.warning("Weekly update aborted: no clans are tracked")
                return ServiceResult.failure("Failed to retrieve clans for the weekly update: no clans are tracked.")
            summary = WeeklyUpdateSummary(total_clans=len(clans))
            logger.info(f"Weekly update started for {len(clans)} clans (window={window}, weeks={average_weeks})")

            semaphore = asyncio.Semaphore(self.max_concurrent_clans)
            await asyncio.gather(*(
                self._process_clan(clan, window, semaphore, summary) for clan in clans
            ))

            # Cross-clan stages only start once every clan is done
            summary.roster_backup = await self.roster.backup_current_roster()
            summary.high_tier_averages = await self.aggregator.recompute(Tier.HIGH, average_weeks)
            summary.standard_tier_averages = await self.aggregator.recompute(Tier.STANDARD, average_weeks)
            if assign_roster:
                summary.roster_assignment = await self.roster.assign(
                    settings.CURRENT_ROSTER_SEASON, settings.CURRENT_ROSTER_WEEK
                )

            result = summary.to_result()
            log = logger.info if result.success else logger.error
            log(f"Weekly update finished with status {summary.status}. {summary.describe()}")
            return result

        except Exception as e:
            logger.error(f"Failed to complete weekly update: {e}", exc_info=True)
            return ServiceResult.failure(f"Failed to complete the weekly update: {e}")
