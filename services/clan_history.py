"""
Clan history reconciliation.

The war log only reports each period's trophy change relative to now, so
the clan's trophy count at the end of a past period is recovered by
subtracting every change from that period up to the present from the
current count.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from database import DatabaseAdapter
from exceptions import NoStandingDataError, NoWarLogDataError, NotFoundError, WarTrackerError
from .results import ServiceResult
from .warlog_models import Period

logger = logging.getLogger(__name__)


def compute_clan_history(clan_tag: str, current_trophies: int,
                         periods: Sequence[Period]) -> List[Tuple[int, int, int]]:
    """
    Fold the log into (season_id, week_index, war_trophies) snapshots,
    most recent period first.

    Periods are sorted by (season, week) descending before folding. Periods
    where the clan has no standing are skipped and leave the running total
    alone. Raises NoStandingDataError when no period has a standing.

    Example: 5000 trophies now with changes [+40, -20] (newest first)
    gives snapshots 4960 and 4980.
    """
    running_total = 0
    snapshots = []

    for period in sorted(periods, key=lambda p: p.key, reverse=True):
        standing = period.standing_for(clan_tag)
        if standing is None:
            logger.debug(f"Clan {clan_tag} has no standing in Season {period.season_id}, Week {period.week_index}")
            continue
        running_total += standing.trophy_change
        snapshots.append((period.season_id, period.week_index, current_trophies - running_total))

    if not snapshots:
        raise NoStandingDataError(f"No clan history data produced for clan {clan_tag}")
    return snapshots


class ClanHistoryReconciler:
    """Writes ClanHistory rows for a clan; existing rows are never changed"""

    def __init__(self, db: DatabaseAdapter, client):
        self.db = db
        self.client = client

    async def reconcile(self, clan_tag: str, periods: Optional[List[Period]] = None) -> ServiceResult:
        """
        Reconcile one tracked clan against its war log. `periods` may be
        passed in when the caller already fetched the log.
        Result data: {"inserted": n, "skipped": n}
        """
        try:
            clan = await self.db.get_clan(clan_tag)
            if not clan:
                return ServiceResult.failure(f"Clan '{clan_tag}' not found.")

            if periods is None:
                periods = await self.client.get_war_log(clan.tag)
            if not periods:
                raise NoWarLogDataError(f"No war log data returned for clan {clan.tag}")

            snapshots = compute_clan_history(clan.tag, clan.war_trophies, periods)
            inserted, skipped = await self.db.add_clan_histories(clan.id, snapshots)

            logger.info(
                f"Clan history updated for {clan.name} ({clan.tag}): {inserted} new, {skipped} already recorded"
            )
            return ServiceResult.successful(
                f"Clan history for {clan.name} updated successfully.",
                {"inserted": inserted, "skipped": skipped},
            )

        except NotFoundError:
            logger.warning(f"War log for clan {clan_tag} not found in API")
            return ServiceResult.failure(f"War log for clan '{clan_tag}' not found.")
        except WarTrackerError as e:
            logger.warning(f"Clan history update failed for {clan_tag}: {e}")
            return ServiceResult.failure(f"Failed to update clan history: {e}")
        except Exception as e:
            logger.error(f"Unexpected error updating clan history for {clan_tag}: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")
