import logging
from typing import Optional, Sequence, Tuple

from config import settings
from database import DatabaseAdapter, Tier
from exceptions import InvalidInputError, WarTrackerError
from .results import ServiceResult

logger = logging.getLogger(__name__)


def compute_average(rows: Sequence[Tuple]) -> Tuple[float, int, Optional[int]]:
    """
    (average, attacks, clan_id) for (PlayerWarHistory, ClanHistory) rows
    ordered newest first. The average is fame per deck rounded to two
    places, 0 when no decks were used. clan_id comes from the newest row.
    """
    total_fame = sum(record.fame for record, _ in rows)
    total_attacks = sum(record.decks_used for record, _ in rows)
    average = round(total_fame / total_attacks, 2) if total_attacks > 0 else 0
    clan_id = rows[0][1].clan_id if rows else None
    return average, total_attacks, clan_id


def validate_window(window_size: int) -> int:
    if not settings.MIN_AVERAGE_WINDOW_WEEKS <= window_size <= settings.MAX_AVERAGE_WINDOW_WEEKS:
        raise InvalidInputError(
            f"Number of weeks must be between {settings.MIN_AVERAGE_WINDOW_WEEKS} "
            f"and {settings.MAX_AVERAGE_WINDOW_WEEKS}"
        )
    return window_size


class AverageAggregator:
    """Recomputes PlayerAverage rows for every active player in one tier"""

    def __init__(self, db: DatabaseAdapter, threshold: int = None):
        self.db = db
        self.threshold = settings.HIGH_TIER_TROPHY_THRESHOLD if threshold is None else threshold

    async def recompute(self, tier: str, window_size: int = None) -> ServiceResult:
        """
        Players with no records in the tier window keep their previous row.
        Result data: {"updated": n, "skipped": n, "failed": n}
        """
        if window_size is None:
            window_size = settings.AVERAGE_WINDOW_WEEKS
        try:
            if tier not in Tier.ALL:
                raise InvalidInputError(f"Unknown tier '{tier}', expected one of {', '.join(Tier.ALL)}")
            validate_window(window_size)
            players = await self.db.get_active_players()
        except WarTrackerError as e:
            logger.warning(f"Cannot update {tier} tier averages: {e}")
            return ServiceResult.failure(f"Failed to update {tier} tier averages: {e}")
        except Exception as e:
            logger.error(f"Unexpected error loading players for {tier} tier averages: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")

        updated = skipped = failed = 0
        for player in players:
            try:
                rows = await self.db.get_player_war_histories_in_tier(
                    player.id, tier, self.threshold, window_size
                )
                if not rows:
                    logger.debug(f"No {tier} tier war history for player {player.tag}, keeping previous average")
                    skipped += 1
                    continue

                average, attacks, clan_id = compute_average(rows)
                await self.db.upsert_player_average(player.id, tier, average, attacks, clan_id)
                updated += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error updating {tier} tier average for player {player.tag}: {e}", exc_info=True)

        data = {"updated": updated, "skipped": skipped, "failed": failed}
        logger.info(
            f"{tier.capitalize()} tier averages over {window_size} week(s): "
            f"{updated} updated, {skipped} without data, {failed} failed"
        )
        if failed and not updated:
            return ServiceResult.failure(f"Failed to update {tier} tier player averages.", data)
        return ServiceResult.successful(f"{tier.capitalize()} tier player averages updated successfully.", data)
