"""
Player war history ingestion and manual correction
"""
import logging
from typing import List, Optional

from config import settings
from database import DatabaseAdapter
from exceptions import InvalidInputError, MissingSnapshotError, NoWarLogDataError, NotFoundError, WarTrackerError
from .results import ServiceResult
from .warlog_models import Period

logger = logging.getLogger(__name__)

SYSTEM_USER = "System"


class WarHistoryIngester:
    """Creates one PlayerWarHistory row per participating player per period"""

    def __init__(self, db: DatabaseAdapter, client):
        self.db = db
        self.client = client

    async def ingest(self, clan_tag: str, period_count: int = None,
                     periods: Optional[List[Period]] = None) -> ServiceResult:
        """
        Ingest the `period_count` most recent periods of the clan's log.
        Every period the clan took part in must already have a clan history snapshot.
        Result data: {"inserted": n, "duplicates": n, "new_players": n}
        """
        if period_count is None:
            period_count = settings.WAR_HISTORY_WINDOW
        try:
            if period_count < 1:
                raise InvalidInputError("Period count must be at least 1")

            clan = await self.db.get_clan(clan_tag)
            if not clan:
                return ServiceResult.failure(f"Clan '{clan_tag}' not found.")

            if periods is None:
                periods = await self.client.get_war_log(clan.tag)
            if not periods:
                raise NoWarLogDataError(f"No war log data returned for clan {clan.tag}")

            window = sorted(periods, key=lambda p: p.key, reverse=True)[:period_count]

            # Resolve every snapshot before touching players so a gap fails the clan cleanly.
            # Periods the clan sat out have no snapshot and are skipped.
            targets = []
            for period in window:
                standing = period.standing_for(clan.tag)
                if standing is None:
                    logger.debug(f"Clan {clan.tag} has no standing in Season {period.season_id}, Week {period.week_index}")
                    continue
                snapshot = await self.db.get_clan_history(clan.id, period.season_id, period.week_index)
                if snapshot is None:
                    raise MissingSnapshotError(
                        f"Clan history not found for clan {clan.tag}, "
                        f"Season {period.season_id}, Week {period.week_index}",
                        season_id=period.season_id,
                        week_index=period.week_index,
                    )
                targets.append((period, standing, snapshot))

            records = []
            new_players = 0
            for _, standing, snapshot in targets:
                for participant in standing.participants:
                    if participant.fame == 0 or not participant.tag:
                        continue
                    player_id, created = await self.db.get_or_create_player(
                        participant.tag, participant.name, clan.id, updated_by=SYSTEM_USER
                    )
                    if created:
                        new_players += 1
                        logger.info(f"New player {participant.name} ({participant.tag}) added to {clan.name}")
                    records.append({
                        'player_id': player_id,
                        'clan_history_id': snapshot.id,
                        'fame': participant.fame,
                        'decks_used': participant.decks_used,
                        'boat_attacks': participant.boat_attacks,
                        'updated_by': SYSTEM_USER,
                    })

            inserted, duplicates = await self.db.add_player_war_histories(records)
            logger.info(
                f"War history for {clan.name} ({clan.tag}) over {len(targets)} period(s): "
                f"{inserted} inserted, {duplicates} duplicates skipped, {new_players} new players"
            )
            return ServiceResult.successful(
                f"Player war history for {clan.name} updated successfully.",
                {"inserted": inserted, "duplicates": duplicates, "new_players": new_players},
            )

        except NotFoundError:
            logger.warning(f"War log for clan {clan_tag} not found in API")
            return ServiceResult.failure(f"War log for clan '{clan_tag}' not found.")
        except WarTrackerError as e:
            logger.warning(f"War history update failed for {clan_tag}: {e}")
            return ServiceResult.failure(f"Failed to update war history: {e}")
        except Exception as e:
            logger.error(f"Unexpected error updating war history for {clan_tag}: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")


def validate_war_stats(fame: int, decks_used: int, boat_attacks: int):
    """Raise InvalidInputError unless the values fit in one week of war"""
    if fame < 0 or decks_used < 0 or boat_attacks < 0:
        raise InvalidInputError("Fame, decks used and boat attacks cannot be negative")
    if fame > settings.MAX_FAME_PER_WEEK:
        raise InvalidInputError(f"Fame cannot exceed {settings.MAX_FAME_PER_WEEK}")
    if decks_used > settings.MAX_DECKS_PER_WEEK:
        raise InvalidInputError(f"Decks used cannot exceed {settings.MAX_DECKS_PER_WEEK}")
    if boat_attacks > settings.MAX_BOAT_ATTACKS_PER_WEEK:
        raise InvalidInputError(f"Boat attacks cannot exceed {settings.MAX_BOAT_ATTACKS_PER_WEEK}")


async def correct_war_history(db: DatabaseAdapter, record_id: int, fame: int, decks_used: int,
                              boat_attacks: int, updated_by: str) -> ServiceResult:
    """Manual correction of one record; the row is flagged as modified"""
    try:
        validate_war_stats(fame, decks_used, boat_attacks)
        if not updated_by:
            raise InvalidInputError("updated_by is required for manual corrections")
    except InvalidInputError as e:
        return ServiceResult.failure(str(e))

    if not await db.update_player_war_history(record_id, fame, decks_used, boat_attacks, updated_by):
        return ServiceResult.failure(f"War history record {record_id} not found.")

    logger.info(f"War history record {record_id} corrected by {updated_by}: fame={fame}, decks={decks_used}, boats={boat_attacks}")
    return ServiceResult.successful("Player war history updated successfully.")
