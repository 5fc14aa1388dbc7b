"""
Roster allocation.

Active players are ranked by their fame-per-attack average and poured into
clans ordered by current war trophies, each clan taking up to `capacity`
players. Whoever does not fit is left unassigned.
"""
import logging
from typing import Dict, List, Optional, Sequence

from config import settings
from database import DatabaseAdapter, PlayerStatus
from exceptions import InvalidInputError, WarTrackerError
from .results import ServiceResult

logger = logging.getLogger(__name__)

AUTO_ROSTER = "AutoRoster"
AUTO_ROSTER_OVERFLOW = "AutoRoster-Overflow"
AUTO_ROSTER_L2W = "AutoRoster-L2W"


def order_clans(clans: Sequence) -> List:
    """Highest war trophies first, ties by clan id"""
    return sorted(clans, key=lambda c: (-c.war_trophies, c.id))


def rank_players(player_ids: Sequence[int], averages_by_tier: Sequence[Dict[int, float]]) -> List[int]:
    """
    Order players for allocation. `averages_by_tier` holds one
    {player_id: average} mapping per tier in priority order; a player is
    ranked by the first tier they have an average in. Players without any
    average go last. Equal averages fall back to ascending player id.
    """
    def sort_key(player_id):
        for priority, averages in enumerate(averages_by_tier):
            if player_id in averages:
                return (priority, -averages[player_id], player_id)
        return (len(averages_by_tier), 0, player_id)

    return sorted(player_ids, key=sort_key)


def allocate_roster(ranked_player_ids: Sequence[int], clans: Sequence,
                    capacity: int) -> Dict[int, Optional[int]]:
    """Map player id -> clan id (None once every clan is full)"""
    slots = [clan.id for clan in order_clans(clans) for _ in range(capacity)]
    allocation = {}
    for position, player_id in enumerate(ranked_player_ids):
        allocation[player_id] = slots[position] if position < len(slots) else None
    return allocation


class RosterAssigner:
    """Writes RosterAssignment rows; one row per (season, week, player)"""

    def __init__(self, db: DatabaseAdapter, client=None, tiers: Sequence[str] = None):
        self.db = db
        self.client = client
        self.tiers = tuple(tiers) if tiers else settings.ROSTER_TIERS

    async def assign(self, season_id: int, week_index: int, capacity: int = None) -> ServiceResult:
        """
        Allocate every active player for the period and mark L2W players
        unassigned. Result data counts created/updated rows, assigned and
        overflow players.
        """
        capacity = settings.ROSTER_CLAN_CAPACITY if capacity is None else capacity
        try:
            if capacity < 1:
                raise InvalidInputError("Clan capacity must be at least 1")

            clans = await self.db.get_all_clans()
            if not clans:
                return ServiceResult.failure("No clans are tracked, nothing to assign.")

            active_players = await self.db.get_active_players()
            l2w_players = await self.db.get_players_by_status(PlayerStatus.LEFT_TWO_WEEKS)

            averages_by_tier = []
            for tier in self.tiers:
                rows = await self.db.get_player_averages(tier)
                averages_by_tier.append({row.player_id: row.fame_attack_average for row in rows})

            ranked = rank_players([p.id for p in active_players], averages_by_tier)
            allocation = allocate_roster(ranked, clans, capacity)
            players_by_id = {p.id: p for p in active_players}

            assignments = []
            overflow = 0
            for player_id in ranked:
                clan_id = allocation[player_id]
                if clan_id is None:
                    overflow += 1
                assignments.append({
                    'player_id': player_id,
                    'clan_id': clan_id,
                    'is_in_clan': clan_id is not None and players_by_id[player_id].clan_id == clan_id,
                    'updated_by': AUTO_ROSTER if clan_id is not None else AUTO_ROSTER_OVERFLOW,
                })
            for player in l2w_players:
                assignments.append({
                    'player_id': player.id,
                    'clan_id': None,
                    'is_in_clan': False,
                    'updated_by': AUTO_ROSTER_L2W,
                })

            created, updated = await self.db.upsert_roster_assignments(season_id, week_index, assignments)
            data = {
                "created": created,
                "updated": updated,
                "assigned": len(ranked) - overflow,
                "overflow": overflow,
                "left_two_weeks": len(l2w_players),
            }
            logger.info(
                f"Roster for Season {season_id}, Week {week_index}: {data['assigned']} assigned across "
                f"{len(clans)} clans, {overflow} overflow, {len(l2w_players)} L2W "
                f"({created} created, {updated} updated)"
            )
            return ServiceResult.successful(
                f"Roster for Season {season_id}, Week {week_index} assigned successfully.", data
            )

        except WarTrackerError as e:
            logger.warning(f"Roster assignment failed for Season {season_id}, Week {week_index}: {e}")
            return ServiceResult.failure(f"Failed to assign roster: {e}")
        except Exception as e:
            logger.error(f"Unexpected error assigning roster: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")

    async def backup_current_roster(self) -> ServiceResult:
        """
        Copy the working roster to the most recent reconciled period.
        A period that already has rows is left as it is.
        """
        try:
            period = await self.db.get_most_recent_period()
            if period is None:
                return ServiceResult.failure("No clan history recorded yet, cannot determine the current period.")

            season_id, week_index = period
            if await self.db.get_roster_assignments(season_id, week_index):
                logger.info(f"Roster already backed up for Season {season_id}, Week {week_index}")
                return ServiceResult.successful(
                    f"Roster already backed up for Season {season_id}, Week {week_index}.", {"copied": 0}
                )

            copied = await self.db.copy_roster_assignments(
                settings.CURRENT_ROSTER_SEASON, settings.CURRENT_ROSTER_WEEK, season_id, week_index
            )
            logger.info(f"Backed up {copied} roster rows to Season {season_id}, Week {week_index}")
            return ServiceResult.successful(
                f"Roster backed up to Season {season_id}, Week {week_index}.", {"copied": copied}
            )

        except WarTrackerError as e:
            logger.warning(f"Roster backup failed: {e}")
            return ServiceResult.failure(f"Failed to back up roster: {e}")
        except Exception as e:
            logger.error(f"Unexpected error backing up roster: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")

    async def refresh_in_clan_status(self, season_id: int, week_index: int) -> ServiceResult:
        """
        Check every assigned player's current clan in the API and update
        is_in_clan where it changed. Unassigned rows are set to False
        without an API call.
        """
        try:
            rows = await self.db.get_roster_assignments(season_id, week_index)
        except WarTrackerError as e:
            logger.warning(f"Could not load roster for Season {season_id}, Week {week_index}: {e}")
            return ServiceResult.failure(f"Failed to load roster: {e}")

        changed = failed = 0
        for row in rows:
            try:
                if row.clan_id is None:
                    in_clan = False
                else:
                    if self.client is None:
                        raise InvalidInputError("No API client configured for in-clan refresh")
                    info = await self.client.get_player(row.player.tag)
                    in_clan = info is not None and info.clan_tag == row.clan.tag
                if in_clan != row.is_in_clan:
                    await self.db.update_roster_in_clan(row.id, in_clan)
                    changed += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error refreshing in-clan status for player {row.player.tag}: {e}")

        data = {"checked": len(rows), "changed": changed, "failed": failed}
        logger.info(
            f"In-clan status for Season {season_id}, Week {week_index}: "
            f"{len(rows)} checked, {changed} changed, {failed} failed"
        )
        if rows and failed == len(rows):
            return ServiceResult.failure("Failed to refresh in-clan status for every player.", data)
        return ServiceResult.successful("In-clan status refreshed.", data)

    async def update_assignment(self, assignment_id: int, clan_id: Optional[int],
                                updated_by: str) -> ServiceResult:
        """Manual move of one player; clan_id None unassigns them"""
        if clan_id is not None and not await self.db.get_clan_by_id(clan_id):
            return ServiceResult.failure(f"Clan {clan_id} not found.")
        if not await self.db.update_roster_assignment_clan(assignment_id, clan_id, updated_by):
            return ServiceResult.failure(f"Roster assignment {assignment_id} not found.")
        logger.info(f"Roster assignment {assignment_id} moved to clan {clan_id} by {updated_by}")
        return ServiceResult.successful("Roster assignment updated.")
