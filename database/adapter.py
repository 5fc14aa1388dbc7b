"""
Database Adapter - Async interface for database operations
Every public coroutine runs its SQLAlchemy work in a worker thread
"""
from sqlalchemy import create_engine, and_, or_, func
from sqlalchemy.orm import sessionmaker, scoped_session, joinedload
from sqlalchemy.exc import SQLAlchemyError, OperationalError, IntegrityError
from contextlib import contextmanager
from .models import Base, Clan, ClanHistory, Player, PlayerWarHistory, PlayerAverage, RosterAssignment, PlayerStatus, Tier, utcnow
from exceptions import DatabaseError, DatabaseOperationError, DatabaseConnectionError
import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

# Setup logger
logger = logging.getLogger(__name__)


def tier_condition(tier: str, threshold: int):
    """SQL filter selecting clan history snapshots inside a trophy tier"""
    if tier == Tier.HIGH:
        return ClanHistory.war_trophies >= threshold
    if tier == Tier.STANDARD:
        return ClanHistory.war_trophies < threshold
    raise ValueError(f"Unknown tier: {tier}")


class DatabaseAdapter:
    """
    Main database adapter providing async interface to the tracker tables
    """

    def __init__(self, db_url='sqlite:///wartracker.db'):
        self.db_url = db_url
        self.engine = create_engine(db_url, echo=False)
        self.Session = scoped_session(sessionmaker(bind=self.engine, expire_on_commit=False))

    def init_db(self):
        """Create all tables if they don't exist"""
        try:
            Base.metadata.create_all(self.engine)
        except OperationalError as e:
            raise DatabaseConnectionError(f"Failed to initialise database {self.db_url}: {e}") from e
        logger.info(f"Database tables ready ({self.engine.url.render_as_string(hide_password=True)})")

    def close(self):
        self.Session.remove()
        self.engine.dispose()

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope for synchronous operations"""
        session = self.Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseOperationError(f"Database operation failed: {e}") from e
        except Exception as e:
            session.rollback()
            raise DatabaseError(f"Unexpected error in database transaction: {e}") from e
        finally:
            session.close()

    # === CLAN OPERATIONS ===

    async def add_clan(self, tag: str, name: str, war_trophies: int) -> Optional[Clan]:
        """Insert a clan, returns None if the tag is already tracked"""
        def _add():
            with self.session_scope() as session:
                if session.query(Clan).filter_by(tag=tag).first():
                    return None
                clan = Clan(tag=tag, name=name, war_trophies=war_trophies, last_updated=utcnow())
                session.add(clan)
                session.flush()
                return clan
        return await asyncio.to_thread(_add)

    async def get_clan(self, tag: str) -> Optional[Clan]:
        def _query():
            with self.session_scope() as session:
                return session.query(Clan).filter_by(tag=tag).first()
        return await asyncio.to_thread(_query)

    async def get_clan_by_id(self, clan_id: int) -> Optional[Clan]:
        def _query():
            with self.session_scope() as session:
                return session.get(Clan, clan_id)
        return await asyncio.to_thread(_query)

    async def get_all_clans(self) -> List[Clan]:
        def _query():
            with self.session_scope() as session:
                return session.query(Clan).order_by(Clan.id).all()
        return await asyncio.to_thread(_query)

    async def update_clan(self, tag: str, name: str, war_trophies: int) -> Optional[Clan]:
        """Overwrite the current name/trophies, returns None if the clan is not tracked"""
        def _update():
            with self.session_scope() as session:
                clan = session.query(Clan).filter_by(tag=tag).first()
                if not clan:
                    return None
                clan.name = name
                clan.war_trophies = war_trophies
                clan.last_updated = utcnow()
                return clan
        return await asyncio.to_thread(_update)

    async def delete_clan(self, tag: str) -> bool:
        def _delete():
            with self.session_scope() as session:
                clan = session.query(Clan).filter_by(tag=tag).first()
                if clan:
                    session.delete(clan)
                    return True
                return False
        return await asyncio.to_thread(_delete)

    # === CLAN HISTORY OPERATIONS ===

    async def add_clan_histories(self, clan_id: int, snapshots: Iterable[Tuple[int, int, int]]) -> Tuple[int, int]:
        """
        Insert (season_id, week_index, war_trophies) snapshots that do not
        exist yet. Existing rows are never touched.
        Returns (inserted, skipped)
        """
        snapshots = list(snapshots)

        def _add():
            inserted = 0
            skipped = 0
            with self.session_scope() as session:
                for season_id, week_index, war_trophies in snapshots:
                    exists = session.query(ClanHistory.id).filter_by(
                        clan_id=clan_id, season_id=season_id, week_index=week_index
                    ).first()
                    if exists:
                        logger.debug(f"Clan history exists for ClanID {clan_id} - Season {season_id}, Week {week_index}. Skipping.")
                        skipped += 1
                        continue
                    session.add(ClanHistory(
                        clan_id=clan_id,
                        season_id=season_id,
                        week_index=week_index,
                        war_trophies=war_trophies,
                    ))
                    # Flush per row so a repeated period in the same batch is seen as existing
                    session.flush()
                    inserted += 1
            return inserted, skipped
        return await asyncio.to_thread(_add)

    async def get_clan_history(self, clan_id: int, season_id: int, week_index: int) -> Optional[ClanHistory]:
        def _query():
            with self.session_scope() as session:
                return session.query(ClanHistory).filter_by(
                    clan_id=clan_id, season_id=season_id, week_index=week_index
                ).first()
        return await asyncio.to_thread(_query)

    async def get_clan_histories(self, clan_id: int) -> List[ClanHistory]:
        """All snapshots of a clan, newest period first"""
        def _query():
            with self.session_scope() as session:
                return session.query(ClanHistory).filter_by(clan_id=clan_id).order_by(
                    ClanHistory.season_id.desc(), ClanHistory.week_index.desc()
                ).all()
        return await asyncio.to_thread(_query)

    async def get_most_recent_period(self) -> Optional[Tuple[int, int]]:
        """Newest (season_id, week_index) reconciled for any clan"""
        def _query():
            with self.session_scope() as session:
                row = session.query(ClanHistory.season_id, ClanHistory.week_index).order_by(
                    ClanHistory.season_id.desc(), ClanHistory.week_index.desc()
                ).first()
                return (row[0], row[1]) if row else None
        return await asyncio.to_thread(_query)

    # === PLAYER OPERATIONS ===

    async def get_player_by_tag(self, tag: str) -> Optional[Player]:
        def _query():
            with self.session_scope() as session:
                return session.query(Player).filter_by(tag=tag).first()
        return await asyncio.to_thread(_query)

    async def get_player(self, player_id: int) -> Optional[Player]:
        def _query():
            with self.session_scope() as session:
                return session.get(Player, player_id)
        return await asyncio.to_thread(_query)

    async def get_or_create_player(self, tag: str, name: str, clan_id: Optional[int],
                                   updated_by: str = 'System') -> Tuple[int, bool]:
        """
        Return (player_id, created). New players start Active in the given clan.
        Safe when two clans ingest the same new player at once: the losing
        insert is rolled back and the winner's row is returned.
        """
        def _get_or_create():
            with self.session_scope() as session:
                player = session.query(Player).filter_by(tag=tag).first()
                if player:
                    return player.id, False
                player = Player(
                    tag=tag,
                    name=name,
                    clan_id=clan_id,
                    status=PlayerStatus.ACTIVE,
                    last_updated=utcnow(),
                    updated_by=updated_by,
                )
                session.add(player)
                session.flush()
                return player.id, True

        def _get_existing():
            with self.session_scope() as session:
                player = session.query(Player).filter_by(tag=tag).first()
                return player.id if player else None

        def _run():
            try:
                return _get_or_create()
            except DatabaseOperationError as e:
                if not isinstance(e.__cause__, IntegrityError):
                    raise
                player_id = _get_existing()
                if player_id is None:
                    raise
                logger.debug(f"Player {tag} was created concurrently, using existing PlayerID {player_id}")
                return player_id, False

        return await asyncio.to_thread(_run)

    async def get_players_by_status(self, status: str) -> List[Player]:
        def _query():
            with self.session_scope() as session:
                return session.query(Player).filter_by(status=status).order_by(Player.id).all()
        return await asyncio.to_thread(_query)

    async def get_active_players(self) -> List[Player]:
        return await self.get_players_by_status(PlayerStatus.ACTIVE)

    async def update_player_status(self, player_id: int, status: str, updated_by: str) -> bool:
        def _update():
            with self.session_scope() as session:
                player = session.get(Player, player_id)
                if not player:
                    return False
                player.status = status
                player.updated_by = updated_by
                player.last_updated = utcnow()
                return True
        return await asyncio.to_thread(_update)

    async def update_player_notes(self, player_id: int, notes: Optional[str], updated_by: str) -> bool:
        def _update():
            with self.session_scope() as session:
                player = session.get(Player, player_id)
                if not player:
                    return False
                player.notes = notes
                player.updated_by = updated_by
                player.last_updated = utcnow()
                return True
        return await asyncio.to_thread(_update)

    # === WAR HISTORY OPERATIONS ===

    async def add_player_war_histories(self, records: List[dict]) -> Tuple[int, int]:
        """
        Insert war history rows keyed by (player_id, clan_history_id).
        Pairs that already exist are counted and skipped, never updated.
        Returns (inserted, duplicates)
        """
        def _add():
            inserted = 0
            duplicates = 0
            seen = set()
            with self.session_scope() as session:
                for record in records:
                    key = (record['player_id'], record['clan_history_id'])
                    exists = key in seen or session.query(PlayerWarHistory.id).filter_by(
                        player_id=key[0], clan_history_id=key[1]
                    ).first() is not None
                    if exists:
                        logger.debug(f"War history for PlayerID {key[0]} and ClanHistoryID {key[1]} already exists. Skipping.")
                        duplicates += 1
                        continue
                    seen.add(key)
                    session.add(PlayerWarHistory(
                        player_id=key[0],
                        clan_history_id=key[1],
                        fame=record['fame'],
                        decks_used=record['decks_used'],
                        boat_attacks=record['boat_attacks'],
                        is_modified=False,
                        updated_by=record.get('updated_by', 'System'),
                        last_updated=utcnow(),
                    ))
                    inserted += 1
            return inserted, duplicates
        return await asyncio.to_thread(_add)

    async def get_player_war_histories_in_tier(self, player_id: int, tier: str, threshold: int,
                                               num_weeks: int) -> List[Tuple[PlayerWarHistory, ClanHistory]]:
        """
        The player's records from their `num_weeks` most recent periods inside
        the tier, newest first (ties: higher snapshot trophies first)
        """
        def _query():
            with self.session_scope() as session:
                in_tier = tier_condition(tier, threshold)
                periods = session.query(ClanHistory.season_id, ClanHistory.week_index).join(
                    PlayerWarHistory, PlayerWarHistory.clan_history_id == ClanHistory.id
                ).filter(
                    PlayerWarHistory.player_id == player_id, in_tier
                ).distinct().order_by(
                    ClanHistory.season_id.desc(), ClanHistory.week_index.desc()
                ).limit(num_weeks).all()

                if not periods:
                    return []

                in_periods = or_(*[
                    and_(ClanHistory.season_id == season_id, ClanHistory.week_index == week_index)
                    for season_id, week_index in periods
                ])
                return session.query(PlayerWarHistory, ClanHistory).join(
                    ClanHistory, PlayerWarHistory.clan_history_id == ClanHistory.id
                ).filter(
                    PlayerWarHistory.player_id == player_id, in_tier, in_periods
                ).order_by(
                    ClanHistory.season_id.desc(),
                    ClanHistory.week_index.desc(),
                    ClanHistory.war_trophies.desc(),
                    PlayerWarHistory.fame.desc(),
                ).all()
        return await asyncio.to_thread(_query)

    async def get_war_histories_for_player(self, player_id: int) -> List[Tuple[PlayerWarHistory, ClanHistory]]:
        def _query():
            with self.session_scope() as session:
                return session.query(PlayerWarHistory, ClanHistory).join(
                    ClanHistory, PlayerWarHistory.clan_history_id == ClanHistory.id
                ).filter(PlayerWarHistory.player_id == player_id).order_by(
                    ClanHistory.season_id.desc(), ClanHistory.week_index.desc()
                ).all()
        return await asyncio.to_thread(_query)

    async def count_war_histories(self) -> int:
        def _query():
            with self.session_scope() as session:
                return session.query(func.count(PlayerWarHistory.id)).scalar()
        return await asyncio.to_thread(_query)

    async def update_player_war_history(self, record_id: int, fame: int, decks_used: int,
                                        boat_attacks: int, updated_by: str) -> bool:
        """Manual correction of a single record"""
        def _update():
            with self.session_scope() as session:
                record = session.get(PlayerWarHistory, record_id)
                if not record:
                    return False
                record.fame = fame
                record.decks_used = decks_used
                record.boat_attacks = boat_attacks
                record.is_modified = True
                record.updated_by = updated_by
                record.last_updated = utcnow()
                return True
        return await asyncio.to_thread(_update)

    # === PLAYER AVERAGE OPERATIONS ===

    async def upsert_player_average(self, player_id: int, tier: str, average: float,
                                    attacks: int, clan_id: Optional[int]):
        """Overwrite the (player, tier) average row, creating it if needed"""
        def _upsert():
            with self.session_scope() as session:
                row = session.query(PlayerAverage).filter_by(player_id=player_id, tier=tier).first()
                if not row:
                    row = PlayerAverage(player_id=player_id, tier=tier)
                    session.add(row)
                row.fame_attack_average = average
                row.attacks = attacks
                row.clan_id = clan_id
                row.last_updated = utcnow()
        return await asyncio.to_thread(_upsert)

    async def get_player_average(self, player_id: int, tier: str) -> Optional[PlayerAverage]:
        def _query():
            with self.session_scope() as session:
                return session.query(PlayerAverage).filter_by(player_id=player_id, tier=tier).first()
        return await asyncio.to_thread(_query)

    async def get_player_averages(self, tier: str, active_only: bool = True) -> List[PlayerAverage]:
        def _query():
            with self.session_scope() as session:
                query = session.query(PlayerAverage).filter(PlayerAverage.tier == tier)
                if active_only:
                    query = query.join(Player, Player.id == PlayerAverage.player_id).filter(
                        Player.status == PlayerStatus.ACTIVE
                    )
                return query.order_by(PlayerAverage.fame_attack_average.desc(), PlayerAverage.player_id).all()
        return await asyncio.to_thread(_query)

    # === ROSTER OPERATIONS ===

    async def upsert_roster_assignments(self, season_id: int, week_index: int,
                                        assignments: List[dict]) -> Tuple[int, int]:
        """
        Create or update one row per player for the period.
        Returns (created, updated)
        """
        def _upsert():
            created = 0
            updated = 0
            with self.session_scope() as session:
                existing = {
                    row.player_id: row
                    for row in session.query(RosterAssignment).filter_by(
                        season_id=season_id, week_index=week_index
                    ).all()
                }
                for assignment in assignments:
                    row = existing.get(assignment['player_id'])
                    if row is None:
                        row = RosterAssignment(
                            season_id=season_id,
                            week_index=week_index,
                            player_id=assignment['player_id'],
                        )
                        session.add(row)
                        existing[assignment['player_id']] = row
                        created += 1
                    else:
                        updated += 1
                    row.clan_id = assignment['clan_id']
                    row.is_in_clan = assignment.get('is_in_clan', False)
                    row.updated_by = assignment.get('updated_by')
                    row.last_updated = utcnow()
            return created, updated
        return await asyncio.to_thread(_upsert)

    async def get_roster_assignments(self, season_id: int, week_index: int,
                                     clan_id: Optional[int] = None,
                                     unassigned_only: bool = False) -> List[RosterAssignment]:
        """Rows for a period with player and clan loaded, optionally filtered by clan"""
        def _query():
            with self.session_scope() as session:
                query = session.query(RosterAssignment).options(
                    joinedload(RosterAssignment.player), joinedload(RosterAssignment.clan)
                ).filter_by(season_id=season_id, week_index=week_index)
                if unassigned_only:
                    query = query.filter(RosterAssignment.clan_id.is_(None))
                elif clan_id is not None:
                    query = query.filter(RosterAssignment.clan_id == clan_id)
                rows = query.order_by(RosterAssignment.id).all()
                session.expunge_all()
                return rows
        return await asyncio.to_thread(_query)

    async def copy_roster_assignments(self, from_season: int, from_week: int,
                                      to_season: int, to_week: int) -> int:
        """Copy a period's roster to another period, returns rows copied"""
        def _copy():
            with self.session_scope() as session:
                source = session.query(RosterAssignment).filter_by(
                    season_id=from_season, week_index=from_week
                ).all()
                for row in source:
                    session.add(RosterAssignment(
                        season_id=to_season,
                        week_index=to_week,
                        player_id=row.player_id,
                        clan_id=row.clan_id,
                        is_in_clan=row.is_in_clan,
                        updated_by=row.updated_by,
                        last_updated=utcnow(),
                    ))
                return len(source)
        return await asyncio.to_thread(_copy)

    async def update_roster_in_clan(self, assignment_id: int, is_in_clan: bool) -> bool:
        def _update():
            with self.session_scope() as session:
                row = session.get(RosterAssignment, assignment_id)
                if not row:
                    return False
                row.is_in_clan = is_in_clan
                row.last_updated = utcnow()
                return True
        return await asyncio.to_thread(_update)

    async def update_roster_assignment_clan(self, assignment_id: int, clan_id: Optional[int],
                                            updated_by: str) -> bool:
        def _update():
            with self.session_scope() as session:
                row = session.get(RosterAssignment, assignment_id)
                if not row:
                    return False
                row.clan_id = clan_id
                row.updated_by = updated_by
                row.last_updated = utcnow()
                return True
        return await asyncio.to_thread(_update)

    async def get_roster_periods(self) -> List[Tuple[int, int]]:
        """Distinct (season_id, week_index) pairs that have roster rows, newest first"""
        def _query():
            with self.session_scope() as session:
                rows = session.query(RosterAssignment.season_id, RosterAssignment.week_index).distinct().order_by(
                    RosterAssignment.season_id.desc(), RosterAssignment.week_index.desc()
                ).all()
                return [(s, w) for s, w in rows]
        return await asyncio.to_thread(_query)
