"""
SQLAlchemy models for the War Tracker database schema
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    """Naive UTC timestamp, matching what SQLite stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlayerStatus:
    ACTIVE = 'Active'
    INACTIVE = 'Inactive'
    LEFT_TWO_WEEKS = 'L2W'

    ALL = (ACTIVE, INACTIVE, LEFT_TWO_WEEKS)


class Tier:
    HIGH = 'high'
    STANDARD = 'standard'

    ALL = (HIGH, STANDARD)


class Clan(Base):
    """Tracked clan - war_trophies is the latest value, not history"""
    __tablename__ = 'clans'

    id = Column(Integer, primary_key=True, autoincrement=True)
    tag = Column(String(25), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    war_trophies = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)

    histories = relationship("ClanHistory", back_populates="clan", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Clan {self.tag} {self.name!r} trophies={self.war_trophies}>"


class ClanHistory(Base):
    """Clan war trophies as they were at the end of one (season, week)"""
    __tablename__ = 'clan_histories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    clan_id = Column(Integer, ForeignKey('clans.id', ondelete='CASCADE'), nullable=False, index=True)
    season_id = Column(Integer, nullable=False)
    week_index = Column(Integer, nullable=False)
    war_trophies = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    clan = relationship("Clan", back_populates="histories")

    __table_args__ = (
        UniqueConstraint('clan_id', 'season_id', 'week_index', name='_clan_season_week_uc'),
    )


class Player(Base):
    """Player seen in at least one war log"""
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True, autoincrement=True)
    tag = Column(String(32), unique=True, nullable=False, index=True)
    name = Column(String(50))
    clan_id = Column(Integer, ForeignKey('clans.id', ondelete='SET NULL'), index=True)
    status = Column(String(20), nullable=False, default=PlayerStatus.ACTIVE, index=True)
    notes = Column(String(100))
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)
    updated_by = Column(String(100))

    war_histories = relationship("PlayerWarHistory", back_populates="player", cascade="all, delete-orphan")

    @property
    def is_active(self):
        return self.status == PlayerStatus.ACTIVE


class PlayerWarHistory(Base):
    """Raw per-period stats for one player against one clan history snapshot"""
    __tablename__ = 'player_war_histories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False, index=True)
    clan_history_id = Column(Integer, ForeignKey('clan_histories.id', ondelete='CASCADE'), nullable=False, index=True)
    fame = Column(Integer, nullable=False, default=0)
    decks_used = Column(Integer, nullable=False, default=0)
    boat_attacks = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=utcnow)
    is_modified = Column(Boolean, default=False)
    updated_by = Column(String(100))

    player = relationship("Player", back_populates="war_histories")
    clan_history = relationship("ClanHistory")

    __table_args__ = (
        UniqueConstraint('player_id', 'clan_history_id', name='_player_clan_history_uc'),
    )


class PlayerAverage(Base):
    """Rolling fame-per-attack average, rewritten on every aggregation run"""
    __tablename__ = 'player_averages'

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False, index=True)
    clan_id = Column(Integer, ForeignKey('clans.id', ondelete='SET NULL'))
    tier = Column(String(10), nullable=False)
    fame_attack_average = Column(Float, nullable=False, default=0.0)
    attacks = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('player_id', 'tier', name='_player_tier_uc'),
    )


class RosterAssignment(Base):
    """Clan a player is allocated to for one (season, week); clan_id NULL = unassigned"""
    __tablename__ = 'roster_assignments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, nullable=False, index=True)
    week_index = Column(Integer, nullable=False, index=True)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False, index=True)
    clan_id = Column(Integer, ForeignKey('clans.id', ondelete='SET NULL'))
    is_in_clan = Column(Boolean, nullable=False, default=False)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)
    updated_by = Column(Text)

    player = relationship("Player")
    clan = relationship("Clan")

    __table_args__ = (
        UniqueConstraint('season_id', 'week_index', 'player_id', name='_season_week_player_uc'),
    )
