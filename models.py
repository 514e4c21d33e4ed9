import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from database import Base
from services.money import sum_amounts


def utcnow():
    return datetime.now(timezone.utc)


class GroupRole(str, enum.Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class PlatformRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class TableStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class PlayerStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Group(Base):
    __tablename__ = "groups"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    memberships = relationship(
        "GroupMembership", back_populates="group", cascade="all, delete-orphan"
    )
    tables = relationship("Table", back_populates="group")


class GroupMembership(Base):
    __tablename__ = "group_memberships"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    role = Column(Enum(GroupRole), nullable=False, default=GroupRole.VIEWER)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    group = relationship("Group", back_populates="memberships")


class Table(Base):
    __tablename__ = "tables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    small_blind = Column(Numeric(12, 2), nullable=False)
    big_blind = Column(Numeric(12, 2), nullable=False)
    minimum_buy_in = Column(Numeric(12, 2), nullable=False)
    location = Column(String(200), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    # Player of this table responsible for food; resolved in code, not a FK,
    # because players already reference tables.
    food_player_id = Column(Uuid, nullable=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    game_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    group = relationship("Group", back_populates="tables")
    players = relationship(
        "Player",
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="Player.created_at",
    )

    @property
    def status(self) -> TableStatus:
        return TableStatus.ACTIVE if self.is_active else TableStatus.CLOSED

    @property
    def food_player(self):
        if self.food_player_id is None:
            return None
        for player in self.players:
            if player.id == self.food_player_id:
                return player
        return None


class Player(Base):
    __tablename__ = "players"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    table_id = Column(Uuid, ForeignKey("tables.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    nickname = Column(String(100), nullable=True)
    chips = Column(Numeric(12, 2), nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    show_me = Column(Boolean, nullable=False, default=True)
    payment_method = Column(String(50), nullable=True)
    payment_comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    table = relationship("Table", back_populates="players")
    buy_ins = relationship(
        "BuyIn",
        back_populates="player",
        cascade="all, delete-orphan",
        order_by="BuyIn.timestamp",
    )
    cash_outs = relationship(
        "CashOut",
        back_populates="player",
        cascade="all, delete-orphan",
        order_by="CashOut.timestamp",
    )

    @property
    def status(self) -> PlayerStatus:
        return PlayerStatus.ACTIVE if self.active else PlayerStatus.INACTIVE

    @property
    def total_buy_in(self):
        return sum_amounts(buy_in.amount for buy_in in self.buy_ins)

    @property
    def total_cash_out(self):
        return sum_amounts(cash_out.amount for cash_out in self.cash_outs)


class BuyIn(Base):
    __tablename__ = "buy_ins"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    player_id = Column(Uuid, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    player = relationship("Player", back_populates="buy_ins")


class CashOut(Base):
    __tablename__ = "cash_outs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    player_id = Column(Uuid, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    player = relationship("Player", back_populates="cash_outs")


class PlayerAlias(Base):
    """Links a player name to a registered user, for statistics only"""
    __tablename__ = "player_aliases"
    __table_args__ = (
        UniqueConstraint("user_id", "player_name", name="uq_user_player_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    # Stored lower-cased; statistics match names case-insensitively
    player_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, nullable=True, index=True)
    table_id = Column(Uuid, nullable=True, index=True)
    event_type = Column(String(50), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    actor_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
