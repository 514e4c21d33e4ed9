from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from models import GroupRole

# Decimal inside, plain JSON number outside
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# ============ Groups ============

class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None


class GroupResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    created_by: str
    created_at: datetime
    role: Optional[GroupRole] = None
    table_count: int = 0


class MemberAdd(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: GroupRole = GroupRole.VIEWER


class MemberRoleUpdate(BaseModel):
    role: GroupRole


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    role: GroupRole
    joined_at: datetime


# ============ Tables ============

class TableCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    small_blind: Decimal
    big_blind: Decimal
    minimum_buy_in: Optional[Decimal] = None
    location: Optional[str] = None
    game_date: Optional[datetime] = None


class TableUpdate(BaseModel):
    """Partial update; only fields sent by the client are applied"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    small_blind: Optional[Decimal] = None
    big_blind: Optional[Decimal] = None
    minimum_buy_in: Optional[Decimal] = None
    location: Optional[str] = None
    food_player_id: Optional[UUID] = None
    game_date: Optional[datetime] = None
    group_id: Optional[UUID] = None


class TableSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    name: str
    small_blind: Money
    big_blind: Money
    minimum_buy_in: Money
    location: Optional[str] = None
    is_active: bool
    food_player_id: Optional[UUID] = None
    created_by: Optional[str] = None
    created_at: datetime
    game_date: datetime


class BalanceResponse(BaseModel):
    total_buy_ins: Money
    settled_out: Money
    difference: Money
    is_balanced: bool
    all_players_inactive: bool
    active_player_ids: List[UUID]
    can_close: bool


# ============ Players & ledger ============

class PlayerAdd(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    nickname: Optional[str] = Field(default=None, max_length=100)
    initial_chips: Optional[Decimal] = None


class AmountRequest(BaseModel):
    amount: Decimal


class ChipsUpdate(BaseModel):
    chips: Decimal


class PlayerDetailsUpdate(BaseModel):
    show_me: Optional[bool] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    payment_comment: Optional[str] = None


class BuyInResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    player_id: UUID
    amount: Money
    timestamp: datetime


class CashOutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    player_id: UUID
    amount: Money
    timestamp: datetime


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    table_id: UUID
    name: str
    nickname: Optional[str] = None
    chips: Money
    active: bool
    show_me: bool
    payment_method: Optional[str] = None
    payment_comment: Optional[str] = None
    total_buy_in: Money
    total_cash_out: Money
    buy_ins: List[BuyInResponse] = []
    cash_outs: List[CashOutResponse] = []


class TableResponse(TableSummary):
    players: List[PlayerResponse] = []


# ============ Food rotation & statistics ============

class FoodCandidateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    participations: int
    food_orders: int
    food_order_percent: float
    last_order_time: Optional[datetime] = None
    is_eligible: bool
    most_overdue: bool


class PlayerStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    nickname: Optional[str] = None
    total_buy_in: Money
    total_cash_out: Money
    net_result: Money
    tables_played: int
    avg_buy_in: Money
    avg_net_result: Money
    largest_win: Money
    largest_loss: Money
    games_won: int
    games_lost: int


class AliasRequest(BaseModel):
    player_name: str = Field(min_length=1, max_length=100)


class AliasResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_name: str
    created_at: datetime
