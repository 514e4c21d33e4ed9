"""
Player statistics over closed tables

Players are per-table rows, so results are aggregated by name
(case-insensitive). A registered user claims names through PlayerAlias to
see their own totals across groups; aliases never affect the ledger.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session, selectinload

from models import Player, PlayerAlias, Table
from services.ledger_service import player_position
from services.money import ZERO


@dataclass
class PlayerStats:
    name: str
    nickname: Optional[str] = None
    total_buy_in: Decimal = ZERO
    total_cash_out: Decimal = ZERO
    tables_played: int = 0
    largest_win: Decimal = ZERO
    largest_loss: Decimal = ZERO
    games_won: int = 0
    games_lost: int = 0
    last_played: Optional[datetime] = field(default=None, repr=False)

    @property
    def net_result(self) -> Decimal:
        return self.total_cash_out - self.total_buy_in

    @property
    def avg_buy_in(self) -> Decimal:
        if not self.tables_played:
            return ZERO
        return (self.total_buy_in / self.tables_played).quantize(Decimal("0.01"))

    @property
    def avg_net_result(self) -> Decimal:
        if not self.tables_played:
            return ZERO
        return (self.net_result / self.tables_played).quantize(Decimal("0.01"))


def _record(stats: PlayerStats, player: Player, game_date: datetime) -> None:
    position = player_position(player)
    result = position.net_result

    stats.total_buy_in += position.total_buy_in
    stats.total_cash_out += position.settled_out
    stats.tables_played += 1
    if result > stats.largest_win:
        stats.largest_win = result
    if result < stats.largest_loss:
        stats.largest_loss = result
    if result > 0:
        stats.games_won += 1
    elif result < 0:
        stats.games_lost += 1

    # Show the nickname from the most recent game
    if stats.last_played is None or game_date >= stats.last_played:
        stats.last_played = game_date
        stats.nickname = player.nickname


def aggregate_player_stats(tables: Iterable[Table], names: Optional[Set[str]] = None) -> List[PlayerStats]:
    """
    Aggregate per-name results over closed tables

    Args:
        tables: tables with players loaded; active tables are skipped
        names: lower-cased names to include (None = everyone)

    Returns:
        stats sorted by net result, best first
    """
    by_name: Dict[str, PlayerStats] = {}
    for table in tables:
        if table.is_active:
            continue
        game_date = table.game_date.replace(tzinfo=None)
        for player in table.players:
            key = player.name.casefold()
            if names is not None and key not in names:
                continue
            stats = by_name.setdefault(key, PlayerStats(name=player.name))
            _record(stats, player, game_date)

    return sorted(by_name.values(), key=lambda stats: (-stats.net_result, stats.name))


def combine(stats_list: Iterable[PlayerStats], name: str) -> PlayerStats:
    """Fold several per-name stats into one (a user with many aliases)"""
    combined = PlayerStats(name=name)
    for stats in stats_list:
        combined.total_buy_in += stats.total_buy_in
        combined.total_cash_out += stats.total_cash_out
        combined.tables_played += stats.tables_played
        combined.games_won += stats.games_won
        combined.games_lost += stats.games_lost
        combined.largest_win = max(combined.largest_win, stats.largest_win)
        combined.largest_loss = min(combined.largest_loss, stats.largest_loss)
    return combined


def _closed_tables(db: Session, group_ids: Iterable) -> List[Table]:
    group_ids = list(group_ids)
    if not group_ids:
        return []
    return (
        db.query(Table)
        .options(selectinload(Table.players).selectinload(Player.buy_ins),
                 selectinload(Table.players).selectinload(Player.cash_outs))
        .filter(Table.group_id.in_(group_ids), Table.is_active == False)  # noqa: E712
        .all()
    )


def get_group_statistics(db: Session, group_id) -> List[PlayerStats]:
    return aggregate_player_stats(_closed_tables(db, [group_id]))


def get_user_statistics(db: Session, user_id: str, group_ids: Iterable, display_name: Optional[str] = None) -> PlayerStats:
    """
    Totals for a registered user over every name they have claimed

    Only tables in group_ids (the groups the user can see) are counted.
    """
    aliases = {
        alias.player_name
        for alias in db.query(PlayerAlias).filter(PlayerAlias.user_id == user_id).all()
    }
    if not aliases:
        return PlayerStats(name=display_name or user_id)
    per_name = aggregate_player_stats(_closed_tables(db, group_ids), names=aliases)
    return combine(per_name, display_name or user_id)
