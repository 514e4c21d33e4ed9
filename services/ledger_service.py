"""
Ledger service: table balance and closure validation

Pure computation over the buy-in/cash-out rows. Nothing here changes state;
TableManager decides what to do with the result.

Balance formula:
    total_buy_ins = sum of every player's buy-ins
    settled_out   = active player  -> current chips (money still on the table)
                    inactive player -> sum of their cash-outs
    difference    = total_buy_ins - settled_out

A table is balanced when difference == 0. Positive difference means money
is missing from the payouts, negative means more was paid out than came in.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List

from models import Player
from services.money import ZERO, sum_amounts, to_amount


@dataclass(frozen=True)
class PlayerPosition:
    player_id: object
    name: str
    active: bool
    total_buy_in: Decimal
    settled_out: Decimal

    @property
    def net_result(self) -> Decimal:
        return self.settled_out - self.total_buy_in


@dataclass(frozen=True)
class TableBalance:
    total_buy_ins: Decimal
    settled_out: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_buy_ins - self.settled_out

    @property
    def is_balanced(self) -> bool:
        return self.difference == ZERO


@dataclass(frozen=True)
class ClosureValidation:
    balance: TableBalance
    active_player_ids: List[object] = field(default_factory=list)

    @property
    def all_players_inactive(self) -> bool:
        return not self.active_player_ids

    @property
    def can_close(self) -> bool:
        return self.all_players_inactive and self.balance.is_balanced


def player_settled_value(player: Player) -> Decimal:
    """
    Value a player has taken (or can take) off the table

    Active players are valued at their chip stack, inactive players at
    what they were paid out.
    """
    if player.active:
        return to_amount(player.chips or 0)
    return sum_amounts(cash_out.amount for cash_out in player.cash_outs)


def player_position(player: Player) -> PlayerPosition:
    return PlayerPosition(
        player_id=player.id,
        name=player.name,
        active=bool(player.active),
        total_buy_in=player.total_buy_in,
        settled_out=player_settled_value(player),
    )


def compute_table_balance(players: Iterable[Player]) -> TableBalance:
    """
    Aggregate all players' positions into the table balance

    Args:
        players: every player ever seated at the table

    Returns:
        TableBalance with total_buy_ins, settled_out and the derived
        difference / is_balanced

    Example:
        P buys in 100 then 50 and cashes out 150:
            total_buy_ins=150, settled_out=150, difference=0
        P buys in 100 then 50 and stays active with 20 chips:
            total_buy_ins=150, settled_out=20, difference=130
    """
    total_buy_ins = ZERO
    settled_out = ZERO
    for player in players:
        total_buy_ins += player.total_buy_in
        settled_out += player_settled_value(player)
    return TableBalance(total_buy_ins=total_buy_ins, settled_out=settled_out)


def validate_closure(players: Iterable[Player]) -> ClosureValidation:
    """
    Decide whether a table may move Active -> Closed

    Both must hold:
        1. every player is inactive (has cashed out)
        2. the balance difference is exactly zero

    The same result backs the read-only balance preview, which is where the
    chips branch of the balance matters: once all players are inactive, no
    chip stack contributes.
    """
    players = list(players)
    return ClosureValidation(
        balance=compute_table_balance(players),
        active_player_ids=[player.id for player in players if player.active],
    )
