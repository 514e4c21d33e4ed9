"""
Food rotation: whose turn is it to order food

Looks at the closed tables of a group and ranks player names by how rarely
they have been responsible for food. The ranking is a suggestion for the
group; nothing enforces it.

Per name:
    participations     closed tables the name appears in
    food_orders        closed tables whose food player (matched by id within
                       that table) carries this name
    food_order_percent food_orders / participations
    last_order_time    creation time of the latest table the name ordered for
    is_eligible        participations >= MIN_GAMES_FOR_FOOD

Order:
    eligible first, by percent ascending, then oldest last order (never
    ordered comes first), then name; non-eligible after, alphabetically.
    The first MOST_OVERDUE_COUNT eligible entries are flagged most overdue.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session, selectinload

from models import Table
from database import get_settings

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class FoodCandidate:
    name: str
    participations: int = 0
    food_orders: int = 0
    last_order_time: Optional[datetime] = None
    is_eligible: bool = False
    most_overdue: bool = False

    @property
    def food_order_percent(self) -> float:
        if self.participations == 0:
            return 0.0
        return self.food_orders / self.participations


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _sort_key(candidate: FoodCandidate):
    last = _as_utc(candidate.last_order_time) if candidate.last_order_time else _NEVER
    return (candidate.food_order_percent, last, candidate.name)


def rank_food_candidates(
    closed_tables: Iterable[Table],
    restrict_to: Optional[Set[str]] = None,
    min_games: Optional[int] = None,
    overdue_count: Optional[int] = None
) -> List[FoodCandidate]:
    """
    Rank player names for the next food order

    Args:
        closed_tables: the group's closed tables with players loaded
        restrict_to: only rank these names (e.g. the players of the open
            table); history still comes from every closed table
        min_games: eligibility floor, defaults to settings.min_games_for_food
        overdue_count: how many eligible entries get most_overdue,
            defaults to settings.most_overdue_count

    Returns:
        eligible candidates (ranked) followed by the rest (alphabetical)
    """
    settings = get_settings()
    min_games = settings.min_games_for_food if min_games is None else min_games
    overdue_count = settings.most_overdue_count if overdue_count is None else overdue_count

    stats: Dict[str, FoodCandidate] = {}
    if restrict_to is not None:
        for name in restrict_to:
            stats[name] = FoodCandidate(name=name)

    for table in closed_tables:
        if table.is_active:
            continue
        names = {player.name for player in table.players}
        food_player = table.food_player
        food_name = food_player.name if food_player else None

        for name in names:
            if restrict_to is not None and name not in restrict_to:
                continue
            candidate = stats.setdefault(name, FoodCandidate(name=name))
            candidate.participations += 1
            if name == food_name:
                candidate.food_orders += 1
                ordered_at = _as_utc(table.created_at)
                if candidate.last_order_time is None or ordered_at > _as_utc(candidate.last_order_time):
                    candidate.last_order_time = ordered_at

    eligible = []
    newcomers = []
    for candidate in stats.values():
        candidate.is_eligible = candidate.participations >= min_games
        (eligible if candidate.is_eligible else newcomers).append(candidate)

    eligible.sort(key=_sort_key)
    newcomers.sort(key=lambda candidate: candidate.name)

    for candidate in eligible[:overdue_count]:
        candidate.most_overdue = True

    return eligible + newcomers


def get_group_food_rotation(db: Session, group_id, restrict_to: Optional[Set[str]] = None) -> List[FoodCandidate]:
    """Load the closed tables of a group and rank them"""
    tables = (
        db.query(Table)
        .options(selectinload(Table.players))
        .filter(Table.group_id == group_id, Table.is_active == False)  # noqa: E712
        .all()
    )
    return rank_food_candidates(tables, restrict_to=restrict_to)
