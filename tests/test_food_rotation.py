import uuid
from datetime import datetime, timedelta, timezone

from models import Player, Table
from core.player_manager import PlayerManager
from core.table_manager import TableManager
from services.food_rotation_service import get_group_food_rotation, rank_food_candidates
from tests.conftest import EDITOR

START = datetime(2026, 1, 2, 20, 0, tzinfo=timezone.utc)


def closed_table(names, food=None, week=0, active=False, game_date=None):
    players = [Player(id=uuid.uuid4(), name=name) for name in names]
    created_at = START + timedelta(weeks=week)
    table = Table(
        id=uuid.uuid4(),
        name=f"Week {week}",
        is_active=active,
        created_at=created_at,
        game_date=game_date or created_at,
        players=players,
    )
    if food is not None:
        table.food_player_id = next(p.id for p in players if p.name == food)
    return table


def by_name(candidates):
    return {c.name: c for c in candidates}


def test_rarest_orderer_ranks_first():
    tables = [closed_table(["A", "B"], food="B", week=week) for week in range(3)]

    ranking = rank_food_candidates(tables, min_games=3, overdue_count=1)

    assert [c.name for c in ranking] == ["A", "B"]
    a, b = ranking
    assert (a.participations, a.food_orders, a.food_order_percent) == (3, 0, 0.0)
    assert (b.participations, b.food_orders, b.food_order_percent) == (3, 3, 1.0)
    assert a.most_overdue and not b.most_overdue
    assert a.last_order_time is None
    assert b.last_order_time == START + timedelta(weeks=2)


def test_equal_percent_breaks_on_oldest_order():
    tables = [
        closed_table(["A", "B"], food="A", week=0),
        closed_table(["A", "B"], food="B", week=1),
        closed_table(["A", "B"], week=2),
    ]

    ranking = rank_food_candidates(tables, min_games=3)

    # both ordered once in three games; A ordered longer ago
    assert [c.name for c in ranking] == ["A", "B"]


def test_recency_follows_creation_not_game_date():
    # A ordered at the table created first, but its game date was moved later
    tables = [
        closed_table(["A", "B"], food="A", week=0, game_date=START + timedelta(weeks=9)),
        closed_table(["A", "B"], food="B", week=1, game_date=START + timedelta(weeks=4)),
        closed_table(["A", "B"], week=2),
    ]

    ranking = rank_food_candidates(tables, min_games=3)

    assert [c.name for c in ranking] == ["A", "B"]
    assert by_name(ranking)["A"].last_order_time == START


def test_never_ordered_beats_old_order_then_name_decides():
    tables = [
        closed_table(["C", "B", "A"], week=0),
        closed_table(["C", "B", "A"], week=1),
        closed_table(["C", "B", "A"], week=2),
    ]

    ranking = rank_food_candidates(tables, min_games=3)

    assert [c.name for c in ranking] == ["A", "B", "C"]


def test_newcomers_listed_after_eligible_alphabetically():
    tables = [closed_table(["Veteran"], week=week) for week in range(3)]
    tables.append(closed_table(["Zed", "Amy", "Veteran"], week=3))

    ranking = rank_food_candidates(tables, min_games=3)

    assert [c.name for c in ranking] == ["Veteran", "Amy", "Zed"]
    assert [c.is_eligible for c in ranking] == [True, False, False]
    assert not any(c.most_overdue for c in ranking[1:])


def test_only_top_eligible_are_most_overdue():
    tables = [closed_table(["A", "B", "C", "D"], week=week) for week in range(3)]

    ranking = rank_food_candidates(tables, min_games=3, overdue_count=3)

    assert [c.most_overdue for c in ranking] == [True, True, True, False]


def test_active_tables_are_ignored():
    tables = [closed_table(["A"], food="A", week=0, active=True)]

    assert rank_food_candidates(tables, min_games=1) == []


def test_restricted_ranking_keeps_full_history():
    tables = [closed_table(["A", "B", "C"], food="C", week=week) for week in range(3)]

    ranking = rank_food_candidates(tables, restrict_to={"A", "C", "New"}, min_games=3)

    assert [c.name for c in ranking] == ["A", "C", "New"]
    assert by_name(ranking)["C"].food_orders == 3
    assert by_name(ranking)["New"].participations == 0


def test_zero_participations_means_zero_percent():
    ranking = rank_food_candidates([], restrict_to={"A"})
    assert ranking[0].food_order_percent == 0.0


def test_group_rotation_reads_closed_tables(db, group):
    for week in range(3):
        table = TableManager.create_table(
            db, EDITOR, group.id, f"Week {week}", 1, 2, game_date=START + timedelta(weeks=week)
        )
        dana = PlayerManager.add_player(db, EDITOR, table.id, "Dana")
        eli = PlayerManager.add_player(db, EDITOR, table.id, "Eli")
        TableManager.update_table(db, EDITOR, table.id, {"food_player_id": eli.id})
        PlayerManager.cash_out(db, EDITOR, table.id, dana.id, 0)
        PlayerManager.cash_out(db, EDITOR, table.id, eli.id, 0)
        TableManager.toggle_table_status(db, EDITOR, table.id)
    TableManager.create_table(db, EDITOR, group.id, "Tonight", 1, 2)

    ranking = get_group_food_rotation(db, group.id)

    assert [c.name for c in ranking] == ["Dana", "Eli"]
    assert by_name(ranking)["Eli"].food_orders == 3
    assert by_name(ranking)["Dana"].most_overdue
