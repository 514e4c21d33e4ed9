import uuid
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from models import BuyIn, CashOut, Player, Table
from core.alias_manager import AliasManager
from core.exceptions import DuplicateConflict, NotFound
from core.player_manager import PlayerManager
from core.table_manager import TableManager
from services.statistics_service import aggregate_player_stats, combine, get_group_statistics, get_user_statistics
from tests.conftest import EDITOR, OWNER

START = datetime(2026, 3, 6, 20, 0)


def settled(name, buy_in, cash_out, nickname=None):
    player = Player(id=uuid.uuid4(), name=name, nickname=nickname, active=False, chips=Decimal(0))
    player.buy_ins.append(BuyIn(amount=Decimal(buy_in)))
    player.cash_outs.append(CashOut(amount=Decimal(cash_out)))
    return player


def game(*players, week=0, active=False):
    return Table(id=uuid.uuid4(), is_active=active, game_date=START + timedelta(weeks=week), players=list(players))


def test_results_aggregate_by_name_ignoring_case():
    tables = [
        game(settled("Dana", 100, 250), settled("Eli", 100, 50), week=0),
        game(settled("dana", 100, 40, nickname="Shark"), settled("Eli", 50, 0), week=1),
    ]

    stats = aggregate_player_stats(tables)

    assert [s.name for s in stats] == ["Dana", "Eli"]
    dana, eli = stats
    assert dana.tables_played == 2
    assert dana.net_result == Decimal("90")
    assert dana.largest_win == Decimal("150")
    assert dana.largest_loss == Decimal("-60")
    assert (dana.games_won, dana.games_lost) == (1, 1)
    assert dana.nickname == "Shark"
    assert dana.avg_buy_in == Decimal("100.00")
    assert dana.avg_net_result == Decimal("45.00")
    assert eli.net_result == Decimal("-100")


def test_open_tables_do_not_count():
    tables = [game(settled("Dana", 100, 250), active=True)]
    assert aggregate_player_stats(tables) == []


def test_name_filter():
    tables = [game(settled("Dana", 100, 250), settled("Eli", 100, 50))]
    assert [s.name for s in aggregate_player_stats(tables, names={"eli"})] == ["Eli"]


def test_combine_folds_aliases():
    tables = [game(settled("Dana", 100, 250), settled("D", 100, 50))]

    combined = combine(aggregate_player_stats(tables), "dana@example.com")

    assert combined.name == "dana@example.com"
    assert combined.tables_played == 2
    assert combined.net_result == Decimal("100")
    assert combined.largest_win == Decimal("150")
    assert combined.largest_loss == Decimal("-50")


def test_empty_stats_have_zero_averages():
    assert combine([], "nobody").avg_buy_in == 0


def play_and_close(db, group, results):
    table = TableManager.create_table(db, EDITOR, group.id, "Game", 1, 2)
    for name, buy_in, cash_out in results:
        player = PlayerManager.add_player(db, EDITOR, table.id, name)
        PlayerManager.add_buy_in(db, EDITOR, table.id, player.id, buy_in)
        PlayerManager.cash_out(db, EDITOR, table.id, player.id, cash_out)
    TableManager.toggle_table_status(db, EDITOR, table.id)
    return table


def test_group_statistics(db, group):
    play_and_close(db, group, [("Dana", 100, 150), ("Eli", 100, 50)])
    TableManager.create_table(db, EDITOR, group.id, "Open", 1, 2)

    stats = get_group_statistics(db, group.id)

    assert [(s.name, s.net_result) for s in stats] == [("Dana", Decimal("50")), ("Eli", Decimal("-50"))]


def test_user_statistics_follow_aliases(db, group):
    play_and_close(db, group, [("Dana", 100, 150), ("Eli", 100, 50)])
    play_and_close(db, group, [("DANA", 50, 0), ("Eli", 50, 100)])

    assert get_user_statistics(db, OWNER.user_id, [group.id]).tables_played == 0

    AliasManager.add_alias(db, OWNER, "Dana")
    stats = get_user_statistics(db, OWNER.user_id, [group.id], display_name="Dana B.")

    assert stats.name == "Dana B."
    assert stats.tables_played == 2
    assert stats.net_result == Decimal("0")
    # groups the user cannot see are left out
    assert get_user_statistics(db, OWNER.user_id, []).tables_played == 0


class TestAliases:

    def test_alias_names_are_lower_cased_and_unique(self, db):
        alias = AliasManager.add_alias(db, OWNER, "  Dana ")
        assert alias.player_name == "dana"

        with pytest.raises(DuplicateConflict):
            AliasManager.add_alias(db, OWNER, "DANA")

    def test_aliases_are_per_user(self, db):
        AliasManager.add_alias(db, OWNER, "Dana")
        AliasManager.add_alias(db, EDITOR, "Dana")

        assert [a.player_name for a in AliasManager.list_aliases(db, OWNER)] == ["dana"]

    def test_remove_alias(self, db):
        AliasManager.add_alias(db, OWNER, "Dana")
        AliasManager.remove_alias(db, OWNER, "dana")

        assert AliasManager.list_aliases(db, OWNER) == []
        with pytest.raises(NotFound):
            AliasManager.remove_alias(db, OWNER, "dana")
