from types import SimpleNamespace

from conftest import run
from config import settings
from database import PlayerStatus, Tier
from services.roster import RosterAssigner, allocate_roster, order_clans, rank_players
from services.warlog_models import PlayerInfo


def clan(id, war_trophies):
    return SimpleNamespace(id=id, war_trophies=war_trophies)


def test_allocation_fills_clans_then_overflows():
    clans = [clan(1, 4000), clan(2, 5000)]
    allocation = allocate_roster([30, 10, 20], clans, capacity=1)
    assert allocation == {30: 2, 10: 1, 20: None}


def test_clans_ordered_by_trophies_then_id():
    ordered = order_clans([clan(3, 4000), clan(2, 5000), clan(1, 4000)])
    assert [c.id for c in ordered] == [2, 1, 3]


def test_ranking_breaks_ties_by_player_id_and_puts_unranked_last():
    standard = {5: 200.0, 3: 200.0, 9: 250.0}
    assert rank_players([1, 3, 5, 9, 2], [standard]) == [9, 3, 5, 1, 2]


def test_ranking_uses_tier_priority():
    high = {4: 100.0}
    standard = {1: 300.0, 4: 900.0}
    assert rank_players([1, 4], [high, standard]) == [4, 1]


def seed(db, players_with_averages, clans=(("CLANA", 5000), ("CLANB", 4000))):
    clan_ids = [run(db.add_clan(tag, f"Clan {tag}", trophies)).id for tag, trophies in clans]
    player_ids = []
    for tag, average in players_with_averages:
        player_id, _ = run(db.get_or_create_player(tag, f"Player {tag}", clan_ids[0]))
        if average is not None:
            run(db.upsert_player_average(player_id, Tier.STANDARD, average, 8, clan_ids[0]))
        player_ids.append(player_id)
    return clan_ids, player_ids


def test_two_clans_capacity_one_three_players(db):
    (clan_a, clan_b), (p1, p2, p3) = seed(db, [("P1", 250.0), ("P2", 200.0), ("P3", 150.0)])

    result = run(RosterAssigner(db, tiers=[Tier.STANDARD]).assign(20, 1, capacity=1))

    assert result.success
    assert result.data["assigned"] == 2
    assert result.data["overflow"] == 1
    rows = {row.player_id: row for row in run(db.get_roster_assignments(20, 1))}
    assert rows[p1].clan_id == clan_a
    assert rows[p2].clan_id == clan_b
    assert rows[p3].clan_id is None
    assert rows[p3].updated_by == "AutoRoster-Overflow"
    assert rows[p1].updated_by == "AutoRoster"
    # Every player was seeded into clan A
    assert rows[p1].is_in_clan
    assert not rows[p2].is_in_clan
    assert not rows[p3].is_in_clan


def test_rerun_updates_rows_without_duplicates(db):
    (clan_a, clan_b), (p1, p2) = seed(db, [("P1", 250.0), ("P2", 200.0)])
    assigner = RosterAssigner(db, tiers=[Tier.STANDARD])
    run(assigner.assign(20, 1, capacity=1))

    # P2 overtakes P1
    run(db.upsert_player_average(p2, Tier.STANDARD, 300.0, 8, clan_a))
    result = run(assigner.assign(20, 1, capacity=1))

    assert result.data["created"] == 0
    assert result.data["updated"] == 2
    rows = {row.player_id: row for row in run(db.get_roster_assignments(20, 1))}
    assert len(rows) == 2
    assert rows[p2].clan_id == clan_a
    assert rows[p1].clan_id == clan_b


def test_other_periods_are_untouched(db):
    seed(db, [("P1", 250.0)])
    assigner = RosterAssigner(db, tiers=[Tier.STANDARD])
    run(assigner.assign(20, 1))
    run(assigner.assign(20, 2))

    assert len(run(db.get_roster_assignments(20, 1))) == 1
    assert run(db.get_roster_periods()) == [(20, 2), (20, 1)]


def test_l2w_players_are_unassigned_and_inactive_skipped(db):
    _, (p1, p2, p3) = seed(db, [("P1", 250.0), ("P2", 300.0), ("P3", 400.0)])
    run(db.update_player_status(p2, PlayerStatus.LEFT_TWO_WEEKS, "admin"))
    run(db.update_player_status(p3, PlayerStatus.INACTIVE, "admin"))

    result = run(RosterAssigner(db, tiers=[Tier.STANDARD]).assign(20, 1))

    assert result.data["left_two_weeks"] == 1
    rows = {row.player_id: row for row in run(db.get_roster_assignments(20, 1))}
    assert set(rows) == {p1, p2}
    assert rows[p2].clan_id is None
    assert rows[p2].updated_by == "AutoRoster-L2W"


def test_assign_without_clans_fails(db):
    result = run(RosterAssigner(db).assign(20, 1))
    assert not result.success


def test_backup_copies_working_roster_once(db):
    (clan_a, _), _ = seed(db, [("P1", 250.0), ("P2", 200.0)])
    run(db.add_clan_histories(clan_a, [(20, 3, 5000), (20, 2, 4900)]))
    assigner = RosterAssigner(db, tiers=[Tier.STANDARD])
    run(assigner.assign(settings.CURRENT_ROSTER_SEASON, settings.CURRENT_ROSTER_WEEK))

    first = run(assigner.backup_current_roster())
    second = run(assigner.backup_current_roster())

    assert first.data == {"copied": 2}
    assert second.success
    assert second.data == {"copied": 0}
    assert len(run(db.get_roster_assignments(20, 3))) == 2


def test_backup_without_history_fails(db):
    assert not run(RosterAssigner(db).backup_current_roster()).success


def test_refresh_in_clan_status(db, client):
    (clan_a, clan_b), (p1, p2) = seed(db, [("P1", 250.0), ("P2", 200.0)])
    assigner = RosterAssigner(db, client, tiers=[Tier.STANDARD])
    run(assigner.assign(20, 1, capacity=1))
    # P1 left clan A, P2 joined clan B
    client.players["P1"] = PlayerInfo(tag="P1", name="Player P1", clan_tag=None)
    client.players["P2"] = PlayerInfo(tag="P2", name="Player P2", clan_tag="CLANB")

    result = run(assigner.refresh_in_clan_status(20, 1))

    assert result.data == {"checked": 2, "changed": 2, "failed": 0}
    rows = {row.player_id: row for row in run(db.get_roster_assignments(20, 1))}
    assert not rows[p1].is_in_clan
    assert rows[p2].is_in_clan


def test_manual_assignment_update(db):
    (clan_a, clan_b), (p1,) = seed(db, [("P1", 250.0)])
    assigner = RosterAssigner(db, tiers=[Tier.STANDARD])
    run(assigner.assign(20, 1))
    row = run(db.get_roster_assignments(20, 1))[0]

    assert run(assigner.update_assignment(row.id, clan_b, "admin")).success
    assert not run(assigner.update_assignment(row.id, 999, "admin")).success
    assert run(db.get_roster_assignments(20, 1, clan_id=clan_b))[0].updated_by == "admin"

    assert run(assigner.update_assignment(row.id, None, "admin")).success
    assert len(run(db.get_roster_assignments(20, 1, unassigned_only=True))) == 1
