from types import SimpleNamespace

import pytest

from conftest import run
from database import PlayerStatus, Tier
from services.averages import AverageAggregator, compute_average


def add_history(db, clan_tag, trophies_by_period, clan_trophies=5000):
    """Create a clan with snapshots; returns {(season, week): snapshot_id} and the clan id"""
    clan = run(db.add_clan(clan_tag, f"Clan {clan_tag}", clan_trophies))
    run(db.add_clan_histories(clan.id, [(s, w, t) for (s, w), t in trophies_by_period.items()]))
    ids = {period: run(db.get_clan_history(clan.id, *period)).id for period in trophies_by_period}
    return clan.id, ids


def add_records(db, player_id, snapshot_stats):
    records = [
        {'player_id': player_id, 'clan_history_id': snapshot_id, 'fame': fame,
         'decks_used': decks, 'boat_attacks': 0, 'updated_by': 'System'}
        for snapshot_id, fame, decks in snapshot_stats
    ]
    run(db.add_player_war_histories(records))


def new_player(db, tag, clan_id=None):
    player_id, _ = run(db.get_or_create_player(tag, f"Player {tag}", clan_id))
    return player_id


def test_compute_average_rounds_and_takes_newest_clan():
    rows = [
        (SimpleNamespace(fame=1000, decks_used=3), SimpleNamespace(clan_id=7)),
        (SimpleNamespace(fame=500, decks_used=3), SimpleNamespace(clan_id=2)),
    ]
    assert compute_average(rows) == (250.0, 6, 7)

    rows = [(SimpleNamespace(fame=100, decks_used=3), SimpleNamespace(clan_id=1))]
    assert compute_average(rows) == (33.33, 3, 1)


def test_zero_attacks_average_is_zero():
    rows = [(SimpleNamespace(fame=0, decks_used=0), SimpleNamespace(clan_id=1))]
    assert compute_average(rows) == (0, 0, 1)


def test_recompute_writes_average_per_tier(db):
    clan_id, ids = add_history(db, "HIGH1", {(10, 3): 5200, (10, 2): 5000, (10, 1): 4999})
    player_id = new_player(db, "P1", clan_id)
    add_records(db, player_id, [(ids[(10, 3)], 800, 4), (ids[(10, 2)], 900, 4), (ids[(10, 1)], 300, 4)])
    aggregator = AverageAggregator(db, threshold=5000)

    high = run(aggregator.recompute(Tier.HIGH, 4))
    standard = run(aggregator.recompute(Tier.STANDARD, 4))

    assert high.success and standard.success
    high_row = run(db.get_player_average(player_id, Tier.HIGH))
    assert (high_row.fame_attack_average, high_row.attacks, high_row.clan_id) == (212.5, 8, clan_id)
    standard_row = run(db.get_player_average(player_id, Tier.STANDARD))
    assert (standard_row.fame_attack_average, standard_row.attacks) == (75.0, 4)


def test_window_keeps_most_recent_periods(db):
    clan_id, ids = add_history(db, "CLAN1", {(10, 3): 3000, (10, 2): 3000, (10, 1): 3000})
    player_id = new_player(db, "P1", clan_id)
    add_records(db, player_id, [(ids[(10, 3)], 400, 4), (ids[(10, 2)], 800, 4), (ids[(10, 1)], 4, 4)])

    run(AverageAggregator(db, threshold=5000).recompute(Tier.STANDARD, 2))

    row = run(db.get_player_average(player_id, Tier.STANDARD))
    assert (row.fame_attack_average, row.attacks) == (150.0, 8)


def test_zero_attacks_in_window_still_writes_row(db):
    clan_id, ids = add_history(db, "CLAN1", {(10, 3): 3000})
    player_id = new_player(db, "P1", clan_id)
    add_records(db, player_id, [(ids[(10, 3)], 100, 0)])

    result = run(AverageAggregator(db, threshold=5000).recompute(Tier.STANDARD, 4))

    assert result.data["updated"] == 1
    row = run(db.get_player_average(player_id, Tier.STANDARD))
    assert (row.fame_attack_average, row.attacks) == (0, 0)


def test_no_records_in_window_leaves_previous_average(db):
    clan_id, ids = add_history(db, "HIGH1", {(10, 3): 6000})
    player_id = new_player(db, "P1", clan_id)
    add_records(db, player_id, [(ids[(10, 3)], 800, 4)])
    run(db.upsert_player_average(player_id, Tier.STANDARD, 150.0, 12, clan_id))

    result = run(AverageAggregator(db, threshold=5000).recompute(Tier.STANDARD, 4))

    assert result.data == {"updated": 0, "skipped": 1, "failed": 0}
    row = run(db.get_player_average(player_id, Tier.STANDARD))
    assert (row.fame_attack_average, row.attacks) == (150.0, 12)


def test_inactive_players_are_not_averaged(db):
    clan_id, ids = add_history(db, "CLAN1", {(10, 3): 3000})
    active_id = new_player(db, "P1", clan_id)
    inactive_id = new_player(db, "P2", clan_id)
    add_records(db, active_id, [(ids[(10, 3)], 400, 4)])
    add_records(db, inactive_id, [(ids[(10, 3)], 800, 4)])
    run(db.update_player_status(inactive_id, PlayerStatus.INACTIVE, "admin"))

    run(AverageAggregator(db, threshold=5000).recompute(Tier.STANDARD, 4))

    assert run(db.get_player_average(active_id, Tier.STANDARD)) is not None
    assert run(db.get_player_average(inactive_id, Tier.STANDARD)) is None


def test_two_clans_in_same_week_both_count(db):
    low_id, low = add_history(db, "LOW1", {(10, 3): 3000, (10, 2): 3000})
    mid_id, mid = add_history(db, "MID1", {(10, 3): 3500})
    player_id = new_player(db, "P1", low_id)
    add_records(db, player_id, [(low[(10, 3)], 200, 2), (mid[(10, 3)], 600, 2), (low[(10, 2)], 1000, 4)])

    run(AverageAggregator(db, threshold=5000).recompute(Tier.STANDARD, 1))

    row = run(db.get_player_average(player_id, Tier.STANDARD))
    assert (row.fame_attack_average, row.attacks) == (200.0, 4)
    # Newest period tie goes to the higher-trophy snapshot
    assert row.clan_id == mid_id


@pytest.mark.parametrize("tier,weeks", [("elite", 4), (Tier.HIGH, 0), (Tier.HIGH, 11)])
def test_invalid_arguments_fail(db, tier, weeks):
    result = run(AverageAggregator(db).recompute(tier, weeks))
    assert not result.success
