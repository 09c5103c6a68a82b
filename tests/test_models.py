"""Tests for record construction: clamping, contract normalization, aggregate helpers."""
from datetime import datetime, timezone

from tarot_scores.contracts import CONTRACT_LABELS, CONTRACT_MULTIPLIERS, CONTRACT_NAMES, Contract
from tarot_scores.models import Game, GameAggregate, Player, Round


def _make_game() -> Game:
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Game(id=1, name="Friday", created=ts, modified=ts)


def test_every_contract_has_label_name_and_multiplier():
    assert set(CONTRACT_LABELS) == set(Contract)
    assert set(CONTRACT_NAMES) == set(Contract)
    assert set(CONTRACT_MULTIPLIERS) == set(Contract)


def test_contract_labels_round_trip():
    for contract in Contract:
        assert Contract.from_label(contract.label) is contract
    assert Contract.from_label("garde contre") is Contract.GARDE_CONTRE


def test_round_accepts_label_or_level():
    assert Round(game=1, attacker=1, contract="garde sans").contract is Contract.GARDE_SANS
    assert Round(game=1, attacker=1, contract=2).contract is Contract.GARDE


def test_round_clamps_out_of_range_values():
    r = Round(game=1, attacker=1, contract=Contract.PETITE, attack_oudlers=5, attack_score=120)
    assert r.attack_oudlers == 3
    assert r.attack_score == 91

    r = Round(game=1, attacker=1, contract=Contract.PETITE, attack_oudlers=-2, attack_score=-4)
    assert r.attack_oudlers == 0
    assert r.attack_score == 0


def test_round_setters_clamp():
    r = Round(game=1, attacker=1, contract=Contract.PETITE)
    r.set_oudlers(4)
    assert r.attack_oudlers == 3
    r.set_attack_score(100)
    assert r.attack_score == 91


def test_defense_score_is_complement():
    r = Round(game=1, attacker=1, contract=Contract.PETITE, attack_score=60)
    assert r.defense_score == 31

    r.set_defense_score(40)
    assert r.attack_score == 51
    assert r.defense_score == 40

    r.set_defense_score(200)
    assert r.attack_score == 0


def test_aggregate_needs_setup_until_players_exist():
    agg = GameAggregate(game=_make_game())
    assert agg.needs_setup

    agg.players.append(Player(id=1, game=1, name="Ann"))
    assert not agg.needs_setup
    assert agg.players_by_id[1].name == "Ann"
