"""Tests for the score store: CRUD, cascade delete, upsert, transactions, errors."""
import asyncio
from contextlib import aclosing
from pathlib import Path

import pytest

from tarot_scores import records
from tarot_scores.config import StoreConfig
from tarot_scores.contracts import Contract
from tarot_scores.errors import InvalidRound, NotFound, StoreError, StoreUnavailable
from tarot_scores.models import Round
from tarot_scores.schema import GAME_PLAYERS, ROUNDS
from tarot_scores.scoring import compute_totals
from tarot_scores.store import DEFAULT_GAME_NAME, Store, open_store


async def _make_game(store: Store, names=("Ann", "Bob", "Cid", "Dan")) -> tuple[int, list[int]]:
    game_id = await store.create_game()
    player_ids = await store.set_players(game_id, list(names))
    return game_id, player_ids


async def test_empty_store_lists_nothing(store: Store):
    assert await store.list_games() == []


async def test_create_game_defaults(store: Store, clock):
    expected_ts = clock.now
    game_id = await store.create_game()

    agg = await store.get_game(game_id)
    assert agg is not None
    assert agg.game.id == game_id
    assert agg.game.name == DEFAULT_GAME_NAME
    assert agg.game.created == expected_ts
    assert agg.game.modified == expected_ts
    assert agg.players == [] and agg.rounds == []
    assert agg.needs_setup


async def test_list_games_by_creation_time(store: Store):
    ids = [await store.create_game() for _ in range(3)]
    games = await store.list_games()
    assert [g.id for g in games] == ids
    assert games[0].created < games[1].created < games[2].created


async def test_iter_games_matches_list_games(store: Store):
    for _ in range(3):
        await store.create_game()
    assert [g async for g in store.iter_games()] == await store.list_games()


async def test_closing_iter_games_early_releases_store(store: Store):
    first = await store.create_game()
    await store.create_game()
    async with aclosing(store.iter_games()) as games:
        async for game in games:
            assert game.id == first
            break
    # Store is usable again once the iterator is closed
    assert len(await store.list_games()) == 2


async def test_ids_are_monotonic_after_delete(store: Store):
    first = await store.create_game()
    await store.remove_game(first)
    second = await store.create_game()
    assert second > first


async def test_get_missing_game_is_none(store: Store):
    assert await store.get_game(404) is None


async def test_rename_game_keeps_modified(store: Store):
    game_id = await store.create_game()
    before = (await store.get_game(game_id)).game

    await store.rename_game(game_id, "Sunday league")

    after = (await store.get_game(game_id)).game
    assert after.name == "Sunday league"
    assert after.modified == before.modified
    assert after.created == before.created


async def test_rename_missing_game_raises(store: Store):
    with pytest.raises(NotFound) as exc_info:
        await store.rename_game(404, "Nope")
    assert exc_info.value.kind == "game"
    assert exc_info.value.id == 404


async def test_set_players_in_order(store: Store):
    game_id, player_ids = await _make_game(store)
    agg = await store.get_game(game_id)
    assert [p.name for p in agg.players] == ["Ann", "Bob", "Cid", "Dan"]
    assert [p.id for p in agg.players] == player_ids
    assert all(p.game == game_id for p in agg.players)
    assert not agg.needs_setup


async def test_set_players_twice_appends(store: Store):
    game_id, _ = await _make_game(store)
    await store.set_players(game_id, ["Ann", "Bob", "Cid", "Dan"])
    agg = await store.get_game(game_id)
    assert len(agg.players) == 8


async def test_set_players_unknown_game(store: Store):
    with pytest.raises(NotFound):
        await store.set_players(404, ["Ann"])


async def test_set_round_inserts_and_overwrites(store: Store):
    game_id, (ann, bob, _, _) = await _make_game(store)
    r = Round(game=game_id, attacker=ann, contract=Contract.PETITE, attack_oudlers=1, attack_score=60)

    round_id = await store.set_round(r)
    assert round_id is not None

    edited = Round(
        id=round_id, game=game_id, attacker=bob, contract=Contract.GARDE,
        attack_oudlers=2, attack_score=30,
    )
    assert await store.set_round(edited) == round_id

    agg = await store.get_game(game_id)
    assert agg.rounds == [edited]


async def test_set_round_same_values_is_idempotent(store: Store):
    game_id, (ann, *_) = await _make_game(store)
    r = Round(game=game_id, attacker=ann, contract=Contract.GARDE_SANS, attack_oudlers=3, attack_score=40)
    r.id = await store.set_round(r)
    before = await store.get_game(game_id)

    assert await store.set_round(r) == r.id
    assert await store.set_round(r) == r.id

    assert await store.get_game(game_id) == before


async def test_set_round_with_new_explicit_id_inserts(store: Store):
    game_id, (ann, *_) = await _make_game(store)
    r = Round(id=42, game=game_id, attacker=ann, contract=Contract.PETITE, attack_score=56)
    assert await store.set_round(r) == 42
    assert [x.id for x in (await store.get_game(game_id)).rounds] == [42]


async def test_set_round_rejects_foreign_players(store: Store):
    game_a, (ann, *_) = await _make_game(store)
    game_b, (other, *_) = await _make_game(store, ("Eve", "Fay", "Gus", "Hal"))

    with pytest.raises(InvalidRound):
        await store.set_round(Round(game=game_a, attacker=other, contract=Contract.PETITE))
    with pytest.raises(InvalidRound):
        await store.set_round(Round(game=game_a, attacker=ann, called=other, contract=Contract.PETITE))
    assert (await store.get_game(game_a)).rounds == []


async def test_set_round_cannot_move_round_to_another_game(store: Store):
    game_a, (ann, *_) = await _make_game(store)
    game_b, (eve, *_) = await _make_game(store, ("Eve", "Fay", "Gus", "Hal"))
    round_id = await store.set_round(Round(game=game_a, attacker=ann, contract=Contract.PETITE))

    with pytest.raises(InvalidRound):
        await store.set_round(Round(id=round_id, game=game_b, attacker=eve, contract=Contract.PETITE))


async def test_set_round_unknown_game(store: Store):
    with pytest.raises(NotFound):
        await store.set_round(Round(game=404, attacker=1, contract=Contract.PETITE))


async def test_rounds_come_back_in_storage_order(store: Store):
    game_id, ids = await _make_game(store, ("A", "B", "C", "D", "E"))
    saved = []
    for i, attacker in enumerate(ids):
        saved.append(await store.set_round(
            Round(game=game_id, attacker=attacker, called=ids[(i + 1) % 5], contract=Contract.GARDE, attack_score=60)
        ))
    agg = await store.get_game(game_id)
    assert [r.id for r in agg.rounds] == saved
    assert sum(compute_totals(agg.players, agg.rounds).values()) == 0


async def test_remove_game_cascades(store: Store):
    game_id, (ann, *_) = await _make_game(store)
    await store.set_round(Round(game=game_id, attacker=ann, contract=Contract.PETITE))
    keep_id, (eve, *_) = await _make_game(store, ("Eve", "Fay", "Gus", "Hal"))
    await store.set_round(Round(game=keep_id, attacker=eve, contract=Contract.PETITE))

    await store.remove_game(game_id)

    assert await store.get_game(game_id) is None
    async with store.transaction() as conn:
        assert [r async for r in records.scan(conn, GAME_PLAYERS, index="game", key=game_id)] == []
        assert [r async for r in records.scan(conn, ROUNDS, index="game", key=game_id)] == []

    kept = await store.get_game(keep_id)
    assert len(kept.players) == 4 and len(kept.rounds) == 1
    assert [g.id for g in await store.list_games()] == [keep_id]


async def test_remove_missing_game_is_noop(store: Store):
    await store.remove_game(404)
    await store.remove_game(404)


async def test_failed_transaction_leaves_no_partial_cascade(store: Store):
    game_id, (ann, *_) = await _make_game(store)
    await store.set_round(Round(game=game_id, attacker=ann, contract=Contract.PETITE))

    with pytest.raises(RuntimeError):
        async with store.transaction("readwrite") as conn:
            await records.delete_game_cascade(conn, game_id)
            raise RuntimeError("interrupted")

    agg = await store.get_game(game_id)
    assert len(agg.players) == 4 and len(agg.rounds) == 1


async def test_driver_error_becomes_store_error_and_rolls_back(store: Store):
    with pytest.raises(StoreError) as exc_info:
        async with store.transaction("readwrite") as conn:
            await records.insert_game(conn, "Half", "2024-01-01T00:00:00+00:00", "2024-01-01T00:00:00+00:00")
            await conn.execute("INSERT INTO games (name) VALUES ('no timestamps')")
    assert exc_info.value.operation == "readwrite"
    assert await store.list_games() == []


async def test_reads_never_see_half_deleted_game(store: Store):
    game_id, (ann, bob, *_) = await _make_game(store)
    await store.set_round(Round(game=game_id, attacker=ann, contract=Contract.PETITE))
    await store.set_round(Round(game=game_id, attacker=bob, contract=Contract.GARDE))

    results = await asyncio.gather(
        store.get_game(game_id),
        store.remove_game(game_id),
        store.get_game(game_id),
        store.get_game(game_id),
    )
    for agg in (results[0], results[2], results[3]):
        assert agg is None or (len(agg.players) == 4 and len(agg.rounds) == 2)
    assert results[-1] is None


async def test_closed_store_is_unavailable(tmp_path: Path):
    store = await Store.open(StoreConfig.in_directory(tmp_path, seed=False))
    await store.close()
    assert store.closed
    with pytest.raises(StoreUnavailable):
        await store.list_games()


async def test_operation_queued_behind_close_is_unavailable(store: Store):
    async with store.transaction("readonly"):
        waiting = asyncio.create_task(store.list_games())
        await asyncio.sleep(0)
    await store.close()
    with pytest.raises(StoreUnavailable):
        await waiting


async def test_unopenable_path_is_unavailable(tmp_path: Path):
    cfg = StoreConfig(path=tmp_path / "missing" / "dir" / "scores.sqlite3", seed=False)
    with pytest.raises(StoreUnavailable):
        await Store.open(cfg)


async def test_open_store_context_closes(tmp_path: Path):
    async with open_store(StoreConfig.in_directory(tmp_path, seed=False)) as store:
        await store.create_game()
    assert store.closed


def test_store_config_dict_round_trip(tmp_path: Path):
    cfg = StoreConfig.in_directory(tmp_path, seed=False)
    restored = StoreConfig.from_dict(cfg.to_dict())
    assert restored.database == cfg.database
    assert restored.seed is False
    assert StoreConfig.from_dict({}).seed is True
