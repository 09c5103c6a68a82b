"""
Row-level access to the record collections.

Everything here works on a connection that is already inside a transaction
(see ``Store.transaction``); nothing commits or rolls back.
"""
from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import aiosqlite

from .contracts import Contract
from .errors import InvalidRound
from .models import Game, GameAggregate, GameId, Player, PlayerId, Round
from .persistence import format_timestamp, parse_timestamp
from .schema import GAME_PLAYERS, GAMES, ROUNDS, Collection


def game_from_row(row: aiosqlite.Row) -> Game:
    return Game(
        id=row["id"],
        name=row["name"],
        created=parse_timestamp(row["created"]),
        modified=parse_timestamp(row["modified"]),
    )


def player_from_row(row: aiosqlite.Row) -> Player:
    return Player(id=row["id"], game=row["game"], name=row["name"])


def round_from_row(row: aiosqlite.Row) -> Round:
    return Round(
        id=row["id"],
        game=row["game"],
        attacker=row["attacker"],
        called=row["called"],
        contract=Contract.from_label(row["contract"]),
        attack_oudlers=row["attack_oudlers"],
        attack_score=row["attack_score"],
    )


async def scan(
    conn: aiosqlite.Connection,
    collection: Collection,
    *,
    index: Optional[str] = None,
    key: Any = None,
    order_by: Sequence[str] = ("id",),
) -> AsyncIterator[aiosqlite.Row]:
    """
    Lazily yield the rows of a collection, optionally restricted to one key of a
    secondary index. Rows come back in ``order_by`` order (primary key by default).
    """
    sql = f"SELECT * FROM {collection.name}"
    params: tuple = ()
    if index is not None:
        if index not in collection.indexes:
            raise ValueError(f"{collection.name} has no index on {index!r}")
        sql += f" WHERE {index} = ?"
        params = (key,)
    sql += " ORDER BY " + ", ".join(order_by)
    async with conn.execute(sql, params) as cursor:
        async for row in cursor:
            yield row


async def fetch_game(conn: aiosqlite.Connection, game_id: GameId) -> Optional[Game]:
    async with conn.execute(f"SELECT * FROM {GAMES.name} WHERE id = ?", (game_id,)) as cursor:
        row = await cursor.fetchone()
    return game_from_row(row) if row is not None else None


async def fetch_aggregate(conn: aiosqlite.Connection, game_id: GameId) -> Optional[GameAggregate]:
    game = await fetch_game(conn, game_id)
    if game is None:
        return None
    players = [player_from_row(r) async for r in scan(conn, GAME_PLAYERS, index="game", key=game_id)]
    rounds = [round_from_row(r) async for r in scan(conn, ROUNDS, index="game", key=game_id)]
    return GameAggregate(game=game, players=players, rounds=rounds)


async def has_games(conn: aiosqlite.Connection) -> bool:
    async with conn.execute(f"SELECT 1 FROM {GAMES.name} LIMIT 1") as cursor:
        return await cursor.fetchone() is not None


async def roster_ids(conn: aiosqlite.Connection, game_id: GameId) -> set[PlayerId]:
    return {r["id"] async for r in scan(conn, GAME_PLAYERS, index="game", key=game_id)}


def check_round_players(round: Round, roster: set[PlayerId]) -> None:
    """Attacker and called partner must both sit at the round's table."""
    if round.attacker not in roster:
        raise InvalidRound(f"Attacker {round.attacker} is not a player of game {round.game}")
    if round.called is not None and round.called not in roster:
        raise InvalidRound(f"Called player {round.called} is not a player of game {round.game}")


async def insert_game(
    conn: aiosqlite.Connection,
    name: str,
    created: str,
    modified: str,
    *,
    id: Optional[GameId] = None,
) -> GameId:
    async with conn.execute(
        f"INSERT INTO {GAMES.name} (id, name, created, modified) VALUES (?, ?, ?, ?)",
        (id, name, created, modified),
    ) as cursor:
        return cursor.lastrowid


async def insert_player(
    conn: aiosqlite.Connection,
    game_id: GameId,
    name: str,
    *,
    id: Optional[PlayerId] = None,
) -> PlayerId:
    async with conn.execute(
        f"INSERT INTO {GAME_PLAYERS.name} (id, game, name) VALUES (?, ?, ?)",
        (id, game_id, name),
    ) as cursor:
        return cursor.lastrowid


async def upsert_round(conn: aiosqlite.Connection, round: Round) -> int:
    """Insert the round, or overwrite the stored one with the same id."""
    async with conn.execute(
        f"""
        INSERT INTO {ROUNDS.name}
            (id, game, attacker, called, contract, attack_oudlers, attack_score)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (id) DO UPDATE SET
            game = excluded.game,
            attacker = excluded.attacker,
            called = excluded.called,
            contract = excluded.contract,
            attack_oudlers = excluded.attack_oudlers,
            attack_score = excluded.attack_score
        """,
        (
            round.id,
            round.game,
            round.attacker,
            round.called,
            round.contract.label,
            round.attack_oudlers,
            round.attack_score,
        ),
    ) as cursor:
        return round.id if round.id is not None else cursor.lastrowid


async def insert_aggregate(
    conn: aiosqlite.Connection,
    aggregate: GameAggregate,
    *,
    keep_ids: bool = False,
) -> GameId:
    """
    Insert a whole game (players, then rounds).

    With ``keep_ids`` the stored ids are the aggregate's own; otherwise fresh ids
    are generated and the rounds' player references are remapped to them.
    """
    game = aggregate.game
    game_id = await insert_game(
        conn,
        game.name,
        format_timestamp(game.created),
        format_timestamp(game.modified),
        id=game.id if keep_ids else None,
    )

    player_ids: Dict[PlayerId, PlayerId] = {}
    for player in aggregate.players:
        player_ids[player.id] = await insert_player(
            conn, game_id, player.name, id=player.id if keep_ids else None,
        )

    for r in aggregate.rounds:
        if r.attacker not in player_ids or (r.called is not None and r.called not in player_ids):
            raise InvalidRound(f"Round {r.id} references a player outside game {game.id}")
        await upsert_round(
            conn,
            Round(
                id=r.id if keep_ids else None,
                game=game_id,
                attacker=player_ids[r.attacker],
                called=player_ids[r.called] if r.called is not None else None,
                contract=r.contract,
                attack_oudlers=r.attack_oudlers,
                attack_score=r.attack_score,
            ),
        )
    return game_id


async def delete_game_cascade(conn: aiosqlite.Connection, game_id: GameId) -> int:
    """Delete a game's rounds, then its players, then the game. Returns rows removed."""
    removed = 0
    for sql in (
        f"DELETE FROM {ROUNDS.name} WHERE game = ?",
        f"DELETE FROM {GAME_PLAYERS.name} WHERE game = ?",
        f"DELETE FROM {GAMES.name} WHERE id = ?",
    ):
        async with conn.execute(sql, (game_id,)) as cursor:
            removed += cursor.rowcount
    return removed


__all__: List[str] = [
    "check_round_players",
    "delete_game_cascade",
    "fetch_aggregate",
    "fetch_game",
    "has_games",
    "insert_aggregate",
    "insert_game",
    "insert_player",
    "roster_ids",
    "scan",
    "upsert_round",
]
