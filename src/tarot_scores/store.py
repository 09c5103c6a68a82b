"""
Transactional score store over a local SQLite file.

A Store owns one aiosqlite connection in autocommit mode and runs every
operation inside an explicit transaction scope. Scopes on the shared
connection are serialized, so a reader never sees a game without its players
and rounds, and a cascade delete is all-or-nothing.

Usage::

    async with await Store.open(StoreConfig("scores.sqlite3")) as store:
        game_id = await store.create_game()
        await store.set_players(game_id, ["Ann", "Bob", "Cid", "Dan"])
        aggregate = await store.get_game(game_id)
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Literal, Optional, Sequence

import aiosqlite

from . import records
from .config import StoreConfig
from .errors import InvalidRound, NotFound, StoreError, StoreUnavailable
from .models import Game, GameAggregate, GameId, PlayerId, Round, RoundId
from .persistence import format_timestamp
from .schema import GAMES, ROUNDS, apply_schema
from .seed import seed_if_empty

logger = logging.getLogger(__name__)

DEFAULT_GAME_NAME = "New game"

TransactionMode = Literal["readonly", "readwrite"]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Store:
    """Games, players and rounds, with cascade delete and indexed lookups."""

    def __init__(self, conn: aiosqlite.Connection, *, clock: Clock | None = None):
        self._conn: Optional[aiosqlite.Connection] = conn
        self._lock = asyncio.Lock()
        self._clock = clock or _utcnow

    @classmethod
    async def open(cls, config: StoreConfig, *, clock: Clock | None = None) -> "Store":
        """
        Open (creating if needed) the database described by ``config``, bring its
        schema up to date and, if enabled, seed it when empty.

        Raises StoreUnavailable if the file cannot be opened or migrated.
        """
        try:
            conn = await aiosqlite.connect(config.database, isolation_level=None)
        except aiosqlite.Error as e:
            logger.critical("Could not open score database %s: %s", config.database, e)
            raise StoreUnavailable(f"Could not open score database {config.database}") from e

        try:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON")
            await apply_schema(conn)
        except aiosqlite.Error as e:
            await conn.close()
            logger.critical("Could not initialize score database %s: %s", config.database, e)
            raise StoreUnavailable(f"Could not initialize score database {config.database}") from e
        except StoreUnavailable:
            await conn.close()
            raise

        store = cls(conn, clock=clock)
        if config.seed:
            try:
                await seed_if_empty(store)
            except BaseException:
                await store.close()
                raise
        logger.debug("Opened score database %s", config.database)
        return store

    async def close(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.close()

    @property
    def closed(self) -> bool:
        return self._conn is None

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _require_open(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreUnavailable("Store is closed")
        return self._conn

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.execute("ROLLBACK")
        except aiosqlite.Error:
            logger.exception("Rollback failed")

    @asynccontextmanager
    async def transaction(self, mode: TransactionMode = "readonly") -> AsyncIterator[aiosqlite.Connection]:
        """
        One transaction scope. Commits when the block exits normally, rolls back
        on any exception. Driver errors are re-raised as StoreError.
        """
        async with self._lock:
            conn = self._require_open()
            try:
                await conn.execute("BEGIN IMMEDIATE" if mode == "readwrite" else "BEGIN")
            except aiosqlite.Error as e:
                logger.error("Could not begin %s transaction: %s", mode, e)
                raise StoreError("Could not begin transaction", mode) from e

            try:
                yield conn
            except aiosqlite.Error as e:
                await self._rollback(conn)
                logger.error("Rolled back %s transaction: %s", mode, e)
                raise StoreError("Database operation failed", mode) from e
            except BaseException:
                await self._rollback(conn)
                raise

            try:
                await conn.execute("COMMIT")
            except aiosqlite.Error as e:
                await self._rollback(conn)
                logger.error("Commit of %s transaction failed: %s", mode, e)
                raise StoreError("Commit failed", mode) from e

    # -- Games -----------------------------------------------------------------

    async def list_games(self) -> List[Game]:
        """All games, oldest first."""
        async with self.transaction("readonly") as conn:
            return [
                records.game_from_row(row)
                async for row in records.scan(conn, GAMES, order_by=("created", "id"))
            ]

    async def iter_games(self) -> AsyncIterator[Game]:
        """
        Yield games oldest first, one row at a time.

        The read transaction, and with it the store, stays locked until the
        iteration finishes; consume it fully or close it with
        ``contextlib.aclosing`` before calling other store operations.
        """
        async with self.transaction("readonly") as conn:
            async for row in records.scan(conn, GAMES, order_by=("created", "id")):
                yield records.game_from_row(row)

    async def get_game(self, game_id: GameId) -> Optional[GameAggregate]:
        """The game with its players and rounds, or None if there is no such game."""
        async with self.transaction("readonly") as conn:
            return await records.fetch_aggregate(conn, game_id)

    async def create_game(self) -> GameId:
        now = format_timestamp(self._clock())
        async with self.transaction("readwrite") as conn:
            game_id = await records.insert_game(conn, DEFAULT_GAME_NAME, now, now)
        logger.info("Created game %d", game_id)
        return game_id

    async def rename_game(self, game_id: GameId, name: str) -> None:
        """
        Rename a game. Raises NotFound if it does not exist.

        The modified timestamp is left as it was.
        """
        async with self.transaction("readwrite") as conn:
            async with conn.execute(
                f"UPDATE {GAMES.name} SET name = ? WHERE id = ?", (name, game_id),
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound("game", game_id)

    async def remove_game(self, game_id: GameId) -> None:
        """Delete a game with all its rounds and players. Missing ids are ignored."""
        async with self.transaction("readwrite") as conn:
            removed = await records.delete_game_cascade(conn, game_id)
        if removed:
            logger.info("Removed game %d (%d records)", game_id, removed)

    # -- Players and rounds ----------------------------------------------------

    async def set_players(self, game_id: GameId, names: Sequence[str]) -> List[PlayerId]:
        """
        Add one player per name to the game, in order, and return their new ids.

        Meant to run once, at setup: calling it again appends more players.
        """
        async with self.transaction("readwrite") as conn:
            if await records.fetch_game(conn, game_id) is None:
                raise NotFound("game", game_id)
            return [await records.insert_player(conn, game_id, name) for name in names]

    async def set_round(self, round: Round) -> RoundId:
        """
        Save a round: overwrite the stored round with the same id, or insert it
        with a new id when ``round.id`` is None. Returns the round's id.

        Raises NotFound for an unknown game and InvalidRound when the attacker or
        called player is not at that game's table, or the id belongs to a round
        of another game.
        """
        async with self.transaction("readwrite") as conn:
            if await records.fetch_game(conn, round.game) is None:
                raise NotFound("game", round.game)
            records.check_round_players(round, await records.roster_ids(conn, round.game))
            if round.id is not None:
                async with conn.execute(
                    f"SELECT game FROM {ROUNDS.name} WHERE id = ?", (round.id,),
                ) as cursor:
                    row = await cursor.fetchone()
                if row is not None and row["game"] != round.game:
                    raise InvalidRound(f"Round {round.id} belongs to game {row['game']}")
            return await records.upsert_round(conn, round)

    # -- Import ----------------------------------------------------------------

    async def import_game(self, aggregate: GameAggregate) -> GameId:
        """Store an exported game as a new game with fresh ids. Returns its id."""
        async with self.transaction("readwrite") as conn:
            game_id = await records.insert_aggregate(conn, aggregate, keep_ids=False)
        logger.info("Imported game %r as %d", aggregate.game.name, game_id)
        return game_id


@asynccontextmanager
async def open_store(config: StoreConfig, *, clock: Clock | None = None) -> AsyncIterator[Store]:
    """Open a store for the duration of a block and close it afterwards."""
    store = await Store.open(config, clock=clock)
    try:
        yield store
    finally:
        await store.close()


__all__ = ["DEFAULT_GAME_NAME", "Store", "open_store"]
