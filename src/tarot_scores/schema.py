"""
Versioned on-disk schema.

The version lives in SQLite's ``user_version``. Opening a store runs every
migration step above the stored version, in one transaction; at the current
version nothing is executed.

Version history:
- 1: games, game_players, rounds, points
- 2: drop the unused points collection
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import aiosqlite

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


@dataclass(frozen=True)
class Collection:
    """One record collection: its table definition and its secondary indexes."""

    name: str
    columns: str
    indexes: Tuple[str, ...] = ()

    def create_statements(self) -> List[str]:
        stmts = [f"CREATE TABLE IF NOT EXISTS {self.name} ({self.columns})"]
        for column in self.indexes:
            stmts.append(
                f"CREATE INDEX IF NOT EXISTS {index_name(self.name, column)} "
                f"ON {self.name} ({column})"
            )
        return stmts


def index_name(collection: str, column: str) -> str:
    return f"{collection}_by_{column}"


GAMES = Collection(
    name="games",
    columns=(
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL, "
        "created TEXT NOT NULL, "
        "modified TEXT NOT NULL"
    ),
    indexes=("name", "created", "modified"),
)

GAME_PLAYERS = Collection(
    name="game_players",
    columns=(
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "game INTEGER NOT NULL REFERENCES games (id), "
        "name TEXT NOT NULL"
    ),
    indexes=("game", "name"),
)

ROUNDS = Collection(
    name="rounds",
    columns=(
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "game INTEGER NOT NULL REFERENCES games (id), "
        "attacker INTEGER NOT NULL REFERENCES game_players (id), "
        "called INTEGER REFERENCES game_players (id), "
        "contract TEXT NOT NULL, "
        "attack_oudlers INTEGER NOT NULL CHECK (attack_oudlers BETWEEN 0 AND 3), "
        "attack_score INTEGER NOT NULL CHECK (attack_score BETWEEN 0 AND 91)"
    ),
    indexes=("game",),
)

# Never read or written; only exists in version 1 databases
POINTS = Collection(
    name="points",
    columns="round_player_pair INTEGER PRIMARY KEY AUTOINCREMENT",
)

COLLECTIONS = (GAMES, GAME_PLAYERS, ROUNDS)

MIGRATIONS: Dict[int, List[str]] = {
    1: [stmt for c in (GAMES, GAME_PLAYERS, ROUNDS, POINTS) for stmt in c.create_statements()],
    2: ["DROP TABLE IF EXISTS points"],
}


async def get_schema_version(conn: aiosqlite.Connection) -> int:
    async with conn.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
    return int(row[0])


async def apply_schema(conn: aiosqlite.Connection, target: int = SCHEMA_VERSION) -> int:
    """
    Bring the database up to ``target`` and return the version it is now at.

    The connection must be in autocommit mode (isolation_level=None); the
    migration opens and commits its own transaction. A database already at
    ``target`` is left untouched. A database from a newer release raises
    StoreUnavailable, since its layout cannot be trusted.
    """
    current = await get_schema_version(conn)
    if current == target:
        return current
    if current > target:
        raise StoreUnavailable(
            f"Database schema version {current} is newer than supported version {target}"
        )

    logger.info("Upgrading database: %d -> %d", current, target)
    await conn.execute("BEGIN IMMEDIATE")
    try:
        for version in range(current + 1, target + 1):
            for statement in MIGRATIONS[version]:
                await conn.execute(statement)
        # PRAGMA does not accept bound parameters; target is an int
        await conn.execute(f"PRAGMA user_version = {int(target)}")
    except aiosqlite.Error as e:
        await conn.execute("ROLLBACK")
        logger.critical("Schema migration %d -> %d failed: %s", current, target, e)
        raise StoreUnavailable(f"Could not migrate database to version {target}") from e
    await conn.execute("COMMIT")
    return target


__all__ = [
    "COLLECTIONS",
    "GAMES",
    "GAME_PLAYERS",
    "ROUNDS",
    "SCHEMA_VERSION",
    "apply_schema",
    "get_schema_version",
    "index_name",
]
