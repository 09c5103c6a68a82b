"""
Sample games inserted into a fresh store.

Seeding is gated on the store having no games at all: a store whose games were
all deleted gets the samples again the next time it is opened.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List

from . import records
from .models import GameAggregate
from .persistence import EXPORT_SCHEMA_VERSION, EXPORT_TYPE, aggregate_from_dict

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


def _fixture(game: Dict[str, Any], players: List[str], first_player_id: int, rounds: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "type": EXPORT_TYPE,
        "schema_version": EXPORT_SCHEMA_VERSION,
        "game": game,
        "players": [
            {"id": first_player_id + i, "game": game["id"], "name": name}
            for i, name in enumerate(players)
        ],
        "rounds": [dict(r, game=game["id"]) for r in rounds],
    }


# Timestamps carry no zone and are stored as UTC
FIXTURES: List[Dict[str, Any]] = [
    _fixture(
        {"id": 1, "name": "Game 1", "created": "2021-11-27T23:32:27", "modified": "2021-11-28T02:07:15"},
        ["Alice", "Bob", "Chloé", "David"],
        first_player_id=1,
        rounds=[
            {"id": 1, "attacker": 1, "contract": "petite", "attackOudlers": 1, "attackScore": 60},
            {"id": 2, "attacker": 2, "contract": "garde", "attackOudlers": 2, "attackScore": 38},
            {"id": 3, "attacker": 4, "contract": "garde sans", "attackOudlers": 3, "attackScore": 47},
        ],
    ),
    _fixture(
        {"id": 2, "name": "Game 2", "created": "2021-11-29T01:45:39", "modified": "2021-11-29T05:57:31"},
        ["Alice", "Bob", "Chloé", "David", "Emma"],
        first_player_id=5,
        rounds=[
            {"id": 4, "attacker": 5, "called": 6, "contract": "petite", "attackOudlers": 0, "attackScore": 50},
            {"id": 5, "attacker": 8, "called": 8, "contract": "garde", "attackOudlers": 2, "attackScore": 52},
        ],
    ),
]


def fixture_aggregates() -> List[GameAggregate]:
    return [aggregate_from_dict(d) for d in FIXTURES]


async def seed_if_empty(store: "Store") -> bool:
    """Insert the sample games if the store has no game. Returns True if it did."""
    async with store.transaction("readwrite") as conn:
        if await records.has_games(conn):
            return False
        for aggregate in fixture_aggregates():
            await records.insert_aggregate(conn, aggregate, keep_ids=True)
    logger.info("Seeded empty store with %d sample games", len(FIXTURES))
    return True
