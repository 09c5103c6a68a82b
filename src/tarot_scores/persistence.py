"""
Game serialization for import/export.

Exports and imports a game aggregate (game + players + rounds) to/from
JSON-compatible dicts. The seed fixtures are written in the same format.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict

from .contracts import Contract
from .models import Game, GameAggregate, Player, Round

EXPORT_SCHEMA_VERSION = 1
EXPORT_TYPE = "tarot_game_export"


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC; naive datetimes are taken to be UTC already."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def parse_timestamp(s: str) -> datetime:
    ts = datetime.fromisoformat(s)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _game_to_dict(game: Game) -> Dict[str, Any]:
    return {
        "id": game.id,
        "name": game.name,
        "created": format_timestamp(game.created),
        "modified": format_timestamp(game.modified),
    }


def _game_from_dict(d: Dict[str, Any]) -> Game:
    return Game(
        id=int(d["id"]),
        name=d["name"],
        created=parse_timestamp(d["created"]),
        modified=parse_timestamp(d.get("modified", d["created"])),
    )


def _player_to_dict(player: Player) -> Dict[str, Any]:
    return {"id": player.id, "game": player.game, "name": player.name}


def _player_from_dict(d: Dict[str, Any]) -> Player:
    return Player(id=int(d["id"]), game=int(d["game"]), name=d["name"])


def _round_to_dict(round: Round) -> Dict[str, Any]:
    return {
        "id": round.id,
        "game": round.game,
        "attacker": round.attacker,
        "called": round.called,
        "contract": round.contract.label,
        "attackOudlers": round.attack_oudlers,
        "attackScore": round.attack_score,
    }


def _round_from_dict(d: Dict[str, Any]) -> Round:
    called = d.get("called")
    return Round(
        id=int(d["id"]) if d.get("id") is not None else None,
        game=int(d["game"]),
        attacker=int(d["attacker"]),
        called=int(called) if called is not None else None,
        contract=Contract.from_label(d["contract"]),
        attack_oudlers=int(d.get("attackOudlers", 0)),
        attack_score=int(d.get("attackScore", 0)),
    )


def aggregate_to_dict(aggregate: GameAggregate) -> Dict[str, Any]:
    """
    Serialize a game with its players and rounds to a JSON-compatible dict.

    Returns:
        Dict with type, schema_version, exported_at, game, players, rounds.
    """
    return {
        "type": EXPORT_TYPE,
        "schema_version": EXPORT_SCHEMA_VERSION,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "game": _game_to_dict(aggregate.game),
        "players": [_player_to_dict(p) for p in aggregate.players],
        "rounds": [_round_to_dict(r) for r in aggregate.rounds],
    }


def aggregate_from_dict(d: Dict[str, Any]) -> GameAggregate:
    """
    Deserialize a game aggregate from a dict (e.g. from JSON).

    Raises ValueError if the payload is not a game export.
    """
    if d.get("type") != EXPORT_TYPE:
        raise ValueError("Not a Tarot game export")
    if int(d.get("schema_version", 0)) > EXPORT_SCHEMA_VERSION:
        raise ValueError(f"Unsupported export schema_version {d['schema_version']}")
    return GameAggregate(
        game=_game_from_dict(d["game"]),
        players=[_player_from_dict(p) for p in d.get("players", [])],
        rounds=[_round_from_dict(r) for r in d.get("rounds", [])],
    )


def aggregate_to_json(aggregate: GameAggregate) -> str:
    return json.dumps(aggregate_to_dict(aggregate), indent=2)


def aggregate_from_json(s: str) -> GameAggregate:
    return aggregate_from_dict(json.loads(s))


__all__ = [
    "aggregate_to_dict",
    "aggregate_from_dict",
    "aggregate_to_json",
    "aggregate_from_json",
    "format_timestamp",
    "parse_timestamp",
    "EXPORT_SCHEMA_VERSION",
]
