"""
Records kept by the score store: games, their players, and their rounds.

A Round is validated once, when it is built: oudlers and attack score are
clamped to their ranges and the contract is normalized to a Contract.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from .contracts import Contract, coerce_contract

TOTAL_POINTS = 91  # card points per deal
MAX_OUDLERS = 3

GameId = int
PlayerId = int
RoundId = int


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


@dataclass
class Game:
    """One scoring session."""

    id: GameId
    name: str
    created: datetime
    modified: datetime


@dataclass
class Player:
    id: PlayerId
    game: GameId
    name: str


@dataclass
class Round:
    """
    One deal as entered by the players.

    `called` is the partner named by the attacker in 5-player games (possibly the
    attacker themself); it is ignored at other table sizes. `id` is None until the
    round has been saved.
    """

    game: GameId
    attacker: PlayerId
    contract: Contract
    attack_oudlers: int = 0
    attack_score: int = 0
    called: PlayerId | None = None
    id: RoundId | None = None

    def __post_init__(self) -> None:
        self.contract = coerce_contract(self.contract)
        self.attack_oudlers = clamp(self.attack_oudlers, 0, MAX_OUDLERS)
        self.attack_score = clamp(self.attack_score, 0, TOTAL_POINTS)

    @property
    def defense_score(self) -> int:
        return TOTAL_POINTS - self.attack_score

    def set_attack_score(self, score: int) -> None:
        self.attack_score = clamp(score, 0, TOTAL_POINTS)

    def set_defense_score(self, score: int) -> None:
        """Enter the defense's points instead; the attack gets the complement."""
        self.set_attack_score(TOTAL_POINTS - clamp(score, 0, TOTAL_POINTS))

    def set_oudlers(self, oudlers: int) -> None:
        self.attack_oudlers = clamp(oudlers, 0, MAX_OUDLERS)


@dataclass
class GameAggregate:
    """A game read together with its players and rounds (one consistent snapshot)."""

    game: Game
    players: List[Player] = field(default_factory=list)
    rounds: List[Round] = field(default_factory=list)

    @property
    def needs_setup(self) -> bool:
        """No players and no rounds yet: the roster has not been entered."""
        return not self.players and not self.rounds

    @property
    def players_by_id(self) -> Dict[PlayerId, Player]:
        return {p.id: p for p in self.players}
