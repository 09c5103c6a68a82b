"""
Score calculation: minimum by Oudlers, (écart + 25) × contract multiplier, spread over the table.
FFT: 91 points per deal; just made = +25; Petite×1, Garde×2, Garde sans×4, Garde contre×6.

Pure functions only; nothing here touches the store.
"""
from __future__ import annotations

from typing import Dict, Iterable, NamedTuple, Sequence

from .contracts import Contract, contract_multiplier
from .models import Player, PlayerId, Round

JUST_MADE_BONUS = 25
PARTNER_TABLE_SIZE = 5

# Points the attack must reach, by number of Oudlers in its tricks
TARGETS = {0: 56, 1: 51, 2: 41, 3: 36}


class RoundSummary(NamedTuple):
    """Breakdown of one round, as shown next to its line in the score sheet."""
    target: int
    success: bool
    margin: int  # |attack_score - target|
    contract_multiplier: int
    score: int   # signed, shared by the whole table before per-player multipliers


def compute_target(round: Round) -> int:
    """Points the attack needs given its number of Oudlers."""
    return TARGETS[round.attack_oudlers]


def compute_contract_multiplier(contract: Contract) -> int:
    return contract_multiplier(contract)


def summarize_round(round: Round) -> RoundSummary:
    target = compute_target(round)
    success = round.attack_score >= target
    margin = abs(round.attack_score - target)
    mult = compute_contract_multiplier(round.contract)
    raw = (JUST_MADE_BONUS + margin) * mult
    return RoundSummary(
        target=target,
        success=success,
        margin=margin,
        contract_multiplier=mult,
        score=raw if success else -raw,
    )


def compute_outcome_score(round: Round) -> int:
    """
    Signed round score: positive = attack won, negative = attack lost.
    Formula: (25 + |attack_score - target|) * contract multiplier.
    """
    return summarize_round(round).score


def compute_player_multiplier(player_id: PlayerId, roster_size: int, round: Round) -> int:
    """
    How many times the round score a player receives.

    - 5 players: attacker who called themself ×4; any other attacker ×2 (even with
      no partner recorded); the called partner ×1; each defender ×-1.
    - Other sizes: attacker ×(roster_size - 1), each defender ×-1. `called` is ignored.
    """
    if roster_size == PARTNER_TABLE_SIZE:
        alone = round.called == round.attacker
        if player_id == round.attacker:
            return 4 if alone else 2
        if player_id == round.called:
            return 1
        return -1
    if player_id == round.attacker:
        return roster_size - 1
    return -1


def compute_round_deltas(players: Sequence[Player], round: Round) -> Dict[PlayerId, int]:
    """Points won or lost by each player of the roster on this round."""
    score = compute_outcome_score(round)
    roster_size = len(players)
    return {
        p.id: score * compute_player_multiplier(p.id, roster_size, round)
        for p in players
    }


def compute_totals(players: Sequence[Player], rounds: Iterable[Round]) -> Dict[PlayerId, int]:
    """
    Running totals for a game: every player starts at 0, then each round's deltas
    are added in the order given (storage order).
    """
    totals: Dict[PlayerId, int] = {p.id: 0 for p in players}
    for round in rounds:
        for player_id, delta in compute_round_deltas(players, round).items():
            totals[player_id] += delta
    return totals
