"""Tarot score keeper: game/round store and point totals (FFT scoring rules)."""

__version__ = "0.1.0"

from .config import StoreConfig
from .contracts import Contract, CONTRACT_NAMES, contract_multiplier
from .errors import InvalidRound, NotFound, StoreError, StoreUnavailable, TarotScoresError
from .models import Game, GameAggregate, Player, Round
from .persistence import aggregate_from_json, aggregate_to_json
from .schema import SCHEMA_VERSION
from .scoring import (
    RoundSummary,
    compute_contract_multiplier,
    compute_outcome_score,
    compute_player_multiplier,
    compute_round_deltas,
    compute_target,
    compute_totals,
    summarize_round,
)
from .store import Store, open_store
