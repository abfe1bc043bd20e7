"""Roulette rules, bet bookkeeping and round resolution for the Mega Fire table."""

from .bets import (
    BetKind,
    Classification,
    Corner,
    Line,
    Outside,
    OutsideKind,
    Split,
    Straight,
    Street,
    Unknown,
    canonical_bet_id,
    classify,
    interpret_bet_id,
    parse_bet_id,
)
from .board import BettingGrid, BoardTarget
from .bonus import BonusGame, BonusMode, BonusOutcome
from .history import HistoryEntry, HistoryStore, calculate_stats
from .ledger import BetLedger, Placement
from .outcome import Outcome, OutcomeGenerator
from .phases import Phase, RoundPhaseMachine
from .racetrack import CALL_BETS, Racetrack
from .resolver import BetResult, RoundResolver, Settlement
from .rules import Paytable
from .strategies import PRESET_STRATEGIES, Strategy

__all__ = [
    "BetKind",
    "Classification",
    "Corner",
    "Line",
    "Outside",
    "OutsideKind",
    "Split",
    "Straight",
    "Street",
    "Unknown",
    "canonical_bet_id",
    "classify",
    "interpret_bet_id",
    "parse_bet_id",
    "BettingGrid",
    "BoardTarget",
    "BonusGame",
    "BonusMode",
    "BonusOutcome",
    "HistoryEntry",
    "HistoryStore",
    "calculate_stats",
    "BetLedger",
    "Placement",
    "Outcome",
    "OutcomeGenerator",
    "Phase",
    "RoundPhaseMachine",
    "CALL_BETS",
    "Racetrack",
    "BetResult",
    "RoundResolver",
    "Settlement",
    "Paytable",
    "PRESET_STRATEGIES",
    "Strategy",
]
