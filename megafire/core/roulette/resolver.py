"""
Round settlement.

Given the frozen stakes of a round and its outcome, work out what every bet
returns:

- a winning bet pays `amount * multiplier + amount` into `total_win`
- on a fire hit (winning number among the fire numbers) a winning *inside*
  bet pays nothing now; `amount / coverage` goes into the bonus stake instead
- a winning *outside* bet pays normally, fire hit or not
- every winning bet survives the sweep, every losing bet is swept

A fire hit always leads to the bonus round: NORMAL with the accrued stake
when inside bets fed it, SPECTATOR with a nominal stake otherwise.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from megafire.core.logger import get_logger
from megafire.core.roulette.bets import BetKind, classify, interpret_bet_id
from megafire.core.roulette.bonus import BonusMode
from megafire.core.roulette.outcome import Outcome
from megafire.core.roulette.rules import Paytable

logger = get_logger("resolver")


@dataclass(frozen=True)
class BetResult:
    bet_id: str
    amount: int
    won: bool
    multiplier: int
    is_inside: bool
    coverage: int
    payout: int = 0
    bonus_stake: float = 0.0

    @property
    def routed_to_bonus(self) -> bool:
        return self.bonus_stake > 0


@dataclass(frozen=True)
class Settlement:
    winning_number: int
    fire_numbers: Tuple[int, ...]
    total_staked: int
    total_win: int
    bonus_stake_accrued: float
    surviving_bet_ids: FrozenSet[str]
    fire_hit: bool
    bonus_triggered: bool
    bonus_mode: Optional[BonusMode] = None
    # Stake handed to the bonus round: the accrued stake, or the nominal one in SPECTATOR
    bonus_stake: float = 0.0
    results: Tuple[BetResult, ...] = field(default_factory=tuple)

    @property
    def winning_bets(self) -> Dict[str, int]:
        """Profit per paid bet (stake excluded), for the chips left on the board."""
        return {r.bet_id: r.payout - r.amount for r in self.results if r.won and r.payout}

    @property
    def net(self) -> int:
        return self.total_win - self.total_staked

    def to_dict(self) -> dict:
        return {
            "winning_number": self.winning_number,
            "fire_numbers": list(self.fire_numbers),
            "total_staked": self.total_staked,
            "total_win": self.total_win,
            "bonus_stake_accrued": self.bonus_stake_accrued,
            "surviving_bet_ids": sorted(self.surviving_bet_ids),
            "fire_hit": self.fire_hit,
            "bonus_triggered": self.bonus_triggered,
            "bonus_mode": self.bonus_mode.value if self.bonus_mode else None,
            "bonus_stake": self.bonus_stake,
            "winning_bets": self.winning_bets,
        }


class RoundResolver:
    """Classifies every stake of a round and aggregates the settlement."""

    def __init__(self, paytable: Optional[Paytable] = None, spectator_stake: int = 10):
        self.paytable = paytable or Paytable()
        self.spectator_stake = spectator_stake

    def resolve(
        self,
        stakes: Mapping[str, int],
        outcome: Outcome,
        targets: Optional[Mapping[str, BetKind]] = None,
    ) -> Settlement:
        """
        Args:
            stakes: frozen bet id -> amount snapshot taken at spin time
            outcome: the drawn winning number and fire numbers
            targets: already-parsed variants for the stakes; ids missing here
                are parsed leniently

        Returns:
            Settlement for the round. Never raises on malformed ids.
        """
        targets = targets or {}
        fire_hit = outcome.is_fire_hit
        winning_number = outcome.winning_number

        total_win = 0
        accrued = 0.0
        surviving = set()
        results = []

        for bet_id, amount in stakes.items():
            if amount <= 0:
                continue
            kind = targets.get(bet_id) or interpret_bet_id(bet_id)
            verdict = classify(kind, winning_number, self.paytable)

            if not verdict.won:
                results.append(BetResult(
                    bet_id, amount, False, verdict.multiplier, verdict.is_inside, verdict.coverage,
                ))
                continue

            surviving.add(bet_id)
            if fire_hit and verdict.is_inside:
                contribution = amount / verdict.coverage
                accrued += contribution
                results.append(BetResult(
                    bet_id, amount, True, verdict.multiplier, True, verdict.coverage,
                    bonus_stake=contribution,
                ))
            else:
                payout = verdict.payout(amount)
                total_win += payout
                results.append(BetResult(
                    bet_id, amount, True, verdict.multiplier, verdict.is_inside, verdict.coverage,
                    payout=payout,
                ))

        if fire_hit and accrued > 0:
            mode, bonus_stake = BonusMode.NORMAL, accrued
        elif fire_hit:
            mode, bonus_stake = BonusMode.SPECTATOR, float(self.spectator_stake)
        else:
            mode, bonus_stake, accrued = None, 0.0, 0.0

        settlement = Settlement(
            winning_number=winning_number,
            fire_numbers=tuple(outcome.fire_numbers),
            total_staked=sum(a for a in stakes.values() if a > 0),
            total_win=total_win,
            bonus_stake_accrued=accrued,
            surviving_bet_ids=frozenset(surviving),
            fire_hit=fire_hit,
            bonus_triggered=fire_hit,
            bonus_mode=mode,
            bonus_stake=bonus_stake,
            results=tuple(results),
        )

        logger.info(
            f"Resolved {winning_number}: win={total_win} fire_hit={fire_hit} "
            f"bonus_stake={accrued} survivors={len(surviving)}"
        )
        return settlement
