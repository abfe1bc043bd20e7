"""
Mega Fire bonus round.

A grid of empty cells is filled by drops: on every tick a multiplier lands on
a random empty cell with probability `land_chance` (and the remaining spins
reset), otherwise one spin is used up. The round ends when the spins run out
or the grid is full; the landed multipliers are summed and applied to the
stake.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from megafire.core.logger import get_logger
from megafire.core.rng import TableRNG

logger = get_logger("bonus")


class BonusMode(str, Enum):
    NORMAL = "NORMAL"
    # Preview round after a fire hit without winning inside bets; never credited
    SPECTATOR = "SPECTATOR"


@dataclass(frozen=True)
class BonusDrop:
    tick: int
    cell: Optional[int]
    multiplier: Optional[int]
    spins_left: int


@dataclass(frozen=True)
class BonusOutcome:
    multiplier: int
    payout: int
    mode: BonusMode = BonusMode.NORMAL
    stake: float = 0.0
    grid: Tuple[Optional[int], ...] = field(default_factory=tuple)
    drops: Tuple[BonusDrop, ...] = field(default_factory=tuple)

    @property
    def credited(self) -> int:
        """What actually reaches the balance."""
        return self.payout if self.mode is BonusMode.NORMAL else 0

    def to_dict(self) -> dict:
        return {
            "multiplier": self.multiplier,
            "payout": self.payout,
            "credited": self.credited,
            "mode": self.mode.value,
            "stake": self.stake,
            "grid": list(self.grid),
            "drops": [
                {"tick": d.tick, "cell": d.cell, "multiplier": d.multiplier, "spins_left": d.spins_left}
                for d in self.drops
            ],
        }


def bonus_payout(multiplier: int, stake: float) -> int:
    return int(round(multiplier * stake))


class BonusGame:
    def __init__(
        self,
        rng: Optional[TableRNG] = None,
        grid_size: int = 12,
        spins: int = 3,
        land_chance: float = 0.7,
        multipliers: Sequence[int] = (2, 3, 5, 10, 15, 20, 50),
    ):
        if grid_size <= 0 or spins <= 0:
            raise ValueError("Bonus grid and spins must be positive")
        self.rng = rng or TableRNG()
        self.grid_size = grid_size
        self.spins = spins
        self.land_chance = land_chance
        self.multipliers = list(multipliers)

    def play(self, stake: float, mode: BonusMode = BonusMode.NORMAL) -> BonusOutcome:
        grid: List[Optional[int]] = [None] * self.grid_size
        spins_left = self.spins
        drops = []
        tick = 0

        while spins_left > 0 and any(cell is None for cell in grid):
            tick += 1
            if self.rng.random_float() < self.land_chance:
                empty = [i for i, cell in enumerate(grid) if cell is None]
                cell = self.rng.random_choice(empty)
                value = self.rng.random_choice(self.multipliers)
                grid[cell] = value
                spins_left = self.spins
                drops.append(BonusDrop(tick, cell, value, spins_left))
            else:
                spins_left -= 1
                drops.append(BonusDrop(tick, None, None, spins_left))

        multiplier = sum(cell for cell in grid if cell is not None)
        outcome = BonusOutcome(
            multiplier=multiplier,
            payout=bonus_payout(multiplier, stake),
            mode=mode,
            stake=stake,
            grid=tuple(grid),
            drops=tuple(drops),
        )
        logger.info(
            f"Bonus ({mode.value}) finished after {tick} ticks: "
            f"{multiplier}x on {stake} -> {outcome.payout}"
        )
        return outcome
