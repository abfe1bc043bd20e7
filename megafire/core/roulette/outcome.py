from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from megafire.core.logger import get_logger
from megafire.core.rng import TableRNG
from megafire.core.roulette.rules import NUMBERS

logger = get_logger("outcome")

# (percentile ceiling, min size, max size); percentiles are drawn from [0, 100)
DEFAULT_FIRE_BANDS: Tuple[Tuple[int, int, int], ...] = (
    (80, 1, 5),
    (95, 6, 10),
    (100, 11, 15),
)


@dataclass(frozen=True)
class Outcome:
    winning_number: int
    fire_numbers: Tuple[int, ...]

    @property
    def is_fire_hit(self) -> bool:
        return self.winning_number in self.fire_numbers


class OutcomeGenerator:
    """
    Draws the winning pocket and the fire numbers for a spin.

    The two draws are independent: the winning number is uniform over 0-36
    and is not forced into the fire set.
    """

    def __init__(
        self,
        rng: Optional[TableRNG] = None,
        fire_bands: Optional[Sequence[Sequence[int]]] = None,
    ):
        self.rng = rng or TableRNG()
        bands = [tuple(band) for band in (fire_bands or DEFAULT_FIRE_BANDS)]
        if not bands or bands[-1][0] < 100:
            raise ValueError("Fire bands must cover percentiles up to 100")
        self.fire_bands = bands

    def draw_winning_number(self) -> int:
        return self.rng.random_int(0, 36)

    def draw_fire_count(self) -> int:
        percentile = self.rng.random_float() * 100
        for ceiling, low, high in self.fire_bands:
            if percentile < ceiling:
                return self.rng.random_int(low, high)
        # random_float() < 1.0, so the last band always matches
        _, low, high = self.fire_bands[-1]
        return self.rng.random_int(low, high)

    def draw_fire_numbers(self) -> Tuple[int, ...]:
        count = self.draw_fire_count()
        return tuple(sorted(self.rng.shuffle(NUMBERS)[:count]))

    def draw(self) -> Outcome:
        outcome = Outcome(
            winning_number=self.draw_winning_number(),
            fire_numbers=self.draw_fire_numbers(),
        )
        logger.debug(
            f"Drew {outcome.winning_number} with {len(outcome.fire_numbers)} fire numbers"
        )
        return outcome
