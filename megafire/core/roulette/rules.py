"""
European single-zero layout: colors, columns, dozens, wheel order and the
house paytable.
"""

from typing import Dict, Mapping, Optional

NUMBERS = range(0, 37)

RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})
BLACK_NUMBERS = frozenset({2, 4, 6, 8, 10, 11, 13, 15, 17, 20, 22, 24, 26, 28, 29, 31, 33, 35})

# Pocket order clockwise from zero
WHEEL_SEQUENCE = (
    0, 32, 15, 19, 4, 21, 2, 25, 17, 34, 6, 27, 13, 36, 11, 30, 8, 23, 10,
    5, 24, 16, 33, 1, 20, 14, 31, 9, 22, 18, 29, 7, 28, 12, 35, 3, 26,
)

# Profit multipliers; a winning bet also gets its stake back
DEFAULT_PAYOUTS: Dict[str, int] = {
    "STRAIGHT": 29,  # Mega Blaze rule, standard is 35
    "SPLIT": 17,
    "STREET": 11,
    "CORNER": 8,
    "LINE": 5,
    "COLUMN": 2,
    "DOZEN": 2,
    "EVEN_CHANCE": 1,
}


def is_valid_number(number: int) -> bool:
    return 0 <= number <= 36


def get_color(number: int) -> str:
    """Get the color of a roulette number."""
    if number == 0:
        return "green"
    elif number in RED_NUMBERS:
        return "red"
    return "black"


def get_column(number: int) -> Optional[str]:
    """COL1 holds 1, 4, 7...; zero belongs to no column."""
    if number == 0:
        return None
    return {1: "COL1", 2: "COL2", 0: "COL3"}[number % 3]


def get_dozen(number: int) -> Optional[str]:
    if 1 <= number <= 12:
        return "1st12"
    if 13 <= number <= 24:
        return "2nd12"
    if 25 <= number <= 36:
        return "3rd12"
    return None


class Paytable:
    """Profit multipliers keyed by bet family, overridable from config."""

    def __init__(self, payouts: Optional[Mapping[str, int]] = None):
        merged = dict(DEFAULT_PAYOUTS)
        if payouts:
            merged.update({key.upper(): int(value) for key, value in payouts.items()})
        self._payouts = merged

    def multiplier(self, family: str) -> int:
        return self._payouts[family]

    @property
    def straight(self) -> int:
        return self._payouts["STRAIGHT"]

    def to_dict(self) -> Dict[str, int]:
        return dict(self._payouts)
