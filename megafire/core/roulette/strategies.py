"""
Bet strategies: a layout of {bet id: units} scaled by the selected chip.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from megafire.core.exceptions import InvalidBetError
from megafire.core.roulette.bets import parse_bet_id


@dataclass(frozen=True)
class Strategy:
    id: str
    name: str
    bets: Mapping[str, int]  # bet id -> units
    description: str = ""
    color_code: str = "#3b82f6"
    preset: bool = False

    @property
    def total_units(self) -> int:
        return sum(self.bets.values())

    def total_cost(self, chip_value: int) -> int:
        return self.total_units * chip_value

    def to_bets(self, chip_value: int) -> Dict[str, int]:
        return {bet_id: units * chip_value for bet_id, units in self.bets.items() if units > 0}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color_code": self.color_code,
            "total_units": self.total_units,
            "bets": dict(self.bets),
            "preset": self.preset,
        }


PRESET_STRATEGIES: List[Strategy] = [
    Strategy(
        id="JAMES_BOND",
        name="The James Bond",
        description="Cover 2/3 of the table. High risk, high reward.",
        color_code="#3b82f6",
        bets={"19-36": 14, "LINE_13_18": 5, "0": 1},
        preset=True,
    ),
    Strategy(
        id="RED_SNAKE",
        name="The Red Snake",
        description="A zigzag pattern covering 12 red numbers.",
        color_code="#ef4444",
        bets={
            "1": 1, "5": 1, "9": 1, "12": 1,
            "14": 1, "16": 1, "19": 1, "23": 1,
            "27": 1, "30": 1, "32": 1, "34": 1,
        },
        preset=True,
    ),
    Strategy(
        id="VOISINS_ZERO",
        name="Voisins du Zéro",
        description="The neighbors of zero (9 chip bet).",
        color_code="#eab308",
        bets={
            "STREET_0_2_3": 2,
            "COR_25_26_28_29": 2,
            "SPLIT_4_7": 1,
            "SPLIT_12_15": 1,
            "SPLIT_18_21": 1,
            "SPLIT_19_22": 1,
            "SPLIT_32_35": 1,
        },
        preset=True,
    ),
]


def get_preset(strategy_id: str) -> Optional[Strategy]:
    for strategy in PRESET_STRATEGIES:
        if strategy.id == strategy_id:
            return strategy
    return None


def normalize_layout(bets: Mapping[str, int]) -> Dict[str, int]:
    """
    Canonicalize the ids of a user-built layout and merge duplicates.

    Raises:
        InvalidBetError: an id is malformed
        ValueError: a unit count is not a positive integer
    """
    layout: Dict[str, int] = {}
    for bet_id, units in bets.items():
        if not isinstance(units, int) or units <= 0:
            raise ValueError(f"Units for {bet_id!r} must be a positive integer")
        key = parse_bet_id(bet_id).bet_id
        layout[key] = layout.get(key, 0) + units
    if not layout:
        raise InvalidBetError("", "Empty strategy")
    return layout


def strategy_from_record(record: Mapping) -> Strategy:
    """Build a Strategy from a saved-strategy row."""
    return Strategy(
        id=record["id"],
        name=record["name"],
        bets=dict(record["bets"]),
        description=record.get("description") or "",
        color_code=record.get("color_code") or "#3b82f6",
    )
