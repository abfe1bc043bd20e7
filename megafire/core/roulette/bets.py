"""
Bet targets.

The board and the presentation layer talk in opaque string ids ("17",
"SPLIT_2_5", "COR_1_2_4_5", "STREET_0_2_3", "LINE_13_18", "RED", "COL2",
"1st12"). Ids are parsed once into a tagged `BetKind` variant when a bet
enters the ledger; resolution works on the variant, never on the string.

Multi-number ids are canonical: numbers sorted ascending and joined with
underscores, so every gesture that lands on the same physical area produces
the same ledger key.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, FrozenSet, Iterable, Optional, Tuple, Union

from megafire.core.exceptions import InvalidBetError
from megafire.core.roulette.rules import (
    BLACK_NUMBERS,
    RED_NUMBERS,
    Paytable,
    is_valid_number,
)

_DEFAULT_PAYTABLE = Paytable()


def make_bet_id(prefix: str, numbers: Iterable[int]) -> str:
    """Build a canonical multi-number id, e.g. make_bet_id("SPLIT", [5, 2]) -> "SPLIT_2_5"."""
    ordered = sorted(numbers)
    return f"{prefix}_{'_'.join(str(n) for n in ordered)}"


class BetKind:
    """Base of the bet variants."""

    family: ClassVar[str] = "UNKNOWN"
    is_inside: ClassVar[bool] = True

    @property
    def numbers(self) -> FrozenSet[int]:
        raise NotImplementedError

    @property
    def bet_id(self) -> str:
        raise NotImplementedError

    @property
    def coverage(self) -> int:
        return len(self.numbers)

    def wins(self, winning_number: int) -> bool:
        return winning_number in self.numbers


@dataclass(frozen=True)
class Straight(BetKind):
    number: int

    family: ClassVar[str] = "STRAIGHT"

    @property
    def numbers(self) -> FrozenSet[int]:
        return frozenset((self.number,))

    @property
    def bet_id(self) -> str:
        return str(self.number)


@dataclass(frozen=True)
class Split(BetKind):
    low: int
    high: int

    family: ClassVar[str] = "SPLIT"

    @classmethod
    def of(cls, a: int, b: int) -> "Split":
        low, high = sorted((a, b))
        return cls(low, high)

    @property
    def numbers(self) -> FrozenSet[int]:
        return frozenset((self.low, self.high))

    @property
    def bet_id(self) -> str:
        return make_bet_id("SPLIT", (self.low, self.high))


@dataclass(frozen=True)
class Corner(BetKind):
    members: Tuple[int, int, int, int]

    family: ClassVar[str] = "CORNER"

    @classmethod
    def of(cls, *numbers: int) -> "Corner":
        return cls(tuple(sorted(numbers)))

    @property
    def numbers(self) -> FrozenSet[int]:
        return frozenset(self.members)

    @property
    def bet_id(self) -> str:
        return make_bet_id("COR", self.members)


@dataclass(frozen=True)
class Street(BetKind):
    """Three numbers; also used for the two zero trios (0-1-2, 0-2-3)."""

    members: Tuple[int, int, int]

    family: ClassVar[str] = "STREET"

    @classmethod
    def of(cls, *numbers: int) -> "Street":
        return cls(tuple(sorted(numbers)))

    @property
    def numbers(self) -> FrozenSet[int]:
        return frozenset(self.members)

    @property
    def bet_id(self) -> str:
        return make_bet_id("STREET", self.members)


@dataclass(frozen=True)
class Line(BetKind):
    """Six-line: the inclusive run first..last of two adjacent streets."""

    first: int
    last: int

    family: ClassVar[str] = "LINE"

    @property
    def numbers(self) -> FrozenSet[int]:
        return frozenset(range(self.first, self.last + 1))

    @property
    def bet_id(self) -> str:
        return make_bet_id("LINE", (self.first, self.last))


class OutsideKind(str, Enum):
    RED = "RED"
    BLACK = "BLACK"
    EVEN = "EVEN"
    ODD = "ODD"
    LOW = "1-18"
    HIGH = "19-36"
    COL1 = "COL1"
    COL2 = "COL2"
    COL3 = "COL3"
    FIRST_DOZEN = "1st12"
    SECOND_DOZEN = "2nd12"
    THIRD_DOZEN = "3rd12"

    @property
    def family(self) -> str:
        if self.value.startswith("COL"):
            return "COLUMN"
        if self.value.endswith("12"):
            return "DOZEN"
        return "EVEN_CHANCE"


_EVEN_CHANCE_NAMES = {"RED", "BLACK", "EVEN", "ODD", "1-18", "19-36"}
_DOZEN_NAMES = {"1st12": 0, "2nd12": 1, "3rd12": 2}

_OUTSIDE_NUMBERS = {
    OutsideKind.RED: RED_NUMBERS,
    OutsideKind.BLACK: BLACK_NUMBERS,
    OutsideKind.EVEN: frozenset(range(2, 37, 2)),
    OutsideKind.ODD: frozenset(range(1, 37, 2)),
    OutsideKind.LOW: frozenset(range(1, 19)),
    OutsideKind.HIGH: frozenset(range(19, 37)),
    OutsideKind.COL1: frozenset(n for n in range(1, 37) if n % 3 == 1),
    OutsideKind.COL2: frozenset(n for n in range(1, 37) if n % 3 == 2),
    OutsideKind.COL3: frozenset(n for n in range(1, 37) if n % 3 == 0),
    OutsideKind.FIRST_DOZEN: frozenset(range(1, 13)),
    OutsideKind.SECOND_DOZEN: frozenset(range(13, 25)),
    OutsideKind.THIRD_DOZEN: frozenset(range(25, 37)),
}


@dataclass(frozen=True)
class Outside(BetKind):
    kind: OutsideKind

    is_inside: ClassVar[bool] = False

    @property
    def family(self) -> str:  # type: ignore[override]
        return self.kind.family

    @property
    def numbers(self) -> FrozenSet[int]:
        # Zero is never part of an outside bet
        return _OUTSIDE_NUMBERS[self.kind]

    @property
    def bet_id(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class Unknown(BetKind):
    """An id that matched no bet shape. It never wins."""

    raw: str

    is_inside: ClassVar[bool] = False

    @property
    def numbers(self) -> FrozenSet[int]:
        return frozenset()

    @property
    def bet_id(self) -> str:
        return self.raw


# ==================== Layout adjacency ====================

# Trios and the four-number bet that include zero
_ZERO_STREETS = frozenset({(0, 1, 2), (0, 2, 3)})
_ZERO_CORNER = (0, 1, 2, 3)


def _column(number: int) -> int:
    return (number - 1) % 3


def _is_split(a: int, b: int) -> bool:
    if a == 0:
        return b in (1, 2, 3)
    if b - a == 3:
        return True
    return b - a == 1 and _column(a) != 2


def _is_corner(numbers: Tuple[int, ...]) -> bool:
    if numbers == _ZERO_CORNER:
        return True
    low = numbers[0]
    return (
        low > 0
        and _column(low) != 2
        and numbers == (low, low + 1, low + 3, low + 4)
    )


def _is_street(numbers: Tuple[int, ...]) -> bool:
    if numbers in _ZERO_STREETS:
        return True
    low = numbers[0]
    return low > 0 and _column(low) == 0 and numbers == (low, low + 1, low + 2)


def _is_line(first: int, last: int) -> bool:
    return first > 0 and _column(first) == 0 and last == first + 5 and last <= 36


# ==================== Parsing ====================


def _parse_numbers(bet_id: str, parts) -> Tuple[int, ...]:
    numbers = []
    for part in parts:
        if not part.isdigit():
            raise InvalidBetError(bet_id, "Malformed number")
        number = int(part)
        if not is_valid_number(number):
            raise InvalidBetError(bet_id, "Number off the layout")
        numbers.append(number)
    if len(set(numbers)) != len(numbers):
        raise InvalidBetError(bet_id, "Repeated number")
    return tuple(sorted(numbers))


def parse_bet_id(bet_id: str) -> BetKind:
    """
    Parse a bet id into its variant.

    The most specific shape wins; prefixes are checked before the named
    outside bets and the dozen suffix check runs last because "1st12"-style
    names would otherwise collide with other shapes.

    Raises:
        InvalidBetError: the id describes no bet on this layout.
    """
    if not isinstance(bet_id, str) or not bet_id:
        raise InvalidBetError(str(bet_id), "Empty bet id")

    if bet_id.isdigit():
        number = int(bet_id)
        if not is_valid_number(number):
            raise InvalidBetError(bet_id, "Number off the layout")
        return Straight(number)

    prefix, _, rest = bet_id.partition("_")
    parts = rest.split("_") if rest else []

    if prefix == "SPLIT":
        numbers = _parse_numbers(bet_id, parts)
        if len(numbers) != 2:
            raise InvalidBetError(bet_id, "A split covers two numbers")
        if not _is_split(*numbers):
            raise InvalidBetError(bet_id, "Split numbers are not neighbours")
        return Split(*numbers)

    if prefix == "COR":
        numbers = _parse_numbers(bet_id, parts)
        if len(numbers) != 4:
            raise InvalidBetError(bet_id, "A corner covers four numbers")
        if not _is_corner(numbers):
            raise InvalidBetError(bet_id, "Corner numbers do not meet at one point")
        return Corner(numbers)

    if prefix == "STREET":
        numbers = _parse_numbers(bet_id, parts)
        # Range form: STREET_1_3 means 1, 2, 3
        if len(numbers) == 2 and numbers[1] - numbers[0] == 2:
            numbers = (numbers[0], numbers[0] + 1, numbers[1])
        if len(numbers) != 3:
            raise InvalidBetError(bet_id, "A street covers three numbers")
        if not _is_street(numbers):
            raise InvalidBetError(bet_id, "Street numbers are not one row")
        return Street(numbers)

    if prefix == "LINE":
        numbers = _parse_numbers(bet_id, parts)
        if len(numbers) == 2 and _is_line(*numbers):
            return Line(numbers[0], numbers[1])
        raise InvalidBetError(bet_id, "A line covers two neighbouring rows")

    if bet_id in _EVEN_CHANCE_NAMES:
        return Outside(OutsideKind(bet_id))

    if bet_id.startswith("COL"):
        if bet_id in ("COL1", "COL2", "COL3"):
            return Outside(OutsideKind(bet_id))
        raise InvalidBetError(bet_id, "Unknown column")

    if bet_id.endswith("12"):
        if bet_id in _DOZEN_NAMES:
            return Outside(OutsideKind(bet_id))
        raise InvalidBetError(bet_id, "Unknown dozen")

    raise InvalidBetError(bet_id)


def interpret_bet_id(bet_id: str) -> BetKind:
    """Lenient parse: malformed ids become `Unknown` instead of raising."""
    try:
        return parse_bet_id(bet_id)
    except InvalidBetError:
        return Unknown(str(bet_id))


def canonical_bet_id(bet_id: str) -> str:
    """Canonical form of an id ("SPLIT_5_2" -> "SPLIT_2_5"); raises on malformed ids."""
    return parse_bet_id(bet_id).bet_id


# ==================== Classification ====================


@dataclass(frozen=True)
class Classification:
    won: bool
    multiplier: int
    is_inside: bool
    coverage: int

    def payout(self, amount: int) -> int:
        """Total credit return for a winning stake (profit plus the stake)."""
        if not self.won:
            return 0
        return amount * self.multiplier + amount


_NO_WIN = Classification(won=False, multiplier=0, is_inside=False, coverage=0)


def classify(
    bet: Union[str, BetKind],
    winning_number: int,
    paytable: Optional[Paytable] = None,
) -> Classification:
    """
    Decide whether a bet wins on `winning_number`.

    `multiplier` is the family's profit multiplier whether or not the bet won;
    unknown ids classify as a non-winning bet with multiplier 0 and never raise.
    """
    kind = bet if isinstance(bet, BetKind) else interpret_bet_id(bet)
    if isinstance(kind, Unknown):
        return _NO_WIN

    table = paytable or _DEFAULT_PAYTABLE
    return Classification(
        won=kind.wins(winning_number),
        multiplier=table.multiplier(kind.family),
        is_inside=kind.is_inside,
        coverage=kind.coverage,
    )
