"""
Betting grid hit testing.

The inside grid is 3 columns by 13 rows: row 0 is the zero strip across all
three columns, rows 1-12 hold 1-36 left to right (row 1 is 1, 2, 3). A plain
tap always lands on the straight-up number under the finger. A precision
gesture also looks at where inside the cell the point is: within
`edge_slop` of an edge shared with a neighbor it targets the split, and near
a grid vertex the corner. The left outer edge of a row is its street, the
vertex on that edge between two rows is the six-line, and the vertices
shared with the zero strip are the 0-1-2 / 0-2-3 trios and the 0-1-2-3 first
four. Vertex (corner) checks run before single-edge checks.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from megafire.core.roulette.bets import BetKind, Corner, Line, Split, Straight, Street

COLUMNS = 3
ROWS = 13
LAST_ROW = ROWS - 1


@dataclass(frozen=True)
class BoardTarget:
    kind: str  # STRAIGHT, SPLIT, CORNER, STREET, SIXLINE, TRIO
    bet: BetKind
    x: float  # anchor for the chip, in board coordinates
    y: float

    @property
    def bet_id(self) -> str:
        return self.bet.bet_id

    @property
    def numbers(self) -> Tuple[int, ...]:
        return tuple(sorted(self.bet.numbers))

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "bet_id": self.bet_id,
            "numbers": list(self.numbers),
            "x": self.x,
            "y": self.y,
        }


def number_at(col: int, row: int) -> int:
    if row == 0:
        return 0
    return (row - 1) * 3 + col + 1


def _row_numbers(row: int) -> Tuple[int, int, int]:
    first = (row - 1) * 3 + 1
    return first, first + 1, first + 2


class BettingGrid:
    def __init__(
        self,
        width: float,
        height: float,
        edge_slop: float = 0.25,
        origin_x: float = 0.0,
        origin_y: float = 0.0,
    ):
        if width <= 0 or height <= 0:
            raise ValueError("Board dimensions must be positive")
        if not 0 < edge_slop < 0.5:
            raise ValueError("edge_slop must be between 0 and 0.5")
        self.width = width
        self.height = height
        self.edge_slop = edge_slop
        self.origin_x = origin_x
        self.origin_y = origin_y
        self.cell_width = width / COLUMNS
        self.cell_height = height / ROWS

    def cell_at(self, x: float, y: float) -> Optional[Tuple[int, int]]:
        local_x = x - self.origin_x
        local_y = y - self.origin_y
        if not (0 <= local_x <= self.width and 0 <= local_y <= self.height):
            return None
        col = min(int(local_x // self.cell_width), COLUMNS - 1)
        row = min(int(local_y // self.cell_height), LAST_ROW)
        return col, row

    def cell_center(self, col: int, row: int) -> Tuple[float, float]:
        if row == 0:
            return self.width / 2, self.cell_height / 2
        return (col + 0.5) * self.cell_width, (row + 0.5) * self.cell_height

    def resolve(self, x: float, y: float, precision: bool = False) -> Optional[BoardTarget]:
        """Map a point to a bet target; None outside the grid."""
        cell = self.cell_at(x, y)
        if cell is None:
            return None
        col, row = cell

        if not precision:
            return self._straight(col, row)

        local_x = x - self.origin_x
        local_y = y - self.origin_y
        rel_x = (local_x - col * self.cell_width) / self.cell_width
        rel_y = (local_y - row * self.cell_height) / self.cell_height

        slop = self.edge_slop
        near_left = rel_x < slop
        near_right = rel_x > 1 - slop
        near_top = rel_y < slop
        near_bottom = rel_y > 1 - slop

        if row == 0:
            return self._resolve_zero(col, near_left, near_right, near_bottom)
        return (
            self._resolve_vertex(col, row, near_left, near_right, near_top, near_bottom)
            or self._resolve_edge(col, row, near_left, near_right, near_top, near_bottom)
            or self._straight(col, row)
        )

    # ==================== Targets ====================

    def _straight(self, col: int, row: int) -> BoardTarget:
        cx, cy = self.cell_center(col, row)
        return BoardTarget("STRAIGHT", Straight(number_at(col, row)), cx, cy)

    def _vertex(self, col_line: int, row_line: int) -> Tuple[float, float]:
        return col_line * self.cell_width, row_line * self.cell_height

    def _resolve_zero(self, col, near_left, near_right, near_bottom) -> BoardTarget:
        if not near_bottom:
            return self._straight(col, 0)

        w, h = self.cell_width, self.cell_height
        if col == 0 and near_left:
            return BoardTarget("CORNER", Corner.of(0, 1, 2, 3), 0.0, h)
        if (col == 0 and near_right) or (col == 1 and near_left):
            x, y = self._vertex(1, 1)
            return BoardTarget("TRIO", Street.of(0, 1, 2), x, y)
        if (col == 1 and near_right) or (col == 2 and near_left):
            x, y = self._vertex(2, 1)
            return BoardTarget("TRIO", Street.of(0, 2, 3), x, y)
        return BoardTarget("SPLIT", Split.of(0, col + 1), (col + 0.5) * w, h)

    def _resolve_vertex(self, col, row, near_left, near_right, near_top, near_bottom):
        n = number_at(col, row)

        if near_left and near_top:
            x, y = self._vertex(col, row)
            if col == 0 and row == 1:
                return BoardTarget("CORNER", Corner.of(0, 1, 2, 3), x, y)
            if col == 0:
                return BoardTarget("SIXLINE", Line(_row_numbers(row - 1)[0], _row_numbers(row)[2]), x, y)
            if row == 1:
                return BoardTarget("TRIO", Street.of(0, n - 1, n), x, y)
            return BoardTarget("CORNER", Corner.of(n, n - 1, n - 3, n - 4), x, y)

        if near_right and near_top and col < COLUMNS - 1:
            x, y = self._vertex(col + 1, row)
            if row == 1:
                return BoardTarget("TRIO", Street.of(0, n, n + 1), x, y)
            return BoardTarget("CORNER", Corner.of(n, n + 1, n - 3, n - 2), x, y)

        if near_left and near_bottom and row < LAST_ROW:
            x, y = self._vertex(col, row + 1)
            if col == 0:
                return BoardTarget("SIXLINE", Line(_row_numbers(row)[0], _row_numbers(row + 1)[2]), x, y)
            return BoardTarget("CORNER", Corner.of(n, n - 1, n + 3, n + 2), x, y)

        if near_right and near_bottom and col < COLUMNS - 1 and row < LAST_ROW:
            x, y = self._vertex(col + 1, row + 1)
            return BoardTarget("CORNER", Corner.of(n, n + 1, n + 3, n + 4), x, y)

        return None

    def _resolve_edge(self, col, row, near_left, near_right, near_top, near_bottom):
        n = number_at(col, row)
        w, h = self.cell_width, self.cell_height
        mid_y = (row + 0.5) * h
        mid_x = (col + 0.5) * w

        if near_left:
            if col == 0:
                return BoardTarget("STREET", Street.of(*_row_numbers(row)), 0.0, mid_y)
            return BoardTarget("SPLIT", Split.of(n - 1, n), col * w, mid_y)
        if near_right and col < COLUMNS - 1:
            return BoardTarget("SPLIT", Split.of(n, n + 1), (col + 1) * w, mid_y)
        if near_top:
            above = 0 if row == 1 else n - 3
            return BoardTarget("SPLIT", Split.of(above, n), mid_x, row * h)
        if near_bottom and row < LAST_ROW:
            return BoardTarget("SPLIT", Split.of(n, n + 3), mid_x, (row + 1) * h)
        return None
