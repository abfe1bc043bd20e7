"""
Racetrack (call bet) layout.

The 37 pockets run in wheel order around a vertical stadium: the top
half-circle, the left straight, the bottom half-circle and the right
straight. Zero sits at the start of the top arc. The void inside the track
holds the four call-bet zones stacked top to bottom in the proportions
1 : 4 : 3 : 2.5 (Zero Spiel, Voisins du Zéro, Orphelins, Tiers du Cylindre).

A call bet is a fixed chip layout from the classic French table, not
something derived from the geometry.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from megafire.core.roulette.rules import WHEEL_SEQUENCE, get_color

SEGMENT_COUNT = len(WHEEL_SEQUENCE)

# Zone name -> {bet id: chips}
CALL_BETS: Dict[str, Dict[str, int]] = {
    "ZERO": {"SPLIT_0_3": 1, "SPLIT_12_15": 1, "26": 1, "SPLIT_32_35": 1},
    "VOISINS": {
        "STREET_0_2_3": 2,
        "COR_25_26_28_29": 2,
        "SPLIT_4_7": 1,
        "SPLIT_12_15": 1,
        "SPLIT_18_21": 1,
        "SPLIT_19_22": 1,
        "SPLIT_32_35": 1,
    },
    "ORPHELINS": {"1": 1, "SPLIT_6_9": 1, "SPLIT_14_17": 1, "SPLIT_17_20": 1, "SPLIT_31_34": 1},
    "TIERS": {
        "SPLIT_5_8": 1,
        "SPLIT_10_11": 1,
        "SPLIT_13_16": 1,
        "SPLIT_23_24": 1,
        "SPLIT_27_30": 1,
        "SPLIT_33_36": 1,
    },
}

ZONE_TITLES = {
    "ZERO": "Zero Spiel",
    "VOISINS": "Voisins du Zéro",
    "ORPHELINS": "Orphelins",
    "TIERS": "Tiers du Cylindre",
}

# Top to bottom, share of the straight section
ZONE_SHARES: Tuple[Tuple[str, float], ...] = (
    ("ZERO", 1.0),
    ("VOISINS", 4.0),
    ("ORPHELINS", 3.0),
    ("TIERS", 2.5),
)


def _wheel_arc(first: int, last: int) -> Tuple[int, ...]:
    """Pockets from `first` to `last` inclusive, clockwise around the wheel."""
    start = WHEEL_SEQUENCE.index(first)
    out = []
    i = start
    while True:
        out.append(WHEEL_SEQUENCE[i])
        if WHEEL_SEQUENCE[i] == last:
            return tuple(out)
        i = (i + 1) % SEGMENT_COUNT


# Wheel sectors each call covers, for highlighting
SECTORS: Dict[str, Tuple[int, ...]] = {
    "ZERO": _wheel_arc(12, 15),
    "VOISINS": _wheel_arc(22, 25),
    "ORPHELINS": _wheel_arc(17, 6) + _wheel_arc(1, 9),
    "TIERS": _wheel_arc(27, 33),
}


def call_bet_placements(zone: str) -> List[str]:
    """One bet id per chip of the call, e.g. VOISINS -> 9 ids."""
    layout = CALL_BETS[zone]
    return [bet_id for bet_id, chips in layout.items() for _ in range(chips)]


@dataclass(frozen=True)
class TrackPoint:
    x: float
    y: float
    angle: float  # radians, radial direction from the arc center
    on_curve: bool
    arc: Optional[str] = None  # TOP or BOTTOM while on a curve


@dataclass(frozen=True)
class TrackSegment:
    index: int
    number: int
    color: str
    center: TrackPoint
    rotation: float  # degrees, for the label

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "number": self.number,
            "color": self.color,
            "x": round(self.center.x, 2),
            "y": round(self.center.y, 2),
            "rotation": round(self.rotation, 2),
        }


@dataclass(frozen=True)
class CallZone:
    name: str
    title: str
    top: float
    bottom: float
    left: float
    right: float

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "title": self.title,
            "top": round(self.top, 2),
            "bottom": round(self.bottom, 2),
            "left": round(self.left, 2),
            "right": round(self.right, 2),
            "chips": sum(CALL_BETS[self.name].values()),
            "sector": list(SECTORS[self.name]),
        }


class Racetrack:
    def __init__(
        self,
        width: float,
        height: float,
        padding: float = 2.0,
        track_thickness: float = 48.0,
    ):
        self.width = width
        self.height = height
        self.padding = padding
        self.thickness = track_thickness

        self.r_outer = (width - 2 * padding) / 2
        self.r_inner = self.r_outer - track_thickness
        self.r_mid = self.r_outer - track_thickness / 2
        if self.r_inner <= 0:
            raise ValueError("Track is thicker than the racetrack half-width")

        self.straight = max(0.0, height - 2 * self.r_outer - 2 * padding)
        self.cx = width / 2
        self.cy = height / 2
        self.cy_top = self.cy - self.straight / 2
        self.cy_bot = self.cy + self.straight / 2

        self.arc_length = math.pi * self.r_mid
        self.perimeter = 2 * self.arc_length + 2 * self.straight
        self.segment_length = self.perimeter / SEGMENT_COUNT

    # ==================== Track ====================

    def point_at(self, distance: float, radius: float) -> TrackPoint:
        """Position `distance` along the mid line, projected onto `radius`."""
        d = distance % self.perimeter

        if d < self.arc_length:
            angle = -(d / self.r_mid)
            return TrackPoint(
                self.cx + radius * math.cos(angle),
                self.cy_top + radius * math.sin(angle),
                angle, True, "TOP",
            )
        d -= self.arc_length

        if d < self.straight:
            return TrackPoint(self.cx - radius, self.cy_top + d, -math.pi, False)
        d -= self.straight

        if d < self.arc_length:
            angle = -math.pi - d / self.r_mid
            return TrackPoint(
                self.cx + radius * math.cos(angle),
                self.cy_bot + radius * math.sin(angle),
                angle, True, "BOTTOM",
            )
        d -= self.arc_length

        return TrackPoint(self.cx + radius, self.cy_bot - d, 0.0, False)

    def segments(self) -> List[TrackSegment]:
        out = []
        for index, number in enumerate(WHEEL_SEQUENCE):
            center = self.point_at((index + 0.5) * self.segment_length, self.r_mid)
            rotation = math.degrees(center.angle) + 90
            out.append(TrackSegment(index, number, get_color(number), center, rotation))
        return out

    def _polar(self, x: float, y: float) -> Tuple[float, float]:
        """(radius from the stadium spine, distance along the mid line) of a point."""
        if y < self.cy_top:
            dx, dy = x - self.cx, y - self.cy_top
            radius = math.hypot(dx, dy)
            angle = math.atan2(dy, dx)  # (-pi, 0)
            return radius, -angle * self.r_mid
        if y > self.cy_bot:
            dx, dy = x - self.cx, y - self.cy_bot
            radius = math.hypot(dx, dy)
            angle = math.atan2(dy, dx)  # [0, pi]
            return radius, self.arc_length + self.straight + (math.pi - angle) * self.r_mid
        if x < self.cx:
            return self.cx - x, self.arc_length + (y - self.cy_top)
        return x - self.cx, 2 * self.arc_length + self.straight + (self.cy_bot - y)

    def segment_at(self, x: float, y: float) -> Optional[TrackSegment]:
        """The pocket under a point on the track band, None elsewhere."""
        radius, distance = self._polar(x, y)
        if not self.r_inner <= radius <= self.r_outer:
            return None
        index = int(distance // self.segment_length) % SEGMENT_COUNT
        return self.segments()[index]

    # ==================== Call zones ====================

    def zones(self) -> List[CallZone]:
        share = self.straight / sum(s for _, s in ZONE_SHARES)
        left = self.cx - self.r_inner + 4
        right = self.cx + self.r_inner - 4
        out = []
        top = self.cy_top
        for name, portion in ZONE_SHARES:
            bottom = top + share * portion
            out.append(CallZone(name, ZONE_TITLES[name], top, bottom, left, right))
            top = bottom
        return out

    def zone_at(self, x: float, y: float) -> Optional[CallZone]:
        """
        Call zone under a point inside the track. The first zone also owns the
        top cap and the last zone the bottom cap.
        """
        radius, _ = self._polar(x, y)
        if radius >= self.r_inner:
            return None
        zones = self.zones()
        for zone in zones[:-1]:
            if y < zone.bottom:
                return zone
        return zones[-1]
