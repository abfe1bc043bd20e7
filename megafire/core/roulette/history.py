from collections import deque
from dataclasses import dataclass, replace
from typing import Deque, Iterable, List, Optional


@dataclass(frozen=True)
class HistoryEntry:
    number: int
    is_fire: bool = False
    multiplier: Optional[int] = None

    def to_dict(self) -> dict:
        return {"number": self.number, "isFire": self.is_fire, "multiplier": self.multiplier}


class HistoryStore:
    """Newest-first session history: a short recent strip and a longer session list."""

    def __init__(self, recent_size: int = 15, full_size: int = 100):
        self._recent: Deque[HistoryEntry] = deque(maxlen=recent_size)
        self._full: Deque[HistoryEntry] = deque(maxlen=full_size)

    def append(self, entry: HistoryEntry):
        self._recent.appendleft(entry)
        self._full.appendleft(entry)

    def annotate_latest(self, is_fire: bool, multiplier: Optional[int]) -> Optional[HistoryEntry]:
        """Attach the bonus result to the entry of the round that just settled."""
        if not self._full:
            return None
        updated = replace(self._full[0], is_fire=is_fire, multiplier=multiplier)
        self._full[0] = updated
        if self._recent:
            self._recent[0] = updated
        return updated

    def recent(self) -> List[HistoryEntry]:
        return list(self._recent)

    def full(self) -> List[HistoryEntry]:
        return list(self._full)

    def __len__(self) -> int:
        return len(self._full)


def calculate_stats(entries: Iterable[HistoryEntry], top: int = 5) -> dict:
    """
    Frequency view of a history: hot numbers are the most frequent, cold
    numbers are the unseen ones first, then the least frequent.
    """
    entries = list(entries)
    counts = [0] * 37
    fire_hits = 0
    for entry in entries:
        if 0 <= entry.number <= 36:
            counts[entry.number] += 1
        if entry.is_fire:
            fire_hits += 1

    # Stable sort keeps lower numbers first among equal counts
    by_count = sorted(range(37), key=lambda n: -counts[n])
    hot = by_count[:top]

    cold = [n for n in range(37) if counts[n] == 0]
    for n in reversed(by_count):
        if len(cold) >= top:
            break
        if n not in cold:
            cold.append(n)

    return {
        "counts": counts,
        "max_count": max(counts) or 1,
        "hot_numbers": hot,
        "cold_numbers": cold[:top],
        "spins": len(entries),
        "fire_rate": round(fire_hits / len(entries), 4) if entries else 0.0,
    }
