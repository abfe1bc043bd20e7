"""
Bet ledger: bet id -> staked credits for the round being built.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from megafire.core.exceptions import InvalidBetError
from megafire.core.logger import get_logger
from megafire.core.roulette.bets import BetKind, interpret_bet_id, parse_bet_id

logger = get_logger("ledger")


@dataclass(frozen=True)
class Placement:
    """One chip drop, kept so the latest can be undone."""

    bet_id: str
    amount: int


class BetLedger:
    """
    Holds the wagers of the current round.

    Invariants:
    - every entry is a positive amount (entries are removed when they reach zero)
    - `total_staked` always equals the sum of the entries
    - `place_bet` never lets `total_staked` exceed the balance

    `balance` and `is_open` are supplied by the owner (the table): the balance
    provider reads the externally owned credits, the gate tells whether the
    round is still taking bets.
    """

    def __init__(
        self,
        balance: Callable[[], int],
        is_open: Optional[Callable[[], bool]] = None,
    ):
        self._balance = balance
        self._is_open = is_open or (lambda: True)
        self._bets: Dict[str, int] = {}
        self._targets: Dict[str, BetKind] = {}
        self._history: List[Placement] = []
        self._total_staked = 0

    # ==================== Reads ====================

    @property
    def bets(self) -> Dict[str, int]:
        return dict(self._bets)

    @property
    def total_staked(self) -> int:
        return self._total_staked

    @property
    def history(self) -> List[Placement]:
        return list(self._history)

    def targets(self) -> Dict[str, BetKind]:
        """Parsed variant for every entry, in ledger order."""
        return {bet_id: self._targets[bet_id] for bet_id in self._bets}

    def amount_for(self, bet_id: str) -> int:
        return self._bets.get(bet_id, 0)

    def is_empty(self) -> bool:
        return not self._bets

    def __len__(self) -> int:
        return len(self._bets)

    def __contains__(self, bet_id: str) -> bool:
        return bet_id in self._bets

    # ==================== Mutations ====================

    def place_bet(self, bet_id: str, amount: int) -> bool:
        """
        Add `amount` to the entry for `bet_id`.

        Returns False without touching the ledger when the table is not taking
        bets, the amount is not positive, the id is malformed, or the new total
        would exceed the balance.
        """
        if not self._is_open():
            logger.debug(f"Rejected bet on {bet_id}: betting closed")
            return False
        if amount <= 0:
            logger.debug(f"Rejected bet on {bet_id}: non-positive amount {amount}")
            return False
        try:
            kind = parse_bet_id(bet_id)
        except InvalidBetError as e:
            logger.debug(f"Rejected bet: {e}")
            return False
        if self._total_staked + amount > self._balance():
            logger.debug(
                f"Rejected bet on {kind.bet_id}: staked {self._total_staked} + {amount} "
                f"exceeds balance {self._balance()}"
            )
            return False

        key = kind.bet_id
        self._targets[key] = kind
        self._bets[key] = self._bets.get(key, 0) + amount
        self._history.append(Placement(key, amount))
        self._total_staked += amount
        return True

    def undo_last(self) -> Optional[Placement]:
        """Reverse the most recent placement; no-op on an empty history."""
        if not self._is_open() or not self._history:
            return None

        last = self._history.pop()
        remaining = self._bets.get(last.bet_id, 0) - last.amount
        if remaining <= 0:
            self._bets.pop(last.bet_id, None)
            self._targets.pop(last.bet_id, None)
        else:
            self._bets[last.bet_id] = remaining
        self._recompute_total()
        return last

    def clear(self):
        self._bets.clear()
        self._targets.clear()
        self._history.clear()
        self._total_staked = 0

    def snapshot(self) -> Dict[str, int]:
        return dict(self._bets)

    def restore(self, snapshot: Mapping[str, int]) -> bool:
        """
        Put a previous round's bets back on an empty table.

        Rejected when betting is closed, chips are already down, the snapshot
        is empty, or the snapshot costs more than the balance. The undo history
        is rebuilt from the restored entries.
        """
        if not self._is_open() or self._total_staked != 0:
            return False
        total = sum(snapshot.values())
        if total <= 0 or total > self._balance():
            return False

        self.replace_bets(snapshot)
        self._history = [Placement(bet_id, amount) for bet_id, amount in self._bets.items()]
        return True

    def replace_bets(self, bets: Mapping[str, int]):
        """
        Unconditional overwrite; the caller has already checked affordability.
        Malformed ids are kept as non-winning entries, non-positive amounts are dropped.
        """
        self._bets = {}
        self._targets = {}
        for bet_id, amount in bets.items():
            if amount <= 0:
                continue
            kind = interpret_bet_id(bet_id)
            key = kind.bet_id
            self._targets[key] = kind
            self._bets[key] = self._bets.get(key, 0) + amount
        self._history = []
        self._recompute_total()

    def remove_non_surviving(self, surviving_ids: Iterable[str]):
        """Sweep: keep only the entries listed in `surviving_ids`."""
        keep = set(surviving_ids)
        swept = [bet_id for bet_id in self._bets if bet_id not in keep]
        for bet_id in swept:
            del self._bets[bet_id]
            self._targets.pop(bet_id, None)
        self._history = [p for p in self._history if p.bet_id in keep]
        self._recompute_total()
        if swept:
            logger.debug(f"Swept {len(swept)} losing bets")

    def _recompute_total(self):
        self._total_staked = sum(self._bets.values())
