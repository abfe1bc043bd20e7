"""
Table session.

`RouletteTable` owns everything that changes during play: the bet ledger, the
round phase machine, the player's credits and the spin history. It is the
only entry point for the presentation layer; every mutating call returns a
success flag and leaves the reason of the latest rejection in
`last_rejection`.

Round timeline (delays come from `TableConfig`):

    trigger_spin   debit stake, draw outcome             -> SPINNING
    +spin_duration resolve the settlement                -> RESULT_SWEEPING
    +sweep_delay   drop losing bets from the ledger      -> RESULT_SETTLING
    +settle_delay  credit winnings, history, persistence -> RESULT_HOLDING
    +reset_delay   back to BETTING, or BONUS on a fire hit

The RESULT offsets are measured from RESULT entry. Only one round job is
pending at any time; each step schedules the next under the same key, and a
round token makes callbacks of a cancelled round no-ops.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from megafire.config import AppConfig, settings
from megafire.core.economy import BalanceStore, dispatch_background
from megafire.core.exceptions import InvalidBetError
from megafire.core.logger import get_logger
from megafire.core.rng import TableRNG
from megafire.core.roulette.bets import BetKind, parse_bet_id
from megafire.core.roulette.bonus import BonusGame, BonusMode, BonusOutcome, bonus_payout
from megafire.core.roulette.history import HistoryEntry, HistoryStore
from megafire.core.roulette.ledger import BetLedger, Placement
from megafire.core.roulette.outcome import Outcome, OutcomeGenerator
from megafire.core.roulette.phases import Phase, RoundPhaseMachine
from megafire.core.roulette.racetrack import CALL_BETS, call_bet_placements
from megafire.core.roulette.resolver import RoundResolver, Settlement
from megafire.core.roulette.rules import Paytable
from megafire.core.roulette.strategies import Strategy
from megafire.core.scheduler import AsyncRoundTimer, RoundTimer

logger = get_logger("table")

ROUND_JOB = "round"

TableListener = Callable[[str, "RouletteTable"], None]

# Rejection reasons surfaced to clients
BETTING_CLOSED = "Betting is closed"
INSUFFICIENT_CREDITS = "Insufficient credits"
INVALID_AMOUNT = "Bet amount must be positive"
NO_BETS = "No bets placed"
NOTHING_TO_UNDO = "Nothing to undo"
NO_PREVIOUS_BETS = "No previous bets to repeat"
TABLE_NOT_EMPTY = "Clear the table before repeating bets"
INVALID_CHIP = "Unknown chip value"
UNKNOWN_CALL_BET = "Unknown call bet"
NO_BONUS = "No bonus round to collect"
INVALID_MULTIPLIER = "Bonus multiplier must be a non-negative integer"
BONUS_PAYOUT_MISMATCH = "Bonus payout does not match multiplier and stake"


@dataclass
class Round:
    stakes: Dict[str, int]
    targets: Dict[str, BetKind]
    outcome: Outcome
    token: int
    settlement: Optional[Settlement] = None


class RouletteTable:
    def __init__(
        self,
        config: Optional[AppConfig] = None,
        timer: Optional[RoundTimer] = None,
        recorder: Any = None,
        credits_sync: Optional[Callable] = None,
        outcome_generator: Optional[OutcomeGenerator] = None,
        bonus_game: Optional[BonusGame] = None,
        credits: Optional[int] = None,
        low_funds: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            config: table, bonus and payout settings (defaults to the loaded settings)
            timer: round step scheduler; an APScheduler-backed timer by default
            recorder: persistence port with an async
                `record_round(winning_number, is_fire_hit, multiplier, total_win)`
            credits_sync: async callable receiving the balance, debounced
            outcome_generator / bonus_game: injectable for deterministic rounds
            credits: starting balance (defaults to `table.starting_credits`)
            low_funds: called when a round ends with a balance of exactly zero
        """
        self.config = config or settings
        table_cfg = self.config.table
        bonus_cfg = self.config.bonus

        rng = TableRNG(table_cfg.rng_seed)
        self.timer = timer or AsyncRoundTimer()
        self.recorder = recorder
        self.low_funds = low_funds

        self.balance = BalanceStore(
            table_cfg.starting_credits if credits is None else credits,
            timer=self.timer,
            sync=credits_sync,
            sync_delay=table_cfg.balance_sync_delay,
        )
        self.phases = RoundPhaseMachine()
        self.ledger = BetLedger(self.balance.get_balance, lambda: self.phases.accepts_bets)
        self.history = HistoryStore(table_cfg.recent_history_size, table_cfg.full_history_size)

        self.paytable = Paytable(table_cfg.payouts)
        self.outcomes = outcome_generator or OutcomeGenerator(rng, table_cfg.fire_bands)
        self.resolver = RoundResolver(self.paytable, bonus_cfg.spectator_stake)
        self.bonus_game = bonus_game or BonusGame(
            rng,
            grid_size=bonus_cfg.grid_size,
            spins=bonus_cfg.spins,
            land_chance=bonus_cfg.land_chance,
            multipliers=bonus_cfg.multipliers,
        )

        self.chips: List[int] = list(table_cfg.chips)
        self.selected_chip = table_cfg.default_chip
        self.last_round_bets: Dict[str, int] = {}
        self.last_rejection: Optional[str] = None
        self.last_bonus: Optional[BonusOutcome] = None

        self._round: Optional[Round] = None
        self._round_token = 0
        self._listeners: List[TableListener] = []
        self.phases.subscribe(self._on_phase)

    # ==================== Observable state ====================

    @property
    def phase(self) -> Phase:
        return self.phases.phase

    @property
    def winning_number(self) -> Optional[int]:
        return self._round.outcome.winning_number if self._round else None

    @property
    def fire_numbers(self) -> List[int]:
        return list(self._round.outcome.fire_numbers) if self._round else []

    @property
    def settlement(self) -> Optional[Settlement]:
        return self._round.settlement if self._round else None

    def subscribe(self, listener: TableListener):
        """Register `listener(event, table)`, called after every state change."""
        self._listeners.append(listener)

    def state(self) -> dict:
        settlement = self.settlement
        bonus = None
        if self.phase is Phase.BONUS and settlement is not None:
            bonus = {"mode": settlement.bonus_mode.value, "stake": settlement.bonus_stake}
        return {
            "phase": self.phase.public,
            "step": self.phase.value,
            "balance": self.balance.get_balance(),
            "bets": self.ledger.bets,
            "total_staked": self.ledger.total_staked,
            "selected_chip": self.selected_chip,
            "chips": list(self.chips),
            "winning_number": self.winning_number,
            "fire_numbers": self.fire_numbers,
            "settlement": settlement.to_dict() if settlement else None,
            "bonus": bonus,
            "last_bonus": self.last_bonus.to_dict() if self.last_bonus else None,
            "can_rebet": bool(self.last_round_bets),
            "history": [entry.to_dict() for entry in self.history.recent()],
        }

    # ==================== Betting ====================

    def set_chip_value(self, value: int) -> bool:
        if value not in self.chips:
            return self._reject(INVALID_CHIP)
        self.selected_chip = value
        self._emit("chip")
        return True

    def place_bet(self, bet_id: str, amount: Optional[int] = None) -> bool:
        """Stake `amount` (the selected chip by default) on `bet_id`."""
        amount = self.selected_chip if amount is None else amount
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        if amount <= 0:
            return self._reject(INVALID_AMOUNT)
        try:
            parse_bet_id(bet_id)
        except InvalidBetError as e:
            return self._reject(f"{e.reason}: {e.bet_id}")
        if not self.ledger.place_bet(bet_id, amount):
            return self._reject(INSUFFICIENT_CREDITS)
        self._emit("bets")
        return True

    def undo_last(self) -> bool:
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        undone: Optional[Placement] = self.ledger.undo_last()
        if undone is None:
            return self._reject(NOTHING_TO_UNDO)
        self._emit("bets")
        return True

    def clear_bets(self) -> bool:
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        self.ledger.clear()
        self._emit("bets")
        return True

    def rebet(self) -> bool:
        """Repeat the bets of the previous spin on an empty table."""
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        if not self.last_round_bets:
            return self._reject(NO_PREVIOUS_BETS)
        if self.ledger.total_staked != 0:
            return self._reject(TABLE_NOT_EMPTY)
        if not self.ledger.restore(self.last_round_bets):
            return self._reject(INSUFFICIENT_CREDITS)
        self._emit("bets")
        return True

    def apply_strategy(self, strategy: Strategy, chip_value: Optional[int] = None) -> bool:
        """Replace the current bets with a strategy layout scaled by the chip."""
        chip_value = self.selected_chip if chip_value is None else chip_value
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        if chip_value not in self.chips:
            return self._reject(INVALID_CHIP)
        if strategy.total_cost(chip_value) > self.balance.get_balance():
            return self._reject(INSUFFICIENT_CREDITS)
        self.ledger.replace_bets(strategy.to_bets(chip_value))
        logger.info(f"Applied strategy {strategy.id} at {chip_value} per unit")
        self._emit("bets")
        return True

    def place_call_bet(self, zone: str) -> bool:
        """One selected-chip unit per chip of the call; all or nothing."""
        zone = zone.upper()
        if zone not in CALL_BETS:
            return self._reject(UNKNOWN_CALL_BET)
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        placements = call_bet_placements(zone)
        cost = len(placements) * self.selected_chip
        if self.ledger.total_staked + cost > self.balance.get_balance():
            return self._reject(INSUFFICIENT_CREDITS)
        for bet_id in placements:
            self.ledger.place_bet(bet_id, self.selected_chip)
        self._emit("bets")
        return True

    # ==================== Round lifecycle ====================

    def trigger_spin(self) -> bool:
        if not self.phases.accepts_bets:
            return self._reject(BETTING_CLOSED)
        stake = self.ledger.total_staked
        if stake <= 0:
            return self._reject(NO_BETS)
        if not self.balance.has_sufficient_funds(stake):
            return self._reject(INSUFFICIENT_CREDITS)

        self.balance.apply_delta(-stake)
        self.last_round_bets = self.ledger.snapshot()
        self.last_bonus = None

        self.timer.cancel(ROUND_JOB)
        self._round_token += 1
        self._round = Round(
            stakes=self.ledger.snapshot(),
            targets=self.ledger.targets(),
            outcome=self.outcomes.draw(),
            token=self._round_token,
        )
        logger.info(
            f"Spin started: staked {stake} on {len(self._round.stakes)} bets",
            extra=self._context(),
        )
        self.phases.transition(Phase.SPINNING)
        self._schedule(self.config.table.spin_duration, self._enter_result)
        return True

    def _schedule(self, delay: float, step: Callable[[Round], None]):
        current = self._round

        def run():
            if self._round is not current or current.token != self._round_token:
                logger.debug(f"Dropped stale step {step.__name__}")
                return
            step(current)

        self.timer.schedule(ROUND_JOB, delay, run)

    def _enter_result(self, current: Round):
        current.settlement = self.resolver.resolve(current.stakes, current.outcome, current.targets)
        self.phases.transition(Phase.RESULT_SWEEPING)
        self._schedule(self.config.table.sweep_delay, self._sweep)

    def _sweep(self, current: Round):
        self.ledger.remove_non_surviving(current.settlement.surviving_bet_ids)
        self.phases.transition(Phase.RESULT_SETTLING)
        table_cfg = self.config.table
        self._schedule(table_cfg.settle_delay - table_cfg.sweep_delay, self._settle)

    def _settle(self, current: Round):
        settlement = current.settlement
        if settlement.total_win > 0:
            self.balance.apply_delta(settlement.total_win)
        self.history.append(HistoryEntry(settlement.winning_number))
        self._record(settlement.winning_number, settlement.fire_hit, None, settlement.total_win)
        self.ledger.clear()
        self.phases.transition(Phase.RESULT_HOLDING)
        table_cfg = self.config.table
        self._schedule(table_cfg.reset_delay - table_cfg.settle_delay, self._finish)

    def _finish(self, current: Round):
        if current.settlement.bonus_triggered:
            self.phases.transition(Phase.BONUS)
            return
        self._return_to_betting()

    def collect_bonus(
        self,
        outcome: Union[BonusOutcome, Mapping[str, Any], None] = None,
    ) -> Optional[BonusOutcome]:
        """
        Close the bonus round. `outcome` is the mini-game's result, either a
        `BonusOutcome` or a `{multiplier, payout?}` mapping; without one the
        built-in game is played. The payout is always `multiplier * stake`: a
        supplied payout that disagrees is rejected and the round stays in
        BONUS. The payout is credited in NORMAL mode only.
        """
        if self.phase is not Phase.BONUS:
            self._reject(NO_BONUS)
            return None
        settlement = self.settlement
        mode, stake = settlement.bonus_mode, settlement.bonus_stake

        if outcome is None:
            result = self.bonus_game.play(stake, mode)
        else:
            if isinstance(outcome, BonusOutcome):
                multiplier, claimed = outcome.multiplier, outcome.payout
                grid, drops = outcome.grid, outcome.drops
            else:
                multiplier, claimed = outcome["multiplier"], outcome.get("payout")
                grid, drops = (), ()
            if not isinstance(multiplier, int) or multiplier < 0:
                self._reject(INVALID_MULTIPLIER)
                return None
            # The payout is always derived from the table's own stake
            payout = bonus_payout(multiplier, stake)
            if claimed is not None and claimed != payout:
                self._reject(BONUS_PAYOUT_MISMATCH)
                return None
            result = BonusOutcome(multiplier, payout, mode, stake, grid, drops)

        if mode is BonusMode.NORMAL:
            if result.credited > 0:
                self.balance.apply_delta(result.credited)
            self.history.annotate_latest(True, result.multiplier)
            self._record(settlement.winning_number, True, result.multiplier, result.credited)
        logger.info(
            f"Bonus collected ({mode.value}): {result.multiplier}x -> "
            f"{result.payout} (credited {result.credited})",
            extra=self._context(),
        )

        self.last_bonus = result
        self._return_to_betting()
        return result

    def _return_to_betting(self):
        self._round = None
        self.phases.transition(Phase.BETTING)
        if self.balance.get_balance() == 0:
            logger.info("Balance exhausted", extra=self._context())
            if self.low_funds is not None:
                self.low_funds()
            self._emit("low_funds")

    def cancel(self):
        """Abandon the round in flight (teardown); no refund, no settlement."""
        self.timer.cancel(ROUND_JOB)
        self._round_token += 1
        self._round = None
        self.ledger.clear()
        self.phases.reset()

    def shutdown(self):
        self.cancel()
        self.balance.flush()
        self.timer.shutdown()

    # ==================== Helpers ====================

    def _record(self, winning_number: int, is_fire_hit: bool, multiplier, total_win: int):
        if self.recorder is None:
            return
        recorder = self.recorder
        dispatch_background(
            lambda: recorder.record_round(winning_number, is_fire_hit, multiplier, total_win),
            f"Recording round {winning_number}",
        )

    def _context(self) -> dict:
        return {"round": self._round_token, "balance": self.balance.get_balance()}

    def _reject(self, reason: str) -> bool:
        self.last_rejection = reason
        logger.debug(f"Rejected: {reason}")
        return False

    def _on_phase(self, previous: Phase, current: Phase):
        logger.info(f"Phase {previous.value} -> {current.value}", extra=self._context())
        self._emit("phase")

    def _emit(self, event: str):
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception(f"Table listener failed on {event}")
