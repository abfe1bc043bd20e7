from enum import Enum
from typing import Callable, Dict, FrozenSet, List

from megafire.core.exceptions import PhaseTransitionError
from megafire.core.logger import get_logger

logger = get_logger("phases")


class Phase(str, Enum):
    BETTING = "BETTING"
    SPINNING = "SPINNING"
    # RESULT is split into the three timed steps that follow the spin
    RESULT_SWEEPING = "RESULT_SWEEPING"
    RESULT_SETTLING = "RESULT_SETTLING"
    RESULT_HOLDING = "RESULT_HOLDING"
    BONUS = "BONUS"

    @property
    def public(self) -> str:
        """Coarse phase shown to clients: BETTING, SPINNING, RESULT or BONUS."""
        if self.value.startswith("RESULT"):
            return "RESULT"
        return self.value


TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.BETTING: frozenset({Phase.SPINNING}),
    Phase.SPINNING: frozenset({Phase.RESULT_SWEEPING}),
    Phase.RESULT_SWEEPING: frozenset({Phase.RESULT_SETTLING}),
    Phase.RESULT_SETTLING: frozenset({Phase.RESULT_HOLDING}),
    Phase.RESULT_HOLDING: frozenset({Phase.BETTING, Phase.BONUS}),
    Phase.BONUS: frozenset({Phase.BETTING}),
}

PhaseListener = Callable[[Phase, Phase], None]


class RoundPhaseMachine:
    """
    BETTING -> SPINNING -> RESULT_SWEEPING -> RESULT_SETTLING -> RESULT_HOLDING
    -> BETTING, or RESULT_HOLDING -> BONUS -> BETTING.

    Ledger mutations are only legal in BETTING, and a spin can only start from
    BETTING, so two rounds never overlap.
    """

    def __init__(self):
        self._phase = Phase.BETTING
        self._listeners: List[PhaseListener] = []

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def accepts_bets(self) -> bool:
        return self._phase is Phase.BETTING

    def can_transition(self, target: Phase) -> bool:
        return target in TRANSITIONS[self._phase]

    def transition(self, target: Phase):
        if not self.can_transition(target):
            raise PhaseTransitionError(self._phase.value, target.value)
        previous, self._phase = self._phase, target
        logger.debug(f"{previous.value} -> {target.value}")
        for listener in list(self._listeners):
            listener(previous, target)

    def reset(self):
        """Force BETTING (teardown of an abandoned round)."""
        previous, self._phase = self._phase, Phase.BETTING
        if previous is not Phase.BETTING:
            logger.info(f"Phase reset from {previous.value}")
            for listener in list(self._listeners):
                listener(previous, Phase.BETTING)

    def subscribe(self, listener: PhaseListener):
        self._listeners.append(listener)
