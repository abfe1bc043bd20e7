class InvalidBetError(ValueError):
    """A bet identifier that does not describe a bet on this layout."""

    def __init__(self, bet_id: str, reason: str = "Unknown bet"):
        super().__init__(f"{reason}: {bet_id!r}")
        self.bet_id = bet_id
        self.reason = reason


class PhaseTransitionError(RuntimeError):
    """An edge the round phase machine does not allow."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move from {current} to {target}")
        self.current = current
        self.target = target
