"""Deterministic collaborators for table tests."""

from typing import List

from megafire.config import AppConfig
from megafire.core.roulette.outcome import Outcome


def outcome(number: int, fire=()) -> Outcome:
    return Outcome(number, tuple(sorted(fire)))


class FixedOutcomes:
    """Outcome generator that replays queued outcomes."""

    def __init__(self, *outcomes: Outcome):
        self.queue: List[Outcome] = list(outcomes)

    def push(self, *outcomes: Outcome):
        self.queue.extend(outcomes)

    def draw(self) -> Outcome:
        return self.queue.pop(0)


class RecordingRecorder:
    def __init__(self):
        self.rounds = []

    async def record_round(self, winning_number, is_fire_hit, multiplier, total_win):
        self.rounds.append((winning_number, is_fire_hit, multiplier, total_win))


class FailingRecorder:
    def __init__(self):
        self.calls = 0

    async def record_round(self, *args):
        self.calls += 1
        raise ConnectionError("backend unreachable")


class CreditsSink:
    def __init__(self):
        self.pushed = []

    async def __call__(self, credits: int):
        self.pushed.append(credits)


def make_config(**table) -> AppConfig:
    config = AppConfig()
    config.table = config.table.model_copy(update={"rng_seed": 7, **table})
    return config
