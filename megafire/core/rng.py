import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


class TableRNG:
    """
    Uniform random source for the table.

    Without a seed it draws from the operating system (`random.SystemRandom`);
    with a seed it is a reproducible `random.Random`, which simulations and
    tests use to replay a session.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._random = random.Random(seed) if seed is not None else random.SystemRandom()

    def random_float(self) -> float:
        """Returns a random float in the range [0.0, 1.0)."""
        return self._random.random()

    def random_int(self, min_val: int, max_val: int) -> int:
        """Returns a random integer in the range [min_val, max_val] (inclusive)."""
        if min_val > max_val:
            raise ValueError("min_val must be less than or equal to max_val")
        return self._random.randint(min_val, max_val)

    def random_choice(self, options: Sequence[T]) -> T:
        """Returns a random element from a non-empty sequence."""
        if not options:
            raise IndexError("Cannot choose from an empty sequence")
        return self._random.choice(options)

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Returns a new shuffled list, leaving the input untouched."""
        shuffled = list(items)
        self._random.shuffle(shuffled)
        return shuffled
