import random
import time
from dataclasses import dataclass
from typing import Callable

Clock = Callable[[], float]


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff schedule in seconds.

    max_elapsed_time of 0 means retry forever.
    """

    initial_interval: float = 1.0
    max_interval: float = 10.0
    max_elapsed_time: float = 30.0
    multiplier: float = 1.5
    randomization_factor: float = 0.5

    def __post_init__(self):
        if self.initial_interval <= 0:
            raise ValueError("initial_interval must be positive")
        if self.max_interval < self.initial_interval:
            raise ValueError("max_interval must not be less than initial_interval")
        if self.max_elapsed_time < 0:
            raise ValueError("max_elapsed_time must not be negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")
        if not 0 <= self.randomization_factor < 1:
            raise ValueError("randomization_factor must be in [0, 1)")


class ExponentialBackoff:
    def __init__(
        self,
        policy: BackoffPolicy,
        clock: Clock = time.monotonic,
        rand: Callable[[], float] = random.random,
    ):
        self._policy: BackoffPolicy = policy
        self._clock: Clock = clock
        self._rand = rand
        self.reset()

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    def reset(self) -> None:
        self._current: float = self._policy.initial_interval
        self._start: float = self._clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    @property
    def remaining(self) -> float | None:
        """
        Seconds left in the elapsed budget, None without a budget.
        """
        max_elapsed = self._policy.max_elapsed_time
        if not max_elapsed:
            return None
        return max(max_elapsed - self.elapsed, 0.0)

    def _randomize(self, interval: float) -> float:
        delta = self._policy.randomization_factor * interval
        low = interval - delta
        high = interval + delta
        return low + self._rand() * (high - low)

    def next_interval(self) -> float | None:
        """
        Next wait in seconds, None when the elapsed budget is spent.
        """
        interval = self._randomize(self._current)
        self._current = min(
            self._current * self._policy.multiplier,
            self._policy.max_interval,
        )
        max_elapsed = self._policy.max_elapsed_time
        if max_elapsed and self.elapsed + interval > max_elapsed:
            return None
        return interval
