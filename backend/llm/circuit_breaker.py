"""
Circuit breaker for the upstream completion provider
"""
from collections import deque
from typing import Callable
import time


class CircuitBreaker:
    """Opens after ``error_threshold`` upstream failures inside ``time_window`` seconds.

    While open, completions are refused before quota admission. It closes again
    once the failures still inside the window drop below half the threshold.
    """

    def __init__(self, error_threshold: int = 10, time_window: int = 60, clock: Callable[[], float] = time.monotonic):
        self.error_threshold = error_threshold
        self.time_window = time_window
        self._clock = clock
        self.errors = deque()
        self.is_open_flag = False

    def record_error(self):
        """Record an upstream failure"""
        self.errors.append(self._clock())
        self._clean_old_errors()

        if len(self.errors) >= self.error_threshold:
            self.is_open_flag = True

    def record_success(self):
        self._clean_old_errors()

    def _clean_old_errors(self):
        """Remove errors older than time window"""
        now = self._clock()
        while self.errors and now - self.errors[0] > self.time_window:
            self.errors.popleft()

    def is_open(self) -> bool:
        self._clean_old_errors()

        # Auto-close if errors cleared
        if len(self.errors) < max(1, self.error_threshold // 2):
            self.is_open_flag = False

        return self.is_open_flag
