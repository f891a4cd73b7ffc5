"""Exceptions raised by the backtester."""

from __future__ import annotations

from datetime import date
from typing import Optional


class BacktestError(Exception):
    """Base class for errors specific to this package."""


class InvalidPriceData(BacktestError):
    """Raised when a bar carries a non-positive price or a negative volume."""

    def __init__(self, symbol: str, when: Optional[date], field: str, value: object):
        self.symbol = symbol
        self.when = when
        self.field = field
        self.value = value
        super().__init__(f"{symbol}: invalid {field}={value!r} on {when}")

    def __reduce__(self):
        # crosses process boundaries when instruments run in a worker pool
        return (type(self), (self.symbol, self.when, self.field, self.value))


class InsufficientDataError(BacktestError):
    """Raised when a metric needs more portfolio points than were produced."""


class InvalidTransition(BacktestError):
    """Raised when the position state machine is driven from the wrong state."""
