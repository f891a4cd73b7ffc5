"""Per-instrument position state machine.

FLAT -> LONG   when LSMA is above the Gaussian filter
FLAT -> SHORT  when the Gaussian filter is above LSMA
LONG/SHORT -> FLAT once the close leaves the +/- band around the entry price

Long entry is checked before short entry. The two conditions are strict
inequalities in opposite directions, so the order only matters if that ever
changes; equality leaves the state FLAT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .config import StrategyConfig
from .exceptions import InvalidTransition
from .numeric import ONE, ZERO, decimal_context, to_decimal
from .types import Position


@dataclass
class PositionState:
    exit_band: Decimal = field(default_factory=lambda: Decimal("0.03"))
    position: Position = Position.FLAT
    entry_price: Decimal = ZERO
    trailing_price: Decimal = ZERO

    @classmethod
    def from_config(cls, cfg: StrategyConfig) -> "PositionState":
        return cls(exit_band=to_decimal(cfg.exit_band))

    @property
    def is_flat(self) -> bool:
        return self.position == Position.FLAT

    def evaluate_entry(self, close: Decimal, gaussian: Decimal, lsma: Decimal) -> Position:
        """Try to open a position; returns the resulting state."""
        if not self.is_flat:
            raise InvalidTransition(f"entry evaluated while {self.position.name}")
        if lsma > gaussian:
            self._enter(Position.LONG, close)
        elif gaussian > lsma:
            self._enter(Position.SHORT, close)
        return self.position

    @decimal_context
    def should_exit(self, close: Decimal) -> bool:
        """True once ``close`` is at or beyond the band on either side.

        The band is symmetric: a long and a short both exit on a rise *or* a
        fall of ``exit_band`` relative to the entry price.
        """
        if self.is_flat:
            return False
        upper = self.entry_price * (ONE + self.exit_band)
        lower = self.entry_price * (ONE - self.exit_band)
        return close >= upper or close <= lower

    def exit(self) -> Position:
        """Return to FLAT; gives back the side that was closed.

        entry/trailing prices are left as they were until the next entry.
        """
        if self.is_flat:
            raise InvalidTransition("exit requested while FLAT")
        closed = self.position
        self.position = Position.FLAT
        return closed

    def _enter(self, side: Position, close: Decimal) -> None:
        self.position = side
        self.entry_price = close
        self.trailing_price = close
