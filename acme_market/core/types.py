"""Shared lightweight types to keep module interfaces explicit and typed."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Datapoint:
    """One synthetic market tick as published to the histogram buffer."""

    timestamp: float
    open: float
    close: float
    high: float
    low: float

    def as_list(self) -> list[float]:
        """Return the tick in wire order: timestamp, open, close, high, low."""

        return [self.timestamp, self.open, self.close, self.high, self.low]
