"""Clock helpers for stamping synthetic ticks."""

import time


def unix_seconds() -> float:
    """Return the current unix time truncated to whole seconds, as the tick arrays carry it."""

    return float(int(time.time()))
