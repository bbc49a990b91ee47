"""In-memory stand-ins for the Redis client and the random source used by the services."""

import random

import redis


class FakeRedis:
    """Deterministic in-memory Redis double covering list commands only."""

    def __init__(self, *, fail_commands: set[str] | None = None, lpush_budget: int | None = None) -> None:
        self.lists: dict[str, list[str]] = {}
        self.fail_commands = set(fail_commands or ())
        self.lpush_budget = lpush_budget
        self.calls: list[str] = []
        self.closed = False

    def _check(self, command: str) -> None:
        self.calls.append(command)
        if command in self.fail_commands:
            raise redis.ConnectionError(f"forced failure: {command}")

    def ping(self) -> bool:
        self._check("ping")
        return True

    def lpush(self, key: str, *values: object) -> int:
        self._check("lpush")
        if self.lpush_budget is not None:
            if self.lpush_budget <= 0:
                raise redis.ConnectionError("forced failure: lpush budget exhausted")
            self.lpush_budget -= 1
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, str(value))
        return len(items)

    def lpop(self, key: str) -> str | None:
        self._check("lpop")
        items = self.lists.get(key)
        if not items:
            return None
        return items.pop(0)

    def rpop(self, key: str) -> str | None:
        self._check("rpop")
        items = self.lists.get(key)
        if not items:
            return None
        return items.pop()

    def llen(self, key: str) -> int:
        self._check("llen")
        return len(self.lists.get(key, []))

    def ltrim(self, key: str, start: int, stop: int) -> bool:
        self._check("ltrim")
        items = self.lists.get(key, [])
        length = len(items)
        if start < 0:
            start = max(0, length + start)
        if stop < 0:
            stop = length + stop
        self.lists[key] = items[start : stop + 1]
        return True

    def close(self) -> None:
        self.closed = True


class FixedRandom(random.Random):
    """Random source whose randint always returns the same value."""

    def __init__(self, value: int) -> None:
        super().__init__(0)
        self.value = value

    def randint(self, a: int, b: int) -> int:
        assert a <= self.value <= b
        return self.value
