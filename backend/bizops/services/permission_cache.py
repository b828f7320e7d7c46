# Overview: In-process TTL cache for permission decisions and per-employee permission sets.

"""
Permission decision cache.

WHY: A privileged request may run several checks for the same employee; the
grant tables change rarely. Entries live for a fixed TTL and any grant, revoke,
role-assignment or inheritance change clears everything, because working out
which employees a role change affects would need a reverse lookup.

Concurrent population is not locked: the resolver is a pure function of
persisted state, so two racing writers store the same value.

SCOPE: One process. Horizontally scaled deployments need a shared backing
store or broadcast invalidation on top of this.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable

from ..time_utils import monotonic


_MISSING = object()


class PermissionCache:
    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = monotonic):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._decisions: dict[tuple[Hashable, str], tuple[Any, float]] = {}
        self._permission_sets: dict[Hashable, tuple[Any, float]] = {}
        self.hits = 0
        self.misses = 0
        self._next_prune = clock() + ttl_seconds

    def _read(self, table: dict, key) -> Any:
        entry = table.get(key)
        if entry is None:
            self.misses += 1
            return _MISSING
        value, expires_at = entry
        if self._clock() >= expires_at:
            table.pop(key, None)
            self.misses += 1
            return _MISSING
        self.hits += 1
        return value

    def _prune(self, now: float) -> None:
        for table in (self._decisions, self._permission_sets):
            expired = [key for key, (_, expires_at) in list(table.items()) if now >= expires_at]
            for key in expired:
                table.pop(key, None)
        self._next_prune = now + self.ttl_seconds

    def _write(self, table: dict, key, value) -> None:
        if self.ttl_seconds == 0:
            return
        now = self._clock()
        # Keys that are never read again are swept here, at most once per TTL
        if now >= self._next_prune:
            self._prune(now)
        table[key] = (value, now + self.ttl_seconds)

    def get_decision(self, employee_id, permission_key: str):
        """Cached decision for (employee, key), or None on miss/expiry."""
        value = self._read(self._decisions, (employee_id, permission_key))
        return None if value is _MISSING else value

    def set_decision(self, employee_id, permission_key: str, decision) -> None:
        self._write(self._decisions, (employee_id, permission_key), decision)

    def get_permission_set(self, employee_id):
        value = self._read(self._permission_sets, employee_id)
        return None if value is _MISSING else value

    def set_permission_set(self, employee_id, permissions) -> None:
        self._write(self._permission_sets, employee_id, permissions)

    def clear(self) -> None:
        self._decisions.clear()
        self._permission_sets.clear()

    def __len__(self) -> int:
        return len(self._decisions) + len(self._permission_sets)

    def stats(self) -> dict:
        return {
            "ttl_seconds": self.ttl_seconds,
            "entries": len(self),
            "hits": self.hits,
            "misses": self.misses,
        }
