"""
Permission cache tests.

Verifies:
- Entries are served until the TTL elapses on the injected clock
- TTL 0 disables caching
- Expired entries are pruned on write; full invalidation
"""

import pytest

from bizops.services.permission_cache import PermissionCache


class TestExpiry:
    def test_hit_within_ttl(self, fake_clock):
        cache = PermissionCache(ttl_seconds=300, clock=fake_clock)
        cache.set_decision(1, "view.users.enable", "ALLOW")

        fake_clock.advance(299)
        assert cache.get_decision(1, "view.users.enable") == "ALLOW"
        assert cache.hits == 1

    def test_miss_after_ttl(self, fake_clock):
        cache = PermissionCache(ttl_seconds=300, clock=fake_clock)
        cache.set_decision(1, "view.users.enable", "ALLOW")

        fake_clock.advance(300)
        assert cache.get_decision(1, "view.users.enable") is None
        assert len(cache) == 0
        assert cache.misses == 1

    def test_permission_sets_expire_too(self, fake_clock):
        cache = PermissionCache(ttl_seconds=10, clock=fake_clock)
        cache.set_permission_set(7, ("a.b.c",))
        assert cache.get_permission_set(7) == ("a.b.c",)

        fake_clock.advance(11)
        assert cache.get_permission_set(7) is None

    def test_zero_ttl_disables_cache(self, fake_clock):
        cache = PermissionCache(ttl_seconds=0, clock=fake_clock)
        cache.set_decision(1, "view.users.enable", "ALLOW")
        assert cache.get_decision(1, "view.users.enable") is None
        assert len(cache) == 0

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            PermissionCache(ttl_seconds=-1)


class TestInvalidation:
    def test_expired_entries_are_pruned_on_write(self, fake_clock):
        cache = PermissionCache(ttl_seconds=60, clock=fake_clock)
        cache.set_decision(1, "view.users.enable", "ALLOW")
        cache.set_permission_set(1, ())

        fake_clock.advance(61)
        cache.set_decision(2, "view.users.enable", "ALLOW")

        assert len(cache) == 1
        assert cache.get_decision(2, "view.users.enable") == "ALLOW"

    def test_live_entries_survive_pruning(self, fake_clock):
        cache = PermissionCache(ttl_seconds=60, clock=fake_clock)
        cache.set_decision(1, "view.users.enable", "ALLOW")
        fake_clock.advance(30)
        cache.set_decision(2, "view.users.enable", "ALLOW")

        fake_clock.advance(31)
        cache.set_decision(3, "view.users.enable", "ALLOW")

        assert len(cache) == 2
        assert cache.get_decision(2, "view.users.enable") == "ALLOW"

    def test_clear_drops_everything(self, fake_clock):
        cache = PermissionCache(clock=fake_clock)
        cache.set_decision(1, "view.users.enable", "ALLOW")
        cache.set_permission_set(2, ())

        cache.clear()
        assert len(cache) == 0
        assert cache.stats()["entries"] == 0
