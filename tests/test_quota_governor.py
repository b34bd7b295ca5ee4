import threading
import unittest
from datetime import datetime, timedelta, timezone

from databank.quota import QuotaGovernor


class _FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


class TestQuotaGovernor(unittest.TestCase):
    def setUp(self):
        self.clock = _FakeClock(datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc))
        self.quota = QuotaGovernor(limit=3, clock=self.clock)

    def test_fresh_governor_allows_full_limit(self):
        check = self.quota.check()
        self.assertTrue(check.allowed)
        self.assertEqual(check.remaining, 3)
        self.assertEqual(check.limit, 3)
        status = self.quota.status()
        self.assertEqual((status.remaining, status.limit, status.used), (3, 3, 0))

    def test_record_decrements_remaining(self):
        status = self.quota.record()
        self.assertEqual(status.used, 1)
        self.assertEqual(status.remaining, 2)
        self.assertEqual(self.quota.check().remaining, 2)

    def test_check_rejects_once_limit_reached(self):
        for _ in range(3):
            self.quota.record()
        check = self.quota.check()
        self.assertFalse(check.allowed)
        self.assertEqual(check.remaining, 0)
        self.assertEqual(check.limit, 3)

    def test_gated_calls_never_exceed_limit(self):
        for _ in range(10):
            if self.quota.check().allowed:
                self.quota.record()
        self.assertEqual(self.quota.status().used, 3)

    def test_check_and_status_have_no_side_effects(self):
        for _ in range(5):
            self.quota.check()
            self.quota.status()
        self.assertEqual(self.quota.status().used, 0)

    def test_rollover_resets_after_midnight_utc(self):
        for _ in range(3):
            self.quota.record()
        self.assertFalse(self.quota.check().allowed)

        self.clock.advance(hours=15)  # 2026-03-15 00:00 UTC
        status = self.quota.status()
        self.assertEqual(status.used, 0)
        self.assertEqual(status.remaining, 3)
        self.assertTrue(self.quota.check().allowed)

    def test_no_rollover_within_same_utc_day(self):
        self.quota.record()
        self.clock.advance(hours=14, minutes=59)  # 23:59 UTC
        self.assertEqual(self.quota.status().used, 1)

    def test_day_is_computed_in_utc_not_local_offset(self):
        tokyo = timezone(timedelta(hours=9))
        clock = _FakeClock(datetime(2026, 3, 14, 23, 30, tzinfo=tokyo))  # 14:30 UTC
        quota = QuotaGovernor(limit=2, clock=clock)
        quota.record()
        clock.advance(hours=9)  # 08:30 local next day, still 23:30 UTC on the 14th
        self.assertEqual(quota.status().used, 1)
        clock.advance(hours=1)  # 00:30 UTC on the 15th
        self.assertEqual(quota.status().used, 0)

    def test_naive_clock_is_treated_as_utc(self):
        clock = _FakeClock(datetime(2026, 3, 14, 23, 0))
        quota = QuotaGovernor(limit=2, clock=clock)
        quota.record()
        clock.advance(hours=2)
        self.assertEqual(quota.status().used, 0)

    def test_record_rolls_over_before_counting(self):
        for _ in range(3):
            self.quota.record()
        self.clock.advance(days=1)
        status = self.quota.record()
        self.assertEqual(status.used, 1)
        self.assertEqual(status.remaining, 2)

    def test_rejects_non_positive_limit(self):
        with self.assertRaises(ValueError):
            QuotaGovernor(limit=0)

    def test_default_limit_is_one_hundred(self):
        self.assertEqual(QuotaGovernor().limit, 100)

    def test_concurrent_records_are_all_counted(self):
        quota = QuotaGovernor(limit=1000, clock=self.clock)

        def _worker():
            for _ in range(50):
                quota.record()

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(quota.status().used, 400)


if __name__ == "__main__":
    unittest.main()
